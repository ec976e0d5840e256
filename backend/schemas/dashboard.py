# backend/schemas/dashboard.py
from typing import Optional

from pydantic import BaseModel

from schemas.base import ORMBase
from schemas.category import CategoryOut
from schemas.product import ProductOut
from schemas.storage_area import StorageAreaOut


class DashboardStats(BaseModel):
    total_products: int
    low_stock_items: int
    pending_movements: int
    storage_utilization: int


# One row per (low-stock product, area holding it)
class LowStockItem(ORMBase):
    product: ProductOut
    category: Optional[CategoryOut] = None
    current_stock: int
    storage_area: StorageAreaOut
