# backend/schemas/product.py
from typing import List, Optional

from pydantic import BaseModel, Field

from schemas.base import ORMBase, UpdateCommand
from schemas.category import CategoryOut
from schemas.storage_area import StorageAreaOut
from schemas.supplier import SupplierOut


# Shared base attributes for product entities
class ProductBase(BaseModel):
    sku: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    category_id: Optional[int] = None
    supplier_id: Optional[int] = None
    min_stock_level: int = Field(0, ge=0)


class ProductCreate(ProductBase):
    pass


# Schema for partial product updates. The id is not editable.
class ProductUpdate(UpdateCommand):
    sku: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category_id: Optional[int] = None
    supplier_id: Optional[int] = None
    min_stock_level: Optional[int] = Field(None, ge=0)


class ProductOut(ORMBase, ProductBase):
    id: int


class AreaStock(ORMBase):
    id: int
    product_id: int
    storage_area_id: int
    quantity: int
    storage_area: StorageAreaOut


# Product together with its ledger entries and their sum
class ProductWithInventory(ProductOut):
    category: Optional[CategoryOut] = None
    supplier: Optional[SupplierOut] = None
    total_stock: int
    inventory_by_area: List[AreaStock]
