# backend/schemas/inventory.py
from pydantic import BaseModel, Field

from schemas.base import ORMBase


# Administrative override of a ledger entry (manual stock correction)
class InventorySet(BaseModel):
    product_id: int
    storage_area_id: int
    quantity: int = Field(..., ge=0)


class InventoryOut(ORMBase):
    id: int
    product_id: int
    storage_area_id: int
    quantity: int


class StockLevel(BaseModel):
    product_id: int
    storage_area_id: int
    quantity: int
