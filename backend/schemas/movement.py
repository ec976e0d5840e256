# backend/schemas/movement.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from models.movement import MovementStatus
from schemas.base import ORMBase
from schemas.product import ProductOut
from schemas.storage_area import StorageAreaOut
from schemas.user import UserOut


class MovementCreate(BaseModel):
    product_id: int
    from_area_id: Optional[int] = None
    to_area_id: Optional[int] = None
    # strict: JSON true or 2.5 is not a quantity
    quantity: int = Field(..., gt=0, strict=True)
    status: MovementStatus = MovementStatus.PENDING

    @model_validator(mode="after")
    def _needs_an_area(self):
        if self.from_area_id is None and self.to_area_id is None:
            raise ValueError("Either from_area_id or to_area_id must be set")
        return self


class MovementStatusUpdate(BaseModel):
    status: MovementStatus


class MovementOut(ORMBase):
    id: int
    product_id: int
    from_area_id: Optional[int] = None
    to_area_id: Optional[int] = None
    quantity: int
    status: MovementStatus
    date: datetime
    user_id: int


class MovementWithDetails(MovementOut):
    product: ProductOut
    from_area: Optional[StorageAreaOut] = None
    to_area: Optional[StorageAreaOut] = None
    user: UserOut
