# backend/schemas/storage_area.py
from typing import List, Optional

from pydantic import BaseModel, Field

from schemas.base import ORMBase, UpdateCommand


class StorageAreaCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    capacity: int = Field(0, ge=0)


class StorageAreaUpdate(UpdateCommand):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)


class StorageAreaOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    capacity: int


# Fill level of a single area, used by the storage occupancy widget
class AreaOccupancy(ORMBase):
    storage_area: StorageAreaOut
    items_stored: int
    capacity: int
    utilization: int


class OccupancyReport(BaseModel):
    areas: List[AreaOccupancy]
    storage_utilization: int
