# backend/schemas/category.py
from typing import Optional

from pydantic import BaseModel, Field

from schemas.base import ORMBase, UpdateCommand


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class CategoryUpdate(UpdateCommand):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None


class CategoryOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
