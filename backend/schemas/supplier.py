# backend/schemas/supplier.py
from typing import Optional

from pydantic import BaseModel, Field

from schemas.base import ORMBase, UpdateCommand


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1)
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class SupplierUpdate(UpdateCommand):
    name: Optional[str] = Field(None, min_length=1)
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class SupplierOut(ORMBase):
    id: int
    name: str
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
