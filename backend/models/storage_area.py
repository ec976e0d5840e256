# backend/models/storage_area.py
from sqlalchemy import CheckConstraint, Column, Integer, String

from database import Base


# Physical zone of the warehouse. Capacity is a declared maximum used for
# utilization reporting, the ledger may exceed it.
class StorageArea(Base):
    __tablename__ = "storage_areas"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)
    capacity = Column(Integer, CheckConstraint("capacity >= 0"), nullable=False, default=0)
