# backend/models/inventory.py
from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base


# Ledger entry: quantity of one product held in one storage area.
# At most one row per (product_id, storage_area_id).
class Inventory(Base):
    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint("product_id", "storage_area_id", name="uq_inventory_product_area"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    storage_area_id = Column(Integer, ForeignKey("storage_areas.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)

    storage_area = relationship("StorageArea", lazy="joined")
