# backend/models/product.py
from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from database import Base


# Model Product
# Catalogue entry for a stock keeping unit. Quantities on hand are not stored
# here, they live in the inventory ledger keyed by (product, storage area).
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True, index=True)

    # Total stock at or below this level counts as low stock
    min_stock_level = Column(Integer, CheckConstraint("min_stock_level >= 0"), nullable=False, default=0)

    category = relationship("Category", lazy="joined")
    supplier = relationship("Supplier", lazy="joined")
