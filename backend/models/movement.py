# backend/models/movement.py
import enum

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer
from sqlalchemy.orm import relationship

from database import Base


# Lifecycle states of a movement. COMPLETED and CANCELLED are terminal.
class MovementStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Transfer of a quantity of one product between storage areas. Either side may
# be empty (receiving into / shipping out of the warehouse) but not both.
class Movement(Base):
    __tablename__ = "movements"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movements_quantity_positive"),
        CheckConstraint(
            "from_area_id IS NOT NULL OR to_area_id IS NOT NULL",
            name="ck_movements_has_area",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    from_area_id = Column(Integer, ForeignKey("storage_areas.id"), nullable=True, index=True)
    to_area_id = Column(Integer, ForeignKey("storage_areas.id"), nullable=True, index=True)
    quantity = Column(Integer, nullable=False)

    status = Column(
        Enum(MovementStatus, name="movementstatus", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MovementStatus.PENDING,
        index=True,
    )
    # Set once at creation from the engine's clock
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # True once the debit/credit of this movement has hit the ledger
    ledger_applied = Column(Boolean, nullable=False, default=False)

    product = relationship("Product")
    from_area = relationship("StorageArea", foreign_keys=[from_area_id])
    to_area = relationship("StorageArea", foreign_keys=[to_area_id])
    user = relationship("User")
