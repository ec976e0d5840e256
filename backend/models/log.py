# backend/models/log.py
from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from database import Base


# One audit entry per user action: logins, catalogue edits, stock overrides
# and movement changes. Entries outlive the user that wrote them.
class Log(Base):
    __tablename__ = "logs"
    __table_args__ = (
        CheckConstraint("status IN ('SUCCESS', 'FAIL')", name="ck_logs_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    ts = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # e.g. LOGIN, PRODUCT_CREATE, MOVEMENT_STATUS
    action = Column(String(50), nullable=False, index=True)
    resource = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="SUCCESS", index=True)
    ip = Column(String(64), nullable=True)

    # Entity ids, quantities and status changes; never passwords
    meta = Column(JSON, nullable=True)

    user = relationship("User", lazy="joined")
