# backend/models/users.py
from sqlalchemy import Boolean, Column, Integer, String

from database import Base


class Role:
    ADMIN = "admin"
    MANAGER = "manager"
    WORKER = "worker"

    ALL = (ADMIN, MANAGER, WORKER)


# Represents a user account with authentication details and system role
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    role = Column(String, nullable=False, default=Role.WORKER)
    active = Column(Boolean, nullable=False, default=True)
