# backend/schemas/user.py
from typing import Literal, Optional

from pydantic import BaseModel, Field

from schemas.base import ORMBase, UpdateCommand

RoleName = Literal["admin", "manager", "worker"]


# Schema for user authentication credentials
class UserLogin(BaseModel):
    username: str
    password: str


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1)
    role: RoleName = "worker"


class UserUpdate(UpdateCommand):
    username: Optional[str] = Field(None, min_length=1)
    full_name: Optional[str] = Field(None, min_length=1)
    role: Optional[RoleName] = None
    active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6)


# Output schema for user profile details, never carries the password hash
class UserOut(ORMBase):
    id: int
    username: str
    full_name: str
    role: str
    active: bool


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserOut
