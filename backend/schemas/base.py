from pydantic import BaseModel, ConfigDict


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Partial-update commands name exactly the fields that may change; anything
# else (ids, unknown keys) is rejected.
class UpdateCommand(BaseModel):
    model_config = ConfigDict(extra="forbid")
