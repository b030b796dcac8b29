"""User directory Pydantic schemas."""

from enum import Enum

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """Closed set of user roles."""
    ADMIN = "Admin"
    CUSTOMER = "Customer"


class User(BaseModel):
    """An operator account."""

    role: UserRole
    username: str = Field(..., min_length=1, max_length=64, pattern=r"^\S+$")
    password: str = Field(..., min_length=1, max_length=128)

    model_config = {"frozen": True, "from_attributes": True}

    def authenticate(self, password: str) -> bool:
        return self.password == password
