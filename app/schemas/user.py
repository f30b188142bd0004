"""User schemas."""
from pydantic import BaseModel, ConfigDict, EmailStr

from app.models.user import UserRole


class UserCreate(BaseModel):
    username: str
    email: EmailStr
    phone_number: str | None = None
    role: UserRole
    is_active: bool = True


class UserRead(BaseModel):
    id: int
    username: str
    email: EmailStr
    phone_number: str | None = None
    role: UserRole
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
