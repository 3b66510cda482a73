"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)


class UserCreate(UserBase):
    """Principal created together with an agency or an employee."""
    pass


class UserUpdate(BaseModel):
    """Schema for updating user information."""
    name: str | None = Field(None, min_length=1, max_length=255)


class UserResponse(UserBase):
    """Schema for user responses."""
    id: str
    roles: list[str] = []
    is_active: bool
    is_admin: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RequestTokenResponse(BaseModel):
    """Request-integrity token for the X-Request-Token header."""
    token: str
    header: str
    expires_in: int
