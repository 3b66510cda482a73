"""
Pydantic schemas for employee requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, model_validator

from app.core.database.base import EntityStatus
from app.features.users.schemas import UserCreate


class EmployeeCreate(BaseModel):
    """
    Link a principal to a division. Either reference an existing principal
    or create one from ``user``. Name and email default to the principal's.
    """
    division_id: str = Field(..., max_length=26)
    principal_id: str | None = Field(None, max_length=26)
    user: UserCreate | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)
    position: str | None = Field(None, max_length=100)
    notes: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_principal(self):
        if (self.principal_id is None) == (self.user is None):
            raise ValueError("Give exactly one of principal_id or user")
        return self


class EmployeeUpdate(BaseModel):
    """Schema for updating employee information."""
    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)
    position: str | None = Field(None, max_length=100)
    notes: str | None = Field(None, max_length=2000)


class EmployeeResponse(BaseModel):
    """Schema for employee responses."""
    id: str
    agency_id: str
    division_id: str
    principal_id: str
    name: str
    email: str
    phone: str | None = None
    position: str | None = None
    notes: str | None = None
    status: EntityStatus
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
