"""
Pydantic schemas for agency requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field, model_validator

from app.core.database.base import EntityStatus
from app.features.users.schemas import UserCreate


class AgencyBase(BaseModel):
    """Base agency schema."""
    name: str = Field(..., min_length=3, max_length=255)
    province_code: str = Field(..., min_length=1, max_length=10)
    regency_code: str = Field(..., min_length=1, max_length=10)


class AgencyCreate(AgencyBase):
    """
    Create an agency together with its owning principal.

    The owner is, in order: a new principal from ``owner``, the existing
    principal ``owning_principal_id``, or the acting principal.
    ``admin_principal_id`` names a distinct admin for the headquarters
    division; it defaults to the owner.
    """
    owner: UserCreate | None = None
    owning_principal_id: str | None = Field(None, max_length=26)
    admin_principal_id: str | None = Field(None, max_length=26)

    @model_validator(mode="after")
    def check_owner(self):
        if self.owner is not None and self.owning_principal_id is not None:
            raise ValueError("Give either owner or owning_principal_id, not both")
        return self


class AgencyUpdate(BaseModel):
    """Schema for updating agency information."""
    name: str | None = Field(None, min_length=3, max_length=255)
    province_code: str | None = Field(None, min_length=1, max_length=10)
    regency_code: str | None = Field(None, min_length=1, max_length=10)


class AgencyResponse(BaseModel):
    """Schema for agency responses."""
    id: str
    code: str
    name: str
    status: EntityStatus
    province_code: str | None = None
    regency_code: str | None = None
    owning_principal_id: str
    created_by: str | None = None
    division_count: int = 0
    employee_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
