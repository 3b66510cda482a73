"""
Pydantic schemas for division requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from app.core.database.base import EntityStatus
from app.features.divisions.models import DivisionType


class DivisionBase(BaseModel):
    """Location and contact fields shared by create and update."""
    province_code: str | None = Field(None, max_length=10)
    regency_code: str | None = Field(None, max_length=10)
    address: str | None = Field(None, max_length=1000)
    postal_code: str | None = Field(None, max_length=10)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    phone: str | None = Field(None, max_length=20)
    email: EmailStr | None = None


class DivisionCreate(DivisionBase):
    """
    ``jurisdictions`` are extra territory codes; the division's own regency
    is always added as the primary jurisdiction.
    """
    agency_id: str = Field(..., max_length=26)
    name: str = Field(..., min_length=3, max_length=255)
    type: DivisionType = DivisionType.CABANG
    admin_principal_id: str | None = Field(None, max_length=26)
    jurisdictions: list[str] = Field(default_factory=list)


class DivisionUpdate(DivisionBase):
    """Schema for updating division information."""
    name: str | None = Field(None, min_length=3, max_length=255)
    type: DivisionType | None = None
    admin_principal_id: str | None = Field(None, max_length=26)


class DivisionResponse(DivisionBase):
    """Schema for division responses."""
    id: str
    agency_id: str
    code: str
    name: str
    type: DivisionType
    status: EntityStatus
    email: str | None = None
    admin_principal_id: str | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
