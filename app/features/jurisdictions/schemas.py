"""
Pydantic schemas for jurisdiction assignment.
"""
from pydantic import BaseModel, Field, field_validator


class JurisdictionAssign(BaseModel):
    """Replace the whole territory set of a division."""
    territory_codes: list[str] = Field(default_factory=list)
    primary_codes: list[str] = Field(default_factory=list)

    @field_validator("territory_codes", "primary_codes")
    @classmethod
    def strip_codes(cls, codes: list[str]) -> list[str]:
        return [code.strip() for code in codes if code and code.strip()]


class JurisdictionResponse(BaseModel):
    territory_code: str
    name: str | None = None
    is_primary: bool


class TerritoryResponse(BaseModel):
    """A regency that can be assigned to a division."""
    code: str
    name: str
