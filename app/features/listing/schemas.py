"""
List request and result shapes.
"""
import enum
from typing import Any
from pydantic import BaseModel, Field


class StatusFilter(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ALL = "all"


class ListQuery(BaseModel):
    search: str | None = Field(None, max_length=100)
    status: StatusFilter = StatusFilter.ACTIVE
    agency_id: str | None = None
    division_id: str | None = None
    start: int = Field(0, ge=0)
    length: int = Field(10, ge=1, le=100)
    order_by: str | None = None
    order_dir: str = Field("asc", pattern="^(asc|desc)$")


class ListResult(BaseModel):
    rows: list[dict[str, Any]] = Field(default_factory=list)
    total_count: int = 0
    filtered_count: int = 0
