"""
List query parameters shared by the list endpoints.
"""
from typing import Annotated
from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import get_cache
from app.core.database.engine import get_db
from app.features.listing.gateway import ListingGateway
from app.features.listing.schemas import ListQuery, StatusFilter


def list_query(
    search: str | None = Query(None, max_length=100, description="Matches name, code, email or position"),
    status: StatusFilter = Query(StatusFilter.ACTIVE, description="Needs view_inactive_entities for anything but active"),
    agency_id: str | None = None,
    division_id: str | None = None,
    start: int = Query(0, ge=0),
    length: int = Query(10, ge=1, le=100),
    order_by: str | None = None,
    order_dir: str = Query("asc", pattern="^(asc|desc)$"),
) -> ListQuery:
    return ListQuery(
        search=search,
        status=status,
        agency_id=agency_id,
        division_id=division_id,
        start=start,
        length=length,
        order_by=order_by,
        order_dir=order_dir,
    )


async def get_listing_gateway(
    db: Annotated[AsyncSession, Depends(get_db)]
) -> ListingGateway:
    return ListingGateway(db, get_cache())
