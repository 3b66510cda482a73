"""
Agency routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status

from app.core.database.unit_of_work import UnitOfWork
from app.core.schemas import MutationResult
from app.features.agencies.schemas import AgencyCreate, AgencyResponse, AgencyUpdate
from app.features.agencies.service import AgencyService
from app.features.lifecycle.dependencies import get_uow
from app.features.listing.dependencies import get_listing_gateway, list_query
from app.features.listing.gateway import ListingGateway
from app.features.listing.schemas import ListQuery, ListResult
from app.features.permissions.capabilities import Principal
from app.features.users.dependencies import get_principal, require_request_token


router = APIRouter()


@router.post("/", response_model=MutationResult, status_code=status.HTTP_201_CREATED)
async def create_agency(
    data: AgencyCreate,
    principal: Annotated[Principal, Depends(require_request_token)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    """Create an agency with its headquarters division and employee."""
    agency = await AgencyService(uow).create_agency(data, principal)
    return MutationResult(id=agency.id, message=f"Agency {agency.name} created")


@router.get("/", response_model=ListResult)
async def list_agencies(
    principal: Annotated[Principal, Depends(get_principal)],
    query: Annotated[ListQuery, Depends(list_query)],
    gateway: Annotated[ListingGateway, Depends(get_listing_gateway)],
):
    """Agencies visible to the current principal."""
    return await gateway.list_entities("agency", principal, query)


@router.get("/{agency_id}", response_model=AgencyResponse)
async def get_agency(
    agency_id: str,
    principal: Annotated[Principal, Depends(get_principal)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    return await AgencyService(uow).get_agency(agency_id, principal)


@router.patch("/{agency_id}", response_model=AgencyResponse)
async def update_agency(
    agency_id: str,
    data: AgencyUpdate,
    principal: Annotated[Principal, Depends(require_request_token)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    service = AgencyService(uow)
    agency = await service.update_agency(agency_id, data, principal)
    return await service.serialize(agency)


@router.delete("/{agency_id}", response_model=MutationResult)
async def delete_agency(
    agency_id: str,
    principal: Annotated[Principal, Depends(require_request_token)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    """Delete (or deactivate, in soft mode) an agency and everything below it."""
    await AgencyService(uow).delete_agency(agency_id, principal)
    return MutationResult(id=agency_id, message="Agency deleted")
