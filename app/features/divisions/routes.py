"""
Division routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status

from app.core.database.unit_of_work import UnitOfWork
from app.core.schemas import MutationResult
from app.features.divisions.schemas import DivisionCreate, DivisionResponse, DivisionUpdate
from app.features.divisions.service import DivisionService
from app.features.lifecycle.dependencies import get_uow
from app.features.listing.dependencies import get_listing_gateway, list_query
from app.features.listing.gateway import ListingGateway
from app.features.listing.schemas import ListQuery, ListResult
from app.features.permissions.capabilities import Principal
from app.features.users.dependencies import get_principal, require_request_token


router = APIRouter()


@router.post("/", response_model=MutationResult, status_code=status.HTTP_201_CREATED)
async def create_division(
    data: DivisionCreate,
    principal: Annotated[Principal, Depends(require_request_token)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    division = await DivisionService(uow).create_division(data, principal)
    return MutationResult(id=division.id, message=f"Division {division.name} created")


@router.get("/", response_model=ListResult)
async def list_divisions(
    principal: Annotated[Principal, Depends(get_principal)],
    query: Annotated[ListQuery, Depends(list_query)],
    gateway: Annotated[ListingGateway, Depends(get_listing_gateway)],
):
    return await gateway.list_entities("division", principal, query)


@router.get("/{division_id}", response_model=DivisionResponse)
async def get_division(
    division_id: str,
    principal: Annotated[Principal, Depends(get_principal)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    return await DivisionService(uow).get_division(division_id, principal)


@router.patch("/{division_id}", response_model=DivisionResponse)
async def update_division(
    division_id: str,
    data: DivisionUpdate,
    principal: Annotated[Principal, Depends(require_request_token)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    division = await DivisionService(uow).update_division(division_id, data, principal)
    return await DivisionService.serialize(division)


@router.delete("/{division_id}", response_model=MutationResult)
async def delete_division(
    division_id: str,
    principal: Annotated[Principal, Depends(require_request_token)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    await DivisionService(uow).delete_division(division_id, principal)
    return MutationResult(id=division_id, message="Division deleted")
