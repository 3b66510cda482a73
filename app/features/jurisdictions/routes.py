"""
Jurisdiction routes, mounted under /divisions.
"""
from typing import Annotated
from fastapi import APIRouter, Depends

from app.core.database.unit_of_work import UnitOfWork
from app.features.jurisdictions.schemas import JurisdictionAssign, JurisdictionResponse, TerritoryResponse
from app.features.jurisdictions.service import JurisdictionService
from app.features.lifecycle.dependencies import get_uow
from app.features.permissions.capabilities import Principal
from app.features.users.dependencies import get_principal, require_request_token


router = APIRouter()


@router.get("/available-territories", response_model=list[TerritoryResponse])
async def list_available_territories(
    agency_id: str,
    principal: Annotated[Principal, Depends(get_principal)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
    division_id: str | None = None,
):
    """Regencies of the agency's province not held by another of its divisions."""
    return await JurisdictionService(uow).available_territories(agency_id, principal, division_id)


@router.put("/{division_id}/jurisdictions", response_model=list[JurisdictionResponse])
async def assign_jurisdictions(
    division_id: str,
    data: JurisdictionAssign,
    principal: Annotated[Principal, Depends(require_request_token)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    """Replace the division's territories. The division's regency is always kept as primary."""
    service = JurisdictionService(uow)
    await service.assign(division_id, data.territory_codes, data.primary_codes, principal)
    return await service.list_for_division(division_id, principal)


@router.get("/{division_id}/jurisdictions", response_model=list[JurisdictionResponse])
async def list_jurisdictions(
    division_id: str,
    principal: Annotated[Principal, Depends(get_principal)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    return await JurisdictionService(uow).list_for_division(division_id, principal)
