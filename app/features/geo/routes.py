"""
Geo reference routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.geo.service import GeoReference
from app.features.permissions.capabilities import Principal
from app.features.users.dependencies import get_principal


router = APIRouter()


class ProvinceResponse(BaseModel):
    code: str
    name: str

    model_config = {"from_attributes": True}


class RegencyResponse(ProvinceResponse):
    province_code: str


@router.get("/provinces", response_model=list[ProvinceResponse])
async def list_provinces(
    db: Annotated[AsyncSession, Depends(get_db)],
    _principal: Annotated[Principal, Depends(get_principal)],
):
    return await GeoReference(db).list_provinces()


@router.get("/regencies", response_model=list[RegencyResponse])
async def list_regencies(
    db: Annotated[AsyncSession, Depends(get_db)],
    _principal: Annotated[Principal, Depends(get_principal)],
    province_code: str | None = None,
):
    return await GeoReference(db).list_regencies(province_code)
