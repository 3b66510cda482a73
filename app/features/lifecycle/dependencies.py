"""
FastAPI dependency providing the unit of work for mutating routes.
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import get_cache
from app.core.database.engine import get_db
from app.core.database.unit_of_work import UnitOfWork
from app.core.notifications import Notifier
from app.features.lifecycle.handlers import get_dispatcher


notifier = Notifier()


async def get_uow(
    db: Annotated[AsyncSession, Depends(get_db)]
) -> UnitOfWork:
    """
    Usage in FastAPI routes:
        @router.post("/")
        async def create(uow: UnitOfWork = Depends(get_uow)):
            await AgencyService(uow).create_agency(...)
    """
    return UnitOfWork(db, get_cache(), get_dispatcher(), notifier)
