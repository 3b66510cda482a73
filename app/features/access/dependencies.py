"""
FastAPI dependency providing the access resolver.
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import get_cache
from app.core.database.engine import get_db
from app.features.access.resolver import AccessResolver


async def get_access_resolver(
    db: Annotated[AsyncSession, Depends(get_db)]
) -> AccessResolver:
    return AccessResolver(db, get_cache())
