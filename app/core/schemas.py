"""
Response shapes shared by several features.
"""
from pydantic import BaseModel


class MutationResult(BaseModel):
    """Returned by create and delete operations."""
    id: str
    message: str
