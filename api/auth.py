"""
Bearer token authentication for the FastAPI API.
"""

from typing import Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorDatabase

from api.database import get_database
from catalog.auth import CredentialStore, TokenIssuer, TokenValidator
from catalog.models import UserRecord
from utilities.config import config

logger = structlog.get_logger(__name__)

# Missing headers are handled below so every failure is a 401
security = HTTPBearer(auto_error=False)

UNAUTHENTICATED_DETAIL = "Invalid or expired token"
INVALID_CREDENTIALS_DETAIL = "Invalid credentials."


def unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=UNAUTHENTICATED_DETAIL,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_credential_store(database: AsyncIOMotorDatabase = Depends(get_database)) -> CredentialStore:
    return CredentialStore(database)


def get_token_issuer(database: AsyncIOMotorDatabase = Depends(get_database)) -> TokenIssuer:
    return TokenIssuer(database, ttl=config.get_token_ttl(), token_bytes=config.token_bytes)


def get_token_validator(
    database: AsyncIOMotorDatabase = Depends(get_database),
    credential_store: CredentialStore = Depends(get_credential_store),
) -> TokenValidator:
    return TokenValidator(database, credential_store=credential_store)


async def login(
    username: str,
    password: str,
    credential_store: CredentialStore,
    token_issuer: TokenIssuer,
) -> str:
    """
    Exchange credentials for a new token.

    Raises:
        HTTPException: 400 with the same message whether the user is unknown
            or the password is wrong
    """
    user_id = await credential_store.verify(username, password)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=INVALID_CREDENTIALS_DETAIL,
        )
    return await token_issuer.issue(user_id)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token_validator: TokenValidator = Depends(get_token_validator),
) -> UserRecord:
    """
    Resolve the bearer token of the request to a user.

    Raises:
        HTTPException: 401 if the header is missing or the token is unknown,
            expired, or orphaned
    """
    if credentials is None:
        logger.warning("Request without bearer token")
        raise unauthenticated()

    user = await token_validator.resolve(credentials.credentials)
    if user is None:
        raise unauthenticated()

    return user
