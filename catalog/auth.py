"""
Credential verification and bearer tokens.

Passwords are stored as bcrypt hashes and verified with bcrypt.checkpw.
Tokens are opaque hex strings from the secrets module, persisted with an
absolute UTC expiry and looked up by exact match on every request.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import bcrypt
import structlog
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from .database import TOKENS_COLLECTION, USERS_COLLECTION
from .models import TokenRecord, UserRecord
from .results import OperationResult

logger = structlog.get_logger(__name__)

DEFAULT_TOKEN_TTL = timedelta(minutes=30)
DEFAULT_TOKEN_BYTES = 16

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed or non-bcrypt hash
        return False


# Checked against when the username is unknown, so both failure paths pay for
# one bcrypt comparison.
_DUMMY_HASH = hash_password("library-catalog-timing-dummy")


def _token_prefix(token: str) -> str:
    return token[:8] + "..."


class CredentialStore:
    """Users and their password hashes."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.users_collection = database[USERS_COLLECTION]

    async def verify(self, username: str, password: str) -> Optional[str]:
        """
        Check a username/password pair.

        Args:
            username: Login name, matched exactly
            password: Plaintext password

        Returns:
            The user id on success, None when the user is unknown or the
            password does not match
        """
        document = await self.users_collection.find_one({"username": username})

        if document is None:
            verify_password(password, _DUMMY_HASH)
            logger.info("Login rejected", reason="unknown_user")
            return None

        if not verify_password(password, document.get("password_hash", "")):
            logger.info("Login rejected", reason="bad_password")
            return None

        return str(document["_id"])

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        """Fetch a user by id; None if the id is malformed or unknown."""
        try:
            object_id = ObjectId(user_id)
        except (InvalidId, TypeError):
            return None

        document = await self.users_collection.find_one({"_id": object_id})
        if document is None:
            return None
        return UserRecord.from_document(document)

    async def create_user(self, username: str, password: str) -> OperationResult:
        """Provision a user with a freshly hashed password."""
        if not username or not password:
            return OperationResult.invalid("Username and password are required.")
        if len(password.encode("utf-8")) > 72:
            return OperationResult.invalid("Password must be at most 72 bytes.", field="password")

        document = {"username": username, "password_hash": hash_password(password)}
        try:
            result = await self.users_collection.insert_one(document)
        except DuplicateKeyError:
            return OperationResult.invalid(f"User '{username}' already exists.", field="username")

        logger.info("User created", username=username)
        return OperationResult.success(str(result.inserted_id))


class TokenIssuer:
    """Mints and persists bearer tokens."""

    def __init__(
        self,
        database: AsyncIOMotorDatabase,
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        token_bytes: int = DEFAULT_TOKEN_BYTES,
        clock: Clock = utc_now,
    ):
        if token_bytes < 16:
            raise ValueError("token_bytes must be at least 16")
        self.tokens_collection = database[TOKENS_COLLECTION]
        self.ttl = ttl
        self.token_bytes = token_bytes
        self.clock = clock

    async def issue(self, user_id: str) -> str:
        """
        Create a token for a user.

        Every call inserts a new token document; earlier tokens of the same
        user stay valid until they expire. A value collision surfaces as
        DuplicateKeyError from the unique index.

        Returns:
            The token value
        """
        record = TokenRecord(
            token=secrets.token_hex(self.token_bytes),
            user_id=user_id,
            expiry=self.clock() + self.ttl,
        )

        try:
            await self.tokens_collection.insert_one(record.to_document())
        except DuplicateKeyError:
            logger.error("Token value collision", user_id=user_id)
            raise

        logger.info("Token issued", user_id=user_id, expiry=record.expiry.isoformat())
        return record.token


class TokenValidator:
    """Resolves bearer tokens to users."""

    def __init__(
        self,
        database: AsyncIOMotorDatabase,
        credential_store: Optional[CredentialStore] = None,
        clock: Clock = utc_now,
    ):
        self.tokens_collection = database[TOKENS_COLLECTION]
        self.credential_store = credential_store or CredentialStore(database)
        self.clock = clock

    async def resolve(self, token: str) -> Optional[UserRecord]:
        """
        Resolve a token value to its user.

        Returns:
            The user, or None when the token is unknown, expired, or belongs
            to a user that no longer exists. Expired tokens are left in place.
        """
        if not token:
            return None

        document = await self.tokens_collection.find_one({"token": token})
        if document is None:
            logger.warning("Token not found", token=_token_prefix(token))
            return None

        record = TokenRecord.from_document(document)
        if record.is_expired(self.clock()):
            logger.warning("Token expired", token=_token_prefix(token), expiry=record.expiry.isoformat())
            return None

        user = await self.credential_store.get_user(record.user_id)
        if user is None:
            logger.warning("Token owner no longer exists", token=_token_prefix(token), user_id=record.user_id)
        return user
