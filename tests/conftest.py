"""
Pytest configuration and shared fixtures.

The catalog code talks to motor collections through a handful of coroutine
methods. ``FakeDatabase`` implements those methods in memory, including the
unique indexes the real database carries, so services and validators can be
exercised end to end without a MongoDB server.
"""

import copy
import secrets
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from catalog.auth import hash_password
from catalog.database import AUTHORS_COLLECTION, BOOKS_COLLECTION, TOKENS_COLLECTION, UNIQUE_KEYS, USERS_COLLECTION

_MISSING = object()

TEST_USERNAME = "testuser"
TEST_PASSWORD = "testpassword"


def _matches(document, query):
    for key, condition in (query or {}).items():
        value = document.get(key, _MISSING)
        if isinstance(condition, dict) and condition and all(op.startswith("$") for op in condition):
            for op, operand in condition.items():
                if op == "$lte":
                    if value is _MISSING or not value <= operand:
                        return False
                elif op == "$ne":
                    if value == operand:
                        return False
                else:
                    raise NotImplementedError(op)
        elif value != condition:
            return False
    return True


class FakeCursor:
    def __init__(self, documents):
        self._documents = documents

    async def to_list(self, length=None):
        if length is None:
            return list(self._documents)
        return self._documents[:length]

    def __aiter__(self):
        self._iter = iter(self._documents)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    """In-memory stand-in for AsyncIOMotorCollection."""

    def __init__(self, name, unique_keys=()):
        self.name = name
        self.documents = []
        self.unique_keys = set(unique_keys)

    def _check_unique(self, candidate, skip_id=None):
        for key in self.unique_keys:
            if key not in candidate:
                continue
            for document in self.documents:
                if document["_id"] != skip_id and document.get(key) == candidate[key]:
                    raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name} index: {key}_1")

    async def create_index(self, key, unique=False):
        if unique:
            self.unique_keys.add(key)
        return f"{key}_1"

    async def find_one(self, query=None):
        for document in self.documents:
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    def find(self, query=None):
        return FakeCursor([copy.deepcopy(d) for d in self.documents if _matches(d, query)])

    async def insert_one(self, document):
        document.setdefault("_id", ObjectId())
        self._check_unique(document)
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def update_one(self, query, update):
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                changed = {**document, **update.get("$set", {})}
                self._check_unique(changed, skip_id=document["_id"])
                self.documents[index] = changed
                return SimpleNamespace(matched_count=1, modified_count=int(changed != document))
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query):
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                del self.documents[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query):
        kept = [d for d in self.documents if not _matches(d, query)]
        deleted = len(self.documents) - len(kept)
        self.documents = kept
        return SimpleNamespace(deleted_count=deleted)

    async def count_documents(self, query):
        return sum(1 for d in self.documents if _matches(d, query))


class FakeDatabase:
    """In-memory stand-in for AsyncIOMotorDatabase."""

    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        if name not in self.collections:
            unique = [UNIQUE_KEYS[name]] if name in UNIQUE_KEYS else []
            self.collections[name] = FakeCollection(name, unique_keys=unique)
        return self.collections[name]

    async def command(self, name):
        return {"ok": 1.0}

    async def list_collection_names(self):
        return list(self.collections)

    async def create_collection(self, name):
        return self[name]


@pytest.fixture(scope="session")
def test_password_hash():
    """bcrypt hash of TEST_PASSWORD, computed once per session."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def fake_db():
    """Empty in-memory catalog database."""
    return FakeDatabase()


@pytest.fixture
def test_user(fake_db, test_password_hash):
    """A provisioned user document."""
    document = {"_id": ObjectId(), "username": TEST_USERNAME, "password_hash": test_password_hash}
    fake_db[USERS_COLLECTION].documents.append(document)
    return document


@pytest.fixture
def make_token(fake_db):
    """Insert a token document for a user with the given expiry offset."""
    def _make_token(user_id, expires_in=timedelta(minutes=30), value=None):
        document = {
            "_id": ObjectId(),
            "token": value or secrets.token_hex(16),
            "user_id": user_id,
            "expiry": datetime.now(timezone.utc) + expires_in,
        }
        fake_db[TOKENS_COLLECTION].documents.append(document)
        return document
    return _make_token


@pytest.fixture
def sample_author():
    """Valid author create payload."""
    return {
        "name": "Gabriel García Márquez",
        "birth_date": "1927-03-06",
        "books_written": ["Cien años de soledad", "El amor en los tiempos del cólera"]
    }


@pytest.fixture
def sample_book():
    """Valid book create payload for sample_author."""
    return {
        "title": "Cien años de soledad",
        "authors": ["Gabriel García Márquez"],
        "publication_year": 1967,
        "description": "The multi-generational story of the Buendía family."
    }


@pytest.fixture
def stored_author(fake_db, sample_author):
    """sample_author already present in the authors collection."""
    document = {"_id": ObjectId(), **sample_author}
    fake_db[AUTHORS_COLLECTION].documents.append(document)
    return document


@pytest.fixture
def stored_book(fake_db, stored_author, sample_book):
    """sample_book already present in the books collection."""
    document = {"_id": ObjectId(), **sample_book}
    fake_db[BOOKS_COLLECTION].documents.append(document)
    return document
