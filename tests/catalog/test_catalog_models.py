"""
Unit tests for catalog schemas and result values.
"""

import pytest
from datetime import datetime, timedelta, timezone
from bson import ObjectId
from pydantic import ValidationError

from catalog.models import (
    AuthorCreate, AuthorUpdate, BookCreate, BookUpdate,
    TokenRecord, UserRecord, serialize_document
)
from catalog.results import ErrorKind, OperationResult


class TestAuthorSchemas:
    """Test cases for author schemas."""

    def test_valid_author(self, sample_author):
        author = AuthorCreate.model_validate(sample_author)
        assert author.name == sample_author["name"]
        assert author.to_document() == sample_author

    def test_birth_date_is_stored_as_iso_string(self, sample_author):
        document = AuthorCreate.model_validate(sample_author).to_document()
        assert document["birth_date"] == "1927-03-06"

    @pytest.mark.parametrize("birth_date", [
        86400, 999993600.0, "1927-03-06T00:00:00", "1927-3-6", "06/03/1927", "1927-02-30"
    ])
    def test_birth_date_must_be_iso_calendar_date(self, sample_author, birth_date):
        sample_author["birth_date"] = birth_date
        with pytest.raises(ValidationError) as exc_info:
            AuthorCreate.model_validate(sample_author)
        error = exc_info.value.errors()[0]
        assert error["type"] == "date_format"
        assert error["loc"] == ("birth_date",)

    def test_birth_date_checked_on_update(self):
        with pytest.raises(ValidationError) as exc_info:
            AuthorUpdate.model_validate({"birth_date": 86400})
        assert exc_info.value.errors()[0]["type"] == "date_format"

    def test_missing_field(self, sample_author):
        del sample_author["birth_date"]
        with pytest.raises(ValidationError) as exc_info:
            AuthorCreate.model_validate(sample_author)
        assert exc_info.value.errors()[0]["type"] == "missing"

    def test_empty_books_written(self, sample_author):
        sample_author["books_written"] = []
        with pytest.raises(ValidationError):
            AuthorCreate.model_validate(sample_author)

    def test_unknown_field_rejected(self, sample_author):
        sample_author["nationality"] = "Colombian"
        with pytest.raises(ValidationError) as exc_info:
            AuthorCreate.model_validate(sample_author)
        assert exc_info.value.errors()[0]["type"] == "extra_forbidden"

    def test_explicit_null_rejected_on_update(self):
        with pytest.raises(ValidationError) as exc_info:
            AuthorUpdate.model_validate({"name": None})
        assert exc_info.value.errors()[0]["type"] == "empty_field"

    def test_update_keeps_only_sent_fields(self):
        update = AuthorUpdate.model_validate({"books_written": ["Memoria de mis putas tristes"]})
        assert update.to_document() == {"books_written": ["Memoria de mis putas tristes"]}


class TestBookSchemas:
    """Test cases for book schemas."""

    def test_valid_book(self, sample_book):
        assert BookCreate.model_validate(sample_book).to_document() == sample_book

    @pytest.mark.parametrize("year", ["1967", 1967.0, True])
    def test_publication_year_must_be_integer(self, sample_book, year):
        sample_book["publication_year"] = year
        with pytest.raises(ValidationError) as exc_info:
            BookCreate.model_validate(sample_book)
        assert exc_info.value.errors()[0]["loc"] == ("publication_year",)

    def test_empty_title(self, sample_book):
        sample_book["title"] = ""
        with pytest.raises(ValidationError):
            BookCreate.model_validate(sample_book)

    def test_empty_author_name(self, sample_book):
        sample_book["authors"] = ["Gabriel García Márquez", ""]
        with pytest.raises(ValidationError) as exc_info:
            BookCreate.model_validate(sample_book)
        assert exc_info.value.errors()[0]["loc"] == ("authors", 1)

    def test_empty_update_is_decodable(self):
        assert BookUpdate.model_validate({}).to_document() == {}


class TestRecords:
    """Test cases for stored user and token records."""

    def test_serialize_document(self):
        object_id = ObjectId()
        assert serialize_document({"_id": object_id, "name": "X"}) == {"id": str(object_id), "name": "X"}

    def test_user_record_from_document(self):
        object_id = ObjectId()
        user = UserRecord.from_document({"_id": object_id, "username": "ana", "password_hash": "secret-hash"})
        assert user.id == str(object_id)
        assert "secret-hash" not in repr(user)

    def test_token_record_naive_expiry_is_utc(self):
        record = TokenRecord(token="ab" * 16, user_id=str(ObjectId()), expiry=datetime(2030, 1, 1, 12, 0))
        assert record.expiry.tzinfo == timezone.utc

    def test_token_record_expiry_is_strict(self):
        now = datetime.now(timezone.utc)
        record = TokenRecord(token="ab" * 16, user_id=str(ObjectId()), expiry=now)
        assert record.is_expired(now)
        assert not record.is_expired(now - timedelta(seconds=1))

    def test_token_record_round_trip_user_id(self):
        user_id = ObjectId()
        record = TokenRecord.from_document({
            "_id": ObjectId(), "token": "cd" * 16, "user_id": user_id,
            "expiry": datetime.now(timezone.utc)
        })
        assert record.user_id == str(user_id)
        assert record.to_document()["user_id"] == user_id


class TestOperationResult:
    """Test cases for OperationResult."""

    def test_success(self):
        result = OperationResult.success({"id": "1"})
        assert result.ok
        assert result.value == {"id": "1"}

    def test_invalid(self):
        result = OperationResult.invalid("Missing required field: name.", field="name")
        assert not result.ok
        assert result.error.kind == ErrorKind.VALIDATION
        assert result.error.field == "name"

    def test_not_found(self):
        assert OperationResult.not_found("Book not found.").error.kind == ErrorKind.NOT_FOUND
