import pytest
from unittest.mock import patch
from sqlalchemy import func, select

from excel_validator import ExcelValidator, OfficeBearerRecord
from models import OfficeBearer
from office_bearer_service import OfficeBearerRepository, OfficeBearerService


def record(name, email, **optional):
    return OfficeBearerRecord(name=name, email=email, **optional)


def stored_count(session_factory):
    with session_factory() as session:
        return session.scalar(select(func.count()).select_from(OfficeBearer))


@pytest.fixture
def service(session):
    return OfficeBearerService(session)


@pytest.fixture
def seeded(session_factory):
    """Fixture storing one office bearer with email x@x.com."""
    with session_factory() as session:
        session.add(OfficeBearer(name="Existing", email="x@x.com"))
        session.commit()


class TestCommit:
    """
    Tests for storing validated batches.
    """

    def test_stores_every_record(self, service, session_factory):
        records = [
            record("A", "a@example.com", phone="1", position="Chair"),
            record("B", "b@example.com"),
            record("C", "c@example.com", address="Main St"),
        ]

        result = service.commit(records)

        assert result.is_success()
        assert result.status_code == 201
        assert result.message == "Successfully created 3 office bearer(s)"
        assert [bearer.email for bearer in result.data] == ["a@example.com", "b@example.com", "c@example.com"]
        assert all(bearer.id is not None for bearer in result.data)
        assert all(bearer.created_at is not None for bearer in result.data)
        assert result.data[0].position == "Chair"
        assert result.data[1].phone is None
        assert stored_count(session_factory) == 3

    def test_duplicate_email_in_file_flags_only_repeats(self, service, session_factory):
        records = [
            record("A", "x@x.com"),
            record("B", "x@x.com"),
        ]

        result = service.commit(records)

        assert result.is_failure()
        assert result.status_code == 400
        assert result.error == "Duplicate emails in file"
        assert len(result.errors) == 1
        assert result.errors[0].type == "duplicate_emails_in_file"
        assert result.errors[0].row == 3
        assert result.errors[0].email == "x@x.com"
        assert stored_count(session_factory) == 0

    def test_duplicate_email_in_file_ignores_case(self, service):
        records = [
            record("A", "Someone@Example.com"),
            record("B", "other@example.com"),
            record("C", "someone@example.COM"),
            record("D", "SOMEONE@example.com"),
        ]

        result = service.commit(records)

        assert [(e.row, e.email) for e in result.errors] == [
            (4, "someone@example.COM"),
            (5, "SOMEONE@example.com"),
        ]

    def test_email_already_stored_rejects_batch(self, service, session_factory, seeded):
        records = [
            record("New", "new@example.com"),
            record("Clash", "X@X.com"),
        ]

        result = service.commit(records)

        assert result.is_failure()
        assert result.error == "Duplicate emails in database"
        assert [(e.type, e.email) for e in result.errors] == [("duplicate_emails_in_database", "X@X.com")]
        assert stored_count(session_factory) == 1

    def test_insert_failure_rolls_back_whole_batch(self, service, session_factory, seeded):
        """
        Test that a constraint violation during insert leaves nothing behind.

        The pre-insert duplicate lookup is bypassed to simulate another upload
        storing the same email in between the check and the insert.
        """
        records = [
            record("First", "first@example.com"),
            record("Racer", "X@x.com"),
            record("Last", "last@example.com"),
        ]

        with patch.object(OfficeBearerRepository, "find_by_emails", return_value=[]):
            result = service.commit(records)

        assert result.is_failure()
        assert result.status_code == 500
        assert result.error == "Creation failed"
        assert [(e.type, e.email) for e in result.errors] == [("creation_failed", "X@x.com")]
        assert stored_count(session_factory) == 1


class TestListAll:
    """
    Tests for listing stored office bearers.
    """

    def test_empty_store_returns_empty_list(self, service):
        assert service.list_all() == []

    def test_newest_batch_comes_first(self, service):
        assert service.commit([record("A", "a@example.com"), record("B", "b@example.com")]).is_success()
        assert service.commit([record("C", "c@example.com"), record("D", "d@example.com")]).is_success()

        listed = service.list_all()

        assert len(listed) == 4
        assert {bearer.email for bearer in listed[:2]} == {"c@example.com", "d@example.com"}
        assert {bearer.email for bearer in listed[2:]} == {"a@example.com", "b@example.com"}


class TestProcessUpload:
    """
    Tests for the validate-then-store pipeline.
    """

    def test_valid_file_is_stored(self, service, session_factory, excel_factory):
        content = excel_factory([
            {"Name": "John", "Email": "john@example.com", "Department": "Finance"},
            {"Name": "Jane", "Email": "jane@example.com"},
        ])

        result = service.process_upload(content)

        assert result.is_success()
        assert len(result.data) == 2
        assert result.data[0].department == "Finance"
        assert stored_count(session_factory) == 2

    def test_invalid_rows_store_nothing(self, service, session_factory, excel_factory):
        content = excel_factory([
            {"Name": "John", "Email": "john@example.com"},
            {"Name": "Jane", "Email": "not-an-email"},
        ])

        result = service.process_upload(content)

        assert result.error == "Validation failed"
        assert [e.type for e in result.errors] == ["invalid_format"]
        assert stored_count(session_factory) == 0

    def test_unexpected_exception_becomes_server_error(self, service):
        with patch.object(ExcelValidator, "validate", side_effect=RuntimeError("disk on fire")):
            result = service.process_upload(b"anything")

        assert result.status_code == 500
        assert result.error == "Server error"
        assert "disk on fire" not in result.message
