"""
Persistence for validated office bearer batches.

A batch is stored all-or-nothing: duplicates inside the file or against
existing rows reject the whole batch, and any insert failure rolls back every
row written so far.
"""
import logging
from http import HTTPStatus
from typing import List, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import transaction_scope
from excel_validator import ErrorDetail, ErrorType, ExcelValidator, LogContext, OfficeBearerRecord
from models import OfficeBearer, StoredOfficeBearer
from utils.result import Result

logger = logging.getLogger(__name__)


class RecordCreationError(Exception):
    """Raised when a single office bearer cannot be inserted."""

    def __init__(self, email: str, reason: str):
        super().__init__(f"Failed to create office bearer {email}: {reason}")
        self.email = email
        self.reason = reason


class OfficeBearerRepository:
    """Storage access for office bearers over a SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_emails(self, emails: Sequence[str]) -> List[OfficeBearer]:
        """Return stored rows whose email matches any of `emails`, ignoring case."""
        lowered = sorted({email.lower() for email in emails})
        if not lowered:
            return []
        stmt = select(OfficeBearer).where(func.lower(OfficeBearer.email).in_(lowered))
        return list(self.session.scalars(stmt))

    def create_all(self, records: Sequence[OfficeBearerRecord]) -> List[OfficeBearer]:
        """
        Insert records into the current transaction, stopping at the first failure.

        Raises:
            RecordCreationError: naming the email whose insert failed
        """
        created = []
        for record in records:
            bearer = OfficeBearer(**record.model_dump())
            try:
                self.session.add(bearer)
                self.session.flush()
            except SQLAlchemyError as e:
                raise RecordCreationError(record.email, str(getattr(e, "orig", None) or e)) from e
            created.append(bearer)
        return created

    def find_all(self) -> List[OfficeBearer]:
        stmt = select(OfficeBearer).order_by(OfficeBearer.created_at.desc(), OfficeBearer.id.desc())
        return list(self.session.scalars(stmt))


class OfficeBearerService:
    """
    Coordinates duplicate checks and the atomic insert of a validated batch.

    Methods:
    - commit: Store a batch of validated records
    - list_all: Every stored office bearer, newest first
    - process_upload: Validate spreadsheet bytes and store the result
    """

    def __init__(self, session: Session):
        self.session = session
        self.repository = OfficeBearerRepository(session)

    def commit(self, records: List[OfficeBearerRecord]) -> Result[List[StoredOfficeBearer]]:
        """
        Store every record or none of them.

        Args:
            records: Validated records in spreadsheet order

        Returns:
            Result[List[StoredOfficeBearer]]: The stored rows, or the reasons the batch was rejected
        """
        log_context = {"record_count": len(records)}

        file_duplicates = self._find_duplicates_in_file(records)
        if file_duplicates:
            logger.warning(f"Found {len(file_duplicates)} duplicate email(s) in file", extra=log_context)
            return Result.validation_failed(
                file_duplicates,
                error="Duplicate emails in file",
                message="Duplicate email addresses found in the Excel file"
            )

        existing = self.repository.find_by_emails([record.email for record in records])
        existing_emails = {bearer.email.lower() for bearer in existing}
        conflicts = [
            ErrorDetail(
                type=ErrorType.DUPLICATE_EMAILS_IN_DATABASE,
                email=record.email,
                message=f'Email "{record.email}" already exists in the database'
            )
            for record in records
            if record.email.lower() in existing_emails
        ]
        if conflicts:
            logger.warning(f"Found {len(conflicts)} email(s) already stored", extra=log_context)
            return Result.validation_failed(
                conflicts,
                error="Duplicate emails in database",
                message="Some email addresses already exist in the database"
            )

        try:
            with LogContext("office bearer insert", **log_context):
                with transaction_scope(self.session):
                    created = self.repository.create_all(records)
        except RecordCreationError as e:
            return Result.server_error(
                message="Some office bearers could not be created",
                error="Creation failed",
                errors=[ErrorDetail(
                    type=ErrorType.CREATION_FAILED,
                    email=e.email,
                    message=f"Failed to create office bearer: {e.reason}"
                )]
            )

        stored = [StoredOfficeBearer.model_validate(bearer) for bearer in created]
        return Result.ok(
            stored,
            status_code=HTTPStatus.CREATED,
            message=f"Successfully created {len(stored)} office bearer(s)"
        )

    def list_all(self) -> List[StoredOfficeBearer]:
        return [StoredOfficeBearer.model_validate(bearer) for bearer in self.repository.find_all()]

    def process_upload(self, file_bytes: bytes) -> Result[List[StoredOfficeBearer]]:
        """
        Validate an uploaded spreadsheet and store its rows as one batch.

        Unexpected exceptions are logged and reported as a generic server error.
        """
        try:
            return ExcelValidator.validate(file_bytes).and_then(self.commit)
        except Exception as e:
            logger.exception("Unexpected error while importing office bearers", extra={"error": str(e)})
            return Result.server_error()

    @staticmethod
    def _find_duplicates_in_file(records: List[OfficeBearerRecord]) -> List[ErrorDetail]:
        seen = set()
        duplicates = []
        for index, record in enumerate(records):
            email = record.email.lower()
            if email in seen:
                row_number = index + 2
                duplicates.append(ErrorDetail(
                    type=ErrorType.DUPLICATE_EMAILS_IN_FILE,
                    row=row_number,
                    email=record.email,
                    message=f'Row {row_number}: Duplicate email "{record.email}" found in Excel file'
                ))
            else:
                seen.add(email)
        return duplicates
