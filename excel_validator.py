import re
import time
import uuid
import logging
from enum import Enum
from io import BytesIO
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict

from utils.result import Result

logger = logging.getLogger(__name__)

# Required columns for office bearers Excel file
REQUIRED_COLUMNS = ["Name", "Email"]
OPTIONAL_COLUMNS = ["Phone", "Position", "Department", "Address"]

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# A parsed spreadsheet row: header -> cell text, blank cells omitted
RawRow = Dict[str, str]


class LogContext:
    """Context manager for tracking and logging operation metrics"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.request_id = kwargs.pop('request_id', str(uuid.uuid4())[:8])
        self.extra = kwargs

    def __enter__(self):
        self.start_time = time.time()
        logger.info(f"Starting {self.operation_name}", extra={"request_id": self.request_id, **self.extra})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {duration:.2f}s: {str(exc_val)}",
                extra={"request_id": self.request_id, "duration": duration, **self.extra},
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            logger.info(
                f"Completed {self.operation_name} in {duration:.2f}s",
                extra={"request_id": self.request_id, "duration": duration, **self.extra}
            )


class ErrorType(str, Enum):
    PARSING_ERROR = "parsing_error"
    EMPTY_FILE = "empty_file"
    MISSING_COLUMN = "missing_column"
    EMPTY_FIELD = "empty_field"
    INVALID_FORMAT = "invalid_format"
    DUPLICATE_EMAILS_IN_FILE = "duplicate_emails_in_file"
    DUPLICATE_EMAILS_IN_DATABASE = "duplicate_emails_in_database"
    CREATION_FAILED = "creation_failed"


class ErrorDetail(BaseModel):
    """
    A single problem found while importing a spreadsheet.

    Attributes:
        type: Kind of problem
        message: Human-readable description, prefixed with the row where relevant
        column: Missing column name (missing_column)
        field: Offending field (empty_field, invalid_format)
        row: Spreadsheet row number, counting the header row as 1
        value: Offending cell value (invalid_format)
        email: Offending email (duplicate and creation errors)
    """
    model_config = ConfigDict(use_enum_values=True)

    type: ErrorType
    message: str
    column: Optional[str] = None
    field: Optional[str] = None
    row: Optional[int] = None
    value: Optional[str] = None
    email: Optional[str] = None


class OfficeBearerRecord(BaseModel):
    """
    A validated office bearer ready to be stored.

    Attributes:
        name: Trimmed, non-empty name
        email: Trimmed, well-formed email, kept in its original case
        phone, position, department, address: Trimmed values or None when blank
    """
    name: str
    email: str
    phone: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    address: Optional[str] = None


def normalize_column_name(name: Any) -> str:
    return str(name).strip().lower() if name is not None else ""


def build_column_map(headers: Iterable[Any]) -> Dict[str, Any]:
    """
    Map normalized header names to the headers as they appear in the file.

    Args:
        headers: Column headers of a row

    Returns:
        Dict from lower-cased, trimmed header to the original header
    """
    return {normalize_column_name(header): header for header in headers}


def _cell_text(row: RawRow, column_map: Dict[str, Any], column: str) -> str:
    key = column_map.get(column.lower())
    if key is None:
        return ""
    value = row.get(key)
    return str(value).strip() if value is not None else ""


class ExcelValidator:
    """
    Turns uploaded spreadsheet bytes into office bearer records.

    Validation is exhaustive within a stage: every row is checked before
    failing, so the uploader sees all problems at once. Stages are:
    - Parse the first worksheet
    - Reject empty files
    - Verify required columns
    - Verify required fields and email format on every row
    - Normalize rows into records
    """

    @staticmethod
    def validate(file_bytes: bytes) -> Result[List[OfficeBearerRecord]]:
        """
        Validate an uploaded spreadsheet.

        Args:
            file_bytes: Raw content of the uploaded file

        Returns:
            Result[List[OfficeBearerRecord]]: Records for every row, or every error found
        """
        log_context = {
            "request_id": str(uuid.uuid4())[:8],
            "file_size": len(file_bytes) if file_bytes is not None else 0
        }
        logger.info("Validating Excel upload", extra=log_context)

        with LogContext("file parsing", **log_context):
            parse_result = ExcelValidator._parse_file(file_bytes)
        if parse_result.is_failure():
            logger.warning(f"File parsing failed: {parse_result.message}", extra=log_context)
            return parse_result

        rows = parse_result.data
        log_context["row_count"] = len(rows)

        if not rows:
            logger.warning("Excel file has no data rows", extra=log_context)
            return Result.validation_failed([
                ErrorDetail(type=ErrorType.EMPTY_FILE, message="Excel file is empty or contains no data rows")
            ])

        with LogContext("column validation", **log_context):
            column_errors = ExcelValidator._validate_columns(rows[0])
        if column_errors:
            logger.warning(
                "Required columns missing",
                extra={**log_context, "missing_columns": [e.column for e in column_errors]}
            )
            return Result.validation_failed(column_errors)

        with LogContext("row validation", **log_context):
            row_errors: List[ErrorDetail] = []
            for index, row in enumerate(rows):
                row_errors.extend(ExcelValidator._validate_row(row, index))
        if row_errors:
            logger.warning(f"Row validation found {len(row_errors)} error(s)", extra=log_context)
            return Result.validation_failed(row_errors)

        records = [ExcelValidator._to_record(row) for row in rows]
        logger.info(f"Validated {len(records)} office bearer row(s)", extra=log_context)
        return Result.ok(records)

    @staticmethod
    def parse_rows(file_bytes: bytes) -> List[RawRow]:
        """
        Read the first worksheet into header-keyed rows.

        Every cell is read as text. Blank cells are left out of the row and
        rows with no content at all are skipped.

        Raises:
            Exception: Whatever the Excel reader raises for unreadable content
        """
        df = pd.read_excel(BytesIO(file_bytes), sheet_name=0, dtype=str, keep_default_na=False)
        rows: List[RawRow] = []
        for record in df.to_dict(orient="records"):
            row = {
                str(key): value
                for key, value in record.items()
                if isinstance(value, str) and value != ""
            }
            if row:
                rows.append(row)
        return rows

    @staticmethod
    def _parse_file(file_bytes: bytes) -> Result[List[RawRow]]:
        try:
            start_time = time.time()
            rows = ExcelValidator.parse_rows(file_bytes)
            logger.debug(
                "Read Excel file",
                extra={"row_count": len(rows), "read_time_seconds": f"{time.time() - start_time:.2f}"}
            )
            return Result.ok(rows)
        except Exception as e:
            logger.error(
                "Failed to read Excel file",
                extra={"error": str(e), "error_type": type(e).__name__}
            )
            message = f"Failed to parse Excel file: {str(e)}"
            return Result.validation_failed(
                [ErrorDetail(type=ErrorType.PARSING_ERROR, message=message)],
                message=message
            )

    @staticmethod
    def _validate_columns(first_row: RawRow) -> List[ErrorDetail]:
        """
        Check that the required columns appear among the first row's headers.

        Args:
            first_row: The first data row

        Returns:
            One missing_column error per absent required column
        """
        column_map = build_column_map(first_row.keys())
        return [
            ErrorDetail(
                type=ErrorType.MISSING_COLUMN,
                column=column,
                message=f'Required column "{column}" is missing from the Excel file'
            )
            for column in REQUIRED_COLUMNS
            if column.lower() not in column_map
        ]

    @staticmethod
    def _validate_row(row: RawRow, index: int) -> List[ErrorDetail]:
        errors: List[ErrorDetail] = []
        row_number = index + 2  # header row plus 1-based numbering
        column_map = build_column_map(row.keys())

        if not _cell_text(row, column_map, "Name"):
            errors.append(ErrorDetail(
                type=ErrorType.EMPTY_FIELD,
                field="Name",
                row=row_number,
                message=f"Row {row_number}: Name field is required and cannot be empty"
            ))

        email = _cell_text(row, column_map, "Email")
        if not email:
            errors.append(ErrorDetail(
                type=ErrorType.EMPTY_FIELD,
                field="Email",
                row=row_number,
                message=f"Row {row_number}: Email field is required and cannot be empty"
            ))
        elif not EMAIL_PATTERN.match(email):
            errors.append(ErrorDetail(
                type=ErrorType.INVALID_FORMAT,
                field="Email",
                row=row_number,
                value=email,
                message=f'Row {row_number}: Invalid email format: "{email}"'
            ))

        return errors

    @staticmethod
    def _to_record(row: RawRow) -> OfficeBearerRecord:
        column_map = build_column_map(row.keys())
        optional = {
            column.lower(): _cell_text(row, column_map, column) or None
            for column in OPTIONAL_COLUMNS
        }
        return OfficeBearerRecord(
            name=_cell_text(row, column_map, "Name"),
            email=_cell_text(row, column_map, "Email"),
            **optional
        )
