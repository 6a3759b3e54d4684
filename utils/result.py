from typing import Generic, TypeVar, Optional, Callable, Any, Dict, List, Union
from http import HTTPStatus

T = TypeVar('T')  # Generic type variable
U = TypeVar('U')  # Additional type variable for chained operations

class Result(Generic[T]):
    """
    A generic result class that represents the outcome of an import stage.

    A stage either succeeds with data or fails with a short error label, a
    human-readable message and, for validation-style failures, a list of
    structured error details pinpointing the offending rows.

    Attributes:
        success (bool): Indicates if the operation was successful
        data (Optional[T]): The result data (only present when success is True)
        error (Optional[str]): Short error label (only present when success is False)
        message (Optional[str]): Human-readable summary of the outcome
        errors (List[Any]): Structured error details, empty on success
        status_code (HTTPStatus): HTTP status code (default: 200 for success, 400 for failure)
    """
    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        status_code: Optional[Union[int, HTTPStatus]] = None,
        message: Optional[str] = None,
        errors: Optional[List[Any]] = None
    ):
        """
        Initialize a Result object.

        Args:
            success (bool): Whether the operation succeeded
            data (Optional[T], optional): The data returned by a successful operation. Defaults to None.
            error (Optional[str], optional): Error label for a failed operation. Defaults to None.
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code.
                Defaults to 200 for success, 400 for failure.
            message (Optional[str], optional): Human-readable summary. Defaults to None.
            errors (Optional[List[Any]], optional): Structured error details. Defaults to an empty list.
        """
        self.success = success
        self.data = data
        self.error = error
        self.message = message
        self.errors = list(errors) if errors else []

        # Set default status code based on success/failure if not provided
        if status_code is None:
            self.status_code = HTTPStatus.OK if success else HTTPStatus.BAD_REQUEST
        else:
            if isinstance(status_code, int):
                self.status_code = HTTPStatus(status_code)
            else:
                self.status_code = status_code

    @classmethod
    def ok(
        cls,
        data: T,
        status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.OK,
        message: Optional[str] = None
    ) -> "Result[T]":
        """
        Create a successful Result with the provided data.

        Args:
            data (T): The data to be wrapped in the Result
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code. Defaults to 200 OK.
            message (Optional[str], optional): Summary of what was done.

        Returns:
            Result[T]: A successful Result containing the provided data
        """
        return cls(success=True, data=data, status_code=status_code, message=message)

    @classmethod
    def fail(
        cls,
        error: str,
        status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.BAD_REQUEST,
        message: Optional[str] = None,
        errors: Optional[List[Any]] = None
    ) -> "Result[T]":
        """
        Create a failed Result with the provided error label.

        Args:
            error (str): Short label describing the failure
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code. Defaults to 400 BAD_REQUEST.
            message (Optional[str], optional): Human-readable explanation.
            errors (Optional[List[Any]], optional): Structured error details.

        Returns:
            Result[T]: A failed Result containing the error
        """
        return cls(success=False, error=error, status_code=status_code, message=message, errors=errors)

    @classmethod
    def validation_failed(
        cls,
        errors: List[Any],
        error: str = "Validation failed",
        message: str = "Excel file validation failed"
    ) -> "Result[T]":
        """
        Create a failed Result for rejected input with BAD_REQUEST status code.

        Args:
            errors (List[Any]): Every problem found in the batch
            error (str, optional): Error label. Defaults to "Validation failed".
            message (str, optional): Human-readable explanation.

        Returns:
            Result[T]: A failed Result with 400 status code
        """
        return cls(success=False, error=error, status_code=HTTPStatus.BAD_REQUEST, message=message, errors=errors)

    @classmethod
    def server_error(
        cls,
        message: str = "An error occurred while processing the Excel file",
        error: str = "Server error",
        errors: Optional[List[Any]] = None
    ) -> "Result[T]":
        """
        Create a failed Result with INTERNAL_SERVER_ERROR status code.

        Args:
            message (str, optional): Human-readable explanation.
            error (str, optional): Error label. Defaults to "Server error".
            errors (Optional[List[Any]], optional): Structured error details.

        Returns:
            Result[T]: A failed Result with 500 status code
        """
        return cls(
            success=False,
            error=error,
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            message=message,
            errors=errors
        )

    def is_success(self) -> bool:
        """
        Check if the Result represents a successful operation.

        Returns:
            bool: True if the Result is successful, False otherwise
        """
        return self.success

    def is_failure(self) -> bool:
        """
        Check if the Result represents a failed operation.

        Returns:
            bool: True if the Result is a failure, False otherwise
        """
        return not self.success

    def unwrap(self, default: Optional[T] = None) -> Optional[T]:
        """
        Safely access the data value with an optional default value.

        Args:
            default (Optional[T], optional): Value to return if the Result is a failure. Defaults to None.

        Returns:
            Optional[T]: The data value if successful, otherwise the default value
        """
        return self.data if self.is_success() else default

    def and_then(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]":
        """
        Chain operations that return Result objects.

        If this Result is a failure, it short-circuits and returns itself.
        If it's a success, it applies the function to the data and returns the new Result.

        Args:
            fn (Callable[[T], Result[U]]): Function that takes the success data and returns a new Result

        Returns:
            Result[U]: Either the original failure or the new Result from the function
        """
        if not self.is_success():
            return self  # type: ignore
        return fn(self.data)  # type: ignore

    def on_failure(self, fn: Callable[["Result[T]"], None]) -> "Result[T]":
        """
        Execute a side effect function if the Result is a failure.

        Args:
            fn (Callable[[Result[T]], None]): Function to execute with the failed Result

        Returns:
            Result[T]: The original Result, unchanged
        """
        if not self.is_success():
            fn(self)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert a failed Result to the error body returned by the API.

        The `errors` key is only present when there are structured details.

        Returns:
            Dict[str, Any]: Dictionary containing success, error, message and errors
        """
        response: Dict[str, Any] = {"success": self.success}
        if self.is_success():
            if self.message is not None:
                response["message"] = self.message
            response["data"] = self.data
            return response

        response["error"] = self.error
        response["message"] = self.message
        if self.errors:
            response["errors"] = [
                item.model_dump(exclude_none=True) if hasattr(item, "model_dump") else item
                for item in self.errors
            ]
        return response

    def __str__(self) -> str:
        """
        Get a string representation of the Result.

        Returns:
            str: String representation of the Result
        """
        status_info = f"{self.status_code.value} {self.status_code.phrase}"
        if self.is_success():
            data_repr = str(self.data)
            # Truncate long data representations
            if len(data_repr) > 100:
                data_repr = f"{data_repr[:97]}..."
            return f"Success ({status_info}): {data_repr}"
        return f"Failure ({status_info}): {self.error} ({len(self.errors)} error(s))"

    def __repr__(self) -> str:
        """
        Get a detailed string representation of the Result.

        Returns:
            str: Detailed string representation of the Result
        """
        return (
            f"Result(success={self.success}, status_code={self.status_code!r}, "
            f"data={self.data!r}, error={self.error!r}, errors={self.errors!r})"
        )
