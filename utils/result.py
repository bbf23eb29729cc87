from typing import Generic, TypeVar, Optional, Callable, Union
from http import HTTPStatus

T = TypeVar('T')  # Payload type
U = TypeVar('U')  # Payload type after chaining

class Result(Generic[T]):
    """
    Outcome of a spreadsheet processing step.

    A Result is either a success carrying data (e.g. the parsed rows) or a
    failure carrying the user-facing error message. The status code travels
    with it so the route layer can answer without re-classifying the error.

    Attributes:
        success (bool): Whether the step succeeded
        data (Optional[T]): Payload of a successful step
        error (Optional[str]): User-facing message of a failed step
        status_code (HTTPStatus): 200 for success, 400 for failure unless given
    """
    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        status_code: Optional[Union[int, HTTPStatus]] = None
    ):
        self.success = success
        self.data = data
        self.error = error

        if status_code is None:
            self.status_code = HTTPStatus.OK if success else HTTPStatus.BAD_REQUEST
        else:
            self.status_code = HTTPStatus(status_code)

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        """
        Create a successful Result.

        Args:
            data (T): The payload

        Returns:
            Result[T]: A 200 OK Result wrapping data
        """
        return cls(success=True, data=data, status_code=HTTPStatus.OK)

    @classmethod
    def fail(cls, error: str, status_code: Union[int, HTTPStatus] = HTTPStatus.BAD_REQUEST) -> "Result[T]":
        """
        Create a failed Result.

        Args:
            error (str): Message shown to the user
            status_code (Union[int, HTTPStatus], optional): Defaults to 400 BAD_REQUEST.

        Returns:
            Result[T]: A failed Result
        """
        return cls(success=False, error=error, status_code=status_code)

    @classmethod
    def empty_file(cls, error: str) -> "Result[T]":
        """Failed Result for a file with no content or no data rows (400)."""
        return cls(success=False, error=error, status_code=HTTPStatus.BAD_REQUEST)

    @classmethod
    def missing_columns(cls, error: str) -> "Result[T]":
        """Failed Result for a sheet lacking required columns (422)."""
        return cls(success=False, error=error, status_code=HTTPStatus.UNPROCESSABLE_ENTITY)

    @classmethod
    def unreadable(cls, error: str) -> "Result[T]":
        """Failed Result for an upload whose bytes could not be read (500)."""
        return cls(success=False, error=error, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)

    def is_success(self) -> bool:
        return self.success

    def is_failure(self) -> bool:
        return not self.success

    def unwrap(self, default: Optional[T] = None) -> Optional[T]:
        """
        Return the payload, or default when the Result is a failure.
        """
        return self.data if self.is_success() else default

    def and_then(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]":
        """
        Chain a step that itself returns a Result.

        A failure short-circuits: fn is not called and the failure is passed
        on with its message and status code.

        Args:
            fn (Callable[[T], Result[U]]): Next step, given this step's payload

        Returns:
            Result[U]: The failure unchanged, or whatever fn returns
        """
        if not self.is_success():
            return Result.fail(self.error or "", status_code=self.status_code)  # type: ignore
        return fn(self.data)  # type: ignore

    def __str__(self) -> str:
        status_info = f"{self.status_code.value} {self.status_code.phrase}"
        if self.is_success():
            data_repr = str(self.data)
            # Row lists get long
            if len(data_repr) > 100:
                data_repr = f"{data_repr[:97]}..."
            return f"Success ({status_info}): {data_repr}"
        return f"Failure ({status_info}): {self.error}"

    def __repr__(self) -> str:
        return f"Result(success={self.success}, status_code={self.status_code!r}, data={self.data!r}, error={self.error!r})"
