"""
Result type for the submission pipeline.

Every adapter call returns a Result: Success carries the value, Failure carries
a FailureDescription. Chaining with flat_map stops at the first Failure, so a
submission either reaches the end of the chain or reports the stage that broke:

    extract ─► resolve ─► register ─► upload ─► Success(receipt)
       │          │           │          │
       └──────────┴───────────┴──────────┴────► Failure(code, message)

Both tracks support structural pattern matching:

    match result:
        case Success(receipt): ...
        case Failure(error): ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from railway.failure import ErrorCode, FailureDescription

T = TypeVar("T")
U = TypeVar("U")


class Result(Generic[T]):
    """
    Common interface of Success and Failure.

    Subclasses implement the track-specific behaviour; this class holds the
    constructors and the operators that are defined in terms of the others.
    """

    def is_success(self) -> bool:
        return isinstance(self, Success)

    def is_failure(self) -> bool:
        return isinstance(self, Failure)

    def value(self) -> T:
        """The success value; ValueError on a Failure."""
        raise NotImplementedError

    def error(self) -> FailureDescription:
        """The failure description; ValueError on a Success."""
        raise NotImplementedError

    def map(self, mapper: Callable[[T], U]) -> Result[U]:
        raise NotImplementedError

    def flat_map(self, mapper: Callable[[T], Result[U]]) -> Result[U]:
        raise NotImplementedError

    def map_failure(
        self, mapper: Callable[[FailureDescription], FailureDescription]
    ) -> Result[T]:
        """Rewrite the failure; a Success passes through. See http_transport.claim_failure."""
        raise NotImplementedError

    def peek(self, action: Callable[[T], Any]) -> Result[T]:
        """Run `action` on the success value (usually a log line) and return self."""
        raise NotImplementedError

    def ensure(
        self,
        predicate: Callable[[T], bool],
        error: FailureDescription | ErrorCode,
        message: str = "",
    ) -> Result[T]:
        """
        Turn a Success whose value fails `predicate` into a Failure.

            Result.success(operations).ensure(
                lambda ops: len(ops) > 0,
                ErrorCode.UPLOAD_ERROR, "Backend assigned no upload operations",
            )
        """
        description = (
            FailureDescription(code=error, message=message)
            if isinstance(error, ErrorCode)
            else error
        )
        return self.flat_map(
            lambda v: self if predicate(v) else Result.failure_from(description)
        )

    @staticmethod
    def success(value: T) -> Result[T]:
        return Success(value)

    @staticmethod
    def failure_from(error: FailureDescription) -> Result[T]:
        return Failure(error)

    @staticmethod
    def failure(
        code: ErrorCode,
        message: str,
        exception: BaseException | None = None,
    ) -> Result[T]:
        return Failure(FailureDescription(code=code, message=message, exception=exception))

    @staticmethod
    def from_computation(
        computation: Callable[[], T],
        error_code: ErrorCode,
        error_message: str,
    ) -> Result[T]:
        """
        Run `computation`; an exception becomes Failure(error_code, error_message).

        Used wherever a parser or a third-party call may raise:

            Result.from_computation(
                lambda: document["data"]["id"],
                ErrorCode.BACKEND_ERROR,
                "Build creation response has no data.id",
            )
        """
        try:
            return Success(computation())
        except Exception as e:
            return Result.failure(error_code, error_message, e)


@dataclass(frozen=True, slots=True, eq=False)
class Success(Result[T]):
    """Success track. None is not a valid value."""

    _value: T

    def __init__(self, value: T) -> None:
        if value is None:
            raise TypeError("Success value must not be None")
        object.__setattr__(self, "_value", value)

    def value(self) -> T:
        return self._value

    def error(self) -> FailureDescription:
        raise ValueError(f"Cannot get error from a Success: {self._value}")

    def map(self, mapper: Callable[[T], U]) -> Result[U]:
        return Success(mapper(self._value))

    def flat_map(self, mapper: Callable[[T], Result[U]]) -> Result[U]:
        return mapper(self._value)

    def map_failure(
        self, mapper: Callable[[FailureDescription], FailureDescription]
    ) -> Result[T]:
        return self

    def peek(self, action: Callable[[T], Any]) -> Result[T]:
        action(self._value)
        return self

    def __repr__(self) -> str:
        return f"Success({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Success):
            return self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Success", self._value))


Success.__match_args__ = ("_value",)


@dataclass(frozen=True, slots=True, eq=False)
class Failure(Result[T]):
    """Failure track. Two failures are equal when code and message match."""

    _error: FailureDescription

    def __init__(self, error: FailureDescription) -> None:
        if error is None:
            raise TypeError("Failure error must not be None")
        object.__setattr__(self, "_error", error)

    def value(self) -> T:
        raise ValueError(f"Cannot get value from a Failure: {self._error.message}")

    def error(self) -> FailureDescription:
        return self._error

    def map(self, mapper: Callable[[T], U]) -> Result[U]:
        return Failure(self._error)

    def flat_map(self, mapper: Callable[[T], Result[U]]) -> Result[U]:
        return Failure(self._error)

    def map_failure(
        self, mapper: Callable[[FailureDescription], FailureDescription]
    ) -> Result[T]:
        return Failure(mapper(self._error))

    def peek(self, action: Callable[[T], Any]) -> Result[T]:
        return self

    def __repr__(self) -> str:
        return f"Failure({self._error.code.value}: {self._error.message!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Failure):
            return (self._error.code, self._error.message) == (
                other._error.code,
                other._error.message,
            )
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Failure", self._error.code, self._error.message))


Failure.__match_args__ = ("_error",)
