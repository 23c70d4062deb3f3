"""
pytest helpers for Result values.

Each helper fails with a message that shows the other track's contents, so a
broken test names the error code and message the adapter actually produced:

    failure = ResultAssertions.assert_failure(result, ErrorCode.EXTRACTION_ERROR)
    ResultAssertions.assert_failure_message_contains(result, "CFBundleVersion")
"""

from __future__ import annotations

from typing import TypeVar

from railway.failure import ErrorCode, FailureDescription
from railway.result import Failure, Result, Success

T = TypeVar("T")


def _suffix(note: str) -> str:
    return f" ({note})" if note else ""


class ResultAssertions:
    @staticmethod
    def assert_success(result: Result[T], message: str = "") -> T:
        """Return the success value, or fail showing the error."""
        match result:
            case Success(value):
                return value
            case Failure(error):
                raise AssertionError(
                    f"Expected Success, got {error.code.value}: {error.message!r}"
                    + _suffix(message)
                )
        raise AssertionError(f"Not a Result: {result!r}")

    @staticmethod
    def assert_failure(
        result: Result[T],
        expected_code: ErrorCode | None = None,
        message: str = "",
    ) -> FailureDescription:
        """Return the failure description, optionally requiring its code."""
        match result:
            case Success(value):
                raise AssertionError(f"Expected Failure, got Success({value!r})" + _suffix(message))
            case Failure(error):
                if expected_code is not None and error.code is not expected_code:
                    raise AssertionError(
                        f"Expected error code {expected_code.value}, got "
                        f"{error.code.value}: {error.message!r}" + _suffix(message)
                    )
                return error
        raise AssertionError(f"Not a Result: {result!r}")

    @staticmethod
    def assert_failure_message_contains(result: Result[T], substring: str) -> None:
        error = ResultAssertions.assert_failure(result)
        assert substring.lower() in error.message.lower(), (
            f"{substring!r} not found in failure message {error.message!r}"
        )

    @staticmethod
    def assert_failure_caused_by(
        result: Result[T],
        exception_type: type[BaseException],
    ) -> BaseException:
        """Return the wrapped exception after checking its type."""
        error = ResultAssertions.assert_failure(result)
        assert isinstance(error.exception, exception_type), (
            f"Expected a {exception_type.__name__} cause, got "
            f"{type(error.exception).__name__}: {error.message!r}"
        )
        return error.exception
