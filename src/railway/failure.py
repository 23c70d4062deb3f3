"""
Failure description — structured error information for the failure track.

Every stage of a build submission reports its problems as a FailureDescription:
an ErrorCode naming which stage gave up, a human-readable message, the original
exception (kept for diagnostics, never shown in repr) and a UTC timestamp.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """
    Error codes for the failure track, one per failure surface of a submission.

    All of them are terminal: nothing in the pipeline retries on any code.
    """

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Malformed key material, missing or invalid settings."""

    EXTRACTION_ERROR = "EXTRACTION_ERROR"
    """Package archive or embedded property list unreadable or incomplete."""

    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    """Token or legacy session negotiation rejected."""

    RESOLUTION_ERROR = "RESOLUTION_ERROR"
    """No (or no unambiguous) application matches the bundle identifier."""

    REGISTRATION_ERROR = "REGISTRATION_ERROR"
    """Build record creation rejected."""

    UPLOAD_ERROR = "UPLOAD_ERROR"
    """Delivery-file creation, chunk transfer or finalize rejected."""

    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    """Connection-level failure: DNS, refused connection, timeout, broken stream."""

    BACKEND_ERROR = "BACKEND_ERROR"
    """Raw non-success HTTP status, before a stage claims it as its own."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    """Unexpected/unclassified failures."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, optional exception, and timestamp.

    >>> desc = FailureDescription(ErrorCode.RESOLUTION_ERROR, "app not found")
    >>> desc.code
    <ErrorCode.RESOLUTION_ERROR: 'RESOLUTION_ERROR'>
    >>> desc.message
    'app not found'
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def with_code(self, code: ErrorCode, prefix: str = "") -> FailureDescription:
        """Return a copy reclassified under `code`, optionally prefixing the message."""
        message = f"{prefix}: {self.message}" if prefix else self.message
        return FailureDescription(
            code=code,
            message=message,
            exception=self.exception,
            timestamp=self.timestamp,
        )

    def full_stack_trace(self) -> str:
        """Message followed by the formatted exception chain, if any."""
        if self.exception is None:
            return self.message
        tb = "".join(
            traceback.format_exception(
                type(self.exception), self.exception, self.exception.__traceback__
            )
        )
        return f"{self.message}\n{tb}"
