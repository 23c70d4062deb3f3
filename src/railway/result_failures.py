"""
Named constructors for the failures adapters build by hand.

Stages that only re-label a transport failure use `claim_failure` instead;
these are for the places where an adapter itself decides something went wrong:

    ResultFailures.app_not_found("com.example.demo")
    ResultFailures.transport_error("PUT https://... failed: refused", exc)
"""

from __future__ import annotations

from railway.failure import ErrorCode
from railway.result import Result


class ResultFailures:
    @staticmethod
    def backend_error(message: str, exception: BaseException | None = None) -> Result:
        """The backend answered, but not with something a stage can use."""
        return Result.failure(ErrorCode.BACKEND_ERROR, message, exception)

    @staticmethod
    def transport_error(message: str, exception: BaseException | None = None) -> Result:
        """The request never produced a response."""
        return Result.failure(ErrorCode.TRANSPORT_ERROR, message, exception)

    @staticmethod
    def extraction_error(message: str, exception: BaseException | None = None) -> Result:
        return Result.failure(ErrorCode.EXTRACTION_ERROR, message, exception)

    @staticmethod
    def app_not_found(bundle_id: str) -> Result:
        """No candidate record matched the accepted kind and software type."""
        return Result.failure(
            ErrorCode.RESOLUTION_ERROR,
            f"app not found for bundle id {bundle_id}",
        )

    @staticmethod
    def resolution_error(message: str, exception: BaseException | None = None) -> Result:
        return Result.failure(ErrorCode.RESOLUTION_ERROR, message, exception)

    @staticmethod
    def upload_error(message: str, exception: BaseException | None = None) -> Result:
        return Result.failure(ErrorCode.UPLOAD_ERROR, message, exception)
