"""
Result-based error handling for the build-submission client.

Adapters return Result values instead of raising; the pipeline chains them with
flat_map and stops at the first Failure.

    from railway import ErrorCode, Result

    def require_build_id(document: dict) -> Result[str]:
        build_id = document.get("data", {}).get("id")
        if not build_id:
            return Result.failure(ErrorCode.REGISTRATION_ERROR, "Response carries no build id")
        return Result.success(build_id)
"""

from railway.result import Result, Success, Failure
from railway.failure import ErrorCode, FailureDescription
from railway.execution import LoggingExecutionContext
from railway.result_failures import ResultFailures
from railway.assertions import ResultAssertions

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "LoggingExecutionContext",
    "ResultFailures",
    "ResultAssertions",
]

__version__ = "1.0.0"
