"""
Run a Result-returning computation with timing and outcome logging.

main.submit wraps the whole submission in one context, so every run ends with
exactly one `execution.completed` or `execution.crashed` event:

    LoggingExecutionContext(operation="BuildSubmission").execute(
        lambda: run_submission(...)
    )
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar

import structlog

from railway.failure import ErrorCode
from railway.result import Result

T = TypeVar("T")
log = structlog.get_logger()


class LoggingExecutionContext:
    """
    Times `computation` and logs its final state.

    An exception escaping the computation is logged and returned as
    Failure(UNKNOWN_ERROR); it never reaches the caller.
    """

    def __init__(self, operation: str = "unknown") -> None:
        self._operation = operation

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        bound = log.bind(operation=self._operation)
        bound.info("execution.started")
        start = time.monotonic()

        def elapsed() -> float:
            return round(time.monotonic() - start, 3)

        try:
            result = computation()
        except Exception as e:
            bound.error("execution.crashed", elapsed_seconds=elapsed(), error=str(e))
            return Result.failure(ErrorCode.UNKNOWN_ERROR, f"Execution failed: {e}", e)

        bound.info(
            "execution.completed",
            elapsed_seconds=elapsed(),
            state="SUCCESS" if result.is_success() else "FAILURE",
        )
        return result
