"""
HTTP adapter — the single place where requests actually leave the process.

Adapter layer — implements the HttpTransport port with httpx for sync HTTP calls.

Every request is one blocking round trip. There is no retry:
a failed request fails the stage that issued it, and the stage fails the submission.

Outcomes:
  - 2xx               → Result.success(HttpResponse)
  - non-2xx           → Result.failure(BACKEND_ERROR) wrapping BackendStatusError;
                        the body is logged (pretty-printed when it is JSON)
  - connection errors → Result.failure(TRANSPORT_ERROR)
  - unusable request  → Result.failure(TRANSPORT_ERROR) for an invalid URL,
                        an undecodable body or too many redirects
"""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import structlog
from railway import ErrorCode, FailureDescription, ResultFailures
from railway.result import Result

from asc_uploader.domain.models import HttpResponse

log = structlog.get_logger()


class BackendStatusError(Exception):
    """A non-success HTTP status together with the response body."""

    def __init__(self, method: str, url: str, status: int, body: bytes) -> None:
        super().__init__(f"{method} {url} returned HTTP {status}")
        self.method = method
        self.url = url
        self.status = status
        self.body = body

    def pretty_body(self) -> str:
        """Indented JSON when the body parses, otherwise the raw text."""
        try:
            return json.dumps(json.loads(self.body), indent=2, sort_keys=True)
        except ValueError:
            return self.body.decode("utf-8", errors="replace")


def bearer_headers(token_value: str) -> dict[str, str]:
    """Authorization, Accept and Content-Type for a JSON request."""
    return {
        "Authorization": f"Bearer {token_value}",
        "Accept": "application/json",
        "Content-Type": "application/json",
    }


def claim_failure(
    code: ErrorCode, prefix: str
) -> Callable[[FailureDescription], FailureDescription]:
    """
    Build a map_failure callback that reclassifies BACKEND_ERROR as `code`.

    Transport-level failures keep TRANSPORT_ERROR so the caller can still tell
    "the network broke" apart from "the backend said no".
    """

    def _claim(error: FailureDescription) -> FailureDescription:
        if error.code is ErrorCode.TRANSPORT_ERROR:
            return error.with_code(ErrorCode.TRANSPORT_ERROR, prefix)
        return error.with_code(code, prefix)

    return _claim


class HttpxTransport:
    """
    Execute requests with httpx.

    Implements the HttpTransport port. The timeout is the only bound on how long
    a call may block.
    """

    def __init__(self, timeout: int = 60, user_agent: str = "asc-uploader") -> None:
        self._timeout = timeout
        self._user_agent = user_agent

    def execute(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Result[HttpResponse]:
        """Send one request and classify the outcome."""
        log.debug("http.request", method=method, url=url, body_bytes=len(body or b""))
        request_headers = {"User-Agent": self._user_agent, **(headers or {})}
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.request(method, url, headers=request_headers, content=body)
        except httpx.TransportError as e:
            log.error("http.transport_failed", method=method, url=url, error=str(e))
            return ResultFailures.transport_error(f"{method} {url} failed: {e}", e)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.error("http.request_rejected", method=method, url=url, error=str(e))
            return ResultFailures.transport_error(f"{method} {url} could not be sent: {e}", e)

        if response.is_success:
            return Result.success(HttpResponse(status=response.status_code, body=response.content))

        error = BackendStatusError(method, url, response.status_code, response.content)
        log.error(
            "http.error_response",
            method=method,
            url=url,
            status=response.status_code,
            body=error.pretty_body(),
        )
        return ResultFailures.backend_error(str(error), error)
