"""
Legacy JSON-RPC adapter — session negotiation and bundle-id lookup.

Adapter layer — implements the SessionNegotiator and IdentityResolver ports
on top of the HttpTransport port.

Wire format:
  request  {id, jsonrpc: "2.0", method, params: {...client identity, ...call params}}
  response {result: <payload>} or {error: {message, ...}}

Authentication flow:
  1. authenticateForSession (bearer token)       → {SessionID, SharedSecret}
  2. lookupSoftwareForBundleId (bearer token, plus x-session-id and
     x-session-digest when a session is active)  → {attributes: [...]}

The request body is serialized once with canonical_json; those exact bytes are
digested and sent.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import structlog
from railway import ErrorCode, ResultFailures
from railway.result import Result

from asc_uploader.adapters.http_transport import bearer_headers, claim_failure
from asc_uploader.domain.canonical import canonical_json, session_digest
from asc_uploader.domain.models import AppIdentity, BearerToken, Session
from asc_uploader.domain.ports import HttpTransport, SessionNegotiator, TokenProvider

log = structlog.get_logger()

SESSION_SERVICE = "MZITunesProducerService"
SOFTWARE_SERVICE = "MZITunesSoftwareService"


class MatchPolicy(StrEnum):
    """What to do when several candidates are iOS apps."""

    FIRST = "first"
    UNIQUE = "unique"


@dataclass(frozen=True, slots=True)
class ClientIdentity:
    """Fixed identity block sent in every legacy call and in x-tx-client-* headers."""

    application: str = "asc-uploader"
    application_bundle_id: str = "io.github.asc-uploader"
    version: str = "0.1.0"
    os_identifier: str = "Linux"
    framework_versions: dict[str, str] = field(default_factory=dict)

    def params(self) -> dict[str, Any]:
        return {
            "Application": self.application,
            "ApplicationBundleId": self.application_bundle_id,
            "FrameworkVersions": dict(self.framework_versions),
            "OSIdentifier": self.os_identifier,
            "Version": self.version,
        }

    def headers(self) -> dict[str, str]:
        return {
            "x-tx-client-name": self.application,
            "x-tx-client-version": self.version,
        }


class JsonRpcEndpoint:
    """Builds envelopes and performs calls against one JSON-RPC base URL."""

    def __init__(self, transport: HttpTransport, base_url: str, identity: ClientIdentity) -> None:
        self._transport = transport
        self._base_url = base_url.rstrip("/")
        self._identity = identity
        self._ids = itertools.count()

    def encode(self, method: str, params: dict[str, Any]) -> bytes:
        """Serialize the envelope once; the returned bytes are what gets signed and sent."""
        return canonical_json(
            {
                "id": str(next(self._ids)),
                "jsonrpc": "2.0",
                "method": method,
                "params": {**self._identity.params(), **params},
            }
        )

    def call(
        self,
        service: str,
        body: bytes,
        token: BearerToken,
        extra_headers: dict[str, str] | None = None,
    ) -> Result[Any]:
        """POST an encoded envelope; unwrap `result` or surface the RPC `error`."""
        headers = {
            **bearer_headers(token.value),
            **self._identity.headers(),
            **(extra_headers or {}),
        }
        return (
            self._transport.execute("POST", f"{self._base_url}/{service}", headers, body)
            .flat_map(
                lambda response: Result.from_computation(
                    response.json,
                    ErrorCode.BACKEND_ERROR,
                    f"{service} returned a body that is not JSON",
                )
            )
            .flat_map(_unwrap_envelope)
        )


def _unwrap_envelope(document: Any) -> Result[Any]:
    if isinstance(document, dict) and document.get("error") is not None:
        error = document["error"]
        message = error.get("message", error) if isinstance(error, dict) else error
        return ResultFailures.backend_error(f"RPC error: {message}")
    if not isinstance(document, dict) or document.get("result") is None:
        return ResultFailures.backend_error("RPC response has no result")
    return Result.success(document["result"])


# ─────────────────────── Session negotiation ───────────────────────


class JsonRpcSessionNegotiator:
    """
    Exchange a bearer token for a legacy session.

    Implements the SessionNegotiator port. Any non-success ends negotiation
    with AUTHENTICATION_ERROR (or TRANSPORT_ERROR); there is no retry.
    """

    def __init__(self, endpoint: JsonRpcEndpoint) -> None:
        self._endpoint = endpoint

    def negotiate(self, token: BearerToken) -> Result[Session]:
        body = self._endpoint.encode("authenticateForSession", {})
        return (
            self._endpoint.call(SESSION_SERVICE, body, token)
            .flat_map(
                lambda result: Result.from_computation(
                    lambda: Session(
                        session_id=str(result["SessionID"]),
                        shared_secret=str(result["SharedSecret"]),
                    ),
                    ErrorCode.BACKEND_ERROR,
                    "authenticateForSession result lacks SessionID or SharedSecret",
                )
            )
            .map_failure(claim_failure(ErrorCode.AUTHENTICATION_ERROR, "Session negotiation failed"))
            .peek(lambda session: log.info("session.negotiated", session_id=session.session_id))
        )

    def sign(self, session: Session, body: bytes) -> str:
        return session_digest(session, body)


# ─────────────────────── Identity resolution ───────────────────────


def _parse_candidates(bundle_id: str, result: Any) -> list[AppIdentity]:
    return [
        AppIdentity(
            bundle_id=bundle_id,
            apple_id=str(attribute["AppleID"]),
            kind=attribute["Type"],
            software_type=attribute["SoftwareTypeEnum"],
        )
        for attribute in result["attributes"]
    ]


class JsonRpcIdentityResolver:
    """
    Map a bundle identifier to the backend's numeric app id.

    Implements the IdentityResolver port. Only candidates whose Type is
    "iOS App" and SoftwareTypeEnum is "Purple" are accepted; no other platform
    is tried as a fallback. Session headers are signed by the negotiator that
    issued the session.
    """

    def __init__(
        self,
        endpoint: JsonRpcEndpoint,
        token_provider: TokenProvider,
        negotiator: SessionNegotiator,
        match_policy: MatchPolicy = MatchPolicy.FIRST,
    ) -> None:
        self._endpoint = endpoint
        self._token_provider = token_provider
        self._negotiator = negotiator
        self._match_policy = match_policy

    def resolve(self, bundle_id: str, session: Session | None = None) -> Result[AppIdentity]:
        """
        Look up `bundle_id` and select the accepted candidate.

        Returns Result.failure(RESOLUTION_ERROR, "app not found ...") when nothing matches.
        """
        body = self._endpoint.encode("lookupSoftwareForBundleId", {"BundleId": bundle_id})
        extra_headers: dict[str, str] = {}
        if session is not None:
            extra_headers = {
                "x-session-id": session.session_id,
                "x-session-digest": self._negotiator.sign(session, body),
            }
        return (
            self._token_provider.get_token()
            .flat_map(
                lambda token: self._endpoint.call(SOFTWARE_SERVICE, body, token, extra_headers)
                .flat_map(
                    lambda result: Result.from_computation(
                        lambda: _parse_candidates(bundle_id, result),
                        ErrorCode.BACKEND_ERROR,
                        "lookupSoftwareForBundleId result has malformed attributes",
                    )
                )
                .map_failure(claim_failure(ErrorCode.RESOLUTION_ERROR, "Bundle id lookup failed"))
            )
            .flat_map(lambda candidates: self._select(bundle_id, candidates))
        )

    def _select(self, bundle_id: str, candidates: list[AppIdentity]) -> Result[AppIdentity]:
        matches = [candidate for candidate in candidates if candidate.is_ios_app]
        if not matches:
            log.error("identity.not_found", bundle_id=bundle_id, candidates=len(candidates))
            return ResultFailures.app_not_found(bundle_id)
        if len(matches) > 1:
            apple_ids = [match.apple_id for match in matches]
            if self._match_policy is MatchPolicy.UNIQUE:
                return ResultFailures.resolution_error(
                    f"bundle id {bundle_id} matches several apps: {', '.join(apple_ids)}"
                )
            log.warning("identity.ambiguous", bundle_id=bundle_id, apple_ids=apple_ids)
        identity = matches[0]
        log.info("identity.resolved", bundle_id=bundle_id, apple_id=identity.apple_id)
        return Result.success(identity)
