"""
Token issuer — mint and cache the ES256 bearer token for the API.

Adapter layer — implements the TokenProvider port using PyJWT for signing and
the CredentialStore for the key.

One token is shared by every caller in the process. A threading.Lock guards
the cache so concurrent callers serialize on issuance only; the token is
re-signed once the cached one has expired, never earlier.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

import jwt
import structlog
from railway import ErrorCode
from railway.result import Result

from asc_uploader.adapters.credential_store import CredentialStore
from asc_uploader.domain.models import BearerToken

log = structlog.get_logger()

DEFAULT_AUDIENCE = "appstoreconnect-v1"
DEFAULT_VALIDITY_SECONDS = 300


class JwtTokenIssuer:
    """
    Sign bearer tokens with the API key and hand out the cached one.

    Implements the TokenProvider port. `clock` returns epoch seconds and is
    injectable so expiry can be exercised without waiting.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        validity_seconds: int = DEFAULT_VALIDITY_SECONDS,
        audience: str = DEFAULT_AUDIENCE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._credentials = credentials
        self._validity_seconds = validity_seconds
        self._audience = audience
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: BearerToken | None = None

    def get_token(self) -> Result[BearerToken]:
        """
        Return the cached token, signing a new one if none exists or it expired.

        Returns Result.failure(CONFIGURATION_ERROR, ...) if the key cannot sign.
        """
        with self._lock:
            now = self._clock()
            if self._cached is not None and not self._cached.is_expired(now):
                return Result.success(self._cached)
            if self._cached is not None:
                log.info("token.expired", key_id=self._credentials.api_key.key_id)
            result = self._mint(now)
            if result.is_success():
                self._cached = result.value()
            return result

    def _mint(self, now: float) -> Result[BearerToken]:
        api_key = self._credentials.api_key
        return self._credentials.signing_key().flat_map(
            lambda key: Result.from_computation(
                lambda: jwt.encode(
                    {
                        "iss": api_key.issuer_id,
                        "iat": int(now),
                        "exp": int(now) + self._validity_seconds,
                        "aud": self._audience,
                    },
                    key,
                    algorithm="ES256",
                    headers={"kid": api_key.key_id, "typ": "JWT"},
                ),
                ErrorCode.CONFIGURATION_ERROR,
                f"Cannot sign token with key id {api_key.key_id}",
            )
        ).map(
            lambda value: BearerToken(
                value=value, minted_at=now, validity_seconds=self._validity_seconds
            )
        ).peek(
            lambda token: log.info(
                "token.minted", key_id=api_key.key_id, expires_at=int(token.expires_at)
            )
        )
