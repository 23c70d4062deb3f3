"""
Build registrar — create the build record a delivery file will hang off.

Adapter layer — implements the BuildRegistrar port over the HttpTransport port.

POST {iris}/builds
  {data: {type: "builds",
          attributes: {cfBundleShortVersionString, cfBundleVersion, platform: "IOS"},
          relationships: {app: {data: {id, type: "apps"}}}}}
→ {data: {id}}

There is no idempotency key: a repeated call registers a second build.
"""

from __future__ import annotations

import structlog
from railway import ErrorCode
from railway.result import Result

from asc_uploader.adapters.http_transport import bearer_headers, claim_failure
from asc_uploader.domain.canonical import canonical_json
from asc_uploader.domain.models import IOS_PLATFORM, BuildRecord, HttpResponse
from asc_uploader.domain.ports import HttpTransport, TokenProvider

log = structlog.get_logger()


def build_document(app_id: str, build_version: str, short_version_string: str) -> dict:
    return {
        "data": {
            "type": "builds",
            "attributes": {
                "cfBundleShortVersionString": short_version_string,
                "cfBundleVersion": build_version,
                "platform": IOS_PLATFORM,
            },
            "relationships": {
                "app": {"data": {"id": app_id, "type": "apps"}},
            },
        }
    }


class RestBuildRegistrar:
    """Implements the BuildRegistrar port against the JSON:API build collection."""

    def __init__(self, transport: HttpTransport, token_provider: TokenProvider, iris_url: str) -> None:
        self._transport = transport
        self._token_provider = token_provider
        self._builds_url = f"{iris_url.rstrip('/')}/builds"

    def create_build(
        self,
        app_id: str,
        build_version: str,
        short_version_string: str,
    ) -> Result[BuildRecord]:
        """
        Register a build for `app_id` with the given version pair.

        Returns Result[BuildRecord] carrying the backend-assigned build id,
        or Result.failure(REGISTRATION_ERROR, ...) on any non-success.
        """
        body = canonical_json(build_document(app_id, build_version, short_version_string))
        return (
            self._token_provider.get_token()
            .flat_map(
                lambda token: self._transport.execute(
                    "POST", self._builds_url, bearer_headers(token.value), body
                )
                .flat_map(self._read_build_id)
                .map_failure(claim_failure(ErrorCode.REGISTRATION_ERROR, "Build creation failed"))
            )
            .map(
                lambda build_id: BuildRecord(
                    app_id=app_id,
                    short_version_string=short_version_string,
                    build_version=build_version,
                    build_id=build_id,
                )
            )
            .peek(
                lambda build: log.info(
                    "build.created",
                    app_id=app_id,
                    build_id=build.build_id,
                    version=f"{short_version_string} ({build_version})",
                )
            )
        )

    @staticmethod
    def _read_build_id(response: HttpResponse) -> Result[str]:
        return Result.from_computation(
            lambda: str(response.json()["data"]["id"]),
            ErrorCode.BACKEND_ERROR,
            "Build creation response carries no data.id",
        )
