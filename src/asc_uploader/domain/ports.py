"""
Ports — Protocol-based interfaces for infrastructure adapters.

These define WHAT the submission pipeline needs without specifying HOW it's done.
Following hexagonal architecture:

  Domain ← Ports (protocols) ← Adapters (implementations)

Each port is a Protocol (structural typing) so adapters satisfy the contract
simply by implementing the methods — no inheritance.

Submission flow:
  1. TokenProvider      → signed bearer token (cached)
  2. SessionNegotiator  → legacy session for the JSON-RPC surface (optional)
  3. MetadataExtractor  → bundle id + version pair from the package
  4. IdentityResolver   → numeric app id for the bundle id
  5. BuildRegistrar     → build id
  6. DeliveryUploader   → checksummed, chunked binary transfer + finalize
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from railway.result import Result

from asc_uploader.domain.models import (
    AppIdentity,
    BearerToken,
    BuildRecord,
    DeliveryFile,
    HttpResponse,
    PackageMetadata,
    Session,
)


@runtime_checkable
class HttpTransport(Protocol):
    """
    Port: execute one HTTP request.

    Non-2xx responses become Failure(BACKEND_ERROR) carrying the response body;
    connection-level problems become Failure(TRANSPORT_ERROR).
    """

    def execute(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Result[HttpResponse]: ...


@runtime_checkable
class TokenProvider(Protocol):
    """
    Port: hand out the process-wide bearer token.

    Safe to call from several threads; only one signing happens per token lifetime.
    """

    def get_token(self) -> Result[BearerToken]: ...


@runtime_checkable
class MetadataExtractor(Protocol):
    """Port: read bundle identifier and version strings from a package archive."""

    def extract(self, package_path: Path) -> Result[PackageMetadata]: ...


@runtime_checkable
class SessionNegotiator(Protocol):
    """
    Port: trade a bearer token for a legacy session and sign request bodies with it.

    `sign` is pure: identical (session, body) pairs produce identical digests.
    """

    def negotiate(self, token: BearerToken) -> Result[Session]: ...

    def sign(self, session: Session, body: bytes) -> str: ...


@runtime_checkable
class IdentityResolver(Protocol):
    """Port: map a bundle identifier to the backend's numeric application id."""

    def resolve(self, bundle_id: str, session: Session | None = None) -> Result[AppIdentity]: ...


@runtime_checkable
class BuildRegistrar(Protocol):
    """
    Port: create a build record for an application and version pair.

    Not idempotent — calling twice creates two builds.
    """

    def create_build(
        self,
        app_id: str,
        build_version: str,
        short_version_string: str,
    ) -> Result[BuildRecord]: ...


@runtime_checkable
class DeliveryUploader(Protocol):
    """
    Port: transfer the package to remote storage for a build.

    Creates the delivery file, transfers every assigned byte range, then marks it
    uploaded. Returns the finalized DeliveryFile (uploaded=True) on success.
    """

    def upload(self, build_id: str, file_path: Path) -> Result[DeliveryFile]: ...
