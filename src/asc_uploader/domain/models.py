"""
Domain models — immutable value objects flowing through a build submission.

All models are frozen dataclasses. Secret material (private key, shared secret,
bearer token value) is excluded from repr so it never lands in a log line.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

IOS_PLATFORM = "IOS"
ACCEPTED_APP_KIND = "iOS App"
ACCEPTED_SOFTWARE_TYPE = "Purple"


@dataclass(frozen=True, slots=True)
class ApiKey:
    """
    The three-part App Store Connect API key.

    `private_key` is the base64-encoded DER (PKCS#8) of an ECDSA P-256 key,
    which is also how the unified JSON key file stores it.
    """

    issuer_id: str
    key_id: str
    private_key: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class BearerToken:
    """A signed JWT plus the moment it was minted (epoch seconds)."""

    value: str = field(repr=False)
    minted_at: float
    validity_seconds: int = 300

    @property
    def expires_at(self) -> float:
        return self.minted_at + self.validity_seconds

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True, slots=True)
class Session:
    """Legacy JSON-RPC session: id sent in clear, secret used only for digests."""

    session_id: str
    shared_secret: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class PackageMetadata:
    """The three Info.plist strings a submission needs."""

    bundle_identifier: str
    build_version: str
    short_version_string: str


@dataclass(frozen=True, slots=True)
class AppIdentity:
    """
    One candidate record from lookupSoftwareForBundleId.

    `apple_id` is the backend's opaque numeric application id (kept as a string).
    """

    bundle_id: str
    apple_id: str
    kind: str
    software_type: str

    @property
    def is_ios_app(self) -> bool:
        return self.kind == ACCEPTED_APP_KIND and self.software_type == ACCEPTED_SOFTWARE_TYPE


@dataclass(frozen=True, slots=True)
class BuildRecord:
    app_id: str
    short_version_string: str
    build_version: str
    build_id: str
    platform: str = IOS_PLATFORM


@dataclass(frozen=True, slots=True)
class UploadOperation:
    """One server-assigned byte range [offset, offset + length) and where to PUT it."""

    offset: int
    length: int
    url: str

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True, slots=True)
class DeliveryFile:
    """
    The backend's record of the binary being transferred.

    `upload_operations` keeps the order the backend returned them in.
    """

    delivery_file_id: str
    file_name: str
    file_size: int
    checksum: str
    upload_operations: tuple[UploadOperation, ...] = ()
    uploaded: bool = False


@dataclass(frozen=True, slots=True)
class SubmissionReceipt:
    """Everything a successful submission produced."""

    metadata: PackageMetadata
    identity: AppIdentity
    build: BuildRecord
    delivery_file: DeliveryFile


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """Status and raw body of a successful (2xx) HTTP exchange."""

    status: int
    body: bytes = field(repr=False)

    def json(self) -> Any:
        return json.loads(self.body)
