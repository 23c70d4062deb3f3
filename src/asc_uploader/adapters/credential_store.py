"""
Credential store — the three-part API key and its on-disk forms.

Adapter layer — uses cryptography (PyCA) to validate and load the ECDSA key.

Two on-disk forms are understood:
  - the PEM file downloaded from the vendor portal (tag must be PRIVATE KEY),
    combined with issuer id and key id given separately
  - the unified JSON key file {issuer_id, key_id, private_key} where
    private_key is base64 DER, so every command needs only one path

Any malformation is a CONFIGURATION_ERROR: the client cannot do anything
without a usable key.
"""

from __future__ import annotations

import base64
import json
import os
import re
from pathlib import Path

import structlog
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey
from railway import ErrorCode
from railway.result import Result

from asc_uploader.domain.models import ApiKey

log = structlog.get_logger()

_PEM_BEGIN = re.compile(r"-----BEGIN ([A-Z ]+)-----")
_EXPECTED_PEM_TAG = "PRIVATE KEY"


def _pem_tag(pem_text: str) -> str | None:
    match = _PEM_BEGIN.search(pem_text)
    return match.group(1) if match else None


def _parse_unified_json(data: bytes) -> ApiKey:
    document = json.loads(data)
    return ApiKey(
        issuer_id=document["issuer_id"],
        key_id=document["key_id"],
        private_key=document["private_key"],
    )


def _der_from_pem(pem_data: bytes) -> bytes:
    key = serialization.load_pem_private_key(pem_data, password=None)
    if not isinstance(key, EllipticCurvePrivateKey):
        raise ValueError(f"expected an ECDSA private key, got {type(key).__name__}")
    return key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _load_der_key(private_key: str) -> EllipticCurvePrivateKey:
    der = base64.b64decode(private_key, validate=True)
    key = serialization.load_der_private_key(der, password=None)
    if not isinstance(key, EllipticCurvePrivateKey):
        raise ValueError(f"expected an ECDSA private key, got {type(key).__name__}")
    return key


class CredentialStore:
    """
    Holds one ApiKey for the life of the client and exposes it for signing.

    The signing key is decoded once, on first use.
    """

    def __init__(self, api_key: ApiKey) -> None:
        self._api_key = api_key
        self._signing_key: EllipticCurvePrivateKey | None = None

    @property
    def api_key(self) -> ApiKey:
        return self._api_key

    def signing_key(self) -> Result[EllipticCurvePrivateKey]:
        """Decode the base64 DER private key into a usable ECDSA key."""
        if self._signing_key is not None:
            return Result.success(self._signing_key)
        result = Result.from_computation(
            lambda: _load_der_key(self._api_key.private_key),
            ErrorCode.CONFIGURATION_ERROR,
            f"Private key for key id {self._api_key.key_id} is malformed",
        )
        if result.is_success():
            self._signing_key = result.value()
        return result

    # ──────────────────────── Loading ────────────────────────

    @staticmethod
    def from_json_path(path: Path) -> Result[CredentialStore]:
        """Load a unified JSON key file."""
        return Result.from_computation(
            lambda: CredentialStore(_parse_unified_json(Path(path).read_bytes())),
            ErrorCode.CONFIGURATION_ERROR,
            f"Cannot read API key file {path}",
        )

    @staticmethod
    def from_pem_path(issuer_id: str, key_id: str, pem_path: Path) -> Result[CredentialStore]:
        """
        Import the PEM private key downloaded from the vendor portal.

        Only the PKCS#8 `PRIVATE KEY` tag is accepted.
        """
        read = Result.from_computation(
            lambda: Path(pem_path).read_bytes(),
            ErrorCode.CONFIGURATION_ERROR,
            f"Cannot read private key file {pem_path}",
        )
        return (
            read.ensure(
                lambda data: _pem_tag(data.decode("ascii", errors="replace")) == _EXPECTED_PEM_TAG,
                ErrorCode.CONFIGURATION_ERROR,
                f"{pem_path} does not look like a {_EXPECTED_PEM_TAG}",
            )
            .flat_map(
                lambda data: Result.from_computation(
                    lambda: _der_from_pem(data),
                    ErrorCode.CONFIGURATION_ERROR,
                    f"Cannot parse private key in {pem_path}",
                )
            )
            .map(
                lambda der: CredentialStore(
                    ApiKey(
                        issuer_id=issuer_id,
                        key_id=key_id,
                        private_key=base64.b64encode(der).decode("ascii"),
                    )
                )
            )
        )

    # ──────────────────────── Saving ────────────────────────

    def write_json(self, path: Path) -> Result[Path]:
        """
        Write the unified JSON key file, readable by the owner only.

        Parent directories are created with default permissions.
        """
        return Result.from_computation(
            lambda: self._do_write_json(Path(path)),
            ErrorCode.CONFIGURATION_ERROR,
            f"Cannot write API key file {path}",
        )

    def _do_write_json(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        document = {
            "issuer_id": self._api_key.issuer_id,
            "key_id": self._api_key.key_id,
            "private_key": self._api_key.private_key,
        }
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(document, fh, indent=2)
        os.chmod(path, 0o600)
        log.info("api_key.written", path=str(path), key_id=self._api_key.key_id)
        return path
