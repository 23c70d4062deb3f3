"""
Shared test fixtures and helpers for the asc-uploader test suite.

Provides real ECDSA P-256 API keys, .ipa archives built on the fly in tmp_path,
a controllable clock and a fixed-token provider.
"""

from __future__ import annotations

import base64
import plistlib
import zipfile
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from railway.result import Result

from asc_uploader.adapters.credential_store import CredentialStore
from asc_uploader.domain.models import ApiKey, BearerToken
from tests.support import ISSUER_ID, KEY_ID, TOKEN_VALUE, FakeClock, demo_info_plist


@pytest.fixture()
def ec_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture()
def api_key(ec_private_key: ec.EllipticCurvePrivateKey) -> ApiKey:
    """An ApiKey holding a freshly generated P-256 key as base64 DER."""
    der = ec_private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return ApiKey(issuer_id=ISSUER_ID, key_id=KEY_ID, private_key=base64.b64encode(der).decode())


@pytest.fixture()
def credentials(api_key: ApiKey) -> CredentialStore:
    return CredentialStore(api_key)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def token_provider() -> MagicMock:
    """A TokenProvider that always hands out the same token."""
    provider = MagicMock()
    provider.get_token.return_value = Result.success(
        BearerToken(value=TOKEN_VALUE, minted_at=0.0)
    )
    return provider


@pytest.fixture()
def make_ipa(tmp_path: Path) -> Callable[..., Path]:
    """
    Factory building an .ipa in tmp_path.

    make_ipa("Demo", info) writes Payload/Demo.app/Info.plist as an XML plist.
    `raw_plist` replaces the plist bytes verbatim; `padding` adds a filler member.
    """

    def _make(
        name: str = "Demo",
        info: dict[str, Any] | None = None,
        raw_plist: bytes | None = None,
        padding: int = 0,
    ) -> Path:
        path = tmp_path / f"{name}.ipa"
        plist_bytes = raw_plist
        if plist_bytes is None:
            plist_bytes = plistlib.dumps(
                info if info is not None else demo_info_plist(), fmt=plistlib.FMT_XML
            )
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr(f"Payload/{name}.app/Info.plist", plist_bytes)
            archive.writestr(f"Payload/{name}.app/{name}", b"\xcf\xfa\xed\xfe" + b"\x00" * 64)
            if padding:
                archive.writestr("Padding.bin", bytes(range(256)) * (padding // 256 + 1))
        return path

    return _make
