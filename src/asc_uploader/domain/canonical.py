"""
Canonical request bodies and legacy session digests.

Pure functions, no I/O. A request body is serialized exactly once with
`canonical_json`; the resulting bytes are both signed and transmitted, so the
digest the server recomputes always matches what it received.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from asc_uploader.domain.models import Session


def canonical_json(document: Any) -> bytes:
    """Serialize with sorted keys and compact separators, UTF-8 encoded."""
    return json.dumps(
        document,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def session_digest(session: Session, body: bytes) -> str:
    """
    Hex MD5 over session_id ∥ body ∥ shared_secret.

    Must be computed per request: the body is part of the signed material.
    """
    digest = hashlib.md5(usedforsecurity=False)
    digest.update(session.session_id.encode("utf-8"))
    digest.update(body)
    digest.update(session.shared_secret.encode("utf-8"))
    return digest.hexdigest()


def md5_hex(data: bytes) -> str:
    """Whole-file content checksum as sent in sourceFileChecksum."""
    return hashlib.md5(data, usedforsecurity=False).hexdigest()
