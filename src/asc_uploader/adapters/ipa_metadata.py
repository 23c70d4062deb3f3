"""
Package metadata adapter — read Info.plist out of an .ipa archive.

Adapter layer — implements the MetadataExtractor port using zipfile and plistlib.

Pipeline:
  Demo.ipa
    → zipfile: open archive, locate Payload/Demo.app/Info.plist
    → plistlib: parse as XML property list (top level must be a dict)
    → read CFBundleIdentifier, CFBundleVersion, CFBundleShortVersionString
    → PackageMetadata (domain model)

All three keys are required and must be strings. Anything else is an
EXTRACTION_ERROR; partial metadata is never returned.
"""

from __future__ import annotations

import plistlib
import zipfile
from pathlib import Path
from typing import Any

import structlog
from railway import ErrorCode, ResultFailures
from railway.result import Result

from asc_uploader.domain.models import PackageMetadata

log = structlog.get_logger()

BUNDLE_IDENTIFIER_KEY = "CFBundleIdentifier"
BUNDLE_VERSION_KEY = "CFBundleVersion"
SHORT_VERSION_KEY = "CFBundleShortVersionString"


def info_plist_path(package_path: Path) -> str:
    """Archive member holding the app's Info.plist, derived from the package's base name."""
    return f"Payload/{package_path.stem}.app/Info.plist"


def _require_string(info: dict[str, Any], key: str) -> str:
    value = info.get(key)
    if value is None:
        raise KeyError(f"Info.plist is missing {key}")
    if not isinstance(value, str):
        raise TypeError(f"Info.plist {key} is {type(value).__name__}, expected string")
    return value


class ZipPackageMetadataExtractor:
    """Implements the MetadataExtractor port for zip-based .ipa packages."""

    def extract(self, package_path: Path) -> Result[PackageMetadata]:
        """
        Extract the bundle identifier and version pair from `package_path`.

        Returns Result[PackageMetadata] on success,
        or Result.failure(EXTRACTION_ERROR, ...) naming what went wrong.
        """
        package_path = Path(package_path)
        member = info_plist_path(package_path)
        return (
            Result.from_computation(
                lambda: self._read_member(package_path, member),
                ErrorCode.EXTRACTION_ERROR,
                f"Cannot read {member} from {package_path}",
            )
            .flat_map(
                lambda raw: Result.from_computation(
                    lambda: plistlib.loads(raw, fmt=plistlib.FMT_XML),
                    ErrorCode.EXTRACTION_ERROR,
                    f"{member} is not a valid XML property list",
                )
            )
            .ensure(
                lambda info: isinstance(info, dict),
                ErrorCode.EXTRACTION_ERROR,
                f"{member} top level is not a dictionary",
            )
            .flat_map(lambda info: self._to_metadata(info, member))
            .peek(
                lambda metadata: log.info(
                    "package.metadata_extracted",
                    package=package_path.name,
                    bundle_id=metadata.bundle_identifier,
                    build_version=metadata.build_version,
                    short_version=metadata.short_version_string,
                )
            )
        )

    @staticmethod
    def _read_member(package_path: Path, member: str) -> bytes:
        with zipfile.ZipFile(package_path) as archive:
            return archive.read(member)

    @staticmethod
    def _to_metadata(info: dict[str, Any], member: str) -> Result[PackageMetadata]:
        try:
            return Result.success(
                PackageMetadata(
                    bundle_identifier=_require_string(info, BUNDLE_IDENTIFIER_KEY),
                    build_version=_require_string(info, BUNDLE_VERSION_KEY),
                    short_version_string=_require_string(info, SHORT_VERSION_KEY),
                )
            )
        except (KeyError, TypeError) as e:
            message = e.args[0] if e.args else str(e)
            return ResultFailures.extraction_error(f"{member}: {message}", e)
