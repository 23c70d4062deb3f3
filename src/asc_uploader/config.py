"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from environment variables
  - Fall back to a .env file
  - Validate types and constraints at startup
  - Keep key material out of source control (only paths to it are configured)

Only AppSettings is a BaseSettings instance. Sub-settings are plain BaseModel
classes populated via env_nested_delimiter="__", so API_KEY__PATH maps to
api_key.path, UPLOAD__MAX_CONCURRENCY to upload.max_concurrency, and so on.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the .env file relative to the project root (two levels above this file).
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"


class ApiKeySettings(BaseModel):
    """
    Where the API key comes from.

    Either `path` to a unified JSON key file, or all of issuer_id, key_id and
    private_key_path (the PEM downloaded from the vendor portal). `path` wins
    when both are given.
    """

    path: Path | None = Field(default=None, description="Unified JSON key file")
    issuer_id: str | None = Field(default=None, description="Issuer id (usually a UUID)")
    key_id: str | None = Field(default=None, description="Key id, e.g. DEADBEEF42")
    private_key_path: Path | None = Field(default=None, description="PEM private key file")

    @model_validator(mode="after")
    def require_one_source(self) -> ApiKeySettings:
        """Reject settings that name no usable key source."""
        if self.path is not None:
            return self
        missing = [name for name, value in [
            ("API_KEY__ISSUER_ID", self.issuer_id),
            ("API_KEY__KEY_ID", self.key_id),
            ("API_KEY__PRIVATE_KEY_PATH", self.private_key_path),
        ] if not value]
        if missing:
            raise ValueError("Set API_KEY__PATH or provide all of: " + ", ".join(missing))
        return self


class BackendSettings(BaseModel):
    """Content-delivery backend endpoints."""

    url: str = Field(default="https://contentdelivery.itunes.apple.com")
    json_rpc_path: str = Field(default="/WebObjects/MZLabelService.woa/json")
    iris_path: str = Field(default="/MZContentDeliveryService/iris/v1")

    @property
    def json_rpc_url(self) -> str:
        return self.url.rstrip("/") + self.json_rpc_path

    @property
    def iris_url(self) -> str:
        return self.url.rstrip("/") + self.iris_path


class ClientSettings(BaseModel):
    """Identity block this client announces on the legacy JSON-RPC surface."""

    application: str = "asc-uploader"
    application_bundle_id: str = "io.github.asc-uploader"
    version: str = "0.1.0"
    os_identifier: str = "Linux"
    framework_versions: dict[str, str] = Field(default_factory=dict)


class TokenSettings(BaseModel):
    validity_seconds: int = Field(default=300, ge=1, le=1200)
    audience: str = Field(default="appstoreconnect-v1")


class IdentitySettings(BaseModel):
    """
    How to pick among several matching applications.

    "first" accepts the first match (and logs a warning); "unique" refuses.
    """

    match_policy: Literal["first", "unique"] = "first"


class UploadSettings(BaseModel):
    max_concurrency: int = Field(default=1, ge=1, le=16)


class AppSettings(BaseSettings):
    """
    Root application settings — aggregates all sub-settings.

    Load order (highest priority first):
      1. Environment variables
      2. .env file
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    api_key: ApiKeySettings
    backend: BackendSettings = Field(default_factory=lambda: BackendSettings())
    client: ClientSettings = Field(default_factory=lambda: ClientSettings())
    token: TokenSettings = Field(default_factory=lambda: TokenSettings())
    identity: IdentitySettings = Field(default_factory=lambda: IdentitySettings())
    upload: UploadSettings = Field(default_factory=lambda: UploadSettings())

    use_session: bool = Field(default=True)
    http_timeout_seconds: int = Field(default=60, ge=1)
    log_level: str = Field(default="INFO")
