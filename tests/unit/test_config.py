"""
Unit tests for configuration — pydantic-settings loaded from the environment.

Environment variables are set with monkeypatch; the .env file is bypassed
by passing _env_file=None.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from asc_uploader.config import ApiKeySettings, AppSettings, BackendSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in [
        "API_KEY__PATH",
        "API_KEY__ISSUER_ID",
        "API_KEY__KEY_ID",
        "API_KEY__PRIVATE_KEY_PATH",
        "UPLOAD__MAX_CONCURRENCY",
        "IDENTITY__MATCH_POLICY",
        "USE_SESSION",
        "BACKEND__URL",
    ]:
        monkeypatch.delenv(name, raising=False)


class TestApiKeySettings:
    def test_json_path_alone_is_enough(self) -> None:
        settings = ApiKeySettings(path=Path("/keys/api_key.json"))
        assert settings.path == Path("/keys/api_key.json")

    def test_pem_triple_is_enough(self) -> None:
        settings = ApiKeySettings(issuer_id="i", key_id="k", private_key_path=Path("/keys/a.p8"))
        assert settings.key_id == "k"

    def test_incomplete_triple_names_missing_variables(self) -> None:
        """
        GIVEN only issuer_id
        WHEN ApiKeySettings is validated
        THEN the error names API_KEY__KEY_ID and API_KEY__PRIVATE_KEY_PATH.
        """
        with pytest.raises(ValidationError) as excinfo:
            ApiKeySettings(issuer_id="i")
        message = str(excinfo.value)
        assert "API_KEY__KEY_ID" in message
        assert "API_KEY__PRIVATE_KEY_PATH" in message


class TestBackendSettings:
    def test_default_urls(self) -> None:
        backend = BackendSettings()
        assert backend.json_rpc_url == (
            "https://contentdelivery.itunes.apple.com/WebObjects/MZLabelService.woa/json"
        )
        assert backend.iris_url == (
            "https://contentdelivery.itunes.apple.com/MZContentDeliveryService/iris/v1"
        )

    def test_trailing_slash_is_ignored(self) -> None:
        backend = BackendSettings(url="https://delivery.example.com/")
        assert backend.iris_url == "https://delivery.example.com/MZContentDeliveryService/iris/v1"


class TestAppSettings:
    def test_nested_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("API_KEY__PATH", "/keys/api_key.json")
        monkeypatch.setenv("UPLOAD__MAX_CONCURRENCY", "4")
        monkeypatch.setenv("IDENTITY__MATCH_POLICY", "unique")
        monkeypatch.setenv("USE_SESSION", "false")

        settings = AppSettings(_env_file=None)  # type: ignore[call-arg]

        assert settings.api_key.path == Path("/keys/api_key.json")
        assert settings.upload.max_concurrency == 4
        assert settings.identity.match_policy == "unique"
        assert settings.use_session is False

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("API_KEY__PATH", "/keys/api_key.json")
        settings = AppSettings(_env_file=None)  # type: ignore[call-arg]
        assert settings.use_session is True
        assert settings.token.validity_seconds == 300
        assert settings.upload.max_concurrency == 1
        assert settings.identity.match_policy == "first"

    def test_missing_api_key_fails(self) -> None:
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None)  # type: ignore[call-arg]

    @pytest.mark.parametrize("value", ["0", "17"])
    def test_concurrency_bounds(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("API_KEY__PATH", "/keys/api_key.json")
        monkeypatch.setenv("UPLOAD__MAX_CONCURRENCY", value)
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None)  # type: ignore[call-arg]
