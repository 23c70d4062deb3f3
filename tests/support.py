"""
Constants and small fakes shared by unit and acceptance tests.
"""

from __future__ import annotations

from typing import Any

ISSUER_ID = "69a6de7e-0000-47e3-e053-5b8c7c11a4d1"
KEY_ID = "DEADBEEF42"
BASE_URL = "https://delivery.example.com"
JSON_RPC_URL = f"{BASE_URL}/WebObjects/MZLabelService.woa/json"
IRIS_URL = f"{BASE_URL}/MZContentDeliveryService/iris/v1"
TOKEN_VALUE = "header.payload.signature"


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def demo_info_plist(**overrides: Any) -> dict[str, Any]:
    """Info.plist contents for the Demo app; pass key=None to drop a key."""
    info: dict[str, Any] = {
        "CFBundleIdentifier": "com.example.demo",
        "CFBundleVersion": "42",
        "CFBundleShortVersionString": "2.1",
        "CFBundleName": "Demo",
    }
    for key, value in overrides.items():
        if value is None:
            info.pop(key, None)
        else:
            info[key] = value
    return info
