from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone

import pytest

from tts_gateway.config import DEFAULT_USER_AGENT
from tts_gateway.services.auth_headers import HEADER_NAMES, HeaderForge
from tts_gateway.services.fingerprint import BrowserProfile

_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}\+08:00$")


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FrozenEntropy:
    def random(self) -> float:
        return 0.5

    def randint(self, upper: int) -> int:
        return 42

    def now(self) -> datetime:
        return datetime(2025, 3, 1, 10, 0, 0, tzinfo=timezone.utc)


def _md5(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


@pytest.mark.anyio
async def test_headers_have_fixed_names_in_order() -> None:
    forge = HeaderForge()

    headers = await forge.build_headers()

    assert tuple(headers) == HEADER_NAMES


@pytest.mark.anyio
async def test_constant_fields_are_call_invariant() -> None:
    forge = HeaderForge()

    first = await forge.build_headers()
    second = await forge.build_headers()

    for name in ("device-platform", "zm-ver", "User-Agent", "zm-ua"):
        assert first[name] == second[name]
    assert first["device-platform"] == "Web"
    assert first["zm-ver"] == "1.2"
    assert first["User-Agent"] == DEFAULT_USER_AGENT


@pytest.mark.anyio
async def test_random_fields_change_every_call() -> None:
    forge = HeaderForge()

    first = await forge.build_headers()
    second = await forge.build_headers()

    assert first["access-token"] != second["access-token"]
    assert first["zm-token"] != second["zm-token"]


@pytest.mark.anyio
async def test_tokens_are_md5_of_expected_fields() -> None:
    forge = HeaderForge(entropy=FrozenEntropy())

    headers = await forge.build_headers()

    assert headers["timestamp"] == "2025-03-01T18:00:00.000+08:00"
    assert _TIMESTAMP_RE.match(headers["timestamp"])
    assert headers["zm-ua"] == _md5(DEFAULT_USER_AGENT)
    expected_token = _md5(
        "Web"
        + headers["timestamp"]
        + "1.2"
        + headers["access-token"]
        + headers["zm-ua"]
    )
    assert headers["zm-token"] == expected_token
    assert len(headers["access-token"]) <= 32


@pytest.mark.anyio
async def test_custom_profile_and_digest() -> None:
    seen: list[bytes] = []

    async def fake_digest(data: bytes) -> str:
        seen.append(data)
        return f"digest-{len(seen)}"

    forge = HeaderForge(
        BrowserProfile(user_agent="TestAgent/1.0"),
        entropy=FrozenEntropy(),
        digest=fake_digest,
    )

    headers = await forge.build_headers()

    assert headers["User-Agent"] == "TestAgent/1.0"
    assert headers["zm-ua"] == "digest-1"
    assert headers["zm-token"] == "digest-2"
    assert seen[0] == b"TestAgent/1.0"
    assert seen[1].decode("utf-8").endswith(headers["access-token"] + "digest-1")
