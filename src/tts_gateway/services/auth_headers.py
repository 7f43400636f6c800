"""Forged authentication headers for the upstream TTS platform."""

from __future__ import annotations

import hashlib
from typing import Awaitable, Callable

from ..utils.datetime_utils import format_upstream_timestamp
from .fingerprint import (
    BrowserProfile,
    EntropySource,
    SystemEntropy,
    build_session_identifier,
)

DEVICE_PLATFORM = "Web"
PROTOCOL_VERSION = "1.2"

HEADER_NAMES = (
    "device-platform",
    "timestamp",
    "access-token",
    "zm-token",
    "zm-ver",
    "zm-ua",
    "User-Agent",
)

Digest = Callable[[bytes], Awaitable[str]]


async def md5_hexdigest(data: bytes) -> str:
    """Default digest service: lowercase hex MD5."""
    return hashlib.md5(data).hexdigest()


class HeaderForge:
    """Build a fresh header set for every upstream call.

    Nothing is cached between calls: the timestamp, the session identifier
    and the token derived from them are regenerated each time.
    """

    def __init__(
        self,
        profile: BrowserProfile | None = None,
        *,
        entropy: EntropySource | None = None,
        digest: Digest = md5_hexdigest,
    ) -> None:
        self.profile = profile or BrowserProfile()
        self._entropy = entropy or SystemEntropy()
        self._digest = digest

    async def build_headers(self) -> dict[str, str]:
        user_agent = self.profile.user_agent
        timestamp = format_upstream_timestamp(self._entropy.now())
        access_token = build_session_identifier(self.profile, self._entropy)
        zm_ua = await self._digest(user_agent.encode("utf-8"))

        # Field order is part of the wire contract.
        token_source = (
            f"{DEVICE_PLATFORM}{timestamp}{PROTOCOL_VERSION}{access_token}{zm_ua}"
        )
        zm_token = await self._digest(token_source.encode("utf-8"))

        return {
            "device-platform": DEVICE_PLATFORM,
            "timestamp": timestamp,
            "access-token": access_token,
            "zm-token": zm_token,
            "zm-ver": PROTOCOL_VERSION,
            "zm-ua": zm_ua,
            "User-Agent": user_agent,
        }


__all__ = [
    "DEVICE_PLATFORM",
    "Digest",
    "HEADER_NAMES",
    "HeaderForge",
    "PROTOCOL_VERSION",
    "md5_hexdigest",
]
