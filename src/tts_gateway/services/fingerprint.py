"""Synthetic browser fingerprint and session identifier generation.

The upstream service expects requests to look like they come from a web
client session. Nothing here carries real identity: every call manufactures
a fresh, self-consistent "device" from a fixed browser profile, the wall
clock and randomness.

Randomness and time are read through an ``EntropySource`` so the pure parts
(``string_hash``) stay deterministic and the rest can be driven by a fixed
source in tests.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from ..config import DEFAULT_USER_AGENT

HASH_MASK_1 = 0x0FFFFFFF
HASH_MASK_2 = 0x0FE00000
INT32_MAX = 2_147_483_647
SESSION_ID_LENGTH = 32


def to_int32(value: int) -> int:
    """Wrap an arbitrary integer into the signed 32-bit range."""

    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _utf16_units(text: str) -> list[int]:
    data = text.encode("utf-16-le", "surrogatepass")
    return [int.from_bytes(data[i : i + 2], "little") for i in range(0, len(data), 2)]


def string_hash(text: str) -> int:
    """Hash ``text`` into a signed 32-bit integer.

    Characters are consumed as UTF-16 code units from last to first and every
    step is truncated to 32 bits, so the result matches a fixed-width integer
    environment bit for bit.
    """

    acc = 0
    for code in reversed(_utf16_units(text)):
        acc = to_int32(((acc << 6) & HASH_MASK_1) + code + (code << 14))
        folded = acc & HASH_MASK_2
        if folded != 0:
            acc = to_int32(acc ^ ((folded & 0xFFFFFFFF) >> 21))
    return acc


class EntropySource(Protocol):
    """Source of randomness and wall-clock time for the forged session."""

    def random(self) -> float: ...

    def randint(self, upper: int) -> int: ...

    def now(self) -> datetime: ...


class SystemEntropy:
    """Entropy backed by the ``random`` module and the system clock."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def random(self) -> float:
        return self._rng.random()

    def randint(self, upper: int) -> int:
        return self._rng.randint(0, upper)

    def now(self) -> datetime:
        return datetime.fromtimestamp(time.time(), tz=timezone.utc)


@dataclass(frozen=True)
class BrowserProfile:
    """Fixed constants describing the impersonated browser."""

    app_name: str = "chrome"
    version: str = "1"
    language: str = "zh-CN"
    platform: str = "Win32"
    user_agent: str = DEFAULT_USER_AGENT
    width: int = 1920
    height: int = 1080
    color_depth: int = 24
    referrer: str = "https://bot.n.cn/chat"
    domain: str = "https://bot.n.cn"

    def descriptor(self) -> str:
        """Concatenate the profile constants with no separators."""

        return (
            f"{self.app_name}{self.version}{self.language}{self.platform}"
            f"{self.user_agent}{self.width}x{self.height}{self.color_depth}"
            f"{self.referrer}"
        )


def _descriptor_with_suffix(descriptor: str) -> str:
    # Starts at 1, so the suffix is always exactly one number.
    counter = 1
    length = len(descriptor)
    while counter:
        descriptor += str(counter ^ length)
        counter -= 1
        length += 1
    return descriptor


def synthesize_fingerprint(profile: BrowserProfile, entropy: EntropySource) -> int:
    """Return a random "unique device hash" derived from ``profile``.

    The product is deliberately left unmasked and may exceed 32 bits.
    """

    descriptor = _descriptor_with_suffix(profile.descriptor())
    noise = entropy.randint(INT32_MAX)
    mixed = (noise ^ string_hash(descriptor)) & 0xFFFFFFFF
    return mixed * INT32_MAX


def build_session_identifier(profile: BrowserProfile, entropy: EntropySource) -> str:
    """Build the ``access-token`` value: at most 32 characters, not unique."""

    now_ms = int(entropy.now().timestamp() * 1000)
    salt = now_ms + entropy.random() + entropy.random()
    raw = (
        str(string_hash(profile.domain))
        + str(synthesize_fingerprint(profile, entropy))
        + str(salt)
    )
    return raw.replace(".", "e", 1)[:SESSION_ID_LENGTH]


__all__ = [
    "BrowserProfile",
    "EntropySource",
    "SystemEntropy",
    "build_session_identifier",
    "string_hash",
    "synthesize_fingerprint",
    "to_int32",
]
