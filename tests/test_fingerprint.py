"""Tests for the string hash, fingerprint and session identifier."""

from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest

from tts_gateway.services.fingerprint import (
    INT32_MAX,
    BrowserProfile,
    SystemEntropy,
    _descriptor_with_suffix,
    build_session_identifier,
    string_hash,
    synthesize_fingerprint,
    to_int32,
)


class FixedEntropy:
    def __init__(self, *, rand: float = 0.25, integer: int = 0, now: datetime | None = None):
        self._rand = rand
        self._integer = integer
        self._now = now or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def random(self) -> float:
        return self._rand

    def randint(self, upper: int) -> int:
        assert upper == INT32_MAX
        return self._integer

    def now(self) -> datetime:
        return self._now


class TestStringHash:
    def test_empty_string_is_zero(self):
        assert string_hash("") == 0

    def test_single_character(self):
        # 97 + (97 << 14), no high bits to fold
        assert string_hash("a") == 1589345

    def test_two_characters_fold_high_bits(self):
        assert string_hash("ab") == 104356048

    def test_deterministic(self):
        text = "https://bot.n.cn"
        assert string_hash(text) == string_hash(text)

    @pytest.mark.parametrize(
        "text",
        [
            "x" * 1000,
            "你好，世界。" * 50,
            BrowserProfile().descriptor(),
            "\uffff" * 64,
        ],
    )
    def test_fits_signed_32_bits(self, text: str):
        assert -(2**31) <= string_hash(text) <= 2**31 - 1

    def test_astral_characters_hash_as_surrogate_pairs(self):
        assert string_hash("\U0001F600") == string_hash("\ud83d\ude00")

    def test_order_matters(self):
        assert string_hash("ab") != string_hash("ba")


class TestToInt32:
    def test_wraps_overflow(self):
        assert to_int32(2**31) == -(2**31)
        assert to_int32(2**32 + 5) == 5

    def test_keeps_negative_values(self):
        assert to_int32(-1) == -1


class TestFingerprint:
    def test_descriptor_suffix_runs_once(self):
        assert _descriptor_with_suffix("abc") == "abc" + str(1 ^ 3)

    def test_descriptor_has_no_separators(self):
        profile = BrowserProfile(user_agent="UA")
        assert profile.descriptor() == (
            "chrome1zh-CNWin32UA1920x108024https://bot.n.cn/chat"
        )

    def test_fingerprint_mixes_noise_with_descriptor_hash(self):
        profile = BrowserProfile()
        descriptor = _descriptor_with_suffix(profile.descriptor())

        value = synthesize_fingerprint(profile, FixedEntropy(integer=12345))

        expected = ((12345 ^ string_hash(descriptor)) & 0xFFFFFFFF) * INT32_MAX
        assert value == expected

    def test_fingerprint_is_an_unmasked_product(self):
        value = synthesize_fingerprint(BrowserProfile(), FixedEntropy(integer=INT32_MAX))
        assert value % INT32_MAX == 0
        assert 0 <= value // INT32_MAX <= 0xFFFFFFFF


class TestSessionIdentifier:
    def test_replaces_first_dot_and_truncates(self):
        profile = BrowserProfile()
        entropy = FixedEntropy(rand=0.25, integer=0)
        descriptor = _descriptor_with_suffix(profile.descriptor())

        identifier = build_session_identifier(profile, entropy)

        raw = (
            str(string_hash(profile.domain))
            + str(string_hash(descriptor) * INT32_MAX)
            + "1704067200000e5"
        )
        assert identifier == raw[:32]
        assert "." not in identifier

    def test_length_never_exceeds_32(self):
        profile = BrowserProfile()
        entropy = SystemEntropy(random.Random(1234))
        for _ in range(200):
            assert len(build_session_identifier(profile, entropy)) <= 32

    def test_successive_identifiers_differ(self):
        profile = BrowserProfile()
        entropy = SystemEntropy()
        first = build_session_identifier(profile, entropy)
        second = build_session_identifier(profile, entropy)
        assert first != second
