"""
tests/test_passwords.py -- Unit tests for bcrypt password hashing.

Cost is kept at the minimum allowed (10) so the suite stays fast.
"""

from __future__ import annotations

import pytest

from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher


def test_hash_differs_per_call_and_all_verify(hasher: PasswordHasher) -> None:
    first = hasher.hash("pw123456")
    second = hasher.hash("pw123456")
    assert first != second
    assert hasher.verify("pw123456", first)
    assert hasher.verify("pw123456", second)


def test_wrong_password_does_not_verify(hasher: PasswordHasher) -> None:
    record = hasher.hash("pw123456")
    assert not hasher.verify("pw1234567", record)


def test_record_embeds_cost_factor(hasher: PasswordHasher) -> None:
    record = hasher.hash("pw123456")
    assert record.startswith("$2b$10$")


def test_record_never_contains_plaintext(hasher: PasswordHasher) -> None:
    assert "pw123456" not in hasher.hash("pw123456")


def test_rounds_below_ten_are_refused() -> None:
    with pytest.raises(ValueError):
        PasswordHasher(rounds=9)


def test_too_long_password_is_refused_on_hash(hasher: PasswordHasher) -> None:
    with pytest.raises(ValueError):
        hasher.hash("a" * (MAX_PASSWORD_BYTES + 1))


def test_multibyte_length_is_counted_in_bytes(hasher: PasswordHasher) -> None:
    # 25 three-byte characters = 75 bytes
    with pytest.raises(ValueError):
        hasher.hash("한" * 25)


def test_exactly_72_bytes_is_accepted(hasher: PasswordHasher) -> None:
    password = "a" * MAX_PASSWORD_BYTES
    assert hasher.verify(password, hasher.hash(password))


def test_malformed_record_is_a_mismatch(hasher: PasswordHasher) -> None:
    assert not hasher.verify("pw123456", "not-a-bcrypt-record")


def test_burn_returns_nothing_and_reuses_dummy(hasher: PasswordHasher) -> None:
    assert hasher.burn("anything") is None
    dummy = hasher._dummy_hash
    hasher.burn("anything-else")
    assert dummy is not None
    assert hasher._dummy_hash == dummy
