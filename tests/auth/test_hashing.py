"""Tests for app/auth/hashing.py - bcrypt credential hashing."""

import pytest

from app.auth.exceptions import PasswordPolicyError
from app.auth.hashing import (
    MAX_PASSWORD_BYTES,
    CredentialHasher,
    check_password_policy,
)

hasher = CredentialHasher(rounds=4)


def test_hash_verifies_original_secret():
    hashed = hasher.hash("correct horse")

    assert hashed != "correct horse"
    assert hashed.startswith("$2")
    assert hasher.verify("correct horse", hashed)


def test_wrong_secret_does_not_verify():
    hashed = hasher.hash("correct horse")
    assert not hasher.verify("battery staple", hashed)


def test_hashes_are_salted():
    assert hasher.hash("same-secret") != hasher.hash("same-secret")


@pytest.mark.parametrize("hashed", [None, "", "not-a-bcrypt-hash"])
def test_missing_or_malformed_hash_never_matches(hashed):
    assert not hasher.verify("anything", hashed)


def test_overlong_secret_refused():
    with pytest.raises(PasswordPolicyError):
        hasher.hash("x" * (MAX_PASSWORD_BYTES + 1))


def test_overlong_secret_never_verifies():
    hashed = hasher.hash("x" * MAX_PASSWORD_BYTES)
    assert not hasher.verify("x" * (MAX_PASSWORD_BYTES + 1), hashed)


class TestPasswordPolicy:
    def test_accepts_six_characters(self):
        check_password_policy("abcdef")

    def test_rejects_short_password(self):
        with pytest.raises(PasswordPolicyError) as exc_info:
            check_password_policy("abcde")

        assert exc_info.value.status_code == 400
        assert "at least 6 characters" in exc_info.value.message

    def test_rejects_too_many_bytes(self):
        # 25 three-byte characters: short in characters, long in bytes
        with pytest.raises(PasswordPolicyError) as exc_info:
            check_password_policy("€" * 25)

        assert "at most 72 bytes" in exc_info.value.message
