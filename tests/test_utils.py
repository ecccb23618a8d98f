"""
Tests for utility helpers and password/token functions.
"""

from datetime import datetime, timedelta, timezone

import pytest

from universe_api.auth import (
    email_token_expiry,
    generate_token,
    hash_password,
    session_expiry,
    verify_password,
)
from universe_api.utils import ensure_utc, escape_like, normalize_email


@pytest.mark.parametrize("raw, expected", [
    ("Test@Example.com", "test@example.com"),
    ("  21060001001@STU.yasar.edu.tr  ", "21060001001@stu.yasar.edu.tr"),
])
def test_normalize_email(raw, expected):
    assert normalize_email(raw) == expected


def test_ensure_utc_treats_naive_as_utc():
    naive = datetime(2026, 1, 1, 12, 0)

    assert ensure_utc(naive) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_ensure_utc_converts_offsets():
    istanbul = datetime(2026, 1, 1, 15, 0, tzinfo=timezone(timedelta(hours=3)))

    converted = ensure_utc(istanbul)

    assert converted.tzinfo == timezone.utc
    assert converted.hour == 12


@pytest.mark.parametrize("term, expected", [
    ("Library", "Library"),
    ("50%", "50\\%"),
    ("Lab_1", "Lab\\_1"),
    ("a\\b", "a\\\\b"),
])
def test_escape_like(term, expected):
    assert escape_like(term) == expected


def test_password_hash_and_verify():
    hashed = hash_password("password123")

    assert hashed != "password123"
    assert hashed.startswith("$2")
    assert verify_password("password123", hashed)
    assert not verify_password("password124", hashed)


def test_password_hashes_are_salted():
    assert hash_password("password123") != hash_password("password123")


def test_long_passwords_compare_on_first_72_bytes():
    base = "p" * 72
    hashed = hash_password(base + "suffix-one")

    assert verify_password(base + "suffix-two", hashed)


def test_verify_password_with_malformed_hash():
    assert verify_password("password123", "not-a-bcrypt-hash") is False


def test_generate_token_is_64_hex_chars():
    token = generate_token()

    assert len(token) == 64
    int(token, 16)
    assert generate_token() != token


def test_expiry_windows():
    now = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

    assert session_expiry(now) == now + timedelta(days=7)
    assert email_token_expiry(now) == now + timedelta(hours=24)
