import time
from datetime import timedelta

import pytest
from jose import jwt

from blogosphere.core.config import settings
from blogosphere.core.exceptions import Unauthorized
from blogosphere.core.security import (
    create_access_token, get_token_user_id, hash_password, verify_password, verify_token
)


def test_password_hash_is_salted_and_verifies():
    first = hash_password("secret123")
    second = hash_password("secret123")

    assert first != "secret123"
    assert first != second
    assert verify_password("secret123", first)
    assert not verify_password("wrong", first)


def test_token_embeds_user_id():
    token = create_access_token(42)

    payload = verify_token(token)
    assert payload["sub"] == "42"
    assert payload["type"] == "access"
    assert get_token_user_id(token) == 42


def test_default_expiry_is_seven_days():
    issued_at = time.time()
    token = create_access_token(1)
    payload = jwt.get_unverified_claims(token)

    expected = issued_at + timedelta(days=7).total_seconds()
    assert abs(payload["exp"] - expected) < 60


def test_expired_token_is_rejected():
    token = create_access_token(1, expires_delta=timedelta(seconds=-10))

    with pytest.raises(Unauthorized):
        verify_token(token)


def test_tampered_token_is_rejected():
    token = jwt.encode({"sub": "1", "type": "access"}, "another-key", algorithm=settings.ALGORITHM)

    with pytest.raises(Unauthorized):
        verify_token(token)


def test_wrong_token_type_is_rejected():
    token = jwt.encode({"sub": "1", "type": "refresh"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    with pytest.raises(Unauthorized):
        verify_token(token)


def test_token_without_subject_is_rejected():
    token = jwt.encode({"type": "access"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    with pytest.raises(Unauthorized):
        verify_token(token)
