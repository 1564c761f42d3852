from datetime import datetime, timedelta

import jwt

from app.config import Settings, get_settings
from app.models.user import UserRole
from app.services.auth import (
    create_access_token,
    create_refresh_token,
    get_password_hash,
    refresh_token_matches,
    user_id_from_payload,
    verify_access_token,
    verify_password,
    verify_refresh_token,
)

SETTINGS = get_settings()


def test_password_hash_round_trip():
    hashed = get_password_hash("secret1")
    assert hashed != "secret1"
    assert verify_password("secret1", hashed)
    assert not verify_password("secret2", hashed)


def test_verify_password_never_raises():
    assert verify_password("secret1", None) is False
    assert verify_password("secret1", "not-a-bcrypt-hash") is False


def test_access_token_claims():
    payload = verify_access_token(create_access_token(42, UserRole.vendor, SETTINGS), SETTINGS)
    assert payload["sub"] == "42"
    assert payload["role"] == "vendor"
    assert payload["type"] == "access"
    assert user_id_from_payload(payload) == 42


def test_refresh_token_has_random_id_and_expiry():
    token_a, expires_at = create_refresh_token(7, SETTINGS)
    token_b, _ = create_refresh_token(7, SETTINGS)
    assert token_a != token_b
    assert expires_at.tzinfo is None
    assert timedelta(days=6, hours=23) < expires_at - datetime.utcnow() <= timedelta(days=7)
    payload = verify_refresh_token(token_a, SETTINGS)
    assert payload["type"] == "refresh"
    assert len(payload["jti"]) == 64


def test_token_types_are_not_interchangeable():
    access = create_access_token(1, UserRole.buyer, SETTINGS)
    refresh, _ = create_refresh_token(1, SETTINGS)
    assert verify_refresh_token(access, SETTINGS) is None
    assert verify_access_token(refresh, SETTINGS) is None


def test_tampered_or_empty_tokens_are_rejected():
    forged = jwt.encode({"sub": "1", "role": "admin", "type": "access"}, "wrong-secret", algorithm="HS256")
    assert verify_access_token(forged, SETTINGS) is None
    assert verify_access_token("", SETTINGS) is None
    assert verify_access_token(None, SETTINGS) is None
    assert user_id_from_payload(None) is None


def test_refresh_token_matches_stored_value():
    assert refresh_token_matches("abc", "abc")
    assert not refresh_token_matches("abc", "abd")
    assert not refresh_token_matches(None, "abc")


def test_tokens_are_bound_to_the_settings_that_signed_them():
    rotated = Settings(jwt_secret_key="rotated-access-secret", refresh_secret_key="rotated-refresh-secret")
    access = create_access_token(5, UserRole.buyer, rotated)
    refresh, _ = create_refresh_token(5, rotated)
    assert verify_access_token(access, SETTINGS) is None
    assert verify_refresh_token(refresh, SETTINGS) is None
    assert user_id_from_payload(verify_access_token(access, rotated)) == 5
    assert user_id_from_payload(verify_refresh_token(refresh, rotated)) == 5


def test_refresh_secret_falls_back_to_access_secret():
    shared = Settings(jwt_secret_key="only-secret", refresh_secret_key="")
    refresh, _ = create_refresh_token(3, shared)
    assert jwt.decode(refresh, "only-secret", algorithms=["HS256"])["sub"] == "3"
