"""Auth service (JWT access/refresh tokens, password hashing).

Token helpers take the Settings instance owned by the application (app.state.settings).
"""
import secrets
from datetime import datetime, timedelta, timezone
import bcrypt
import jwt
from app.config import Settings
from app.models.user import UserRole

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def _pwd_bytes(password: str, max_len: int = 72) -> bytes:
    return password.encode("utf-8")[:max_len]


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_pwd_bytes(plain), hashed.encode("utf-8"))
    except Exception:
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_pwd_bytes(password), bcrypt.gensalt()).decode("utf-8")


def _encode(payload: dict, secret: str, algorithm: str) -> str:
    raw = jwt.encode(payload, secret, algorithm=algorithm)
    return raw if isinstance(raw, str) else raw.decode("utf-8")


def create_access_token(user_id: int, role: UserRole | str, settings: Settings) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    role_value = role.value if isinstance(role, UserRole) else str(role)
    # PyJWT expects "sub" to be a string
    payload = {"sub": str(user_id), "role": role_value, "type": ACCESS_TOKEN_TYPE, "exp": expire}
    return _encode(payload, settings.jwt_secret_key, settings.jwt_algorithm)


def create_refresh_token(user_id: int, settings: Settings) -> tuple[str, datetime]:
    """Signed refresh token plus its expiry (naive UTC, as stored on the user row)."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_expire_days)
    payload = {
        "sub": str(user_id),
        "jti": secrets.token_hex(32),
        "type": REFRESH_TOKEN_TYPE,
        "exp": expire,
    }
    return _encode(payload, settings.refresh_secret, settings.jwt_algorithm), expire.replace(tzinfo=None)


def decode_token_with_error(
    token: str, secret: str, token_type: str, algorithm: str = "HS256"
) -> tuple[dict | None, str | None]:
    """Decode JWT; returns (payload, error_message)."""
    if not token or not isinstance(token, str):
        return None, "empty token"
    token = token.strip()
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError as e:
        return None, str(e)
    except jwt.PyJWTError as e:
        return None, str(e)
    if payload.get("type") != token_type:
        return None, f"expected {token_type} token"
    return payload, None


def verify_access_token(token: str | None, settings: Settings) -> dict | None:
    payload, _ = decode_token_with_error(token, settings.jwt_secret_key, ACCESS_TOKEN_TYPE, settings.jwt_algorithm)
    return payload


def verify_refresh_token(token: str | None, settings: Settings) -> dict | None:
    payload, _ = decode_token_with_error(token, settings.refresh_secret, REFRESH_TOKEN_TYPE, settings.jwt_algorithm)
    return payload


def user_id_from_payload(payload: dict | None) -> int | None:
    if not payload:
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None


def refresh_token_matches(stored: str | None, presented: str) -> bool:
    if not stored:
        return False
    return secrets.compare_digest(stored, presented)
