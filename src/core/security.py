"""Owner session token management.

Session tokens are issued by the dashboard's auth service and verified
here before any teardown is allowed.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from src.config import settings

DEFAULT_SESSION_LIFETIME = timedelta(hours=24)


def create_access_token(
    owner_id: str,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed session token for ``owner_id``.

    Args:
        owner_id: Account identifier, stored as ``sub``
        email: Optional account email
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": owner_id,
        "iat": now,
        "exp": now + (expires_delta or DEFAULT_SESSION_LIFETIME),
        "type": "access",
    }
    if email:
        payload["email"] = email

    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a session token.

    Returns:
        Token payload dict if valid, None if invalid, expired or not an
        access token
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    if payload.get("type") != "access" or not payload.get("sub"):
        return None

    return payload


class TokenData:
    """Parsed token data for type safety."""

    def __init__(self, payload: dict):
        self.owner_id: str = str(payload["sub"])
        self.email: str | None = payload.get("email")
        self.exp: datetime = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
