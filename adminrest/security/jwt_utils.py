"""JWT helpers for the bearer tokens checked by the admin role gate."""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from adminrest.config.settings import Settings, get_settings


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    settings: Optional[Settings] = None,
) -> str:
    """Sign ``data`` (e.g. ``{"sub": user_id, "role": "admin"}``) into a token.

    Tokens expire after 30 minutes unless ``expires_delta`` says otherwise.
    """
    settings = settings or get_settings()
    claims = {**data, "exp": datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=30))}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> Optional[dict]:
    """Claims of a valid token; ``None`` when the signature or expiry check fails."""
    settings = settings or get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
