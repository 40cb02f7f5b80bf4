"""JWT handling for student identity.

Tokens are issued by the external auth service and carry the student id in
``sub``. ``create_token`` mints the same shape for service-to-service calls
and tests.
"""
from datetime import datetime, timezone, timedelta

import jwt

from unipilot.core.settings import settings


def create_token(student_id: int, email: str = "", *, expires_in: timedelta | None = None) -> str:
    issued = datetime.now(timezone.utc)
    lifetime = expires_in if expires_in is not None else timedelta(minutes=settings.jwt_expire_minutes)
    claims = {"sub": str(student_id), "iat": issued, "exp": issued + lifetime}
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None


def student_id_from_token(token: str) -> int | None:
    """Verified student id, or None for a bad signature, expiry or a non-integer ``sub``."""
    claims = decode_token(token)
    if not claims:
        return None
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None
