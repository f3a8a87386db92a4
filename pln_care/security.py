"""Password hashing, the new-password rule and the bearer tokens issued at login."""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional

from fastapi.security import OAuth2PasswordBearer
from jose import jwt
from passlib.context import CryptContext

from .config import Settings, settings as default_settings
from .errors import ValidationFailed

MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def check_new_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")


def create_access_token(
    data: Dict[str, Any],
    settings: Optional[Settings] = None,
    expires_delta: Optional[dt.timedelta] = None,
) -> str:
    settings = settings or default_settings
    lifetime = expires_delta or dt.timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": dt.datetime.now(dt.timezone.utc) + lifetime}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Raises ``jose.JWTError`` for a bad signature or an expired token."""
    settings = settings or default_settings
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
