from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from sqlalchemy.orm import Session

from .config import Settings
from .db import get_db
from .enums import Capability, has_capability
from .lifecycle import ComplaintLifecycle
from .models.user import User
from .schemas.auth import TokenPayload
from .security import decode_access_token, oauth2_scheme


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        token_data = TokenPayload(**decode_access_token(token, settings))
    except (JWTError, ValueError):
        raise credentials_exception

    user = db.get(User, token_data.sub)
    if user is None or not user.is_active:
        raise credentials_exception
    return user


def require_capability(capability: Capability) -> Callable[[User], User]:
    def _wrapper(current_user: User = Depends(get_current_user)) -> User:
        if not has_capability(current_user.role, capability):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return current_user

    return _wrapper


def get_lifecycle(db: Session = Depends(get_db)) -> ComplaintLifecycle:
    return ComplaintLifecycle(db)
