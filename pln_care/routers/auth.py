# pln_care/routers/auth.py
from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ..audit import log_activity
from ..db import get_db
from ..config import Settings
from ..deps import get_current_user, get_settings
from ..enums import Role
from ..models.user import User
from ..schemas.auth import RegisterIn, UserLogin, UserOut, Token
from ..security import verify_password, get_password_hash, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    # Self-registration always yields a field officer; admins create other roles
    existing = db.query(User).filter(User.email == payload.email.lower()).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        hashed_password=get_password_hash(payload.password),
        role=Role.PETUGAS_LAPANGAN,
        is_active=True,
    )
    db.add(user)
    db.flush()
    log_activity(db, user, "REGISTER", f"User {user.name} registered")
    db.commit()
    db.refresh(user)
    logger.info("User %s registered", user.email)
    return user

@router.post("/login", response_model=Token)
def login(
    payload: UserLogin,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user: Optional[User] = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        logger.info("Failed login for %s", payload.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is inactive")
    token = create_access_token({"sub": user.id, "role": Role(user.role).value}, settings)

    log_activity(db, user, "LOGIN", f"User {user.name} logged in", client_ip(request))
    db.commit()
    return Token(access_token=token, user=UserOut.model_validate(user))

@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user

@router.post("/logout")
def logout(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # Tokens are stateless; logout only leaves a trace in the activity log
    log_activity(db, current_user, "LOGOUT", f"User {current_user.name} logged out", client_ip(request))
    db.commit()
    return {"message": "Logout successful"}
