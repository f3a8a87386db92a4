# pln_care/schemas/auth.py
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr

from . import CamelModel, NonEmptyStr
from ..enums import Role

# Note: password strength is enforced in frontend; backend only checks length on change.

class RegisterIn(CamelModel):
    name: NonEmptyStr
    email: EmailStr
    password: NonEmptyStr
    phone: Optional[str] = None

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserBrief(CamelModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None

class UserOut(CamelModel):
    id: str
    email: str
    name: str
    phone: Optional[str] = None
    role: Role
    is_active: bool
    created_at: datetime


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut

class TokenPayload(BaseModel):
    sub: str
    role: str
    exp: int
