from __future__ import annotations

from typing import Optional

from pydantic import EmailStr

from . import CamelModel, NonEmptyStr
from ..enums import Role
from .auth import UserOut


class UserCreate(CamelModel):
    name: NonEmptyStr
    email: EmailStr
    password: NonEmptyStr
    phone: Optional[str] = None
    role: Role = Role.PETUGAS_LAPANGAN


class UserUpdate(CamelModel):
    name: Optional[NonEmptyStr] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    # admin only; ignored for self-service updates
    is_active: Optional[bool] = None
    role: Optional[Role] = None


class PasswordChangeIn(CamelModel):
    current_password: str
    new_password: str


class UserWithCounts(UserOut):
    complaint_count: int = 0
    assigned_count: int = 0
