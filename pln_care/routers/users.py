# pln_care/routers/users.py
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..audit import log_activity
from ..db import get_db
from ..deps import get_current_user, require_capability
from ..enums import Capability, Role, TERMINAL_STATUSES, has_capability
from ..models.complaint import Complaint
from ..models.user import User
from ..schemas.auth import UserOut
from ..schemas.users import PasswordChangeIn, UserCreate, UserUpdate, UserWithCounts
from ..security import check_new_password, get_password_hash, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


# ---------- Helpers ----------
def _count_admins(db: Session) -> int:
    return db.query(User).filter(User.role == Role.ADMIN_UTAMA, User.is_active == True).count()  # noqa: E712

def _open_assignments(db: Session, user_id: str) -> int:
    return (
        db.query(Complaint)
        .filter(Complaint.assigned_to == user_id, Complaint.status.notin_(list(TERMINAL_STATUSES)))
        .count()
    )

def _get_user_or_404(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user

def _check_self_or_admin(actor: User, user_id: str) -> None:
    if actor.id != user_id and not has_capability(actor.role, Capability.MANAGE_USERS):
        raise HTTPException(status_code=403, detail="Access denied")

def _with_counts(db: Session, users: List[User]) -> List[UserWithCounts]:
    ids = [u.id for u in users]
    reported = dict(
        db.query(Complaint.reporter_id, func.count(Complaint.id))
        .filter(Complaint.reporter_id.in_(ids))
        .group_by(Complaint.reporter_id)
        .all()
    ) if ids else {}
    assigned = dict(
        db.query(Complaint.assigned_to, func.count(Complaint.id))
        .filter(Complaint.assigned_to.in_(ids))
        .group_by(Complaint.assigned_to)
        .all()
    ) if ids else {}
    return [
        UserWithCounts.model_validate(u).model_copy(
            update={
                "complaint_count": reported.get(u.id, 0),
                "assigned_count": assigned.get(u.id, 0),
            }
        )
        for u in users
    ]


# ---------- Routes ----------
@router.get(
    "",
    response_model=List[UserWithCounts],
    dependencies=[Depends(require_capability(Capability.MANAGE_USERS))],
)
def list_users(db: Session = Depends(get_db)):
    users = db.query(User).order_by(User.created_at.desc()).all()
    return _with_counts(db, users)


@router.get("/{user_id}", response_model=UserWithCounts)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    _check_self_or_admin(actor, user_id)
    user = _get_user_or_404(db, user_id)
    return _with_counts(db, [user])[0]


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_capability(Capability.MANAGE_USERS)),
):
    existing = db.query(User).filter(User.email == payload.email.lower()).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already exists")

    user = User(
        email=payload.email,
        name=payload.name,
        phone=payload.phone,
        hashed_password=get_password_hash(payload.password),
        role=payload.role,
        is_active=True,
    )
    db.add(user)
    log_activity(db, actor, "CREATE_USER", f"Admin created user {user.name} ({user.role.value})")
    db.commit()
    db.refresh(user)
    logger.info("User %s created by %s", user.email, actor.email)
    return user


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: str,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    _check_self_or_admin(actor, user_id)
    target = _get_user_or_404(db, user_id)

    if payload.email is not None and payload.email.lower() != target.email:
        taken = db.query(User).filter(User.email == payload.email.lower()).first()
        if taken:
            raise HTTPException(status_code=400, detail="Email already exists")
        target.email = payload.email
    if payload.name is not None:
        target.name = payload.name
    if payload.phone is not None:
        target.phone = payload.phone

    # Only admins change role / active flag; silently ignored for self-service
    if has_capability(actor.role, Capability.MANAGE_USERS):
        demoting = payload.role is not None and payload.role != Role.ADMIN_UTAMA
        deactivating = payload.is_active is False
        if target.role == Role.ADMIN_UTAMA and target.is_active and (demoting or deactivating):
            if _count_admins(db) <= 1:
                raise HTTPException(status_code=400, detail="Cannot demote or deactivate the last active admin")
        leaving_field = (
            payload.role is not None
            and target.role == Role.PETUGAS_LAPANGAN
            and payload.role != Role.PETUGAS_LAPANGAN
        )
        if leaving_field and _open_assignments(db, target.id):
            raise HTTPException(
                status_code=400,
                detail="Officer still has open assigned complaints; reassign them before changing the role",
            )
        if payload.role is not None:
            target.role = payload.role
        if payload.is_active is not None:
            target.is_active = payload.is_active

    log_activity(db, actor, "UPDATE_USER", f"User {target.name} updated")
    db.commit()
    db.refresh(target)
    return target


@router.put("/{user_id}/change-password")
def change_password(
    user_id: str,
    payload: PasswordChangeIn,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    if actor.id != user_id:
        raise HTTPException(status_code=403, detail="You can only change your own password")
    check_new_password(payload.new_password)
    if not verify_password(payload.current_password, actor.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    actor.hashed_password = get_password_hash(payload.new_password)
    log_activity(db, actor, "CHANGE_PASSWORD", "User changed password")
    db.commit()
    return {"message": "Password changed successfully"}


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(require_capability(Capability.MANAGE_USERS)),
):
    if actor.id == user_id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")
    target = _get_user_or_404(db, user_id)

    # complaints, reviews and activity rows stay; their user links are nulled
    db.delete(target)
    log_activity(db, actor, "DELETE_USER", f"Admin deleted user {target.email}")
    db.commit()
    logger.info("User %s deleted by %s", target.email, actor.email)
    return {"message": "User deleted successfully"}
