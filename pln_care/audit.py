from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from .models.activity import ActivityLog
from .models.user import User


def log_activity(
    db: Session,
    user: Optional[User],
    action: str,
    details: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> ActivityLog:
    """Stage an activity row in the caller's transaction."""
    entry = ActivityLog(
        user_id=user.id if user is not None else None,
        action=action,
        details=details,
        ip_address=ip_address,
    )
    db.add(entry)
    return entry
