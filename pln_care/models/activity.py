from __future__ import annotations

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..db import Base
from ..utils import utcnow


class ActivityLog(Base):
    """
    Who did what. Written alongside every user action, never read back by
    business logic.
    """

    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    # Null for anonymous public submissions and after the user is deleted.
    user_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    action = Column(String, nullable=False)  # e.g. LOGIN / ASSIGN_COMPLAINT / REVIEW_WORK_REPORT
    details = Column(Text, nullable=True)
    ip_address = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="activity_logs")
