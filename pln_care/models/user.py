# pln_care/models/user.py
from __future__ import annotations

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Enum
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func

from ..db import Base
from ..enums import Role


class User(Base):
    __tablename__ = "users"

    id = Column(
        String,
        primary_key=True,
        index=True,
        default=lambda: str(uuid.uuid4()),
    )
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)

    role = Column(
        Enum(Role, native_enum=False, length=32),
        nullable=False,
        default=Role.PETUGAS_LAPANGAN,
    )

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Deleting a user keeps the complaints and audit rows; the links are nulled.
    reported_complaints = relationship(
        "Complaint",
        back_populates="reporter",
        foreign_keys="Complaint.reporter_id",
    )
    assigned_complaints = relationship(
        "Complaint",
        back_populates="officer",
        foreign_keys="Complaint.assigned_to",
    )
    reviewed_reports = relationship("WorkReport", back_populates="reviewer")
    activity_logs = relationship("ActivityLog", back_populates="user")

    @validates("email")
    def normalize_email(self, key, value: str) -> str:
        return value.strip().lower()
