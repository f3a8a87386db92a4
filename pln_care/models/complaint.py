# pln_care/models/complaint.py
from __future__ import annotations

import uuid

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    JSON,
    Text,
)
from sqlalchemy.orm import relationship

from ..db import Base
from ..enums import ComplaintStatus, Priority, ReviewStatus
from ..utils import utcnow


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------- Complaints ----------

class Complaint(Base):
    """
    A reported cable/infrastructure fault.

    Internal complaints link ``reporter``; public ones carry the reporter's
    name/email/phone inline and have ``is_public`` set.
    """

    __tablename__ = "complaints"

    id = Column(String, primary_key=True, index=True, default=_uuid)
    ticket_number = Column(String(20), unique=True, nullable=False, index=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    priority = Column(
        Enum(Priority, native_enum=False, length=16),
        nullable=False,
        default=Priority.MEDIUM,
    )
    # PENDING → ASSIGNED → ON_THE_WAY → WORKING → COMPLETED → RESOLVED
    status = Column(
        Enum(ComplaintStatus, native_enum=False, length=32),
        nullable=False,
        default=ComplaintStatus.PENDING,
        index=True,
    )

    is_public = Column(Boolean, nullable=False, default=False)
    reporter_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reporter_name = Column(String, nullable=True)
    reporter_email = Column(String, nullable=True)
    reporter_phone = Column(String, nullable=True)

    assigned_to = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Encoded photo payloads (data URLs), in upload order
    images = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    reporter = relationship(
        "User",
        back_populates="reported_complaints",
        foreign_keys=[reporter_id],
    )
    officer = relationship(
        "User",
        back_populates="assigned_complaints",
        foreign_keys=[assigned_to],
    )

    updates = relationship(
        "ComplaintUpdate",
        back_populates="complaint",
        cascade="all, delete-orphan",
        order_by="ComplaintUpdate.id",
    )
    work_report = relationship(
        "WorkReport",
        back_populates="complaint",
        cascade="all, delete-orphan",
        uselist=False,
    )


class ComplaintUpdate(Base):
    """
    Timeline entry. Appended on every status change or note, never edited.
    """

    __tablename__ = "complaint_updates"

    id = Column(Integer, primary_key=True, index=True)
    complaint_id = Column(String, ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False, index=True)

    message = Column(Text, nullable=False)
    status = Column(Enum(ComplaintStatus, native_enum=False, length=32), nullable=False)
    images = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    complaint = relationship("Complaint", back_populates="updates")


# ---------- Work reports ----------

class WorkReport(Base):
    """
    Officer's report of the repair; an admin approves, rejects or sends it
    back for revision. One per complaint.
    """

    __tablename__ = "work_reports"

    id = Column(String, primary_key=True, index=True, default=_uuid)
    complaint_id = Column(
        String,
        ForeignKey("complaints.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    work_start_time = Column(DateTime(timezone=True), nullable=False)
    work_end_time = Column(DateTime(timezone=True), nullable=False)
    work_description = Column(Text, nullable=False)
    materials_used = Column(JSON, nullable=False, default=list)

    labor_cost = Column(Float, nullable=True)
    material_cost = Column(Float, nullable=True)
    total_cost = Column(Float, nullable=False, default=0.0)

    notes = Column(Text, nullable=True)
    technician_notes = Column(Text, nullable=True)
    before_photos = Column(JSON, nullable=False, default=list)
    after_photos = Column(JSON, nullable=False, default=list)

    review_status = Column(
        Enum(ReviewStatus, native_enum=False, length=32),
        nullable=False,
        default=ReviewStatus.PENDING,
    )
    review_notes = Column(Text, nullable=True)
    reviewed_by = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    submitted_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    complaint = relationship("Complaint", back_populates="work_report")
    reviewer = relationship("User", back_populates="reviewed_reports")


class TicketSequence(Base):
    """Last ticket number handed out per calendar year."""

    __tablename__ = "ticket_sequences"

    year = Column(Integer, primary_key=True, autoincrement=False)
    last_seq = Column(Integer, nullable=False, default=0)
