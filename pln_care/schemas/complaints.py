from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, Field

from . import CamelModel, NonEmptyStr
from ..enums import ComplaintStatus, Priority, ReviewStatus
from .auth import UserBrief


class ComplaintCreate(CamelModel):
    title: NonEmptyStr
    description: NonEmptyStr
    location: NonEmptyStr
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    priority: Optional[Priority] = None
    images: List[str] = Field(default_factory=list)


class ComplaintEdit(CamelModel):
    """Admin edit. ``status``/``assigned_to`` go through the lifecycle."""

    title: Optional[NonEmptyStr] = None
    description: Optional[NonEmptyStr] = None
    location: Optional[NonEmptyStr] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    priority: Optional[Priority] = None
    status: Optional[str] = None
    assigned_to: Optional[str] = None
    message: Optional[str] = None


class AssignIn(CamelModel):
    assigned_to: NonEmptyStr


class StatusIn(CamelModel):
    status: NonEmptyStr
    message: Optional[str] = None


class NoteIn(CamelModel):
    message: NonEmptyStr
    status: NonEmptyStr
    images: List[str] = Field(default_factory=list)


class ComplaintUpdateOut(CamelModel):
    id: int
    message: str
    status: ComplaintStatus
    images: List[str] = Field(default_factory=list)
    created_at: datetime


class ComplaintBrief(CamelModel):
    id: str
    ticket_number: str
    title: str
    location: str
    status: ComplaintStatus
    officer: Optional[UserBrief] = None


class WorkReportOut(CamelModel):
    id: str
    complaint_id: str
    work_start_time: datetime
    work_end_time: datetime
    work_description: str
    materials_used: list = Field(default_factory=list)
    labor_cost: Optional[float] = None
    material_cost: Optional[float] = None
    total_cost: float
    notes: Optional[str] = None
    technician_notes: Optional[str] = None
    before_photos: List[str] = Field(default_factory=list)
    after_photos: List[str] = Field(default_factory=list)
    review_status: ReviewStatus
    review_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    submitted_at: datetime
    updated_at: datetime
    reviewer: Optional[UserBrief] = None


class WorkReportWithComplaint(WorkReportOut):
    complaint: Optional[ComplaintBrief] = None


class ComplaintOut(CamelModel):
    id: str
    ticket_number: str
    title: str
    description: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    priority: Priority
    status: ComplaintStatus
    is_public: bool
    reporter_id: Optional[str] = None
    reporter_name: Optional[str] = None
    reporter_email: Optional[str] = None
    reporter_phone: Optional[str] = None
    assigned_to: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    created_at: datetime
    assigned_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    updated_at: datetime
    reporter: Optional[UserBrief] = None
    assigned_to_user: Optional[UserBrief] = Field(
        default=None, validation_alias=AliasChoices("officer", "assignedToUser")
    )


class ComplaintDetail(ComplaintOut):
    updates: List[ComplaintUpdateOut] = Field(default_factory=list)
    work_report: Optional[WorkReportOut] = None


class ComplaintStats(CamelModel):
    total_complaints: int
    pending_complaints: int
    in_progress_complaints: int
    resolved_complaints: int
    my_assigned_tasks: Optional[int] = None


class ComplaintOverview(ComplaintStats):
    total_users: int
    total_petugas: int
