from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from . import CamelModel, NonEmptyStr
from ..enums import ComplaintStatus, Priority, ReviewStatus
from .complaints import ComplaintCreate

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class PublicComplaintCreate(ComplaintCreate):
    reporter_name: NonEmptyStr
    reporter_email: NonEmptyStr
    reporter_phone: NonEmptyStr

    @field_validator("reporter_email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if not EMAIL_RE.match(value):
            raise ValueError("Format email tidak valid")
        return value


class PublicComplaintCreated(CamelModel):
    ticket_number: str
    complaint_id: str
    status: ComplaintStatus
    created_at: datetime
    tracking_url: str


class StatusInfo(CamelModel):
    label: str
    description: str
    color: str


class PublicOfficer(CamelModel):
    name: str
    phone: Optional[str] = None


class TimelineEntry(CamelModel):
    message: str
    status: ComplaintStatus
    images: List[str] = Field(default_factory=list)
    created_at: datetime


class PublicWorkReport(CamelModel):
    work_description: str
    work_start_time: datetime
    work_end_time: datetime
    before_photos: List[str] = Field(default_factory=list)
    after_photos: List[str] = Field(default_factory=list)
    status: ReviewStatus
    submitted_at: datetime


class PublicComplaintView(CamelModel):
    """What anyone holding the ticket number may see."""

    ticket_number: str
    title: str
    description: str
    location: str
    status: ComplaintStatus
    priority: Priority
    images: List[str] = Field(default_factory=list)
    assigned_officer: Optional[PublicOfficer] = None
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
    timeline: List[TimelineEntry] = Field(default_factory=list)
    work_report: Optional[PublicWorkReport] = None
    status_info: StatusInfo


class PublicStats(CamelModel):
    total_complaints: int
    resolved_complaints: int
    resolution_rate: float
