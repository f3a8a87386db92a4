"""Unauthenticated endpoints: file a complaint and track it by ticket."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..deps import get_lifecycle, get_settings
from ..enums import ComplaintStatus
from ..errors import ValidationFailed
from ..lifecycle import ComplaintLifecycle
from ..models.complaint import Complaint
from ..schemas.public import (
    PublicComplaintCreate,
    PublicComplaintCreated,
    PublicComplaintView,
    PublicOfficer,
    PublicStats,
    PublicWorkReport,
    StatusInfo,
    TimelineEntry,
)
from ..status_info import get_status_info
from .auth import client_ip

router = APIRouter(prefix="/public", tags=["Public"])


def _public_view(complaint: Complaint) -> PublicComplaintView:
    # Reporter contact data and internal ids never leave through here
    officer = complaint.officer
    report = complaint.work_report
    return PublicComplaintView(
        ticket_number=complaint.ticket_number,
        title=complaint.title,
        description=complaint.description,
        location=complaint.location,
        status=complaint.status,
        priority=complaint.priority,
        images=complaint.images or [],
        assigned_officer=PublicOfficer(name=officer.name, phone=officer.phone) if officer else None,
        created_at=complaint.created_at,
        updated_at=complaint.updated_at,
        resolved_at=complaint.resolved_at,
        timeline=[
            TimelineEntry(
                message=u.message,
                status=u.status,
                images=u.images or [],
                created_at=u.created_at,
            )
            for u in reversed(complaint.updates)
        ],
        work_report=PublicWorkReport(
            work_description=report.work_description,
            work_start_time=report.work_start_time,
            work_end_time=report.work_end_time,
            before_photos=report.before_photos or [],
            after_photos=report.after_photos or [],
            status=report.review_status,
            submitted_at=report.submitted_at,
        )
        if report
        else None,
        status_info=StatusInfo(**get_status_info(complaint.status)),
    )


@router.post("/complaints", response_model=PublicComplaintCreated, status_code=status.HTTP_201_CREATED)
def create_public_complaint(
    payload: PublicComplaintCreate,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    if len(payload.images) > settings.MAX_COMPLAINT_IMAGES:
        raise ValidationFailed(f"Maksimal {settings.MAX_COMPLAINT_IMAGES} foto")

    complaint = lifecycle.create_complaint(payload.model_dump(), reporter=None, ip_address=client_ip(request))
    db.commit()
    db.refresh(complaint)
    return PublicComplaintCreated(
        ticket_number=complaint.ticket_number,
        complaint_id=complaint.id,
        status=complaint.status,
        created_at=complaint.created_at,
        tracking_url=f"/track/{complaint.ticket_number}",
    )


@router.get("/complaints/{ticket_number}", response_model=PublicComplaintView)
def track_complaint(
    ticket_number: str,
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    return _public_view(lifecycle.get_complaint_by_ticket(ticket_number))


@router.get("/stats", response_model=PublicStats)
def public_stats(db: Session = Depends(get_db)):
    q = db.query(Complaint).filter(Complaint.is_public == True)  # noqa: E712
    total = q.count()
    resolved = q.filter(Complaint.status == ComplaintStatus.RESOLVED).count()
    rate = round(resolved / total * 100, 1) if total else 0.0
    return PublicStats(total_complaints=total, resolved_complaints=resolved, resolution_rate=rate)
