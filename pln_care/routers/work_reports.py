from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session, joinedload

from ..db import get_db
from ..deps import get_current_user, get_lifecycle, require_capability
from ..enums import Capability, ReviewStatus, has_capability
from ..lifecycle import ComplaintLifecycle
from ..models.complaint import Complaint, WorkReport
from ..models.user import User
from ..schemas.complaints import WorkReportWithComplaint
from ..schemas.work_reports import ReviewIn, WorkReportCreate, WorkReportUpdate

router = APIRouter(prefix="/work-reports", tags=["Work reports"])


# 1) Officer submits the report for a complaint they worked on
@router.post("", response_model=WorkReportWithComplaint, status_code=status.HTTP_201_CREATED)
def submit_work_report(
    payload: WorkReportCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    complaint = lifecycle.get_complaint(payload.complaint_id)
    report = lifecycle.submit_work_report(complaint, payload.model_dump(), actor)
    db.commit()
    db.refresh(report)
    return WorkReportWithComplaint.model_validate(report)


# 2) Officer edits a report that is still pending or sent back
@router.put("/{report_id}", response_model=WorkReportWithComplaint)
def update_work_report(
    report_id: str,
    payload: WorkReportUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    report = lifecycle.get_work_report(report_id)
    lifecycle.revise_work_report(report, payload.model_dump(exclude_unset=True), actor)
    db.commit()
    db.refresh(report)
    return WorkReportWithComplaint.model_validate(report)


# 3) List (admins: all, officers: reports on their assignments)
@router.get("", response_model=List[WorkReportWithComplaint])
def list_work_reports(
    status: Optional[ReviewStatus] = None,
    complaint_id: Optional[str] = Query(None, alias="complaintId"),
    db: Session = Depends(get_db),
    actor: User = Depends(require_capability(Capability.SUBMIT_WORK_REPORTS)),
):
    q = (
        db.query(WorkReport)
        .join(Complaint, WorkReport.complaint_id == Complaint.id)
        .options(joinedload(WorkReport.complaint), joinedload(WorkReport.reviewer))
    )
    if not has_capability(actor.role, Capability.READ_ALL_COMPLAINTS):
        q = q.filter(Complaint.assigned_to == actor.id)
    if status:
        q = q.filter(WorkReport.review_status == status)
    if complaint_id:
        q = q.filter(WorkReport.complaint_id == complaint_id)

    rows = q.order_by(WorkReport.submitted_at.desc()).all()
    return [WorkReportWithComplaint.model_validate(r) for r in rows]


# 4) Detail
@router.get("/{report_id}", response_model=WorkReportWithComplaint)
def get_work_report(
    report_id: str,
    actor: User = Depends(require_capability(Capability.SUBMIT_WORK_REPORTS)),
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    report = lifecycle.get_work_report(report_id)
    lifecycle.authorize_read(report.complaint, actor)
    return WorkReportWithComplaint.model_validate(report)


# 5) Admin verdict
@router.post("/{report_id}/review", response_model=WorkReportWithComplaint)
def review_work_report(
    report_id: str,
    payload: ReviewIn,
    db: Session = Depends(get_db),
    actor: User = Depends(require_capability(Capability.REVIEW_WORK_REPORTS)),
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    report = lifecycle.get_work_report(report_id)
    lifecycle.review_work_report(report, payload.review_status, actor, review_notes=payload.review_notes)
    db.commit()
    db.refresh(report)
    return WorkReportWithComplaint.model_validate(report)
