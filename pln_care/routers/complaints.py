# pln_care/routers/complaints.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session, joinedload

from ..audit import log_activity
from ..db import get_db
from ..deps import get_current_user, get_lifecycle, require_capability
from ..enums import Capability, ComplaintStatus, Priority, Role, TERMINAL_STATUSES, has_capability
from ..errors import AccessDenied
from ..lifecycle import ComplaintLifecycle
from ..models.complaint import Complaint
from ..models.user import User
from ..schemas.complaints import (
    AssignIn,
    ComplaintCreate,
    ComplaintDetail,
    ComplaintEdit,
    ComplaintOut,
    ComplaintOverview,
    ComplaintStats,
    ComplaintUpdateOut,
    NoteIn,
    StatusIn,
)
from .auth import client_ip

router = APIRouter(prefix="/complaints", tags=["Complaints"])

# Everything that is neither waiting for triage nor finished
IN_PROGRESS_STATUSES = sorted(
    set(ComplaintStatus) - TERMINAL_STATUSES - {ComplaintStatus.PENDING},
    key=lambda s: s.value,
)


def _scoped_query(db: Session, actor: User):
    """Complaints the actor may see: all for admins, own assignments for officers."""
    q = db.query(Complaint)
    if has_capability(actor.role, Capability.READ_ALL_COMPLAINTS):
        return q
    if has_capability(actor.role, Capability.WORK_ASSIGNED_COMPLAINTS):
        return q.filter(Complaint.assigned_to == actor.id)
    raise AccessDenied("Access denied")


def _detail(complaint: Complaint) -> ComplaintDetail:
    detail = ComplaintDetail.model_validate(complaint)
    # newest first, as the dashboard timeline expects
    return detail.model_copy(update={"updates": list(reversed(detail.updates))})


def _stats(q) -> dict:
    return {
        "total_complaints": q.count(),
        "pending_complaints": q.filter(Complaint.status == ComplaintStatus.PENDING).count(),
        "in_progress_complaints": q.filter(Complaint.status.in_(IN_PROGRESS_STATUSES)).count(),
        "resolved_complaints": q.filter(Complaint.status == ComplaintStatus.RESOLVED).count(),
    }


# 1) List complaints (filters: status, priority, assignedTo, limit)
@router.get("", response_model=List[ComplaintOut])
def list_complaints(
    status: Optional[ComplaintStatus] = None,
    priority: Optional[Priority] = None,
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    q = _scoped_query(db, actor).options(
        joinedload(Complaint.reporter), joinedload(Complaint.officer)
    )
    if status:
        q = q.filter(Complaint.status == status)
    if priority:
        q = q.filter(Complaint.priority == priority)
    # officers are already pinned to their own assignments
    if assigned_to and has_capability(actor.role, Capability.READ_ALL_COMPLAINTS):
        q = q.filter(Complaint.assigned_to == assigned_to)

    q = q.order_by(Complaint.created_at.desc())
    if limit:
        q = q.limit(limit)
    return [ComplaintOut.model_validate(c) for c in q.all()]


# 2) Counters for the dashboard cards
@router.get("/stats", response_model=ComplaintStats)
def complaint_stats(
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    stats = _stats(_scoped_query(db, actor))
    if actor.role == Role.PETUGAS_LAPANGAN:
        stats["my_assigned_tasks"] = stats["total_complaints"]
    return ComplaintStats(**stats)


@router.get(
    "/stats/overview",
    response_model=ComplaintOverview,
    dependencies=[Depends(require_capability(Capability.READ_ALL_COMPLAINTS))],
)
def complaint_overview(db: Session = Depends(get_db)):
    return ComplaintOverview(
        **_stats(db.query(Complaint)),
        total_users=db.query(User).count(),
        total_petugas=db.query(User).filter(User.role == Role.PETUGAS_LAPANGAN).count(),
    )


# 3) Detail with timeline and work report
@router.get("/{complaint_id}", response_model=ComplaintDetail)
def get_complaint(
    complaint_id: str,
    actor: User = Depends(get_current_user),
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    complaint = lifecycle.get_complaint(complaint_id)
    lifecycle.authorize_read(complaint, actor)
    return _detail(complaint)


# 4) Internal complaint (logged-in staff)
@router.post("", response_model=ComplaintDetail, status_code=status.HTTP_201_CREATED)
def create_complaint(
    payload: ComplaintCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    complaint = lifecycle.create_complaint(payload.model_dump(), reporter=actor, ip_address=client_ip(request))
    db.commit()
    db.refresh(complaint)
    return _detail(complaint)


# 5) Administrative edit
@router.put("/{complaint_id}", response_model=ComplaintDetail)
def update_complaint(
    complaint_id: str,
    payload: ComplaintEdit,
    db: Session = Depends(get_db),
    actor: User = Depends(require_capability(Capability.MANAGE_COMPLAINTS)),
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    complaint = lifecycle.get_complaint(complaint_id)

    edits = payload.model_dump(
        exclude_unset=True,
        exclude={"status", "assigned_to", "message"},
    )
    for key, value in edits.items():
        if value is None and key in ("title", "description", "location", "priority"):
            continue
        setattr(complaint, key, value)

    if payload.assigned_to and payload.assigned_to != complaint.assigned_to:
        lifecycle.assign(complaint, payload.assigned_to, actor)
    if payload.status and payload.status != complaint.status:
        lifecycle.change_status(complaint, payload.status, actor, message=payload.message)

    log_activity(db, actor, "UPDATE_COMPLAINT", f"Updated complaint {complaint.ticket_number}")
    db.commit()
    db.refresh(complaint)
    return _detail(complaint)


# 6) Assign a field officer
@router.post("/{complaint_id}/assign", response_model=ComplaintDetail)
def assign_complaint(
    complaint_id: str,
    payload: AssignIn,
    db: Session = Depends(get_db),
    actor: User = Depends(require_capability(Capability.ASSIGN_OFFICERS)),
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    complaint = lifecycle.get_complaint(complaint_id)
    lifecycle.assign(complaint, payload.assigned_to, actor)
    db.commit()
    db.refresh(complaint)
    return _detail(complaint)


# 7) Status update (officer on own assignment, or admin)
@router.put("/{complaint_id}/status", response_model=ComplaintDetail)
def update_complaint_status(
    complaint_id: str,
    payload: StatusIn,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    complaint = lifecycle.get_complaint(complaint_id)
    lifecycle.change_status(complaint, payload.status, actor, message=payload.message)
    db.commit()
    db.refresh(complaint)
    return _detail(complaint)


# 8) Timeline entry with explicit message
@router.post(
    "/{complaint_id}/updates",
    response_model=ComplaintUpdateOut,
    status_code=status.HTTP_201_CREATED,
)
def add_complaint_update(
    complaint_id: str,
    payload: NoteIn,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    complaint = lifecycle.get_complaint(complaint_id)
    update = lifecycle.change_status(
        complaint,
        payload.status,
        actor,
        message=payload.message,
        images=payload.images,
    )
    db.commit()
    db.refresh(update)
    return ComplaintUpdateOut.model_validate(update)


# 9) Delete (cascades timeline and work report)
@router.delete("/{complaint_id}")
def delete_complaint(
    complaint_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(require_capability(Capability.MANAGE_COMPLAINTS)),
    lifecycle: ComplaintLifecycle = Depends(get_lifecycle),
):
    complaint = lifecycle.get_complaint(complaint_id)
    lifecycle.delete_complaint(complaint, actor)
    db.commit()
    return {"message": "Complaint deleted successfully"}
