"""
Complaint lifecycle: who may move a complaint from one status to another,
and what gets written when they do.

Every accepted action stages, in the caller's session, the complaint
change, exactly one ``ComplaintUpdate`` when the status moves (or a note is
added) and one ``ActivityLog`` row. Nothing is committed here; the route
commits once so the three writes land together. All checks run before the
first write.
"""
from __future__ import annotations

import datetime
import logging
from typing import Any, Dict, FrozenSet, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .audit import log_activity
from .enums import (
    Capability,
    ComplaintStatus,
    EDITABLE_REVIEW_STATUSES,
    Priority,
    REVIEW_OUTCOMES,
    ReviewStatus,
    Role,
    has_capability,
)
from .errors import (
    AccessDenied,
    Conflict,
    InvalidStatus,
    InvalidTransition,
    NotFound,
    NotModifiable,
    ValidationFailed,
)
from .models.complaint import Complaint, ComplaintUpdate, WorkReport
from .models.user import User
from .status_info import get_status_info
from .tickets import MAX_TICKET_ATTEMPTS, next_ticket_number, resync_ticket_sequence
from .utils import utcnow

logger = logging.getLogger(__name__)

S = ComplaintStatus

ADMIN: FrozenSet[Role] = frozenset({Role.ADMIN_UTAMA})
FIELD: FrozenSet[Role] = frozenset({Role.ADMIN_UTAMA, Role.PETUGAS_LAPANGAN})

# source -> {target: roles allowed to drive that edge}
TRANSITIONS: Dict[ComplaintStatus, Dict[ComplaintStatus, FrozenSet[Role]]] = {
    S.PENDING: {S.REVIEWED: ADMIN, S.ASSIGNED: ADMIN, S.REJECTED: ADMIN, S.CANCELLED: ADMIN},
    S.REVIEWED: {S.ASSIGNED: ADMIN, S.REJECTED: ADMIN, S.CANCELLED: ADMIN},
    S.ASSIGNED: {S.ASSIGNED: ADMIN, S.ON_THE_WAY: FIELD, S.WORKING: FIELD, S.CANCELLED: ADMIN},
    S.ON_THE_WAY: {S.WORKING: FIELD, S.CANCELLED: ADMIN},
    S.WORKING: {S.COMPLETED: FIELD, S.CANCELLED: ADMIN},
    S.COMPLETED: {
        S.APPROVED: ADMIN,
        S.RESOLVED: ADMIN,
        S.REVISION_NEEDED: ADMIN,
        S.REJECTED: ADMIN,
    },
    S.APPROVED: {S.RESOLVED: ADMIN},
    S.REVISION_NEEDED: {S.WORKING: FIELD, S.COMPLETED: FIELD, S.CANCELLED: ADMIN},
    S.RESOLVED: {},
    S.REJECTED: {},
    S.CANCELLED: {},
}

_unmapped = set(ComplaintStatus) - set(TRANSITIONS)
if _unmapped:
    raise RuntimeError(f"Statuses missing from the transition table: {sorted(s.value for s in _unmapped)}")

# Complaint status that follows each review verdict
REVIEW_TO_COMPLAINT: Dict[ReviewStatus, ComplaintStatus] = {
    ReviewStatus.APPROVED: S.RESOLVED,
    ReviewStatus.REVISION_NEEDED: S.REVISION_NEEDED,
    ReviewStatus.REJECTED: S.REJECTED,
}

MSG_RECEIVED = "Laporan Anda telah diterima dan sedang dalam antrian untuk ditinjau"
MSG_REPORT_SUBMITTED = "Pekerjaan selesai dilakukan oleh petugas. Menunggu review dari admin."
MSG_REPORT_REVISED = "Laporan pekerjaan telah diperbaiki oleh petugas. Menunggu review dari admin."

REPORT_FIELDS = (
    "work_start_time",
    "work_end_time",
    "work_description",
    "materials_used",
    "labor_cost",
    "material_cost",
    "notes",
    "technician_notes",
    "before_photos",
    "after_photos",
)


def parse_status(value: Any) -> ComplaintStatus:
    try:
        return ComplaintStatus(value)
    except ValueError:
        raise InvalidStatus(
            f"Invalid status '{value}'. Must be one of: {', '.join(s.value for s in ComplaintStatus)}"
        )


def parse_review_status(value: Any) -> ReviewStatus:
    try:
        outcome = ReviewStatus(value)
    except ValueError:
        outcome = None
    if outcome not in REVIEW_OUTCOMES:
        allowed = ", ".join(sorted(o.value for o in REVIEW_OUTCOMES))
        raise InvalidStatus(f"Invalid status '{value}'. Review status must be one of: {allowed}")
    return outcome


def can_transition(current: ComplaintStatus, target: ComplaintStatus, role: Role) -> bool:
    return role in TRANSITIONS[current].get(target, frozenset())


def compute_total_cost(labor_cost: Optional[float], material_cost: Optional[float]) -> float:
    return float(labor_cost or 0) + float(material_cost or 0)


class ComplaintLifecycle:
    def __init__(self, db: Session):
        self.db = db

    # ---------- lookups ----------

    def get_complaint(self, complaint_id: str) -> Complaint:
        complaint = self.db.get(Complaint, complaint_id)
        if complaint is None:
            raise NotFound("Complaint not found")
        return complaint

    def get_complaint_by_ticket(self, ticket_number: str) -> Complaint:
        complaint = (
            self.db.query(Complaint)
            .filter(Complaint.ticket_number == ticket_number.strip().upper())
            .first()
        )
        if complaint is None:
            raise NotFound(
                "Nomor tiket tidak ditemukan. Pastikan Anda memasukkan nomor tiket dengan benar."
            )
        return complaint

    def get_work_report(self, report_id: str) -> WorkReport:
        report = self.db.get(WorkReport, report_id)
        if report is None:
            raise NotFound("Work report not found")
        return report

    # ---------- authorization ----------

    def authorize_read(self, complaint: Complaint, actor: User) -> None:
        if has_capability(actor.role, Capability.READ_ALL_COMPLAINTS):
            return
        if (
            has_capability(actor.role, Capability.WORK_ASSIGNED_COMPLAINTS)
            and complaint.assigned_to == actor.id
        ):
            return
        raise AccessDenied("Access denied")

    def authorize_work(self, complaint: Complaint, actor: User) -> None:
        """Admins, or the officer the complaint is assigned to."""
        if has_capability(actor.role, Capability.MANAGE_COMPLAINTS):
            return
        if not has_capability(actor.role, Capability.WORK_ASSIGNED_COMPLAINTS):
            raise AccessDenied("Access denied")
        if complaint.assigned_to != actor.id:
            raise AccessDenied("Access denied. Not assigned to this complaint")

    def _require(self, actor: User, capability: Capability) -> None:
        if not has_capability(actor.role, capability):
            raise AccessDenied("Access denied")

    def _check_transition(self, complaint: Complaint, target: ComplaintStatus, actor: User) -> None:
        current = ComplaintStatus(complaint.status)
        allowed = TRANSITIONS[current]
        if target not in allowed:
            raise InvalidTransition(
                f"Cannot change status from {current.value} to {target.value}"
            )
        if Role(actor.role) not in allowed[target]:
            raise AccessDenied(
                f"Access denied. {Role(actor.role).value} cannot change status to {target.value}"
            )

    # ---------- writes ----------

    def _apply_status(
        self,
        complaint: Complaint,
        status: ComplaintStatus,
        message: str,
        images: Optional[list] = None,
    ) -> ComplaintUpdate:
        previous = complaint.status
        complaint.status = status
        # resolved_at tracks the RESOLVED state and nothing else
        complaint.resolved_at = utcnow() if status == S.RESOLVED else None
        complaint.updated_at = utcnow()

        update = ComplaintUpdate(message=message, status=status, images=list(images or []))
        complaint.updates.append(update)
        logger.info(
            "Complaint %s: %s -> %s",
            complaint.ticket_number,
            getattr(previous, "value", previous),
            status.value,
        )
        return update

    def create_complaint(
        self,
        data: Mapping[str, Any],
        reporter: Optional[User] = None,
        ip_address: Optional[str] = None,
    ) -> Complaint:
        """
        Internal complaints pass ``reporter``; public ones pass None and must
        carry reporter_name/reporter_email/reporter_phone in ``data``.
        """
        priority = data.get("priority") or Priority.MEDIUM
        try:
            priority = Priority(priority)
        except ValueError:
            raise ValidationFailed(f"Invalid priority '{priority}'")

        fields = dict(
            title=data["title"],
            description=data["description"],
            location=data["location"],
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            priority=priority,
            status=S.PENDING,
            images=list(data.get("images") or []),
        )
        if reporter is None:
            fields.update(
                is_public=True,
                reporter_name=data["reporter_name"],
                reporter_email=data["reporter_email"],
                reporter_phone=data["reporter_phone"],
            )
        else:
            fields.update(is_public=False, reporter_id=reporter.id)

        year = utcnow().year
        for attempt in range(1, MAX_TICKET_ATTEMPTS + 1):
            # the counter bump stays outside the savepoint so a retry draws a new number
            complaint = Complaint(ticket_number=next_ticket_number(self.db, year), **fields)
            try:
                with self.db.begin_nested():
                    self.db.add(complaint)
                break
            except IntegrityError:
                logger.warning(
                    "Ticket number %s already taken (attempt %d/%d)",
                    complaint.ticket_number,
                    attempt,
                    MAX_TICKET_ATTEMPTS,
                )
                resync_ticket_sequence(self.db, year)
        else:
            raise Conflict("Could not allocate a unique ticket number, please retry")

        complaint.updates.append(ComplaintUpdate(message=MSG_RECEIVED, status=S.PENDING, images=[]))
        if reporter is None:
            log_activity(
                self.db,
                None,
                "CREATE_PUBLIC_COMPLAINT",
                f"Public complaint {complaint.ticket_number} from {complaint.reporter_email}",
                ip_address,
            )
        else:
            log_activity(
                self.db,
                reporter,
                "CREATE_COMPLAINT",
                f"Created complaint {complaint.ticket_number}: {complaint.title}",
                ip_address,
            )
        logger.info("Complaint %s created (public=%s)", complaint.ticket_number, complaint.is_public)
        return complaint

    def assign(self, complaint: Complaint, officer_id: str, actor: User) -> Complaint:
        self._require(actor, Capability.ASSIGN_OFFICERS)

        officer = self.db.get(User, officer_id) if officer_id else None
        if officer is None:
            raise NotFound("Officer not found")
        if officer.role != Role.PETUGAS_LAPANGAN:
            raise ValidationFailed("Complaints can only be assigned to a PETUGAS_LAPANGAN user")
        if not officer.is_active:
            raise ValidationFailed("Officer account is inactive")
        self._check_transition(complaint, S.ASSIGNED, actor)

        complaint.assigned_to = officer.id
        complaint.officer = officer
        complaint.assigned_at = utcnow()
        self._apply_status(complaint, S.ASSIGNED, f"Ditugaskan kepada {officer.name}")
        log_activity(
            self.db,
            actor,
            "ASSIGN_COMPLAINT",
            f"Assigned complaint {complaint.ticket_number} to {officer.name}",
        )
        return complaint

    def change_status(
        self,
        complaint: Complaint,
        status: Any,
        actor: User,
        message: Optional[str] = None,
        images: Optional[list] = None,
    ) -> ComplaintUpdate:
        """
        Generic status update. Posting the current status adds a note to the
        timeline without a transition.
        """
        self.authorize_work(complaint, actor)
        target = parse_status(status)

        if target == complaint.status:
            update = ComplaintUpdate(
                message=message or get_status_info(target)["label"],
                status=target,
                images=list(images or []),
            )
            complaint.updates.append(update)
            complaint.updated_at = utcnow()
            log_activity(
                self.db,
                actor,
                "ADD_COMPLAINT_UPDATE",
                f"Added note to complaint {complaint.ticket_number}",
            )
            return update

        self._check_transition(complaint, target, actor)
        if target == S.ASSIGNED and not complaint.assigned_to:
            raise ValidationFailed("Assign an officer before setting status ASSIGNED")

        update = self._apply_status(
            complaint,
            target,
            message or f"Status diubah menjadi {get_status_info(target)['label']}",
            images,
        )
        log_activity(
            self.db,
            actor,
            "UPDATE_COMPLAINT_STATUS",
            f"Complaint {complaint.ticket_number} status changed to {target.value}",
        )
        return update

    def submit_work_report(
        self,
        complaint: Complaint,
        data: Mapping[str, Any],
        actor: User,
    ) -> WorkReport:
        self._require(actor, Capability.SUBMIT_WORK_REPORTS)
        self.authorize_work(complaint, actor)

        if self._existing_report(complaint) is not None:
            raise Conflict("Work report already exists for this complaint")
        # the status path may already have moved the complaint to COMPLETED
        moves = complaint.status != S.COMPLETED
        if moves:
            self._check_transition(complaint, S.COMPLETED, actor)
        _check_work_window(data.get("work_start_time"), data.get("work_end_time"))

        report = WorkReport(
            complaint_id=complaint.id,
            work_start_time=data["work_start_time"],
            work_end_time=data["work_end_time"],
            work_description=data["work_description"],
            materials_used=list(data.get("materials_used") or []),
            labor_cost=data.get("labor_cost"),
            material_cost=data.get("material_cost"),
            total_cost=compute_total_cost(data.get("labor_cost"), data.get("material_cost")),
            notes=data.get("notes"),
            technician_notes=data.get("technician_notes"),
            before_photos=list(data.get("before_photos") or []),
            after_photos=list(data.get("after_photos") or []),
            review_status=ReviewStatus.PENDING,
        )
        try:
            with self.db.begin_nested():
                self.db.add(report)
        except IntegrityError:
            # a concurrent submission won the unique complaint_id slot
            raise Conflict("Work report already exists for this complaint")
        complaint.work_report = report

        if moves:
            self._apply_status(complaint, S.COMPLETED, MSG_REPORT_SUBMITTED)
        else:
            complaint.updated_at = utcnow()
        log_activity(
            self.db,
            actor,
            "SUBMIT_WORK_REPORT",
            f"Submitted work report for complaint {complaint.ticket_number}",
        )
        return report

    def _existing_report(self, complaint: Complaint) -> Optional[WorkReport]:
        return (
            self.db.query(WorkReport)
            .filter(WorkReport.complaint_id == complaint.id)
            .first()
        )

    def revise_work_report(
        self,
        report: WorkReport,
        data: Mapping[str, Any],
        actor: User,
    ) -> WorkReport:
        """
        Edit a report in place while it is still open; the review verdict is
        reset so an admin looks at it again.
        """
        complaint = report.complaint
        self._require(actor, Capability.SUBMIT_WORK_REPORTS)
        self.authorize_work(complaint, actor)

        if report.review_status not in EDITABLE_REVIEW_STATUSES:
            raise NotModifiable(
                f"Work report is {ReviewStatus(report.review_status).value} and cannot be modified"
            )
        moves = complaint.status != S.COMPLETED
        if moves:
            self._check_transition(complaint, S.COMPLETED, actor)

        changes = {k: data[k] for k in REPORT_FIELDS if data.get(k) is not None}
        _check_work_window(
            changes.get("work_start_time", report.work_start_time),
            changes.get("work_end_time", report.work_end_time),
        )
        for key, value in changes.items():
            setattr(report, key, list(value) if isinstance(value, (list, tuple)) else value)

        report.total_cost = compute_total_cost(report.labor_cost, report.material_cost)
        report.review_status = ReviewStatus.PENDING
        report.review_notes = None
        report.reviewed_by = None
        report.reviewer = None
        report.reviewed_at = None
        report.updated_at = utcnow()

        if moves:
            self._apply_status(complaint, S.COMPLETED, MSG_REPORT_REVISED)
        else:
            complaint.updated_at = utcnow()
        log_activity(
            self.db,
            actor,
            "UPDATE_WORK_REPORT",
            f"Updated work report for complaint {complaint.ticket_number}",
        )
        return report

    def review_work_report(
        self,
        report: WorkReport,
        review_status: Any,
        actor: User,
        review_notes: Optional[str] = None,
    ) -> WorkReport:
        self._require(actor, Capability.REVIEW_WORK_REPORTS)
        outcome = parse_review_status(review_status)

        if report.review_status != ReviewStatus.PENDING:
            raise NotModifiable(
                f"Work report is {ReviewStatus(report.review_status).value} and cannot be reviewed again"
            )
        complaint = report.complaint
        target = REVIEW_TO_COMPLAINT[outcome]
        self._check_transition(complaint, target, actor)

        report.review_status = outcome
        report.review_notes = review_notes
        report.reviewed_by = actor.id
        report.reviewer = actor
        report.reviewed_at = utcnow()

        if outcome == ReviewStatus.APPROVED:
            message = "Laporan pekerjaan telah disetujui. Pekerjaan selesai."
        elif outcome == ReviewStatus.REVISION_NEEDED:
            message = f"Laporan pekerjaan perlu revisi. Catatan: {review_notes or 'Tidak ada catatan'}"
        else:
            message = f"Laporan pekerjaan ditolak. Alasan: {review_notes or 'Tidak ada alasan'}"

        self._apply_status(complaint, target, message)
        log_activity(
            self.db,
            actor,
            "REVIEW_WORK_REPORT",
            f"Reviewed work report for complaint {complaint.ticket_number} - Status: {outcome.value}",
        )
        return report

    def delete_complaint(self, complaint: Complaint, actor: User) -> None:
        self._require(actor, Capability.MANAGE_COMPLAINTS)
        ticket = complaint.ticket_number
        self.db.delete(complaint)
        log_activity(self.db, actor, "DELETE_COMPLAINT", f"Deleted complaint {ticket}")
        logger.info("Complaint %s deleted by %s", ticket, actor.email)


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    # SQLite hands back naive datetimes; everything stored is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


def _check_work_window(start, end) -> None:
    if start is not None and end is not None and _as_utc(end) < _as_utc(start):
        raise ValidationFailed("workEndTime must not be before workStartTime")
