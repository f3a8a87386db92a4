# tests/test_lifecycle.py
import datetime as dt

import pytest

from pln_care.enums import ComplaintStatus, ReviewStatus, Role
from pln_care.errors import AccessDenied, Conflict, InvalidStatus, InvalidTransition, NotModifiable, ValidationFailed
from pln_care.lifecycle import TRANSITIONS, ComplaintLifecycle, can_transition, compute_total_cost
from pln_care.models import ActivityLog, ComplaintUpdate, User, WorkReport
from pln_care.tickets import is_valid_ticket_number

S = ComplaintStatus

START = dt.datetime(2024, 5, 1, 8, 0, tzinfo=dt.timezone.utc)
END = dt.datetime(2024, 5, 1, 11, 30, tzinfo=dt.timezone.utc)


@pytest.fixture
def lc(session):
    return ComplaintLifecycle(session)


@pytest.fixture
def actors(session, users):
    return {key: session.get(User, uid) for key, uid in users.items()}


def _public(lc, session, title="Kabel Putus"):
    complaint = lc.create_complaint(
        {
            "title": title,
            "description": "Kabel menjuntai di atas jalan",
            "location": "Jl. A",
            "reporter_name": "Andi",
            "reporter_email": "a@b.com",
            "reporter_phone": "08123456789",
        }
    )
    session.commit()
    return complaint


def _report_data(**overrides):
    data = {
        "work_start_time": START,
        "work_end_time": END,
        "work_description": "Sambung ulang kabel SUTR",
        "labor_cost": 150000.0,
        "material_cost": 75000.0,
        "before_photos": ["data:image/png;base64,AAA"],
        "after_photos": ["data:image/png;base64,BBB"],
    }
    data.update(overrides)
    return data


def _working(lc, session, actors):
    complaint = _public(lc, session)
    lc.assign(complaint, actors["officer_x"].id, actors["admin"])
    lc.change_status(complaint, "ON_THE_WAY", actors["officer_x"])
    lc.change_status(complaint, "WORKING", actors["officer_x"])
    session.commit()
    return complaint


def _count(session, model):
    return session.query(model).count()


def test_every_status_has_an_entry_and_terminals_are_dead_ends():
    assert set(TRANSITIONS) == set(ComplaintStatus)
    for terminal in (S.RESOLVED, S.REJECTED, S.CANCELLED):
        assert TRANSITIONS[terminal] == {}
        assert terminal.is_terminal


def test_can_transition_respects_roles():
    assert can_transition(S.ASSIGNED, S.ON_THE_WAY, Role.PETUGAS_LAPANGAN)
    assert not can_transition(S.PENDING, S.ASSIGNED, Role.PETUGAS_LAPANGAN)
    assert not can_transition(S.COMPLETED, S.RESOLVED, Role.SUPERVISOR)
    assert not can_transition(S.RESOLVED, S.PENDING, Role.ADMIN_UTAMA)


def test_create_public_complaint(lc, session):
    complaint = _public(lc, session)

    assert is_valid_ticket_number(complaint.ticket_number)
    assert complaint.status == S.PENDING
    assert complaint.is_public is True
    assert complaint.reporter_id is None
    assert [u.status for u in complaint.updates] == [S.PENDING]
    log = session.query(ActivityLog).one()
    assert log.action == "CREATE_PUBLIC_COMPLAINT"
    assert log.user_id is None


def test_internal_complaint_links_reporter(lc, session, actors):
    complaint = lc.create_complaint(
        {"title": "Tiang Miring", "description": "Tiang miring", "location": "Jl. B"},
        reporter=actors["supervisor"],
    )
    session.commit()
    assert complaint.is_public is False
    assert complaint.reporter_id == actors["supervisor"].id
    assert complaint.reporter_email is None


def test_ticket_numbers_are_unique(lc, session):
    tickets = {_public(lc, session, title=f"Gangguan {i}").ticket_number for i in range(5)}
    assert len(tickets) == 5


def test_assign_officer(lc, session, actors):
    complaint = _public(lc, session)
    lc.assign(complaint, actors["officer_x"].id, actors["admin"])
    session.commit()

    assert complaint.status == S.ASSIGNED
    assert complaint.assigned_to == actors["officer_x"].id
    assert complaint.assigned_at is not None
    latest = complaint.updates[-1]
    assert latest.status == S.ASSIGNED
    assert latest.message == "Ditugaskan kepada Budi Santoso"


def test_assign_requires_field_officer(lc, session, actors):
    complaint = _public(lc, session)
    with pytest.raises(ValidationFailed):
        lc.assign(complaint, actors["supervisor"].id, actors["admin"])
    with pytest.raises(AccessDenied):
        lc.assign(complaint, actors["officer_x"].id, actors["officer_y"])
    assert complaint.status == S.PENDING
    assert complaint.assigned_to is None


def test_assign_inactive_officer_rejected(lc, session, actors):
    complaint = _public(lc, session)
    actors["officer_x"].is_active = False
    session.commit()
    with pytest.raises(ValidationFailed):
        lc.assign(complaint, actors["officer_x"].id, actors["admin"])


def test_unassigned_officer_cannot_change_status(lc, session, actors):
    complaint = _public(lc, session)
    lc.assign(complaint, actors["officer_x"].id, actors["admin"])
    session.commit()
    updates_before = _count(session, ComplaintUpdate)

    with pytest.raises(AccessDenied):
        lc.change_status(complaint, "ON_THE_WAY", actors["officer_y"])

    assert complaint.status == S.ASSIGNED
    assert _count(session, ComplaintUpdate) == updates_before


def test_officer_cannot_drive_admin_transitions(lc, session, actors):
    complaint = _public(lc, session)
    lc.assign(complaint, actors["officer_x"].id, actors["admin"])
    session.commit()
    with pytest.raises(AccessDenied):
        lc.change_status(complaint, "CANCELLED", actors["officer_x"])


def test_invalid_transition_and_status(lc, session, actors):
    complaint = _public(lc, session)
    with pytest.raises(InvalidTransition):
        lc.change_status(complaint, "WORKING", actors["admin"])
    with pytest.raises(InvalidStatus):
        lc.change_status(complaint, "IN_PROGRESS", actors["admin"])


def test_assigned_status_needs_an_assignee(lc, session, actors):
    complaint = _public(lc, session)
    with pytest.raises(ValidationFailed):
        lc.change_status(complaint, "ASSIGNED", actors["admin"])


def test_each_transition_adds_one_matching_update(lc, session, actors):
    complaint = _working(lc, session, actors)
    statuses = [u.status for u in complaint.updates]
    assert statuses == [S.PENDING, S.ASSIGNED, S.ON_THE_WAY, S.WORKING]


def test_same_status_is_a_note(lc, session, actors):
    complaint = _working(lc, session, actors)
    update = lc.change_status(complaint, "WORKING", actors["officer_x"], message="Menunggu material")
    session.commit()
    assert update.status == S.WORKING
    assert update.message == "Menunggu material"
    assert complaint.status == S.WORKING


def test_submit_work_report(lc, session, actors):
    complaint = _working(lc, session, actors)
    report = lc.submit_work_report(complaint, _report_data(), actors["officer_x"])
    session.commit()

    assert report.total_cost == 225000.0
    assert report.review_status == ReviewStatus.PENDING
    assert complaint.status == S.COMPLETED
    assert complaint.updates[-1].status == S.COMPLETED


def test_total_cost_treats_missing_costs_as_zero():
    assert compute_total_cost(None, 50.0) == 50.0
    assert compute_total_cost(None, None) == 0.0


def test_second_work_report_conflicts(lc, session, actors):
    complaint = _working(lc, session, actors)
    lc.submit_work_report(complaint, _report_data(), actors["officer_x"])
    session.commit()
    with pytest.raises(Conflict):
        lc.submit_work_report(complaint, _report_data(), actors["officer_x"])
    assert _count(session, WorkReport) == 1


def test_work_report_from_other_officer_denied(lc, session, actors):
    complaint = _working(lc, session, actors)
    with pytest.raises(AccessDenied):
        lc.submit_work_report(complaint, _report_data(), actors["officer_y"])


def test_work_report_end_before_start_rejected(lc, session, actors):
    complaint = _working(lc, session, actors)
    with pytest.raises(ValidationFailed):
        lc.submit_work_report(
            complaint, _report_data(work_start_time=END, work_end_time=START), actors["officer_x"]
        )


def test_approve_resolves_complaint(lc, session, actors):
    complaint = _working(lc, session, actors)
    report = lc.submit_work_report(complaint, _report_data(), actors["officer_x"])
    session.commit()

    lc.review_work_report(report, "APPROVED", actors["admin"])
    session.commit()

    assert report.review_status == ReviewStatus.APPROVED
    assert report.reviewed_by == actors["admin"].id
    assert report.reviewed_at is not None
    assert complaint.status == S.RESOLVED
    assert complaint.resolved_at is not None
    assert complaint.updates[-1].status == S.RESOLVED


@pytest.mark.parametrize(
    "outcome, expected",
    [("REJECTED", S.REJECTED), ("REVISION_NEEDED", S.REVISION_NEEDED)],
)
def test_reject_and_revision_leave_resolved_at_empty(lc, session, actors, outcome, expected):
    complaint = _working(lc, session, actors)
    report = lc.submit_work_report(complaint, _report_data(), actors["officer_x"])
    session.commit()

    lc.review_work_report(report, outcome, actors["admin"], review_notes="Foto kurang jelas")
    session.commit()

    assert complaint.status == expected
    assert complaint.resolved_at is None
    assert "Foto kurang jelas" in complaint.updates[-1].message


def test_review_rejects_unknown_status(lc, session, actors):
    complaint = _working(lc, session, actors)
    report = lc.submit_work_report(complaint, _report_data(), actors["officer_x"])
    session.commit()
    for bad in ("PENDING", "DONE"):
        with pytest.raises(InvalidStatus):
            lc.review_work_report(report, bad, actors["admin"])


def test_only_admin_reviews(lc, session, actors):
    complaint = _working(lc, session, actors)
    report = lc.submit_work_report(complaint, _report_data(), actors["officer_x"])
    session.commit()
    with pytest.raises(AccessDenied):
        lc.review_work_report(report, "APPROVED", actors["officer_x"])


def test_revision_updates_report_in_place(lc, session, actors):
    complaint = _working(lc, session, actors)
    report = lc.submit_work_report(complaint, _report_data(), actors["officer_x"])
    session.commit()
    report_id = report.id
    lc.review_work_report(report, "REVISION_NEEDED", actors["admin"], review_notes="Lengkapi foto")
    session.commit()

    lc.revise_work_report(report, {"labor_cost": 200000.0, "after_photos": ["x", "y"]}, actors["officer_x"])
    session.commit()

    assert report.id == report_id
    assert _count(session, WorkReport) == 1
    assert report.total_cost == 275000.0
    assert report.after_photos == ["x", "y"]
    assert report.review_status == ReviewStatus.PENDING
    assert report.review_notes is None
    assert report.reviewed_by is None
    assert report.reviewed_at is None
    assert complaint.status == S.COMPLETED
    assert complaint.updates[-1].status == S.COMPLETED


def test_revise_pending_report_keeps_status_without_update(lc, session, actors):
    complaint = _working(lc, session, actors)
    report = lc.submit_work_report(complaint, _report_data(), actors["officer_x"])
    session.commit()
    updates_before = _count(session, ComplaintUpdate)

    lc.revise_work_report(report, {"material_cost": 0.0}, actors["officer_x"])
    session.commit()

    assert report.total_cost == 150000.0
    assert complaint.status == S.COMPLETED
    assert _count(session, ComplaintUpdate) == updates_before


def test_approved_report_cannot_be_modified(lc, session, actors):
    complaint = _working(lc, session, actors)
    report = lc.submit_work_report(complaint, _report_data(), actors["officer_x"])
    session.commit()
    lc.review_work_report(report, "APPROVED", actors["admin"])
    session.commit()

    with pytest.raises(NotModifiable):
        lc.revise_work_report(report, {"notes": "ubah"}, actors["officer_x"])
    with pytest.raises(NotModifiable):
        lc.review_work_report(report, "REJECTED", actors["admin"])


def test_activity_log_per_action(lc, session, actors):
    _working(lc, session, actors)
    actions = [row.action for row in session.query(ActivityLog).order_by(ActivityLog.id)]
    assert actions == [
        "CREATE_PUBLIC_COMPLAINT",
        "ASSIGN_COMPLAINT",
        "UPDATE_COMPLAINT_STATUS",
        "UPDATE_COMPLAINT_STATUS",
    ]


def test_generic_path_to_resolved_sets_resolved_at_and_is_final(lc, session, actors):
    complaint = _working(lc, session, actors)
    lc.change_status(complaint, "COMPLETED", actors["officer_x"])
    lc.change_status(complaint, "APPROVED", actors["admin"])
    assert complaint.resolved_at is None
    lc.change_status(complaint, "RESOLVED", actors["admin"])
    session.commit()
    assert complaint.resolved_at is not None
    with pytest.raises(InvalidTransition):
        lc.change_status(complaint, "WORKING", actors["admin"])


def test_report_accepted_after_status_path_completion(lc, session, actors):
    complaint = _working(lc, session, actors)
    lc.change_status(complaint, "COMPLETED", actors["officer_x"], message="Selesai di lapangan")
    session.commit()
    updates_before = _count(session, ComplaintUpdate)

    report = lc.submit_work_report(complaint, _report_data(), actors["officer_x"])
    session.commit()

    assert report.review_status == ReviewStatus.PENDING
    assert complaint.status == S.COMPLETED
    assert _count(session, ComplaintUpdate) == updates_before

    lc.review_work_report(report, "APPROVED", actors["admin"])
    session.commit()
    assert complaint.status == S.RESOLVED


def test_concurrent_duplicate_report_is_a_conflict(lc, session, actors, monkeypatch):
    complaint = _working(lc, session, actors)
    lc.submit_work_report(complaint, _report_data(), actors["officer_x"])
    session.commit()

    # the other submission passed its existence check before this one landed
    monkeypatch.setattr(ComplaintLifecycle, "_existing_report", lambda self, complaint: None)
    with pytest.raises(Conflict):
        lc.submit_work_report(complaint, _report_data(), actors["admin"])
    session.rollback()
    assert _count(session, WorkReport) == 1
