from __future__ import annotations

import enum
from typing import Dict, FrozenSet


class Role(str, enum.Enum):
    ADMIN_UTAMA = "ADMIN_UTAMA"
    PETUGAS_LAPANGAN = "PETUGAS_LAPANGAN"
    # Offered by the dashboard's role picker; carries no capabilities yet.
    SUPERVISOR = "SUPERVISOR"


class ComplaintStatus(str, enum.Enum):
    PENDING = "PENDING"
    REVIEWED = "REVIEWED"
    ASSIGNED = "ASSIGNED"
    ON_THE_WAY = "ON_THE_WAY"
    WORKING = "WORKING"
    COMPLETED = "COMPLETED"
    APPROVED = "APPROVED"
    RESOLVED = "RESOLVED"
    REVISION_NEEDED = "REVISION_NEEDED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[ComplaintStatus] = frozenset(
    {ComplaintStatus.RESOLVED, ComplaintStatus.REJECTED, ComplaintStatus.CANCELLED}
)


class ReviewStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REVISION_NEEDED = "REVISION_NEEDED"
    REJECTED = "REJECTED"


REVIEW_OUTCOMES: FrozenSet[ReviewStatus] = frozenset(
    {ReviewStatus.APPROVED, ReviewStatus.REVISION_NEEDED, ReviewStatus.REJECTED}
)

# Work reports can still be edited by the officer in these states.
EDITABLE_REVIEW_STATUSES: FrozenSet[ReviewStatus] = frozenset(
    {ReviewStatus.PENDING, ReviewStatus.REVISION_NEEDED}
)


class Priority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class Capability(str, enum.Enum):
    READ_ALL_COMPLAINTS = "READ_ALL_COMPLAINTS"
    MANAGE_COMPLAINTS = "MANAGE_COMPLAINTS"
    ASSIGN_OFFICERS = "ASSIGN_OFFICERS"
    REVIEW_WORK_REPORTS = "REVIEW_WORK_REPORTS"
    MANAGE_USERS = "MANAGE_USERS"
    WORK_ASSIGNED_COMPLAINTS = "WORK_ASSIGNED_COMPLAINTS"
    SUBMIT_WORK_REPORTS = "SUBMIT_WORK_REPORTS"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.ADMIN_UTAMA: frozenset(Capability),
    Role.PETUGAS_LAPANGAN: frozenset(
        {Capability.WORK_ASSIGNED_COMPLAINTS, Capability.SUBMIT_WORK_REPORTS}
    ),
    Role.SUPERVISOR: frozenset(),
}

_missing = set(Role) - set(ROLE_CAPABILITIES)
if _missing:
    raise RuntimeError(f"Roles without a capability set: {sorted(r.value for r in _missing)}")


def has_capability(role: Role | str, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES[Role(role)]
