"""
Ticket numbers: ``PLN-<year>-<6 digits>``.

The digits come from a per-year counter stored in ``ticket_sequences`` and
bumped inside the caller's transaction, so two complaints never draw the
same number. The unique index on ``complaints.ticket_number`` is still the
last word; callers retry on an insert conflict (see
``ComplaintLifecycle.create_complaint``).
"""
from __future__ import annotations

import re
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from .errors import Conflict
from .models.complaint import Complaint, TicketSequence
from .utils import utcnow

TICKET_PREFIX = "PLN"
TICKET_DIGITS = 6
MAX_SEQUENCE = 10 ** TICKET_DIGITS - 1
MAX_TICKET_ATTEMPTS = 5

TICKET_RE = re.compile(r"^PLN-\d{4}-\d{6}$")


def format_ticket_number(year: int, seq: int) -> str:
    return f"{TICKET_PREFIX}-{year}-{seq:0{TICKET_DIGITS}d}"


def is_valid_ticket_number(value: str) -> bool:
    return bool(TICKET_RE.match(value or ""))


def _latest_stored_seq(db: Session, year: int) -> int:
    latest = db.execute(
        select(func.max(Complaint.ticket_number)).where(
            Complaint.ticket_number.like(f"{TICKET_PREFIX}-{year}-%")
        )
    ).scalar()
    return int(latest.rsplit("-", 1)[1]) if latest else 0


def next_ticket_number(db: Session, year: Optional[int] = None) -> str:
    year = year or utcnow().year

    result = db.execute(
        update(TicketSequence)
        .where(TicketSequence.year == year)
        .values(last_seq=TicketSequence.last_seq + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # first ticket of the year: continue after any ticket already stored
        # (imported data); a concurrent first insert fails on the PK
        seq = _latest_stored_seq(db, year) + 1
        db.add(TicketSequence(year=year, last_seq=seq))
        db.flush()
    else:
        seq = db.execute(
            select(TicketSequence.last_seq).where(TicketSequence.year == year)
        ).scalar_one()

    if seq > MAX_SEQUENCE:
        raise Conflict(f"Ticket numbers for {year} are exhausted")
    return format_ticket_number(year, seq)


def resync_ticket_sequence(db: Session, year: int) -> int:
    """Move a lagging counter up to the highest stored ticket of ``year``."""
    latest = _latest_stored_seq(db, year)
    db.execute(
        update(TicketSequence)
        .where(TicketSequence.year == year, TicketSequence.last_seq < latest)
        .values(last_seq=latest)
        .execution_options(synchronize_session=False)
    )
    return latest
