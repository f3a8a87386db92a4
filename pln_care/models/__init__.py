# pln_care/models/__init__.py

from .user import User
from .complaint import Complaint, ComplaintUpdate, WorkReport, TicketSequence
from .activity import ActivityLog

__all__ = [
    "User",
    "Complaint",
    "ComplaintUpdate",
    "WorkReport",
    "TicketSequence",
    "ActivityLog",
]
