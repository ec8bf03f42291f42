"""Workflow status values carried by every dynamic record."""

from enum import Enum


class RecordStatus(str, Enum):
    """Review status of a dynamic record."""

    PENDING = "pending"
    REQUESTED_FOR_APPROVAL = "requestedForApproval"
    REQUESTED_FOR_REJECTION = "requestedForRejection"
    APPROVED = "approved"
    REJECTED = "rejected"


# Statuses a moderator may set
MODERATOR_STATUSES = frozenset({
    RecordStatus.REQUESTED_FOR_APPROVAL,
    RecordStatus.REQUESTED_FOR_REJECTION,
})

# Statuses the authority may set
AUTHORITY_STATUSES = frozenset({
    RecordStatus.APPROVED,
    RecordStatus.REJECTED,
})

# Statuses counted as still in review
IN_REVIEW_STATUSES = frozenset({
    RecordStatus.PENDING,
    RecordStatus.REQUESTED_FOR_APPROVAL,
    RecordStatus.REQUESTED_FOR_REJECTION,
})
