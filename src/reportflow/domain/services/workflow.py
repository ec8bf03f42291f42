"""Review workflow for submitted records.

A record is created ``pending``, submitted by its owner, recommended for
approval or rejection by a department moderator and finally approved or
rejected by the authority. Rejected records may be edited by their owner,
which sends them back to ``pending``.

Every legal move is listed in ``TRANSITIONS``; anything not listed there
is refused.
"""

from enum import Enum
from typing import Any

from reportflow.core.config import Settings, get_settings
from reportflow.core.errors import (
    ForbiddenError,
    NoContentError,
    UnauthorizedError,
    ValidationError,
)
from reportflow.core.logging import get_logger
from reportflow.domain.entities import (
    AUTHORITY_STATUSES,
    MODERATOR_STATUSES,
    SYSTEM_FIELD_NAMES,
    Caller,
    DynamicRecord,
    RecordStatus,
    Role,
)
from reportflow.domain.services.record_service import RecordStore
from reportflow.domain.services.timeline_service import TimelineService

logger = get_logger(__name__)


class Action(str, Enum):
    """Workflow actions."""

    RECOMMEND_APPROVAL = "recommend_approval"
    RECOMMEND_REJECTION = "recommend_rejection"
    APPROVE = "approve"
    REJECT = "reject"
    EDIT = "edit"
    DELETE = "delete"


# (current status, role, action) -> next status; None removes the record
TRANSITIONS: dict[tuple[RecordStatus, Role, Action], RecordStatus | None] = {
    (RecordStatus.PENDING, Role.MODERATOR, Action.RECOMMEND_APPROVAL): RecordStatus.REQUESTED_FOR_APPROVAL,
    (RecordStatus.PENDING, Role.MODERATOR, Action.RECOMMEND_REJECTION): RecordStatus.REQUESTED_FOR_REJECTION,
    (RecordStatus.REQUESTED_FOR_APPROVAL, Role.MODERATOR, Action.RECOMMEND_APPROVAL): RecordStatus.REQUESTED_FOR_APPROVAL,
    (RecordStatus.REQUESTED_FOR_APPROVAL, Role.MODERATOR, Action.RECOMMEND_REJECTION): RecordStatus.REQUESTED_FOR_REJECTION,
    (RecordStatus.REQUESTED_FOR_REJECTION, Role.MODERATOR, Action.RECOMMEND_APPROVAL): RecordStatus.REQUESTED_FOR_APPROVAL,
    (RecordStatus.REQUESTED_FOR_REJECTION, Role.MODERATOR, Action.RECOMMEND_REJECTION): RecordStatus.REQUESTED_FOR_REJECTION,
    (RecordStatus.REQUESTED_FOR_APPROVAL, Role.AUTHORITY, Action.APPROVE): RecordStatus.APPROVED,
    (RecordStatus.REQUESTED_FOR_APPROVAL, Role.AUTHORITY, Action.REJECT): RecordStatus.REJECTED,
    (RecordStatus.REQUESTED_FOR_REJECTION, Role.AUTHORITY, Action.APPROVE): RecordStatus.APPROVED,
    (RecordStatus.REQUESTED_FOR_REJECTION, Role.AUTHORITY, Action.REJECT): RecordStatus.REJECTED,
    (RecordStatus.REJECTED, Role.SUBMITTER, Action.EDIT): RecordStatus.PENDING,
    (RecordStatus.PENDING, Role.SUBMITTER, Action.DELETE): None,
    (RecordStatus.REJECTED, Role.SUBMITTER, Action.DELETE): None,
}

STATUS_ACTIONS = {
    RecordStatus.REQUESTED_FOR_APPROVAL: Action.RECOMMEND_APPROVAL,
    RecordStatus.REQUESTED_FOR_REJECTION: Action.RECOMMEND_REJECTION,
    RecordStatus.APPROVED: Action.APPROVE,
    RecordStatus.REJECTED: Action.REJECT,
}

# Moderator recommendation the authority confirms in bulk for each decision
RECOMMENDATION_FOR = {
    RecordStatus.APPROVED: RecordStatus.REQUESTED_FOR_APPROVAL,
    RecordStatus.REJECTED: RecordStatus.REQUESTED_FOR_REJECTION,
}

# Review fields cleared when a rejected record is edited
REVIEW_RESET = {
    "status": RecordStatus.PENDING.value,
    "submitted": False,
    "moderator_comment": "",
    "super_admin_comment": "",
    "reviewed_moderator": None,
    "go_as_per_moderator": False,
}


def next_status(status: RecordStatus, role: Role, action: Action) -> RecordStatus | None:
    """Look up a transition.

    Raises:
        ForbiddenError: If the transition is not legal.
    """
    key = (status, role, action)
    if key not in TRANSITIONS:
        raise ForbiddenError(
            f"Cannot {action.value.replace('_', ' ')} a record in status '{status.value}'",
            details={"status": status.value, "role": role.value, "action": action.value},
        )
    return TRANSITIONS[key]


def parse_status(value: RecordStatus | str, allowed: frozenset[RecordStatus]) -> RecordStatus:
    try:
        status = RecordStatus(value)
    except ValueError:
        status = None
    if status not in allowed:
        raise ValidationError(
            f"Invalid status '{value}'",
            details={"allowed": sorted(s.value for s in allowed)},
        )
    return status


def require_role(caller: Caller, role: Role) -> None:
    if caller.role != role:
        raise UnauthorizedError(
            f"Only a {role.value} may perform this operation",
            details={"role": caller.role.value},
        )


def require_comment(comment: str | None, status: RecordStatus) -> str:
    comment = (comment or "").strip()
    if not comment:
        raise ValidationError(
            f"A comment is required for status '{status.value}'",
            details={"field": "comment"},
        )
    return comment


class WorkflowEngine:
    """Role-gated record transitions on top of the record store."""

    def __init__(
        self,
        records: RecordStore,
        timeline: TimelineService,
        settings: Settings | None = None,
    ) -> None:
        self.records = records
        self.timeline = timeline
        self.settings = settings or get_settings()

    async def check_window(self) -> None:
        """Refuse submitter mutations outside the submission window."""
        if self.settings.enforce_submission_window:
            await self.timeline.check_window()

    @staticmethod
    def require_owner(caller: Caller, record: DynamicRecord) -> None:
        if record.submitted_by != caller.id:
            raise ForbiddenError(
                "Only the submitter of a record may change it",
                details={"record_id": record.id, "table_name": record.table_name},
            )

    async def create(self, caller: Caller, table_name: str, record: dict[str, Any]) -> DynamicRecord:
        """Create a pending record owned by the caller."""
        require_role(caller, Role.SUBMITTER)
        await self.check_window()
        return await self.records.create(table_name, record, caller.context())

    async def submit(self, caller: Caller, table_name: str | None = None) -> dict[str, int]:
        """Submit the caller's pending records in one table or in every table.

        Already submitted records are left alone.

        Returns:
            Number of records submitted per table.
        """
        require_role(caller, Role.SUBMITTER)
        await self.check_window()

        if table_name is not None:
            table_names = [self.records.registry.resolve(table_name).table_name]
        else:
            table_names = self.records.registry.names()

        counts: dict[str, int] = {}
        for name in table_names:
            counts[name] = await self.records.update_many(
                name,
                {
                    "submitted_by": caller.id,
                    "status": RecordStatus.PENDING.value,
                    "submitted": False,
                },
                {"submitted": True},
            )

        logger.info("Records submitted", submitted_by=caller.id, counts=counts)
        return counts

    async def review(
        self,
        caller: Caller,
        table_name: str,
        record_id: str,
        status: RecordStatus | str,
        comment: str | None = "",
        go_as_per_moderator: bool = False,
        expected_version: int | None = None,
    ) -> DynamicRecord:
        """Record a moderator recommendation on a submitted record.

        Raises:
            UnauthorizedError: If the caller is not a moderator covering the
                record's college and department.
            ValidationError: If the status is not a recommendation, or a
                rejection comes without a comment.
            ForbiddenError: If the record is not submitted or cannot move.
            StaleRecordError: If the record changed since it was read.
        """
        require_role(caller, Role.MODERATOR)
        status = parse_status(status, MODERATOR_STATUSES)
        if status == RecordStatus.REQUESTED_FOR_REJECTION:
            comment = require_comment(comment, status)

        record = await self.records.find_one(table_name, record_id)
        if not caller.covers(record.college, record.department):
            raise UnauthorizedError(
                "Record is outside the moderator's colleges and departments",
                details={"college": record.college, "department": record.department},
            )
        if not record.submitted:
            raise ForbiddenError(
                "Record has not been submitted", details={"record_id": record_id}
            )
        next_status(record.status, caller.role, STATUS_ACTIONS[status])

        updated = await self.records.update(
            table_name,
            record_id,
            {
                "status": status.value,
                "moderator_comment": (comment or "").strip(),
                "reviewed_moderator": caller.id,
                "go_as_per_moderator": bool(go_as_per_moderator),
            },
            expected_version=expected_version if expected_version is not None else record.version,
        )
        logger.info(
            "Record reviewed",
            table_name=table_name,
            record_id=record_id,
            status=status.value,
            moderator=caller.id,
        )
        return updated

    async def decide(
        self,
        caller: Caller,
        table_name: str,
        record_id: str,
        status: RecordStatus | str,
        comment: str | None = "",
        expected_version: int | None = None,
    ) -> DynamicRecord:
        """Approve or reject a recommended record.

        Raises:
            UnauthorizedError: If the caller is not the authority.
            ValidationError: If the status is not a decision, or a
                rejection comes without a comment.
            ForbiddenError: If the record is not submitted or not recommended.
            StaleRecordError: If the record changed since it was read.
        """
        require_role(caller, Role.AUTHORITY)
        status = parse_status(status, AUTHORITY_STATUSES)
        if status == RecordStatus.REJECTED:
            comment = require_comment(comment, status)

        record = await self.records.find_one(table_name, record_id)
        if not record.submitted:
            raise ForbiddenError(
                "Record has not been submitted", details={"record_id": record_id}
            )
        next_status(record.status, caller.role, STATUS_ACTIONS[status])

        updated = await self.records.update(
            table_name,
            record_id,
            {"status": status.value, "super_admin_comment": (comment or "").strip()},
            expected_version=expected_version if expected_version is not None else record.version,
        )
        logger.info(
            "Record decided",
            table_name=table_name,
            record_id=record_id,
            status=status.value,
        )
        return updated

    async def decide_many(
        self,
        caller: Caller,
        table_name: str,
        department: str,
        status: RecordStatus | str,
        comment: str | None = "",
    ) -> int:
        """Confirm the moderator's recommendation for a whole department.

        Applies to submitted records of the department whose status is the
        matching recommendation and whose moderator asked the authority to
        go with it. A rejection without comment keeps each record's
        moderator comment as the authority comment.

        Returns:
            Number of decided records.

        Raises:
            NoContentError: If no record matches.
        """
        require_role(caller, Role.AUTHORITY)
        status = parse_status(status, AUTHORITY_STATUSES)
        comment = (comment or "").strip()

        copy_columns = None
        if status == RecordStatus.REJECTED:
            copy_columns = {"super_admin_comment": "moderator_comment"}

        updated = await self.records.update_many(
            table_name,
            {
                "department": department,
                "submitted": True,
                "status": RECOMMENDATION_FOR[status].value,
                "go_as_per_moderator": True,
            },
            {"status": status.value, "super_admin_comment": comment},
            copy_columns=copy_columns,
        )
        if updated == 0:
            raise NoContentError(
                "No recommended records to decide",
                details={"table_name": table_name, "department": department},
            )

        logger.info(
            "Records decided in bulk",
            table_name=table_name,
            department=department,
            status=status.value,
            count=updated,
        )
        return updated

    async def edit(
        self,
        caller: Caller,
        table_name: str,
        record_id: str,
        patch: dict[str, Any],
        expected_version: int | None = None,
    ) -> DynamicRecord:
        """Edit a rejected record, sending it back to pending.

        Raises:
            ForbiddenError: If the caller does not own the record or it is
                not rejected.
            ValidationError: If the patch touches system fields or does not
                match the table.
        """
        require_role(caller, Role.SUBMITTER)
        await self.check_window()

        system_fields = sorted(set(patch) & SYSTEM_FIELD_NAMES)
        if system_fields:
            raise ValidationError(
                f"System fields cannot be edited: {', '.join(system_fields)}",
                details={"fields": system_fields},
            )

        record = await self.records.find_one(table_name, record_id)
        self.require_owner(caller, record)
        next_status(record.status, caller.role, Action.EDIT)

        updated = await self.records.update(
            table_name,
            record_id,
            {**patch, **REVIEW_RESET},
            expected_version=expected_version if expected_version is not None else record.version,
        )
        logger.info("Rejected record edited", table_name=table_name, record_id=record_id)
        return updated

    async def delete(self, caller: Caller, table_name: str, record_id: str) -> None:
        """Delete an unsubmitted pending record or a rejected record.

        Raises:
            ForbiddenError: If the caller does not own the record or it is
                under review or decided.
        """
        require_role(caller, Role.SUBMITTER)

        record = await self.records.find_one(table_name, record_id)
        self.require_owner(caller, record)
        next_status(record.status, caller.role, Action.DELETE)
        if record.status == RecordStatus.PENDING and record.submitted:
            raise ForbiddenError(
                "Submitted records cannot be deleted", details={"record_id": record_id}
            )

        await self.records.delete(table_name, record_id)
