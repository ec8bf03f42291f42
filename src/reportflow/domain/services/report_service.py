"""Cross-table aggregate reads.

Each table is read in its own session and the tables are read
concurrently, so a report is a snapshot without cross-table consistency.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reportflow.core.logging import get_logger
from reportflow.domain.entities import IN_REVIEW_STATUSES, RecordStatus, TableHandle
from reportflow.infrastructure.persistence.registry import Registry
from reportflow.infrastructure.persistence.repositories import RecordRepository

logger = get_logger(__name__)


@dataclass
class DocumentCounts:
    """Submitted record counts of one submitter across every table."""

    total_submission: int = 0
    accepted_count: int = 0
    rejected_count: int = 0
    pending_count: int = 0

    def add(self, status: RecordStatus, count: int) -> None:
        self.total_submission += count
        if status == RecordStatus.APPROVED:
            self.accepted_count += count
        elif status == RecordStatus.REJECTED:
            self.rejected_count += count
        elif status in IN_REVIEW_STATUSES:
            self.pending_count += count

    def to_dict(self) -> dict[str, int]:
        return {
            "total_submission": self.total_submission,
            "accepted_count": self.accepted_count,
            "rejected_count": self.rejected_count,
            "pending_count": self.pending_count,
        }


@dataclass
class ConcurrenceSummary:
    """Moderator recommendations of one table awaiting the authority.

    ``concurring`` counts the records whose moderator asked the authority
    to go with the recommendation.
    """

    table_name: str
    requested_for_approval: int = 0
    requested_for_rejection: int = 0
    concurring: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_name": self.table_name,
            "requested_for_approval": self.requested_for_approval,
            "requested_for_rejection": self.requested_for_rejection,
            "concurring": dict(self.concurring),
        }


class ReportService:
    """Aggregate counts over every registered table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], registry: Registry) -> None:
        self.session_factory = session_factory
        self.registry = registry

    async def count_by_status(
        self, handle: TableHandle, filters: dict[str, Any]
    ) -> dict[RecordStatus, int]:
        async with self.session_factory() as session:
            repository = RecordRepository(session)
            return {
                status: await repository.count(handle, {**filters, "status": status.value})
                for status in RecordStatus
            }

    async def department_document_counts(self, submitter_id: str) -> DocumentCounts:
        """Count a submitter's submitted records by outcome across every table.

        Records still with a moderator or the authority count as pending.
        """
        handles = self.registry.handles()
        per_table = await asyncio.gather(
            *(
                self.count_by_status(handle, {"submitted_by": submitter_id, "submitted": True})
                for handle in handles
            )
        )

        counts = DocumentCounts()
        for table_counts in per_table:
            for status, count in table_counts.items():
                counts.add(status, count)

        logger.debug("Document counts computed", submitter_id=submitter_id, **counts.to_dict())
        return counts

    async def concurrence_summary(self, department: str | None = None) -> list[ConcurrenceSummary]:
        """Summarize pending moderator recommendations per table.

        Args:
            department: Restrict the summary to one department.
        """
        base_filters: dict[str, Any] = {"submitted": True}
        if department is not None:
            base_filters["department"] = department

        async def summarize(handle: TableHandle) -> ConcurrenceSummary:
            async with self.session_factory() as session:
                repository = RecordRepository(session)
                summary = ConcurrenceSummary(table_name=handle.table_name)
                for status in (RecordStatus.REQUESTED_FOR_APPROVAL, RecordStatus.REQUESTED_FOR_REJECTION):
                    filters = {**base_filters, "status": status.value}
                    total = await repository.count(handle, filters)
                    concurring = await repository.count(
                        handle, {**filters, "go_as_per_moderator": True}
                    )
                    if status == RecordStatus.REQUESTED_FOR_APPROVAL:
                        summary.requested_for_approval = total
                    else:
                        summary.requested_for_rejection = total
                    summary.concurring[status.value] = concurring
                return summary

        return list(await asyncio.gather(*(summarize(h) for h in self.registry.handles())))
