"""Dynamic record entities.

A record only makes sense together with the table it lives in, so every
record carries the TableHandle it was read through.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from reportflow.domain.entities.schema_descriptor import FieldSpec, SchemaDescriptor
from reportflow.domain.entities.status import RecordStatus


@dataclass(frozen=True)
class TableHandle:
    """Live handle of a registered table.

    Attributes:
        table_name: Normalized table name used by callers.
        physical_name: Name of the backing SQL table.
        descriptor: The normalized schema descriptor.
    """

    table_name: str
    physical_name: str
    descriptor: SchemaDescriptor

    @property
    def schema_id(self) -> str:
        return self.descriptor.id

    @property
    def fields(self) -> dict[str, FieldSpec]:
        return self.descriptor.fields


@dataclass
class DynamicRecord:
    """One row of a registered table."""

    table: TableHandle
    id: str
    data: dict[str, Any]
    status: RecordStatus = RecordStatus.PENDING
    submitted: bool = False
    submitted_by: str | None = None
    college: str = ""
    department: str = ""
    moderator_comment: str = ""
    super_admin_comment: str = ""
    reviewed_moderator: str | None = None
    go_as_per_moderator: bool = False
    version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def table_name(self) -> str:
        return self.table.table_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            **self.data,
            "status": self.status.value,
            "submitted": self.submitted,
            "submitted_by": self.submitted_by,
            "college": self.college,
            "department": self.department,
            "moderator_comment": self.moderator_comment,
            "super_admin_comment": self.super_admin_comment,
            "reviewed_moderator": self.reviewed_moderator,
            "go_as_per_moderator": self.go_as_per_moderator,
            "version": self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class RecordPage:
    """One page of a filtered record listing."""

    records: list[DynamicRecord]
    current_page: int
    total_count: int
    limit: int
    total_pages: int = field(init=False)

    def __post_init__(self) -> None:
        self.total_pages = math.ceil(self.total_count / self.limit) if self.limit else 0
