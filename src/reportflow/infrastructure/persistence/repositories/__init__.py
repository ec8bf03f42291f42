"""Persistence repositories for database operations."""

from reportflow.infrastructure.persistence.repositories.record_repository import (
    RecordRepository,
)
from reportflow.infrastructure.persistence.repositories.schema_repository import (
    SchemaRepository,
)
from reportflow.infrastructure.persistence.repositories.timeline_repository import (
    TimelineRepository,
)

__all__ = [
    "RecordRepository",
    "SchemaRepository",
    "TimelineRepository",
]
