"""Domain services for ReportFlow.

Services hold the business logic on top of the persistence layer.
"""

from reportflow.domain.services.bulk_importer import BulkImporter
from reportflow.domain.services.record_service import RecordStore
from reportflow.domain.services.record_validator import RecordValidationError, RecordValidator
from reportflow.domain.services.report_service import (
    ConcurrenceSummary,
    DocumentCounts,
    ReportService,
)
from reportflow.domain.services.schema_service import SchemaService
from reportflow.domain.services.schema_validator import SchemaValidationError, SchemaValidator
from reportflow.domain.services.timeline_service import TimelineService
from reportflow.domain.services.workflow import (
    TRANSITIONS,
    Action,
    WorkflowEngine,
    next_status,
)

__all__ = [
    "Action",
    "BulkImporter",
    "ConcurrenceSummary",
    "DocumentCounts",
    "RecordStore",
    "RecordValidationError",
    "RecordValidator",
    "ReportService",
    "SchemaService",
    "SchemaValidationError",
    "SchemaValidator",
    "TRANSITIONS",
    "TimelineService",
    "WorkflowEngine",
    "next_status",
]
