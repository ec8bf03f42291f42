"""Domain entities for ReportFlow.

Entities are plain dataclasses with no dependency on infrastructure.
"""

from reportflow.domain.entities.caller import Caller, Role, SubmissionContext
from reportflow.domain.entities.record import DynamicRecord, RecordPage, TableHandle
from reportflow.domain.entities.schema_descriptor import (
    BOOKKEEPING_COLUMNS,
    FIELD_TYPE_TO_STORAGE,
    NAME_PATTERN,
    RESERVED_FIELD_NAMES,
    SYSTEM_FIELD_NAMES,
    SYSTEM_FIELDS,
    FieldSpec,
    FieldType,
    RawSchemaDescriptor,
    SchemaDescriptor,
    StorageType,
    normalize_name,
)
from reportflow.domain.entities.status import (
    AUTHORITY_STATUSES,
    IN_REVIEW_STATUSES,
    MODERATOR_STATUSES,
    RecordStatus,
)
from reportflow.domain.entities.timeline import Timeline

__all__ = [
    "AUTHORITY_STATUSES",
    "BOOKKEEPING_COLUMNS",
    "Caller",
    "DynamicRecord",
    "FIELD_TYPE_TO_STORAGE",
    "FieldSpec",
    "FieldType",
    "IN_REVIEW_STATUSES",
    "MODERATOR_STATUSES",
    "NAME_PATTERN",
    "RESERVED_FIELD_NAMES",
    "RawSchemaDescriptor",
    "RecordPage",
    "RecordStatus",
    "Role",
    "SYSTEM_FIELD_NAMES",
    "SYSTEM_FIELDS",
    "SchemaDescriptor",
    "StorageType",
    "SubmissionContext",
    "TableHandle",
    "Timeline",
    "normalize_name",
]
