"""SQLAlchemy models for ReportFlow's fixed tables."""

from reportflow.infrastructure.persistence.models.schema import RawSchemaModel, SchemaModel
from reportflow.infrastructure.persistence.models.timeline import TimelineModel

__all__ = ["RawSchemaModel", "SchemaModel", "TimelineModel"]
