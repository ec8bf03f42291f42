"""Pydantic request schemas."""

from reportflow.schemas.descriptor_schemas import FieldDescriptor
from reportflow.schemas.record_schemas import Pagination
from reportflow.schemas.timeline_schemas import TimelineRequest

__all__ = [
    "FieldDescriptor",
    "Pagination",
    "TimelineRequest",
]
