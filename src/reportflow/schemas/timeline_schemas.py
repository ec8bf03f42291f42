"""Pydantic schemas for the submission timeline."""

import re
from datetime import date

from pydantic import BaseModel, Field, field_validator, model_validator

DATE_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$"


class TimelineRequest(BaseModel):
    """Request body for setting the submission window (YYYY-MM-DD dates)."""

    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")

    model_config = {"populate_by_name": True}

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def require_iso_format(cls, v: object) -> object:
        if isinstance(v, str) and not re.match(DATE_PATTERN, v):
            raise ValueError("Dates must be in YYYY-MM-DD format")
        return v

    @model_validator(mode="after")
    def end_after_start(self) -> "TimelineRequest":
        if self.end_date <= self.start_date:
            raise ValueError("end date must be after start date")
        return self
