"""Pydantic schemas for record listings."""

from pydantic import BaseModel, Field


class Pagination(BaseModel):
    """Page selection for record listings."""

    page: int = Field(default=1, ge=1, description="1-based page number")
    limit: int = Field(default=10, ge=1, description="Records per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
