"""Repository for the submission timeline singleton."""

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reportflow.infrastructure.persistence.models import TimelineModel


class TimelineRepository:
    """Repository for timeline database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self) -> TimelineModel | None:
        result = await self.session.execute(select(TimelineModel).order_by(TimelineModel.id).limit(1))
        return result.scalar_one_or_none()

    async def upsert(self, start_date: date, end_date: date) -> TimelineModel:
        """Set the window, updating the existing row if there is one."""
        timeline = await self.get()
        if timeline is None:
            timeline = TimelineModel(start_date=start_date, end_date=end_date)
            self.session.add(timeline)
        else:
            timeline.start_date = start_date
            timeline.end_date = end_date
        await self.session.flush()
        return timeline
