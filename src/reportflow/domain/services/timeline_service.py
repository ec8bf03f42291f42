"""Submission window management and the gate consulted before submitter writes."""

from datetime import date, datetime, timezone
from typing import Callable

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reportflow.core.errors import NoContentError, ValidationError, WindowClosedError
from reportflow.core.logging import get_logger
from reportflow.domain.entities import Timeline
from reportflow.infrastructure.persistence.repositories import TimelineRepository
from reportflow.schemas import TimelineRequest

logger = get_logger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class TimelineService:
    """Service for the global submission timeline."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        today: Callable[[], date] = utc_today,
    ) -> None:
        """Initialize the service.

        Args:
            session_factory: Factory for the sessions each call opens.
            today: Provider of the current calendar date.
        """
        self.session_factory = session_factory
        self.today = today

    async def set_timeline(self, start_date: str | date, end_date: str | date) -> Timeline:
        """Set the submission window, replacing any existing one.

        Raises:
            ValidationError: If a date is malformed or end is not after start.
        """
        try:
            request = TimelineRequest(start_date=start_date, end_date=end_date)
        except PydanticValidationError as e:
            messages = [err["msg"] for err in e.errors()]
            raise ValidationError(
                f"Invalid timeline: {'; '.join(messages)}", details={"errors": messages}
            ) from e

        async with self.session_factory() as session:
            model = await TimelineRepository(session).upsert(request.start_date, request.end_date)
            timeline = Timeline(start_date=model.start_date, end_date=model.end_date)
            await session.commit()

        logger.info(
            "Timeline set",
            start_date=timeline.start_date.isoformat(),
            end_date=timeline.end_date.isoformat(),
        )
        return timeline

    async def get_timeline(self) -> Timeline:
        """Get the submission window.

        Raises:
            NoContentError: If no window has been set.
        """
        async with self.session_factory() as session:
            model = await TimelineRepository(session).get()
        if model is None:
            raise NoContentError("Submission timeline has not been set")
        return Timeline(start_date=model.start_date, end_date=model.end_date)

    async def check_window(self, today: date | None = None) -> Timeline:
        """Check that submissions are open on the given day (default today).

        Raises:
            WindowClosedError: If no window is set or the day is outside it.
        """
        today = today or self.today()
        try:
            timeline = await self.get_timeline()
        except NoContentError as e:
            raise WindowClosedError("Submission timeline has not been set") from e

        if today < timeline.start_date:
            raise WindowClosedError(
                f"Submissions open on {timeline.start_date.isoformat()}",
                details={"start_date": timeline.start_date.isoformat()},
            )
        if today > timeline.end_date:
            raise WindowClosedError(
                f"Submissions closed on {timeline.end_date.isoformat()}",
                details={"end_date": timeline.end_date.isoformat()},
            )
        return timeline
