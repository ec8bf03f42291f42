"""Pytest configuration for all tests."""

from datetime import date, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from reportflow.application import AppContext, create_app_context
from reportflow.core.config import Settings
from reportflow.domain.entities import Caller


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a temp-file SQLite database.

    A file database lets concurrent sessions see each other's commits.
    """
    return Settings(
        _env_file=None,
        environment="testing",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'reportflow.db'}",
        upload_dir=str(tmp_path / "uploads"),
        log_level="WARNING",
        log_format="console",
        schema_access_key=None,
        enforce_submission_window=True,
    )


@pytest_asyncio.fixture
async def ctx(settings: Settings) -> AsyncGenerator[AppContext, None]:
    """A fully wired application context over a fresh database."""
    context = await create_app_context(settings, configure_logs=False)
    try:
        yield context
    finally:
        await context.close()


@pytest_asyncio.fixture
async def open_window(ctx: AppContext) -> None:
    """Open the submission window around today."""
    today = date.today()
    await ctx.timeline.set_timeline(today - timedelta(days=30), today + timedelta(days=30))


@pytest.fixture
def submitter() -> Caller:
    return Caller.submitter("user-1", "College A", "Physics")


@pytest.fixture
def other_submitter() -> Caller:
    return Caller.submitter("user-2", "College A", "Physics")


@pytest.fixture
def moderator() -> Caller:
    return Caller.moderator("mod-1", ["College A"], ["Physics"])


@pytest.fixture
def authority() -> Caller:
    return Caller.authority("admin-1")


@pytest.fixture
def publication_fields() -> list[dict]:
    return [
        {"FieldName": "Title", "FieldType": "Text", "FieldRequired": "true", "FieldUnique": "false"},
        {"FieldName": "Year", "FieldType": "Number", "FieldRequired": "true", "FieldUnique": "false"},
        {"FieldName": "Contact Email", "FieldType": "Email", "FieldRequired": "false", "FieldUnique": "false"},
        {"FieldName": "DOI", "FieldType": "Text", "FieldRequired": "false", "FieldUnique": "true"},
    ]
