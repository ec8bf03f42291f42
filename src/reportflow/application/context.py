"""Application context owning the database, registry and services.

Everything a caller needs is reached through one AppContext, built at
startup and closed at shutdown. There is no module-level state: two
contexts over two databases do not interfere.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator

from reportflow.core.config import Settings, get_settings
from reportflow.core.logging import configure_logging, get_logger
from reportflow.domain.services import (
    BulkImporter,
    RecordStore,
    ReportService,
    SchemaService,
    TimelineService,
    WorkflowEngine,
)
from reportflow.infrastructure.persistence.database import DatabaseManager, init_database
from reportflow.infrastructure.persistence.registry import Registry
from reportflow.infrastructure.persistence.table_builder import TableBuilder

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Wired application components."""

    settings: Settings
    db: DatabaseManager
    registry: Registry
    schemas: SchemaService
    records: RecordStore
    timeline: TimelineService
    workflow: WorkflowEngine
    importer: BulkImporter
    reports: ReportService

    async def close(self) -> None:
        await self.db.disconnect()


async def create_app_context(
    settings: Settings | None = None, configure_logs: bool = True
) -> AppContext:
    """Build the application context and rehydrate the registry.

    Args:
        settings: Settings to use; loaded from the environment by default.
        configure_logs: Whether to configure structlog from the settings.
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(settings)

    logger.info(
        "Starting ReportFlow",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)

    db = DatabaseManager(settings)
    try:
        await init_database(db)
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        await db.disconnect()
        raise

    registry = Registry()
    session_factory = db.session_factory
    schemas = SchemaService(
        session_factory, registry, TableBuilder(prefix=settings.table_prefix), settings
    )
    records = RecordStore(session_factory, registry, settings)
    timeline = TimelineService(session_factory)

    context = AppContext(
        settings=settings,
        db=db,
        registry=registry,
        schemas=schemas,
        records=records,
        timeline=timeline,
        workflow=WorkflowEngine(records, timeline, settings),
        importer=BulkImporter(records, timeline, settings=settings),
        reports=ReportService(session_factory, registry),
    )

    await schemas.rehydrate()
    logger.info("ReportFlow ready", tables=len(registry))
    return context


@asynccontextmanager
async def app_context(settings: Settings | None = None) -> AsyncIterator[AppContext]:
    """Provide an application context closed on exit.

    Example:
        async with app_context() as ctx:
            await ctx.schemas.list_schemas()
    """
    context = await create_app_context(settings)
    try:
        yield context
    finally:
        logger.info("Shutting down ReportFlow")
        await context.close()
