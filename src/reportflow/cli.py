"""Command-line interface for ReportFlow.

This module provides maintenance commands for the schema registry,
the submission timeline and bulk imports.
"""

import asyncio
import json
import shutil
import uuid
from pathlib import Path
from typing import Any, Awaitable, Callable, NoReturn, TypeVar

import click

from reportflow.application import AppContext, app_context
from reportflow.core.config import get_settings
from reportflow.core.errors import ReportFlowError
from reportflow.core.logging import bind_correlation_id, clear_context
from reportflow.domain.entities import Caller

T = TypeVar("T")


def run(action: Callable[[AppContext], Awaitable[T]]) -> T:
    """Run an action against a fresh application context.

    Domain errors are reported as click errors.
    """

    async def runner() -> T:
        bind_correlation_id(f"cli_{uuid.uuid4().hex[:12]}")
        try:
            async with app_context() as ctx:
                return await action(ctx)
        finally:
            clear_context()

    try:
        return asyncio.run(runner())
    except ReportFlowError as e:
        raise click.ClickException(e.message) from e


def load_fields(path: str) -> list[dict[str, Any]]:
    """Load a JSON list of field descriptors."""
    try:
        fields = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Invalid JSON: {e}", param_hint="--fields") from e
    if not isinstance(fields, list):
        raise click.BadParameter("Expected a JSON list of field descriptors", param_hint="--fields")
    return fields


@click.group()
@click.version_option(version="0.1.0", prog_name="ReportFlow")
def cli() -> None:
    """ReportFlow - dynamic report tables with a two-stage review.

    Settings are read from REPORTFLOW_* environment variables and .env.
    """


@cli.command()
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
def init_db(force: bool) -> None:
    """Create the schema store and timeline tables."""
    settings = get_settings()

    if not force:
        click.confirm(
            f"This will create the ReportFlow tables in {settings.database_url}. Continue?",
            abort=True,
            default=False,
        )

    async def action(ctx: AppContext) -> int:
        return len(ctx.registry)

    tables = run(action)
    click.echo(f"Database initialized successfully ({tables} registered tables).")


@cli.command()
@click.argument("name")
@click.option(
    "--fields",
    "fields_file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="JSON file holding the list of field descriptors",
)
def create_schema(name: str, fields_file: str) -> None:
    """Register a new report table NAME."""
    fields = load_fields(fields_file)

    async def action(ctx: AppContext) -> str:
        return await ctx.schemas.create_schema(name, fields)

    table_name = run(action)
    click.echo(f"Table '{table_name}' created.")


@cli.command()
@click.argument("schema_id")
@click.argument("name")
@click.option(
    "--fields",
    "fields_file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="JSON file holding the list of field descriptors",
)
@click.option(
    "--access-key",
    envvar="REPORTFLOW_SCHEMA_ACCESS_KEY",
    default=None,
    help="Schema administration key",
)
@click.option("--force", is_flag=True, help="Skip confirmation prompt")
def update_schema(
    schema_id: str, name: str, fields_file: str, access_key: str | None, force: bool
) -> None:
    """Redefine table SCHEMA_ID as NAME. Existing records are dropped."""
    fields = load_fields(fields_file)
    if not force:
        click.confirm(
            "Redefining a table deletes all of its records. Continue?",
            abort=True,
            default=False,
        )

    async def action(ctx: AppContext) -> str:
        return await ctx.schemas.update_schema(schema_id, name, fields, access_key=access_key)

    table_name = run(action)
    click.echo(f"Table '{table_name}' updated.")


@cli.command()
def list_schemas() -> None:
    """List registered tables."""

    async def action(ctx: AppContext) -> list[dict[str, Any]]:
        return [raw.to_dict() for raw in await ctx.schemas.list_schemas()]

    schemas = run(action)
    if not schemas:
        click.echo("No tables registered.")
        return

    for schema in schemas:
        field_names = ", ".join(f["FieldName"] for f in schema["fields"])
        click.echo(f"{schema['schema_id']}  {schema['table_name']}  [{field_names}]")


@cli.command()
@click.argument("name")
def show_schema(name: str) -> None:
    """Show the field descriptors of table NAME."""

    async def action(ctx: AppContext) -> dict[str, Any]:
        return (await ctx.schemas.get_schema_by_name(name)).to_dict()

    schema = run(action)
    click.echo(f"Table:  {schema['table_name']} ({schema['schema_id']})")
    for field in schema["fields"]:
        flags = [
            flag
            for flag, key in (("required", "FieldRequired"), ("unique", "FieldUnique"))
            if field.get(key) == "true"
        ]
        suffix = f" [{', '.join(flags)}]" if flags else ""
        click.echo(f"  {field['FieldName']}: {field['FieldType']}{suffix}")
    click.echo(f"System: {', '.join(schema['system_fields'])}")


@cli.command()
@click.argument("schema_id")
@click.option("--force", is_flag=True, help="Skip confirmation prompt")
def delete_schema(schema_id: str, force: bool) -> None:
    """Delete table SCHEMA_ID and every record in it."""
    if not force:
        click.confirm(
            "This deletes the table and all of its records. Continue?",
            abort=True,
            default=False,
        )

    async def action(ctx: AppContext) -> dict[str, Any]:
        return await ctx.schemas.delete_schema(schema_id)

    result = run(action)
    click.echo(
        f"Table '{result['table_name']}' deleted ({result['records_deleted']} records)."
    )


@cli.command()
@click.argument("start")
@click.argument("end")
def set_timeline(start: str, end: str) -> None:
    """Set the submission window from START to END (YYYY-MM-DD)."""

    async def action(ctx: AppContext):
        return await ctx.timeline.set_timeline(start, end)

    timeline = run(action)
    click.echo(
        f"Submission window set: {timeline.start_date.isoformat()} to {timeline.end_date.isoformat()}"
    )


@cli.command()
def show_timeline() -> None:
    """Show the submission window."""

    async def action(ctx: AppContext):
        return await ctx.timeline.get_timeline()

    timeline = run(action)
    click.echo(f"Start: {timeline.start_date.isoformat()}")
    click.echo(f"End:   {timeline.end_date.isoformat()}")


@cli.command()
@click.argument("table")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--user", "user_id", required=True, help="Submitter ID stamped on every row")
@click.option("--college", default="", help="Submitter college")
@click.option("--department", default="", help="Submitter department")
def import_file(table: str, file: str, user_id: str, college: str, department: str) -> None:
    """Import every row of FILE (.csv or .xlsx) into TABLE.

    The file is copied into the upload directory first; the copy is
    removed once the import finishes.
    """
    settings = get_settings()
    source = Path(file)
    upload = Path(settings.upload_dir) / f"{uuid.uuid4().hex}{source.suffix.lower()}"
    upload.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, upload)

    caller = Caller.submitter(user_id, college, department)

    async def action(ctx: AppContext) -> int:
        return await ctx.importer.bulk_upload(caller, table, upload)

    try:
        count = run(action)
    finally:
        upload.unlink(missing_ok=True)
    click.echo(f"Imported {count} records into '{table}'.")


@cli.command()
def info() -> None:
    """Display ReportFlow configuration."""
    settings = get_settings()

    click.echo(f"""
ReportFlow v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}

Database:
  URL:          {settings.database_url}
  Echo:         {settings.db_echo}

Tables:
  Prefix:       {settings.table_prefix}
  Page Size:    {settings.default_page_size}
  Window Gate:  {settings.enforce_submission_window}

Uploads:
  Directory:    {settings.upload_dir}
  Extensions:   {', '.join(settings.allowed_import_extensions)}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    Called by the `reportflow` command and by `python -m reportflow`.
    """
    cli()


if __name__ == "__main__":
    main()
