"""Command-line interface for rowkeeper.

Inspects the configured database: effective settings, connectivity and the
reflected schema of a table.
"""

from typing import NoReturn

import click

from rowkeeper import __version__
from rowkeeper.core.config import get_settings
from rowkeeper.core.exceptions import ConfigurationError
from rowkeeper.core.logging import configure_logging, get_logger
from rowkeeper.infrastructure.persistence.database import DatabaseManager


@click.group()
@click.version_option(version=__version__, prog_name="rowkeeper")
@click.option(
    "--database-url",
    type=str,
    default=None,
    help="Database URL (overrides ROWKEEPER_DATABASE_URL)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=None,
    help="Set log level (overrides config)",
)
@click.pass_context
def cli(ctx: click.Context, database_url: str | None, log_level: str | None) -> None:
    """rowkeeper - repository persistence for relational stores."""
    overrides = {}
    if database_url:
        overrides["database_url"] = database_url
    if log_level:
        overrides["log_level"] = log_level

    settings = get_settings()
    if overrides:
        settings = settings.model_copy(update=overrides)
        # model_copy skips validation, rerun the driver check
        settings.validate_sync_driver()

    configure_logging(settings)
    ctx.obj = settings


@cli.command()
@click.pass_obj
def info(settings) -> None:
    """Display rowkeeper configuration."""
    click.echo(f"""
rowkeeper v{__version__}
{'=' * 40}

Configuration:
  Environment:     {settings.environment}
  Debug:           {settings.debug}
  Unknown columns: {settings.unknown_columns}

Database:
  URL:          {settings.database_url}
  Pool Size:    {settings.db_pool_size}
  Echo:         {settings.db_echo}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


@cli.command()
@click.pass_obj
def check(settings) -> None:
    """Check that the database is reachable."""
    db = DatabaseManager(settings)
    try:
        if not db.check_connection():
            click.echo("ERROR: Database connection failed", err=True)
            raise SystemExit(1)
        click.echo("Database connection OK")
    finally:
        db.dispose()


@cli.command()
@click.argument("table")
@click.option("--count", "with_count", is_flag=True, default=False, help="Also count the rows")
@click.pass_obj
def inspect(settings, table: str, with_count: bool) -> None:
    """Show the reflected schema of TABLE."""
    logger = get_logger(__name__)
    db = DatabaseManager(settings)
    try:
        store = db.data_store()
        try:
            schema = store.table_schema(table)
        except ConfigurationError as e:
            logger.debug("Table inspection failed", table=table, error=str(e))
            click.echo(f"ERROR: {e}", err=True)
            raise SystemExit(1)

        click.echo(f"Table: {schema.name}")
        click.echo(f"Primary key: {', '.join(schema.primary_key) or '(none)'}")
        click.echo("Columns:")
        for name in schema.columns:
            python_type = schema.column_types.get(name)
            type_name = python_type.__name__ if python_type is not None else "?"
            marker = " *" if name in schema.primary_key else ""
            click.echo(f"  {name:<24} {type_name}{marker}")
        if with_count:
            click.echo(f"Rows: {store.count(table)}")
    finally:
        db.dispose()


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `rowkeeper` command is run
    or when using `python -m rowkeeper`.
    """
    cli()


if __name__ == "__main__":
    main()
