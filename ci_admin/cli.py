"""
Admin CLI for inspecting the CI system.

Provides commands to read build logs and build history from the same log
root and database the CI service writes to.
"""

import asyncio
import json
import os
import sys
from pathlib import Path

import click

from ci_common.exceptions import LogNotFoundError
from ci_persistence.log_store import LogStore
from ci_persistence.sqlite_repository import SQLiteBuildRepository


def get_db_path() -> str:
    """Get the database path from environment variable or default."""
    return os.environ.get("CI_DB_PATH", "ci_builds.db")


def get_log_root() -> Path:
    """Get the log root from environment variable or default."""
    return Path(os.environ.get("CI_LOG_ROOT", "logs"))


def get_repository() -> SQLiteBuildRepository:
    """Get the repository instance."""
    return SQLiteBuildRepository(get_db_path())


def run_async(coro):
    """Helper to run async functions in CLI commands."""
    return asyncio.run(coro)


@click.group()
def cli():
    """CI Admin - Inspect build logs and build history."""
    pass


@cli.group()
def builds():
    """Inspect build history."""
    pass


# ============================================================================
# Log Commands
# ============================================================================


@cli.command("logs")
@click.argument("plan_name")
def logs(plan_name: str):
    """Print the stdout and stderr of a realised plan."""
    try:
        click.echo(LogStore(get_log_root()).read(plan_name), nl=False)
    except LogNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


# ============================================================================
# Build History Commands
# ============================================================================


@builds.command("list")
@click.option("--limit", default=20, show_default=True, help="Number of records")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def builds_list(limit: int, json_output: bool):
    """List recent commit events and jobs, newest first."""

    async def list_builds():
        repo = get_repository()
        await repo.initialize()

        try:
            records = await repo.list_records(limit=limit)

            if json_output:
                click.echo(json.dumps([r.to_dict() for r in records], indent=2))
                return

            if not records:
                click.echo("No builds found.")
                return

            click.echo(
                f"\n{'State':<11} {'Result':<8} {'Repository':<30} {'Commit':<12} {'Target':<25}"
            )
            click.echo("-" * 90)
            for r in records:
                if r.success is None:
                    result = "-"
                else:
                    result = "pass" if r.success else "fail"
                target = r.attr_path or "(discovery)"
                click.echo(
                    f"{r.state.value:<11} {result:<8} {r.repository:<30} "
                    f"{r.commit[:12]:<12} {target:<25}"
                )
            click.echo()

        finally:
            await repo.close()

    run_async(list_builds())


@builds.command("get")
@click.argument("record_id")
def builds_get(record_id: str):
    """Show one history record, including its error if it failed."""

    async def get_build():
        repo = get_repository()
        await repo.initialize()

        try:
            record = await repo.get_record(record_id)
            if record is None:
                click.echo(f"Error: Build not found: {record_id}", err=True)
                sys.exit(1)

            click.echo("\nBuild Details:")
            click.echo(f"  ID:         {record.id}")
            click.echo(f"  Kind:       {record.kind}")
            click.echo(f"  Repository: {record.repository}")
            click.echo(f"  Commit:     {record.commit}")
            if record.attr_path:
                click.echo(f"  Target:     {record.attr_path}")
            click.echo(f"  State:      {record.state.value}")
            if record.plan_id:
                click.echo(f"  Plan:       {record.plan_id}")
            if record.error:
                click.echo(f"  Error:      {record.error}")
            click.echo()

        finally:
            await repo.close()

    run_async(get_build())


if __name__ == "__main__":
    cli()
