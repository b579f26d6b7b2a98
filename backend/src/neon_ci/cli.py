"""neon-ci -- command-line entry point for CI steps.

Each command builds a ``Settings`` object once from the environment plus
explicit options, then runs one flow. Any ``NeonCIError`` is reported as a
single ``Error:`` line and a non-zero exit status.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click
from dotenv import load_dotenv

from .branching.lifecycle import DisposeOutcome, dispose_branch, reset_branch
from .branching.provisioning import provision_branch
from .config import Settings
from .exceptions import ConfigMissing, NeonCIError
from .exports import format_exports, summarize_exports, write_exports
from .logging_utils import configure_logging, register_secret
from .metrics import call_summary, format_call_summary, monitor
from .providers.neon import client_from_settings

LOGGER = logging.getLogger(__name__)


def _settings(ctx: click.Context, *, branch_options: bool = False, **overrides: object) -> Settings:
    settings = ctx.obj["settings"]
    if branch_options:
        settings = settings.with_branch_env()
    settings = settings.with_overrides(**overrides).validate()
    register_secret(settings.api_key)
    register_secret(settings.password)
    return settings


@contextmanager
def _fatal_errors() -> Iterator[None]:
    """Report provisioning errors as one line and exit 1."""

    try:
        yield
    except NeonCIError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from None
    finally:
        LOGGER.debug("API calls: %s", call_summary())


@click.group()
@click.option("--api-key", default=None, help="Neon API key (defaults to $NEON_API_KEY).")
@click.option("--project-id", default=None, help="Neon project ID (defaults to $NEON_PROJECT_ID).")
@click.option("--verbose", "-v", is_flag=True, help="Log every API call.")
@click.pass_context
def cli(ctx: click.Context, api_key: str | None, project_id: str | None, verbose: bool) -> None:
    """Ephemeral Neon database branches for CI pipelines."""
    configure_logging(logging.DEBUG if verbose else logging.INFO)
    monitor.reset()
    ctx.ensure_object(dict)
    with _fatal_errors():
        ctx.obj["settings"] = Settings.from_env(branch_options=False).with_overrides(
            api_key=api_key, project_id=project_id
        )


@cli.command()
@click.option("--branch-name", default=None, help="Branch to create or reuse (default: CI run id).")
@click.option("--parent", "parent_branch", default=None, help="Parent branch name or ID.")
@click.option("--role", default=None, help="Database role (default: neondb_owner).")
@click.option("--database", default=None, help="Database name (default: neondb).")
@click.option("--password", default=None, help="Role password; skips reveal_password.")
@click.option("--ttl-seconds", type=click.IntRange(min=0), default=None, help="Auto-expire after N seconds.")
@click.option("--schema-only", is_flag=True, help="Copy schema without data.")
@click.option("--get-auth-url", is_flag=True, help="Export NEON_AUTH_URL when enabled.")
@click.option("--get-data-api-url", is_flag=True, help="Export NEON_DATA_API_URL when enabled.")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="BASH_ENV",
    default=None,
    help="File to append export lines to (defaults to $BASH_ENV; stdout if unset).",
)
@click.pass_context
def create(ctx: click.Context, env_file: Path | None, **options: object) -> None:
    """Create (or reuse) a branch and export its connection details."""
    with _fatal_errors():
        # Unset flags fall back to the environment rather than forcing False.
        overrides = {key: (None if value is False else value) for key, value in options.items()}
        settings = _settings(ctx, branch_options=True, **overrides)
        result = provision_branch(client_from_settings(settings), settings)

        exports = result.exports()
        if env_file is not None:
            write_exports(exports, env_file)
        else:
            for line in format_exports(exports):
                click.echo(line)

        click.echo("")
        click.echo(summarize_exports(exports))
        click.echo("")
        click.echo("=== Neon Branch Ready ===")
        click.echo(f"Branch:   {result.branch.name} ({result.branch.id})")
        click.echo(f"Host:     {result.connection.host}")
        click.echo(f"Database: {result.connection.database}")
        click.echo(f"Role:     {result.connection.user}")
        click.echo(f"Created:  {str(result.branch.created).lower()}")
        click.echo(f"API calls: {format_call_summary()}")
        click.echo("=========================")


@cli.command()
@click.option(
    "--branch-id",
    envvar="NEON_BRANCH_ID",
    default=None,
    help="Branch to delete (defaults to $NEON_BRANCH_ID from 'create').",
)
@click.pass_context
def delete(ctx: click.Context, branch_id: str | None) -> None:
    """Delete a branch; a branch that is already gone is not an error."""
    with _fatal_errors():
        settings = _settings(ctx)
        if not branch_id:
            raise ConfigMissing(
                "Branch ID", "Either pass --branch-id or run 'create' first to set NEON_BRANCH_ID."
            )
        outcome = dispose_branch(client_from_settings(settings), branch_id)
        if outcome is DisposeOutcome.ALREADY_GONE:
            click.echo(f"Branch {branch_id} was already gone.")
        else:
            click.echo(f"Branch {branch_id} deleted.")


@cli.command()
@click.argument("branch")
@click.option("--parent", default=None, help="Re-point the branch at this parent (name or ID).")
@click.pass_context
def reset(ctx: click.Context, branch: str, parent: str | None) -> None:
    """Reset BRANCH (name or ID) to the latest state of its parent."""
    with _fatal_errors():
        settings = _settings(ctx)
        branch_id = reset_branch(client_from_settings(settings), branch, parent)
        click.echo(f"Branch {branch_id} reset.")


def main() -> None:
    load_dotenv()
    cli(prog_name="neon-ci")


if __name__ == "__main__":
    main()
