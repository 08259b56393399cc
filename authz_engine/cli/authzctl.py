#!/usr/bin/env python3
"""
Authorization Control CLI - Command Line Interface for the Authorization Model Engine.

Provides commands for applying custom group structures, access patterns on
folders and CAS libraries, capability matrices and hardening presets to a
SAS Viya deployment.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .. import __version__
from ..config import Settings, load_settings
from ..connectors import Session, create_session
from ..errors import AuthzEngineError
from ..models import WorkflowResult
from ..workflows import (
    DAPWorkflow,
    GroupsWorkflow,
    HardenWorkflow,
    IPAPWorkflow,
    MatrixWorkflow,
)

logger = logging.getLogger(__name__)

# Rich console for pretty output
console = Console()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_handlers: List[logging.Handler] = []


def setup_logging(settings: Settings):
    """Log to the console through rich and to the run's log file."""
    root = logging.getLogger()
    for handler in _handlers:
        root.removeHandler(handler)
        handler.close()
    _handlers.clear()

    level = getattr(logging, settings.log_level)

    console_handler = RichHandler(console=Console(stderr=True), show_path=False)
    console_handler.setLevel(level)
    _handlers.append(console_handler)

    file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    _handlers.append(file_handler)

    for handler in _handlers:
        root.addHandler(handler)
    root.setLevel(level)


class AuthzController:
    """Main controller for authorization workflow runs."""

    def __init__(self, settings: Settings, mock_mode: bool = False):
        """Initialize the controller."""
        self.settings = settings
        self.mock_mode = mock_mode

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Open the run's session and always tear it down."""
        session = create_session(self.settings, mock=self.mock_mode)
        with session:
            yield session

    def run(self, workflow_class, action: str, *args: Any, **kwargs: Any) -> WorkflowResult:
        """
        Run one workflow action in a fresh session and display its result.

        Fatal errors are logged and terminate the process with status 1.
        """
        try:
            with self.session() as session:
                workflow = workflow_class(session)
                result = getattr(workflow, action)(*args, **kwargs)
        except (AuthzEngineError, OSError) as e:
            fail(e)

        display_workflow_results(result)
        return result


def fail(error: Exception):
    """Log a fatal error and exit."""
    logger.critical(f"{error.__class__.__name__}: {error}")
    console.print(f"[red]✗ {error}[/red]")
    sys.exit(1)


@click.group()
@click.option('--config', '-c', 'config_path', type=click.Path(dir_okay=False),
              help='Config file location (default is ~/.sas/gva.json)')
@click.option('--profile', help='sas-admin CLI profile (default is Default)')
@click.option('--insecure', is_flag=True, default=False,
              help='Allow TLS connections without validating server certificates')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Log level (default is INFO)')
@click.option('--log-file', help='Log file (default is gva-YYYY-MM-DD.log)')
@click.option('--mock/--real', default=False, help='Use the in-memory mock platform or the real one (default)')
@click.pass_context
def cli(ctx, config_path, profile, insecure, log_level, log_file, mock):
    """Authorization Model Control CLI - Manage SAS Viya authorization concepts"""
    try:
        settings = load_settings(
            config_path,
            profile=profile,
            valid_tls=False if insecure else None,
            log_level=log_level,
            log_file=log_file,
        )
    except AuthzEngineError as e:
        fail(e)

    setup_logging(settings)
    ctx.ensure_object(dict)
    ctx.obj['controller'] = AuthzController(settings, mock)


@cli.command()
def version():
    """Print the version number of the CLI."""
    console.print(__version__)


# Custom groups

@cli.group()
def groups():
    """Manage custom group structures."""


@groups.command('apply')
@click.argument('groups_file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def groups_apply(ctx, groups_file):
    """Apply a custom group structure GROUPS_FILE."""
    ctx.obj['controller'].run(GroupsWorkflow, "apply", groups_file)


@groups.command('remove')
@click.argument('groups_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--members', '-m', 'members_only', is_flag=True, help='Remove only the members of each group')
@click.pass_context
def groups_remove(ctx, groups_file, members_only):
    """Remove a custom group structure GROUPS_FILE."""
    ctx.obj['controller'].run(GroupsWorkflow, "remove", groups_file, members_only=members_only)


@groups.command('sync')
@click.argument('groups_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--delete-groups', '-g', is_flag=True, help='Delete superfluous custom groups')
@click.option('--dry-run', is_flag=True, help='Show the planned changes without applying them')
@click.pass_context
def groups_sync(ctx, groups_file, delete_groups, dry_run):
    """Synchronize custom groups with GROUPS_FILE (apply and remove automatically)."""
    ctx.obj['controller'].run(GroupsWorkflow, "sync", groups_file,
                              delete_groups=delete_groups, dry_run=dry_run)


# Information product access patterns

@cli.group()
def ipap():
    """Manage information product access patterns on content folders."""


@ipap.command('apply')
@click.argument('pattern_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('folders_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--create-groups', '-g', is_flag=True, help='Create missing custom groups')
@click.option('--create-folders', '-f', is_flag=True, help='Create missing content folders')
@click.pass_context
def ipap_apply(ctx, pattern_file, folders_file, create_groups, create_folders):
    """Apply access pattern PATTERN_FILE to the folders in FOLDERS_FILE."""
    ctx.obj['controller'].run(IPAPWorkflow, "apply", pattern_file, folders_file,
                              create_groups=create_groups, create_folders=create_folders)


@ipap.command('remove')
@click.argument('pattern_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('folders_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--delete-groups', '-g', is_flag=True, help='Delete listed custom groups')
@click.option('--delete-folders', '-f', is_flag=True, help='Delete listed content folders if empty')
@click.pass_context
def ipap_remove(ctx, pattern_file, folders_file, delete_groups, delete_folders):
    """Remove access pattern PATTERN_FILE from the folders in FOLDERS_FILE."""
    ctx.obj['controller'].run(IPAPWorkflow, "remove", pattern_file, folders_file,
                              delete_groups=delete_groups, delete_folders=delete_folders)


# Data access patterns

@cli.group()
def dap():
    """Manage data access patterns on CAS libraries."""


@dap.command('apply')
@click.argument('pattern_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('caslibs_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--create-groups', '-g', is_flag=True, help='Create missing custom groups')
@click.pass_context
def dap_apply(ctx, pattern_file, caslibs_file, create_groups):
    """Apply access pattern PATTERN_FILE to the CAS libraries in CASLIBS_FILE."""
    ctx.obj['controller'].run(DAPWorkflow, "apply", pattern_file, caslibs_file,
                              create_groups=create_groups)


@dap.command('remove')
@click.argument('pattern_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('caslibs_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--delete-groups', '-g', is_flag=True, help='Delete listed custom groups')
@click.pass_context
def dap_remove(ctx, pattern_file, caslibs_file, delete_groups):
    """Remove access pattern PATTERN_FILE from the CAS libraries in CASLIBS_FILE."""
    ctx.obj['controller'].run(DAPWorkflow, "remove", pattern_file, caslibs_file,
                              delete_groups=delete_groups)


# Capability matrices

@cli.group()
def matrix():
    """Manage platform capability matrices."""


@matrix.command('apply')
@click.argument('matrix_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--create-groups', '-g', is_flag=True, help='Create missing custom groups')
@click.pass_context
def matrix_apply(ctx, matrix_file, create_groups):
    """Apply capability matrix MATRIX_FILE."""
    ctx.obj['controller'].run(MatrixWorkflow, "apply", matrix_file, create_groups=create_groups)


@matrix.command('remove')
@click.argument('matrix_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--delete-groups', '-g', is_flag=True, help='Delete listed custom groups')
@click.pass_context
def matrix_remove(ctx, matrix_file, delete_groups):
    """Remove capability matrix MATRIX_FILE."""
    ctx.obj['controller'].run(MatrixWorkflow, "remove", matrix_file, delete_groups=delete_groups)


# Hardening

@cli.group()
def harden():
    """Harden default permissions."""


@harden.command('guest')
@click.pass_context
def harden_guest(ctx):
    """Remove all permissions for guest."""
    ctx.obj['controller'].run(HardenWorkflow, "guest")


@harden.command('au')
@click.pass_context
def harden_authenticated_users(ctx):
    """Restrict permissions for authenticatedUsers."""
    ctx.obj['controller'].run(HardenWorkflow, "authenticated_users")


@harden.command('sharing')
@click.pass_context
def harden_sharing(ctx):
    """Disable sharing and resharing."""
    ctx.obj['controller'].run(HardenWorkflow, "sharing")


def _status(success: Optional[bool]) -> str:
    if success is None:
        return "[yellow]planned[/yellow]"
    return "[green]✓[/green]" if success else "[red]✗[/red]"


def display_workflow_results(result: WorkflowResult):
    """Display workflow execution results."""
    if result.success:
        console.print(f"[green]✓ Workflow completed successfully[/green]")
    else:
        console.print(f"[red]✗ Workflow completed with {len(result.errors)} errors[/red]")

    if result.actions_taken:
        steps = Table(title="Actions")
        steps.add_column("Service", style="cyan")
        steps.add_column("Operation")
        steps.add_column("Resource")
        steps.add_column("Status")
        for action in result.actions_taken:
            member = action.get("parameters", {}).get("member")
            resource = f"{action['resource']} -> {member}" if member else action["resource"]
            steps.add_row(action["service"], action["operation"], resource, _status(action["success"]))
        console.print(steps)

    table = Table(title="Workflow Execution Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")

    table.add_row("Workflow ID", result.workflow_id)
    table.add_row("Pattern", result.pattern)
    table.add_row("Action", result.action)
    table.add_row("Started", result.started_at.strftime("%Y-%m-%d %H:%M:%S"))
    table.add_row("Completed", result.completed_at.strftime("%Y-%m-%d %H:%M:%S") if result.completed_at else "N/A")
    table.add_row("Total Steps", str(len(result.actions_taken)))
    table.add_row("Successful", str(sum(1 for a in result.actions_taken if a.get('success') is True)))
    table.add_row("Failed", str(sum(1 for a in result.actions_taken if a.get('success') is False)))

    console.print(table)

    if result.errors:
        console.print("[red]Errors:[/red]")
        for error in result.errors:
            console.print(f"  - {error}")


def main():
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
