"""Shared utilities for lxcmesh CLI commands."""
from __future__ import annotations

import os
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from lxcmesh.core.errors import ConfigValidationError
from lxcmesh.models.report import ProvisionReport

EXIT_FAILED = 1
EXIT_WARNINGS = 3


def is_mock() -> bool:
    """Return True when the CLI runs in mock mode."""
    return os.environ.get("LXCMESH_MOCK") == "1"


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """Set up file logging for CLI commands."""
    from lxcmesh.core.logger import set_verbose, setup_file_logging as _setup_file_logging
    set_verbose(verbose)
    _setup_file_logging(log_file=log_file, verbose=verbose)


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = EXIT_FAILED,
) -> None:
    """Print an error consistently and exit.

    Raises:
        typer.Exit: Always
    """
    if isinstance(e, ConfigValidationError):
        console.print("[red]Error:[/red] invalid configuration")
        for problem in e.problems:
            console.print(f"  [red]•[/red] {problem}")
    else:
        console.print(f"[red]Error:[/red] {e}")
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def report_exit_code(report: ProvisionReport) -> int:
    """0 on full success, 1 when aborted, 3 when advisory steps failed."""
    if report.aborted:
        return EXIT_FAILED
    if report.failed_steps:
        return EXIT_WARNINGS
    return 0


def render_report(console: Console, report: ProvisionReport) -> None:
    """Print the step table and container summary."""
    table = Table(title="Provisioning steps")
    table.add_column("Step")
    table.add_column("Result")
    table.add_column("Detail", overflow="fold")

    for step in report.steps:
        if step.ok:
            result = "[green]✓ ok[/green]"
        elif step.fatal:
            result = "[red]✗ failed[/red]"
        else:
            result = "[yellow]⚠ warning[/yellow]"
        table.add_row(step.name, result, step.detail)

    console.print(table)

    if report.succeeded:
        print_success(console, "Setup complete!")
    elif report.aborted:
        print_error(console, "Setup failed, container left as is for inspection")
    else:
        print_warning(console, f"Setup {report.status}")

    if report.container_id is not None:
        console.print(f"Container ID: {report.container_id}")
    console.print(f"Container Name: {report.container_name}")
    if report.container_ip:
        console.print(f"Container IP: {report.container_ip}")
    if report.ssh_port is not None:
        console.print(f"SSH Port: {report.ssh_port}")
    if report.vlan_id is not None:
        console.print(f"VLAN ID: {report.vlan_id}")


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    console.print(f"[green]{prefix}[/green] {message}")


def print_error(console: Console, message: str, prefix: str = "✗") -> None:
    console.print(f"[red]{prefix}[/red] {message}")


def print_warning(console: Console, message: str, prefix: str = "⚠") -> None:
    console.print(f"[yellow]{prefix}[/yellow] {message}")
