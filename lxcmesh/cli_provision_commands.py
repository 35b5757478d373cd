"""Provisioning CLI command."""
from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from lxcmesh.cli_support import (
    handle_cli_error,
    is_mock,
    render_report,
    report_exit_code,
    setup_file_logging,
)
from lxcmesh.core.config import get_config, load_config
from lxcmesh.core.errors import ConfigValidationError
from lxcmesh.services.provisioner import Provisioner


def register_provision_commands(root: typer.Typer, console: Console) -> None:
    """Attach the provision command to the main CLI."""

    @root.command("provision")
    def provision(
        config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML file with settings (environment overrides it)."),
        dry_run: bool = typer.Option(False, "--dry-run", help="Log the commands instead of running them."),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging, tracebacks on error."),
        log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write the log to this file."),
    ) -> None:
        """Create the container, configure it and start Netbird.

        Settings come from NETBIRD_SETUP_KEY (required), CONTAINER_NAME, VLAN_ID,
        STORAGE, RAM, SWAP, DISK, CORES, SSH_PORT and UNPRIVILEGED.
        """
        try:
            settings = load_config(config).validate()
            get_config()
        except ConfigValidationError as e:
            handle_cli_error(e, console, verbose=verbose)

        if log_file or verbose:
            setup_file_logging(log_file=log_file, verbose=verbose)

        mock = dry_run or is_mock()
        if mock:
            console.print("[dim]Dry run: no command will be executed[/dim]")

        report = Provisioner(settings, mock=mock).run()
        render_report(console, report)

        exit_code = report_exit_code(report)
        if exit_code:
            raise typer.Exit(exit_code)
