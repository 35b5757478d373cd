#!/usr/bin/env python3
"""lxcmesh CLI - provision an Arch Linux LXC container running a Netbird peer."""

import typer
from rich.console import Console

from lxcmesh.cli_inspect_commands import register_inspect_commands
from lxcmesh.cli_provision_commands import register_provision_commands

app = typer.Typer(
    name="lxcmesh",
    help="""lxcmesh - one Arch Linux container, SSH and a Netbird peer

Quick start:
  NETBIRD_SETUP_KEY=... lxcmesh provision --dry-run   # Show what would run
  NETBIRD_SETUP_KEY=... lxcmesh provision             # Do it
  lxcmesh next-id                                     # Next free container ID
""",
    add_completion=False,
)

console = Console()

register_provision_commands(app, console)
register_inspect_commands(app, console)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
