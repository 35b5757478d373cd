"""Read-only helper commands: ID allocation, network string, compose file."""
from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from lxcmesh.cli_support import handle_cli_error, is_mock
from lxcmesh.core.config import BASELINE_CONTAINER_ID, load_config
from lxcmesh.core.errors import LxcmeshError
from lxcmesh.services.compose import build_netbird_compose, render_compose
from lxcmesh.services.proxmox.inventory import ClusterInventory
from lxcmesh.services.proxmox.lifecycle import build_network_config


def register_inspect_commands(root: typer.Typer, console: Console) -> None:
    """Attach the inspection commands to the main CLI."""

    @root.command("next-id")
    def next_id(
        baseline: int = typer.Option(BASELINE_CONTAINER_ID, "--baseline", min=0, help="Lowest identifier to hand out."),
    ) -> None:
        """Print the next free container identifier."""
        try:
            vmid = ClusterInventory(mock=is_mock(), baseline=baseline).allocate_container_id()
        except LxcmeshError as e:
            handle_cli_error(e, console)
        typer.echo(vmid)

    @root.command("net-config")
    def net_config(
        vlan: Optional[int] = typer.Option(None, "--vlan", min=1, max=4094, help="VLAN tag."),
        bridge: str = typer.Option("vmbr0", "--bridge", help="Host bridge."),
    ) -> None:
        """Print the --net0 value used for pct create."""
        typer.echo(build_network_config(bridge, vlan))

    @root.command("compose")
    def compose(
        config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML file with settings."),
        show_secrets: bool = typer.Option(False, "--show-secrets", help="Print the setup key unmasked."),
    ) -> None:
        """Print the Netbird compose file that would be deployed."""
        try:
            settings = load_config(config).validate()
        except LxcmeshError as e:
            handle_cli_error(e, console)

        content = build_netbird_compose(
            settings.netbird_setup_key,
            management_url=settings.netbird_management_url,
            hostname=settings.container_name,
        )
        typer.echo(render_compose(content, mask_secrets=not show_secrets), nl=False)
