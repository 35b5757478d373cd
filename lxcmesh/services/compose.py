"""
Netbird compose deployment - run the mesh client inside the container.

The compose file is rendered on the host, pushed into the container
with `pct push`, then started with `docker compose up -d`.
"""
from typing import Any, Dict, Optional

import yaml

from lxcmesh.core.logger import get_logger
from lxcmesh.services.proxmox.lifecycle import ContainerLifecycle

logger = get_logger(__name__)

NETBIRD_IMAGE = "netbirdio/netbird:latest"
COMPOSE_DIR = "/opt/netbird"
COMPOSE_FILE = f"{COMPOSE_DIR}/docker-compose.yml"
PROJECT_NAME = "netbird"

MASKED = "********"


def build_netbird_compose(
    setup_key: str,
    management_url: Optional[str] = None,
    hostname: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the compose mapping for the Netbird client.

    Args:
        setup_key: Netbird setup key used to enrol the peer
        management_url: Self-hosted management URL (Netbird cloud when None)
        hostname: Peer name shown in the Netbird dashboard
    """
    environment = {"NB_SETUP_KEY": setup_key}
    if management_url:
        environment["NB_MANAGEMENT_URL"] = management_url
    if hostname:
        environment["NB_HOSTNAME"] = hostname

    return {
        "services": {
            "netbird": {
                "image": NETBIRD_IMAGE,
                "container_name": "netbird",
                "hostname": hostname or "netbird",
                "network_mode": "host",
                "cap_add": ["NET_ADMIN", "SYS_ADMIN", "SYS_RESOURCE"],
                "environment": environment,
                "volumes": ["netbird-client:/etc/netbird"],
                "restart": "unless-stopped",
            }
        },
        "volumes": {"netbird-client": None},
    }


def render_compose(compose: Dict[str, Any], mask_secrets: bool = False) -> str:
    """Serialize a compose mapping to YAML, optionally hiding the setup key."""
    if mask_secrets:
        compose = yaml.safe_load(yaml.safe_dump(compose))
        for service in compose.get("services", {}).values():
            env = service.get("environment") or {}
            if "NB_SETUP_KEY" in env:
                env["NB_SETUP_KEY"] = MASKED

    return yaml.safe_dump(compose, default_flow_style=False, sort_keys=False)


class ComposeDeployer:
    """
    Deploys the Netbird compose file to an LXC container.

    Example:
        deployer = ComposeDeployer(vmid, lifecycle)
        deployer.deploy(build_netbird_compose(key, hostname="ping-01"))
    """

    def __init__(self, vmid: int, lifecycle: ContainerLifecycle):
        self.vmid = vmid
        self.lifecycle = lifecycle

    def write_compose(self, compose: Dict[str, Any]) -> None:
        """Write docker-compose.yml into the container (root-only readable)."""
        self.lifecycle.exec_command(
            self.vmid, ['mkdir', '-p', COMPOSE_DIR]
        ).check(f"Creating {COMPOSE_DIR}")
        self.lifecycle.push_file(self.vmid, render_compose(compose), COMPOSE_FILE, perms='0600')
        logger.info(f"✓ Wrote {COMPOSE_FILE} in container {self.vmid}")

    def start_services(self) -> None:
        """Pull images and start the compose project."""
        logger.info(f"Starting Netbird in container {self.vmid}...")
        self.lifecycle.exec_command(
            self.vmid,
            ['docker', 'compose', '-f', COMPOSE_FILE, '-p', PROJECT_NAME, 'up', '-d', '--pull', 'always'],
        ).check("Starting Netbird")
        logger.info(f"✓ Netbird running in container {self.vmid}")

    def deploy(self, compose: Dict[str, Any]) -> None:
        """Write the compose file and start it.

        Raises:
            StepError: If any command fails
        """
        self.write_compose(compose)
        self.start_services()
