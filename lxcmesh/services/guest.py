"""In-container setup for the Arch Linux guest.

Runs pacman, systemctl and curl inside the container via `pct exec`.
Every method raises StepError when the underlying script fails.
"""
import shlex
from typing import Sequence

from lxcmesh.core.logger import get_logger
from lxcmesh.services.proxmox.lifecycle import ContainerLifecycle

logger = get_logger(__name__)

BASE_PACKAGES = (
    'openssh',
    'python',
    'docker',
    'docker-compose',
    'zsh',
    'neovim',
    'net-tools',
    'git',
)

SSHD_DROPIN = "/etc/ssh/sshd_config.d/sz-ssh-config-config.conf"

KEYRING_SCRIPT = """
pacman-key --init
pacman-key --populate
pacman -Sy --noconfirm archlinux-keyring
pacman -Syu --noconfirm
"""


class GuestConfigurator:
    """Configures packages, SSH and Docker inside a freshly created container."""

    def __init__(self, vmid: int, lifecycle: ContainerLifecycle):
        self.vmid = vmid
        self.lifecycle = lifecycle

    def _run(self, what: str, script: str) -> None:
        logger.debug(f"Script for '{what}':\n{script}")
        self.lifecycle.exec_script(self.vmid, script).check(what)

    def init_keyring(self) -> None:
        """Initialize the pacman keyring and update the system."""
        logger.info("Initializing pacman keyring and updating system...")
        self._run("pacman keyring initialization", KEYRING_SCRIPT)

    def install_packages(self, packages: Sequence[str] = BASE_PACKAGES) -> None:
        """Install the base package set."""
        logger.info(f"Installing required packages: {' '.join(packages)}")
        self._run(
            "Package installation",
            f"pacman -S --noconfirm --needed {shlex.join(packages)}",
        )

    def configure_ssh(self, port: int) -> None:
        """Move sshd to the given port and enable it."""
        logger.info(f"Configuring SSH on port {port}...")
        script = (
            "mkdir -p /etc/ssh/sshd_config.d\n"
            f"echo 'Port {int(port)}' > {SSHD_DROPIN}\n"
            "systemctl enable --now sshd\n"
        )
        self._run("SSH configuration", script)

    def install_authorized_keys(self, keys_url: str) -> None:
        """Fetch authorized_keys for root from a key-hosting URL.

        curl -f makes HTTP errors fail instead of writing an error page.
        """
        logger.info(f"Setting up SSH keys from {keys_url}...")
        script = (
            "mkdir -p /root/.ssh\n"
            "chmod 700 /root/.ssh\n"
            f"curl -fsSL {shlex.quote(keys_url)} -o /root/.ssh/authorized_keys.new\n"
            "test -s /root/.ssh/authorized_keys.new\n"
            "mv /root/.ssh/authorized_keys.new /root/.ssh/authorized_keys\n"
            "chmod 600 /root/.ssh/authorized_keys\n"
        )
        self._run("SSH key setup", script)

    def enable_docker(self) -> None:
        """Enable and start the Docker daemon."""
        logger.info("Enabling Docker...")
        self.lifecycle.exec_command(
            self.vmid, ['systemctl', 'enable', '--now', 'docker']
        ).check("Enabling Docker")
