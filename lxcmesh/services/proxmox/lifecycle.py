"""Container lifecycle management (create, configure, exec)."""
import re
import tempfile
import time
from pathlib import Path
from typing import List, Optional

from lxcmesh.core.commands import CommandResult, run_command
from lxcmesh.core.config import ProvisionConfig, get_config
from lxcmesh.core.errors import StepError
from lxcmesh.core.logger import get_logger
from lxcmesh.models.container import ContainerResources, NetworkConfig

logger = get_logger(__name__)

LXC_CONFIG_DIR = Path("/etc/pve/lxc")

CONTAINER_FEATURES = "nesting=1,fuse=1,mknod=1"

# Lets Docker run inside the container
LXC_CUSTOM_STANZA = """
# Custom configurations
lxc.apparmor.profile: unconfined
lxc.cgroup.devices.allow: a
lxc.cap.drop:
"""

_INET_RE = re.compile(r'\binet\s+(\d{1,3}(?:\.\d{1,3}){3})')


def build_network_config(bridge: str = 'vmbr0', vlan_id: Optional[int] = None) -> str:
    """Return the --net0 value for a DHCP interface, tagged when vlan_id is set."""
    return NetworkConfig(bridge=bridge, vlan_id=vlan_id).to_net0()


def build_create_command(vmid: int, template_volume: str, config: ProvisionConfig) -> List[str]:
    """Build the pct create argument vector for a provisioning run."""
    resources = ContainerResources(
        memory=config.memory,
        swap=config.swap,
        disk=config.disk,
        cores=config.cores,
        storage=config.storage,
    )

    return [
        'pct', 'create', str(vmid), template_volume,
        '--hostname', config.container_name,
        '--features', CONTAINER_FEATURES,
        '--cores', str(resources.cores),
        '--memory', str(resources.memory),
        '--swap', str(resources.swap),
        '--storage', resources.storage,
        '--net0', build_network_config(config.bridge, config.vlan_id),
        '--rootfs', resources.rootfs,
        '--unprivileged', '1' if config.unprivileged else '0',
        '--cmode', 'shell',
        '--onboot', '1',
        '--protection', '1',
        '--start', '1',
    ]


class ContainerLifecycle:
    """Creates a container and runs commands inside it."""

    def __init__(self, mock: bool = False, config_dir: Path = LXC_CONFIG_DIR):
        self.mock = mock
        self.config_dir = Path(config_dir)

    def create_container(self, vmid: int, template_volume: str, config: ProvisionConfig) -> int:
        """Create and start the container.

        Raises:
            StepError: If pct create fails
        """
        cmd = build_create_command(vmid, template_volume, config)

        if not config.unprivileged:
            logger.warning(f"Creating PRIVILEGED container {vmid} - has full root access!")

        logger.info(f"Creating container {vmid} ({config.container_name}) from {template_volume}")
        run_command(cmd, mock=self.mock).check(f"Creating container {vmid}")
        logger.info(f"✓ Container {vmid} ({config.container_name}) created")
        return vmid

    def append_lxc_config(self, vmid: int) -> Path:
        """Append the custom LXC stanza to the host-side container config.

        Raises:
            StepError: If the config file is missing or cannot be written
        """
        config_path = self.config_dir / f"{vmid}.conf"

        if self.mock:
            logger.info(f"MOCK: Would append LXC settings to {config_path}")
            return config_path

        if not config_path.exists():
            raise StepError(f"Container config not found: {config_path}")

        try:
            with open(config_path, 'a') as f:
                f.write(LXC_CUSTOM_STANZA)
        except OSError as e:
            raise StepError(f"Failed to update {config_path}: {e}") from e

        logger.info(f"✓ Added LXC specific configuration to {config_path}")
        return config_path

    def container_status(self, vmid: int, timeout: Optional[float] = None) -> Optional[str]:
        """Return the status reported by pct status (e.g. 'running'), None on error."""
        result = run_command(
            ['pct', 'status', str(vmid)],
            timeout=get_config().ready_timeout if timeout is None else timeout,
            mock=self.mock,
            mock_stdout="status: running\n",
        )
        if not result.ok:
            return None
        _, _, status = result.stdout.strip().partition(':')
        return status.strip() or None

    def is_ready(self, vmid: int, timeout: Optional[float] = None) -> bool:
        """True once the container runs, accepts exec and has a default route.

        Each check is killed after timeout seconds (ready_timeout when None).
        """
        if timeout is None:
            timeout = get_config().ready_timeout
        if self.container_status(vmid, timeout=timeout) != 'running':
            return False
        if not self.exec_command(vmid, ['true'], timeout=timeout).ok:
            return False
        route = self.exec_command(vmid, ['ip', '-4', 'route', 'show', 'default'], timeout=timeout)
        return route.ok and bool(route.stdout.strip() or self.mock)

    def wait_until_ready(
        self,
        vmid: int,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
    ) -> float:
        """Poll until the container is usable.

        Returns:
            Seconds waited

        Raises:
            StepError: If the container is not ready before the timeout
        """
        config = get_config()
        timeout = config.ready_timeout if timeout is None else timeout
        interval = config.ready_poll_interval if interval is None else interval

        logger.info(f"Waiting for container {vmid} to become ready...")
        start = time.monotonic()
        deadline = start + timeout

        while True:
            remaining = max(deadline - time.monotonic(), 1.0)
            if self.is_ready(vmid, timeout=remaining):
                waited = time.monotonic() - start
                logger.debug(f"Container {vmid} ready after {waited:.1f}s")
                return waited
            if time.monotonic() >= deadline:
                raise StepError(f"Container {vmid} not ready after {timeout}s")
            time.sleep(interval)

    def exec_command(self, vmid: int, command: List[str], timeout: Optional[float] = None) -> CommandResult:
        """Run an argument vector inside the container via pct exec."""
        return run_command(
            ['pct', 'exec', str(vmid), '--', *command],
            timeout=timeout,
            mock=self.mock,
        )

    def exec_script(self, vmid: int, script: str, timeout: Optional[int] = None) -> CommandResult:
        """Run a bash script inside the container, stopping at the first failing line."""
        return self.exec_command(vmid, ['bash', '-ec', script], timeout=timeout)

    def push_file(self, vmid: int, content: str, container_path: str, perms: Optional[str] = None) -> None:
        """Write content to a file inside the container (temp file + pct push).

        Raises:
            StepError: If pct push fails
        """
        if self.mock:
            logger.info(f"MOCK: Would write {container_path} in container {vmid}")
            return

        with tempfile.NamedTemporaryFile(mode='w', delete=False, suffix='.tmp') as f:
            f.write(content)
            temp_path = f.name

        try:
            cmd = ['pct', 'push', str(vmid), temp_path, container_path]
            if perms:
                cmd.extend(['--perms', perms])
            run_command(cmd).check(f"Writing {container_path} in container {vmid}")
        finally:
            Path(temp_path).unlink(missing_ok=True)

    def get_container_ip(self, vmid: int) -> Optional[str]:
        """Return the IPv4 address of eth0, None if it has none."""
        result = self.exec_command(vmid, ['ip', '-4', '-o', 'addr', 'show', 'eth0'])
        if not result.ok:
            return None
        match = _INET_RE.search(result.stdout)
        return match.group(1) if match else None
