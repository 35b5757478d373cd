"""Provisioning workflow: one container, from empty ID to running Netbird peer."""
from typing import Callable, List, Optional, Tuple

from lxcmesh.core.config import ProvisionConfig
from lxcmesh.core.errors import LxcmeshError, StepError
from lxcmesh.core.logger import get_logger
from lxcmesh.models.report import ProvisionReport, StepResult
from lxcmesh.services.compose import ComposeDeployer, build_netbird_compose
from lxcmesh.services.guest import GuestConfigurator
from lxcmesh.services.proxmox.inventory import ClusterInventory
from lxcmesh.services.proxmox.lifecycle import ContainerLifecycle
from lxcmesh.services.proxmox.templates import TemplateManager

logger = get_logger(__name__)

FATAL = True
ADVISORY = False


class Provisioner:
    """Runs the provisioning steps in order.

    A failing fatal step stops the run; a failing advisory step is
    recorded and the run continues. The returned report only claims
    success when every step succeeded.
    """

    def __init__(
        self,
        config: ProvisionConfig,
        mock: bool = False,
        inventory: Optional[ClusterInventory] = None,
        templates: Optional[TemplateManager] = None,
        lifecycle: Optional[ContainerLifecycle] = None,
    ):
        self.config = config
        self.mock = mock
        self.inventory = inventory or ClusterInventory(mock=mock, baseline=config.baseline_id)
        self.templates = templates or TemplateManager(storage=config.template_storage, mock=mock)
        self.lifecycle = lifecycle or ContainerLifecycle(mock=mock)
        self.report = ProvisionReport(
            container_name=config.container_name,
            ssh_port=config.ssh_port,
            vlan_id=config.vlan_id,
        )
        self._template_volume: Optional[str] = None

    @property
    def vmid(self) -> int:
        return self.report.container_id

    def steps(self) -> List[Tuple[str, Callable[[], Optional[str]], bool]]:
        return [
            ("Allocate container ID", self._allocate_id, FATAL),
            ("Refresh template catalog", self._refresh_catalog, ADVISORY),
            ("Locate template", self._locate_template, FATAL),
            ("Create container", self._create_container, FATAL),
            ("Apply LXC settings", self._apply_lxc_settings, FATAL),
            ("Wait for container", self._wait_ready, FATAL),
            ("Initialize pacman keyring", self._init_keyring, FATAL),
            ("Install packages", self._install_packages, FATAL),
            ("Configure SSH", self._configure_ssh, FATAL),
            ("Install SSH keys", self._install_keys, ADVISORY),
            ("Enable Docker", self._enable_docker, FATAL),
            ("Deploy Netbird", self._deploy_netbird, FATAL),
            ("Read container IP", self._read_ip, ADVISORY),
        ]

    def run(self) -> ProvisionReport:
        """Validate the configuration, then run every step.

        Raises:
            ConfigValidationError: Before any external command is issued
        """
        self.config.validate()

        for name, action, fatal in self.steps():
            result = self._run_step(name, action, fatal)
            if not result.ok and result.fatal:
                self.report.aborted = True
                logger.error(f"Aborting: {name} failed")
                break

        return self.report

    def _run_step(self, name: str, action: Callable[[], Optional[str]], fatal: bool) -> StepResult:
        logger.info(f"→ {name}")
        try:
            detail = action() or ""
        except LxcmeshError as e:
            if fatal:
                logger.error(f"✗ {name}: {e}")
            else:
                logger.warning(f"⚠ {name}: {e}")
            return self.report.record(StepResult(name=name, ok=False, fatal=fatal, detail=str(e)))

        return self.report.record(StepResult(name=name, ok=True, fatal=fatal, detail=detail))

    def _allocate_id(self) -> str:
        self.report.container_id = self.inventory.allocate_container_id()
        return f"ID {self.vmid}"

    def _refresh_catalog(self) -> str:
        if not self.templates.refresh_catalog():
            raise StepError("pveam update failed, using cached catalog")
        return "catalog updated"

    def _locate_template(self) -> str:
        self._template_volume = self.templates.ensure_template(self.config.template_pattern)
        self.report.template = self._template_volume
        return self._template_volume

    def _create_container(self) -> str:
        self.lifecycle.create_container(self.vmid, self._template_volume, self.config)
        return self.config.container_name

    def _apply_lxc_settings(self) -> str:
        return str(self.lifecycle.append_lxc_config(self.vmid))

    def _wait_ready(self) -> str:
        waited = self.lifecycle.wait_until_ready(self.vmid)
        return f"ready after {waited:.0f}s"

    def _guest(self) -> GuestConfigurator:
        return GuestConfigurator(self.vmid, self.lifecycle)

    def _init_keyring(self) -> None:
        self._guest().init_keyring()

    def _install_packages(self) -> None:
        self._guest().install_packages()

    def _configure_ssh(self) -> str:
        self._guest().configure_ssh(self.config.ssh_port)
        return f"port {self.config.ssh_port}"

    def _install_keys(self) -> str:
        self._guest().install_authorized_keys(self.config.ssh_keys_url)
        return self.config.ssh_keys_url

    def _enable_docker(self) -> None:
        self._guest().enable_docker()

    def _deploy_netbird(self) -> None:
        compose = build_netbird_compose(
            self.config.netbird_setup_key,
            management_url=self.config.netbird_management_url,
            hostname=self.config.container_name,
        )
        ComposeDeployer(self.vmid, self.lifecycle).deploy(compose)

    def _read_ip(self) -> str:
        ip = self.lifecycle.get_container_ip(self.vmid)
        if not ip and not self.mock:
            raise StepError("eth0 has no IPv4 address yet")
        self.report.container_ip = ip
        return ip or ""
