"""Provisioning configuration and runtime settings."""
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from lxcmesh.core.errors import ConfigValidationError

BASELINE_CONTAINER_ID = 100

# Environment variable -> ProvisionConfig field
ENV_VARS = {
    "NETBIRD_SETUP_KEY": "netbird_setup_key",
    "NETBIRD_MANAGEMENT_URL": "netbird_management_url",
    "CONTAINER_NAME": "container_name",
    "VLAN_ID": "vlan_id",
    "STORAGE": "storage",
    "TEMPLATE_STORAGE": "template_storage",
    "RAM": "memory",
    "SWAP": "swap",
    "DISK": "disk",
    "CORES": "cores",
    "SSH_PORT": "ssh_port",
    "UNPRIVILEGED": "unprivileged",
    "BRIDGE": "bridge",
    "TEMPLATE_PATTERN": "template_pattern",
    "SSH_KEYS_URL": "ssh_keys_url",
}

_INT_FIELDS = {"vlan_id", "memory", "swap", "disk", "cores", "ssh_port", "baseline_id"}
_BOOL_FIELDS = {"unprivileged"}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass
class RuntimeConfig:
    """Timeouts for external commands.

    Attributes:
        command_timeout: Seconds allowed for a single pct/pveam/pvesh call (default: 600)
        template_download_timeout: Seconds allowed for a template download (default: 600)
        ready_timeout: Seconds to wait for a new container to become usable (default: 120)
        ready_poll_interval: Seconds between readiness checks (default: 2)
    """

    command_timeout: int = 600
    template_download_timeout: int = 600
    ready_timeout: int = 120
    ready_poll_interval: float = 2.0

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """Create runtime config from LXCMESH_* environment variables.

        Raises:
            ConfigValidationError: If a variable is not a positive number
        """
        problems: List[str] = []
        config = cls(
            command_timeout=_env_number(
                "LXCMESH_COMMAND_TIMEOUT", cls.command_timeout, int, problems
            ),
            template_download_timeout=_env_number(
                "LXCMESH_TEMPLATE_DOWNLOAD_TIMEOUT", cls.template_download_timeout, int, problems
            ),
            ready_timeout=_env_number(
                "LXCMESH_READY_TIMEOUT", cls.ready_timeout, int, problems
            ),
            ready_poll_interval=_env_number(
                "LXCMESH_READY_POLL_INTERVAL", cls.ready_poll_interval, float, problems
            ),
        )
        if problems:
            raise ConfigValidationError(problems)
        return config


def _env_number(name, default, cast, problems):
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        problems.append(f"{name} must be a number, got {raw!r}")
        return default
    if value <= 0:
        problems.append(f"{name} must be positive, got {raw!r}")
        return default
    return value


_config: Optional[RuntimeConfig] = None


def get_config() -> RuntimeConfig:
    """Get the global runtime configuration (created from environment if unset)."""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_env()
    return _config


def set_config(config: Optional[RuntimeConfig]):
    """Set (or with None, reset) the global runtime configuration."""
    global _config
    _config = config


@dataclass
class ProvisionConfig:
    """Everything a provisioning run needs to know about the container.

    Attributes:
        netbird_setup_key: Netbird setup key (required)
        netbird_management_url: Self-hosted Netbird management URL (optional)
        container_name: Container hostname
        vlan_id: VLAN tag for net0, untagged when None
        storage: Storage pool for the root filesystem
        template_storage: Storage holding downloaded templates
        memory: Memory in MB
        swap: Swap in MB
        disk: Root disk size in GB
        cores: CPU core count
        ssh_port: Port sshd listens on inside the container
        unprivileged: Create an unprivileged container
        bridge: Host bridge for net0
        template_pattern: Substring selecting the template from the catalog
        ssh_keys_url: URL serving authorized_keys content
        baseline_id: Lowest identifier handed out for new containers
    """

    netbird_setup_key: Optional[str] = None
    netbird_management_url: Optional[str] = None
    container_name: str = "ping-xxx"
    vlan_id: Optional[int] = None
    storage: str = "local"
    template_storage: str = "local"
    memory: int = 2048
    swap: int = 512
    disk: int = 10
    cores: int = 2
    ssh_port: int = 34522
    unprivileged: bool = False
    bridge: str = "vmbr0"
    template_pattern: str = "archlinux-base"
    ssh_keys_url: str = "https://github.com/ts-sz.keys"
    baseline_id: int = BASELINE_CONTAINER_ID

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ProvisionConfig":
        """Build a config from field names to raw values.

        Raises:
            ConfigValidationError: On unknown keys or values of the wrong type
        """
        known = {f.name for f in fields(cls)}
        problems: List[str] = []
        kwargs: Dict[str, Any] = {}

        for key, raw in values.items():
            if key not in known:
                problems.append(f"unknown setting '{key}'")
                continue
            try:
                kwargs[key] = _coerce(key, raw)
            except ValueError as e:
                problems.append(str(e))

        if problems:
            raise ConfigValidationError(problems)
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProvisionConfig":
        """Create config from environment variables, defaults for the rest."""
        return cls.from_mapping(_env_values(environ))

    def validate(self) -> "ProvisionConfig":
        """Check every setting before anything touches the host.

        Raises:
            ConfigValidationError: Listing every problem found
        """
        problems = []

        if not self.netbird_setup_key or not self.netbird_setup_key.strip():
            problems.append("NETBIRD_SETUP_KEY required")
        if not self.container_name:
            problems.append("container name must not be empty")
        if self.vlan_id is not None and not 1 <= self.vlan_id <= 4094:
            problems.append(f"VLAN tag must be between 1 and 4094, got {self.vlan_id}")
        for name in ("memory", "disk", "cores"):
            if getattr(self, name) <= 0:
                problems.append(f"{name} must be positive, got {getattr(self, name)}")
        if self.swap < 0:
            problems.append(f"swap must not be negative, got {self.swap}")
        if not 1 <= self.ssh_port <= 65535:
            problems.append(f"SSH port must be between 1 and 65535, got {self.ssh_port}")
        if self.baseline_id < 0:
            problems.append(f"baseline id must not be negative, got {self.baseline_id}")
        if not self.template_pattern:
            problems.append("template pattern must not be empty")

        if problems:
            raise ConfigValidationError(problems)
        return self


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ProvisionConfig:
    """Load provisioning config from an optional YAML file plus environment.

    Environment variables override values from the file.

    Raises:
        ConfigValidationError: If the file is unreadable or holds bad values
    """
    values: Dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigValidationError([f"cannot read {path}: {e}"]) from e
        if not isinstance(data, dict):
            raise ConfigValidationError([f"{path} must contain a mapping"])
        values.update(data)

    values.update(_env_values(environ))
    return ProvisionConfig.from_mapping(values)


def _env_values(environ: Optional[Mapping[str, str]]) -> Dict[str, str]:
    environ = os.environ if environ is None else environ
    return {
        field_name: environ[var]
        for var, field_name in ENV_VARS.items()
        if var in environ
    }


def _coerce(key: str, raw: Any) -> Any:
    if key in _BOOL_FIELDS:
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        raise ValueError(f"{key} must be a boolean (0/1), got {raw!r}")

    if key in _INT_FIELDS:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            if key == "vlan_id":
                return None
            raise ValueError(f"{key} must not be empty")
        if isinstance(raw, bool):
            raise ValueError(f"{key} must be an integer, got {raw!r}")
        try:
            return int(str(raw).strip())
        except ValueError:
            raise ValueError(f"{key} must be an integer, got {raw!r}") from None

    if raw is None:
        return None
    return str(raw)
