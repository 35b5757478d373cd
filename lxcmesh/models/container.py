"""Container configuration models."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class NetworkConfig:
    """Network configuration for net0."""
    bridge: str = "vmbr0"
    ip: str = "dhcp"
    vlan_id: Optional[int] = None

    def to_net0(self) -> str:
        """Render the pct --net0 value."""
        value = f"name=eth0,bridge={self.bridge},ip={self.ip}"
        if self.vlan_id is not None:
            value += f",tag={self.vlan_id}"
        return value


@dataclass
class ContainerResources:
    """Resource allocation for a container."""
    memory: int = 2048  # MB
    swap: int = 512  # MB
    disk: int = 10  # GB
    cores: int = 2
    storage: str = "local"

    @property
    def rootfs(self) -> str:
        return f"{self.storage}:{self.disk}"
