"""Cluster inventory records."""
from dataclasses import dataclass
from typing import Any, Dict, Optional

VM_TYPE = "qemu"


@dataclass(frozen=True)
class ResourceEntry:
    """One guest from the cluster resource list.

    `id` is the composite identifier reported by the cluster,
    e.g. ``lxc/105`` or ``qemu/300``.
    """
    type: str
    id: str
    vmid: Optional[int] = None
    name: Optional[str] = None
    node: Optional[str] = None
    status: Optional[str] = None

    @property
    def is_vm(self) -> bool:
        return self.type == VM_TYPE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceEntry":
        vmid = data.get('vmid')
        return cls(
            type=str(data.get('type', '')),
            id=str(data.get('id', '')),
            vmid=vmid if isinstance(vmid, int) and not isinstance(vmid, bool) else None,
            name=data.get('name'),
            node=data.get('node'),
            status=data.get('status'),
        )
