"""Proxmox host integration.

- ClusterInventory: cluster resource list and identifier allocation
- TemplateManager: template lookup and download
- ContainerLifecycle: create, configure and exec into containers
"""
from .inventory import ClusterInventory, next_container_id
from .lifecycle import ContainerLifecycle, build_create_command, build_network_config
from .templates import TemplateManager

__all__ = [
    'ClusterInventory',
    'ContainerLifecycle',
    'TemplateManager',
    'build_create_command',
    'build_network_config',
    'next_container_id',
]
