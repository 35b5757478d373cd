"""Data models for lxcmesh."""
from lxcmesh.models.container import ContainerResources, NetworkConfig
from lxcmesh.models.inventory import ResourceEntry
from lxcmesh.models.report import ProvisionReport, StepResult

__all__ = [
    'ContainerResources',
    'NetworkConfig',
    'ResourceEntry',
    'ProvisionReport',
    'StepResult',
]
