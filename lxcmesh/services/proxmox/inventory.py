"""Cluster resource inventory and container identifier allocation."""
import json
from typing import Any, Iterable, List, Optional

from lxcmesh.core.commands import run_command
from lxcmesh.core.config import BASELINE_CONTAINER_ID
from lxcmesh.core.errors import InventoryQueryError
from lxcmesh.core.logger import get_logger
from lxcmesh.models.inventory import ResourceEntry

logger = get_logger(__name__)

# Proxmox rejects identifiers above this
MAX_GUEST_ID = 999999999

INVENTORY_CMD = [
    'pvesh', 'get', '/cluster/resources',
    '--type', 'vm',
    '--output-format', 'json',
]


def parse_resource_entries(payload: Any) -> List[ResourceEntry]:
    """Turn the decoded inventory JSON into ResourceEntry records.

    Items that are not objects are skipped with a warning.
    """
    if not isinstance(payload, list):
        raise InventoryQueryError(
            f"Expected a list of cluster resources, got {type(payload).__name__}"
        )

    entries = []
    for item in payload:
        if not isinstance(item, dict):
            logger.warning(f"Skipping malformed inventory entry: {item!r}")
            continue
        entries.append(ResourceEntry.from_dict(item))
    return entries


def _numeric_suffix(resource_id: str) -> Optional[int]:
    suffix = resource_id.rsplit('/', 1)[-1].strip()
    if not (suffix.isascii() and suffix.isdigit()):
        return None
    return int(suffix)


def extract_numeric_id(entry: ResourceEntry) -> Optional[int]:
    """Return the numeric suffix of an entry id like ``lxc/105``.

    Returns None (and warns) when the suffix is missing or not a
    non-negative integer.
    """
    vmid = _numeric_suffix(entry.id)
    if vmid is None:
        logger.warning(f"Ignoring resource with malformed id '{entry.id}'")
    return vmid


def next_container_id(
    entries: Iterable[ResourceEntry],
    baseline: int = BASELINE_CONTAINER_ID,
) -> int:
    """Compute the next unused container identifier.

    Virtual machines are left out when looking for the highest container
    id; the candidate is still bumped past any guest (VM or container)
    already holding it. The result is never below ``baseline``.

    Args:
        entries: Current cluster inventory
        baseline: Lowest identifier handed out

    Returns:
        Identifier unused at the time of the call
    """
    entries = list(entries)

    container_ids = sorted(
        vmid
        for vmid in (extract_numeric_id(e) for e in entries if not e.is_vm)
        if vmid is not None
    )

    if not container_ids:
        candidate = baseline
    else:
        candidate = max(container_ids[-1] + 1, baseline)

    taken = set(container_ids)
    for entry in entries:
        if entry.is_vm:
            vmid = _numeric_suffix(entry.id)
            if vmid is not None:
                taken.add(vmid)

    while candidate in taken:
        logger.debug(f"Identifier {candidate} already in use, trying next")
        candidate += 1

    if candidate > MAX_GUEST_ID:
        raise InventoryQueryError("No free container identifiers available")

    return candidate


class ClusterInventory:
    """Reads the cluster resource list through pvesh."""

    def __init__(self, mock: bool = False, baseline: int = BASELINE_CONTAINER_ID):
        self.mock = mock
        self.baseline = baseline

    def list_resources(self) -> List[ResourceEntry]:
        """Fetch every guest in the cluster.

        Raises:
            InventoryQueryError: If pvesh fails or returns unparsable output
        """
        result = run_command(INVENTORY_CMD, mock=self.mock, mock_stdout="[]")

        if not result.ok:
            detail = result.stderr.strip() or f"exit {result.returncode}"
            raise InventoryQueryError(f"Cluster inventory query failed: {detail}")

        try:
            payload = json.loads(result.stdout or "[]")
        except json.JSONDecodeError as e:
            raise InventoryQueryError(f"Cluster inventory is not valid JSON: {e}") from e

        return parse_resource_entries(payload)

    def allocate_container_id(self) -> int:
        """Return the next free container id.

        Advisory only: nothing is reserved, so a concurrent run can pick
        the same value. ``pct create`` refuses an existing id.
        """
        entries = self.list_resources()
        vmid = next_container_id(entries, baseline=self.baseline)
        logger.info(f"Next available ID will be: {vmid}")
        return vmid
