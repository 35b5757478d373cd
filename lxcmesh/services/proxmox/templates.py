"""Template management for Proxmox LXC containers."""
from pathlib import Path
from typing import List

from lxcmesh.core.commands import run_command
from lxcmesh.core.config import get_config
from lxcmesh.core.errors import StepError, TemplateLookupError
from lxcmesh.core.logger import get_logger
from lxcmesh.core.retry import retry

logger = get_logger(__name__)

MOCK_CATALOG = """\
system          alpine-3.20-default_20240908_amd64.tar.xz
system          archlinux-base_20230608-1_amd64.tar.zst
system          archlinux-base_20240911-1_amd64.tar.zst
system          debian-12-standard_12.7-1_amd64.tar.zst
"""


class TemplateManager:
    """Finds, downloads and resolves Proxmox LXC templates."""

    def __init__(
        self,
        storage: str = 'local',
        mock: bool = False,
    ):
        self.storage = storage
        self.mock = mock

    def refresh_catalog(self) -> bool:
        """Update the template catalog (pveam update).

        Returns:
            True if the catalog was refreshed; a stale catalog is still usable
        """
        result = run_command(['pveam', 'update'], mock=self.mock)
        if not result.ok:
            logger.warning(f"Failed to update template list: {result.stderr.strip()}")
            return False
        return True

    def list_available_templates(self) -> List[str]:
        """List template file names in the system section of the catalog.

        Raises:
            TemplateLookupError: If the catalog cannot be queried
        """
        result = run_command(
            ['pveam', 'available', '--section', 'system'],
            mock=self.mock,
            mock_stdout=MOCK_CATALOG,
        )
        if not result.ok:
            raise TemplateLookupError(
                f"Failed to query template catalog: {result.stderr.strip() or result.returncode}"
            )

        templates = []
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) >= 2:
                templates.append(parts[1])
        return templates

    def find_latest_template(self, pattern: str) -> str:
        """Return the newest catalog template whose name contains pattern.

        Template names embed a build date, so the lexically greatest match
        is the newest.

        Raises:
            TemplateLookupError: If nothing matches
        """
        matches = [t for t in self.list_available_templates() if pattern in t]
        if not matches:
            raise TemplateLookupError(f"Failed to find {pattern} template")
        template = max(matches)
        logger.debug(f"Template candidates for {pattern}: {matches}")
        return template

    def template_exists_locally(self, template: str) -> bool:
        """Check whether the template is already on the template storage.

        Reads `pveam list <storage>`, so any storage type works, not only
        the directory backing `local`.
        """
        if self.mock:
            return True

        result = run_command(['pveam', 'list', self.storage])
        if not result.ok:
            logger.warning(
                f"Failed to list templates on {self.storage}: {result.stderr.strip()}"
            )
            return False

        volume = self.volume_id(template)
        for line in result.stdout.splitlines():
            parts = line.split()
            if parts and parts[0] == volume:
                return True
        return False

    @retry(max_attempts=3, delay=5, exceptions=(StepError,))
    def download_template(self, template: str) -> bool:
        """Download template from the Proxmox repository, retrying on failure.

        Raises:
            StepError: After the last failed attempt
        """
        logger.info(f"Downloading template: {template}")
        run_command(
            ['pveam', 'download', self.storage, template],
            timeout=get_config().template_download_timeout,
            mock=self.mock,
        ).check(f"Template download of {template}")
        logger.info(f"✓ Downloaded template {template}")
        return True

    def volume_id(self, template: str) -> str:
        """Storage volume id pct create expects, e.g. local:vztmpl/<file>."""
        return f"{self.storage}:vztmpl/{Path(template).name}"

    def ensure_template(self, pattern: str) -> str:
        """Locate the newest matching template, downloading it if needed.

        Returns:
            Volume id of the template

        Raises:
            TemplateLookupError: If no template matches or the download fails
        """
        template = self.find_latest_template(pattern)

        if self.template_exists_locally(template):
            logger.debug(f"Template {template} already available")
        else:
            try:
                self.download_template(template)
            except StepError as e:
                raise TemplateLookupError(str(e)) from e

        return self.volume_id(template)
