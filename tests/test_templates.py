"""Tests for template lookup and download."""
import pytest

from lxcmesh.core.errors import TemplateLookupError
from lxcmesh.services.proxmox.templates import MOCK_CATALOG, TemplateManager

AVAILABLE = ["pveam", "available", "--section", "system"]


@pytest.fixture
def catalog(fake_processes):
    fake_processes.respond(AVAILABLE, stdout=MOCK_CATALOG)
    return fake_processes


class TestLookup:

    def test_lists_templates(self, catalog):
        templates = TemplateManager().list_available_templates()

        assert "debian-12-standard_12.7-1_amd64.tar.zst" in templates
        assert len(templates) == 4

    def test_latest_matching_template(self, catalog):
        template = TemplateManager().find_latest_template("archlinux-base")

        assert template == "archlinux-base_20240911-1_amd64.tar.zst"

    def test_no_match_raises(self, catalog):
        with pytest.raises(TemplateLookupError, match="Failed to find fedora"):
            TemplateManager().find_latest_template("fedora")

    def test_catalog_failure_raises(self, fake_processes):
        fake_processes.respond(AVAILABLE, returncode=2, stderr="unable to connect")

        with pytest.raises(TemplateLookupError, match="unable to connect"):
            TemplateManager().find_latest_template("archlinux-base")

    def test_refresh_failure_is_reported_not_raised(self, fake_processes):
        fake_processes.respond(["pveam", "update"], returncode=1, stderr="offline")

        assert TemplateManager().refresh_catalog() is False


class TestEnsureTemplate:

    def test_uses_cached_template(self, catalog):
        catalog.respond(["pveam", "list", "local"], stdout=(
            "NAME                                                     SIZE\n"
            "local:vztmpl/archlinux-base_20240911-1_amd64.tar.zst     178.35MB\n"
        ))

        volume = TemplateManager().ensure_template("archlinux-base")

        assert volume == "local:vztmpl/archlinux-base_20240911-1_amd64.tar.zst"
        assert catalog.commands_starting_with("pveam", "download") == []

    def test_uses_template_on_other_storage(self, catalog):
        catalog.respond(["pveam", "list", "nfs-templates"], stdout=(
            "NAME                                                             SIZE\n"
            "nfs-templates:vztmpl/archlinux-base_20240911-1_amd64.tar.zst     178.35MB\n"
        ))

        volume = TemplateManager(storage="nfs-templates").ensure_template("archlinux-base")

        assert volume == "nfs-templates:vztmpl/archlinux-base_20240911-1_amd64.tar.zst"
        assert catalog.commands_starting_with("pveam", "list") == [["pveam", "list", "nfs-templates"]]
        assert catalog.commands_starting_with("pveam", "download") == []

    def test_older_cached_template_is_not_a_match(self, catalog):
        catalog.respond(["pveam", "list", "local"], stdout=(
            "local:vztmpl/archlinux-base_20230608-1_amd64.tar.zst     170.01MB\n"
        ))

        TemplateManager().ensure_template("archlinux-base")

        assert len(catalog.commands_starting_with("pveam", "download")) == 1

    def test_list_failure_downloads(self, catalog):
        catalog.respond(["pveam", "list"], returncode=255, stderr="storage 'nas' does not exist")

        TemplateManager(storage="nas").ensure_template("archlinux-base")

        assert len(catalog.commands_starting_with("pveam", "download")) == 1

    def test_downloads_missing_template(self, catalog):
        TemplateManager(storage="nas").ensure_template("archlinux-base")

        assert catalog.commands_starting_with("pveam", "download") == [
            ["pveam", "download", "nas", "archlinux-base_20240911-1_amd64.tar.zst"]
        ]

    def test_download_retried_then_fails(self, catalog, fake_clock):
        catalog.respond(["pveam", "download"], returncode=1, stderr="download failed")

        with pytest.raises(TemplateLookupError, match="download failed"):
            TemplateManager().ensure_template("archlinux-base")

        assert len(catalog.commands_starting_with("pveam", "download")) == 3
        assert fake_clock.sleeps == [5, 10]
