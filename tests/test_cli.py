"""Tests for the lxcmesh CLI."""
import json

import yaml
from typer.testing import CliRunner

from lxcmesh.cli import app
from lxcmesh.core.config import set_config
from lxcmesh.services.proxmox.inventory import INVENTORY_CMD

runner = CliRunner()


def last_line(output):
    return output.strip().splitlines()[-1]


class TestProvisionCommand:

    def test_missing_setup_key_exits_before_any_command(self, fake_processes, clean_env):
        result = runner.invoke(app, ["provision"])

        assert result.exit_code == 1
        assert "NETBIRD_SETUP_KEY required" in result.output
        assert fake_processes.calls == []

    def test_invalid_value_exits(self, fake_processes, clean_env):
        clean_env.setenv("NETBIRD_SETUP_KEY", "key")
        clean_env.setenv("VLAN_ID", "abc")

        result = runner.invoke(app, ["provision"])

        assert result.exit_code == 1
        assert "vlan_id" in result.output
        assert fake_processes.calls == []

    def test_invalid_runtime_setting_exits(self, fake_processes, clean_env):
        set_config(None)
        clean_env.setenv("NETBIRD_SETUP_KEY", "key")
        clean_env.setenv("LXCMESH_READY_TIMEOUT", "abc")

        result = runner.invoke(app, ["provision"])

        assert result.exit_code == 1
        assert "LXCMESH_READY_TIMEOUT" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert fake_processes.calls == []

    def test_dry_run(self, fake_processes, clean_env):
        clean_env.setenv("NETBIRD_SETUP_KEY", "key")
        clean_env.setenv("CONTAINER_NAME", "ping-dry")
        clean_env.setenv("VLAN_ID", "20")

        result = runner.invoke(app, ["provision", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "Setup complete!" in result.output
        assert "ping-dry" in result.output
        assert "VLAN ID: 20" in result.output
        assert fake_processes.calls == []

    def test_mock_env(self, fake_processes, clean_env):
        clean_env.setenv("NETBIRD_SETUP_KEY", "key")
        clean_env.setenv("LXCMESH_MOCK", "1")

        result = runner.invoke(app, ["provision"])

        assert result.exit_code == 0, result.output
        assert fake_processes.calls == []

    def test_fatal_failure_exit_code(self, fake_processes, clean_env):
        clean_env.setenv("NETBIRD_SETUP_KEY", "key")
        fake_processes.respond(INVENTORY_CMD, returncode=13, stderr="permission denied")

        result = runner.invoke(app, ["provision"])

        assert result.exit_code == 1
        assert "Setup complete!" not in result.output
        assert fake_processes.calls == [INVENTORY_CMD]

    def test_config_file(self, fake_processes, clean_env, tmp_path):
        path = tmp_path / "lxcmesh.yml"
        path.write_text("netbird_setup_key: from-file\ncontainer_name: ping-yaml\n")

        result = runner.invoke(app, ["provision", "--dry-run", "--config", str(path)])

        assert result.exit_code == 0, result.output
        assert "ping-yaml" in result.output


class TestNextIdCommand:

    def test_prints_next_id(self, fake_processes):
        fake_processes.respond(INVENTORY_CMD, stdout=json.dumps([
            {"id": "lxc/100", "type": "lxc"},
            {"id": "lxc/105", "type": "lxc"},
            {"id": "lxc/5", "type": "lxc"},
        ]))

        result = runner.invoke(app, ["next-id"])

        assert result.exit_code == 0
        assert last_line(result.stdout) == "106"

    def test_inventory_failure(self, fake_processes):
        fake_processes.respond(INVENTORY_CMD, returncode=FileNotFoundError("pvesh"))

        result = runner.invoke(app, ["next-id"])

        assert result.exit_code == 1
        assert "Error" in result.output


class TestNetConfigCommand:

    def test_with_vlan(self):
        result = runner.invoke(app, ["net-config", "--vlan", "20"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "name=eth0,bridge=vmbr0,ip=dhcp,tag=20"

    def test_without_vlan(self):
        result = runner.invoke(app, ["net-config"])

        assert result.stdout.strip() == "name=eth0,bridge=vmbr0,ip=dhcp"

    def test_vlan_out_of_range(self):
        result = runner.invoke(app, ["net-config", "--vlan", "5000"])

        assert result.exit_code != 0

    def test_long_bridge_is_not_wrapped(self):
        bridge = "vmbr" + "0" * 90

        result = runner.invoke(app, ["net-config", "--bridge", bridge, "--vlan", "20"])

        assert result.stdout == f"name=eth0,bridge={bridge},ip=dhcp,tag=20\n"


class TestComposeCommand:

    def test_masks_key(self, clean_env):
        clean_env.setenv("NETBIRD_SETUP_KEY", "very-secret")

        result = runner.invoke(app, ["compose"])

        assert result.exit_code == 0
        assert "netbirdio/netbird:latest" in result.stdout
        assert "very-secret" not in result.stdout

    def test_show_secrets(self, clean_env):
        clean_env.setenv("NETBIRD_SETUP_KEY", "very-secret")

        result = runner.invoke(app, ["compose", "--show-secrets"])

        assert "very-secret" in result.stdout

    def test_requires_key(self, clean_env):
        result = runner.invoke(app, ["compose"])

        assert result.exit_code == 1

    def test_long_management_url_stays_valid_yaml(self, clean_env):
        url = "https://netbird-management.internal.example-company.corporate.lan:33073/api/management"
        clean_env.setenv("NETBIRD_SETUP_KEY", "very-secret")
        clean_env.setenv("NETBIRD_MANAGEMENT_URL", url)

        result = runner.invoke(app, ["compose", "--show-secrets"])

        assert result.exit_code == 0
        environment = yaml.safe_load(result.stdout)["services"]["netbird"]["environment"]
        assert environment["NB_MANAGEMENT_URL"] == url
        assert environment["NB_SETUP_KEY"] == "very-secret"
