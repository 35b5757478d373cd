"""Shared test fixtures for lxcmesh tests."""
import subprocess
from types import SimpleNamespace

import pytest

from lxcmesh.core.config import ProvisionConfig, RuntimeConfig, set_config


class FakeProcesses:
    """Stands in for subprocess.run and records every command.

    Responses are matched on the longest registered command prefix;
    unmatched commands succeed with empty output. A list of stdout
    values is consumed one call at a time, the last one repeating.
    """

    def __init__(self):
        self.calls = []
        self.timeouts = []
        self.responses = {}

    def respond(self, prefix, returncode=0, stdout="", stderr=""):
        self.responses[tuple(prefix)] = (returncode, stdout, stderr)

    def __call__(self, cmd, capture_output=True, text=True, timeout=None, **kwargs):
        self.calls.append(list(cmd))
        self.timeouts.append(timeout)
        best = None
        for prefix, response in self.responses.items():
            if tuple(cmd[:len(prefix)]) == prefix:
                if best is None or len(prefix) > len(best[0]):
                    best = (prefix, response)
        returncode, stdout, stderr = best[1] if best else (0, "", "")
        if isinstance(stdout, list):
            stdout = stdout.pop(0) if len(stdout) > 1 else stdout[0]
        if isinstance(returncode, BaseException):
            raise returncode
        return SimpleNamespace(returncode=returncode, stdout=stdout, stderr=stderr)

    def commands_starting_with(self, *prefix):
        return [c for c in self.calls if tuple(c[:len(prefix)]) == prefix]


@pytest.fixture
def fake_processes(monkeypatch):
    """Replace subprocess.run for every lxcmesh module."""
    fake = FakeProcesses()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def monotonic(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock(monkeypatch):
    """Fake time for readiness polling and retry backoff."""
    clock = FakeClock()
    monkeypatch.setattr("lxcmesh.services.proxmox.lifecycle.time", clock)
    monkeypatch.setattr("lxcmesh.core.retry.time", clock)
    return clock


@pytest.fixture(autouse=True)
def fast_runtime_config(monkeypatch, fake_clock):
    """Short timeouts and no real sleeping."""
    set_config(RuntimeConfig(command_timeout=5, template_download_timeout=5,
                             ready_timeout=3, ready_poll_interval=1))
    monkeypatch.delenv("LXCMESH_MOCK", raising=False)
    yield
    set_config(None)


@pytest.fixture
def provision_config():
    """Valid configuration with defaults."""
    return ProvisionConfig(netbird_setup_key="NB-SETUP-KEY", container_name="ping-test")


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every provisioning variable from the environment."""
    from lxcmesh.core.config import ENV_VARS
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch
