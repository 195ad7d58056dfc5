"""Shared fixtures: a temporary unit directory and a fake systemctl."""

import subprocess

import pytest
from unitctl.service.systemd import SystemdUnitManager


class FakeSystemctl:
    """Records commands instead of running them."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self.responses: dict[str, tuple[int, str, str]] = {}

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        if cmd[0] == "systemctl":
            args = [arg for arg in cmd[1:] if arg != "--user"]
            key = args[0] if args else ""
        else:
            key = cmd[0]
        returncode, stdout, stderr = self.responses.get(key, (0, "", ""))
        return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)

    def respond(self, key: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.responses[key] = (returncode, stdout, stderr)


@pytest.fixture
def systemctl(monkeypatch):
    """Replace subprocess.run in the systemd manager with a recorder."""
    fake = FakeSystemctl()
    monkeypatch.setattr("unitctl.service.systemd.subprocess.run", fake)
    return fake


@pytest.fixture
def no_systemctl(monkeypatch):
    """Make every command fail as if the binary were not installed."""

    def missing(cmd, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr("unitctl.service.systemd.subprocess.run", missing)


@pytest.fixture
def as_root(monkeypatch):
    monkeypatch.setattr("unitctl.service.systemd.os.geteuid", lambda: 0)


@pytest.fixture
def as_regular_user(monkeypatch):
    monkeypatch.setattr("unitctl.service.systemd.os.geteuid", lambda: 1000)


@pytest.fixture
def unit_dir(tmp_path):
    path = tmp_path / "system"
    path.mkdir()
    return path


@pytest.fixture
def manager(unit_dir):
    return SystemdUnitManager(unit_dir=unit_dir)


@pytest.fixture
def web_unit(unit_dir):
    """An installed web.service unit file."""
    path = unit_dir / "web.service"
    path.write_text(
        "[Unit]\n"
        "Description=Web frontend\n"
        "After=network.target\n"
        "\n"
        "[Service]\n"
        "Type=simple\n"
        "ExecStart=/usr/bin/web --listen=0.0.0.0:80\n"
        "Restart=on-failure\n"
        "TimeoutStopSec=30\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
    )
    return path
