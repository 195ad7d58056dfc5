"""Tests for the systemd unit manager."""

import logging
from pathlib import Path

import pytest
from unitctl.commands import SystemdCommand
from unitctl.errors import (
    CommandFailedError,
    PermissionDeniedError,
    UnitDataError,
    UnitNotFoundError,
    UnknownCommandError,
)
from unitctl.service import UNIT_DIR, ServiceStatus, get_unit_manager
from unitctl.service.systemd import SystemdUnitManager
from unitctl.unit import ServiceUnit, new_default_service


def test_default_unit_dir():
    assert SystemdUnitManager().unit_dir == UNIT_DIR == Path("/etc/systemd/system")


def test_user_unit_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    manager = SystemdUnitManager(user=True)
    assert manager.unit_dir == tmp_path / ".config" / "systemd" / "user"


def test_get_unit_manager_unsupported_platform(monkeypatch):
    monkeypatch.setattr("unitctl.service.base.platform.system", lambda: "Windows")
    with pytest.raises(NotImplementedError, match="Windows"):
        get_unit_manager()


def test_get_unit_manager_linux(monkeypatch, unit_dir):
    monkeypatch.setattr("unitctl.service.base.platform.system", lambda: "Linux")
    manager = get_unit_manager(unit_dir=unit_dir, user=True)
    assert isinstance(manager, SystemdUnitManager)
    assert manager.unit_dir == unit_dir
    assert manager.user


def test_unit_path_and_exists(manager, web_unit):
    assert manager.unit_path("web") == web_unit
    assert manager.unit_path("web.service") == web_unit
    assert manager.exists("web")
    assert not manager.exists("db")


def test_list_units(manager, unit_dir, web_unit):
    (unit_dir / "backup.service").touch()
    (unit_dir / "backup.timer").touch()
    assert manager.list_units() == ["backup.service", "web.service"]


def test_list_units_missing_dir(tmp_path):
    assert SystemdUnitManager(unit_dir=tmp_path / "nope").list_units() == []


def test_load(manager, web_unit):
    service = manager.load("web")
    assert service is not None
    assert service.name == "web"
    assert service.service.timeout_stop_sec == 30


def test_load_missing(manager):
    assert manager.load("missing") is None


class TestCreate:
    """Test writing unit files."""

    def test_create_as_root(self, manager, unit_dir, as_root):
        service = new_default_service("app", "My app", "/usr/bin/app")

        path = manager.create(service)

        assert path == unit_dir / "app.service"
        assert manager.load("app") == service

    def test_create_requires_root(self, manager, as_regular_user):
        with pytest.raises(PermissionDeniedError, match="you need to be root"):
            manager.create(new_default_service("app", "", "/usr/bin/app"))
        assert not manager.exists("app")

    def test_user_units_do_not_require_root(self, tmp_path, as_regular_user):
        manager = SystemdUnitManager(unit_dir=tmp_path / "user", user=True)
        path = manager.create(new_default_service("app", "", "/usr/bin/app"))
        assert path.exists()

    def test_create_requires_name(self, manager, as_root):
        with pytest.raises(UnitDataError):
            manager.create(ServiceUnit())


class TestSetStatus:
    """Test lifecycle command dispatch."""

    @pytest.mark.parametrize(
        "method,verb",
        [("start", "start"), ("stop", "stop"), ("enable", "enable"), ("disable", "disable"), ("restart", "restart")],
    )
    def test_shortcuts(self, manager, web_unit, systemctl, method, verb):
        getattr(manager, method)("web")
        assert systemctl.calls == [["systemctl", verb, "web.service"]]

    def test_accepts_int_command(self, manager, web_unit, systemctl):
        manager.set_status("web.service", 1)
        assert systemctl.calls == [["systemctl", "start", "web.service"]]

    def test_user_mode_adds_flag(self, unit_dir, web_unit, systemctl):
        manager = SystemdUnitManager(unit_dir=unit_dir, user=True)
        manager.set_status("web", SystemdCommand.ENABLE)
        assert systemctl.calls == [["systemctl", "--user", "enable", "web.service"]]

    def test_missing_unit(self, manager, systemctl):
        with pytest.raises(UnitNotFoundError, match="service not found"):
            manager.start("ghost")
        assert systemctl.calls == []

    def test_missing_unit_checked_before_command(self, manager, systemctl):
        with pytest.raises(UnitNotFoundError):
            manager.set_status("ghost", 99)

    def test_unknown_command(self, manager, web_unit, systemctl):
        with pytest.raises(UnknownCommandError):
            manager.set_status("web", 99)
        assert systemctl.calls == []

    def test_command_failure(self, manager, web_unit, systemctl):
        systemctl.respond("start", returncode=5, stderr="Job failed.\n")

        with pytest.raises(CommandFailedError, match="Job failed") as exc_info:
            manager.start("web")

        assert exc_info.value.returncode == 5
        assert exc_info.value.command == ["systemctl", "start", "web.service"]


def test_daemon_reload(manager, systemctl):
    manager.daemon_reload()
    assert systemctl.calls == [["systemctl", "daemon-reload"]]


def test_daemon_reload_failure(manager, systemctl):
    systemctl.respond("daemon-reload", returncode=1, stderr="Access denied")
    with pytest.raises(CommandFailedError, match="Access denied"):
        manager.daemon_reload()


class TestRemove:
    """Test removing units."""

    def test_remove(self, manager, web_unit, systemctl, as_root):
        systemctl.respond("stop", returncode=5, stderr="not loaded")

        manager.remove("web")

        assert not web_unit.exists()
        assert systemctl.calls == [
            ["systemctl", "stop", "web.service"],
            ["systemctl", "disable", "web.service"],
            ["systemctl", "daemon-reload"],
        ]

    def test_remove_missing(self, manager, systemctl, as_root):
        with pytest.raises(UnitNotFoundError):
            manager.remove("ghost")

    def test_remove_requires_root(self, manager, web_unit, systemctl, as_regular_user):
        with pytest.raises(PermissionDeniedError):
            manager.remove("web")
        assert web_unit.exists()


class TestStatus:
    """Test status queries."""

    def test_not_installed(self, manager, systemctl):
        info = manager.status("ghost")
        assert info.status == ServiceStatus.NOT_INSTALLED
        assert info.name == "ghost.service"
        assert systemctl.calls == []

    def test_running(self, manager, web_unit, systemctl):
        systemctl.respond("show", stdout="ActiveState=active\nMainPID=4242\nSubState=running\n")
        systemctl.respond("is-enabled", stdout="enabled\n")

        info = manager.status("web")

        assert info.status == ServiceStatus.RUNNING
        assert info.pid == 4242
        assert info.enabled is True
        assert info.unit_file == web_unit
        assert info.message == "State: active (running)"

    def test_stopped(self, manager, web_unit, systemctl):
        systemctl.respond("show", stdout="ActiveState=inactive\nMainPID=0\nSubState=dead\n")
        systemctl.respond("is-enabled", returncode=1, stdout="disabled\n")

        info = manager.status("web")

        assert info.status == ServiceStatus.STOPPED
        assert info.pid is None
        assert info.enabled is False

    def test_failed(self, manager, web_unit, systemctl):
        systemctl.respond("show", stdout="ActiveState=failed\nMainPID=0\nSubState=failed\n")
        assert manager.status("web").status == ServiceStatus.FAILED

    def test_show_error(self, manager, web_unit, systemctl):
        systemctl.respond("show", returncode=1, stderr="Failed to connect to bus")

        info = manager.status("web")

        assert info.status == ServiceStatus.UNKNOWN
        assert "Failed to connect to bus" in info.message


def test_logs(manager, systemctl):
    systemctl.respond("journalctl", stdout="line 1\nline 2\n")

    assert manager.logs("web", lines=2) == "line 1\nline 2\n"
    assert systemctl.calls == [["journalctl", "-u", "web.service", "-n", "2", "--no-pager"]]


class TestUnitNames:
    """Test that unit names cannot leave the unit directory."""

    @pytest.mark.parametrize("name", ["../escaped", "sub/dir", "..", "x\0y"])
    def test_unit_path_rejects(self, manager, name):
        with pytest.raises(UnitDataError, match="invalid unit name"):
            manager.unit_path(name)

    def test_create_rejects_escaping_name(self, manager, unit_dir, as_root):
        service = ServiceUnit(name="../escaped")

        with pytest.raises(UnitDataError):
            manager.create(service)

        assert not (unit_dir.parent / "escaped.service").exists()

    def test_load_rejects_escaping_name(self, manager, unit_dir):
        (unit_dir.parent / "outside.service").write_text("[Unit]\nDescription=outside\n")
        with pytest.raises(UnitDataError):
            manager.load("../outside")

    def test_commands_reject_escaping_name(self, manager, systemctl, as_root):
        with pytest.raises(UnitDataError):
            manager.start("../escaped")
        with pytest.raises(UnitDataError):
            manager.remove("../escaped")
        with pytest.raises(UnitDataError):
            manager.logs("../escaped")
        assert systemctl.calls == []


def test_set_status_returns_command(manager, web_unit, systemctl):
    assert manager.set_status("web", "disable") is SystemdCommand.DISABLE


def test_set_status_logs_state_kind(manager, web_unit, systemctl, caplog):
    with caplog.at_level(logging.INFO, logger="unitctl.service.systemd"):
        manager.enable("web")
        manager.restart("web")

    assert "systemctl enable web.service (boot-time state changed)" in caplog.text
    assert "systemctl restart web.service (runtime state changed)" in caplog.text


class TestMissingBinaries:
    """Test behaviour when systemctl or journalctl is not installed."""

    def test_command(self, manager, web_unit, no_systemctl):
        with pytest.raises(CommandFailedError, match="No such file or directory") as exc_info:
            manager.start("web")
        assert exc_info.value.returncode == 127

    def test_daemon_reload(self, manager, no_systemctl):
        with pytest.raises(CommandFailedError):
            manager.daemon_reload()

    def test_status(self, manager, web_unit, no_systemctl):
        with pytest.raises(CommandFailedError):
            manager.status("web")

    def test_logs(self, manager, no_systemctl):
        with pytest.raises(CommandFailedError, match="journalctl"):
            manager.logs("web")
