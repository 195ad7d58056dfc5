"""Systemd unit management for Linux."""

import logging
import os
import subprocess
from pathlib import Path

from ..commands import SystemdCommand, coerce_command
from ..errors import CommandFailedError, PermissionDeniedError, UnitDataError, UnitNotFoundError
from ..unit import ServiceUnit, name_to_service_file, validate_name
from ..unit_file import write_unit
from .base import ServiceInfo, ServiceStatus, UnitManager

logger = logging.getLogger(__name__)


class SystemdUnitManager(UnitManager):
    """Systemd-based unit manager.

    System units live in /etc/systemd/system and need root to write.
    User units live in ~/.config/systemd/user and are driven with
    ``systemctl --user``.
    """

    @property
    def platform_name(self) -> str:
        return "systemd"

    def _run_systemctl(self, *args: str) -> subprocess.CompletedProcess:
        """Run a systemctl command, adding --user for user units."""
        cmd = ["systemctl", *(["--user"] if self.user else []), *args]
        logger.debug("Running %s", " ".join(cmd))
        return self._run(cmd)

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise CommandFailedError(cmd, 127, str(e)) from e

    def _check(self, result: subprocess.CompletedProcess) -> subprocess.CompletedProcess:
        if result.returncode != 0:
            raise CommandFailedError(list(result.args), result.returncode, result.stderr or "")
        return result

    def _is_root(self) -> bool:
        return os.geteuid() == 0

    def _require_root(self) -> None:
        if not self.user and not self._is_root():
            raise PermissionDeniedError("you need to be root")

    def create(self, service: ServiceUnit) -> Path:
        """Write the unit file for ``service`` into the unit directory."""
        if not service.name:
            raise UnitDataError("service name is required")
        self._require_root()

        self.unit_dir.mkdir(parents=True, exist_ok=True)
        path = self.unit_path(service.name)
        write_unit(path, service)
        return path

    def remove(self, name: str) -> None:
        """Stop, disable and delete a unit, then reload the daemon."""
        path = self.unit_path(name)
        if not path.exists():
            raise UnitNotFoundError(f"service not found: {path.name}")
        self._require_root()

        # Either may fail for a unit that is already stopped or disabled
        for verb in ("stop", "disable"):
            result = self._run_systemctl(verb, path.name)
            if result.returncode != 0:
                logger.debug("systemctl %s %s: %s", verb, path.name, result.stderr.strip())

        path.unlink()
        logger.info("Removed unit file %s", path)
        self.daemon_reload()

    def set_status(self, name: str, command: SystemdCommand | int | str) -> SystemdCommand:
        """Dispatch a lifecycle command to an installed unit.

        Raises:
            UnitNotFoundError: If the unit file does not exist
            UnknownCommandError: If ``command`` is not a lifecycle command
            CommandFailedError: If systemctl fails
        """
        file_name = name_to_service_file(name)
        if not self.exists(file_name):
            raise UnitNotFoundError(f"service not found: {file_name}")

        command = coerce_command(command)
        self._check(self._run_systemctl(command.verb, file_name))
        logger.info(
            "systemctl %s %s (%s state changed)",
            command.verb,
            file_name,
            "boot-time" if command.changes_boot_state else "runtime",
        )
        return command

    def daemon_reload(self) -> None:
        """Reload systemd to pick up unit file changes."""
        self._check(self._run_systemctl("daemon-reload"))

    def status(self, name: str) -> ServiceInfo:
        """Get the current unit status."""
        file_name = name_to_service_file(name)
        path = self.unit_path(file_name)
        if not path.exists():
            return ServiceInfo(
                name=file_name,
                status=ServiceStatus.NOT_INSTALLED,
                message="Service not installed.",
            )

        result = self._run_systemctl(
            "show",
            file_name,
            "--property=ActiveState,MainPID,SubState",
        )

        if result.returncode != 0:
            return ServiceInfo(
                name=file_name,
                status=ServiceStatus.UNKNOWN,
                unit_file=path,
                message=f"Could not get status: {result.stderr}",
            )

        # Parse properties
        props = {}
        for line in result.stdout.strip().split("\n"):
            if "=" in line:
                key, value = line.split("=", 1)
                props[key] = value

        active_state = props.get("ActiveState", "unknown")
        main_pid = props.get("MainPID", "0")
        sub_state = props.get("SubState", "unknown")

        if active_state in ("active", "reloading", "activating"):
            status = ServiceStatus.RUNNING
        elif active_state == "failed":
            status = ServiceStatus.FAILED
        elif active_state in ("inactive", "deactivating"):
            status = ServiceStatus.STOPPED
        else:
            status = ServiceStatus.UNKNOWN

        try:
            pid = int(main_pid) or None
        except ValueError:
            pid = None

        enabled = self._run_systemctl("is-enabled", file_name).stdout.strip() == "enabled"

        return ServiceInfo(
            name=file_name,
            status=status,
            pid=pid,
            enabled=enabled,
            unit_file=path,
            message=f"State: {active_state} ({sub_state})",
        )

    def logs(self, name: str, lines: int = 50, follow: bool = False) -> str:
        """Return recent journal lines for a unit.

        With ``follow`` the current process is replaced by journalctl.
        """
        cmd = [
            "journalctl",
            *(["--user"] if self.user else []),
            "-u",
            name_to_service_file(validate_name(name)),
            "-n",
            str(lines),
            "--no-pager",
        ]

        # exec so Ctrl+C goes straight to journalctl
        if follow:
            try:
                os.execvp("journalctl", [*cmd, "-f"])
            except OSError as e:
                raise CommandFailedError([*cmd, "-f"], 127, str(e)) from e

        return self._check(self._run(cmd)).stdout
