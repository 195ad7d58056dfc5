"""Base unit manager interface."""

import platform
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..commands import SystemdCommand
from ..unit import SERVICE_SUFFIX, ServiceUnit, name_to_service_file, validate_name
from ..unit_file import read_unit

UNIT_DIR = Path("/etc/systemd/system")


def user_unit_dir() -> Path:
    """Directory holding per-user units."""
    return Path.home() / ".config" / "systemd" / "user"


class ServiceStatus(Enum):
    """Runtime state of a unit."""

    RUNNING = "running"
    STOPPED = "stopped"
    NOT_INSTALLED = "not_installed"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass
class ServiceInfo:
    """Information about an installed unit."""

    name: str
    status: ServiceStatus
    pid: int | None = None
    enabled: bool | None = None
    unit_file: Path | None = None
    message: str | None = None


class UnitManager(ABC):
    """Abstract base class for unit management."""

    def __init__(self, unit_dir: Path | None = None, user: bool = False):
        """Initialize unit manager.

        Args:
            unit_dir: Directory holding unit files (default depends on ``user``)
            user: Manage per-user units instead of system units
        """
        self.user = user
        if unit_dir is None:
            unit_dir = user_unit_dir() if user else UNIT_DIR
        self.unit_dir = Path(unit_dir)

    @property
    @abstractmethod
    def platform_name(self) -> str:
        """Return the platform name (e.g., 'systemd')."""
        ...

    def unit_path(self, name: str) -> Path:
        """Return the unit file path for ``name``.

        Raises:
            UnitDataError: If ``name`` is not a valid unit name
        """
        return self.unit_dir / name_to_service_file(validate_name(name))

    def exists(self, name: str) -> bool:
        """Return True if the unit file for ``name`` exists."""
        return self.unit_path(name).exists()

    def list_units(self) -> list[str]:
        """Return the names of all service unit files in the unit directory."""
        if not self.unit_dir.is_dir():
            return []
        return sorted(
            path.name for path in self.unit_dir.iterdir() if path.name.endswith(SERVICE_SUFFIX)
        )

    def load(self, name: str) -> ServiceUnit | None:
        """Parse the unit file for ``name``.

        Returns:
            ServiceUnit, or None if no unit file exists
        """
        return read_unit(self.unit_path(name), name=name)

    @abstractmethod
    def create(self, service: ServiceUnit) -> Path:
        """Write the unit file for ``service``.

        Returns:
            Path of the written unit file
        """
        ...

    @abstractmethod
    def remove(self, name: str) -> None:
        """Stop, disable and delete a unit."""
        ...

    @abstractmethod
    def set_status(self, name: str, command: SystemdCommand | int | str) -> SystemdCommand:
        """Dispatch a lifecycle command to a unit.

        Returns:
            The command that was dispatched
        """
        ...

    @abstractmethod
    def daemon_reload(self) -> None:
        """Make the service manager re-read unit files."""
        ...

    @abstractmethod
    def status(self, name: str) -> ServiceInfo:
        """Get the current state of a unit."""
        ...

    @abstractmethod
    def logs(self, name: str, lines: int = 50, follow: bool = False) -> str:
        """Return recent log lines of a unit, or follow them."""
        ...

    def start(self, name: str) -> None:
        self.set_status(name, SystemdCommand.START)

    def stop(self, name: str) -> None:
        self.set_status(name, SystemdCommand.STOP)

    def enable(self, name: str) -> None:
        self.set_status(name, SystemdCommand.ENABLE)

    def disable(self, name: str) -> None:
        self.set_status(name, SystemdCommand.DISABLE)

    def restart(self, name: str) -> None:
        self.set_status(name, SystemdCommand.RESTART)


def get_unit_manager(unit_dir: Path | None = None, user: bool = False) -> UnitManager:
    """Get the unit manager for the current platform.

    Args:
        unit_dir: Directory holding unit files
        user: Manage per-user units

    Returns:
        UnitManager instance for the current platform

    Raises:
        NotImplementedError: If the current platform is not supported
    """
    system = platform.system()

    if system == "Linux":
        from .systemd import SystemdUnitManager

        return SystemdUnitManager(unit_dir=unit_dir, user=user)

    raise NotImplementedError(
        f"Unit management is not supported on {system}. Supported platforms: Linux (systemd)"
    )
