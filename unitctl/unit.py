"""Structured, in-memory description of a service unit."""

import re
from dataclasses import dataclass, field, fields
from enum import Enum, StrEnum
from typing import Any

from .errors import UnitDataError

SERVICE_SUFFIX = ".service"

# Characters systemd allows in unit names
_UNIT_NAME = re.compile(r"[A-Za-z0-9:_.@\\-]+")

_TRUE = frozenset({"yes", "true", "on", "1"})
_FALSE = frozenset({"no", "false", "off", "0"})


class Target(StrEnum):
    """Well-known targets.

    Target directives accept any target name, these are only shortcuts.
    """

    NETWORK = "network.target"
    MULTI_USER = "multi-user.target"
    SOCKET = "socket.target"


class ServiceType(StrEnum):
    """How the service manager decides that a service has started."""

    SIMPLE = "simple"
    NOTIFY = "notify"  # the service reports readiness itself
    FORKING = "forking"  # active while a forked child runs after the parent exits
    DBUS = "dbus"
    ONESHOT = "oneshot"  # active once the start command has finished
    EXEC = "exec"


class ServiceRestart(StrEnum):
    """When the service manager restarts an exited service."""

    NO = "no"
    ALWAYS = "always"
    ON_SUCCESS = "on-success"  # clean exit code or SIGHUP/SIGINT/SIGTERM/SIGPIPE
    ON_FAILURE = "on-failure"
    ON_ABNORMAL = "on-abnormal"  # killed by a signal or timed out
    ON_ABORT = "on-abort"
    ON_WATCHDOG = "on-watchdog"


def directive(key: str, kind: type = str) -> Any:
    """Declare a section field stored as the ``key`` directive."""
    if kind is str:
        default = ""
    elif kind is int:
        default = 0
    else:
        default = None
    return field(default=default, metadata={"directive": key, "kind": kind})


class Section:
    """Base of the section dataclasses.

    Set directive values are converted to their directive type on creation.
    """

    HEADER = ""

    def __post_init__(self):
        for f in directive_fields(self):
            value = getattr(self, f.name)
            if is_set(value):
                setattr(self, f.name, check_directive(f, value))


@dataclass
class UnitSection(Section):
    """The [Unit] section."""

    HEADER = "Unit"

    description: str = directive("Description")
    documentation: str = directive("Documentation")
    before: str = directive("Before")
    after: str = directive("After")
    wants: str = directive("Wants")
    condition_path_exists: str = directive("ConditionPathExists")
    conflicts: str = directive("Conflicts")


@dataclass
class ServiceSection(Section):
    """The [Service] section."""

    HEADER = "Service"

    type: ServiceType | None = directive("Type", ServiceType)
    exec_start_pre: str = directive("ExecStartPre")
    exec_start: str = directive("ExecStart")
    exec_reload: str = directive("ExecReload")
    exec_stop: str = directive("ExecStop")
    restart_sec: str = directive("RestartSec")
    user: str = directive("User")
    group: str = directive("Group")
    restart: ServiceRestart | None = directive("Restart", ServiceRestart)
    timeout_start_sec: int = directive("TimeoutStartSec", int)
    timeout_stop_sec: int = directive("TimeoutStopSec", int)
    success_exit_status: str = directive("SuccessExitStatus")
    restart_prevent_exit_status: str = directive("RestartPreventExitStatus")
    pid_file: str = directive("PIDFile")
    working_directory: str = directive("WorkingDirectory")
    root_directory: str = directive("RootDirectory")
    environment_file: str = directive("EnvironmentFile")
    runtime_directory: str = directive("RuntimeDirectory")
    runtime_directory_mode: str = directive("RuntimeDirectoryMode")
    logs_directory: str = directive("LogsDirectory")
    kill_mode: str = directive("KillMode")
    condition_path_exists: str = directive("ConditionPathExists")
    remain_after_exit: bool | None = directive("RemainAfterExit", bool)


@dataclass
class InstallSection(Section):
    """The [Install] section."""

    HEADER = "Install"

    wanted_by: str = directive("WantedBy")
    alias: str = directive("Alias")
    also: str = directive("Also")


SECTION_TYPES = (UnitSection, ServiceSection, InstallSection)


def directive_fields(section) -> list:
    """Return the directive fields of a section, in emission order."""
    return [f for f in fields(section) if "directive" in f.metadata]


def is_set(value: Any) -> bool:
    """Unset directives hold "", 0 or None."""
    if isinstance(value, bool):
        return True
    return value is not None and value != "" and value != 0


def coerce_value(kind: type, value: Any) -> Any:
    """Convert ``value`` to the Python type of a directive.

    Raises:
        ValueError: If the value does not fit the directive type
    """
    if kind is bool:
        if isinstance(value, bool):
            return value
        lowered = str(value).strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"expected a boolean, got {value!r}")
    if kind is int:
        if isinstance(value, bool) or isinstance(value, float):
            raise ValueError(f"expected an integer, got {value!r}")
        return int(value)
    if kind is str:
        if not isinstance(value, str):
            raise ValueError(f"expected a string, got {value!r}")
        if "\n" in value or "\r" in value:
            raise ValueError(f"value must be a single line, got {value!r}")
        if value != value.strip():
            raise ValueError(f"value must not start or end with whitespace, got {value!r}")
        return value
    try:
        return kind(value)
    except ValueError:
        choices = ", ".join(member.value for member in kind)
        raise ValueError(f"{value!r} is not one of: {choices}") from None


def check_directive(f, value: Any) -> Any:
    """Convert ``value`` for the directive field ``f``.

    Raises:
        UnitDataError: If the value does not fit the directive
    """
    try:
        return coerce_value(f.metadata["kind"], value)
    except ValueError as e:
        raise UnitDataError(f"{f.metadata['directive']}: {e}") from e


def render_value(value: Any) -> str:
    """Render a set directive value the way it appears in a unit file."""
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, Enum):
        return value.value
    return str(value)


def name_to_service_file(name: str) -> str:
    """Return the unit file name for ``name``, adding ``.service`` if missing."""
    if not name.endswith(SERVICE_SUFFIX):
        return name + SERVICE_SUFFIX
    return name


def validate_name(name: str) -> str:
    """Return ``name`` unchanged if it is a valid unit name.

    Raises:
        UnitDataError: If the name holds characters systemd does not allow,
            or ``..``, so that it could point outside the unit directory
    """
    if (
        not isinstance(name, str)
        or len(name) > 255
        or not _UNIT_NAME.fullmatch(name)
        or ".." in name
    ):
        raise UnitDataError(f"invalid unit name: {name!r}")
    return name


@dataclass
class ServiceUnit:
    """A service unit: its name plus the three modeled sections."""

    name: str = ""
    unit: UnitSection = field(default_factory=UnitSection)
    service: ServiceSection = field(default_factory=ServiceSection)
    install: InstallSection = field(default_factory=InstallSection)

    @property
    def file_name(self) -> str:
        return name_to_service_file(self.name)

    def sections(self) -> list:
        """Return the sections in file order."""
        return [self.unit, self.service, self.install]

    def section(self, header: str):
        """Return the section for a header name (without brackets), or None."""
        for section in self.sections():
            if section.HEADER == header:
                return section
        return None

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly mapping holding only set directives."""
        data: dict[str, Any] = {"name": self.name}
        for section in self.sections():
            values = {}
            for f in directive_fields(section):
                value = getattr(section, f.name)
                if not is_set(value):
                    continue
                values[f.metadata["directive"]] = (
                    value.value if isinstance(value, Enum) else value
                )
            data[section.HEADER] = values
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ServiceUnit":
        """Build a service unit from a mapping shaped like :meth:`to_dict`.

        Raises:
            UnitDataError: On unknown sections, unknown directives or bad values
        """
        if not isinstance(data, dict):
            raise UnitDataError("service data must be an object")

        unknown = set(data) - {"name"} - {t.HEADER for t in SECTION_TYPES}
        if unknown:
            raise UnitDataError(f"unknown section(s): {', '.join(sorted(unknown))}")

        name = data.get("name", "")
        if not isinstance(name, str):
            raise UnitDataError("name must be a string")
        if name:
            validate_name(name)

        service = cls(name=name)
        for section in service.sections():
            values = data.get(section.HEADER) or {}
            if not isinstance(values, dict):
                raise UnitDataError(f"[{section.HEADER}] must be an object")
            by_key = {f.metadata["directive"]: f for f in directive_fields(section)}
            for key, value in values.items():
                f = by_key.get(key)
                if f is None:
                    raise UnitDataError(f"unknown directive {key} in [{section.HEADER}]")
                if value is None:
                    continue
                setattr(section, f.name, check_directive(f, value))
        return service


def new_default_service(name: str, description: str, exec_start: str) -> ServiceUnit:
    """Create a simple service started after the network, wanted by multi-user."""
    return ServiceUnit(
        name=name,
        unit=UnitSection(description=description, after=Target.NETWORK),
        service=ServiceSection(type=ServiceType.SIMPLE, exec_start=exec_start),
        install=InstallSection(wanted_by=Target.MULTI_USER),
    )


def new_service(
    unit: UnitSection,
    service: ServiceSection,
    install: InstallSection,
    name: str = "",
) -> ServiceUnit:
    """Assemble a service unit from its sections."""
    return ServiceUnit(name=name, unit=unit, service=service, install=install)
