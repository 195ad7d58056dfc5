"""Lifecycle commands that can be dispatched to a unit."""

from enum import IntEnum

from .errors import UnknownCommandError


class SystemdCommand(IntEnum):
    """A lifecycle command for the service manager."""

    STOP = 0  # stop a running service
    START = 1  # start a stopped service
    ENABLE = 2  # start automatically at boot
    DISABLE = 3  # do not start automatically at boot
    RESTART = 4

    @property
    def verb(self) -> str:
        """The systemctl verb for this command."""
        return self.name.lower()

    @property
    def changes_boot_state(self) -> bool:
        """ENABLE and DISABLE change boot-time state, the rest runtime state."""
        return self in (SystemdCommand.ENABLE, SystemdCommand.DISABLE)


def coerce_command(value: "SystemdCommand | int | str") -> SystemdCommand:
    """
    Resolve a command from a member, its integer value or its verb.

    Raises:
        UnknownCommandError: If nothing matches
    """
    if isinstance(value, SystemdCommand):
        return value
    if isinstance(value, str):
        for command in SystemdCommand:
            if command.verb == value.strip().lower():
                return command
    elif isinstance(value, int) and not isinstance(value, bool):
        try:
            return SystemdCommand(value)
        except ValueError:
            pass
    raise UnknownCommandError(f"no matching command available: {value!r}")
