"""Exceptions raised by unitctl."""


class UnitError(Exception):
    """Base class for all unitctl errors."""


class UnitParseError(UnitError, ValueError):
    """A unit file line could not be converted into a directive value."""

    def __init__(self, message: str, lineno: int | None = None):
        if lineno is not None:
            message = f"line {lineno}: {message}"
        super().__init__(message)
        self.lineno = lineno


class UnitDataError(UnitError, ValueError):
    """A mapping could not be converted into a service description."""


class UnitNotFoundError(UnitError, FileNotFoundError):
    """The named unit file does not exist in the unit directory."""


class PermissionDeniedError(UnitError, PermissionError):
    """Writing system units requires root."""


class UnknownCommandError(UnitError, ValueError):
    """No lifecycle command matches the requested value."""


class CommandFailedError(UnitError, RuntimeError):
    """systemctl (or journalctl) exited with a non-zero status."""

    def __init__(self, command: list[str], returncode: int, stderr: str = ""):
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"{' '.join(command)} failed: {detail}")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
