"""Conversion between service units and their key-sectioned text form."""

import logging
from pathlib import Path

from .errors import UnitParseError
from .unit import (
    ServiceUnit,
    check_directive,
    coerce_value,
    directive_fields,
    is_set,
    render_value,
)

logger = logging.getLogger(__name__)

COMMENT_PREFIXES = ("#", ";")


def generate(service: ServiceUnit) -> str:
    """
    Render a service unit as unit file text.

    Sections are always written in [Unit], [Service], [Install] order,
    separated by a blank line. Only set directives are written, in their
    declaration order. Every value is checked again before it is
    written.

    Args:
        service: Service unit to render

    Returns:
        Unit file content ending with a newline
    """
    blocks = []
    for section in service.sections():
        lines = [f"[{section.HEADER}]"]
        for f in directive_fields(section):
            value = getattr(section, f.name)
            if is_set(value):
                value = check_directive(f, value)
                lines.append(f"{f.metadata['directive']}={render_value(value)}")
        blocks.append("\n".join(lines) + "\n")
    return "\n".join(blocks)


def parse(text: str, name: str = "") -> ServiceUnit:
    """
    Parse unit file text into a service unit.

    Unknown sections and directives are skipped. A directive given twice
    keeps its last value.

    Args:
        text: Unit file content
        name: Name to give the parsed unit

    Returns:
        Parsed ServiceUnit

    Raises:
        UnitParseError: If a typed directive has a value of the wrong type
    """
    service = ServiceUnit(name=name)
    section = None
    fields_by_key: dict = {}

    for lineno, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line.removesuffix("\r").strip()
        if not line or line.startswith(COMMENT_PREFIXES):
            continue

        if line.startswith("["):
            header = line.strip("[]").strip()
            section = service.section(header) if line.endswith("]") else None
            if section is None:
                logger.debug("Skipping unsupported section %s in %s", line, name or "<text>")
                fields_by_key = {}
            else:
                fields_by_key = {f.metadata["directive"]: f for f in directive_fields(section)}
            continue

        if section is None:
            continue

        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()

        f = fields_by_key.get(key)
        if f is None:
            logger.warning("Ignoring unknown directive %s in [%s]", key, section.HEADER)
            continue

        try:
            setattr(section, f.name, coerce_value(f.metadata["kind"], value))
        except ValueError as e:
            raise UnitParseError(f"{key}: {e}", lineno) from e

    return service


def read_unit(path: Path, name: str | None = None) -> ServiceUnit | None:
    """
    Read and parse a unit file.

    Args:
        path: Path to the unit file
        name: Unit name (default: the file name)

    Returns:
        Parsed ServiceUnit, or None if the file does not exist
    """
    if not path.exists():
        return None

    text = path.read_text(encoding="utf-8")
    return parse(text, name=path.name if name is None else name)


def write_unit(path: Path, service: ServiceUnit) -> None:
    """Write the generated unit file for ``service`` to ``path``."""
    path.write_text(generate(service), encoding="utf-8")
    logger.info("Wrote unit file %s", path)
