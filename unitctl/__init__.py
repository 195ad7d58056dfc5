"""Generate, parse and control systemd service units."""

__version__ = "0.1.0"
