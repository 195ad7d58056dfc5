"""Unit management: writing unit files and dispatching lifecycle commands."""

from .base import UNIT_DIR, ServiceInfo, ServiceStatus, UnitManager, get_unit_manager

__all__ = ["UNIT_DIR", "ServiceInfo", "ServiceStatus", "UnitManager", "get_unit_manager"]
