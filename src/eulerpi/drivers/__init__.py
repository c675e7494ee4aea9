"""IMU drivers and driver selection.

Drivers are addressed either by a registered short name (``replay``) or by
an import path of the form ``package.module:ClassName`` so hardware drivers
living in other packages can be plugged in without changes here.
"""

from __future__ import annotations

import importlib
from typing import Any, Dict, Mapping

from ..errors import ConfigError
from .base import DriverError, ImuDriver

DRIVERS: Dict[str, str] = {
    "replay": "eulerpi.drivers.replay:ReplayDriver",
}


def resolve_driver_class(name: str):
    """Return the driver class named by ``name``."""
    target = DRIVERS.get(name.strip().lower(), name.strip())
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"Unknown driver {name!r}; use one of {sorted(DRIVERS)} or 'module:Class'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"Cannot import driver module {module_name!r}: {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigError(f"Driver module {module_name!r} has no attribute {attr!r}") from exc


def create_driver(name: str, options: Mapping[str, Any] | None = None) -> ImuDriver:
    """Instantiate the driver named by ``name`` with keyword ``options``."""
    cls = resolve_driver_class(name)
    try:
        return cls(**dict(options or {}))
    except TypeError as exc:
        raise ConfigError(f"Bad options for driver {name!r}: {exc}") from exc


__all__ = ["DRIVERS", "DriverError", "ImuDriver", "create_driver", "resolve_driver_class"]
