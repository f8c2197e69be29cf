"""Driver registration and construction helpers.

This module exposes a small plugin system that maps adapter type names
(``"fixture"``, ``"alma"``, ...) to the classes implementing them. Built-in
drivers register themselves when imported, and additional drivers can be
discovered via the ``ils_composer.drivers`` entry-point group.
"""

from __future__ import annotations

import logging
from importlib import import_module, metadata
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .errors import DriverUnavailable
from .protocols import Driver

logger = logging.getLogger(__name__)

# Registry mapping adapter type -> (module, class)
_REGISTRY: Dict[str, Tuple[str, str]] = {}

ENTRY_POINT_GROUP = "ils_composer.drivers"


def register_driver(name: str, module: str, cls: str) -> None:
    """Register ``cls`` from ``module`` as the adapter type ``name``.

    Parameters
    ----------
    name:
        Adapter type referenced from the ``[drivers]`` config table.
    module:
        Import path of the module containing the class.
    cls:
        Name of the class implementing the :class:`~drivers.protocols.Driver`
        protocol. It must be constructible without arguments.
    """

    _REGISTRY[name] = (module, cls)


def available_drivers() -> List[str]:
    """Return a sorted list of registered adapter types."""

    return sorted(_REGISTRY)


def _discover_entry_points() -> None:
    """Load drivers exposed via the ``ils_composer.drivers`` entry point."""

    for ep in metadata.entry_points().select(group=ENTRY_POINT_GROUP):
        try:
            ep.load()  # Importing registers the driver
        except Exception:  # pragma: no cover - third-party plugin failure
            logger.exception("Could not load driver plugin %s", ep.name)


class DriverManager:
    """Construct fresh driver instances by adapter type.

    ``factories`` overrides the module registry; every call to :meth:`get`
    returns a new, unconfigured instance.
    """

    def __init__(self, factories: Optional[Mapping[str, Callable[[], Driver]]] = None):
        self._factories = dict(factories) if factories is not None else None

    def has(self, type_name: str) -> bool:
        if self._factories is not None:
            return type_name in self._factories
        return type_name in _REGISTRY

    def get(self, type_name: str) -> Driver:
        """Return a new instance of ``type_name``.

        Raises
        ------
        DriverUnavailable
            If the adapter type is unknown.
        """

        if self._factories is not None:
            if type_name not in self._factories:
                raise DriverUnavailable(type_name, f"Unknown driver type '{type_name}'")
            return self._factories[type_name]()
        if type_name not in _REGISTRY:
            available = ", ".join(available_drivers())
            raise DriverUnavailable(
                type_name, f"Unknown driver type '{type_name}'. Available: {available}"
            )
        module_name, cls_name = _REGISTRY[type_name]
        driver_cls = getattr(import_module(module_name), cls_name)
        return driver_cls()


# Import built-in drivers to trigger registration
from . import fixture  # noqa: E402, F401 - imported for side effects (registration)

_discover_entry_points()

from .composed import ComposedDriver  # noqa: E402
from .multi import AbstractMultiDriver  # noqa: E402

__all__ = [
    "register_driver",
    "available_drivers",
    "DriverManager",
    "AbstractMultiDriver",
    "ComposedDriver",
]
