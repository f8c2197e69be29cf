"""
Multi-driver base class.

Owns the per-name driver cache shared by drivers that delegate to several
backends:

- resolves a driver name to its adapter type via the ``[drivers]`` table
- loads the per-driver configuration section through a ConfigLoader
- constructs, configures and initializes each driver once (lazy)
- answers whether a driver can service an operation with given arguments

Cached instances live as long as the multi-driver itself and are never
re-initialized, so scope one multi-driver per session or request.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Sequence

from . import DriverManager
from .errors import ConfigNotFound, ConfigurationError, DriverUnavailable
from .protocols import ConfigLoader, Driver
from .settings import ComposedSettings

logger = logging.getLogger(__name__)


class AbstractMultiDriver:
    """
    Base for drivers composed of other drivers.

    Subclasses call :meth:`get_driver` whenever they need a backend; the
    first call for a name builds the driver, later calls reuse it.
    """

    def __init__(
        self,
        config_loader: ConfigLoader,
        driver_manager: Optional[DriverManager] = None,
    ):
        """
        Initialize multi-driver.

        Args:
            config_loader: Source of per-driver configuration sections
            driver_manager: Builds driver instances by adapter type
        """
        self.config_loader = config_loader
        self.driver_manager = driver_manager or DriverManager()
        self.config: Dict[str, Any] = {}
        self.settings: Optional[ComposedSettings] = None
        self.drivers: Dict[str, str] = {}
        self.drivers_config_path = ""
        self._driver_cache: Dict[str, Driver] = {}
        self._name_locks: Dict[str, threading.RLock] = {}
        self._lock = threading.RLock()

    def set_config(self, config: Mapping[str, Any]) -> None:
        """Inject the composite configuration (parsed TOML document)."""
        self.config = dict(config)

    def init(self) -> None:
        """Validate the composite configuration.

        Raises:
            ConfigurationError: If no drivers are configured
        """
        if not self.config.get("drivers"):
            raise ConfigurationError("Configuration needs to specify drivers")
        self.settings = ComposedSettings.from_mapping(self.config)
        self.drivers = dict(self.settings.drivers)
        self.drivers_config_path = self.settings.general.drivers_config_path.strip("/")

    def get_driver(self, name: Optional[str]) -> Optional[Driver]:
        """Get the initialized driver for ``name``.

        Creates the instance on first access (lazy initialization). A name
        that cannot be resolved yields None and is retried on the next
        lookup; exceptions raised by the driver's own ``init()`` propagate.

        Only lookups of the same name wait for each other while a driver
        initializes.

        Args:
            name: Driver name from the ``[drivers]`` table

        Returns:
            Driver instance or None if unavailable
        """
        if not name:
            return None
        with self._lock:
            driver = self._driver_cache.get(name)
            if driver is not None:
                return driver
            name_lock = self._name_locks.setdefault(name, threading.RLock())
        with name_lock:
            with self._lock:
                driver = self._driver_cache.get(name)
            if driver is not None:
                return driver
            try:
                driver = self.create_driver(name)
            except DriverUnavailable as exc:
                logger.warning("%s: %s", type(self).__name__, exc.message)
                return None
            with self._lock:
                self._driver_cache[name] = driver
            return driver

    def create_driver(self, name: str) -> Driver:
        """Build, configure and initialize a new driver instance.

        Raises:
            DriverUnavailable: If the name is unknown or its configuration is empty
        """
        if name not in self.drivers:
            raise DriverUnavailable(name, f"Driver {name} is not configured")
        config = self.get_driver_config(name)
        if not config:
            raise DriverUnavailable(name, f"No configuration found for driver {name}")
        driver = self.driver_manager.get(self.drivers[name])
        logger.debug("Initializing driver %s (%s)", name, self.drivers[name])
        driver.set_config(config)
        driver.init()
        return driver

    def get_driver_config(self, name: str) -> Dict[str, Any]:
        """Load the configuration section of driver ``name``.

        Returns an empty dict when the section cannot be loaded.
        """
        path = f"{self.drivers_config_path}/{name}" if self.drivers_config_path else name
        try:
            return dict(self.config_loader.get(path))
        except ConfigNotFound:
            logger.warning("%s: Could not load config for %s", type(self).__name__, name)
            return {}

    def driver_supports_method(
        self,
        driver: Any,
        method: str,
        params: Optional[Sequence[Any]] = None,
    ) -> bool:
        """Check whether ``driver`` can service ``method`` with ``params``.

        A driver exposing ``supports_method`` gets the final word, so it can
        refuse calls based on argument values.
        """
        if method.startswith("_") or not callable(getattr(driver, method, None)):
            return False
        probe = getattr(driver, "supports_method", None)
        if callable(probe):
            return bool(probe(method, list(params or [])))
        return True

    def cached_drivers(self) -> List[str]:
        """List driver names that have been resolved so far."""
        with self._lock:
            return list(self._driver_cache)
