"""Protocol definitions for backend drivers and configuration sources.

Backend adapters implement :class:`Driver` so they can be constructed,
configured and dispatched to by :mod:`drivers.multi` and
:mod:`drivers.composed`. Implementations don't need to inherit from the
protocol; they only need the methods.

## Driver Contract

Required methods:
- `set_config(config: Mapping) -> None` - called before `init()`
- `init() -> None` - raise `ConfigurationError` when required settings are absent

Optional methods:
- `supports_method(method: str, params: list) -> bool` - refuse an operation
  based on argument values, not just the method surface

Operations (any subset):
- `get_status(id)`, `get_statuses(ids)`, `get_holding(id, patron, options)`
- `patron_login(username, password)`, `get_my_profile(patron)`
- `get_my_holds`, `get_my_fines`, `get_my_transactions`,
  `get_my_storage_retrieval_requests`, `get_my_ill_requests` (patron)
- `get_config(function, params)`
- anything else a host application calls, e.g. `place_hold`, `renew_my_items`,
  `get_new_items`, `find_reserves`, `get_pick_up_locations`

Operations return a scalar, a record (``dict``), a list of records, or for
``get_statuses`` a list of lists of records.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Protocol, runtime_checkable

Record = Dict[str, Any]


@runtime_checkable
class Driver(Protocol):
    """Backend adapter for one integrated library system."""

    def set_config(self, config: Mapping[str, Any]) -> None:
        """Inject the driver's configuration section."""
        ...

    def init(self) -> None:
        """Validate configuration and open any connections."""
        ...


@runtime_checkable
class MethodProbe(Protocol):
    """Driver that can veto operations based on their arguments."""

    def supports_method(self, method: str, params: List[Any]) -> bool:
        """Return True if ``method`` can be called with ``params``."""
        ...


@runtime_checkable
class ConfigLoader(Protocol):
    """Source of named configuration sections."""

    def get(self, name: str) -> Dict[str, Any]:
        """Return the section ``name``.

        Raises ``ConfigNotFound`` when it does not exist.
        """
        ...


__all__ = ["Record", "Driver", "MethodProbe", "ConfigLoader"]
