"""Composed driver: route each operation to a main driver and merge support data.

Usage:
    from drivers import ComposedDriver
    from io_utils.config import TomlConfigLoader, load_config

    composed = ComposedDriver(TomlConfigLoader("config/ils"))
    composed.set_config(load_config(Path("composed.toml")))
    composed.init()
    holdings = composed.get_holding("123")

Configuration:

    [general]
    main_driver = "sierra"

    [drivers]
    sierra = "sierra_rest"
    ill = "fixture"

    [get_holding]
    support_drivers = { ill = "checkStorageRetrievalRequest" }
    merge_keys = { ill = "holding_id" }

Operations without a registered merge shape are passed to the main driver
unchanged, so ``composed.place_hold(details)`` works whenever the main driver
implements ``place_hold``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .errors import ConfigurationError, UnsupportedOperation
from .merge import (
    NestedRecordList,
    RecordList,
    ResultShape,
    SingleRecord,
    merge_list,
    merge_nested,
    merge_single,
)
from .multi import AbstractMultiDriver
from .settings import MethodSettings

logger = logging.getLogger(__name__)

HOLDING_SUBFIELDS = ("holdings", "electronic_holdings")

# Operations whose results are merged across drivers; everything else is passthrough
MERGED_OPERATIONS: Dict[str, ResultShape] = {
    "get_my_profile": SingleRecord(),
    "get_holding": RecordList(HOLDING_SUBFIELDS),
    "get_consortial_holdings": RecordList(HOLDING_SUBFIELDS),
    "get_my_transactions": RecordList(("records",)),
    "get_my_fines": RecordList(),
    "get_my_holds": RecordList(),
    "get_my_ill_requests": RecordList(),
    "get_my_storage_retrieval_requests": RecordList(),
    "get_my_transaction_history": RecordList(),
    "get_purchase_history": RecordList(),
    "get_status": RecordList(),
    "get_statuses": NestedRecordList(base_key="id"),
}


class ComposedDriver(AbstractMultiDriver):
    """Driver that uses several drivers for different tasks and combines their results."""

    def __init__(self, config_loader, driver_manager=None):
        super().__init__(config_loader, driver_manager)
        self._main_driver: Optional[str] = None
        self._operations: Dict[str, ResultShape] = dict(MERGED_OPERATIONS)

    @property
    def main_driver(self) -> Optional[str]:
        """Default main driver name (set by :meth:`init`)."""
        return self._main_driver

    def init(self) -> None:
        """Validate configuration.

        Raises:
            ConfigurationError: If drivers or the main driver are not configured
        """
        super().init()
        main_driver = self.settings.general.main_driver if self.settings else None
        if not main_driver:
            raise ConfigurationError("Main driver needs to be set.")
        self._main_driver = main_driver

    def register_operation(self, method: str, shape: ResultShape) -> None:
        """Merge results of ``method`` according to ``shape``."""
        self._operations[method] = shape

    def operation_shape(self, method: str) -> Optional[ResultShape]:
        return self._operations.get(method)

    # Dispatch

    def method_settings(self, method: str) -> MethodSettings:
        if self.settings is None:
            return MethodSettings()
        return self.settings.method(method)

    def get_main_driver_name_for_method(self, method: str) -> Optional[str]:
        """Return the per-method main driver, else the default main driver."""
        return self.method_settings(method).main_driver or self._main_driver

    def supports_method(self, method: str, params: Sequence[Any]) -> bool:
        """Check whether the main driver for ``method`` supports it with ``params``."""
        driver = self.get_driver(self.get_main_driver_name_for_method(method))
        return driver is not None and self.driver_supports_method(driver, method, params)

    def call_driver_method(self, driver_name: Optional[str], method: str, params: Sequence[Any]) -> Any:
        """Invoke ``method`` on one named driver; driver exceptions propagate."""
        driver = self.get_driver(driver_name)
        if driver is None or not callable(getattr(driver, method, None)):
            raise UnsupportedOperation(method)
        return getattr(driver, method)(*params)

    def default_call(self, method: str, params: Sequence[Any]) -> Any:
        """Pass ``method`` through to its main driver.

        Raises:
            UnsupportedOperation: If the main driver is missing or refuses the call
        """
        params = list(params)
        if self.supports_method(method, params):
            return self.call_driver_method(self.get_main_driver_name_for_method(method), method, params)
        logger.info("Method %s is not supported by driver %s", method, self.get_main_driver_name_for_method(method))
        raise UnsupportedOperation(method)

    def call(self, method: str, *args: Any) -> Any:
        """Invoke operation ``method``, merging results when a shape is registered."""
        shape = self._operations.get(method)
        params = list(args)
        if isinstance(shape, SingleRecord):
            return self.merge_single_results(method, params)
        if isinstance(shape, RecordList):
            return self.combine_record_lists(method, params, shape.subfields)
        if isinstance(shape, NestedRecordList):
            return self.combine_nested_record_lists(method, params, shape.base_key, shape.subfields)
        return self.default_call(method, params)

    def __getattr__(self, name: str):
        # Only reached for names not defined on the class: forward them as operations
        if name.startswith("_"):
            raise AttributeError(name)

        def forward(*args: Any) -> Any:
            return self.call(name, *args)

        forward.__name__ = name
        return forward

    # Merge strategies

    def _call_main(self, method: str, params: List[Any]) -> Any:
        if not self.supports_method(method, params):
            logger.info("Method %s is not supported by driver %s", method, self.get_main_driver_name_for_method(method))
            raise UnsupportedOperation(method)
        return self.call_driver_method(self.get_main_driver_name_for_method(method), method, params)

    def _support_results(self, method: str, params: List[Any], require_merge_key: bool) -> Dict[str, Any]:
        """Call every configured support driver, in configuration order."""
        config = self.method_settings(method)
        results: Dict[str, Any] = {}
        for driver_name in config.support_drivers:
            if require_merge_key and not config.merge_keys.get(driver_name):
                logger.warning("Support driver %s has no merge key for %s; skipped", driver_name, method)
                continue
            driver = self.get_driver(driver_name)
            if driver is not None and not self.driver_supports_method(driver, method, params):
                logger.debug("Support driver %s declined %s", driver_name, method)
                continue
            results[driver_name] = self.call_driver_method(driver_name, method, params)
        return results

    def merge_single_results(self, method: str, params: List[Any]) -> Any:
        """Merge one record per driver; fields of the main driver win."""
        main_result = self._call_main(method, params)
        config = self.method_settings(method)
        support = self._support_results(method, params, require_merge_key=False)
        return merge_single(
            main_result,
            [(result, config.support_drivers[name]) for name, result in support.items()],
        )

    def combine_record_lists(self, method: str, params: List[Any], subfields: Sequence[str] = ()) -> Any:
        """Merge record lists on the configured merge keys; support fields win.

        Without ``merge_keys`` for ``method`` the main result is returned as is.
        """
        main_result = self._call_main(method, params)
        config = self.method_settings(method)
        if not config.merge_keys:
            return main_result
        support = self._support_results(method, params, require_merge_key=True)
        return merge_list(main_result, support, config.merge_keys, config.support_drivers, subfields)

    def combine_nested_record_lists(
        self,
        method: str,
        params: List[Any],
        base_key: str,
        subfields: Sequence[str] = (),
    ) -> Any:
        """Merge lists of record groups (one group per requested id).

        Groups are paired on ``base_key`` and records inside a pair on the
        configured merge keys. Empty main groups are dropped once merging is
        configured.
        """
        main_result = self._call_main(method, params)
        config = self.method_settings(method)
        if not config.merge_keys:
            return main_result
        support = self._support_results(method, params, require_merge_key=True)
        return merge_nested(main_result, support, base_key, config.merge_keys, config.support_drivers, subfields)

    # Operations with merged results

    def get_my_profile(self, patron):
        return self.call("get_my_profile", patron)

    def get_holding(self, id, patron=None, options=None):
        return self.call("get_holding", id, patron, options)

    def get_consortial_holdings(self, id, patron, ids):
        return self.call("get_consortial_holdings", id, patron, ids)

    def get_my_transactions(self, patron):
        return self.call("get_my_transactions", patron)

    def get_my_fines(self, patron):
        return self.call("get_my_fines", patron)

    def get_my_holds(self, patron):
        return self.call("get_my_holds", patron)

    def get_my_ill_requests(self, patron):
        return self.call("get_my_ill_requests", patron)

    def get_my_storage_retrieval_requests(self, patron):
        return self.call("get_my_storage_retrieval_requests", patron)

    def get_my_transaction_history(self, patron, params=None):
        return self.call("get_my_transaction_history", patron, params)

    def get_purchase_history(self, id):
        return self.call("get_purchase_history", id)

    def get_status(self, id):
        return self.call("get_status", id)

    def get_statuses(self, ids):
        return self.call("get_statuses", ids)

    # Login

    def get_login_drivers(self) -> List[str]:
        return [self._main_driver] if self._main_driver else []

    def get_default_login_driver(self) -> Optional[str]:
        return self._main_driver
