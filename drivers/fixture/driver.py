from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Sequence

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

WILDCARD = "*"


def argument_key(arg: Any) -> str:
    """Return the lookup key for an operation's first argument.

    Patron records are keyed by ``cat_username`` (falling back to ``id``);
    everything else by its string form.
    """

    if isinstance(arg, Mapping):
        return str(arg.get("cat_username") or arg.get("id") or WILDCARD)
    return str(arg)


class FixtureDriver:
    """Driver answering operations from configured data.

    Configuration::

        [fixture]
        path = "../data/sierra.json"          # optional JSON file

        [records.get_my_profile]              # inline data, same layout
        firstname = "Jane"

        [records.get_holding.by_argument]
        "123" = [{ id = "123", holding_id = "H1", status = "Available" }]

    A relative ``path`` is resolved against ``[fixture] base_dir``, else
    against the directory of the driver's config file, else the working
    directory.

    A method entry is either the result returned for every call, or a table
    with a ``by_argument`` mapping from first-argument key to result, where
    ``"*"`` matches any argument. Only methods present in the data are
    supported.
    """

    def __init__(self) -> None:
        self.config: Dict[str, Any] = {}
        self.records: Dict[str, Any] = {}

    def set_config(self, config: Mapping[str, Any]) -> None:
        self.config = dict(config)

    def init(self) -> None:
        """Load fixture data.

        Raises:
            ConfigurationError: If no data is configured or the file is unreadable
        """
        fixture = self.config.get("fixture") or {}
        records = dict(self.config.get("records") or {})
        path_value = fixture.get("path")
        if not path_value and not records:
            raise ConfigurationError("Fixture driver needs a [fixture] path or [records] table")
        if path_value:
            path = Path(path_value)
            base_dir = fixture.get("base_dir") or self.config.get("config_dir")
            if not path.is_absolute() and base_dir:
                path = Path(base_dir) / path
            if not path.exists():
                raise ConfigurationError(f"Fixture file not found: {path}")
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                raise ConfigurationError(f"Invalid fixture file {path}: {exc}") from exc
            # Inline records override file contents
            records = {**data, **records}
        self.records = records
        logger.debug("Fixture driver loaded %d operations", len(records))

    def _provides(self, method: str) -> bool:
        records = self.__dict__.get("records") or {}
        if method == "get_statuses":
            return "get_statuses" in records or "get_status" in records
        return method in records

    def supports_method(self, method: str, params: Sequence[Any]) -> bool:
        return self._provides(method)

    def __getattr__(self, name: str):
        if name.startswith("_") or not self._provides(name):
            raise AttributeError(name)

        def operation(*args: Any) -> Any:
            return self.lookup(name, args)

        operation.__name__ = name
        return operation

    def lookup(self, method: str, args: Sequence[Any]) -> Any:
        """Return a copy of the configured result of ``method`` for ``args``."""
        if method == "get_statuses" and method not in self.records:
            ids = args[0] if args else []
            return [self.lookup("get_status", (id_,)) for id_ in ids]
        data = self.records[method]
        if isinstance(data, Mapping) and "by_argument" in data:
            table = data["by_argument"]
            key = argument_key(args[0]) if args else WILDCARD
            data = table.get(key, table.get(WILDCARD))
        return copy.deepcopy(data)


__all__ = ["FixtureDriver", "argument_key"]
