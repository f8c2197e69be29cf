from .config import (
    DictConfigLoader,
    Settings,
    TomlConfigLoader,
    get_settings,
    load_config,
)
from .logs import setup_logging

__all__ = [
    "DictConfigLoader",
    "Settings",
    "TomlConfigLoader",
    "get_settings",
    "load_config",
    "setup_logging",
]
