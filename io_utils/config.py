"""
Configuration Management

TOML configuration files for the composed driver and its backends, plus
process settings from environment variables with sensible defaults.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from drivers.errors import ConfigNotFound, ConfigurationError

if sys.version_info >= (3, 11):
    import tomllib as tomli
else:  # pragma: no cover
    import tomli  # type: ignore

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_config(config_path: Optional[Path]) -> Dict[str, Any]:
    """Return the packaged defaults deep-merged with ``config_path``."""
    cfg_path = resources.files("config").joinpath("composed.default.toml")
    with cfg_path.open("rb") as f:
        config = tomli.load(f)
    if config_path:
        with Path(config_path).open("rb") as f:
            user_cfg = tomli.load(f)
        _deep_update(config, user_cfg)
    return config


def _deep_update(d: Dict[str, Any], u: Mapping[str, Any]) -> Dict[str, Any]:
    for k, v in u.items():
        if isinstance(v, Mapping) and isinstance(d.get(k), dict):
            _deep_update(d[k], v)
        else:
            d[k] = v
    return d


class TomlConfigLoader:
    """Load driver configuration sections from ``<base_dir>/<name>.toml``."""

    def __init__(self, base_dir: Path | str = "."):
        self.base_dir = Path(base_dir)

    def path_for(self, name: str) -> Path:
        return self.base_dir / f"{name}.toml"

    def get(self, name: str) -> Dict[str, Any]:
        """Parse and return the section ``name``.

        A non-empty section also carries ``config_dir``, the directory of its
        file, so drivers can resolve relative paths against it.

        Raises:
            ConfigNotFound: If the file is missing or not valid TOML
        """
        path = self.path_for(name)
        try:
            with path.open("rb") as f:
                section = tomli.load(f)
        except FileNotFoundError as exc:
            raise ConfigNotFound(name, f"{path} does not exist") from exc
        except (OSError, tomli.TOMLDecodeError) as exc:
            raise ConfigNotFound(name, f"Could not read {path}: {exc}") from exc
        if section:
            section.setdefault("config_dir", str(path.parent))
        return section


class DictConfigLoader:
    """Serve configuration sections from an in-memory mapping."""

    def __init__(self, sections: Mapping[str, Mapping[str, Any]]):
        self.sections = dict(sections)

    def get(self, name: str) -> Dict[str, Any]:
        if name not in self.sections:
            raise ConfigNotFound(name)
        return dict(self.sections[name])


@dataclass
class Settings:
    """Process settings for the command line and embedding applications."""

    config_file: Optional[Path] = None
    config_dir: Path = Path(".")
    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Read settings from ``ILS_COMPOSER_*`` and ``LOG_*`` variables."""
        env = os.environ if environ is None else environ
        config_file = env.get("ILS_COMPOSER_CONFIG")
        return cls(
            config_file=Path(config_file) if config_file else None,
            config_dir=Path(env.get("ILS_COMPOSER_CONFIG_DIR", ".")),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            log_json=env.get("LOG_JSON", "false").lower() == "true",
            log_file=env.get("LOG_FILE") or None,
        )

    def validate(self) -> "Settings":
        """Raise ConfigurationError for unusable values."""
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(
                f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}"
            )
        if self.config_file is not None and not self.config_file.exists():
            raise ConfigurationError(f"Config file not found: {self.config_file}")
        return self


def get_settings() -> Settings:
    """Get validated settings from the environment."""
    return Settings.from_env().validate()
