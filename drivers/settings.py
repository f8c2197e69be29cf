"""Validated views of the composite driver configuration."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import ConfigurationError

RESERVED_SECTIONS = ("general", "drivers")


def split_support_keys(value: Any) -> List[str]:
    """Normalize ``"a, b,c"`` or ``["a", "b"]`` into a list of field names.

    Raises:
        ValueError: If ``value`` is neither a string nor a list of strings
    """

    if value is None:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        parts = list(value)
    else:
        raise ValueError(f"support keys must be a comma-separated string or a list of strings, got {value!r}")
    return [p.strip() for p in parts if p.strip()]


class GeneralSettings(BaseModel):
    """The ``[general]`` table."""

    model_config = ConfigDict(extra="allow")

    main_driver: Optional[str] = None
    drivers_config_path: str = ""


class MethodSettings(BaseModel):
    """Per-operation table, e.g. ``[get_holding]``."""

    model_config = ConfigDict(extra="ignore")

    main_driver: Optional[str] = None
    support_drivers: Dict[str, List[str]] = {}
    merge_keys: Dict[str, str] = {}

    @field_validator("support_drivers", mode="before")
    @classmethod
    def _split(cls, value: Any) -> Dict[str, List[str]]:
        if not value:
            return {}
        if not isinstance(value, Mapping):
            raise ValueError(f"support_drivers must map driver names to support keys, got {value!r}")
        return {str(name): split_support_keys(keys) for name, keys in value.items()}


class ComposedSettings(BaseModel):
    general: GeneralSettings = GeneralSettings()
    drivers: Dict[str, str]
    methods: Dict[str, MethodSettings] = {}

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "ComposedSettings":
        """Build settings from a parsed TOML document.

        Every top-level table other than ``general`` and ``drivers`` is read as
        the configuration of the operation it is named after.

        Raises
        ------
        ConfigurationError
            If the document does not validate.
        """

        methods = {
            name: section
            for name, section in config.items()
            if name not in RESERVED_SECTIONS and isinstance(section, Mapping)
        }
        try:
            return cls(
                general=config.get("general") or {},
                drivers=config.get("drivers") or {},
                methods=methods,
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid driver configuration: {exc}") from exc

    def method(self, name: str) -> MethodSettings:
        """Return the settings of operation ``name`` (empty when unconfigured)."""

        return self.methods.get(name) or MethodSettings()


__all__ = [
    "GeneralSettings",
    "MethodSettings",
    "ComposedSettings",
    "split_support_keys",
]
