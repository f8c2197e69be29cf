from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ILSError(Exception):
    """Standard error raised by the driver dispatch layer.

    Parameters
    ----------
    code:
        Short machine readable error code.
    message:
        Human readable error message.
    """

    code: str
    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.code}: {self.message}"


class ConfigurationError(ILSError):
    """Required settings are missing or invalid."""

    def __init__(self, message: str) -> None:
        super().__init__("configuration", message)


class DriverUnavailable(ILSError):
    """A named driver cannot be constructed or configured."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__("driver_unavailable", message)
        self.name = name


class UnsupportedOperation(ILSError):
    """No usable driver services the requested operation."""

    def __init__(self, method: str) -> None:
        super().__init__("unsupported", f'Method "{method}" is not supported.')
        self.method = method


class ConfigNotFound(ILSError):
    """A configuration section could not be loaded."""

    def __init__(self, name: str, message: str | None = None) -> None:
        super().__init__("config_not_found", message or f"No configuration named {name}")
        self.name = name


__all__ = [
    "ILSError",
    "ConfigurationError",
    "DriverUnavailable",
    "UnsupportedOperation",
    "ConfigNotFound",
]
