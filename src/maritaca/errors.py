"""Configuration errors raised while building request options."""

from __future__ import annotations

from typing import Mapping, Optional


class ConfigurationError(ValueError):
    """Base class for every error raised by the options layer."""


class InvalidServerURLError(ConfigurationError):
    """The server endpoint could not be parsed into a usable URL.

    Attributes:
        raw_url: The string that failed to parse
        reason: Why it was rejected
    """

    def __init__(self, raw_url: str, reason: str):
        self.raw_url = raw_url
        self.reason = reason
        super().__init__(f"Invalid server URL {raw_url!r}: {reason}")


class ParameterRangeError(ConfigurationError):
    """One or more generation parameters are outside their documented range.

    Attributes:
        violations: Field name -> description of the violated bound
    """

    def __init__(self, violations: Mapping[str, str]):
        self.violations = dict(violations)
        details = "; ".join(f"{name} {msg}" for name, msg in self.violations.items())
        super().__init__(f"Invalid generation parameters: {details}")


class ConfigFileError(ConfigurationError):
    """A configuration file could not be read or does not match the schema."""

    def __init__(self, path: str, message: str, *, key: Optional[str] = None):
        self.path = path
        self.key = key
        location = f"{path} [{key}]" if key else path
        super().__init__(f"Failed to load {location}: {message}")


__all__ = [
    "ConfigurationError",
    "InvalidServerURLError",
    "ParameterRangeError",
    "ConfigFileError",
]
