"""
Faultline - Error taxonomy.

- ConfigurationError: bad masks, bad mode, unknown keys, unusable log
  destination. Raised at initialisation, never recovered locally.
- ClassificationError: a raw code outside the permitted universe. The
  policy catches it and classifies the fault as terminal.
- LogWriteError: a log destination could not be appended to.
"""

from __future__ import annotations

from typing import Optional, Sequence


class FaultlineError(Exception):
    """Base class for faultline errors."""


class ConfigurationError(FaultlineError):
    """Configuration was rejected during initialisation."""

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        keys: Optional[Sequence[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.keys = list(keys) if keys else ([key] if key else [])

    @property
    def key(self) -> Optional[str]:
        return self.keys[0] if self.keys else None


class ClassificationError(FaultlineError):
    """A raw fault code cannot be classified."""

    def __init__(self, code: int, reason: str):
        super().__init__(f"Cannot classify fault code {code}: {reason}")
        self.code = code
        self.reason = reason


class LogWriteError(FaultlineError, OSError):
    """A fault log destination is not writable."""

    def __init__(self, destination: str, reason: str):
        super().__init__(f"Log destination ({destination}) cannot be written to: {reason}")
        self.destination = destination
        self.reason = reason
