"""
Faultline - Core types.

Defines:
- SeverityTier (classification result, collapsed to three base levels)
- FaultKind (what observed the fault)
- FaultRecord (immutable record of one observed fault)
- Mode (terminal procedure variant)
- TerminationOutcome (Halt | Continue)
"""

from __future__ import annotations

import traceback
from enum import Enum
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Optional

from .codes import get_name


# ============================================================================
# Severity & Kind Enums
# ============================================================================

class SeverityTier(str, Enum):
    """
    Severity tiers.

    Runtime faults land in IGNORE, BACKGROUND or TERMINAL. Manually
    triggered faults get their own USER_* tiers so they can be told apart
    in the ledger counts, but each one collapses onto a base level that
    drives logging and termination.
    """
    IGNORE = "ignore"
    BACKGROUND = "background"
    TERMINAL = "terminal"
    USER_MINOR = "user_minor"
    USER_MAJOR = "user_major"
    USER_FATAL = "user_fatal"

    @property
    def level(self) -> SeverityTier:
        """Base tier this tier behaves as."""
        return _LEVELS[self]

    @property
    def is_terminal(self) -> bool:
        return self.level is SeverityTier.TERMINAL

    @property
    def is_background(self) -> bool:
        return self.level is SeverityTier.BACKGROUND


_LEVELS = {
    SeverityTier.IGNORE: SeverityTier.IGNORE,
    SeverityTier.BACKGROUND: SeverityTier.BACKGROUND,
    SeverityTier.TERMINAL: SeverityTier.TERMINAL,
    SeverityTier.USER_MINOR: SeverityTier.IGNORE,
    SeverityTier.USER_MAJOR: SeverityTier.BACKGROUND,
    SeverityTier.USER_FATAL: SeverityTier.TERMINAL,
}


class FaultKind(str, Enum):
    """Source of a fault record."""
    RUNTIME_FAULT = "Error"
    EXCEPTION = "Exception"
    USER_TRIGGERED = "User"


class Mode(str, Enum):
    """Terminal procedure variant."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    SILENT = "silent"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: Any) -> Mode:
        if isinstance(value, Mode):
            return value
        if isinstance(value, str):
            token = value.strip().lower()
            aliases = {"dev": "development", "prod": "production"}
            return cls(aliases.get(token, token))
        raise ValueError(f"Invalid termination mode: {value!r}")


# ============================================================================
# FaultRecord
# ============================================================================

@dataclass(frozen=True, slots=True)
class FrameInfo:
    """One call-frame descriptor of a fault backtrace."""
    file: str
    line: int
    function: str

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.file, "line": self.line, "function": self.function}


def frames_from_summary(summary: traceback.StackSummary) -> tuple[FrameInfo, ...]:
    return tuple(
        FrameInfo(file=fs.filename, line=fs.lineno or 0, function=fs.name)
        for fs in summary
    )


def frames_from_traceback(tb: Optional[TracebackType]) -> tuple[FrameInfo, ...]:
    if tb is None:
        return ()
    return frames_from_summary(traceback.extract_tb(tb))


@dataclass(frozen=True, slots=True)
class FaultRecord:
    """
    Immutable record of one observed fault.

    Created at the moment the fault is observed and owned by the ledger
    until extracted.

    Attributes:
        tier: Severity tier assigned at intake
        code: Raw fault code (0 for exceptions and manual triggers)
        message: Fault message
        file: Origin file
        line: Origin line
        trace: Call frames, outermost first (may be empty)
        kind: Which path observed the fault
        exception_type: Exception class name for EXCEPTION records
    """
    tier: SeverityTier
    code: int
    message: str
    file: str
    line: int
    trace: tuple[FrameInfo, ...] = field(default_factory=tuple)
    kind: FaultKind = FaultKind.RUNTIME_FAULT
    exception_type: Optional[str] = None

    @property
    def origin(self) -> str:
        return f"{self.file}:{self.line}"

    @property
    def code_name(self) -> str:
        if self.kind is not FaultKind.RUNTIME_FAULT:
            return self.exception_type or self.kind.value
        return get_name(self.code)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted log entry shape."""
        data: dict[str, Any] = {
            "type": self.kind.value,
            "tier": self.tier.value,
            "code": self.code,
            "error": self.code_name,
            "message": self.message,
            "file": self.file,
            "line": self.line,
            "backtrace": [frame.to_dict() for frame in self.trace],
        }
        if self.exception_type:
            data["exception"] = self.exception_type
        return data

    def __str__(self) -> str:
        return f"[{self.tier.value}] {self.code_name}: {self.message} ({self.origin})"


# ============================================================================
# TerminationOutcome - terminal procedure results
# ============================================================================

@dataclass(frozen=True)
class Halt:
    """
    The terminal procedure decided the process must stop.

    The top-level runner performs the exit with ``exit_code``.
    """
    exit_code: int = 1


@dataclass(frozen=True)
class Continue:
    """Normal execution resumes (or the call was a no-op)."""
    pass


TerminationOutcome = Halt | Continue
