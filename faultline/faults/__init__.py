"""
Faultline Faults - classification, ledger and at-most-once shutdown.

Every runtime fault flows through one pipeline:

    runtime hook -> FaultIntake -> ClassificationPolicy + ErrorLedger
                 -> (terminal level) ShutdownController -> log / present / halt

Core exports:
- FaultCode: Raw fault code taxonomy
- SeverityTier: Classification result
- FaultRecord: Immutable fault record
- ClassificationPolicy: Tier masks
- ErrorLedger: Record accumulator
- FaultLogWriter: Locked JSON-lines appender
- ShutdownController: Terminal procedure state machine
- FaultIntake: Fault entry point
"""

from .codes import (
    FaultCode,
    CLASSIFIABLE,
    CORE_FATAL,
    DEFAULT_IGNORE_MASK,
    DEFAULT_BACKGROUND_MASK,
    get_name,
    code_for_warning,
    parse_mask,
)

from .core import (
    SeverityTier,
    FaultKind,
    FrameInfo,
    FaultRecord,
    Mode,
    Halt,
    Continue,
    TerminationOutcome,
)

from .errors import (
    FaultlineError,
    ConfigurationError,
    ClassificationError,
    LogWriteError,
)

from .classification import ClassificationPolicy, classify
from .ledger import ErrorLedger, LedgerSnapshot
from .logger import FaultLogWriter, LogRecord, check_writable
from .actions import TerminalAction, CallableAction, TerminalContext, resolve_action
from .presenter import Presenter, PresentationKind, PresentationPayload
from .shutdown import ShutdownController, ShutdownPhase
from .intake import FaultIntake

__all__ = [
    # Codes
    "FaultCode",
    "CLASSIFIABLE",
    "CORE_FATAL",
    "DEFAULT_IGNORE_MASK",
    "DEFAULT_BACKGROUND_MASK",
    "get_name",
    "code_for_warning",
    "parse_mask",

    # Core types
    "SeverityTier",
    "FaultKind",
    "FrameInfo",
    "FaultRecord",
    "Mode",
    "Halt",
    "Continue",
    "TerminationOutcome",

    # Errors
    "FaultlineError",
    "ConfigurationError",
    "ClassificationError",
    "LogWriteError",

    # Components
    "ClassificationPolicy",
    "classify",
    "ErrorLedger",
    "LedgerSnapshot",
    "FaultLogWriter",
    "LogRecord",
    "check_writable",
    "TerminalAction",
    "CallableAction",
    "TerminalContext",
    "resolve_action",
    "Presenter",
    "PresentationKind",
    "PresentationPayload",
    "ShutdownController",
    "ShutdownPhase",
    "FaultIntake",
]
