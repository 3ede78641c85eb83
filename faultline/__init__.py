"""
Faultline - runtime fault classification and at-most-once shutdown.

Complete integration of:
- Faults: code taxonomy, tier classification, ledger, shutdown state machine
- Hooks: warnings, uncaught exceptions, unraisable exceptions, atexit
- Debug: development dumps and production notices (text or HTML)
- Config: layered YAML/JSON/.env/environment configuration
- CLI: ``faultline run | validate | codes``

Quick start:
    ```python
    import faultline

    core = faultline.initialise({"log_directory": "/var/log/app", "mode": "silent"})
    core.trigger_minor("Nothing serious")
    core.trigger_major("A little worrying")
    core.trigger_fatal("I can't go on!")
    ```
"""

__version__ = "0.3.0"

from .config import ConfigLoader, FaultlineConfig
from .runtime import ErrorHandlingCore, initialise
from .hooks import RuntimeHooks

from .faults import (
    FaultCode,
    SeverityTier,
    FaultKind,
    FaultRecord,
    Mode,
    Halt,
    Continue,
    ConfigurationError,
    ClassificationError,
    LogWriteError,
    ClassificationPolicy,
    ErrorLedger,
    LedgerSnapshot,
    FaultLogWriter,
    LogRecord,
    ShutdownController,
    ShutdownPhase,
    FaultIntake,
    TerminalAction,
    TerminalContext,
    Presenter,
    PresentationKind,
)

from .debug import ConsolePresenter, HTMLPresenter

__all__ = [
    "__version__",
    "ConfigLoader",
    "FaultlineConfig",
    "ErrorHandlingCore",
    "initialise",
    "RuntimeHooks",
    "FaultCode",
    "SeverityTier",
    "FaultKind",
    "FaultRecord",
    "Mode",
    "Halt",
    "Continue",
    "ConfigurationError",
    "ClassificationError",
    "LogWriteError",
    "ClassificationPolicy",
    "ErrorLedger",
    "LedgerSnapshot",
    "FaultLogWriter",
    "LogRecord",
    "ShutdownController",
    "ShutdownPhase",
    "FaultIntake",
    "TerminalAction",
    "TerminalContext",
    "Presenter",
    "PresentationKind",
    "ConsolePresenter",
    "HTMLPresenter",
]
