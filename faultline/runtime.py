"""
ErrorHandlingCore - one fault-handling core per process.

Owns the classification policy, ledger, log writer, shutdown controller
and intake, and is the top-level runner that turns a ``Halt`` outcome
into an actual process exit.

Lifecycle:
    core = ErrorHandlingCore(config).init()
    core.install_hooks()
    ...
    core.shutdown()

or simply ``with initialise({...}) as core: ...``
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import Any, Callable, Dict, Optional

from .config import FaultlineConfig
from .debug.pages import ConsolePresenter
from .faults.classification import ClassificationPolicy
from .faults.core import FaultRecord, Halt, SeverityTier, TerminationOutcome
from .faults.errors import ConfigurationError, LogWriteError
from .faults.intake import FaultIntake
from .faults.ledger import ErrorLedger, LedgerSnapshot
from .faults.logger import FaultLogWriter, check_writable
from .faults.presenter import Presenter
from .faults.shutdown import ShutdownController, ShutdownPhase
from .hooks import RuntimeHooks, exit_immediately


class ErrorHandlingCore:
    """
    Explicitly owned fault-handling core.

    Args:
        config: Validated configuration
        presenter: Terminal presenter (plain-text console by default)
        halt: Called with the exit code when a manual trigger or an
            in-flow runtime fault ends in ``Halt`` on the main thread
            (default ``sys.exit``)
        hard_exit: Used instead of ``halt`` off the main thread, where
            ``SystemExit`` would only end the thread (default
            ``exit_immediately``)
        writer: Log writer (default FaultLogWriter)
    """

    def __init__(
        self,
        config: FaultlineConfig,
        *,
        presenter: Optional[Presenter] = None,
        halt: Optional[Callable[[int], Any]] = None,
        hard_exit: Optional[Callable[[int], Any]] = None,
        writer: Optional[FaultLogWriter] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.presenter = presenter or ConsolePresenter()
        self.halt = halt or sys.exit
        self.hard_exit = hard_exit or exit_immediately
        self.writer = writer or FaultLogWriter()
        self.logger = logger or logging.getLogger("faultline")

        self.policy: Optional[ClassificationPolicy] = None
        self.ledger: Optional[ErrorLedger] = None
        self.controller: Optional[ShutdownController] = None
        self.intake: Optional[FaultIntake] = None
        self.hooks: Optional[RuntimeHooks] = None
        self._initialised = False

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def init(self) -> ErrorHandlingCore:
        """
        Validate configuration, check log destinations and wire components.

        Raises:
            ConfigurationError: On invalid config or unwritable destinations
        """
        if self._initialised:
            return self

        self.config.validate()
        for key in ("log_destination_terminal", "log_destination_background"):
            destination = getattr(self.config, key)
            try:
                check_writable(destination)
            except LogWriteError as e:
                raise ConfigurationError(str(e), key=key) from e

        self.policy = ClassificationPolicy(self.config.ignore_mask, self.config.background_mask)
        self.ledger = ErrorLedger()
        self.controller = ShutdownController(
            self.ledger,
            self.writer,
            mode=self.config.mode,
            presenter=self.presenter,
            log_destination_background=self.config.log_destination_background,
            log_destination_terminal=self.config.log_destination_terminal,
            development_action=self.config.development_action,
            production_action=self.config.production_action,
            custom_actions=self.config.custom_actions,
            extra_data=self.config.extra_log_data,
            timestamp=self.config.timestamp,
        )
        self.intake = FaultIntake(self.policy, self.ledger, self.controller)
        self._initialised = True
        self.logger.debug(f"Fault handling initialised in {self.config.mode.value} mode")
        return self

    def install_hooks(self, **kwargs: Any) -> RuntimeHooks:
        """Register with the interpreter's fault notification hooks."""
        self._require_init()
        if self.hooks is None:
            self.hooks = RuntimeHooks(self, **kwargs)
        self.hooks.install()
        return self.hooks

    def shutdown(self) -> TerminationOutcome:
        """
        Teardown: run the last-resort check, then release the hooks.

        Safe to call more than once; only the first run of the terminal
        procedure has any effect.
        """
        self._require_init()
        if self.hooks is not None and self.hooks.installed:
            outcome = self.hooks.check_last_fault()
            self.hooks.uninstall()
            return outcome
        return self.controller.trigger()

    def __enter__(self) -> ErrorHandlingCore:
        return self.init()

    def __exit__(self, exc_type, exc, tb):
        if exc is not None and not isinstance(exc, (SystemExit, KeyboardInterrupt)):
            outcome = self.intake.from_exception(exc)
            if self.hooks is not None:
                self.hooks.uninstall()
            self.finish(outcome)
            return False
        outcome = self.shutdown()
        if exc is None:
            self.finish(outcome)
        return False

    # ========================================================================
    # Manual triggers
    # ========================================================================

    def trigger_minor(self, message: str) -> None:
        """Record a minor user fault. Never halts."""
        self._require_init()
        self.intake.from_user(SeverityTier.USER_MINOR, message, stacklevel=2)

    def trigger_major(self, message: str) -> None:
        """Record a major user fault. Logged at shutdown, never halts."""
        self._require_init()
        self.intake.from_user(SeverityTier.USER_MAJOR, message, stacklevel=2)

    def trigger_fatal(self, message: str) -> TerminationOutcome:
        """Record a fatal user fault and run the terminal procedure."""
        self._require_init()
        outcome = self.intake.from_user(SeverityTier.USER_FATAL, message, stacklevel=2)
        self.finish(outcome)
        return outcome

    def finish(self, outcome: TerminationOutcome) -> None:
        """Exit the process for a Halt outcome."""
        if not isinstance(outcome, Halt):
            return
        if threading.current_thread() is threading.main_thread():
            self.halt(outcome.exit_code)
        else:
            self.hard_exit(outcome.exit_code)

    # ========================================================================
    # Ledger access
    # ========================================================================

    def extract(self, with_counts: bool = False) -> list[FaultRecord] | LedgerSnapshot:
        """Take every record so far (optionally with counts) and reset."""
        self._require_init()
        return self.ledger.extract_and_reset(include_counts=with_counts)

    def last(self) -> Optional[FaultRecord]:
        self._require_init()
        return self.ledger.last()

    def add_log_data(self, data: Dict[str, Any]) -> None:
        """
        Merge extra details into every log record (under ``data``).
        Existing keys are overwritten.
        """
        if not isinstance(data, dict):
            raise TypeError("Input must be a mapping")
        self.config.extra_log_data.update(data)
        if self.controller is not None:
            self.controller.extra_data = self.config.extra_log_data

    def set_timestamp(self, timestamp: Any) -> None:
        self.config.timestamp = None if timestamp is None else str(timestamp)
        if self.controller is not None:
            self.controller.timestamp = self.config.timestamp

    @property
    def phase(self) -> ShutdownPhase:
        self._require_init()
        return self.controller.phase

    def _require_init(self):
        if not self._initialised:
            raise RuntimeError("ErrorHandlingCore.init() has not been called")

    def __repr__(self) -> str:
        state = self.controller.phase.value if self.controller else "uninitialised"
        return f"ErrorHandlingCore(mode={self.config.mode.value}, phase={state})"


def initialise(
    parameters: Optional[Dict[str, Any]] = None,
    *,
    presenter: Optional[Presenter] = None,
    halt: Optional[Callable[[int], Any]] = None,
    hard_exit: Optional[Callable[[int], Any]] = None,
    install_hooks: bool = True,
    **kwargs: Any,
) -> ErrorHandlingCore:
    """
    Build, initialise and (by default) hook up a core from parameters.

    Example:
        ```python
        core = faultline.initialise({
            "log_directory": "/var/log/app",
            "mode": "silent",
        })
        core.trigger_minor("Nothing serious")
        ```
    """
    config = FaultlineConfig.from_mapping(parameters, **kwargs)
    core = ErrorHandlingCore(config, presenter=presenter, halt=halt, hard_exit=hard_exit).init()
    if install_hooks:
        core.install_hooks()
    return core
