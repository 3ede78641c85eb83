"""
Faultline - Shutdown controller.

State machine: IDLE -> TRIGGERED -> COMPLETED.

The first ``trigger()`` call flips IDLE to TRIGGERED under a lock and runs
the terminal procedure synchronously. Every other call, concurrent or
re-entrant (a fault raised while the procedure itself is rendering or
logging), observes TRIGGERED/COMPLETED and returns ``Continue()`` without
doing anything.

Terminal procedure:
1. Snapshot and reset the ledger.
2. No terminal-level records: log background records (if any) and
   return ``Continue()``.
3. Terminal-level records: branch on mode, then return ``Halt``.
   - DEVELOPMENT: action or diagnostic presentation, then log
   - PRODUCTION: log, then action or generic failure notice
   - SILENT: log only
   - CUSTOM: the action for the matching severity, else log only
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable, Optional

from .actions import TerminalAction, TerminalContext, severity_of
from .core import Continue, Halt, Mode, SeverityTier, TerminationOutcome
from .errors import LogWriteError
from .ledger import ErrorLedger, LedgerSnapshot
from .logger import FaultLogWriter, LogRecord
from .presenter import PresentationKind, PresentationPayload, Presenter


class ShutdownPhase(str, Enum):
    IDLE = "idle"
    TRIGGERED = "triggered"
    COMPLETED = "completed"


PRODUCTION_TITLE = "Sorry, an error occurred"
PRODUCTION_MESSAGE = "Details have been logged"


class ShutdownController:
    """
    Runs the terminal procedure at most once per process.

    Args:
        ledger: Ledger to snapshot when triggered
        writer: Log writer for the persisted record
        mode: Termination mode
        presenter: Renders development/production presentations
        log_destination_background: Destination for background-only logs
        log_destination_terminal: Destination for terminal logs
        development_action: Replaces the development presentation
        production_action: Replaces the production notice
        custom_actions: CUSTOM mode actions keyed by "major"/"fatal"
        extra_data: Extra data written with every log record
        timestamp: Fixed timestamp for log records (None = write time)
        exit_code: Exit status carried by ``Halt``
    """

    def __init__(
        self,
        ledger: ErrorLedger,
        writer: FaultLogWriter,
        *,
        mode: Mode,
        presenter: Presenter,
        log_destination_background: str,
        log_destination_terminal: str,
        development_action: Optional[TerminalAction] = None,
        production_action: Optional[TerminalAction] = None,
        custom_actions: Optional[dict[str, TerminalAction]] = None,
        extra_data: Optional[dict[str, Any]] = None,
        timestamp: Optional[str] = None,
        exit_code: int = 1,
        logger: Optional[logging.Logger] = None,
    ):
        self.ledger = ledger
        self.writer = writer
        self.mode = mode
        self.presenter = presenter
        self.log_destination_background = str(log_destination_background)
        self.log_destination_terminal = str(log_destination_terminal)
        self.development_action = development_action
        self.production_action = production_action
        self.custom_actions = dict(custom_actions or {})
        self.extra_data = extra_data
        self.timestamp = timestamp
        self.exit_code = exit_code
        self.logger = logger or logging.getLogger("faultline.faults")

        self._lock = threading.Lock()
        self._phase = ShutdownPhase.IDLE
        self._outcome: Optional[TerminationOutcome] = None
        self._listeners: list[Callable[[ShutdownPhase], None]] = []

    # ========================================================================
    # State
    # ========================================================================

    @property
    def phase(self) -> ShutdownPhase:
        return self._phase

    @property
    def completed(self) -> bool:
        """True once the procedure has started; never reverts."""
        return self._phase is not ShutdownPhase.IDLE

    @property
    def outcome(self) -> Optional[TerminationOutcome]:
        """Outcome of the procedure, None until it has finished."""
        return self._outcome

    def on_phase(self, listener: Callable[[ShutdownPhase], None]):
        """Register a callback fired on each phase transition."""
        self._listeners.append(listener)

    def _set_phase(self, phase: ShutdownPhase):
        self._phase = phase
        for listener in self._listeners:
            try:
                listener(phase)
            except Exception as e:
                self.logger.error(f"Shutdown listener raised exception: {e}")

    # ========================================================================
    # Trigger
    # ========================================================================

    def trigger(self) -> TerminationOutcome:
        """
        Run the terminal procedure unless it already ran or is running.

        Returns:
            Halt when terminal faults were handled, otherwise Continue
        """
        with self._lock:
            if self._phase is not ShutdownPhase.IDLE:
                return Continue()
            self._phase = ShutdownPhase.TRIGGERED
        self._set_phase(ShutdownPhase.TRIGGERED)

        outcome: TerminationOutcome = Continue()
        try:
            outcome = self._run()
        finally:
            self._outcome = outcome
            self._set_phase(ShutdownPhase.COMPLETED)
        return outcome

    def _run(self) -> TerminationOutcome:
        snapshot = self.ledger.snapshot_and_reset()

        if not snapshot.has_terminal:
            if snapshot.has_background:
                self._log(self.log_destination_background, snapshot, terminal=False)
            return Continue()

        context = TerminalContext(
            mode=self.mode,
            snapshot=snapshot,
            severity=severity_of(snapshot),
            extra_data=dict(self.extra_data or {}),
            write_log=lambda: self._log_terminal(snapshot),
        )
        self.logger.critical(
            f"Terminal procedure running in {self.mode.value} mode: "
            f"{snapshot.count(SeverityTier.TERMINAL)} terminal, "
            f"{snapshot.count(SeverityTier.BACKGROUND)} background fault(s)"
        )

        if self.mode is Mode.DEVELOPMENT:
            if self.development_action is not None:
                self._invoke(self.development_action, context)
            else:
                self._present(
                    PresentationKind.DEVELOPMENT,
                    PresentationPayload(
                        snapshot=snapshot,
                        message=f"{len(snapshot)} fault(s) recorded",
                        extra_data=context.extra_data,
                    ),
                )
            self._log_terminal(snapshot)

        elif self.mode is Mode.PRODUCTION:
            self._log_terminal(snapshot)
            if self.production_action is not None:
                self._invoke(self.production_action, context)
            else:
                self._present(
                    PresentationKind.PRODUCTION,
                    PresentationPayload(
                        snapshot=LedgerSnapshot(),
                        title=PRODUCTION_TITLE,
                        message=PRODUCTION_MESSAGE,
                    ),
                )

        elif self.mode is Mode.SILENT:
            self._log_terminal(snapshot)

        elif self.mode is Mode.CUSTOM:
            action = self.custom_actions.get(context.severity)
            if action is not None:
                self._invoke(action, context)
            else:
                self._log_terminal(snapshot)

        return Halt(self.exit_code)

    # ========================================================================
    # Steps
    # ========================================================================

    def _invoke(self, action: TerminalAction, context: TerminalContext):
        try:
            action.invoke(context)
        except Exception as e:
            self.logger.error(
                f"Terminal action {action.name} raised exception: {e}",
                exc_info=True,
            )

    def _present(self, kind: PresentationKind, payload: PresentationPayload):
        try:
            self.presenter.render(kind, payload)
        except Exception as e:
            self.logger.error(
                f"Presenter {self.presenter.__class__.__name__} raised exception: {e}",
                exc_info=True,
            )

    def _log_terminal(self, snapshot: LedgerSnapshot) -> bool:
        written = self._log(self.log_destination_terminal, snapshot, terminal=True)
        if (
            self.log_destination_background != self.log_destination_terminal
            and snapshot.has_background
        ):
            background = snapshot.filter(SeverityTier.BACKGROUND)
            written = self._log(self.log_destination_background, background, terminal=False) and written
        return written

    def _log(self, destination: str, snapshot: LedgerSnapshot, *, terminal: bool) -> bool:
        record = LogRecord.from_snapshot(
            snapshot,
            terminal=terminal,
            timestamp=self.timestamp,
            extra_data=self.extra_data,
        )
        try:
            self.writer.append(destination, record)
        except LogWriteError as e:
            self.logger.critical(f"Fault log lost: {e}", exc_info=True)
            return False
        return True

    def __repr__(self) -> str:
        return f"ShutdownController(mode={self.mode.value}, phase={self._phase.value})"
