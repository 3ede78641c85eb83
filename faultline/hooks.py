"""
Runtime hooks - wires the interpreter's fault notifications into a core.

Installed hooks:
- warnings.showwarning   -> runtime fault, code from the warning category
- sys.excepthook         -> uncaught exception (terminal)
- threading.excepthook   -> uncaught exception in a thread (terminal)
- sys.unraisablehook     -> RECOVERABLE_ERROR runtime fault
- atexit                 -> last-resort check before the process exits

Everything is restored by ``uninstall()``.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
import threading
import traceback
import warnings
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from .faults.codes import CORE_FATAL, FaultCode, code_for_warning
from .faults.core import (
    Continue,
    FrameInfo,
    Halt,
    TerminationOutcome,
    frames_from_summary,
    frames_from_traceback,
)

if TYPE_CHECKING:
    from .runtime import ErrorHandlingCore


logger = logging.getLogger("faultline.hooks")

# Modules whose frames sit between a warning site and showwarning
_WARNING_MACHINERY = ("warnings", "_py_warnings")


def _is_machinery(frame) -> bool:
    name = frame.f_globals.get("__name__", "")
    return name in _WARNING_MACHINERY or name == "faultline" or name.startswith("faultline.")


def warning_site_stack() -> tuple[FrameInfo, ...]:
    """Call frames ending at the code that issued the current warning."""
    frame = sys._getframe(1)
    while frame is not None and _is_machinery(frame):
        frame = frame.f_back
    if frame is None:
        return ()
    return frames_from_summary(traceback.extract_stack(frame))


def exit_immediately(code: int) -> None:
    """Flush stdio and end the whole process, from any thread."""
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError, AttributeError):
            pass
    os._exit(code)


class RuntimeHooks:
    """
    Hook collaborator for one ErrorHandlingCore.

    Where raising ``SystemExit`` cannot stop the process (thread and
    unraisable hooks, atexit), a ``Halt`` is carried out with
    ``hard_exit`` instead.

    Args:
        core: Initialised core
        capture_warnings: Route warnings to the intake
        capture_exceptions: Route uncaught exceptions (main thread and threads)
        capture_unraisable: Route unraisable exceptions
        register_atexit: Run the last-resort check at interpreter exit
        hard_exit: Immediate process exit (default is the core's)
    """

    def __init__(
        self,
        core: ErrorHandlingCore,
        *,
        capture_warnings: bool = True,
        capture_exceptions: bool = True,
        capture_unraisable: bool = True,
        register_atexit: bool = True,
        hard_exit: Optional[Callable[[int], Any]] = None,
    ):
        self.core = core
        self.capture_warnings = capture_warnings
        self.capture_exceptions = capture_exceptions
        self.capture_unraisable = capture_unraisable
        self.register_atexit = register_atexit
        self.hard_exit = hard_exit or core.hard_exit

        self._installed = False
        self._previous: Dict[str, Any] = {}
        self._warning_state: Optional[warnings.catch_warnings] = None
        self._last_error: Optional[Dict[str, Any]] = None
        self._captured: set[int] = set()

    @property
    def installed(self) -> bool:
        return self._installed

    # ========================================================================
    # Install / uninstall
    # ========================================================================

    def install(self) -> RuntimeHooks:
        if self._installed:
            return self

        if self.capture_warnings:
            # catch_warnings saves filters and showwarning for uninstall
            self._warning_state = warnings.catch_warnings()
            self._warning_state.__enter__()
            warnings.simplefilter("always")
            warnings.showwarning = self._showwarning

        if self.capture_exceptions:
            self._previous["excepthook"] = sys.excepthook
            self._previous["threading_excepthook"] = threading.excepthook
            sys.excepthook = self._excepthook
            threading.excepthook = self._threading_excepthook

        if self.capture_unraisable:
            self._previous["unraisablehook"] = sys.unraisablehook
            sys.unraisablehook = self._unraisablehook

        if self.register_atexit:
            atexit.register(self._atexit)

        self._installed = True
        logger.debug("Runtime hooks installed")
        return self

    def uninstall(self) -> None:
        if not self._installed:
            return

        if self._warning_state is not None:
            self._warning_state.__exit__(None, None, None)
            self._warning_state = None

        if "excepthook" in self._previous:
            sys.excepthook = self._previous.pop("excepthook")
            threading.excepthook = self._previous.pop("threading_excepthook")

        if "unraisablehook" in self._previous:
            sys.unraisablehook = self._previous.pop("unraisablehook")

        if self.register_atexit:
            atexit.unregister(self._atexit)

        self._installed = False
        logger.debug("Runtime hooks uninstalled")

    def __enter__(self) -> RuntimeHooks:
        return self.install()

    def __exit__(self, exc_type, exc, tb):
        self.uninstall()
        return False

    # ========================================================================
    # Hook callbacks
    # ========================================================================

    def _showwarning(self, message, category, filename, lineno, file=None, line=None):
        outcome = self.core.intake.from_runtime_fault(
            code_for_warning(category),
            f"{category.__name__}: {message}",
            filename,
            lineno,
            trace=warning_site_stack(),
        )
        # Main thread: SystemExit at the warning site. Other threads: hard exit
        self.core.finish(outcome)

    def _excepthook(self, exc_type, exc, tb):
        if issubclass(exc_type, KeyboardInterrupt):
            self._previous.get("excepthook", sys.__excepthook__)(exc_type, exc, tb)
            return
        if exc is None:
            exc = exc_type()
        if exc.__traceback__ is None and tb is not None:
            exc = exc.with_traceback(tb)
        self._captured.add(id(exc))
        self.core.intake.from_exception(exc)
        # The interpreter exits with status 1 once this hook returns

    def _threading_excepthook(self, args):
        if args.exc_type is SystemExit:
            return
        exc = args.exc_value if args.exc_value is not None else args.exc_type()
        self._captured.add(id(exc))
        outcome = self.core.intake.from_exception(exc)
        self._apply_hard(outcome)

    def _unraisablehook(self, unraisable):
        exc = unraisable.exc_value
        trace = frames_from_traceback(unraisable.exc_traceback)
        file, line = (trace[-1].file, trace[-1].line) if trace else ("", 0)
        err_msg = unraisable.err_msg or "Exception ignored in"
        message = f"{err_msg}: {unraisable.object!r}: {unraisable.exc_type.__name__}: {exc}"
        outcome = self.core.intake.from_runtime_fault(
            int(FaultCode.RECOVERABLE_ERROR), message, file, line, trace=trace,
        )
        self._apply_hard(outcome)

    def _atexit(self):
        outcome = self.check_last_fault()
        self.uninstall()
        self._apply_hard(outcome)

    def _apply_hard(self, outcome: TerminationOutcome):
        if isinstance(outcome, Halt):
            self.hard_exit(outcome.exit_code)

    # ========================================================================
    # Last-resort check
    # ========================================================================

    def record_last_error(self, code: int, message: str, file: str = "", line: int = 0) -> None:
        """
        Note a fault the runtime raised outside the normal hooks.

        Integrations that observe faults the hooks cannot see call this;
        ``check_last_fault`` picks it up at teardown.
        """
        self._last_error = {
            "type": int(code),
            "message": str(message),
            "file": str(file),
            "line": int(line),
        }

    def last_error(self) -> Optional[Dict[str, Any]]:
        """
        Last fault raised by the runtime that was never captured.

        Uses ``record_last_error`` first, then the interpreter's record of
        the last unhandled exception.
        """
        if self._last_error is not None:
            return dict(self._last_error)

        exc = getattr(sys, "last_exc", None) or getattr(sys, "last_value", None)
        if exc is None or id(exc) in self._captured:
            return None
        trace = frames_from_traceback(exc.__traceback__)
        code = FaultCode.PARSE if isinstance(exc, SyntaxError) else FaultCode.ERROR
        return {
            "type": int(code),
            "message": f"{type(exc).__name__}: {exc}",
            "file": trace[-1].file if trace else "",
            "line": trace[-1].line if trace else 0,
            "trace": trace,
        }

    def check_last_fault(self) -> TerminationOutcome:
        """
        Final pre-exit check, idempotent with respect to shutdown.

        A fatal, uncaptured last error is fed to the intake; otherwise the
        controller is triggered so accumulated background faults are logged.
        """
        controller = self.core.controller
        if controller.completed:
            return Continue()

        error = self.last_error()
        if error is not None and error["type"] & CORE_FATAL:
            self._last_error = None
            return self.core.intake.from_runtime_fault(
                error["type"],
                error["message"],
                error["file"],
                error["line"],
                trace=error.get("trace", ()),
            )
        return controller.trigger()
