"""
Faultline - Fault intake.

Single entry point for every observed fault. Builds the FaultRecord,
classifies it, appends it to the ledger and, for terminal-level faults
only, asks the shutdown controller to run the terminal procedure.

Faults arriving after shutdown has begun are still appended; the
controller's guard turns their trigger into a no-op.
"""

from __future__ import annotations

import logging
import sys
import traceback
from typing import Optional, Sequence

from .classification import ClassificationPolicy
from .core import (
    Continue,
    FaultKind,
    FaultRecord,
    FrameInfo,
    SeverityTier,
    TerminationOutcome,
    frames_from_summary,
    frames_from_traceback,
)
from .ledger import ErrorLedger
from .shutdown import ShutdownController


USER_TIERS = (SeverityTier.USER_MINOR, SeverityTier.USER_MAJOR, SeverityTier.USER_FATAL)


def _as_code(code) -> int:
    """Integer form of a raw code; 0 when it has none."""
    try:
        return int(code)
    except (TypeError, ValueError):
        return 0


def capture_stack(skip: int = 0) -> tuple[FrameInfo, ...]:
    """
    Call frames of the caller, outermost first.

    Args:
        skip: Extra innermost frames to drop beyond this function's caller
    """
    frame = sys._getframe(skip + 2)
    return frames_from_summary(traceback.extract_stack(frame))


class FaultIntake:
    """
    Fault entry point invoked by the runtime hook and the manual triggers.

    Usage:
        ```python
        intake = FaultIntake(policy, ledger, controller)
        outcome = intake.from_runtime_fault(FaultCode.WARNING, "disk low", __file__, 42)
        ```
    """

    def __init__(
        self,
        policy: ClassificationPolicy,
        ledger: ErrorLedger,
        controller: ShutdownController,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self.policy = policy
        self.ledger = ledger
        self.controller = controller
        self.logger = logger or logging.getLogger("faultline.faults")

    def from_runtime_fault(
        self,
        code: int,
        message: str,
        file: str,
        line: int,
        *,
        trace: Optional[Sequence[FrameInfo]] = None,
    ) -> TerminationOutcome:
        """
        Intake a runtime error signal.

        Args:
            code: Raw fault code
            message: Fault message
            file: Origin file
            line: Origin line
            trace: Call frames; captured from the caller when omitted

        Returns:
            Outcome of the shutdown controller, or Continue
        """
        # Non-integer codes classify as terminal; unconvertible ones are recorded as 0
        tier = self.policy.classify(code)
        record = FaultRecord(
            tier=tier,
            code=_as_code(code),
            message=str(message),
            file=str(file),
            line=int(line or 0),
            trace=tuple(trace) if trace is not None else capture_stack(),
            kind=FaultKind.RUNTIME_FAULT,
        )
        return self._accept(record)

    def from_exception(self, exc: BaseException) -> TerminationOutcome:
        """Intake an uncaught exception. Always terminal."""
        trace = frames_from_traceback(exc.__traceback__)
        file, line = (trace[-1].file, trace[-1].line) if trace else ("", 0)
        record = FaultRecord(
            tier=SeverityTier.TERMINAL,
            code=0,
            message=str(exc),
            file=file,
            line=line,
            trace=trace,
            kind=FaultKind.EXCEPTION,
            exception_type=type(exc).__name__,
        )
        return self._accept(record)

    def from_user(self, tier: SeverityTier, message: str, *, stacklevel: int = 1) -> TerminationOutcome:
        """
        Intake a manually triggered fault.

        Args:
            tier: One of USER_MINOR, USER_MAJOR, USER_FATAL
            message: Fault message
            stacklevel: 1 records the caller of this method, 2 its caller,
                and so on (as ``warnings.warn`` does)
        """
        if tier not in USER_TIERS:
            raise ValueError(f"{tier!r} is not a user tier")
        trace = capture_stack(skip=stacklevel - 1)
        file, line = (trace[-1].file, trace[-1].line) if trace else ("", 0)
        record = FaultRecord(
            tier=tier,
            code=0,
            message=str(message),
            file=file,
            line=line,
            trace=trace,
            kind=FaultKind.USER_TRIGGERED,
        )
        return self._accept(record)

    def _accept(self, record: FaultRecord) -> TerminationOutcome:
        self.ledger.append(record)
        self.logger.debug(f"Fault recorded: {record}")
        if not record.tier.is_terminal:
            return Continue()
        if self.controller.completed:
            self.logger.debug("Shutdown already under way; fault kept in ledger only")
            return Continue()
        return self.controller.trigger()
