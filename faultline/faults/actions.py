"""
Faultline - Terminal actions.

A terminal action replaces the default presentation of a mode. Actions
are selected per mode when the configuration is built, so a bad action
is rejected at initialisation rather than when the process is dying.
"""

from __future__ import annotations

import importlib
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .core import Mode, SeverityTier
from .errors import ConfigurationError
from .ledger import LedgerSnapshot


@dataclass(frozen=True)
class TerminalContext:
    """
    What a terminal action gets to see.

    Attributes:
        mode: Active termination mode
        snapshot: Ledger contents taken at the start of the procedure
        severity: ``"major"`` for runtime terminal faults, ``"fatal"``
            when the procedure was provoked by an explicit fatal trigger
        extra_data: Extra log data configured for the process
        write_log: Writes the terminal log record; CUSTOM mode actions
            call it through ``log()`` when they want the record persisted
    """
    mode: Mode
    snapshot: LedgerSnapshot
    severity: str = "major"
    extra_data: dict[str, Any] = field(default_factory=dict)
    write_log: Optional[Callable[[], bool]] = None

    def log(self) -> bool:
        """Persist the snapshot to the terminal destination."""
        if self.write_log is None:
            return False
        return self.write_log()

    @property
    def records(self):
        return self.snapshot.records

    @property
    def counts(self) -> dict[str, int]:
        return self.snapshot.counts_dict()


class TerminalAction(ABC):
    """
    Abstract base class for terminal actions.

    Example:
        ```python
        class PageOnCall(TerminalAction):
            def invoke(self, context: TerminalContext) -> None:
                pager.send(f"{len(context.records)} faults, process halting")
        ```
    """

    @abstractmethod
    def invoke(self, context: TerminalContext) -> None:
        """Run the action. Exceptions are logged and do not stop shutdown."""
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__


class CallableAction(TerminalAction):
    """Adapts a plain callable. Zero-argument callables are supported."""

    def __init__(self, func: Callable[..., Any], *, name: Optional[str] = None):
        if not callable(func):
            raise ConfigurationError(f"Submitted action ({func!r}) is not callable")
        self.func = func
        self._name = name or getattr(func, "__qualname__", repr(func))
        self._takes_context = _accepts_argument(func)

    def invoke(self, context: TerminalContext) -> None:
        if self._takes_context:
            self.func(context)
        else:
            self.func()

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"CallableAction({self._name})"


def _accepts_argument(func: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return True
    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    )
    return any(p.kind in positional for p in signature.parameters.values())


def _import_object(path: str) -> Any:
    if ":" in path:
        module_name, _, attr_path = path.partition(":")
    else:
        module_name, _, attr_path = path.rpartition(".")
    if not module_name or not attr_path:
        raise ConfigurationError(f"Submitted action ({path}) is not an import path")
    try:
        obj = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Submitted action ({path}) cannot be imported: {e}") from e
    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            raise ConfigurationError(f"Submitted action ({path}) is not callable") from e
    return obj


def resolve_action(value: Any, *, key: str = "action") -> Optional[TerminalAction]:
    """
    Build a TerminalAction from configuration.

    Accepts None, a TerminalAction, a callable, a TerminalAction subclass,
    or a ``"package.module:function"`` / ``"package.module.Class.method"``
    import path.
    """
    if value is None:
        return None
    if isinstance(value, TerminalAction):
        return value
    try:
        if isinstance(value, str):
            value = _import_object(value)
        if isinstance(value, type) and issubclass(value, TerminalAction):
            return value()
        return CallableAction(value)
    except ConfigurationError as e:
        raise ConfigurationError(e.message, key=key) from e


CUSTOM_SEVERITIES = ("major", "fatal")


def resolve_custom_actions(value: Any) -> dict[str, TerminalAction]:
    """Custom-mode actions keyed by ``"major"`` / ``"fatal"``."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError("custom_actions must be a mapping", key="custom_actions")
    unknown = [k for k in value if k not in CUSTOM_SEVERITIES]
    if unknown:
        raise ConfigurationError(
            f"Invalid custom action severities ({', '.join(map(str, unknown))}) submitted",
            key="custom_actions",
        )
    actions = {}
    for severity, action in value.items():
        resolved = resolve_action(action, key=f"custom_actions.{severity}")
        if resolved is not None:
            actions[severity] = resolved
    return actions


def severity_of(snapshot: LedgerSnapshot) -> str:
    """``"fatal"`` when an explicit fatal trigger is in the snapshot."""
    if snapshot.counts.get(SeverityTier.USER_FATAL, 0):
        return "fatal"
    return "major"
