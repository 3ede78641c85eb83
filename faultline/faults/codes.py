"""
Faultline - Fault code taxonomy.

Raw fault codes are single-bit integer flags. Severity masks are built by
OR-ing codes together, and classification is a bitmask membership test.

Groups:
- CLASSIFIABLE: codes the runtime hook may hand to the intake, and the
  only codes allowed in the ignore/background masks
- CORE_FATAL: codes the normal hook never sees; only the last-resort
  check at process teardown can observe them
"""

from __future__ import annotations

import warnings
from enum import IntFlag
from typing import Any, Iterable

from .errors import ConfigurationError


class FaultCode(IntFlag):
    """Runtime fault codes."""

    ERROR = 1
    WARNING = 2
    PARSE = 4
    NOTICE = 8
    CORE_ERROR = 16
    CORE_WARNING = 32
    COMPILE_ERROR = 64
    COMPILE_WARNING = 128
    USER_ERROR = 256
    USER_WARNING = 512
    USER_NOTICE = 1024
    STRICT = 2048
    RECOVERABLE_ERROR = 4096
    DEPRECATED = 8192
    USER_DEPRECATED = 16384
    ALL = 32767


CLASSIFIABLE = int(
    FaultCode.WARNING
    | FaultCode.NOTICE
    | FaultCode.CORE_WARNING
    | FaultCode.COMPILE_WARNING
    | FaultCode.USER_WARNING
    | FaultCode.USER_NOTICE
    | FaultCode.STRICT
    | FaultCode.RECOVERABLE_ERROR
    | FaultCode.DEPRECATED
    | FaultCode.USER_DEPRECATED
)

CORE_FATAL = int(
    FaultCode.ERROR
    | FaultCode.PARSE
    | FaultCode.CORE_ERROR
    | FaultCode.COMPILE_ERROR
    | FaultCode.USER_ERROR
)

DEFAULT_IGNORE_MASK = int(FaultCode.NOTICE | FaultCode.USER_NOTICE | FaultCode.STRICT)

DEFAULT_BACKGROUND_MASK = int(
    FaultCode.WARNING
    | FaultCode.CORE_WARNING
    | FaultCode.COMPILE_WARNING
    | FaultCode.USER_WARNING
    | FaultCode.DEPRECATED
    | FaultCode.USER_DEPRECATED
)

MAX_CODE = int(FaultCode.ALL)

# Single-bit codes in declaration order (ALL excluded)
SINGLE_CODES: tuple[FaultCode, ...] = tuple(
    code for code in FaultCode.__members__.values() if code is not FaultCode.ALL
)

_NAMES = {int(code): name for name, code in FaultCode.__members__.items()}


def get_name(code: int) -> str:
    """Symbolic name of a raw code, or ``UNKNOWN_ERROR_CODE``."""
    return _NAMES.get(code, "UNKNOWN_ERROR_CODE")


# Ordered most specific first; issubclass walks the MRO
_WARNING_CODES: tuple[tuple[type[Warning], FaultCode], ...] = (
    (DeprecationWarning, FaultCode.DEPRECATED),
    (PendingDeprecationWarning, FaultCode.DEPRECATED),
    (FutureWarning, FaultCode.USER_DEPRECATED),
    (SyntaxWarning, FaultCode.COMPILE_WARNING),
    (ImportWarning, FaultCode.CORE_WARNING),
    (ResourceWarning, FaultCode.NOTICE),
    (BytesWarning, FaultCode.STRICT),
    (UnicodeWarning, FaultCode.STRICT),
    (getattr(warnings, "EncodingWarning", UnicodeWarning), FaultCode.STRICT),
    (UserWarning, FaultCode.USER_WARNING),
    (RuntimeWarning, FaultCode.WARNING),
)


def code_for_warning(category: type[Warning]) -> int:
    """Map a Python warning category onto a raw fault code."""
    for warning_type, code in _WARNING_CODES:
        if issubclass(category, warning_type):
            return int(code)
    return int(FaultCode.WARNING)


def _code_from_name(name: str, key: str) -> int:
    token = name.strip().upper()
    if token.startswith("E_"):
        token = token[2:]
    if token not in FaultCode.__members__:
        raise ConfigurationError(
            f"Unknown fault code '{name}' in {key}",
            key=key,
        )
    return int(FaultCode[token])


def parse_mask(value: Any, *, key: str = "mask") -> int:
    """
    Normalise a configured mask to an integer.

    Accepts an int, a ``FaultCode``, a ``"WARNING | NOTICE"`` string, or an
    iterable of code names/ints. Range checks happen in the policy.
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer mask, got bool", key=key)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return 0
        if stripped.lstrip("-").isdigit():
            return int(stripped)
        mask = 0
        for part in stripped.split("|"):
            mask |= _code_from_name(part, key)
        return mask
    if isinstance(value, Iterable):
        mask = 0
        for item in value:
            mask |= parse_mask(item, key=key)
        return mask
    raise ConfigurationError(
        f"{key} must be an int, a code name string, or a list of codes, "
        f"got {type(value).__name__}",
        key=key,
    )


def describe_mask(mask: int) -> list[str]:
    """Names of the single-bit codes contained in ``mask``."""
    return [code.name for code in SINGLE_CODES if mask & code]
