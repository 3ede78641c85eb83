"""
Faultline - Presenter boundary.

The shutdown controller hands the end observer either a full diagnostic
dump (development) or a generic failure notice (production) through this
interface. Concrete renderers live in ``faultline.debug``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .ledger import LedgerSnapshot


class PresentationKind(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


@dataclass(frozen=True)
class PresentationPayload:
    """
    Data handed to a presenter.

    Production presenters must only use ``title`` and ``message``; the
    snapshot is there for development dumps.
    """
    snapshot: LedgerSnapshot
    title: str = "Process terminated"
    message: str = ""
    extra_data: dict[str, Any] = field(default_factory=dict)


class Presenter(ABC):
    """Renders the terminal presentation for the end observer."""

    @abstractmethod
    def render(self, kind: PresentationKind, payload: PresentationPayload) -> None:
        pass
