"""
Faultline - Error ledger.

In-memory accumulator of fault records since the last extraction.
Insertion order is causal order. Every append lands either in the
snapshot returned by ``extract_and_reset`` or in the post-reset state,
never both and never neither.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from .core import FaultRecord, SeverityTier


def _zero_counts() -> dict[SeverityTier, int]:
    return {tier: 0 for tier in SeverityTier}


@dataclass(frozen=True)
class LedgerSnapshot:
    """Records and per-tier counts taken out of the ledger in one step."""
    records: tuple[FaultRecord, ...] = ()
    counts: dict[SeverityTier, int] = field(default_factory=_zero_counts)

    def count(self, level: SeverityTier) -> int:
        """Number of records whose tier collapses to ``level``."""
        return sum(n for tier, n in self.counts.items() if tier.level is level.level)

    @property
    def has_terminal(self) -> bool:
        return self.count(SeverityTier.TERMINAL) > 0

    @property
    def has_background(self) -> bool:
        return self.count(SeverityTier.BACKGROUND) > 0

    def filter(self, level: SeverityTier) -> LedgerSnapshot:
        """Sub-snapshot holding only records at ``level``."""
        records = tuple(r for r in self.records if r.tier.level is level.level)
        counts = _zero_counts()
        for record in records:
            counts[record.tier] += 1
        return LedgerSnapshot(records=records, counts=counts)

    def counts_dict(self) -> dict[str, int]:
        return {tier.value: n for tier, n in self.counts.items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "counts": self.counts_dict(),
            "errors": [r.to_dict() for r in self.records],
        }

    def __len__(self) -> int:
        return len(self.records)


class ErrorLedger:
    """
    Ordered fault records plus per-tier counters.

    Mutated only by ``append`` and ``extract_and_reset``. Both take the
    same lock, so an extract is a single atomic step with respect to
    appends from other threads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: list[FaultRecord] = []
        self._counts = _zero_counts()

    def append(self, record: FaultRecord) -> None:
        with self._lock:
            self._records.append(record)
            self._counts[record.tier] += 1

    def extract_and_reset(self, include_counts: bool = False) -> list[FaultRecord] | LedgerSnapshot:
        """
        Take everything accumulated so far and empty the ledger.

        Args:
            include_counts: Return a LedgerSnapshot (records and counts)
                instead of the bare record list

        Returns:
            Record list, or LedgerSnapshot when ``include_counts`` is set
        """
        snapshot = self.snapshot_and_reset()
        if include_counts:
            return snapshot
        return list(snapshot.records)

    def snapshot_and_reset(self) -> LedgerSnapshot:
        with self._lock:
            records, self._records = self._records, []
            counts, self._counts = self._counts, _zero_counts()
        return LedgerSnapshot(records=tuple(records), counts=counts)

    def last(self) -> Optional[FaultRecord]:
        """Most recently appended record without mutating the ledger."""
        with self._lock:
            return self._records[-1] if self._records else None

    @property
    def counts(self) -> dict[SeverityTier, int]:
        with self._lock:
            return dict(self._counts)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __repr__(self) -> str:
        return f"ErrorLedger(records={len(self)})"
