"""
History Ledger - the audit trail of the adaptation engine.

Keeps two append-only, in-memory sequences:
1. Accuracy entries: per-provider agreement scores, one per adaptation cycle
2. Weight snapshots: the full weight store after each adaptation cycle

Entries are never deduplicated, evicted or rewritten. The ledger grows for
the lifetime of the process and is lost on restart.

Usage:
    from weather_blend.ledger import HistoryLedger

    ledger = HistoryLedger()
    ledger.record_accuracy(entry)
    ledger.record_weight_snapshot(snapshot)

    recent = ledger.read_weight_history(window=timedelta(hours=3))
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from weather_blend.models import AccuracyEntry, WeightSnapshot

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class HistoryLedger:
    """
    Append-only accuracy and weight history.

    TODO: unbounded growth; add a retention cap (ring buffer or external
    store) before running for months without a restart.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._accuracy: List[AccuracyEntry] = []
        self._weights: List[WeightSnapshot] = []
        logger.info("[HistoryLedger] Initialized (in-memory, append-only)")

    def record_accuracy(self, entry: AccuracyEntry) -> None:
        with self._lock:
            self._accuracy.append(entry)
            count = len(self._accuracy)
        logger.debug(f"[HistoryLedger] Accuracy entry #{count} at {entry.time.isoformat()}")

    def record_weight_snapshot(self, snapshot: WeightSnapshot) -> None:
        with self._lock:
            self._weights.append(snapshot)
            count = len(self._weights)
        logger.debug(f"[HistoryLedger] Weight snapshot #{count} at {snapshot.time.isoformat()}")

    def read_accuracy_history(self) -> List[AccuracyEntry]:
        """All accuracy entries in insertion order."""
        with self._lock:
            return list(self._accuracy)

    def read_weight_history(
        self,
        window: Optional[timedelta] = None,
        now: Optional[datetime] = None
    ) -> List[WeightSnapshot]:
        """
        Weight snapshots in insertion order.

        Args:
            window: Only keep snapshots with time >= now - window. None = all.
            now: Reference time for the window (defaults to current UTC time)

        Returns:
            List of WeightSnapshot
        """
        with self._lock:
            history = list(self._weights)

        if window is None:
            return history

        cutoff = (now or utc_now()) - window
        return [snapshot for snapshot in history if snapshot.time >= cutoff]

    def __len__(self) -> int:
        """Number of recorded adaptation cycles (accuracy entries)."""
        with self._lock:
            return len(self._accuracy)
