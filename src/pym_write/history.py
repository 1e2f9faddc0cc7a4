"""
Scan history (bounded, newest-first, persisted).

The history is a single JSON list stored under HISTORY_KEY in the local
store. Every mutation writes the full snapshot back before returning; if the
write fails the in-memory list is restored and PersistenceError propagates.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .errors import PersistenceError
from .local_store import HISTORY_KEY

if TYPE_CHECKING:
    from .local_store import LocalStore

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 8


@dataclass(frozen=True)
class ScanRecord:
    """A single persisted scan result.

    Only the label changes after creation, and only through
    HistoryManager.rename (which swaps in a new record).
    """

    id: int
    label: str
    score: float
    text: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "label": self.label,
            "score": self.score,
            "text": self.text,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScanRecord:
        """Create from a stored dictionary.

        Accepts the older "date" key for the creation time. Scores outside
        [0, 1] are clamped.

        Raises:
            ValueError: If the stored score is not a finite number
        """
        score = float(data["score"])
        if not math.isfinite(score):
            raise ValueError(f"Stored score is not finite: {data['score']!r}")
        return cls(
            id=int(data["id"]),
            label=str(data["label"]),
            score=_clamp_score(score),
            text=str(data["text"]),
            created_at=str(data.get("created_at", data.get("date", ""))),
        )


def _clamp_score(score: float) -> float:
    return min(1.0, max(0.0, float(score)))


class HistoryManager:
    """
    Ordered, bounded log of past scans.

    Records are kept newest-first. Appending beyond capacity evicts from the
    tail. Ids are strictly increasing: the creation time in milliseconds,
    bumped past the largest id seen so far when two scans land in the same
    millisecond.
    """

    def __init__(
        self,
        store: LocalStore,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """
        Initialize history from the local store.

        Args:
            store: Local store holding the history snapshot
            capacity: Maximum number of records kept
            clock: Source of the current time (injectable for tests)
        """
        self.store = store
        self.capacity = capacity
        self._clock = clock
        self._records: list[ScanRecord] = self._load()
        self._last_id = max((r.id for r in self._records), default=0)

    def _load(self) -> list[ScanRecord]:
        """Load the stored snapshot, skipping entries that cannot be parsed."""
        raw = self.store.get(HISTORY_KEY)
        if not raw:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Stored history is not valid JSON, starting empty: %s", e)
            return []
        if not isinstance(data, list):
            logger.warning("Stored history is not a list, starting empty")
            return []

        records = []
        for entry in data:
            try:
                records.append(ScanRecord.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed history entry: %s", e)
        return records[: self.capacity]

    def _persist(self, previous: list[ScanRecord]) -> None:
        """Write the full snapshot; restore `previous` in memory on failure."""
        payload = json.dumps([r.to_dict() for r in self._records])
        try:
            self.store.set(HISTORY_KEY, payload)
        except PersistenceError:
            self._records = previous
            logger.error("Failed to persist scan history; change rolled back")
            raise

    def _next_id(self, now: datetime) -> int:
        return max(int(now.timestamp() * 1000), self._last_id + 1)

    @property
    def records(self) -> list[ScanRecord]:
        """Snapshot of the history, newest first."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def append(self, label: str, score: float, text: str) -> ScanRecord:
        """Create a record at the front of the history, evicting the oldest beyond capacity."""
        previous = list(self._records)
        now = self._clock()
        record = ScanRecord(
            id=self._next_id(now),
            label=label,
            score=_clamp_score(score),
            text=text,
            created_at=now.strftime("%X"),
        )

        self._records.insert(0, record)
        while len(self._records) > self.capacity:
            evicted = self._records.pop()
            logger.debug("Evicted scan %d from history", evicted.id)

        self._persist(previous)
        self._last_id = record.id
        logger.info("Added scan %d to history (%d/%d)", record.id, len(self), self.capacity)
        return record

    def find(self, record_id: int) -> ScanRecord | None:
        """Look up a record by id."""
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def rename(self, record_id: int, new_label: str) -> ScanRecord | None:
        """Replace a record's label, keeping its position and other fields.

        No-op (returns None) if the record is absent or the label is blank.
        """
        label = (new_label or "").strip()
        if not label:
            return None

        for index, record in enumerate(self._records):
            if record.id == record_id:
                previous = list(self._records)
                renamed = replace(record, label=label)
                self._records[index] = renamed
                self._persist(previous)
                logger.info("Renamed scan %d", record_id)
                return renamed
        return None

    def delete(self, record_id: int) -> bool:
        """Remove a record. Deleting an absent id persists the unchanged list.

        Returns:
            True if a record was removed
        """
        previous = list(self._records)
        self._records = [r for r in self._records if r.id != record_id]
        removed = len(self._records) != len(previous)
        self._persist(previous)
        if removed:
            logger.info("Deleted scan %d", record_id)
        return removed

    def clear(self) -> None:
        """Remove every record."""
        previous = list(self._records)
        self._records = []
        self._persist(previous)
        logger.info("Cleared scan history (%d records)", len(previous))
