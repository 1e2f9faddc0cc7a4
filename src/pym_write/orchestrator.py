"""
Scan orchestration.

Runs one scan end to end: validate input, score it (real or mock), compute
display fields, resolve a label and append the record to history. The
orchestrator is the single boundary where scoring failures are turned into
non-fatal notices.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import InputTooShort, ScanInProgress
from .scorer import ScoreSource

if TYPE_CHECKING:
    from .history import HistoryManager, ScanRecord
    from .preferences import Preferences
    from .scorer import RemoteScorer

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 100

VERDICT_AI = "Likely AI-Generated"
VERDICT_MIXED = "Potentially Mixed"
VERDICT_HUMAN = "Likely Human-Written"

# Label provider receives the suggested default and returns the user's
# choice (None or blank keeps the default).
LabelProvider = Callable[[str], str | None]
Notifier = Callable[[str], None]


def display_percentage(score: float) -> int:
    """Score as a whole percentage, rounding halves up."""
    return int(math.floor(score * 100 + 0.5))


def verdict(score: float) -> str:
    if score > 0.7:
        return VERDICT_AI
    if score > 0.4:
        return VERDICT_MIXED
    return VERDICT_HUMAN


def count_words(text: str) -> int:
    """Whitespace-separated word count of the stripped text."""
    stripped = (text or "").strip()
    return len(stripped.split()) if stripped else 0


def suggested_label(text: str) -> str:
    """Default offered to the label provider."""
    return text[:30] + "..."


def default_label(text: str) -> str:
    """Label used when the user supplies none."""
    return text[:35] + "..."


@dataclass
class ScanOutcome:
    """Result of a scan, or of loading a stored one."""

    record: ScanRecord
    score: float
    percentage: int
    verdict: str
    source: ScoreSource | None = None
    notices: list[str] = field(default_factory=list)

    @property
    def used_mock(self) -> bool:
        return self.source is not None and self.source.is_mock

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.record.id,
            "label": self.record.label,
            "score": self.score,
            "percentage": self.percentage,
            "verdict": self.verdict,
            "source": self.source.value if self.source else None,
            "created_at": self.record.created_at,
            "notices": list(self.notices),
        }


class ScanOrchestrator:
    """Coordinates scoring and history for one client.

    Only one scan runs at a time: re-entering run_scan while a scan is in
    flight raises ScanInProgress rather than starting a second one.
    """

    def __init__(
        self,
        preferences: Preferences,
        scorer: RemoteScorer,
        history: HistoryManager,
        min_text_length: int = MIN_TEXT_LENGTH,
        label_provider: LabelProvider | None = None,
        notify: Notifier | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            preferences: Source of the credential and selected model.
            scorer: Remote scorer (with its mock fallback).
            history: History manager receiving completed scans.
            min_text_length: Minimum stripped text length.
            label_provider: Optional callback asking the user for a label.
            notify: Optional callback for transient user notices.
        """
        self.preferences = preferences
        self.scorer = scorer
        self.history = history
        self.min_text_length = min_text_length
        self.label_provider = label_provider
        self._notify = notify
        self._busy = threading.Lock()

    @property
    def is_busy(self) -> bool:
        """True while a scan is in flight (presentation layers disable the trigger)."""
        return self._busy.locked()

    def notify(self, message: str) -> None:
        logger.debug("Notice: %s", message)
        if self._notify:
            self._notify(message)

    def run_scan(self, input_text: str, label: str | None = None) -> ScanOutcome:
        """Score input_text and record it in history.

        Args:
            input_text: Text to scan (surrounding whitespace is stripped).
            label: Optional label; when None the label provider is asked.

        Returns:
            ScanOutcome for the new history record.

        Raises:
            InputTooShort: Stripped text is shorter than min_text_length.
            ScanInProgress: Another scan is already running.
        """
        text = (input_text or "").strip()
        if len(text) < self.min_text_length:
            self.notify("Text too short for reliable analysis.")
            raise InputTooShort(len(text), self.min_text_length)

        if not self._busy.acquire(blocking=False):
            raise ScanInProgress("A scan is already in progress")

        notices: list[str] = []
        try:
            result = self.scorer.score(
                text, self.preferences.credential, self.preferences.model
            )
        finally:
            self._busy.release()

        if result.source is ScoreSource.REMOTE:
            notices.append("Analysis complete!")
        elif result.source is ScoreSource.MOCK_API_ERROR:
            notices.append("API Error - Using mock data.")
        else:
            notices.append("Using mock data (no API key)")
        for message in notices:
            self.notify(message)

        score = result.score
        record = self.history.append(self._resolve_label(text, label), score, text)
        logger.info(
            "Scan %d scored %d%% via %s", record.id, display_percentage(score),
            result.source.value,
        )

        return ScanOutcome(
            record=record,
            score=record.score,
            percentage=display_percentage(record.score),
            verdict=verdict(record.score),
            source=result.source,
            notices=notices,
        )

    def _resolve_label(self, text: str, label: str | None) -> str:
        if label is None and self.label_provider is not None:
            label = self.label_provider(suggested_label(text))
        if label and label.strip():
            return label.strip()
        return default_label(text)

    def load(self, record_id: int) -> ScanOutcome | None:
        """Outcome view of a stored scan, without rescoring."""
        record = self.history.find(record_id)
        if record is None:
            return None
        self.notify("Scan Loaded")
        return ScanOutcome(
            record=record,
            score=record.score,
            percentage=display_percentage(record.score),
            verdict=verdict(record.score),
        )
