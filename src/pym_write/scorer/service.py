"""Remote scorer: text in, AI-generated probability out.

Backends:
- Chat completion (primary): asks the selected model for a JSON object with
  a "score" field and parses the JSON nested inside the reply content
- Classifier (secondary): picks the "Fake"/"LABEL_1" probability from a
  two-class text classifier
- Mock: seeded pseudo-random score after a fixed simulated delay

score() is the soft-error entry point used by the scan orchestrator: it
never raises a RemoteScorerError, it reports which path produced the score.

Privacy:
- Scanned text is never logged
- The credential is never logged
"""

from __future__ import annotations

import json
import logging
import math
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx

from pym_write.errors import (
    ModelLoadingTransient,
    RemoteScorerError,
    RemoteScorerParseError,
    RemoteScorerTransportError,
)
from pym_write.scorer.prompts import ScorePrompt

if TYPE_CHECKING:
    from pym_write.config import ScorerConfig

logger = logging.getLogger(__name__)

AI_LABELS = ("Fake", "LABEL_1")
NEUTRAL_SCORE = 0.5


class ScoreSource(str, Enum):
    """Which path produced a score."""

    REMOTE = "remote"
    MOCK_NO_CREDENTIAL = "mock_no_credential"
    MOCK_API_ERROR = "mock_api_error"

    @property
    def is_mock(self) -> bool:
        return self is not ScoreSource.REMOTE


@dataclass
class ScoreResult:
    """Result of one scoring attempt."""

    score: float
    source: ScoreSource
    model: str | None = None
    error: RemoteScorerError | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "score": self.score,
            "source": self.source.value,
            "model": self.model,
            "error": str(self.error) if self.error else None,
        }


def normalize_score(value: Any) -> float:
    """Coerce a reported score into [0, 1].

    Raises:
        RemoteScorerParseError: If value is not a finite number
    """
    if isinstance(value, bool):
        raise RemoteScorerParseError(f"Score is not a number: {value!r}")
    try:
        score = float(value)
    except (TypeError, ValueError) as e:
        raise RemoteScorerParseError(f"Score is not a number: {value!r}") from e
    if not math.isfinite(score):
        raise RemoteScorerParseError(f"Score is not finite: {value!r}")
    if score < 0.0 or score > 1.0:
        logger.debug("Clamping out-of-range score %s", score)
    return min(1.0, max(0.0, score))


def parse_content_json(content: str) -> dict:
    """Parse the JSON object carried inside a chat reply's content.

    The content must be exactly one JSON object. Code fences or prose around
    it make the reply malformed.

    Raises:
        RemoteScorerParseError: If the content is not a JSON object
    """
    if not isinstance(content, str) or not content.strip():
        raise RemoteScorerParseError("Empty message content")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise RemoteScorerParseError(f"Message content is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise RemoteScorerParseError("Message content is not a JSON object")
    return data


class RemoteScorer:
    """AI-probability scorer over a chat-completion API.

    The pseudo-random source and the sleep function are injected so the mock
    path is deterministic under test.
    """

    def __init__(
        self,
        config: ScorerConfig,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the scorer.

        Args:
            config: Scorer configuration.
            rng: Pseudo-random source for mock scores (seed it in tests).
            sleep: Delay function used by the mock path.
        """
        self.config = config
        self.rng = rng or random.Random()
        self._sleep = sleep
        self._prompt = ScorePrompt()
        self._client = httpx.Client(
            timeout=httpx.Timeout(
                connect=10.0,
                read=float(config.timeout_seconds),
                write=30.0,
                pool=10.0,
            ),
            headers={"Content-Type": "application/json"},
        )

    def score(
        self, text: str, credential: str | None, model: str | None = None
    ) -> ScoreResult:
        """Score text, falling back to a mock score instead of raising.

        Args:
            text: Full text to score.
            credential: Bearer credential; None or blank selects the mock path.
            model: Model identifier (defaults to the configured model).

        Returns:
            ScoreResult whose source tells real and mock scores apart.
        """
        if not credential or not credential.strip():
            score = self.mock_score(self.config.mock_delay_seconds)
            logger.info("No credential configured, used mock score")
            return ScoreResult(score=score, source=ScoreSource.MOCK_NO_CREDENTIAL)

        model = model or self.config.default_model
        try:
            score = self.score_via_chat(text, credential.strip(), model)
        except RemoteScorerError as e:
            logger.warning("Remote scoring failed (%s), using mock score", e)
            score = self.mock_score(self.config.fallback_delay_seconds)
            return ScoreResult(
                score=score, source=ScoreSource.MOCK_API_ERROR, model=model, error=e
            )
        return ScoreResult(score=score, source=ScoreSource.REMOTE, model=model)

    def mock_score(self, delay_seconds: float) -> float:
        """Uniform pseudo-random score in [0, 1) after a simulated delay."""
        if delay_seconds > 0:
            self._sleep(delay_seconds)
        return self.rng.random()

    def score_via_chat(self, text: str, credential: str, model: str) -> float:
        """Score text with one chat-completion request.

        Raises:
            RemoteScorerTransportError: Network failure or non-success status
            RemoteScorerParseError: Malformed body or missing fields
        """
        url = f"{self.config.api_url.rstrip('/')}/chat/completions"
        payload = {
            "model": model,
            "messages": self._prompt.build_messages(text),
            "response_format": {"type": "json_object"},
        }
        logger.debug("Requesting score from model %s (%d chars)", model, len(text))

        data = self._post_json(url, payload, credential)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise RemoteScorerParseError(f"Missing message content in response: {e}") from e

        parsed = parse_content_json(content)
        if "score" not in parsed:
            raise RemoteScorerParseError("Response JSON has no 'score' field")
        return normalize_score(parsed["score"])

    def score_via_classifier(self, text: str, credential: str) -> float:
        """Score text with the two-class classifier endpoint.

        Returns the probability of the AI-generated class, or 0.5 when the
        response carries no recognizable label.

        Raises:
            ModelLoadingTransient: Model is still loading (retry later)
            RemoteScorerTransportError: Network failure or non-success status
            RemoteScorerParseError: Response body is not JSON
        """
        result = self._post_json(
            self.config.classifier_url, {"inputs": text}, credential, detect_loading=True
        )

        if isinstance(result, dict) and result.get("error"):
            error = str(result["error"])
            if "loading" in error.lower():
                raise ModelLoadingTransient(error)
            raise RemoteScorerTransportError(error)

        if isinstance(result, list) and result:
            candidates = result[0] if isinstance(result[0], list) else result
            for item in candidates:
                if isinstance(item, dict) and item.get("label") in AI_LABELS:
                    return normalize_score(item.get("score"))

        return NEUTRAL_SCORE

    def _post_json(
        self, url: str, payload: dict, credential: str, detect_loading: bool = False
    ) -> Any:
        """POST payload with a bearer credential and decode the JSON reply.

        With detect_loading, an error status whose detail says the model is
        loading raises ModelLoadingTransient instead of a transport error.
        """
        headers = {"Authorization": f"Bearer {credential}"}
        try:
            response = self._client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise RemoteScorerTransportError(
                f"Request timed out after {self.config.timeout_seconds}s"
            ) from e
        except httpx.RequestError as e:
            raise RemoteScorerTransportError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            message = f"API Error: {response.status_code}"
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("error"):
                error = body["error"]
                detail = error.get("message") if isinstance(error, dict) else str(error)
                if detect_loading and detail and "loading" in detail.lower():
                    raise ModelLoadingTransient(detail)
                message = f"{message} ({detail})"
            raise RemoteScorerTransportError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise RemoteScorerParseError(f"Response body is not JSON: {e}") from e

    def close(self) -> None:
        """Close HTTP client."""
        self._client.close()

    def __enter__(self) -> RemoteScorer:
        """Enter context manager."""
        return self

    def __exit__(self, *args) -> None:
        """Exit context manager."""
        self.close()
