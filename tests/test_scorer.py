"""Tests for the remote scorer and its prompt."""

from __future__ import annotations

import json
import random
from unittest.mock import MagicMock, patch

import httpx
import pytest

from pym_write.config import ScorerConfig
from pym_write.errors import (
    ModelLoadingTransient,
    RemoteScorerParseError,
    RemoteScorerTransportError,
)
from pym_write.scorer import RemoteScorer, ScorePrompt, ScoreSource
from pym_write.scorer.prompts import PROMPT_VERSION
from pym_write.scorer.service import normalize_score, parse_content_json


def _chat_response(content: str, status: int = 200) -> httpx.Response:
    return httpx.Response(status, json={"choices": [{"message": {"content": content}}]})


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def mock_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def scorer(scorer_config: ScorerConfig, sleeps: list[float], mock_client: MagicMock):
    with patch("pym_write.scorer.service.httpx.Client", return_value=mock_client):
        yield RemoteScorer(scorer_config, rng=random.Random(7), sleep=sleeps.append)


class TestScorePrompt:
    """Tests for ScorePrompt."""

    def test_prompt_version_set(self) -> None:
        """Prompt should carry the current prompt version."""
        assert ScorePrompt().version == PROMPT_VERSION

    def test_system_prompt_demands_score_json(self) -> None:
        """System prompt should ask for a JSON object with a score."""
        prompt = ScorePrompt()
        assert "JSON" in prompt.system_prompt
        assert "'score'" in prompt.system_prompt

    def test_build_messages_sends_text_unmodified(self) -> None:
        """User message should be the text exactly as given."""
        text = "  exact text\nwith lines  "
        messages = ScorePrompt().build_messages(text)

        assert [m["role"] for m in messages] == ["system", "user"]
        assert messages[1]["content"] == text


class TestParsing:
    """Tests for score normalization and nested JSON parsing."""

    def test_normalize_accepts_numeric_strings(self) -> None:
        """Numeric strings should convert to floats."""
        assert normalize_score("0.25") == 0.25

    def test_normalize_clamps(self) -> None:
        """Out-of-range scores should clamp into [0, 1]."""
        assert normalize_score(1.7) == 1.0
        assert normalize_score(-3) == 0.0

    @pytest.mark.parametrize("value", [None, "high", True, float("nan"), {"a": 1}])
    def test_normalize_rejects_non_numbers(self, value) -> None:
        """Non-numeric and non-finite scores should be parse errors."""
        with pytest.raises(RemoteScorerParseError):
            normalize_score(value)

    def test_parse_plain_json(self) -> None:
        """A bare JSON object should parse."""
        assert parse_content_json('{"score": 0.8}') == {"score": 0.8}

    def test_parse_allows_surrounding_whitespace(self) -> None:
        """Whitespace around the object is still valid JSON."""
        assert parse_content_json('\n  {"score": 0.2}  \n') == {"score": 0.2}

    def test_parse_code_fenced_json(self) -> None:
        """Code fences around the object should make the content malformed."""
        with pytest.raises(RemoteScorerParseError):
            parse_content_json('```json\n{"score": 0.3}\n```')

    def test_parse_json_inside_prose(self) -> None:
        """Prose around the object should make the content malformed."""
        with pytest.raises(RemoteScorerParseError):
            parse_content_json('Result: {"score": 0.6} done')

    @pytest.mark.parametrize("content", ["", "   ", "no json here", "[0.5]", None])
    def test_parse_rejects_malformed(self, content) -> None:
        """Empty, non-JSON and non-object content should be parse errors."""
        with pytest.raises(RemoteScorerParseError):
            parse_content_json(content)


class TestChatBackend:
    """Tests for score_via_chat."""

    def test_success_extracts_nested_score(self, scorer, mock_client) -> None:
        """Score should come from the JSON nested in the message content."""
        mock_client.post.return_value = _chat_response(json.dumps({"score": 0.83}))

        assert scorer.score_via_chat("text", "key", "test/model-a") == 0.83

    def test_request_shape(self, scorer, mock_client) -> None:
        """Request should carry bearer auth, model, messages and JSON mode."""
        mock_client.post.return_value = _chat_response('{"score": 0.1}')

        scorer.score_via_chat("full text", "secret-key", "test/model-b")

        args, kwargs = mock_client.post.call_args
        assert args[0] == "https://llm.test/api/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer secret-key"
        body = kwargs["json"]
        assert body["model"] == "test/model-b"
        assert body["messages"][1] == {"role": "user", "content": "full text"}
        assert body["response_format"] == {"type": "json_object"}

    def test_http_error_is_transport_error(self, scorer, mock_client) -> None:
        """Non-success status should raise a transport error with the status."""
        mock_client.post.return_value = httpx.Response(
            401, json={"error": {"message": "No auth credentials found"}}
        )

        with pytest.raises(RemoteScorerTransportError) as exc:
            scorer.score_via_chat("text", "bad", "m")
        assert exc.value.status_code == 401

    def test_loading_status_is_transport_error(self, scorer, mock_client) -> None:
        """A loading message from the chat API is an ordinary transport error."""
        mock_client.post.return_value = httpx.Response(
            503, json={"error": {"message": "Model is currently loading"}}
        )

        with pytest.raises(RemoteScorerTransportError) as exc:
            scorer.score_via_chat("text", "key", "m")
        assert not isinstance(exc.value, ModelLoadingTransient)
        assert exc.value.status_code == 503

    def test_network_error_is_transport_error(self, scorer, mock_client) -> None:
        """Connection failures should raise a transport error."""
        mock_client.post.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(RemoteScorerTransportError):
            scorer.score_via_chat("text", "key", "m")

    def test_timeout_is_transport_error(self, scorer, mock_client) -> None:
        """Timeouts should raise a transport error."""
        mock_client.post.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(RemoteScorerTransportError):
            scorer.score_via_chat("text", "key", "m")

    def test_missing_choices_is_parse_error(self, scorer, mock_client) -> None:
        """A body without choices should be a parse error."""
        mock_client.post.return_value = httpx.Response(200, json={"id": "x"})

        with pytest.raises(RemoteScorerParseError):
            scorer.score_via_chat("text", "key", "m")

    def test_non_json_body_is_parse_error(self, scorer, mock_client) -> None:
        """A non-JSON body should be a parse error."""
        mock_client.post.return_value = httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(RemoteScorerParseError):
            scorer.score_via_chat("text", "key", "m")

    def test_missing_score_field_is_parse_error(self, scorer, mock_client) -> None:
        """Nested JSON without a score field should be a parse error."""
        mock_client.post.return_value = _chat_response('{"probability": 0.4}')

        with pytest.raises(RemoteScorerParseError):
            scorer.score_via_chat("text", "key", "m")


class TestClassifierBackend:
    """Tests for score_via_classifier."""

    def test_nested_label_list(self, scorer, mock_client) -> None:
        """Fake label score should be picked from a nested label list."""
        mock_client.post.return_value = httpx.Response(
            200, json=[[{"label": "Real", "score": 0.1}, {"label": "Fake", "score": 0.9}]]
        )

        assert scorer.score_via_classifier("text", "key") == 0.9
        args, kwargs = mock_client.post.call_args
        assert args[0] == "https://classifier.test/models/detector"
        assert kwargs["json"] == {"inputs": "text"}

    def test_generic_labels(self, scorer, mock_client) -> None:
        """LABEL_1 should count as the AI-generated class."""
        mock_client.post.return_value = httpx.Response(
            200, json=[{"label": "LABEL_0", "score": 0.7}, {"label": "LABEL_1", "score": 0.3}]
        )

        assert scorer.score_via_classifier("text", "key") == 0.3

    def test_unknown_labels_default_to_neutral(self, scorer, mock_client) -> None:
        """Unrecognized labels should give the neutral score."""
        mock_client.post.return_value = httpx.Response(
            200, json=[[{"label": "POSITIVE", "score": 0.99}]]
        )

        assert scorer.score_via_classifier("text", "key") == 0.5

    def test_empty_response_defaults_to_neutral(self, scorer, mock_client) -> None:
        """An empty list should give the neutral score."""
        mock_client.post.return_value = httpx.Response(200, json=[])

        assert scorer.score_via_classifier("text", "key") == 0.5

    def test_loading_error_body(self, scorer, mock_client) -> None:
        """A loading error in the body should raise ModelLoadingTransient."""
        mock_client.post.return_value = httpx.Response(
            200, json={"error": "Model roberta is currently loading", "estimated_time": 20.0}
        )

        with pytest.raises(ModelLoadingTransient):
            scorer.score_via_classifier("text", "key")

    def test_loading_error_status(self, scorer, mock_client) -> None:
        """A loading error with an error status should raise ModelLoadingTransient."""
        mock_client.post.return_value = httpx.Response(
            503, json={"error": "Model roberta is currently loading"}
        )

        with pytest.raises(ModelLoadingTransient):
            scorer.score_via_classifier("text", "key")

    def test_other_error_body(self, scorer, mock_client) -> None:
        """Other errors in the body should raise a transport error."""
        mock_client.post.return_value = httpx.Response(200, json={"error": "Invalid token"})

        with pytest.raises(RemoteScorerTransportError):
            scorer.score_via_classifier("text", "key")


class TestSoftErrorScore:
    """Tests for score(), which never raises scorer errors."""

    def test_no_credential_uses_mock(self, scorer, mock_client, sleeps) -> None:
        """Missing credential should use the mock path with the long delay."""
        result = scorer.score("text", None)

        assert result.source is ScoreSource.MOCK_NO_CREDENTIAL
        assert 0.0 <= result.score < 1.0
        assert sleeps == [1.5]
        mock_client.post.assert_not_called()

    def test_blank_credential_uses_mock(self, scorer, mock_client) -> None:
        """Whitespace credential should count as missing."""
        result = scorer.score("text", "   ")

        assert result.source is ScoreSource.MOCK_NO_CREDENTIAL
        mock_client.post.assert_not_called()

    def test_mock_is_deterministic_with_seed(self, scorer_config) -> None:
        """Seeded random source should give a reproducible mock score."""
        expected = random.Random(7).random()
        with patch("pym_write.scorer.service.httpx.Client"):
            scorer = RemoteScorer(scorer_config, rng=random.Random(7), sleep=lambda s: None)

        assert scorer.score("text", None).score == expected

    def test_remote_success(self, scorer, mock_client, sleeps) -> None:
        """Valid reply should give a remote score without delay."""
        mock_client.post.return_value = _chat_response('{"score": 0.66}')

        result = scorer.score("text", "key", "test/model-b")

        assert result.source is ScoreSource.REMOTE
        assert result.score == 0.66
        assert result.model == "test/model-b"
        assert sleeps == []

    def test_remote_uses_default_model(self, scorer, mock_client) -> None:
        """Without a model argument the configured model should be sent."""
        mock_client.post.return_value = _chat_response('{"score": 0.66}')

        scorer.score("text", "key")

        assert mock_client.post.call_args.kwargs["json"]["model"] == "test/model-a"

    def test_api_error_falls_back_to_mock(self, scorer, mock_client, sleeps) -> None:
        """Transport errors should fall back to mock with the short delay."""
        mock_client.post.return_value = httpx.Response(500, json={"error": "boom"})

        result = scorer.score("text", "key")

        assert result.source is ScoreSource.MOCK_API_ERROR
        assert result.source.is_mock
        assert isinstance(result.error, RemoteScorerTransportError)
        assert 0.0 <= result.score < 1.0
        assert sleeps == [1.0]

    def test_malformed_nesting_falls_back_to_mock(self, scorer, mock_client) -> None:
        """Non-JSON content should fall back to mock."""
        mock_client.post.return_value = _chat_response("not json at all")

        result = scorer.score("text", "key")

        assert result.source is ScoreSource.MOCK_API_ERROR
        assert isinstance(result.error, RemoteScorerParseError)

    def test_prose_wrapped_json_falls_back_to_mock(self, scorer, mock_client, sleeps) -> None:
        """JSON wrapped in prose should fall back to mock, not count as remote."""
        mock_client.post.return_value = _chat_response(
            'Sure! Here it is: {"score": 0.93} hope that helps'
        )

        result = scorer.score("text", "key")

        assert result.source is ScoreSource.MOCK_API_ERROR
        assert isinstance(result.error, RemoteScorerParseError)
        assert result.score != 0.93
        assert sleeps == [1.0]

    def test_to_dict(self, scorer, mock_client) -> None:
        """to_dict should expose the source value and no error."""
        data = scorer.score("text", None).to_dict()

        assert data["source"] == "mock_no_credential"
        assert data["error"] is None

    def test_context_manager_closes_client(self, scorer_config, mock_client) -> None:
        """Leaving the context manager should close the HTTP client."""
        with patch("pym_write.scorer.service.httpx.Client", return_value=mock_client):
            with RemoteScorer(scorer_config):
                pass

        mock_client.close.assert_called_once()
