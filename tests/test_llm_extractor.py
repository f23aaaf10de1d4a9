"""Tests for the OpenAI contract analyzer."""

import json
from unittest.mock import MagicMock, Mock, patch

import pytest
from openai import (
    APIConnectionError,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    RateLimitError,
)
from tenacity import wait_none

from app.schemas.domain import AnalysisExtraction
from worker.llm_extractor import (
    LLM_MAX_CHARS,
    LLM_MAX_RETRIES,
    LLM_TIMEOUT_S,
    LLMAnalyzeError,
    _get_client,
    _truncate_text,
    analyze_contract_text,
)


@pytest.fixture(autouse=True)
def no_retry_wait():
    """Retries fire immediately."""
    with patch("worker.llm_extractor.wait_exponential", lambda **_: wait_none()):
        yield


def make_response_data(**overrides):
    data = {
        "vendor": "Acme Corp",
        "contract_title": "Master Services Agreement",
        "doc_type": "MSA",
        "effective_date": "2024-01-01",
        "termination_date": "2026-01-01",
        "confidence": {
            "vendor": 0.95,
            "contract_title": 0.9,
            "doc_type": 0.85,
            "effective_date": 0.9,
            "termination_date": 0.7,
        },
    }
    data.update(overrides)
    return data


def create_mock_response(content):
    mock_message = Mock()
    mock_message.content = content
    mock_choice = Mock()
    mock_choice.message = mock_message
    mock_response = Mock()
    mock_response.choices = [mock_choice]
    return mock_response


def create_mock_client(response_data=None, side_effect=None):
    mock_client = MagicMock()
    if side_effect:
        mock_client.chat.completions.create.side_effect = side_effect
    else:
        data = response_data if response_data is not None else make_response_data()
        mock_client.chat.completions.create.return_value = create_mock_response(json.dumps(data))
    return mock_client


def rate_limited():
    return RateLimitError(message="Rate limited", response=Mock(status_code=429), body=None)


class TestTruncateText:
    def test_short_text_unchanged(self):
        assert _truncate_text("Short text", 100) == "Short text"

    def test_cut_on_nearby_sentence_boundary(self):
        text = "First sentence. Second sentence. Third sentence."
        result = _truncate_text(text, 35)
        assert result == "First sentence. Second sentence.\n[content truncated]"

    def test_hard_cut_without_boundary(self):
        result = _truncate_text("x" * 100, 50)
        assert result == "x" * 50 + "\n[content truncated]"


class TestAnalyzeHappyPath:
    def test_returns_extraction(self):
        result = analyze_contract_text("Contract text", client=create_mock_client())

        assert isinstance(result, AnalysisExtraction)
        assert result.vendor == "Acme Corp"
        assert result.doc_type == "MSA"
        assert result.effective_date == "2024-01-01"
        assert result.confidence.vendor == 0.95

    def test_non_iso_dates_are_dropped(self):
        client = create_mock_client(make_response_data(effective_date="January 1, 2024"))

        result = analyze_contract_text("Contract text", client=client)

        assert result.effective_date is None
        assert result.confidence.effective_date == 0.1
        assert result.termination_date == "2026-01-01"

    def test_missing_confidence_defaults_low(self):
        data = make_response_data()
        del data["confidence"]

        result = analyze_contract_text("Contract text", client=create_mock_client(data))

        assert result.confidence.vendor == 0.1

    def test_request_carries_title_and_schema(self):
        client = create_mock_client()

        analyze_contract_text("Body of contract", document_title="Vendor MSA", client=client)

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][1]["content"].startswith("Document title: Vendor MSA")
        assert kwargs["response_format"]["type"] == "json_schema"
        assert kwargs["response_format"]["json_schema"]["name"] == "contract_analysis"

    def test_long_text_truncated(self):
        client = create_mock_client()

        analyze_contract_text("x" * (LLM_MAX_CHARS + 5000), client=client)

        user_content = client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert "[content truncated]" in user_content
        assert len(user_content) < LLM_MAX_CHARS + 200


class TestAnalyzeValidation:
    @pytest.mark.parametrize("text", ["", "   \n\t  ", None])
    def test_empty_text(self, text):
        with pytest.raises(LLMAnalyzeError, match="Empty text provided"):
            analyze_contract_text(text, client=create_mock_client())

    @pytest.mark.parametrize("content", [None, ""])
    def test_empty_response(self, content):
        client = MagicMock()
        client.chat.completions.create.return_value = create_mock_response(content)

        with pytest.raises(LLMAnalyzeError, match="Empty response"):
            analyze_contract_text("Contract text", client=client)

    def test_invalid_json(self):
        client = MagicMock()
        client.chat.completions.create.return_value = create_mock_response("not json {{")

        with pytest.raises(LLMAnalyzeError, match="Invalid JSON"):
            analyze_contract_text("Contract text", client=client)

    def test_schema_mismatch(self):
        client = create_mock_client(make_response_data(confidence={"vendor": 7}))

        with pytest.raises(LLMAnalyzeError, match="did not match schema"):
            analyze_contract_text("Contract text", client=client)


class TestAnalyzeAPIErrors:
    def test_authentication_error_not_retried(self):
        client = create_mock_client(
            side_effect=AuthenticationError(message="Invalid API key", response=Mock(status_code=401), body=None)
        )

        with pytest.raises(LLMAnalyzeError, match="Non-retryable API error"):
            analyze_contract_text("Contract text", client=client)
        assert client.chat.completions.create.call_count == 1

    def test_bad_request_not_retried(self):
        client = create_mock_client(
            side_effect=BadRequestError(message="Bad request", response=Mock(status_code=400), body=None)
        )

        with pytest.raises(LLMAnalyzeError, match="Non-retryable API error"):
            analyze_contract_text("Contract text", client=client)
        assert client.chat.completions.create.call_count == 1

    @pytest.mark.parametrize(
        "error",
        [
            rate_limited(),
            APIConnectionError(message="Connection failed", request=Mock()),
            InternalServerError(message="Server error", response=Mock(status_code=500), body=None),
        ],
    )
    def test_transient_errors_retried(self, error):
        client = create_mock_client(side_effect=error)

        with pytest.raises(LLMAnalyzeError, match="API error after"):
            analyze_contract_text("Contract text", client=client)
        assert client.chat.completions.create.call_count == LLM_MAX_RETRIES

    def test_retry_then_success(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = [
            rate_limited(),
            create_mock_response(json.dumps(make_response_data())),
        ]

        result = analyze_contract_text("Contract text", client=client)

        assert result.vendor == "Acme Corp"
        assert client.chat.completions.create.call_count == 2

    def test_unexpected_error_wrapped(self):
        client = create_mock_client(side_effect=KeyError("choices"))

        with pytest.raises(LLMAnalyzeError, match="Unexpected error"):
            analyze_contract_text("Contract text", client=client)


class TestClientInjection:
    @patch("worker.llm_extractor._get_client")
    def test_default_client_used(self, mock_get_client):
        mock_get_client.return_value = create_mock_client()

        analyze_contract_text("Contract text")

        mock_get_client.assert_called_once()

    @patch("worker.llm_extractor._client", None)
    @patch("worker.llm_extractor.OpenAI")
    def test_client_created_lazily(self, mock_openai_class):
        result = _get_client()

        mock_openai_class.assert_called_once_with(timeout=LLM_TIMEOUT_S)
        assert result is mock_openai_class.return_value
