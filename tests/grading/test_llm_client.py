"""Tests for LLM client module."""

from unittest.mock import MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError, APIStatusError

from remaimber.llm.client import (
    LLMClient,
    LLMConfig,
    LLMConnectionError,
    LLMResponse,
    LLMResponseError,
    Message,
)

_REQUEST = httpx.Request("POST", "http://localhost:11434/v1/chat/completions")


class TestDataClasses:
    """Tests for LLMConfig, Message and LLMResponse."""

    def test_default_config(self):
        config = LLMConfig()
        assert config.base_url == "http://localhost:11434"
        assert config.temperature == 0.0
        assert config.timeout == 120

    def test_message_to_dict(self):
        assert Message(role="user", content="Hello").to_dict() == {"role": "user", "content": "Hello"}

    def test_response_total_tokens(self):
        response = LLMResponse(content="x", model="m", usage={"total_tokens": 30})
        assert response.total_tokens == 30
        assert LLMResponse(content="x", model="m").total_tokens == 0


class TestLLMClientMocked:
    """Tests for LLMClient using mocks (no real API calls)."""

    @pytest.fixture
    def mock_openai_client(self):
        """Create a mock OpenAI client."""
        with patch("remaimber.llm.client.OpenAI") as mock:
            mock_instance = MagicMock()
            mock.return_value = mock_instance
            yield mock_instance

    def _response(self, content):
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = content
        response.model = "test-model"
        response.usage.prompt_tokens = 10
        response.usage.completion_tokens = 20
        response.usage.total_tokens = 30
        return response

    def test_sdk_retries_disabled(self):
        with patch("remaimber.llm.client.OpenAI") as mock:
            LLMClient(LLMConfig(base_url="http://llm:8000", timeout=5))

        _, kwargs = mock.call_args
        assert kwargs["base_url"] == "http://llm:8000/v1"
        assert kwargs["max_retries"] == 0
        assert kwargs["timeout"] == 5

    def test_complete_success(self, mock_openai_client):
        mock_openai_client.chat.completions.create.return_value = self._response('{"covered": []}')

        content = LLMClient(LLMConfig(model="qwen3:8b")).complete("grade this", temperature=0)

        assert content == '{"covered": []}'
        _, kwargs = mock_openai_client.chat.completions.create.call_args
        assert kwargs["model"] == "qwen3:8b"
        assert kwargs["temperature"] == 0
        assert kwargs["messages"] == [{"role": "user", "content": "grade this"}]

    def test_chat_reports_usage(self, mock_openai_client):
        mock_openai_client.chat.completions.create.return_value = self._response("hi")

        response = LLMClient().chat([Message(role="user", content="Hello")])

        assert response.total_tokens == 30
        assert response.model == "test-model"

    def test_no_choices(self, mock_openai_client):
        response = MagicMock()
        response.choices = []
        mock_openai_client.chat.completions.create.return_value = response

        with pytest.raises(LLMResponseError, match="no choices"):
            LLMClient().complete("x")

    def test_empty_content(self, mock_openai_client):
        mock_openai_client.chat.completions.create.return_value = self._response("")

        with pytest.raises(LLMResponseError, match="empty content"):
            LLMClient().complete("x")

    def test_connection_error(self, mock_openai_client):
        mock_openai_client.chat.completions.create.side_effect = APIConnectionError(request=_REQUEST)

        with pytest.raises(LLMConnectionError):
            LLMClient().complete("x")

    def test_status_error(self, mock_openai_client):
        error = APIStatusError(
            "Internal Server Error",
            response=httpx.Response(500, request=_REQUEST),
            body=None,
        )
        mock_openai_client.chat.completions.create.side_effect = error

        with pytest.raises(LLMResponseError, match="500"):
            LLMClient().complete("x")
