"""LLM client for the grading oracle.

Talks to any OpenAI-compatible chat completions server (Ollama, LM Studio,
llama.cpp, OpenAI itself). Requests go to ``{base_url}/v1/chat/completions``.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from typing import Any, Literal

import structlog
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI, OpenAIError

from remaimber.config.app_config import LLMSettings

logger = structlog.get_logger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class LLMConfig:
    """Configuration for LLM client."""

    base_url: str = "http://localhost:11434"
    model: str = "qwen3:8b"
    temperature: float = 0.0
    timeout: int = 120
    api_key: str | None = None

    @classmethod
    def from_settings(cls, settings: LLMSettings) -> LLMConfig:
        """Build client configuration from application settings."""
        api_key = None
        if settings.api_key_env:
            api_key = os.environ.get(settings.api_key_env)

        return cls(
            base_url=settings.base_url,
            model=settings.model,
            temperature=settings.temperature,
            timeout=settings.timeout,
            api_key=api_key,
        )

    @property
    def api_base(self) -> str:
        """OpenAI SDK base URL (the SDK appends /chat/completions)."""
        return self.base_url.rstrip("/") + "/v1"


@dataclass
class Message:
    """A chat message."""

    role: Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for API call."""
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Response from LLM."""

    content: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)
    latency_ms: int = 0

    @property
    def total_tokens(self) -> int:
        """Get total token count."""
        return self.usage.get("total_tokens", 0)


class LLMError(Exception):
    """Error during LLM interaction."""

    pass


class LLMConnectionError(LLMError):
    """Error connecting to LLM server."""

    pass


class LLMResponseError(LLMError):
    """Error in LLM response (bad status, no choices, empty content)."""

    pass


# =============================================================================
# LLM CLIENT
# =============================================================================


class LLMClient:
    """Synchronous client for an OpenAI-compatible chat completions server.

    Safe to share between worker threads: the underlying OpenAI client is
    thread-safe and this wrapper keeps no per-request state.
    """

    def __init__(self, config: LLMConfig | None = None):
        self.config = config or LLMConfig()

        # Retries are owned by the grader, not the SDK
        self._client = OpenAI(
            base_url=self.config.api_base,
            api_key=self.config.api_key or "not-needed",
            timeout=self.config.timeout,
            max_retries=0,
        )

        logger.info(
            "llm_client_initialized",
            model=self.config.model,
            base_url=self.config.base_url,
            timeout=self.config.timeout,
        )

    def chat(
        self,
        messages: list[Message],
        temperature: float | None = None,
    ) -> LLMResponse:
        """Send chat completion request.

        Args:
            messages: List of messages in conversation
            temperature: Override default temperature

        Returns:
            LLMResponse with content and metadata

        Raises:
            LLMConnectionError: If cannot connect to server or it times out
            LLMResponseError: If status is not 2xx or the response is empty
        """
        if temperature is None:
            temperature = self.config.temperature

        request_kwargs: dict[str, Any] = {
            "model": self.config.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": temperature,
        }

        start_time = time.time()

        try:
            response = self._client.chat.completions.create(**request_kwargs)
        except (APIConnectionError, APITimeoutError) as e:
            raise LLMConnectionError(
                f"LLM request to {self.config.base_url} failed: {e}"
            ) from e
        except APIStatusError as e:
            raise LLMResponseError(f"LLM returned status {e.status_code}") from e
        except OpenAIError as e:
            raise LLMError(f"LLM call failed: {e}") from e

        latency_ms = int((time.time() - start_time) * 1000)

        if not response.choices:
            raise LLMResponseError("LLM returned no choices")

        content = response.choices[0].message.content or ""
        if not content:
            raise LLMResponseError("LLM returned empty content")

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        logger.debug(
            "llm_response",
            model=response.model,
            tokens=usage.get("total_tokens", 0),
            latency_ms=latency_ms,
        )

        return LLMResponse(
            content=content,
            model=response.model,
            usage=usage,
            latency_ms=latency_ms,
        )

    def complete(self, prompt: str, temperature: float | None = None) -> str:
        """Single user-message completion, returning the raw content."""
        response = self.chat([Message(role="user", content=prompt)], temperature=temperature)
        return response.content
