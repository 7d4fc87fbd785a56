"""
LLM client abstraction for intent extraction.

Provides an async interface for LLM calls with:
- Structured logging of requests/responses
- Timeout handling (a timeout is a hard failure, never retried)
- Usage tracking (tokens)

Supported providers:
- anthropic: Claude models via the Messages API
- openai: OpenAI chat completions (and any OpenAI-compatible endpoint)
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
import structlog

from textarr.core.config import settings
from textarr.core.exceptions import LLMRateLimitError, LLMTimeoutError

log = structlog.get_logger(__name__)


# =============================================================================
# Default configuration per provider
# =============================================================================

ANTHROPIC_DEFAULTS = dict(
    model="claude-haiku-4-5",
    temperature=0.2,
    max_tokens=512,
)

OPENAI_DEFAULTS = dict(
    model="gpt-4o-mini",
    temperature=0.2,
    max_tokens=512,
)

DEFAULTS_MAP: Dict[str, Dict[str, Any]] = {
    "anthropic": ANTHROPIC_DEFAULTS,
    "openai": OPENAI_DEFAULTS,
}


# =============================================================================
# Response and Base Classes
# =============================================================================


@dataclass
class LLMResponse:
    """Standardized LLM response."""

    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    latency_ms: float = 0.0
    raw_response: Optional[Dict[str, Any]] = None


class LLMClient(ABC):
    """Abstract base for LLM providers."""

    provider_name: str = ""

    def __init__(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
        api_key: str,
        base_url: str,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.api_key = api_key
        self.base_url = base_url

        log.info(
            "llm_client_initialized",
            provider=self.provider_name,
            model=self.model,
            timeout=self.timeout,
        )

    @abstractmethod
    def _build_request(
        self, prompt: str, system: Optional[str], temperature: float, max_tokens: int
    ) -> tuple[str, Dict[str, str], Dict[str, Any]]:
        """Return (url, headers, payload) for one completion call."""
        pass

    @abstractmethod
    def _parse_response(self, data: Dict[str, Any]) -> tuple[str, Dict[str, int]]:
        """Return (content, usage) from the provider's JSON response."""
        pass

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            prompt: User message/prompt
            system: Optional system prompt
            temperature: Sampling temperature (defaults to init value)
            max_tokens: Maximum tokens in response (defaults to init value)

        Returns:
            LLMResponse with content and usage stats

        Raises:
            LLMTimeoutError: The call timed out
            LLMRateLimitError: The provider returned 429
            httpx.HTTPStatusError: On other API errors
        """
        if temperature is None:
            temperature = self.temperature
        if max_tokens is None:
            max_tokens = self.max_tokens

        url, headers, payload = self._build_request(prompt, system, temperature, max_tokens)
        start = time.perf_counter()

        log.debug(
            "llm_call_start",
            provider=self.provider_name,
            model=self.model,
            prompt_length=len(prompt),
            system_length=len(system) if system else 0,
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, headers=headers, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            log.warning(
                "llm_timeout", provider=self.provider_name, timeout_seconds=self.timeout
            )
            raise LLMTimeoutError(
                f"LLM call timed out (timeout={self.timeout}s)"
            ) from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code == 429:
                log.warning("llm_rate_limit", provider=self.provider_name)
                raise LLMRateLimitError("LLM rate limit exceeded") from e
            log.error("llm_http_error", provider=self.provider_name, status_code=status_code)
            raise

        latency_ms = (time.perf_counter() - start) * 1000
        content, usage = self._parse_response(data)

        log.info(
            "llm_call_complete",
            provider=self.provider_name,
            model=self.model,
            latency_ms=round(latency_ms, 2),
            input_tokens=usage["input_tokens"],
            output_tokens=usage["output_tokens"],
        )

        return LLMResponse(
            content=content,
            model=data.get("model", self.model),
            usage=usage,
            latency_ms=latency_ms,
            raw_response=data,
        )


# =============================================================================
# Anthropic Client
# =============================================================================


class AnthropicClient(LLMClient):
    """Anthropic Claude API client (Messages API)."""

    provider_name = "anthropic"

    def __init__(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
        api_key: Optional[str] = None,
    ):
        api_key = api_key or settings.anthropic_api_key
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY not configured. Set it in .env.")
        super().__init__(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            api_key=api_key,
            base_url="https://api.anthropic.com/v1",
        )

    def _build_request(self, prompt, system, temperature, max_tokens):
        headers = {
            "x-api-key": self.api_key,
            "content-type": "application/json",
            "anthropic-version": "2023-06-01",
        }
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        if system:
            payload["system"] = system
        return f"{self.base_url}/messages", headers, payload

    def _parse_response(self, data):
        content = ""
        if data.get("content"):
            content = data["content"][0].get("text", "")
        usage = {
            "input_tokens": data.get("usage", {}).get("input_tokens", 0),
            "output_tokens": data.get("usage", {}).get("output_tokens", 0),
        }
        return content, usage


# =============================================================================
# OpenAI Client
# =============================================================================


class OpenAIClient(LLMClient):
    """OpenAI chat completions client; works with OpenAI-compatible APIs."""

    provider_name = "openai"

    def __init__(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1",
    ):
        api_key = api_key or settings.openai_api_key
        if not api_key:
            raise ValueError("OPENAI_API_KEY not configured. Set it in .env.")
        super().__init__(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            api_key=api_key,
            base_url=base_url,
        )

    def _build_request(self, prompt, system, temperature, max_tokens):
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }
        return f"{self.base_url}/chat/completions", headers, payload

    def _parse_response(self, data):
        content = ""
        if data.get("choices"):
            content = data["choices"][0].get("message", {}).get("content", "") or ""
        usage = {
            "input_tokens": data.get("usage", {}).get("prompt_tokens", 0),
            "output_tokens": data.get("usage", {}).get("completion_tokens", 0),
        }
        return content, usage


# =============================================================================
# Client Factory
# =============================================================================


def get_llm_client(provider: Optional[str] = None) -> LLMClient:
    """
    Factory for the intent-extraction LLM client.

    Uses the provider's defaults, with LLM_PROVIDER / LLM_MODEL overrides
    from settings.

    Raises:
        ValueError: If unknown provider configured or API key missing
    """
    provider = provider or settings.llm_provider
    if provider not in DEFAULTS_MAP:
        raise ValueError(
            f"Unknown LLM provider '{provider}'. "
            f"Supported providers: {', '.join(DEFAULTS_MAP)}"
        )

    defaults = DEFAULTS_MAP[provider]
    kwargs = dict(
        model=settings.llm_model or defaults["model"],
        temperature=defaults["temperature"],
        max_tokens=defaults["max_tokens"],
        timeout=settings.llm_timeout_seconds,
    )

    if provider == "anthropic":
        return AnthropicClient(**kwargs)
    return OpenAIClient(**kwargs)
