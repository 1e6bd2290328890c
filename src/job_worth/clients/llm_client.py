"""Async client for OpenAI-compatible chat-completion endpoints (Kimi by default)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from job_worth.config import DEFAULT_BASE_URL, DEFAULT_MODEL

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """The endpoint answered, but without usable message content."""


@dataclass
class LLMResponse:
    """Response from the LLM including usage metadata."""

    text: str
    input_tokens: int
    output_tokens: int


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code >= 500


class LLMClient:
    """Chat-completion client. One HTTP request per attempt, no retry by default."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 60.0,
        max_attempts: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("API key required. Set API_KEY env var or pass api_key.")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._transport = transport
        # Transport errors and 5xx only; 4xx fails on the first attempt.
        self._call_api = retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(min=1, max=10),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )(self._post)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    async def _post(self, payload: dict) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.endpoint, json=payload, headers=headers)
            response.raise_for_status()
            return response.json()

    async def generate(
        self,
        prompt: str,
        system: str = "",
        model: str = DEFAULT_MODEL,
        temperature: float = 0.3,
    ) -> LLMResponse:
        """Send a prompt and return the text response with usage."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        payload = {"model": model, "messages": messages, "temperature": temperature}

        logger.debug("LLM call: model=%s, prompt=%d chars", model, len(prompt))
        try:
            data = await self._call_api(payload)
        except Exception:
            logger.error("LLM call failed", exc_info=True)
            raise

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not isinstance(text, str) or not text:
            raise LLMError("Empty response from model")

        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        input_tokens = int(usage.get("prompt_tokens") or 0)
        output_tokens = int(usage.get("completion_tokens") or 0)
        logger.debug("LLM response: %d input, %d output tokens", input_tokens, output_tokens)
        return LLMResponse(text=text, input_tokens=input_tokens, output_tokens=output_tokens)
