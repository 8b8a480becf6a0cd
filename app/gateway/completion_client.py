"""Completion Client: one remote chat-completion call per attempt.

Translates a job title into a prompt, sends it to the Mistral chat
completions endpoint and hands the reply text to the normalizer.

Error classification:
  - HTTP 429, or any failure mentioning "rate limit" → RateLimitedError
  - Everything else (HTTP errors, transport errors, timeouts) → UpstreamError
  - Unparseable replies are not errors; they resolve to fallback skills
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod

import httpx

from app.core.config import settings
from app.gateway.normalizer import parse_skills

logger = logging.getLogger(__name__)

RATE_LIMIT_MARKER = "rate limit"

_PROMPT_TEMPLATE = (
    'Generate a list of 8-12 relevant professional skills for someone with the job title "{title}".\n'
    "Include both technical and soft skills that would be valuable for this role.\n"
    "Format the response as a JSON array of strings containing only the skill names.\n"
    'For example: ["JavaScript", "React", "Problem Solving"]'
)


class CompletionError(Exception):
    """Raised when a completion attempt fails."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(CompletionError):
    """Upstream throttled the request; the caller may retry later."""


class UpstreamError(CompletionError):
    """Any other upstream failure; not retried."""


def is_rate_limit_message(message: str) -> bool:
    return RATE_LIMIT_MARKER in message.lower()


def classify_error(message: str, status_code: int = 0) -> CompletionError:
    """Map a failure description to the matching CompletionError subclass."""
    if status_code == 429 or is_rate_limit_message(message):
        return RateLimitedError(message, status_code=status_code)
    return UpstreamError(message, status_code=status_code)


def build_prompt(title: str) -> str:
    return _PROMPT_TEMPLATE.format(title=title)


class BaseCompletionClient(ABC):
    """Base class for completion clients used by the scheduler."""

    @abstractmethod
    async def complete(self, title: str) -> list[str]:
        """Return a skill list for the title or raise CompletionError."""
        ...


class MistralCompletionClient(BaseCompletionClient):
    """Mistral Chat Completions client."""

    default_model = "mistral-large-latest"
    api_url = "https://api.mistral.ai/v1/chat/completions"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        api_url: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 60.0,
    ):
        self.api_key = api_key
        self.model = model or self.default_model
        self.api_url = api_url or self.api_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> MistralCompletionClient:
        return cls(
            api_key=settings.mistral_api_key,
            model=settings.mistral_model,
            api_url=settings.mistral_api_url,
            temperature=settings.completion_temperature,
            max_tokens=settings.completion_max_tokens,
            timeout=settings.completion_timeout_seconds,
        )

    async def complete(self, title: str) -> list[str]:
        if not self.api_key:
            raise UpstreamError("No API key configured for Mistral")

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": build_prompt(title)}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        start = time.monotonic()

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                # httpx timeouts are per phase; bound the whole call as well
                resp = await asyncio.wait_for(
                    client.post(
                        self.api_url,
                        json=payload,
                        headers={
                            "Authorization": f"Bearer {self.api_key}",
                            "Content-Type": "application/json",
                        },
                    ),
                    timeout=self.timeout,
                )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            raise UpstreamError(f"Timeout after {self.timeout}s")
        except httpx.HTTPError as e:
            raise classify_error(f"Mistral request failed: {e}")

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if resp.status_code == 429:
            raise RateLimitedError("Rate limit exceeded by Mistral", status_code=429)

        if resp.status_code >= 400:
            raise classify_error(
                f"Mistral API error {resp.status_code}: {resp.text[:500]}",
                status_code=resp.status_code,
            )

        logger.debug("Mistral replied in %dms for %r", elapsed_ms, title)
        return parse_skills(self._extract_content(resp), title)

    @staticmethod
    def _extract_content(resp: httpx.Response) -> str | None:
        """Pull the first choice's message text; None when the body is malformed."""
        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            logger.warning("Malformed Mistral response body")
            return None

        # Some models return a list of typed content chunks
        if isinstance(content, list):
            content = "".join(
                chunk.get("text", "") for chunk in content if isinstance(chunk, dict)
            )
        return content if isinstance(content, str) else None
