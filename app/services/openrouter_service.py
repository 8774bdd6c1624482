"""OpenRouter service for instruction-following page extraction.

This service uses the OpenAI Python SDK configured to talk to OpenRouter's
OpenAI-compatible API.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")

# OpenRouter is OpenAI-compatible; use the SDK with this base URL.
OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")

# Optional app attribution headers (recommended by OpenRouter)
OPENROUTER_SITE_URL = os.getenv("OPENROUTER_SITE_URL", "")
OPENROUTER_APP_NAME = os.getenv("OPENROUTER_APP_NAME", "")

# Model configuration
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "anthropic/claude-3.5-sonnet")

MAX_PAGE_CHARS = 12000


class OpenRouterService:
    """Runs natural-language extraction instructions over page text via OpenRouter."""

    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        # Prefer explicit api_key, otherwise env var; strip to avoid hidden whitespace/newlines.
        self.api_key = (api_key or OPENROUTER_API_KEY or "").strip()
        self.model = model or OPENROUTER_MODEL

        # Optional attribution headers (recommended by OpenRouter)
        default_headers: dict[str, str] = {}
        if OPENROUTER_SITE_URL:
            default_headers["HTTP-Referer"] = OPENROUTER_SITE_URL
        if OPENROUTER_APP_NAME:
            default_headers["X-Title"] = OPENROUTER_APP_NAME

        self._client: AsyncOpenAI | None = None
        self._default_headers = default_headers

    @property
    def is_configured(self) -> bool:
        """Check if the API key is configured."""
        return bool(self.api_key)

    def _get_client(self) -> AsyncOpenAI:
        """Get or create SDK client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=OPENROUTER_BASE_URL,
                default_headers=self._default_headers or None,
            )
        return self._client

    async def close(self) -> None:
        """Close SDK client."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def _chat_completion(
        self,
        *,
        model: str,
        messages: list[dict[str, Any]],
        temperature: float = 0,
    ) -> str | None:
        if not self.api_key:
            logger.warning("OpenRouter API key not configured")
            return None

        try:
            client = self._get_client()
            resp = await client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
            )
            return (resp.choices[0].message.content or "").strip()
        except Exception as e:
            logger.exception("OpenRouter SDK request failed: %s", e)
            return None

    async def follow_instruction(self, content: str, instruction: str) -> str | None:
        """
        Apply an extraction instruction to page text.

        Args:
            content: Visible text of a fetched page
            instruction: Natural-language extraction directive

        Returns:
            The model's answer, or None if the call failed or returned nothing
        """
        prompt = self._build_instruction_prompt(content, instruction)
        answer = await self._chat_completion(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
        )
        return answer or None

    def _build_instruction_prompt(self, content: str, instruction: str) -> str:
        """Build the prompt for instruction-following extraction.

        Page text is untrusted; it is fenced and truncated.
        """
        safe_instruction = self._sanitize_prompt_input(instruction, max_length=2000)
        safe_content = self._sanitize_prompt_input(content, max_length=MAX_PAGE_CHARS)

        return f'''{safe_instruction}

RULES:
1. Use only the page text below. Do not add people who are not named in it.
2. Names MUST be real human names; titles like "CEO" or "Director" are NOT names.
3. Skip former employees, advisors to other companies and board members of other companies.
4. Output plain lines only, no commentary. If nobody qualifies, output nothing.

PAGE TEXT:
"""
{safe_content}
"""'''

    @staticmethod
    def _sanitize_prompt_input(value: str, max_length: int) -> str:
        """Collapse control characters and triple quotes, then truncate."""
        cleaned = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f]", " ", value or "")
        cleaned = cleaned.replace('"""', '"')
        return cleaned[:max_length]


_openrouter_service: OpenRouterService | None = None


def get_openrouter_service() -> OpenRouterService:
    """Get the singleton OpenRouterService instance."""
    global _openrouter_service
    if _openrouter_service is None:
        _openrouter_service = OpenRouterService()
    return _openrouter_service
