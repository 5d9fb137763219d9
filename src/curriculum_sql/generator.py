"""Utilities for calling the Gemini backend for generation and rewrites."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from curriculum_sql.prompting import (
    build_generation_prompt,
    build_sql_refinement_prompt,
    build_text_refinement_prompt,
)

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_KEY_FILE = Path(".api_keys/Gemini.md")
DEFAULT_MODEL_NAME = "gemini-2.5-pro"


def resolve_gemini_api_key(key_file: Path = DEFAULT_GEMINI_KEY_FILE) -> str | None:
    """Resolve the Gemini API key from environment or fallback file.

    Resolution order:
    1. ``GEMINI_API_KEY`` environment variable.
    2. ``key_file`` plaintext contents.

    Args:
        key_file: Optional fallback file containing only the API key.

    Returns:
        The non-empty API key when found, otherwise ``None``.
    """
    api_key = (os.getenv("GEMINI_API_KEY") or "").strip()
    if api_key:
        return api_key

    if key_file.exists():
        fallback_key = key_file.read_text(encoding="utf-8").strip()
        if fallback_key:
            return fallback_key

    return None


class GeminiGenerator:
    """Thin async adapter around Google GenAI content generation.

    The three coroutine methods match the collaborator shapes expected by
    :class:`curriculum_sql.orchestrator.GenerationSession`.
    """

    def __init__(self, model_name: str = DEFAULT_MODEL_NAME):
        """Create a generator bound to a model name."""
        self.model_name = model_name

    def _client(self) -> Any:
        api_key = resolve_gemini_api_key()
        if not api_key:
            raise RuntimeError("Missing GEMINI_API_KEY (set env var or .api_keys/Gemini.md)")

        from google import genai

        return genai.Client(api_key=api_key)

    async def stream_sql(self, curriculum: str) -> AsyncIterator[str]:
        """Stream the generated script body for a curriculum text.

        Args:
            curriculum: Source curriculum text.

        Yields:
            Non-empty text fragments as they arrive.

        Raises:
            ValueError: If the curriculum is blank.
            RuntimeError: If credentials are missing.
        """
        if not isinstance(curriculum, str) or not curriculum.strip():
            raise ValueError("Curriculum text must be a non-empty string.")

        client = self._client()
        logger.info("Streaming SQL generation from %s", self.model_name)
        stream = await client.aio.models.generate_content_stream(
            model=self.model_name,
            contents=build_generation_prompt(curriculum),
        )
        async for chunk in stream:
            if chunk.text:
                yield chunk.text

    async def refine_sql(self, current_sql: str, user_request: str) -> str:
        """Rewrite a script body according to a user request."""
        return await self._generate_text(build_sql_refinement_prompt(current_sql, user_request))

    async def refine_text(self, current_text: str, user_request: str) -> str:
        """Rewrite curriculum text according to a user request."""
        return await self._generate_text(build_text_refinement_prompt(current_text, user_request))

    async def _generate_text(self, prompt: str) -> str:
        client = self._client()
        response = await client.aio.models.generate_content(
            model=self.model_name,
            contents=prompt,
        )
        text = (response.text or "").strip()
        if not text:
            raise RuntimeError("Gemini returned an empty response")
        return text
