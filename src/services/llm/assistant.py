"""Async facade over the LLM for note titles, readability and tags.

Providers are synchronous httpx clients; every call runs in a worker
thread under a timeout so one slow completion never blocks other users'
events.
"""

import asyncio
import logging
from typing import Any, Optional

from src.lib.config import Settings, get_settings
from src.lib.exceptions import LLMError
from src.lib.prompts import PromptLoader, get_prompt_loader
from src.models.tags import TagSplit
from src.services.llm import create_provider
from src.services.llm.base import LLMProvider
from src.services.session.tags import coerce_tag_split

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Voice note"
MAX_TITLE_LENGTH = 100


class NoteAssistant:
    """
    LLM-backed helpers used by the orchestrator.

    Title and readability calls degrade to safe defaults; tag extraction
    raises LLMError so the tag workflow can keep its state and report it.
    """

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        timeout_seconds: Optional[float] = None,
        prompts: Optional[PromptLoader] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self.timeout_seconds = timeout_seconds or self._settings.timeout
        self._provider = provider or create_provider(self._settings)
        self._prompts = prompts or get_prompt_loader()

    async def generate_title(self, content: str) -> str:
        """Short title for a note; DEFAULT_TITLE when the LLM fails."""
        if not content.strip():
            return DEFAULT_TITLE

        try:
            title = await self._complete(content, system=self._prompts.render("note_title"))
        except LLMError as e:
            logger.warning(f"Title generation failed, using default: {e}")
            return DEFAULT_TITLE

        title = title.strip().strip("\"'«»").strip()
        return title[:MAX_TITLE_LENGTH] or DEFAULT_TITLE

    async def improve_readability(self, content: str) -> str:
        """Cleaned-up transcript; the input unchanged when the LLM fails."""
        if not content.strip():
            return content

        try:
            return await self._complete(content, system=self._prompts.render("readability"))
        except LLMError as e:
            logger.warning(f"Readability pass failed, keeping raw transcript: {e}")
            return content

    async def recommend_tags(self, content: str, available_tags: list[str]) -> TagSplit:
        """Suggested existing/new split; empty when the LLM fails."""
        system = self._prompts.render(
            "tag_recommendation", available_tags=self._format_tags(available_tags)
        )
        try:
            raw = await self._complete(content, system=system, json_mode=True)
        except LLMError as e:
            logger.warning(f"Tag recommendation failed: {e}")
            return TagSplit()
        return coerce_tag_split(raw, available_tags)

    async def extract_tags(self, utterance: str, available_tags: list[str]) -> Any:
        """
        Classify a free-form tag choice.

        Returns:
            Raw classifier output; validated by the tag workflow

        Raises:
            LLMError: If the call failed
        """
        system = self._prompts.render(
            "tag_extraction", available_tags=self._format_tags(available_tags)
        )
        return await self._complete(utterance, system=system, json_mode=True)

    async def _complete(self, prompt: str, system: Optional[str], json_mode: bool = False) -> str:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._provider.complete, prompt, system, json_mode),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise LLMError(
                f"Request timed out after {self.timeout_seconds}s",
                provider=self._provider.provider_name,
                original_error=e,
            )

    @staticmethod
    def _format_tags(tags: list[str]) -> str:
        return ", ".join(tags) if tags else "no tags yet"
