"""LLM Provider Protocol."""

from typing import Optional, Protocol, runtime_checkable

from src.lib.exceptions import LLMError


@runtime_checkable
class LLMProvider(Protocol):
    """
    Contract for LLM provider implementations.

    Providers are synchronous; async callers run them in a worker thread
    (see NoteAssistant).

    Example:
        >>> provider = get_provider("openai")
        >>> title = provider.complete(transcript, system=title_prompt)
    """

    @property
    def provider_name(self) -> str:
        """
        Return the canonical name of this provider.

        Contract:
            - MUST return a non-empty, lowercase string
            - MUST be consistent across calls
        """
        ...

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        json_mode: bool = False,
    ) -> str:
        """
        Send a prompt and return the completion text.

        Args:
            prompt: User message. MUST be non-empty.
            system: Optional system instructions
            json_mode: Ask the model for a single JSON object

        Returns:
            str: The completion text, never empty

        Raises:
            LLMError: On network errors, rate limits, invalid responses,
                     authentication errors or timeout.

        Contract:
            - MUST raise LLMError on any failure (never return None or empty)
            - MUST NOT modify the prompt
            - json_mode output is NOT guaranteed to parse; callers validate it
        """
        ...


__all__ = ["LLMProvider", "LLMError"]
