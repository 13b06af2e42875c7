"""OpenAI LLM Provider implementation using httpx."""

import logging
import os
from typing import Optional

import httpx

from src.lib.exceptions import LLMError

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """
    OpenAI LLM provider using the Chat Completions API.

    Implements the LLMProvider Protocol. Other OpenAI-compatible services
    subclass it and override the class defaults.

    Environment Variables:
        OPENAI_API_KEY: Required. Your OpenAI API key.
        OPENAI_BASE_URL: Optional. API base URL (default: https://api.openai.com/v1).

    Example:
        >>> provider = OpenAIProvider()
        >>> response = provider.complete("Hello, world!")
    """

    PROVIDER_NAME = "openai"
    API_KEY_ENV = "OPENAI_API_KEY"
    BASE_URL_ENV = "OPENAI_BASE_URL"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_TIMEOUT = 60

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: int | None = None,
        base_url: str | None = None,
    ):
        """
        Initialize the provider.

        Args:
            api_key: API key (or from the provider's env var)
            model: Model to use (default: DEFAULT_MODEL)
            timeout: Request timeout in seconds (default: 60)
            base_url: API base URL
        """
        self._api_key = api_key or os.environ.get(self.API_KEY_ENV)
        self._model = model or self.DEFAULT_MODEL
        self._timeout = timeout or self.DEFAULT_TIMEOUT
        self._base_url = base_url or os.environ.get(self.BASE_URL_ENV, self.DEFAULT_BASE_URL)
        self._api_url = f"{self._base_url.rstrip('/')}/chat/completions"

    @property
    def provider_name(self) -> str:
        """Return the provider identifier."""
        return self.PROVIDER_NAME

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        json_mode: bool = False,
    ) -> str:
        """
        Send a prompt and return the completion.

        Raises:
            LLMError: On any failure
        """
        if not prompt or not prompt.strip():
            raise LLMError("Prompt cannot be empty", provider=self.provider_name)

        if not self._api_key:
            raise LLMError(f"{self.API_KEY_ENV} not set", provider=self.provider_name)

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload = {"model": self._model, "messages": messages}
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(self._api_url, headers=headers, json=payload)

                if response.status_code != 200:
                    raise LLMError(
                        f"API error: {self._error_message(response)}",
                        provider=self.provider_name,
                    )

                data = response.json()

                if not data.get("choices"):
                    raise LLMError("No choices in response", provider=self.provider_name)

                content = data["choices"][0]["message"]["content"]

                if not content:
                    raise LLMError("Empty response content", provider=self.provider_name)

                return content.strip()

        except httpx.TimeoutException as e:
            raise LLMError(
                f"Request timed out after {self._timeout}s",
                provider=self.provider_name,
                original_error=e,
            )
        except httpx.RequestError as e:
            raise LLMError(
                f"Network error: {str(e)}",
                provider=self.provider_name,
                original_error=e,
            )
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(
                f"Unexpected error: {str(e)}",
                provider=self.provider_name,
                original_error=e,
            )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            error_data = response.json() if response.text else {}
        except ValueError:
            return f"HTTP {response.status_code}"
        error = error_data.get("error") if isinstance(error_data, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        return f"HTTP {response.status_code}"
