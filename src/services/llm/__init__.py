"""LLM providers used for note titles, readability and tag selection."""

from typing import Optional

from src.lib.config import Settings, get_settings
from src.services.llm.base import LLMProvider, LLMError
from src.services.llm.mock import MockProvider
from src.services.llm.openai import OpenAIProvider
from src.services.llm.deepseek import DeepSeekProvider

_PROVIDERS: dict[str, type] = {
    "mock": MockProvider,
    "openai": OpenAIProvider,
    "deepseek": DeepSeekProvider,
}


def get_provider(name: str, **kwargs) -> LLMProvider:
    """
    Instantiate a registered provider.

    Raises:
        ValueError: If no provider is registered under name
    """
    try:
        provider_class = _PROVIDERS[name]
    except KeyError:
        available = ", ".join(sorted(_PROVIDERS))
        raise ValueError(f"Unknown provider '{name}'. Available: {available}") from None
    return provider_class(**kwargs)


def register_provider(name: str, provider_class: type) -> None:
    _PROVIDERS[name] = provider_class


def create_provider(settings: Optional[Settings] = None) -> LLMProvider:
    """Provider configured by LLM_PROVIDER and its key, model and timeout."""
    settings = settings or get_settings()
    name = settings.llm_provider
    if name == "mock":
        return get_provider("mock")
    return get_provider(
        name,
        api_key=settings.get_api_key(name),
        model=settings.llm_model,
        timeout=settings.timeout,
    )


__all__ = ["LLMProvider", "LLMError", "create_provider", "get_provider", "register_provider"]
