"""DeepSeek LLM Provider implementation."""

from src.services.llm.openai import OpenAIProvider


class DeepSeekProvider(OpenAIProvider):
    """
    DeepSeek LLM provider.

    DeepSeek serves an OpenAI-compatible Chat Completions API, including
    JSON output mode, so only the defaults differ.

    Environment Variables:
        DEEPSEEK_API_KEY: Required. Your DeepSeek API key.
        DEEPSEEK_BASE_URL: Optional. API base URL (default: https://api.deepseek.com).
    """

    PROVIDER_NAME = "deepseek"
    API_KEY_ENV = "DEEPSEEK_API_KEY"
    BASE_URL_ENV = "DEEPSEEK_BASE_URL"
    DEFAULT_BASE_URL = "https://api.deepseek.com"
    DEFAULT_MODEL = "deepseek-chat"
