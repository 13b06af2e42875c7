"""Configuration management via environment variables and pydantic-settings."""

import tempfile
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field


_ENV_CONFIG = {
    "env_file": ".env",
    "env_file_encoding": "utf-8",
    "extra": "ignore",
    "populate_by_name": True,
}


class TelegramConfig(BaseSettings):
    """Configuration for the Telegram transport."""

    bot_token: str = Field(
        default="",
        alias="TELEGRAM_BOT_TOKEN",
        description="Telegram bot token from @BotFather",
    )

    download_timeout: int = Field(
        default=60,
        alias="TELEGRAM_DOWNLOAD_TIMEOUT",
        description="Timeout for media downloads in seconds",
    )

    download_dir: str = Field(
        default=str(Path(tempfile.gettempdir()) / "voice-notes-bot"),
        alias="TELEGRAM_DOWNLOAD_DIR",
        description="Scratch directory for downloaded media",
    )

    concurrent_updates: bool = Field(
        default=True,
        alias="TELEGRAM_CONCURRENT_UPDATES",
        description="Let handlers for different updates interleave",
    )

    model_config = _ENV_CONFIG

    def is_configured(self) -> bool:
        """Check if Telegram is properly configured."""
        return bool(self.bot_token)

    @property
    def download_path(self) -> Path:
        """Get download directory as Path."""
        return Path(self.download_dir)


class WhisperConfig(BaseSettings):
    """Configuration for Whisper speech-to-text."""

    model_name: str = Field(
        default="small",
        alias="WHISPER_MODEL",
        description="Whisper model: tiny, base, small, medium, large",
    )

    device: str = Field(
        default="cpu",
        alias="WHISPER_DEVICE",
        description="Device for inference: cuda or cpu",
    )

    fp16: bool = Field(
        default=False,
        alias="WHISPER_FP16",
        description="Use FP16 precision (recommended for GPU)",
    )

    cache_dir: str | None = Field(
        default=None,
        alias="WHISPER_CACHE_DIR",
        description="Directory for model cache",
    )

    language: str = Field(
        default="ru",
        alias="WHISPER_LANGUAGE",
        description="Language code for transcription (e.g., ru, en, pt)",
    )

    model_config = _ENV_CONFIG


class Settings(BaseSettings):
    """
    LLM configuration for titles, readability and tag classification.

    Priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Defaults defined here
    """

    llm_provider: str = Field(
        default="openai",
        alias="LLM_PROVIDER",
        description="LLM provider to use: openai, deepseek, mock",
    )

    llm_model: str | None = Field(
        default=None,
        alias="LLM_MODEL",
        description="Model override (provider default when unset)",
    )

    openai_api_key: str | None = Field(
        default=None, alias="OPENAI_API_KEY", description="OpenAI API key"
    )

    deepseek_api_key: str | None = Field(
        default=None, alias="DEEPSEEK_API_KEY", description="DeepSeek API key"
    )

    timeout: int = Field(
        default=60, alias="LLM_TIMEOUT_SECONDS", description="Request timeout in seconds"
    )

    model_config = _ENV_CONFIG

    def get_api_key(self, provider: str | None = None) -> str | None:
        """Get the API key for the specified or configured provider."""
        provider = provider or self.llm_provider

        if provider == "openai":
            return self.openai_api_key
        elif provider == "deepseek":
            return self.deepseek_api_key
        elif provider == "mock":
            return "mock-key"

        return None

    def validate_provider_config(self, provider: str | None = None) -> None:
        """
        Validate that the provider has required configuration.

        Raises:
            ConfigError: If required configuration is missing
        """
        from src.lib.exceptions import ConfigError

        provider = provider or self.llm_provider

        if provider == "mock":
            return

        if provider not in ("openai", "deepseek"):
            raise ConfigError(f"Unknown LLM provider '{provider}'.")

        if not self.get_api_key(provider):
            env_var = f"{provider.upper()}_API_KEY"
            raise ConfigError(
                f"Missing API key for provider '{provider}'. "
                f"Set the {env_var} environment variable."
            )


class VaultConfig(BaseSettings):
    """Configuration for the Obsidian Local REST API vault."""

    host: str = Field(default="127.0.0.1", alias="OBSIDIAN_HOST")

    port: int = Field(default=27123, alias="OBSIDIAN_PORT")

    api_key: str = Field(
        default="",
        alias="OBSIDIAN_API_KEY",
        description="Bearer token of the Local REST API plugin",
    )

    folder: str = Field(
        default="Telegram",
        alias="OBSIDIAN_FOLDER",
        description="Vault folder notes are written into",
    )

    marker_tag: str = Field(
        default="tg-transcript",
        alias="OBSIDIAN_MARKER_TAG",
        description="Tag added to every note created by the bot",
    )

    timeout: int = Field(default=30, alias="OBSIDIAN_TIMEOUT")

    model_config = _ENV_CONFIG

    @property
    def base_url(self) -> str:
        """Root URL of the REST API."""
        return f"http://{self.host}:{self.port}"


class SessionConfig(BaseSettings):
    """
    Timing and policy knobs for the session engine.

    Attributes:
        transcript_ttl_seconds: Lifetime of cached transcripts
        pending_ttl_seconds: Safety-net lifetime of in-flight message entries
        transcription_timeout_seconds: Upper bound for one transcription
        auto_collect_on_reply: Start a collect session when replying to content
        improve_readability: Run transcripts through the LLM before caching
        preview_length: Characters of transcript shown in the bot reply
        callback_history_size: Callback ids remembered for de-duplication
    """

    transcript_ttl_seconds: float = Field(default=1800, alias="TRANSCRIPT_TTL_SECONDS")

    pending_ttl_seconds: float = Field(default=600, alias="PENDING_TTL_SECONDS")

    transcription_timeout_seconds: float = Field(
        default=300, alias="TRANSCRIPTION_TIMEOUT_SECONDS"
    )

    auto_collect_on_reply: bool = Field(default=True, alias="AUTO_COLLECT_ON_REPLY")

    improve_readability: bool = Field(default=False, alias="IMPROVE_READABILITY")

    preview_length: int = Field(default=200, alias="PREVIEW_LENGTH")

    callback_history_size: int = Field(default=10000, alias="CALLBACK_HISTORY_SIZE")

    model_config = _ENV_CONFIG


# Config instances (lazy loaded)
_settings: Settings | None = None
_telegram_config: TelegramConfig | None = None
_whisper_config: WhisperConfig | None = None
_vault_config: VaultConfig | None = None
_session_config: SessionConfig | None = None


def get_settings() -> Settings:
    """Get the global LLM settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def get_telegram_config() -> TelegramConfig:
    """Get the Telegram configuration instance."""
    global _telegram_config
    if _telegram_config is None:
        _telegram_config = TelegramConfig()
    return _telegram_config


def get_whisper_config() -> WhisperConfig:
    """Get the Whisper configuration instance."""
    global _whisper_config
    if _whisper_config is None:
        _whisper_config = WhisperConfig()
    return _whisper_config


def get_vault_config() -> VaultConfig:
    """Get the vault configuration instance."""
    global _vault_config
    if _vault_config is None:
        _vault_config = VaultConfig()
    return _vault_config


def get_session_config() -> SessionConfig:
    """Get the session engine configuration instance."""
    global _session_config
    if _session_config is None:
        _session_config = SessionConfig()
    return _session_config


def reset_all_configs() -> None:
    """Reset all configuration instances (useful for testing)."""
    global _settings, _telegram_config, _whisper_config, _vault_config, _session_config
    _settings = None
    _telegram_config = None
    _whisper_config = None
    _vault_config = None
    _session_config = None
