"""Shared utilities and configuration."""

from src.lib.config import Settings
from src.lib.timestamps import generate_timestamp, generate_uuid
from src.lib.exceptions import (
    NoteBotError,
    ConfigError,
    SessionError,
    AlreadyActiveError,
    EmptySessionError,
    InvalidStateError,
    StaleReferenceError,
    ExternalServiceError,
    TranscriptionError,
    LLMError,
    VaultError,
    MalformedResponseError,
)

__all__ = [
    "Settings",
    "generate_timestamp",
    "generate_uuid",
    "NoteBotError",
    "ConfigError",
    "SessionError",
    "AlreadyActiveError",
    "EmptySessionError",
    "InvalidStateError",
    "StaleReferenceError",
    "ExternalServiceError",
    "TranscriptionError",
    "LLMError",
    "VaultError",
    "MalformedResponseError",
]
