"""Exception hierarchy for the note-capture bot.

All custom exceptions inherit from NoteBotError to enable
selective catching at different levels.

Hierarchy:
    NoteBotError (base)
    ├── ConfigError - Configuration issues (missing env vars)
    ├── SessionError - Per-owner workflow state violations
    │   ├── AlreadyActiveError - Collect session already running
    │   ├── EmptySessionError - Finalize with nothing collected
    │   ├── InvalidStateError - Operation not valid in current phase
    │   └── StaleReferenceError - Cache/table miss on an expected id
    ├── ExternalServiceError - Collaborator call failed
    │   ├── TranscriptionError
    │   ├── LLMError
    │   └── VaultError
    └── MalformedResponseError - Collaborator returned bad structure
"""

from typing import Any


class NoteBotError(Exception):
    """
    Base exception for all bot errors.

    Catching this will catch all custom exceptions from this module.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigError(NoteBotError):
    """
    Configuration error.

    Raised when required configuration is missing or invalid.
    Examples: missing bot token, missing API key for the LLM provider.
    """

    pass


class SessionError(NoteBotError):
    """Base for workflow state errors. Always recoverable."""

    def __init__(self, message: str, owner: int | None = None):
        self.owner = owner
        super().__init__(message)


class AlreadyActiveError(SessionError):
    """A collect session is already running for the owner."""

    pass


class EmptySessionError(SessionError):
    """Finalize was requested for a session without items."""

    pass


class InvalidStateError(SessionError):
    """
    Operation is not valid for the current phase.

    Attributes:
        expected: Phase(s) the operation requires
        actual: Phase the workflow is in (None when absent)
    """

    def __init__(
        self,
        message: str,
        owner: int | None = None,
        expected: Any = None,
        actual: Any = None,
    ):
        self.expected = expected
        self.actual = actual
        super().__init__(message, owner=owner)


class StaleReferenceError(SessionError):
    """
    A referenced entry no longer exists.

    Raised for expired transcripts, sessions finalized while a handler
    was suspended, or message links that were never recorded.

    Attributes:
        key: The lookup key that missed
    """

    def __init__(self, message: str, key: Any = None, owner: int | None = None):
        self.key = key
        super().__init__(message, owner=owner)


class ExternalServiceError(NoteBotError):
    """
    External collaborator failure.

    Attributes:
        service: Name of the service that failed
        original_error: Original exception if wrapping
    """

    def __init__(
        self,
        message: str,
        service: str = "unknown",
        original_error: Exception | None = None,
    ):
        self.service = service
        self.original_error = original_error
        super().__init__(f"[{service}] {message}")


class TranscriptionError(ExternalServiceError):
    """Speech-to-text failed or timed out."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message, service="transcription", original_error=original_error)


class LLMError(ExternalServiceError):
    """
    LLM provider communication error.

    Examples: network error, rate limit, authentication failure, timeout.
    """

    def __init__(
        self, message: str, provider: str = "llm", original_error: Exception | None = None
    ):
        self.provider = provider
        super().__init__(message, service=provider, original_error=original_error)


class VaultError(ExternalServiceError):
    """
    Note vault request failed.

    Attributes:
        status_code: HTTP status if the vault answered
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, service="vault", original_error=original_error)


class MalformedResponseError(NoteBotError):
    """
    Collaborator returned output that does not match the expected shape.

    Never propagated past the parser that detects it; callers default
    to an empty result instead.
    """

    def __init__(self, message: str, raw: Any = None):
        self.raw = raw
        super().__init__(message)
