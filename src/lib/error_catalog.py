"""Externalized error catalog for humanized user messages.

All user-facing error messages are kept here rather than hardcoded in
handlers.

Error Code Format: ERR_{DOMAIN}_{NUMBER}
- NETWORK: 100-199 (Connectivity, timeout)
- TRANSCRIPTION: 200-299 (Speech-to-text, media download)
- SESSION: 300-399 (Collect sessions, tag workflow)
- LLM: 400-499 (Titles, tag classification)
- VAULT: 500-599 (Note export)
- CONFIG: 600-699 (Missing config, invalid values)
- UNKNOWN: 900-999 (Unmapped exceptions)
"""

from dataclasses import dataclass, field
from enum import Enum

from src.lib.exceptions import (
    AlreadyActiveError,
    ConfigError,
    EmptySessionError,
    ExternalServiceError,
    InvalidStateError,
    LLMError,
    StaleReferenceError,
    TranscriptionError,
    VaultError,
)


class ErrorSeverity(str, Enum):
    """Severity level for user-facing errors."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class RecoveryAction:
    """An actionable recovery option for an error.

    Attributes:
        label: Button text shown to user
        callback_data: Callback data for button handler
    """

    label: str
    callback_data: str


@dataclass
class UserFacingError:
    """Structured error for humanized presentation.

    Attributes:
        error_code: Unique error identifier (e.g., "ERR_VAULT_001")
        message: User-friendly description (no technical jargon)
        suggestions: List of actionable recovery hints
        recovery_actions: List of buttons with callback handlers
        severity: Error severity level
    """

    error_code: str
    message: str
    suggestions: list[str] = field(default_factory=list)
    recovery_actions: list[RecoveryAction] = field(default_factory=list)
    severity: ErrorSeverity = ErrorSeverity.ERROR


# =============================================================================
# Error Catalog
# =============================================================================

ERROR_CATALOG: dict[str, UserFacingError] = {
    # -------------------------------------------------------------------------
    # Network Errors (ERR_NETWORK_xxx)
    # -------------------------------------------------------------------------
    "ERR_NETWORK_001": UserFacingError(
        error_code="ERR_NETWORK_001",
        message="The operation took longer than expected.",
        suggestions=["Try again in a moment."],
        severity=ErrorSeverity.WARNING,
    ),
    "ERR_NETWORK_002": UserFacingError(
        error_code="ERR_NETWORK_002",
        message="Could not reach the service.",
        suggestions=["Check the connection and try again."],
    ),
    # -------------------------------------------------------------------------
    # Transcription Errors (ERR_TRANSCRIPTION_xxx)
    # -------------------------------------------------------------------------
    "ERR_TRANSCRIPTION_001": UserFacingError(
        error_code="ERR_TRANSCRIPTION_001",
        message="Could not transcribe this message.",
        suggestions=[
            "The file may be damaged or in an unsupported format.",
            "Send the message again.",
        ],
    ),
    # -------------------------------------------------------------------------
    # Session Errors (ERR_SESSION_xxx)
    # -------------------------------------------------------------------------
    "ERR_SESSION_001": UserFacingError(
        error_code="ERR_SESSION_001",
        message="You are already collecting messages.",
        suggestions=["Export them with /done or discard them with /cancel."],
        recovery_actions=[
            RecoveryAction(label="✅ Done", callback_data="collect:done"),
            RecoveryAction(label="✖️ Cancel", callback_data="collect:cancel"),
        ],
        severity=ErrorSeverity.INFO,
    ),
    "ERR_SESSION_002": UserFacingError(
        error_code="ERR_SESSION_002",
        message="Nothing has been collected yet.",
        suggestions=["Send some messages first, or /cancel."],
        severity=ErrorSeverity.INFO,
    ),
    "ERR_SESSION_003": UserFacingError(
        error_code="ERR_SESSION_003",
        message="This action is no longer available.",
        suggestions=["It was already completed or cancelled."],
        severity=ErrorSeverity.INFO,
    ),
    "ERR_SESSION_004": UserFacingError(
        error_code="ERR_SESSION_004",
        message="This note is no longer available.",
        suggestions=["Transcripts are kept for a limited time. Send the message again."],
        severity=ErrorSeverity.WARNING,
    ),
    # -------------------------------------------------------------------------
    # LLM Errors (ERR_LLM_xxx)
    # -------------------------------------------------------------------------
    "ERR_LLM_001": UserFacingError(
        error_code="ERR_LLM_001",
        message="The assistant could not process your request.",
        suggestions=["Try again in a moment."],
        severity=ErrorSeverity.WARNING,
    ),
    # -------------------------------------------------------------------------
    # Vault Errors (ERR_VAULT_xxx)
    # -------------------------------------------------------------------------
    "ERR_VAULT_001": UserFacingError(
        error_code="ERR_VAULT_001",
        message="Could not save the note to the vault.",
        suggestions=[
            "Make sure Obsidian is running with the Local REST API plugin.",
            "Nothing was lost: try again.",
        ],
    ),
    "ERR_VAULT_002": UserFacingError(
        error_code="ERR_VAULT_002",
        message="The vault rejected the note.",
        suggestions=["Check the API key and the target folder."],
    ),
    # -------------------------------------------------------------------------
    # External service fallback (ERR_SERVICE_xxx)
    # -------------------------------------------------------------------------
    "ERR_SERVICE_001": UserFacingError(
        error_code="ERR_SERVICE_001",
        message="An external service failed.",
        suggestions=["Try again in a moment."],
    ),
    # -------------------------------------------------------------------------
    # Configuration Errors (ERR_CONFIG_xxx)
    # -------------------------------------------------------------------------
    "ERR_CONFIG_001": UserFacingError(
        error_code="ERR_CONFIG_001",
        message="The bot is not configured correctly.",
        suggestions=["Contact the administrator."],
        severity=ErrorSeverity.CRITICAL,
    ),
}

# =============================================================================
# Default Error (for unmapped exceptions)
# =============================================================================

DEFAULT_ERROR: UserFacingError = UserFacingError(
    error_code="ERR_UNKNOWN_001",
    message="Something unexpected happened.",
    suggestions=["Try again in a moment."],
)

# =============================================================================
# Exception to Error Code Mapping
# =============================================================================

EXCEPTION_MAPPING: dict[type, str] = {
    # Order matters! More specific exceptions must come first
    AlreadyActiveError: "ERR_SESSION_001",
    EmptySessionError: "ERR_SESSION_002",
    InvalidStateError: "ERR_SESSION_003",
    StaleReferenceError: "ERR_SESSION_004",
    TranscriptionError: "ERR_TRANSCRIPTION_001",
    LLMError: "ERR_LLM_001",
    VaultError: "ERR_VAULT_001",
    ExternalServiceError: "ERR_SERVICE_001",
    ConfigError: "ERR_CONFIG_001",
    # TimeoutError is a subclass of OSError, so it must be checked first
    TimeoutError: "ERR_NETWORK_001",
    ConnectionError: "ERR_NETWORK_002",
}


def get_error_for_exception(exc: Exception) -> UserFacingError:
    """Get the appropriate UserFacingError for an exception.

    A VaultError with an HTTP status means the vault answered and refused.
    """
    if isinstance(exc, VaultError) and exc.status_code is not None:
        return ERROR_CATALOG["ERR_VAULT_002"]
    for exc_type, error_code in EXCEPTION_MAPPING.items():
        if isinstance(exc, exc_type):
            return ERROR_CATALOG.get(error_code, DEFAULT_ERROR)
    return DEFAULT_ERROR


def get_error_by_code(error_code: str) -> UserFacingError:
    """Get an error by its code, or DEFAULT_ERROR if not found."""
    return ERROR_CATALOG.get(error_code, DEFAULT_ERROR)
