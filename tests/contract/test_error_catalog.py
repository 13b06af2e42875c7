"""Contract tests for the error catalog.

Every exception the engine raises maps to a user-facing entry; unknown
exceptions fall back to DEFAULT_ERROR.
"""

import pytest

from src.lib.error_catalog import (
    DEFAULT_ERROR,
    ERROR_CATALOG,
    ErrorSeverity,
    UserFacingError,
    get_error_by_code,
    get_error_for_exception,
)
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


class TestCatalogEntries:
    def test_codes_match_keys(self):
        for code, error in ERROR_CATALOG.items():
            assert error.error_code == code

    def test_every_entry_has_message(self):
        for error in ERROR_CATALOG.values():
            assert isinstance(error, UserFacingError)
            assert error.message.strip()

    def test_default_error(self):
        assert DEFAULT_ERROR.error_code == "ERR_UNKNOWN_001"
        assert DEFAULT_ERROR.severity == ErrorSeverity.ERROR

    def test_already_active_offers_recovery_buttons(self):
        actions = ERROR_CATALOG["ERR_SESSION_001"].recovery_actions

        assert [action.callback_data for action in actions] == ["collect:done", "collect:cancel"]


class TestExceptionMapping:
    """Tests for get_error_for_exception."""

    @pytest.mark.parametrize(
        "exc,code",
        [
            (AlreadyActiveError("x"), "ERR_SESSION_001"),
            (EmptySessionError("x"), "ERR_SESSION_002"),
            (InvalidStateError("x"), "ERR_SESSION_003"),
            (StaleReferenceError("x"), "ERR_SESSION_004"),
            (TranscriptionError("x"), "ERR_TRANSCRIPTION_001"),
            (LLMError("x"), "ERR_LLM_001"),
            (VaultError("x"), "ERR_VAULT_001"),
            (VaultError("x", status_code=500), "ERR_VAULT_002"),
            (ExternalServiceError("x", service="other"), "ERR_SERVICE_001"),
            (ConfigError("x"), "ERR_CONFIG_001"),
            (TimeoutError("x"), "ERR_NETWORK_001"),
            (ConnectionError("x"), "ERR_NETWORK_002"),
            (RuntimeError("x"), "ERR_UNKNOWN_001"),
        ],
    )
    def test_mapping(self, exc, code):
        assert get_error_for_exception(exc).error_code == code

    def test_get_by_code(self):
        assert get_error_by_code("ERR_LLM_001") is ERROR_CATALOG["ERR_LLM_001"]

    def test_get_by_unknown_code(self):
        assert get_error_by_code("ERR_NOPE") is DEFAULT_ERROR


class TestExceptionFormatting:
    def test_external_error_prefixes_service(self):
        error = VaultError("refused", status_code=403)

        assert str(error) == "[vault] refused"
        assert error.status_code == 403

    def test_llm_error_uses_provider(self):
        assert str(LLMError("timeout", provider="openai")) == "[openai] timeout"
