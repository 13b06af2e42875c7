"""Error presentation layer for humanized user messages.

ErrorPresentationLayer captures exceptions escaping the event handlers and
turns them into user-friendly chat messages. Users never see stack traces;
the full details go to the log under a correlation id.
"""

import logging
import uuid
from typing import Optional, Type

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from src.lib.error_catalog import (
    ErrorSeverity,
    UserFacingError,
    get_error_by_code,
    get_error_for_exception,
)
from src.lib.exceptions import NoteBotError

logger = logging.getLogger(__name__)

_SEVERITY_EMOJI = {
    ErrorSeverity.INFO: "ℹ️",
    ErrorSeverity.WARNING: "⚠️",
    ErrorSeverity.ERROR: "❌",
    ErrorSeverity.CRITICAL: "🚨",
}


class ErrorPresentationLayer:
    """Error presentation layer for humanized messages.

    - Translates exceptions to user-facing errors
    - Logs full details for debugging
    - Provides recovery actions via inline keyboards

    Example:
        layer = ErrorPresentationLayer()

        try:
            await handler(event)
        except Exception as e:
            error = layer.translate_exception(e, {"chat_id": chat_id})
            text, keyboard = layer.format_for_telegram(error)
            await transport.send_message(chat_id, text, reply_markup=keyboard)
    """

    def __init__(self):
        # Checked before the catalog defaults
        self._custom_mappings: dict[Type[Exception], str] = {}

    def translate_exception(
        self,
        exception: Exception,
        context: Optional[dict] = None,
    ) -> UserFacingError:
        """Transform exception into user-facing error.

        Expected domain errors (NoteBotError) are logged as warnings,
        anything else as an error with traceback.
        """
        correlation_id = str(uuid.uuid4())[:8]
        error = self._find_error(exception)

        log_context = {
            "correlation_id": correlation_id,
            "error_code": error.error_code,
            "exception_type": type(exception).__name__,
            "context": context or {},
        }
        message = (
            f"Error [{correlation_id}] {error.error_code}: "
            f"{type(exception).__name__}: {exception}"
        )

        if isinstance(exception, NoteBotError):
            logger.warning(message, extra=log_context)
        else:
            logger.error(message, extra=log_context, exc_info=exception)

        return error

    def get_error_by_code(self, error_code: str) -> UserFacingError:
        return get_error_by_code(error_code)

    def register_exception_mapping(
        self,
        exception_type: Type[Exception],
        error_code: str,
    ) -> None:
        """Register mapping from exception type to error code.

        Registered mappings take precedence over the defaults.
        """
        self._custom_mappings[exception_type] = error_code
        logger.debug(f"Registered exception mapping: {exception_type.__name__} -> {error_code}")

    def format_for_telegram(
        self,
        error: UserFacingError,
    ) -> tuple[str, Optional[InlineKeyboardMarkup]]:
        """Format error for a chat message.

        Returns:
            Tuple of (HTML message text, keyboard or None)
        """
        emoji = _SEVERITY_EMOJI.get(error.severity, "❌")
        lines = [f"{emoji} {error.message}"]

        if error.suggestions:
            lines.append("")
            for suggestion in error.suggestions:
                lines.append(f"• {suggestion}")

        keyboard = None
        if error.recovery_actions:
            keyboard = InlineKeyboardMarkup(
                [
                    [
                        InlineKeyboardButton(action.label, callback_data=action.callback_data)
                        for action in error.recovery_actions
                    ]
                ]
            )

        return "\n".join(lines), keyboard

    def _find_error(self, exception: Exception) -> UserFacingError:
        for exc_type, error_code in self._custom_mappings.items():
            if isinstance(exception, exc_type):
                return get_error_by_code(error_code)
        return get_error_for_exception(exception)


# Global instance for convenience
_error_layer: Optional[ErrorPresentationLayer] = None


def get_error_presentation_layer() -> ErrorPresentationLayer:
    """Get the global error presentation layer instance."""
    global _error_layer
    if _error_layer is None:
        _error_layer = ErrorPresentationLayer()
    return _error_layer


def reset_error_presentation_layer() -> None:
    """Reset the global error presentation layer (for testing)."""
    global _error_layer
    _error_layer = None
