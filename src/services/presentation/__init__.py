"""Presentation layer services for the chat UI.

- error_handler.py: ErrorPresentationLayer for humanized error messages
"""

from src.services.presentation.error_handler import (
    ErrorPresentationLayer,
    get_error_presentation_layer,
    reset_error_presentation_layer,
)

__all__ = [
    "ErrorPresentationLayer",
    "get_error_presentation_layer",
    "reset_error_presentation_layer",
]
