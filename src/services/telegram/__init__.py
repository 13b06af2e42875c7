"""Telegram integration package."""

from src.services.telegram.adapter import TelegramEvent
from src.services.telegram.base import ChatTransport
from src.services.telegram.bot import TelegramBotAdapter

__all__ = ["TelegramEvent", "ChatTransport", "TelegramBotAdapter"]
