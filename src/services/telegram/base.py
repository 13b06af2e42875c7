"""Outbound chat transport contract."""

from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class ChatTransport(Protocol):
    """
    What the orchestrator needs from the chat platform.

    TelegramBotAdapter implements it; tests use an AsyncMock.
    """

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to_message_id: Optional[int] = None,
        reply_markup: Any = None,
        parse_mode: Optional[str] = "HTML",
    ) -> int:
        """Send a message and return its id."""
        ...

    async def edit_message(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        reply_markup: Any = None,
        parse_mode: Optional[str] = "HTML",
    ) -> bool:
        """Replace a message's text; False if the platform refused."""
        ...

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        """Delete a message; False if it could not be deleted."""
        ...

    async def download_file(self, file_id: str, destination: Path) -> int:
        """Download a file and return its size in bytes."""
        ...
