"""Telegram event normalization layer.

Normalized events isolate Telegram protocol details from the rest of the
application. Message content is reduced to IncomingContent, whose kind is
the only thing downstream code branches on.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from src.models.content import IncomingContent, ReplyTarget


@dataclass
class TelegramEvent:
    """
    Normalized event from Telegram.

    Attributes:
        event_type: "command", "message", or "callback"
        chat_id: Telegram chat ID
        user_id: Telegram user ID (the session owner)
        timestamp: When the event was received
        payload: Event-specific data
    """

    event_type: str  # "command" | "message" | "callback"
    chat_id: int
    user_id: int
    timestamp: datetime
    payload: dict

    @classmethod
    def command(
        cls,
        chat_id: int,
        user_id: int,
        command: str,
        args: Optional[str] = None,
        message_id: Optional[int] = None,
    ) -> "TelegramEvent":
        """Create a command event."""
        return cls(
            event_type="command",
            chat_id=chat_id,
            user_id=user_id,
            timestamp=datetime.now(),
            payload={
                "command": command,
                "args": args,
                "message_id": message_id,
            },
        )

    @classmethod
    def message(
        cls,
        chat_id: int,
        user_id: int,
        message_id: int,
        content: IncomingContent,
        reply_to: Optional[ReplyTarget] = None,
    ) -> "TelegramEvent":
        """Create a content message event."""
        return cls(
            event_type="message",
            chat_id=chat_id,
            user_id=user_id,
            timestamp=datetime.now(),
            payload={
                "message_id": message_id,
                "content": content,
                "reply_to": reply_to,
            },
        )

    @classmethod
    def callback(
        cls,
        chat_id: int,
        user_id: int,
        callback_id: str,
        callback_data: str,
        message_id: Optional[int] = None,
    ) -> "TelegramEvent":
        """
        Create a callback query event.

        Callback data format is "<action>:<value>":
        - collect:done | collect:cancel
        - note:save:<message_id> | note:tags:<message_id>
        - tags:suggested | tags:confirm | tags:cancel
        - cleanup:delete | cleanup:keep

        Args:
            callback_id: Unique id of the callback query (de-duplication key)
            callback_data: The callback_data string from the button press
            message_id: ID of the message containing the button
        """
        return cls(
            event_type="callback",
            chat_id=chat_id,
            user_id=user_id,
            timestamp=datetime.now(),
            payload={
                "callback_id": callback_id,
                "callback_data": callback_data,
                "message_id": message_id,
            },
        )

    @property
    def is_command(self) -> bool:
        return self.event_type == "command"

    @property
    def is_message(self) -> bool:
        return self.event_type == "message"

    @property
    def is_callback(self) -> bool:
        return self.event_type == "callback"

    @property
    def message_id(self) -> Optional[int]:
        """The message this event came from (for callbacks: the one with the button)."""
        return self.payload.get("message_id")

    @property
    def command_name(self) -> Optional[str]:
        if self.is_command:
            return self.payload.get("command")
        return None

    @property
    def command_args(self) -> Optional[str]:
        if self.is_command:
            return self.payload.get("args")
        return None

    @property
    def content(self) -> Optional[IncomingContent]:
        if self.is_message:
            return self.payload.get("content")
        return None

    @property
    def reply_to(self) -> Optional[ReplyTarget]:
        if self.is_message:
            return self.payload.get("reply_to")
        return None

    @property
    def callback_id(self) -> Optional[str]:
        if self.is_callback:
            return self.payload.get("callback_id")
        return None

    @property
    def callback_data(self) -> Optional[str]:
        if self.is_callback:
            return self.payload.get("callback_data")
        return None

    @property
    def callback_action(self) -> Optional[str]:
        """Prefix before the first colon (e.g., 'collect', 'note', 'tags')."""
        if self.is_callback and self.callback_data:
            return self.callback_data.split(":", 1)[0]
        return None

    @property
    def callback_value(self) -> Optional[str]:
        """Everything after the first colon."""
        if self.is_callback and self.callback_data:
            parts = self.callback_data.split(":", 1)
            return parts[1] if len(parts) > 1 else None
        return None
