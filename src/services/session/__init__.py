"""Session state coordination package."""

from src.services.session.cache import ExpiringCache
from src.services.session.collect import CollectSessionManager
from src.services.session.dedup import CallbackDeduplicator
from src.services.session.links import MessageLinkTable
from src.services.session.reply import (
    ReplyOutcome,
    ReplyResolution,
    ReplyResolver,
    should_auto_start_collect,
)
from src.services.session.store import SessionStore
from src.services.session.tags import TagWorkflow, coerce_tag_split, parse_tag_split

__all__ = [
    "ExpiringCache",
    "CollectSessionManager",
    "CallbackDeduplicator",
    "MessageLinkTable",
    "ReplyOutcome",
    "ReplyResolution",
    "ReplyResolver",
    "should_auto_start_collect",
    "SessionStore",
    "TagWorkflow",
    "coerce_tag_split",
    "parse_tag_split",
]
