"""Note vault export package."""

from src.services.vault.client import ObsidianVaultClient, parse_frontmatter_tags
from src.services.vault.render import (
    combined_text,
    render_collected_items,
    title_from_text,
    transcript_preview,
)

__all__ = [
    "ObsidianVaultClient",
    "parse_frontmatter_tags",
    "combined_text",
    "render_collected_items",
    "title_from_text",
    "transcript_preview",
]
