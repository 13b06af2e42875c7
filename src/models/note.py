"""Note exported to the vault."""

import re
from dataclasses import dataclass, field
from datetime import datetime

import yaml

from src.lib.timestamps import file_stamp, format_timestamp, generate_timestamp

# Characters Obsidian refuses in filenames
_FORBIDDEN_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|#^\[\]]')
_MAX_TITLE_IN_FILENAME = 60


@dataclass
class VaultNote:
    """
    A note ready for export.

    Attributes:
        title: Human-readable title
        body: Markdown body
        tags: Normalized tags (no leading '#'), marker tag first
        created_at: Creation time of the underlying content
        source: Origin of the note
    """

    title: str
    body: str
    tags: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=generate_timestamp)
    source: str = "telegram"

    @property
    def filename(self) -> str:
        """Vault filename: sanitized title plus creation stamp."""
        safe_title = _FORBIDDEN_FILENAME_CHARS.sub("", self.title).strip()
        safe_title = re.sub(r"\s+", " ", safe_title)[:_MAX_TITLE_IN_FILENAME].strip()
        if not safe_title:
            safe_title = "Note"
        return f"{safe_title} {file_stamp(self.created_at)}.md"

    def to_markdown(self) -> str:
        """Render with YAML frontmatter."""
        frontmatter = yaml.safe_dump(
            {
                "tags": list(self.tags),
                "created": format_timestamp(self.created_at),
                "source": self.source,
            },
            sort_keys=False,
            allow_unicode=True,
        )
        return f"---\n{frontmatter}---\n\n# {self.title}\n\n{self.body.rstrip()}\n"
