"""Tag normalization and display rules.

Tags are stored without the leading '#'; multi-word tags become a single
token joined by underscores. The '#' is added back only for display.
"""

import re
from typing import Iterable

_WHITESPACE = re.compile(r"\s+")
_TAG_MARKER = "#"


def normalize_tag(raw: str) -> str:
    """
    Normalize a user- or AI-provided tag.

    Examples:
        >>> normalize_tag("#Web Development")
        'Web_Development'
        >>> normalize_tag("  ##ideas ")
        'ideas'

    Returns:
        Normalized tag, or "" when nothing usable remains
    """
    tag = raw.strip().lstrip(_TAG_MARKER).strip()
    tag = _WHITESPACE.sub("_", tag)
    return tag.strip("_,;")


def normalize_tags(raw_tags: Iterable[str]) -> list[str]:
    """Normalize and de-duplicate, keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for raw in raw_tags:
        tag = normalize_tag(raw)
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


def display_tag(tag: str) -> str:
    """Add the '#' marker for display."""
    return f"{_TAG_MARKER}{normalize_tag(tag)}"


def display_tags(tags: Iterable[str]) -> str:
    """Space-separated display form."""
    return " ".join(display_tag(tag) for tag in tags)


def merge_tags(marker_tag: str, *groups: Iterable[str]) -> list[str]:
    """
    Build the final tag list for an export.

    The marker tag always comes first; duplicates are dropped.
    """
    return normalize_tags([marker_tag, *(tag for group in groups for tag in group)])
