"""System prompts for the note assistant.

Templates are Markdown files in the repository's prompts/ directory and
use {{ variable }} placeholders.
"""

import re
from pathlib import Path

from src.lib.exceptions import ConfigError

PROMPTS_DIR = Path(__file__).parent.parent.parent / "prompts"

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class PromptLoader:
    """Read prompt templates once and fill their placeholders."""

    def __init__(self, prompts_dir: Path | str | None = None):
        self._prompts_dir = Path(prompts_dir) if prompts_dir else PROMPTS_DIR
        self._templates: dict[str, str] = {}

    def load(self, name: str) -> str:
        """
        Raw template text; name may omit the .md extension.

        Raises:
            ConfigError: If the template file does not exist
        """
        name = name.removesuffix(".md")
        if name not in self._templates:
            path = self._prompts_dir / f"{name}.md"
            if not path.is_file():
                raise ConfigError(f"Prompt template not found: {path}")
            self._templates[name] = path.read_text(encoding="utf-8").strip()
        return self._templates[name]

    def render(self, name: str, **variables) -> str:
        """Template with placeholders filled; unknown placeholders stay as they are."""

        def substitute(match: re.Match) -> str:
            key = match.group(1)
            return str(variables[key]) if key in variables else match.group(0)

        return _PLACEHOLDER.sub(substitute, self.load(name))


_loader: PromptLoader | None = None


def get_prompt_loader() -> PromptLoader:
    global _loader
    if _loader is None:
        _loader = PromptLoader()
    return _loader
