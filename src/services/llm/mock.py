"""Offline provider for development and tests."""

import json
from typing import Optional


class MockProvider:
    """
    Deterministic provider that never touches the network.

    Plain completions return the first line of the prompt (trimmed to a
    few words, good enough for titles); JSON completions return an empty
    tag split unless a response was configured.
    """

    def __init__(self, response: Optional[str] = None, json_response: Optional[dict] = None):
        self._response = response
        self._json_response = json_response
        self.calls: list[dict] = []

    @property
    def provider_name(self) -> str:
        return "mock"

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        json_mode: bool = False,
    ) -> str:
        self.calls.append({"prompt": prompt, "system": system, "json_mode": json_mode})

        if json_mode:
            return json.dumps(self._json_response or {"existing": [], "new": []})
        if self._response is not None:
            return self._response

        first_line = prompt.strip().splitlines()[0] if prompt.strip() else "Note"
        return " ".join(first_line.split()[:4])
