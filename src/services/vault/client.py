"""Obsidian vault client over the Local REST API plugin.

Endpoints used:
    POST /search/       JsonLogic query for notes that have tags
    GET  /vault/{path}  Read a note
    PUT  /vault/{path}  Create or replace a note
"""

import asyncio
import logging
import re
from typing import Any, Optional
from urllib.parse import quote

import httpx
import yaml

from src.lib.config import VaultConfig, get_vault_config
from src.lib.exceptions import VaultError
from src.lib.tag_format import normalize_tag, normalize_tags
from src.models.note import VaultNote

logger = logging.getLogger(__name__)

JSONLOGIC_CONTENT_TYPE = "application/vnd.olrapi.jsonlogic+json"
NOTE_JSON_CONTENT_TYPE = "application/vnd.olrapi.note+json"

# Files fetched at once while collecting tags
_MAX_PARALLEL_READS = 8



def _frontmatter_block(content: str) -> Optional[str]:
    """Text between the opening '---' line and the next '---' (or '...') line."""
    lines = content.splitlines()
    if not lines or lines[0].strip() != "---":
        return None
    for end, line in enumerate(lines[1:], start=1):
        if line.strip() in ("---", "..."):
            return "\n".join(lines[1:end])
    return None


def _coerce_tags(value: Any) -> list[str]:
    """Tags from a frontmatter value: a YAML list or a comma/space separated string."""
    if isinstance(value, str):
        raw = re.split(r"[,\s]+", value)
    elif isinstance(value, list):
        raw = [str(item) for item in value if item is not None]
    else:
        return []
    return normalize_tags(raw)


def parse_frontmatter_tags(content: str) -> list[str]:
    """
    Extract tags from a note's YAML frontmatter.

    Accepted forms:
        tags: [a, b]
        tags:
          - a
          - b
        tags: a
        tags: a, b
    """
    block = _frontmatter_block(content)
    if block is None:
        return []
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as e:
        logger.warning(f"Unreadable frontmatter: {e}")
        return []
    if not isinstance(data, dict):
        return []
    return _coerce_tags(data.get("tags"))


class ObsidianVaultClient:
    """
    Async client for the note vault.

    Example:
        client = ObsidianVaultClient()
        tags = await client.list_tags()
        path = await client.export_note(VaultNote(title="Idea", body="..."))
        await client.close()
    """

    def __init__(
        self,
        config: Optional[VaultConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Vault settings (defaults to environment)
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.config = config or get_vault_config()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def marker_tag(self) -> str:
        return self.config.marker_tag

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers={"Authorization": f"Bearer {self.config.api_key}"},
                timeout=float(self.config.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def list_tags(self) -> list[str]:
        """
        All tags used in the vault, sorted, without the marker tag.

        Returns an empty list when the vault is unreachable; tagging
        then continues with new tags only.
        """
        try:
            filenames = await self._search_tagged_files()
        except VaultError as e:
            logger.warning(f"Could not list vault tags: {e}")
            return []

        semaphore = asyncio.Semaphore(_MAX_PARALLEL_READS)

        async def read(filename: str) -> list[str]:
            async with semaphore:
                return await self._read_tags(filename)

        results = await asyncio.gather(*(read(name) for name in filenames))

        marker = normalize_tag(self.marker_tag)
        tags = {tag for file_tags in results for tag in file_tags if tag != marker}
        logger.info(f"Found {len(tags)} tags in {len(filenames)} tagged notes")
        return sorted(tags)

    async def export_note(self, note: VaultNote, folder: Optional[str] = None) -> str:
        """
        Write a note into the vault.

        Returns:
            Vault path of the note

        Raises:
            VaultError: If the vault rejected the note or was unreachable
        """
        folder = self.config.folder if folder is None else folder
        path = f"{folder.strip('/')}/{note.filename}" if folder else note.filename

        response = await self._request(
            "PUT",
            f"/vault/{quote(path)}",
            content=note.to_markdown().encode("utf-8"),
            headers={"Content-Type": "text/markdown; charset=utf-8"},
        )
        if response.status_code not in (200, 201, 204):
            raise VaultError(
                f"Vault refused {path}: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        logger.info(f"Exported note to vault: {path} (tags: {note.tags})")
        return path

    async def _search_tagged_files(self) -> list[str]:
        response = await self._request(
            "POST",
            "/search/",
            json={"!=": [{"var": "tags"}, []]},
            headers={"Content-Type": JSONLOGIC_CONTENT_TYPE},
        )
        if response.status_code != 200:
            raise VaultError(
                f"Search failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        data = response.json()
        if not isinstance(data, list):
            return []
        return [
            item["filename"]
            for item in data
            if isinstance(item, dict) and str(item.get("filename", "")).endswith(".md")
        ]

    async def _read_tags(self, filename: str) -> list[str]:
        try:
            response = await self._request(
                "GET",
                f"/vault/{quote(filename)}",
                headers={"Accept": NOTE_JSON_CONTENT_TYPE},
            )
        except VaultError as e:
            logger.warning(f"Skipping {filename}: {e}")
            return []

        if response.status_code != 200:
            logger.warning(f"Skipping {filename}: HTTP {response.status_code}")
            return []

        if "json" in response.headers.get("content-type", ""):
            data: Any = response.json()
            if isinstance(data, dict) and isinstance(data.get("tags"), list):
                return _coerce_tags(data["tags"])
            if isinstance(data, dict) and isinstance(data.get("content"), str):
                return parse_frontmatter_tags(data["content"])
            return []

        return parse_frontmatter_tags(response.text)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._get_client().request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise VaultError(
                f"Request timed out after {self.config.timeout}s", original_error=e
            ) from e
        except httpx.RequestError as e:
            raise VaultError(f"Network error: {e}", original_error=e) from e
