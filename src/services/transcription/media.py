"""Download-and-transcribe for chat media."""

import asyncio
import logging
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol

from src.lib.exceptions import TranscriptionError
from src.lib.timestamps import generate_uuid
from src.models.content import ContentKind
from src.services.transcription.base import TranscriptionService

logger = logging.getLogger(__name__)

# Used when the transport gives no filename (voice notes, video notes)
DEFAULT_SUFFIXES = {
    ContentKind.VOICE: ".ogg",
    ContentKind.VIDEO: ".mp4",
}


class MediaDownloader(Protocol):
    async def download_file(self, file_id: str, destination: Path) -> int:
        ...


class MediaTranscriber:
    """
    Fetch a media file from the transport and run speech-to-text on it.

    The blocking model call runs in a worker thread under a timeout, so
    other users' events keep flowing while a long recording is processed.
    Downloaded files are removed afterwards, whatever the outcome.
    """

    def __init__(
        self,
        service: TranscriptionService,
        downloader: MediaDownloader,
        download_dir: Path,
        timeout_seconds: float = 300,
    ):
        self._service = service
        self._downloader = downloader
        self._download_dir = download_dir
        self.timeout_seconds = timeout_seconds

    async def transcribe(
        self,
        media_ref: str,
        kind: ContentKind,
        file_name: Optional[str] = None,
    ) -> str:
        """
        Transcribe one media message.

        Returns:
            Transcript text; may be empty when nothing was recognized

        Raises:
            TranscriptionError: On download failure, model failure or timeout
        """
        self._download_dir.mkdir(parents=True, exist_ok=True)
        path = self._download_dir / f"{generate_uuid()}{self._suffix(kind, file_name)}"

        try:
            try:
                size = await self._downloader.download_file(media_ref, path)
            except Exception as e:
                raise TranscriptionError(f"Download failed: {e}", original_error=e) from e
            logger.debug(f"Downloaded {kind.value} {media_ref} ({size} bytes) to {path.name}")

            try:
                result = await asyncio.wait_for(
                    asyncio.to_thread(self._service.transcribe, path),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError as e:
                raise TranscriptionError(
                    f"Timed out after {self.timeout_seconds}s", original_error=e
                ) from e
        finally:
            path.unlink(missing_ok=True)

        if not result.success:
            raise TranscriptionError(result.error_message or "Transcription failed")

        logger.info(f"Transcribed {kind.value}: {len(result.text)} chars")
        return result.text.strip()

    @staticmethod
    def _suffix(kind: ContentKind, file_name: Optional[str]) -> str:
        if file_name:
            suffix = PurePosixPath(file_name.lower()).suffix
            if suffix:
                return suffix
        return DEFAULT_SUFFIXES.get(kind, ".ogg")
