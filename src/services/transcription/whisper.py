"""Local speech-to-text with OpenAI's Whisper.

Whisper decodes its input through ffmpeg, so the sound track of a video
is transcribed just like a voice message.
"""

import gc
import logging
from pathlib import Path
from typing import Optional

from src.lib.config import WhisperConfig
from src.models.content import VIDEO_EXTENSIONS
from src.services.transcription.base import (
    CudaNotAvailableError,
    ModelLoadError,
    TranscriptionResult,
    TranscriptionService,
)

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = frozenset({".ogg", ".oga", ".opus", ".mp3", ".wav", ".m4a", ".flac"})
SUPPORTED_EXTENSIONS = AUDIO_EXTENSIONS | VIDEO_EXTENSIONS


class WhisperTranscriptionService(TranscriptionService):
    """Whisper model loaded once and shared by every transcription."""

    def __init__(self, config: WhisperConfig):
        self.config = config
        self._model = None

    def is_ready(self) -> bool:
        return self._model is not None

    def load_model(self) -> None:
        """
        Raises:
            CudaNotAvailableError: If WHISPER_DEVICE=cuda but torch sees no GPU
            ModelLoadError: If whisper is missing or the model fails to load
        """
        try:
            import torch
            import whisper
        except ImportError as e:
            raise ModelLoadError(f"Whisper is not installed: {e}", original_error=e) from e

        if self.config.device == "cuda" and not torch.cuda.is_available():
            raise CudaNotAvailableError(
                "CUDA requested but not available. "
                "Install PyTorch with CUDA support or set WHISPER_DEVICE=cpu"
            )

        logger.info(
            f"Loading Whisper model {self.config.model_name} "
            f"(device={self.config.device}, fp16={self.config.fp16})"
        )
        try:
            self._model = whisper.load_model(
                self.config.model_name,
                device=self.config.device,
                download_root=self.config.cache_dir,
            )
        except Exception as e:
            self._model = None
            raise ModelLoadError(f"Failed to load Whisper model: {e}", original_error=e) from e

    def transcribe(self, audio_path: Path) -> TranscriptionResult:
        problem = self._check_input(audio_path)
        if problem:
            return TranscriptionResult.failure(problem)

        try:
            result = self._model.transcribe(
                str(audio_path),
                fp16=self.config.fp16,
                language=self.config.language or None,
            )
        except Exception as e:
            logger.exception(f"Whisper failed on {audio_path.name}: {e}")
            return TranscriptionResult.failure(str(e))

        segments = result.get("segments") or []
        transcript = TranscriptionResult(
            text=(result.get("text") or "").strip(),
            language=result.get("language") or self.config.language or "",
            duration_seconds=segments[-1].get("end", 0.0) if segments else 0.0,
        )
        logger.debug(
            f"Whisper: {len(transcript.text)} chars from "
            f"{transcript.duration_seconds:.1f}s of {transcript.language or 'unknown'} audio"
        )
        return transcript

    def unload_model(self) -> None:
        if self._model is None:
            return

        self._model = None
        gc.collect()

        import torch

        if torch.cuda.is_available():
            torch.cuda.empty_cache()
        logger.info("Whisper model unloaded")

    def _check_input(self, audio_path: Path) -> Optional[str]:
        """Reason the file cannot be transcribed, or None."""
        if not self.is_ready():
            return "Model not loaded"
        if not audio_path.exists():
            return f"Media file not found: {audio_path}"
        suffix = audio_path.suffix.lower()
        if suffix not in SUPPORTED_EXTENSIONS:
            return (
                f"Unsupported media format: {suffix}. "
                f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
            )
        return None
