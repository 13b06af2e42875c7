"""Speech-to-text service interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from src.lib.exceptions import TranscriptionError


@dataclass(frozen=True)
class TranscriptionResult:
    """
    Outcome of transcribing one media file.

    Attributes:
        text: Recognized speech, possibly empty
        language: Language code the model used or detected
        duration_seconds: Length of the processed audio
        error_message: Set exactly when the run failed
    """

    text: str = ""
    language: str = ""
    duration_seconds: float = 0.0
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error_message is None

    @property
    def recognized(self) -> bool:
        """Succeeded and produced some text."""
        return self.success and bool(self.text.strip())

    @classmethod
    def failure(cls, error_message: str) -> "TranscriptionResult":
        return cls(error_message=error_message)


class TranscriptionService(ABC):
    """
    Synchronous speech-to-text backend.

    A call may take tens of seconds; MediaTranscriber runs it in a worker
    thread.
    """

    @abstractmethod
    def is_ready(self) -> bool:
        ...

    @abstractmethod
    def load_model(self) -> None:
        """
        Load the model once at startup.

        Raises:
            ModelLoadError: If the model cannot be loaded
        """

    @abstractmethod
    def transcribe(self, audio_path: Path) -> TranscriptionResult:
        """Transcribe an audio or video file. Failures are returned, not raised."""

    @abstractmethod
    def unload_model(self) -> None:
        ...


class ModelLoadError(TranscriptionError):
    """The speech model could not be loaded."""


class CudaNotAvailableError(ModelLoadError):
    """WHISPER_DEVICE=cuda on a machine without CUDA."""
