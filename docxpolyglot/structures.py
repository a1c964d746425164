"""Core data structures for the Polyglot translator."""

from __future__ import annotations

import pathlib
import shutil
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


DOCX_MEDIA_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)


class TranslationStatus(str, Enum):
    """Lifecycle states of a queued file."""

    IDLE = "IDLE"
    PARSING = "PARSING"
    TRANSLATING = "TRANSLATING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


@dataclass
class TextSegment:
    """A translatable text fragment anchored to its ``<w:t>`` element."""

    index: int
    anchor: Any
    original_text: str

    def write(self, translated: str) -> None:
        """Replace the anchored node's text."""

        self.anchor.text = translated


@dataclass
class Batch:
    """A contiguous slice of segments sent to the backend in one request."""

    batch_id: int
    start: int
    segments: List[TextSegment]

    @property
    def texts(self) -> List[str]:
        return [segment.original_text for segment in self.segments]


@dataclass
class TranslationResult:
    """Translated strings for one batch plus the tokens the backend billed."""

    items: List[str]
    tokens_used: int = 0


@dataclass
class TranslationProgress:
    """Progress event emitted by the batch orchestrator."""

    total_segments: int
    translated_segments: int
    current_action: str


def progress_percent(progress: TranslationProgress) -> int:
    """Map a progress event to a whole 0-100 percentage (half rounds up)."""

    if progress.total_segments <= 0:
        return 0
    ratio = progress.translated_segments / progress.total_segments
    return int(ratio * 100 + 0.5)


@dataclass
class TranslatedArtifact:
    """A translated package stored in a temporary file owned by a job."""

    path: pathlib.Path
    filename: str
    media_type: str = DOCX_MEDIA_TYPE
    released: bool = False

    def read_bytes(self) -> bytes:
        if self.released:
            raise ValueError(f"Artifact {self.filename} has already been released.")
        return self.path.read_bytes()

    def save(self, destination: pathlib.Path) -> pathlib.Path:
        """Copy the artifact to ``destination`` and return the written path."""

        if self.released:
            raise ValueError(f"Artifact {self.filename} has already been released.")
        shutil.copyfile(self.path, destination)
        return destination

    def release(self) -> None:
        """Delete the backing file. Calling it twice is harmless."""

        if self.released:
            return
        self.path.unlink(missing_ok=True)
        self.released = True


@dataclass
class FileJob:
    """One queued document plus its mutable translation state."""

    name: str
    source: pathlib.Path | bytes
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: TranslationStatus = TranslationStatus.IDLE
    progress: int = 0
    current_action: Optional[str] = None
    error: Optional[str] = None
    artifact: Optional[TranslatedArtifact] = None
    tokens_used: Optional[int] = None

    def read_source(self) -> bytes:
        if isinstance(self.source, bytes):
            return self.source
        return pathlib.Path(self.source).read_bytes()

    def discard_artifact(self) -> None:
        if self.artifact is not None:
            self.artifact.release()
            self.artifact = None
