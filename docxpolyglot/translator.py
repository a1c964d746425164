"""High-level orchestration for document translation."""

from __future__ import annotations

import logging
import pathlib
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .documents import DocxPackage
from .languages import Language
from .providers import TranslationBackend
from .segmenter import DEFAULT_BATCH_SIZE, BatchBuilder, normalize_translations
from .structures import DOCX_MEDIA_TYPE, TranslationProgress

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[TranslationProgress], None]

DEFAULT_FONT_NAME = "Times New Roman"
DEFAULT_BATCH_DELAY = 0.1


@dataclass
class TranslationOutcome:
    """Result of translating one document."""

    content: bytes
    total_segments: int
    total_batches: int
    tokens_used: int
    media_type: str = DOCX_MEDIA_TYPE


class DocumentTranslator:
    """Coordinates extraction, batched translation, and repackaging.

    Batches run strictly one after another in document order; each batch's
    results are written to the anchors of the very segments that were sent.
    """

    def __init__(
        self,
        *,
        backend: TranslationBackend,
        target_language: Language,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        font_name: Optional[str] = DEFAULT_FONT_NAME,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.backend = backend
        self.target_language = target_language
        self.batch_builder = BatchBuilder(batch_size)
        self.batch_delay = batch_delay
        self.font_name = font_name
        self._sleep = sleep

    def open(self, data: bytes) -> DocxPackage:
        """Load and parse a package, failing fast on structural errors."""

        return DocxPackage.from_bytes(data)

    def translate(
        self,
        package: DocxPackage,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TranslationOutcome:
        if self.font_name:
            package.apply_uniform_font(self.font_name)

        segments = package.extract_segments()
        batches = self.batch_builder.build(segments)
        total = len(segments)
        logger.info("Prepared %d segments in %d batches.", total, len(batches))

        translated_count = 0
        tokens_used = 0
        for position, batch in enumerate(batches):
            self._emit(
                on_progress,
                TranslationProgress(
                    total_segments=total,
                    translated_segments=translated_count,
                    current_action=f"Translating ({batch.start + 1}/{total})...",
                ),
            )

            result = self.backend.translate_batch(batch.texts, self.target_language.name)
            tokens_used += result.tokens_used
            items = normalize_translations(result.items, batch.texts)
            for segment, translated in zip(batch.segments, items):
                package.write_segment(segment, translated)
            translated_count += len(batch.segments)
            logger.debug(
                "Processed batch %d (%d segments, %d tokens).",
                batch.batch_id,
                len(batch.segments),
                result.tokens_used,
            )

            if position < len(batches) - 1 and self.batch_delay > 0:
                self._sleep(self.batch_delay)

        self._emit(
            on_progress,
            TranslationProgress(
                total_segments=total,
                translated_segments=total,
                current_action="Finalizing...",
            ),
        )

        content = package.repackage()
        return TranslationOutcome(
            content=content,
            total_segments=total,
            total_batches=len(batches),
            tokens_used=tokens_used,
        )

    def translate_bytes(
        self,
        data: bytes,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TranslationOutcome:
        package = self.open(data)
        try:
            return self.translate(package, on_progress)
        finally:
            package.close()

    @staticmethod
    def _emit(
        on_progress: Optional[ProgressCallback],
        progress: TranslationProgress,
    ) -> None:
        if on_progress is not None:
            on_progress(progress)


def derive_output_filename(name: str, language: Language) -> str:
    """``report.docx`` translated to Russian becomes ``report_translated_ru.docx``."""

    path = pathlib.PurePath(name)
    suffix = path.suffix or ".docx"
    return f"{path.stem}_translated_{language.code}{suffix}"
