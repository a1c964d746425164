"""File queue controller driving documents through the pipeline."""

from __future__ import annotations

import logging
import pathlib
import tempfile
from typing import Callable, Iterable, List, Optional, Tuple

from .structures import (
    FileJob,
    TranslatedArtifact,
    TranslationProgress,
    TranslationStatus,
    progress_percent,
)
from .translator import DocumentTranslator, derive_output_filename

logger = logging.getLogger(__name__)

JobListener = Callable[[FileJob], None]


class FileQueue:
    """Owns an ordered collection of file jobs and is their only writer.

    Pipeline stages report through callbacks; every state change on a job
    happens here.
    """

    def __init__(self, *, on_update: Optional[JobListener] = None) -> None:
        self._jobs: List[FileJob] = []
        self.on_update = on_update

    @property
    def jobs(self) -> Tuple[FileJob, ...]:
        return tuple(self._jobs)

    def __len__(self) -> int:
        return len(self._jobs)

    def get(self, job_id: str) -> Optional[FileJob]:
        for job in self._jobs:
            if job.job_id == job_id:
                return job
        return None

    def add(self, name: str, data: bytes) -> FileJob:
        job = FileJob(name=name, source=data)
        self._jobs.append(job)
        return job

    def add_paths(self, paths: Iterable[pathlib.Path]) -> List[FileJob]:
        added: List[FileJob] = []
        for path in paths:
            job = FileJob(name=pathlib.Path(path).name, source=pathlib.Path(path))
            self._jobs.append(job)
            added.append(job)
        return added

    def remove(self, job_id: str) -> bool:
        """Drop a job, releasing its artifact first.

        A translation already running for this job is not interrupted.
        """

        job = self.get(job_id)
        if job is None:
            return False
        job.discard_artifact()
        self._jobs.remove(job)
        return True

    def clear(self) -> None:
        for job in self._jobs:
            job.discard_artifact()
        self._jobs.clear()

    def translate_all(self, translator: DocumentTranslator) -> List[FileJob]:
        """Translate every pending job in queue order, one file at a time."""

        processed: List[FileJob] = []
        for job in list(self._jobs):
            if job.status == TranslationStatus.COMPLETED:
                continue
            if self.get(job.job_id) is None:
                continue
            self._run_job(job, translator)
            processed.append(job)
        return processed

    def _run_job(self, job: FileJob, translator: DocumentTranslator) -> None:
        job.discard_artifact()
        self._update(
            job,
            status=TranslationStatus.PARSING,
            progress=0,
            current_action="Parsing document...",
            error=None,
        )

        def on_progress(progress: TranslationProgress) -> None:
            self._update(
                job,
                status=TranslationStatus.TRANSLATING,
                progress=progress_percent(progress),
                current_action=progress.current_action,
            )

        try:
            outcome = translator.translate_bytes(job.read_source(), on_progress)
            artifact = self._store_artifact(
                outcome.content,
                derive_output_filename(job.name, translator.target_language),
                outcome.media_type,
            )
        except Exception as exc:
            logger.error("Translation of %s failed: %s", job.name, exc)
            self._update(job, status=TranslationStatus.ERROR, error=str(exc))
            return

        if self.get(job.job_id) is None:
            # Removed while running; nobody owns the artifact any more.
            artifact.release()
            artifact = None

        self._update(
            job,
            status=TranslationStatus.COMPLETED,
            progress=100,
            current_action=None,
            artifact=artifact,
            tokens_used=outcome.tokens_used,
        )

    @staticmethod
    def _store_artifact(content: bytes, filename: str, media_type: str) -> TranslatedArtifact:
        suffix = pathlib.PurePath(filename).suffix
        with tempfile.NamedTemporaryFile(
            prefix="polyglot-", suffix=suffix, delete=False
        ) as handle:
            handle.write(content)
        return TranslatedArtifact(
            path=pathlib.Path(handle.name),
            filename=filename,
            media_type=media_type,
        )

    def _update(self, job: FileJob, **changes) -> None:
        for key, value in changes.items():
            setattr(job, key, value)
        if self.on_update is not None:
            self.on_update(job)
