from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from shortlister import config
from shortlister.core import ALLOWED_EXT, ALLOWED_MIME, MAX_FILE_BYTES
from shortlister.models import BatchState, CandidateAnalysis, ProcessingStats, UploadedDocument
from shortlister.services.batch import run_batch, validate_batch
from shortlister.services.ranking import rank, summarize

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "Gemini API key is not configured (set GEMINI_API_KEY)."


class IntakeError(ValueError):
    """An upload was refused: wrong type, too large, or too many files."""


class SessionBusyError(RuntimeError):
    """The requested change is only allowed while the session is idle."""


def resolve_mime_type(file_name: str, declared: Optional[str]) -> Optional[str]:
    """Accepted MIME type for an upload, or None if it is not a PDF/DOCX."""
    if declared in ALLOWED_MIME:
        return declared
    return ALLOWED_EXT.get(Path(file_name or "").suffix.lower())


class ShortlistSession:
    """
    One user's screening session: job description, staged resumes, and the
    outcome of the last batch. Lives entirely in memory.
    """

    def __init__(
        self,
        analyzer,
        max_concurrency: Optional[int] = config.MAX_CONCURRENT_ANALYSES,
        max_files: int = config.MAX_FILES,
        max_file_bytes: int = MAX_FILE_BYTES,
    ):
        self.analyzer = analyzer
        self.max_concurrency = max_concurrency
        self.max_files = max_files
        self.max_file_bytes = max_file_bytes

        self.state = BatchState.IDLE
        self.job_description = ""
        self.files: List[UploadedDocument] = []
        self.results: List[CandidateAnalysis] = []
        self.stats = ProcessingStats()
        self.error: Optional[str] = None

        # bumped on every start/reset so a superseded batch can't write back
        self._generation = 0
        self._tasks: set = set()

    # ---- intake -----------------------------------------------------------

    def _require_idle(self) -> None:
        if self.state != BatchState.IDLE:
            raise SessionBusyError(f"Session is {self.state.value.lower()}; reset it first.")

    def check_intake(self, documents: Sequence[UploadedDocument]) -> List[UploadedDocument]:
        accepted: List[UploadedDocument] = []
        for doc in documents:
            mime = resolve_mime_type(doc.file_name, doc.mime_type)
            if mime is None:
                raise IntakeError(f"{doc.file_name}: only PDF or DOCX supported.")
            if doc.size > self.max_file_bytes:
                raise IntakeError(f"{doc.file_name}: file too large (max {self.max_file_bytes / (1024 * 1024):g}MB).")
            accepted.append(UploadedDocument(file_name=doc.file_name, mime_type=mime, content=doc.content))

        if len(self.files) + len(accepted) > self.max_files:
            raise IntakeError(f"Too many files (max {self.max_files}).")
        return accepted

    def stage(self, documents: Sequence[UploadedDocument]) -> List[UploadedDocument]:
        self._require_idle()
        accepted = self.check_intake(documents)
        self.files = self.files + accepted
        return list(self.files)

    def unstage(self, index: int) -> UploadedDocument:
        self._require_idle()
        if index < 0 or index >= len(self.files):
            raise IndexError(f"No staged file at position {index}")
        files = list(self.files)
        removed = files.pop(index)
        self.files = files
        return removed

    def set_job_description(self, text: str) -> None:
        self._require_idle()
        self.job_description = text or ""

    # ---- lifecycle --------------------------------------------------------

    def start(
        self,
        job_description: Optional[str] = None,
        documents: Sequence[UploadedDocument] = (),
    ) -> ProcessingStats:
        """
        Validate and launch a batch in the background.

        Raises BatchValidationError / IntakeError / SessionBusyError without
        touching the session. Must be called from inside a running event loop.
        """
        self._require_idle()
        description = self.job_description if job_description is None else job_description
        files = self.files + self.check_intake(documents)
        validate_batch(files, description)

        self.job_description = description
        self.files = files
        self.results = []
        self.stats = ProcessingStats(total=len(files))
        self.error = None
        self._generation += 1

        if not getattr(self.analyzer, "configured", True):
            logger.error(MISSING_KEY_MESSAGE)
            self.state = BatchState.ERROR
            self.error = MISSING_KEY_MESSAGE
            return self.stats

        self.state = BatchState.PROCESSING
        task = asyncio.create_task(self._run(self._generation, list(files), description))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return self.stats

    async def _run(self, generation: int, files: List[UploadedDocument], description: str) -> None:
        def on_progress(stats: ProcessingStats) -> None:
            if generation == self._generation:
                self.stats = stats

        try:
            results = await run_batch(
                files,
                description,
                self.analyzer,
                on_progress=on_progress,
                max_concurrency=self.max_concurrency,
            )
        except Exception as e:
            logger.exception("Batch crashed")
            if generation == self._generation:
                self.state = BatchState.ERROR
                self.error = str(e) or e.__class__.__name__
            return

        if generation != self._generation:
            logger.info("Discarding results of a batch that was reset")
            return
        self.results = results
        self.state = BatchState.COMPLETE

    async def wait(self) -> None:
        """Wait for every batch launched by this session to settle."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    def reset(self) -> None:
        self._generation += 1
        self.state = BatchState.IDLE
        self.job_description = ""
        self.files = []
        self.results = []
        self.stats = ProcessingStats()
        self.error = None

    # ---- views ------------------------------------------------------------

    @property
    def complete(self) -> bool:
        return self.state == BatchState.COMPLETE

    def ranked(self) -> List[CandidateAnalysis]:
        return rank(self.results)

    def summary(self) -> Dict[str, Any]:
        return summarize(self.results)

    def snapshot(self) -> Dict[str, Any]:
        s = self.stats
        return {
            "state": self.state.value,
            "stats": {"total": s.total, "completed": s.completed, "success": s.success, "failed": s.failed},
            "progress": s.percent,
            "error": self.error,
        }
