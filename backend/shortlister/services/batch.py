from __future__ import annotations

import asyncio
import logging
from contextlib import nullcontext
from typing import Callable, List, Optional, Sequence

from shortlister import config
from shortlister.models import AnalysisRequest, CandidateAnalysis, JobContext, ProcessingStats
from shortlister.services.encode import encode_document

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProcessingStats], None]


class BatchValidationError(ValueError):
    """The batch cannot start: blank job description or no files."""


def validate_batch(documents: Sequence, job_description: Optional[str]) -> None:
    if not job_description or not job_description.strip():
        raise BatchValidationError("Job description is required.")
    if not documents:
        raise BatchValidationError("Upload at least one resume.")


def request_id_for(index: int) -> str:
    return f"file-{index}"


class ProgressTracker:
    """Single writer for batch stats; every update publishes a fresh snapshot."""

    def __init__(self, total: int, on_progress: Optional[ProgressCallback] = None):
        self._stats = ProcessingStats(total=total)
        self._on_progress = on_progress

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def record(self, result: CandidateAnalysis) -> ProcessingStats:
        s = self._stats
        self._stats = ProcessingStats(
            total=s.total,
            completed=s.completed + 1,
            success=s.success + (1 if result.ok else 0),
            failed=s.failed + (0 if result.ok else 1),
        )
        if self._on_progress is not None:
            try:
                self._on_progress(self._stats)
            except Exception:
                logger.exception("Progress observer failed; batch continues")
        return self._stats


def _error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


async def analyze_document(document, request: AnalysisRequest, analyzer) -> CandidateAnalysis:
    """Encode and analyze one resume. Never raises for per-item failures."""
    try:
        encoded = await encode_document(document)
        payload = await analyzer.analyze(encoded, request.mime_type, request.job_description)
    except Exception as e:
        logger.warning("Analysis failed for %s (%s): %s", request.file_name, request.request_id, e)
        return CandidateAnalysis.failed(request.request_id, request.file_name, _error_message(e))

    logger.info("Analyzed %s: score=%s", request.file_name, payload.match_score)
    return CandidateAnalysis.from_payload(request.request_id, request.file_name, payload)


async def run_batch(
    documents: Sequence,
    job_description: str,
    analyzer,
    *,
    on_progress: Optional[ProgressCallback] = None,
    max_concurrency: Optional[int] = config.MAX_CONCURRENT_ANALYSES,
) -> List[CandidateAnalysis]:
    """
    Analyze every document against the job description.

    Returns one CandidateAnalysis per document, in submission order. Items
    finish in any order; `on_progress` sees stats after each one.
    """
    validate_batch(documents, job_description)

    job = JobContext(description=job_description)
    tracker = ProgressTracker(len(documents), on_progress)
    gate = asyncio.Semaphore(max_concurrency) if max_concurrency and max_concurrency > 0 else None

    logger.info(
        "Starting batch of %d resumes (concurrency=%s)",
        len(documents),
        max_concurrency if gate is not None else "unbounded",
    )

    async def _run(index: int, document) -> CandidateAnalysis:
        request = AnalysisRequest(
            request_id=request_id_for(index),
            file_name=getattr(document, "file_name", None) or getattr(document, "filename", "") or "",
            mime_type=getattr(document, "mime_type", None) or getattr(document, "content_type", "") or "",
            job_description=job.description,
        )
        async with (gate if gate is not None else nullcontext()):
            result = await analyze_document(document, request, analyzer)
        tracker.record(result)
        return result

    results = await asyncio.gather(*(_run(i, d) for i, d in enumerate(documents)))

    stats = tracker.stats
    logger.info("Batch complete: %d ok, %d failed of %d", stats.success, stats.failed, stats.total)
    return list(results)
