import pytest

from shortlister.ai import MalformedResponseError
from shortlister.models import AnalysisStatus, UNKNOWN_CANDIDATE
from shortlister.services.batch import BatchValidationError, run_batch
from shortlister.services.encode import encode_bytes
from shortlister.services.ranking import rank
from conftest import BrokenDocument, FakeAnalyzer, scored_docs


@pytest.mark.anyio
async def test_batch_keeps_submission_order_and_counts():
    docs, analyzer = scored_docs(40, 90, 60)
    snapshots = []

    results = await run_batch(docs, "Backend engineer", analyzer, on_progress=snapshots.append)

    assert len(results) == 3
    assert [r.id for r in results] == ["file-0", "file-1", "file-2"]
    assert [r.file_name for r in results] == ["resume_0.pdf", "resume_1.pdf", "resume_2.pdf"]
    assert [r.match_score for r in results] == [40, 90, 60]

    assert [s.completed for s in snapshots] == [1, 2, 3]
    final = snapshots[-1]
    assert (final.total, final.completed, final.success, final.failed) == (3, 3, 3, 0)
    assert final.finished
    assert not snapshots[0].finished
    assert all(s.completed == s.success + s.failed <= s.total for s in snapshots)


@pytest.mark.anyio
async def test_two_succeed_one_fails():
    docs, analyzer = scored_docs(90, 60, 0)
    analyzer.scores[encode_bytes(docs[2].content)] = MalformedResponseError("Response is not valid JSON")
    snapshots = []

    results = await run_batch(docs, "Backend engineer", analyzer, on_progress=snapshots.append)

    assert len(results) == 3
    assert [r.match_score for r in rank(results)] == [90, 60, 0]
    failed = results[2]
    assert failed.status == AnalysisStatus.ERROR
    assert failed.name == UNKNOWN_CANDIDATE
    assert failed.error_message == "Response is not valid JSON"
    final = snapshots[-1]
    assert (final.total, final.completed, final.success, final.failed) == (3, 3, 2, 1)


@pytest.mark.anyio
async def test_encoding_failure_does_not_abort_siblings():
    docs, analyzer = scored_docs(70, 80)
    docs.insert(1, BrokenDocument())

    results = await run_batch(docs, "Backend engineer", analyzer)

    assert [r.status for r in results] == [AnalysisStatus.SUCCESS, AnalysisStatus.ERROR, AnalysisStatus.SUCCESS]
    broken = results[1]
    assert broken.match_score == 0
    assert broken.error_message
    assert broken.key_strengths == [] and broken.missing_skills == []
    assert broken.experience_years == 0
    assert len(analyzer.calls) == 2


@pytest.mark.anyio
async def test_concurrency_is_bounded():
    docs, _ = scored_docs(*range(10, 22))
    analyzer = FakeAnalyzer(delay=0.02)

    results = await run_batch(docs, "Backend engineer", analyzer, max_concurrency=3)

    assert len(results) == 12
    assert analyzer.peak <= 3


@pytest.mark.anyio
async def test_unbounded_when_limit_disabled():
    docs, _ = scored_docs(*range(8))
    analyzer = FakeAnalyzer(delay=0.02)

    await run_batch(docs, "Backend engineer", analyzer, max_concurrency=0)

    assert analyzer.peak == 8


@pytest.mark.anyio
async def test_broken_progress_observer_is_ignored():
    docs, analyzer = scored_docs(10, 20)

    def observer(stats):
        raise RuntimeError("ui went away")

    results = await run_batch(docs, "Backend engineer", analyzer, on_progress=observer)
    assert [r.status for r in results] == [AnalysisStatus.SUCCESS, AnalysisStatus.SUCCESS]


@pytest.mark.anyio
@pytest.mark.parametrize("jd", ["", "   \n\t"])
async def test_blank_job_description_rejected(jd):
    docs, analyzer = scored_docs(10)
    with pytest.raises(BatchValidationError):
        await run_batch(docs, jd, analyzer)
    assert analyzer.calls == []


@pytest.mark.anyio
async def test_no_files_rejected():
    analyzer = FakeAnalyzer()
    with pytest.raises(BatchValidationError):
        await run_batch([], "Backend engineer", analyzer)
