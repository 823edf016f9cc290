import asyncio
from typing import Dict, Optional

import httpx
import pytest

from shortlister.main import app
from shortlister.models import AnalysisPayload, UploadedDocument
from shortlister.services.encode import encode_bytes
from shortlister.services.session import ShortlistSession

FAKE_PDF = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF"
PDF_MIME = "application/pdf"


class FakeAnalyzer:
    """
    Stands in for GeminiAnalyzer. Scores come from `scores`, keyed by the
    base64 payload so each document can get its own outcome; a payload
    mapped to an exception instance raises it.
    """

    def __init__(self, scores: Optional[Dict[str, object]] = None, delay: float = 0.0, configured: bool = True):
        self.scores = scores or {}
        self.delay = delay
        self.configured = configured
        self.model = "fake-model"
        self.calls = []
        self.in_flight = 0
        self.peak = 0

    async def analyze(self, encoded, mime_type, job_description):
        self.calls.append((encoded, mime_type, job_description))
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            outcome = self.scores.get(encoded, 50)
            if isinstance(outcome, Exception):
                raise outcome
            return AnalysisPayload(
                name=f"Candidate {outcome}",
                match_score=outcome,
                summary="Solid fit.",
                key_strengths=["python"],
                missing_skills=["go"],
                experience_years=outcome / 10,
            )
        finally:
            self.in_flight -= 1


class BrokenDocument:
    file_name = "broken.pdf"
    mime_type = PDF_MIME

    async def read(self):
        raise OSError("disk read failed")


def make_doc(name: str, content: bytes = FAKE_PDF, mime_type: str = PDF_MIME) -> UploadedDocument:
    return UploadedDocument(file_name=name, mime_type=mime_type, content=content)


def scored_docs(*scores):
    """Documents with distinct contents plus a FakeAnalyzer that scores them."""
    docs, table = [], {}
    for i, score in enumerate(scores):
        content = FAKE_PDF + f"\n% resume {i}".encode()
        docs.append(make_doc(f"resume_{i}.pdf", content))
        table[encode_bytes(content)] = score
    return docs, FakeAnalyzer(table)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_analyzer():
    return FakeAnalyzer(delay=0.01)


@pytest.fixture
async def client(fake_analyzer):
    original = app.state.session
    app.state.session = ShortlistSession(fake_analyzer)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.state.session = original
