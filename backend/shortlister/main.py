import logging
from typing import List, Optional

from fastapi import FastAPI, UploadFile, File, Form, HTTPException, Request
from fastapi.responses import JSONResponse, Response, HTMLResponse
from fastapi.middleware.cors import CORSMiddleware

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from shortlister import config
from shortlister.ai import GeminiAnalyzer
from shortlister.core import FilesResponse, StagedFile, StatusResponse, ResultsResponse
from shortlister.models import UploadedDocument
from shortlister.services.batch import BatchValidationError
from shortlister.services.session import ShortlistSession, IntakeError, SessionBusyError
from shortlister.services.report import render_html_report
from shortlister.services.report_pdf import build_pdf

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["20/day"] if config.IS_PROD else [],
)

rate_limit = limiter.limit("20/day") if config.IS_PROD else (lambda fn: fn)

app = FastAPI(title="Resume Shortlister", version="0.1.0")
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.session = ShortlistSession(GeminiAnalyzer())


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"status": False, "message": "Rate limit exceeded: 20 batches/day per IP."},
    )


def get_session(request: Request) -> ShortlistSession:
    return request.app.state.session


async def read_uploads(files: Optional[List[UploadFile]]) -> List[UploadedDocument]:
    docs = []
    for f in files or []:
        contents = await f.read()
        await f.close()
        docs.append(UploadedDocument(file_name=f.filename or "", mime_type=f.content_type or "", content=contents))
    return docs


def staged_files(session: ShortlistSession) -> FilesResponse:
    return FilesResponse(
        files=[
            StagedFile(index=i, file_name=d.file_name, mime_type=d.mime_type, size=d.size)
            for i, d in enumerate(session.files)
        ]
    )


def require_results(session: ShortlistSession) -> None:
    if not session.complete:
        raise HTTPException(status_code=404, detail="Results not ready")


@app.get("/", tags=["default"])
def root():
    return {"status": "ok", "service": "Resume Shortlister", "docs": "/docs"}


@app.get("/health", tags=["default"])
def health(request: Request):
    analyzer = get_session(request).analyzer
    return {
        "ok": True,
        "env": config.ENV,
        "rate_limit_enabled": config.IS_PROD,
        "model": getattr(analyzer, "model", None),
        "provider_configured": bool(getattr(analyzer, "configured", False)),
    }


@app.get("/api/files", response_model=FilesResponse, tags=["intake"])
def list_files(request: Request):
    return staged_files(get_session(request))


@app.post("/api/files", response_model=FilesResponse, tags=["intake"])
async def upload_files(request: Request, files: List[UploadFile] = File(...)):
    session = get_session(request)
    docs = await read_uploads(files)
    try:
        session.stage(docs)
    except IntakeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return staged_files(session)


@app.delete("/api/files/{index}", response_model=FilesResponse, tags=["intake"])
def remove_file(request: Request, index: int):
    session = get_session(request)
    try:
        session.unstage(index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return staged_files(session)


@app.post("/api/analyze", response_model=None, tags=["analysis"])
@rate_limit
async def analyze(
    request: Request,
    job_description: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
):
    session = get_session(request)
    docs = await read_uploads(files)
    try:
        session.start(job_description, docs)
    except (BatchValidationError, IntakeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info("Batch started with %d resumes", session.stats.total)
    return StatusResponse(**session.snapshot()).model_dump()


@app.get("/api/status", response_model=StatusResponse, tags=["analysis"])
def status(request: Request):
    return StatusResponse(**get_session(request).snapshot())


@app.get("/api/results", response_model=ResultsResponse, tags=["analysis"])
def results(request: Request):
    session = get_session(request)
    require_results(session)

    summary = session.summary()
    top = summary["top_candidate"]
    summary["top_candidate"] = top.to_dict() if top is not None else None
    return ResultsResponse(
        job_description=session.job_description,
        candidates=[c.to_dict() for c in session.ranked()],
        summary=summary,
    )


@app.get("/api/report", response_class=HTMLResponse, tags=["analysis"])
def report(request: Request):
    session = get_session(request)
    require_results(session)
    return HTMLResponse(render_html_report(session.job_description, session.ranked(), session.summary()))


@app.get("/api/download", tags=["analysis"])
def download(request: Request):
    session = get_session(request)
    require_results(session)

    pdf_bytes = build_pdf(session.job_description, session.ranked(), session.summary())

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="Candidate_Shortlist.pdf"'},
    )


@app.post("/api/reset", response_model=StatusResponse, tags=["analysis"])
def reset(request: Request):
    session = get_session(request)
    session.reset()
    return StatusResponse(**session.snapshot())
