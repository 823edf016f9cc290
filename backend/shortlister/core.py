from pydantic import BaseModel, Field
from typing import Dict, Any, List, Optional

from shortlister import config

MAX_FILE_MB = config.MAX_FILE_MB
MAX_FILE_BYTES = MAX_FILE_MB * 1024 * 1024
MAX_FILES = config.MAX_FILES

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ALLOWED_EXT = {".pdf": PDF_MIME, ".docx": DOCX_MIME}
ALLOWED_MIME = set(ALLOWED_EXT.values())


class StagedFile(BaseModel):
    index: int
    file_name: str
    mime_type: str
    size: int


class FilesResponse(BaseModel):
    status: bool = True
    files: List[StagedFile]


class StatsModel(BaseModel):
    total: int = Field(ge=0)
    completed: int = Field(ge=0)
    success: int = Field(ge=0)
    failed: int = Field(ge=0)


class StatusResponse(BaseModel):
    status: bool = True
    state: str
    stats: StatsModel
    progress: int = Field(ge=0, le=100)
    error: Optional[str] = None


class ResultsResponse(BaseModel):
    status: bool = True
    job_description: str
    candidates: List[Dict[str, Any]]
    summary: Dict[str, Any]
