from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, List, Dict, Any

UNKNOWN_CANDIDATE = "Unknown Candidate"
FAILED_SUMMARY = "Failed to analyze resume."


class AnalysisStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class BatchState(str, Enum):
    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


@dataclass(frozen=True)
class JobContext:
    description: str


@dataclass
class UploadedDocument:
    """A resume captured at intake, held in memory until the batch runs."""
    file_name: str
    mime_type: str
    content: bytes = b""

    @property
    def size(self) -> int:
        return len(self.content)

    async def read(self) -> bytes:
        return self.content


@dataclass
class AnalysisRequest:
    request_id: str
    file_name: str
    mime_type: str
    job_description: str


@dataclass
class AnalysisPayload:
    name: str
    match_score: int
    summary: str
    key_strengths: List[str]
    missing_skills: List[str]
    experience_years: float
    email: Optional[str] = None
    education_level: Optional[str] = None


@dataclass
class CandidateAnalysis:
    id: str
    file_name: str
    status: AnalysisStatus
    name: str = UNKNOWN_CANDIDATE
    match_score: int = 0
    summary: str = ""
    key_strengths: List[str] = field(default_factory=list)
    missing_skills: List[str] = field(default_factory=list)
    experience_years: float = 0
    email: Optional[str] = None
    education_level: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def from_payload(cls, request_id: str, file_name: str, payload: AnalysisPayload) -> "CandidateAnalysis":
        return cls(id=request_id, file_name=file_name, status=AnalysisStatus.SUCCESS, **asdict(payload))

    @classmethod
    def failed(cls, request_id: str, file_name: str, message: str) -> "CandidateAnalysis":
        return cls(
            id=request_id,
            file_name=file_name,
            status=AnalysisStatus.ERROR,
            summary=FAILED_SUMMARY,
            error_message=message,
        )

    @property
    def ok(self) -> bool:
        return self.status == AnalysisStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        # camelCase keys match what the dashboard front-end reads
        out: Dict[str, Any] = {
            "id": self.id,
            "fileName": self.file_name,
            "status": self.status.value,
            "name": self.name,
            "matchScore": self.match_score,
            "summary": self.summary,
            "keyStrengths": list(self.key_strengths),
            "missingSkills": list(self.missing_skills),
            "experienceYears": self.experience_years,
        }
        if self.email is not None:
            out["email"] = self.email
        if self.education_level is not None:
            out["educationLevel"] = self.education_level
        if self.error_message is not None:
            out["errorMessage"] = self.error_message
        return out


@dataclass(frozen=True)
class ProcessingStats:
    total: int = 0
    completed: int = 0
    success: int = 0
    failed: int = 0

    @property
    def finished(self) -> bool:
        return self.completed == self.total

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return int(self.completed * 100 / self.total + 0.5)
