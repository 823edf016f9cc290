from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, List, Optional

import httpx

from shortlister import config
from shortlister.models import AnalysisPayload

logger = logging.getLogger(__name__)


ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "name": {"type": "STRING", "description": "Candidate's full name inferred from resume"},
        "email": {"type": "STRING", "description": "Candidate's email address if available"},
        "matchScore": {"type": "NUMBER", "description": "A score from 0 to 100 indicating fit for the role"},
        "summary": {
            "type": "STRING",
            "description": "A concise 2-3 sentence executive summary of the candidate's fit",
        },
        "keyStrengths": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Top 3-5 strengths relevant to the job description",
        },
        "missingSkills": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Critical skills or qualifications missing from the resume",
        },
        "experienceYears": {"type": "NUMBER", "description": "Total years of relevant experience"},
        "educationLevel": {"type": "STRING", "description": "Highest education degree found"},
    },
    "required": ["name", "matchScore", "summary", "keyStrengths", "missingSkills", "experienceYears"],
}

PROMPT_TEMPLATE = """You are an expert technical recruiter and HR hiring manager.
Analyze the attached resume against the following Job Description.

JOB DESCRIPTION:
{jd}

Be strict but fair. Look for concrete evidence of skills, not just keywords.
Provide the output in strictly valid JSON format matching the schema."""


class AnalysisError(Exception):
    """Base class for every way a single resume analysis can fail."""


class ProviderError(AnalysisError):
    pass


class EmptyResponseError(AnalysisError):
    pass


class MalformedResponseError(AnalysisError):
    pass


def build_analysis_prompt(job_description: str) -> str:
    return PROMPT_TEMPLATE.format(jd=job_description)


def build_request_body(
    encoded: str,
    mime_type: str,
    job_description: str,
    temperature: float = config.ANALYSIS_TEMPERATURE,
) -> Dict[str, Any]:
    return {
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"inline_data": {"mime_type": mime_type, "data": encoded}},
                    {"text": build_analysis_prompt(job_description)},
                ],
            }
        ],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": ANALYSIS_SCHEMA,
            "temperature": temperature,
        },
    }


def extract_text(data: Dict[str, Any]) -> Optional[str]:
    """Join the text parts of the first candidate, or None if there are none."""
    candidates = (data or {}).get("candidates") or []
    if not candidates:
        return None
    parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
    texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
    text = "".join(texts)
    return text or None


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def _str_list(data: Dict[str, Any], key: str) -> List[str]:
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(x, str) for x in value):
        raise MalformedResponseError(f"Field '{key}' must be a list of strings")
    return list(value)


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedResponseError(f"Field '{key}' must be a string")
    return value or None


def parse_analysis(text: Optional[str]) -> AnalysisPayload:
    """
    Validate the model's JSON text against the analysis schema.

    Scores outside 0..100 are rejected rather than clamped; in-range scores
    are rounded to the nearest integer.
    """
    if not text or not text.strip():
        raise EmptyResponseError("No response text from Gemini")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError("Response is not a JSON object")

    missing = [k for k in ANALYSIS_SCHEMA["required"] if k not in data or data[k] is None]
    if missing:
        raise MalformedResponseError(f"Response is missing required fields: {', '.join(missing)}")

    for key in ("name", "summary"):
        if not isinstance(data[key], str):
            raise MalformedResponseError(f"Field '{key}' must be a string")

    score = data["matchScore"]
    if not _is_number(score):
        raise MalformedResponseError("Field 'matchScore' must be a number")
    if score < 0 or score > 100:
        raise MalformedResponseError(f"matchScore {score} is outside 0-100")

    years = data["experienceYears"]
    if not _is_number(years) or years < 0:
        raise MalformedResponseError("Field 'experienceYears' must be a non-negative number")

    return AnalysisPayload(
        name=data["name"],
        match_score=int(math.floor(score + 0.5)),
        summary=data["summary"],
        key_strengths=_str_list(data, "keyStrengths"),
        missing_skills=_str_list(data, "missingSkills"),
        experience_years=years,
        email=_optional_str(data, "email"),
        education_level=_optional_str(data, "educationLevel"),
    )


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    return response.reason_phrase


class GeminiAnalyzer:
    """Scores one resume against a job description with a Gemini model."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or config.GEMINI_MODEL
        self.base_url = (base_url or config.GEMINI_BASE_URL).rstrip("/")
        self.timeout = config.GEMINI_TIMEOUT if timeout is None else timeout
        self.temperature = config.ANALYSIS_TEMPERATURE if temperature is None else temperature
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def _post(self, client: httpx.AsyncClient, body: Dict[str, Any]) -> httpx.Response:
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        return await client.post(self.endpoint, headers=headers, json=body)

    async def analyze(self, encoded: str, mime_type: str, job_description: str) -> AnalysisPayload:
        body = build_request_body(encoded, mime_type, job_description, self.temperature)

        try:
            if self._client is not None:
                response = await self._post(self._client, body)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, body)
        except httpx.TimeoutException as e:
            raise ProviderError(f"Gemini request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Gemini request failed: {e}") from e

        if response.is_error:
            raise ProviderError(f"Gemini API error {response.status_code}: {_error_detail(response)}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("Gemini returned a non-JSON body") from e

        text = extract_text(data if isinstance(data, dict) else {})
        logger.debug("Gemini returned %d chars for model %s", len(text or ""), self.model)
        return parse_analysis(text)
