import json

import httpx
import pytest

from shortlister.ai import (
    ANALYSIS_SCHEMA,
    EmptyResponseError,
    GeminiAnalyzer,
    MalformedResponseError,
    ProviderError,
    build_request_body,
    extract_text,
    parse_analysis,
)

GOOD = {
    "name": "Ada Lovelace",
    "email": "ada@example.com",
    "matchScore": 87.6,
    "summary": "Strong analytical background.",
    "keyStrengths": ["Python", "Mathematics"],
    "missingSkills": ["Kubernetes"],
    "experienceYears": 6,
    "educationLevel": "MSc",
}


def gemini_body(text):
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}, "finishReason": "STOP"}]}


def analyzer_for(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiAnalyzer(api_key="test-key", model="gemini-test", base_url="https://gemini.test/v1beta", client=client)


def test_request_body_carries_document_prompt_and_schema():
    body = build_request_body("QUJD", "application/pdf", "Senior Python engineer", temperature=0.3)

    parts = body["contents"][0]["parts"]
    assert parts[0] == {"inline_data": {"mime_type": "application/pdf", "data": "QUJD"}}
    assert "Senior Python engineer" in parts[1]["text"]
    assert "strictly valid JSON" in parts[1]["text"]

    cfg = body["generationConfig"]
    assert cfg["responseMimeType"] == "application/json"
    assert cfg["temperature"] == 0.3
    assert cfg["responseSchema"] is ANALYSIS_SCHEMA
    assert set(ANALYSIS_SCHEMA["required"]) == {
        "name", "matchScore", "summary", "keyStrengths", "missingSkills", "experienceYears"
    }


def test_parse_analysis_rounds_score_and_keeps_optionals():
    payload = parse_analysis(json.dumps(GOOD))
    assert payload.name == "Ada Lovelace"
    assert payload.match_score == 88
    assert payload.key_strengths == ["Python", "Mathematics"]
    assert payload.email == "ada@example.com"
    assert payload.education_level == "MSc"


def test_parse_analysis_optional_fields_may_be_absent():
    data = {k: v for k, v in GOOD.items() if k not in ("email", "educationLevel")}
    payload = parse_analysis(json.dumps(data))
    assert payload.email is None
    assert payload.education_level is None


@pytest.mark.parametrize("text", [None, "", "   "])
def test_parse_analysis_empty(text):
    with pytest.raises(EmptyResponseError):
        parse_analysis(text)


@pytest.mark.parametrize(
    "text",
    [
        "Sorry, I cannot read this file.",
        "[1, 2, 3]",
        json.dumps({k: v for k, v in GOOD.items() if k != "summary"}),
        json.dumps({**GOOD, "matchScore": 140}),
        json.dumps({**GOOD, "matchScore": -1}),
        json.dumps({**GOOD, "matchScore": "high"}),
        json.dumps({**GOOD, "keyStrengths": "Python"}),
        json.dumps({**GOOD, "experienceYears": -2}),
    ],
)
def test_parse_analysis_malformed(text):
    with pytest.raises(MalformedResponseError):
        parse_analysis(text)


def test_extract_text_without_candidates():
    assert extract_text({}) is None
    assert extract_text({"candidates": [{"content": {"parts": []}}]}) is None


@pytest.mark.anyio
async def test_analyze_posts_to_generate_content():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=gemini_body(json.dumps(GOOD)))

    payload = await analyzer_for(handler).analyze("QUJD", "application/pdf", "Data engineer")

    assert payload.match_score == 88
    assert seen["url"] == "https://gemini.test/v1beta/models/gemini-test:generateContent"
    assert seen["key"] == "test-key"
    assert seen["body"]["contents"][0]["parts"][0]["inline_data"]["data"] == "QUJD"


@pytest.mark.anyio
async def test_analyze_provider_error_status():
    def handler(request):
        return httpx.Response(403, json={"error": {"code": 403, "message": "API key not valid"}})

    with pytest.raises(ProviderError, match="API key not valid"):
        await analyzer_for(handler).analyze("QUJD", "application/pdf", "jd")


@pytest.mark.anyio
async def test_analyze_network_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProviderError, match="connection refused"):
        await analyzer_for(handler).analyze("QUJD", "application/pdf", "jd")


@pytest.mark.anyio
async def test_analyze_no_candidates_is_empty_response():
    def handler(request):
        return httpx.Response(200, json={"promptFeedback": {"blockReason": "OTHER"}})

    with pytest.raises(EmptyResponseError):
        await analyzer_for(handler).analyze("QUJD", "application/pdf", "jd")


def test_unconfigured_without_key():
    assert GeminiAnalyzer(api_key="").configured is False
    assert GeminiAnalyzer(api_key="k").configured is True
