import pytest
from pydantic import ValidationError

from config import Settings
from schemas import (
    AnalysisRequest,
    ProcessResponse,
    Scores,
    StartAnalysisRequest,
    normalize_url,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("example.com", "https://example.com"),
        ("  www.example.at ", "https://www.example.at"),
        ("http://example.com", "http://example.com"),
        ("HTTPS://example.com", "HTTPS://example.com"),
        ("", ""),
    ],
)
def test_normalize_url(raw, expected):
    assert normalize_url(raw) == expected
    assert normalize_url(normalize_url(raw)) == expected


def test_analysis_request_normalizes_and_is_frozen():
    request = AnalysisRequest(first_name="  Anna ", email=" Anna@Example.COM ", website_url="example.com")
    assert request.first_name == "Anna"
    assert request.email == "anna@example.com"
    assert request.website_url == "https://example.com"
    with pytest.raises(ValidationError):
        request.email = "other@example.com"


def test_start_request_accepts_camel_case():
    body = StartAnalysisRequest.model_validate(
        {"firstName": " Anna ", "email": "anna@example.com", "websiteUrl": "example.com"}
    )
    assert body.is_complete()
    assert body.to_analysis_request().website_url == "https://example.com"

    assert not StartAnalysisRequest.model_validate({"firstName": "Anna", "email": "  "}).is_complete()


def test_process_response_uses_widget_keys():
    response = ProcessResponse(
        success=True,
        analysis_id="a1",
        scores=Scores(performance_mobile=42, seo=91),
        has_data_for_seo=False,
    )
    dumped = response.model_dump(by_alias=True)
    assert dumped["analysisId"] == "a1"
    assert dumped["hasDataForSEO"] is False
    assert dumped["scores"]["performanceMobile"] == 42


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("AUTO_PROCESS", "true")
    monkeypatch.setenv("TASK_WORKERS", "2")
    monkeypatch.setenv("CLAUDE_MODEL", "   ")
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "leads.db"))
    monkeypatch.delenv("BROKEN_LINK_LIMIT", raising=False)
    monkeypatch.delenv("BREVO_CC_EMAIL", raising=False)

    settings = Settings.from_env()

    assert settings.auto_process is True
    assert settings.task_workers == 2
    assert settings.claude_model == "claude-sonnet-4-20250514"
    assert settings.broken_link_limit == 8
    assert settings.database_path == str(tmp_path / "leads.db")
    assert settings.brevo_cc_email == "office@arsenio.at"


def test_settings_empty_cc_disables_copy(monkeypatch):
    monkeypatch.setenv("BREVO_CC_EMAIL", "")
    assert Settings.from_env().brevo_cc_email == ""


@pytest.mark.parametrize("name,value", [("BROKEN_LINK_LIMIT", "viele"), ("TASK_WORKERS", "0")])
def test_settings_reject_malformed_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings.from_env()
