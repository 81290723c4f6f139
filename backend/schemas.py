"""Pydantic schemas for API request/response.

JSON bodies use camelCase for the embeddable widget; Python code uses the
snake_case field names.
"""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

REQUIRED_FIELDS_MESSAGE = "Alle Felder sind erforderlich"
INVALID_EMAIL_MESSAGE = "Bitte geben Sie eine gültige E-Mail-Adresse ein"


def normalize_url(url: str) -> str:
    """Trim and prefix https:// when no http(s) scheme is present. Idempotent."""
    normalized = (url or "").strip()
    if normalized and not SCHEME_PATTERN.match(normalized):
        normalized = f"https://{normalized}"
    return normalized


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisRequest(BaseModel):
    """Normalised form submission. Immutable once handed to the pipeline."""

    model_config = ConfigDict(frozen=True)

    first_name: str
    email: str
    website_url: str

    @field_validator("first_name", mode="before")
    @classmethod
    def normalize_name(cls, value: object) -> str:
        return str(value or "").strip()

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email_field(cls, value: object) -> str:
        return normalize_email(str(value or ""))

    @field_validator("website_url", mode="before")
    @classmethod
    def normalize_url_field(cls, value: object) -> str:
        return normalize_url(str(value or ""))


class StartAnalysisRequest(CamelModel):
    """Request body for POST /api/analyze/start. Emptiness is checked by the endpoint."""

    first_name: str = ""
    email: str = ""
    website_url: str = ""

    @field_validator("first_name", "email", "website_url", mode="before")
    @classmethod
    def normalize_text_fields(cls, value: object) -> str:
        return str(value or "").strip()

    def is_complete(self) -> bool:
        return bool(self.first_name and self.email and self.website_url)

    def to_analysis_request(self) -> AnalysisRequest:
        return AnalysisRequest(first_name=self.first_name, email=self.email, website_url=self.website_url)


class StartAnalysisResponse(CamelModel):
    success: bool
    lead_id: str
    message: str


class ProcessRequest(CamelModel):
    lead_id: str = ""

    @field_validator("lead_id", mode="before")
    @classmethod
    def normalize_lead_id(cls, value: object) -> str:
        return str(value or "").strip()


class Scores(CamelModel):
    performance_mobile: int = 0
    performance_desktop: int = 0
    seo: int = 0
    accessibility: int = 0
    security: int = 0


class ProcessResponse(CamelModel):
    success: bool
    analysis_id: str
    scores: Scores
    has_data_for_seo: bool = Field(alias="hasDataForSEO")


class StatusResponse(CamelModel):
    lead_id: str
    status: str
    step: int
    total_steps: int
    label: str
    is_completed: bool
    is_failed: bool
    scores: Scores | None = None
    website_url: str
    first_name: str


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None
