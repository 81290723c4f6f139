"""
Runtime settings for the website analysis backend.

Values are read from the environment; a .env file in the backend root is
loaded into the environment at import using python-dotenv:

ANTHROPIC_API_KEY=...
PAGESPEED_API_KEY=...
BREVO_API_KEY=...
DATAFORSEO_LOGIN=...        (optional, enables the SEO deep dive)
DATAFORSEO_PASSWORD=...
"""

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env")

DEFAULT_DB_PATH = Path(__file__).parent / "website_analysis.db"


class Settings(BaseSettings):
    """Settings shared by the API, the pipeline and its collaborators."""

    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-20250514"
    claude_max_tokens: int = 4000
    claude_timeout_seconds: float = 180.0
    claude_max_retries: int = Field(default=3, ge=1)
    claude_retry_base_seconds: float = 3.0

    pagespeed_api_key: str = ""
    pagespeed_timeout_seconds: float = 30.0
    pagespeed_retry_base_seconds: float = 2.0

    brevo_api_key: str = ""
    brevo_sender_email: str = "office@arsenio.at"
    brevo_sender_name: str = "Bojan - arsenio.at"
    # An empty value disables the CC copy.
    brevo_cc_email: str = "office@arsenio.at"

    dataforseo_login: str = ""
    dataforseo_password: str = ""

    database_path: str = str(DEFAULT_DB_PATH)

    auto_process: bool = False
    process_timeout_seconds: float = 120.0
    broken_link_limit: int = Field(default=8, ge=0)
    task_workers: int = Field(default=4, ge=1)

    model_config = SettingsConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
    )

    @field_validator("claude_model", "brevo_sender_email", "brevo_sender_name", "database_path", mode="before")
    @classmethod
    def blank_means_default(cls, value, info: ValidationInfo):
        if isinstance(value, str) and not value.strip():
            return cls.model_fields[info.field_name].default
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        """Read the environment. Malformed values raise a ValidationError."""
        return cls()
