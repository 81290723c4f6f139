"""Explicitly constructed collaborators shared by the API and the pipeline."""

from dataclasses import dataclass

import requests
from anthropic import Anthropic

from ai_service import ReportWriter
from config import Settings
from database import Database
from dataforseo import DataForSEOClient
from mailer import BrevoMailer
from pagespeed import PageSpeedClient
from pipeline import AnalysisPipeline
from scraper import SiteScraper
from tasks import TaskRunner


@dataclass
class Services:
    settings: Settings
    database: Database
    pipeline: AnalysisPipeline
    runner: TaskRunner


def build_pipeline(
    settings: Settings,
    database: Database,
    *,
    pagespeed: PageSpeedClient | None = None,
    scraper: SiteScraper | None = None,
    dataforseo: DataForSEOClient | None = None,
    writer: ReportWriter | None = None,
    mailer: BrevoMailer | None = None,
) -> AnalysisPipeline:
    """Construct the pipeline; any collaborator may be passed in pre-built."""
    session = requests.Session()

    if writer is None:
        client = None
        if settings.anthropic_api_key:
            client = Anthropic(api_key=settings.anthropic_api_key, timeout=settings.claude_timeout_seconds)
        writer = ReportWriter(
            client,
            model=settings.claude_model,
            max_tokens=settings.claude_max_tokens,
            max_retries=settings.claude_max_retries,
            retry_base=settings.claude_retry_base_seconds,
        )

    return AnalysisPipeline(
        database=database,
        pagespeed=pagespeed
        or PageSpeedClient(
            settings.pagespeed_api_key,
            session=session,
            timeout=settings.pagespeed_timeout_seconds,
            retry_base=settings.pagespeed_retry_base_seconds,
        ),
        scraper=scraper or SiteScraper(session),
        dataforseo=dataforseo
        or DataForSEOClient(settings.dataforseo_login, settings.dataforseo_password, session=session),
        writer=writer,
        mailer=mailer
        or BrevoMailer(
            settings.brevo_api_key,
            sender_email=settings.brevo_sender_email,
            sender_name=settings.brevo_sender_name,
            cc_email=settings.brevo_cc_email,
            session=session,
        ),
        broken_link_limit=settings.broken_link_limit,
    )


def build_services(settings: Settings | None = None) -> Services:
    settings = settings or Settings.from_env()
    database = Database(settings.database_path)
    return Services(
        settings=settings,
        database=database,
        pipeline=build_pipeline(settings, database),
        runner=TaskRunner(settings.task_workers),
    )
