import threading
from types import SimpleNamespace

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from ai_service import ReportWriter
from config import Settings
from database import Database
from dataforseo import DataForSEOClient
from pagespeed import parse_pagespeed_response
from scraper import SiteScraper
from services import Services, build_pipeline
from tasks import TaskRunner

SITE_URL = "https://example.com"

PAGESPEED_PAYLOAD = {
    "lighthouseResult": {
        "finalDisplayedUrl": "https://example.com/",
        "fetchTime": "2025-01-01T00:00:00.000Z",
        "categories": {
            "performance": {"score": 0.42},
            "seo": {"score": 0.91},
            "accessibility": {"score": 0.78},
            "best-practices": {"score": 0.83},
        },
        "audits": {
            "largest-contentful-paint": {"displayValue": "4.1 s"},
            "first-contentful-paint": {"displayValue": "1.9 s"},
            "cumulative-layout-shift": {"displayValue": "0.12"},
            "total-blocking-time": {"displayValue": "350 ms"},
            "speed-index": {"displayValue": "3.8 s"},
            "total-byte-weight": {"displayValue": "Total size was 2,345 KiB"},
            "interactive": {"displayValue": "6.0 s"},
            "network-requests": {"details": {"items": [{}, {}, {}]}},
            "unused-javascript": {"displayValue": "Potential savings of 120 KiB"},
            "meta-description": {"score": 1},
            "robots-txt": {"score": 0},
            "no-vulnerable-libraries": {"score": 1},
        },
    }
}

SALON_HTML = """<!DOCTYPE html>
<html lang="de">
<head>
<title>Friseur Muster Wien | Haarschnitt und Farbe</title>
<meta name="description" content="Ihr Friseursalon in Wien.">
<meta name="viewport" content="width=device-width, initial-scale=1">
<meta property="og:title" content="Friseur Muster">
<link rel="canonical" href="https://example.com/">
<link rel="icon" href="/favicon.ico">
<link rel="stylesheet" href="https://example.com/wp-content/themes/salon/style.css">
<script async src="https://www.googletagmanager.com/gtag/js?id=G-1"></script>
<script type="application/ld+json">{"@context": "https://schema.org", "@type": "HairSalon"}</script>
<style>.btn { background: #e91e63; } body { font-family: 'Lato', sans-serif; }</style>
</head>
<body>
<nav><a href="/">Start</a><a href="/impressum">Impressum</a></nav>
<main>
<h1>Friseur Muster</h1>
<h2>Leistungen</h2>
<h2>Preise</h2>
<img src="/a.jpg" alt="Salon">
<img src="/b.jpg" loading="lazy">
<p>Willkommen im Salon. Wir schneiden Haare.</p>
<a href="https://calendly.com/muster">Termin buchen</a>
<a href="https://www.instagram.com/muster">Instagram</a>
<a href="mailto:hallo@muster.at">hallo@muster.at</a>
</main>
</body>
</html>
"""


class FakeResponse:
    def __init__(self, status_code=200, text="", json_data=None, headers=None, history=None):
        self.status_code = status_code
        self.text = text
        self._json = json_data
        self.headers = CaseInsensitiveDict(headers or {})
        self.history = history or []

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """
    Stand-in for requests.Session. Routes map (method, url) to a response, an
    exception to raise, or a list consumed one item per call.
    """

    def __init__(self, routes=None, default=None):
        self.routes = dict(routes or {})
        self.default = default or FakeResponse(404)
        self.calls = []
        self._lock = threading.Lock()

    def _dispatch(self, method, url, kwargs):
        with self._lock:
            self.calls.append((method, url, kwargs))
            outcome = self.routes.get((method, url), self.default)
            if isinstance(outcome, list):
                outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def get(self, url, **kwargs):
        return self._dispatch("GET", url, kwargs)

    def head(self, url, **kwargs):
        return self._dispatch("HEAD", url, kwargs)

    def post(self, url, **kwargs):
        return self._dispatch("POST", url, kwargs)

    def calls_to(self, method):
        return [call for call in self.calls if call[0] == method]


class FakePageSpeed:
    def __init__(self, fail_strategies=()):
        self.fail_strategies = set(fail_strategies)
        self.calls = []

    def analyze(self, url, strategy):
        self.calls.append((url, strategy))
        if strategy in self.fail_strategies:
            raise RuntimeError(f"{strategy} run failed")
        return parse_pagespeed_response(PAGESPEED_PAYLOAD, url, strategy)


class FakeMessages:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(content=[SimpleNamespace(text=outcome)], stop_reason="end_turn")


class FakeClaude:
    """Minimal Anthropic client: messages.create returns the queued texts in order."""

    def __init__(self, *outcomes):
        self.messages = FakeMessages(outcomes)


class RecordingMailer:
    def __init__(self, result=True):
        self.result = result
        self.sent = []

    def send_analysis_email(self, *, to, to_name, subject, html_content):
        self.sent.append({"to": to, "to_name": to_name, "subject": subject, "html_content": html_content})
        return self.result


def site_routes(url=SITE_URL):
    return {
        ("GET", url): FakeResponse(200, text=SALON_HTML),
        ("GET", f"{url}/robots.txt"): FakeResponse(200, text="User-agent: *\nDisallow: /admin\n"),
        ("HEAD", f"{url}/sitemap.xml"): FakeResponse(200),
        ("HEAD", url): FakeResponse(
            200,
            headers={
                "Strict-Transport-Security": "max-age=31536000",
                "X-Content-Type-Options": "nosniff",
            },
        ),
        ("HEAD", f"{url}/"): FakeResponse(200),
    }


@pytest.fixture
def site_session():
    return FakeSession(site_routes())


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_path=str(tmp_path / "analysis.db"),
        auto_process=False,
        process_timeout_seconds=10,
        task_workers=2,
    )


@pytest.fixture
def database(settings):
    db = Database(settings.database_path)
    db.init_db()
    return db


@pytest.fixture
def pagespeed():
    return FakePageSpeed()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def pipeline(settings, database, pagespeed, site_session, mailer):
    return build_pipeline(
        settings,
        database,
        pagespeed=pagespeed,
        scraper=SiteScraper(site_session),
        dataforseo=DataForSEOClient(),
        writer=ReportWriter(None),
        mailer=mailer,
    )


@pytest.fixture
def services(settings, database, pipeline):
    runner = TaskRunner(settings.task_workers)
    yield Services(settings=settings, database=database, pipeline=pipeline, runner=runner)
    runner.shutdown(wait=True)
