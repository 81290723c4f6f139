"""Google PageSpeed Insights client.

One run per device strategy (mobile/desktop), parsed into RawMetrics.
"""

from datetime import datetime, timezone
from typing import Any, Callable

import requests

from errors import UpstreamError
from grading import grade
from logger import get_logger
from models import RawMetrics
from retry import with_retry

logger = get_logger(__name__)

PAGESPEED_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
CATEGORIES = ("performance", "seo", "accessibility", "best-practices")
NO_SAVINGS = "Keine Einsparung"


def _score(categories: dict, key: str) -> int:
    try:
        return int(round(float(categories[key]["score"]) * 100))
    except (KeyError, TypeError, ValueError):
        return 0


def _display(audits: dict, key: str, default: str = "N/A") -> str:
    audit = audits.get(key)
    if isinstance(audit, dict) and audit.get("displayValue") is not None:
        return str(audit["displayValue"])
    return default


def _audit_passed(audits: dict, key: str, passed: str, failed: str) -> str:
    audit = audits.get(key)
    if not isinstance(audit, dict):
        return "Unbekannt"
    return passed if audit.get("score") == 1 else failed


def parse_pagespeed_response(data: dict[str, Any], url: str, strategy: str) -> RawMetrics:
    """Project a Lighthouse result onto RawMetrics. Missing audits fall back to sentinels."""
    result = data.get("lighthouseResult") or {}
    audits = result.get("audits") or {}
    categories = result.get("categories") or {}

    performance = _score(categories, "performance")

    network_items = ((audits.get("network-requests") or {}).get("details") or {}).get("items")
    screenshot = ((audits.get("final-screenshot") or {}).get("details") or {}).get("data")

    vulnerable = audits.get("no-vulnerable-libraries") or {}
    return {
        "type": strategy,
        "url": result.get("finalDisplayedUrl") or url,
        "fetch_time": result.get("fetchTime") or datetime.now(timezone.utc).isoformat(),
        "overall_grade": grade(performance),
        "scores": {
            "performance": performance,
            "seo": _score(categories, "seo"),
            "accessibility": _score(categories, "accessibility"),
            "best_practices": _score(categories, "best-practices"),
        },
        "core_web_vitals": {
            "lcp": _display(audits, "largest-contentful-paint"),
            "fcp": _display(audits, "first-contentful-paint"),
            "cls": _display(audits, "cumulative-layout-shift"),
            "tbt": _display(audits, "total-blocking-time"),
            "speed_index": _display(audits, "speed-index"),
        },
        "page_metrics": {
            "total_size": _display(audits, "total-byte-weight"),
            "total_requests": len(network_items) if isinstance(network_items, list) else 0,
            "time_to_interactive": _display(audits, "interactive"),
        },
        "opportunities": {
            "reduce_unused_js": _display(audits, "unused-javascript", NO_SAVINGS),
            "reduce_unused_css": _display(audits, "unused-css-rules", NO_SAVINGS),
            "serve_modern_images": _display(audits, "modern-image-formats", NO_SAVINGS),
            "text_compression": _display(audits, "uses-text-compression", NO_SAVINGS),
        },
        "seo_findings": {
            "meta_description": _audit_passed(audits, "meta-description", "Vorhanden", "Fehlt"),
            "robots_txt": _audit_passed(audits, "robots-txt", "Vorhanden", "Fehlt"),
            "link_text": _audit_passed(audits, "link-text", "Gut lesbar", "Verbesserungswürdig"),
        },
        "best_practices_issues": [
            "HTTPS aktiv" if url.startswith("https://") else "Kein HTTPS",
            "Keine bekannten Sicherheitslücken" if vulnerable.get("score") == 1 else "Sicherheitslücken gefunden",
        ],
        "screenshot": screenshot if isinstance(screenshot, str) else None,
    }


class PageSpeedClient:
    def __init__(
        self,
        api_key: str = "",
        session: requests.Session | None = None,
        timeout: float = 30.0,
        attempts: int = 3,
        retry_base: float = 2.0,
        sleep: Callable[[float], None] | None = None,
    ):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout
        self.attempts = attempts
        self.retry_base = retry_base
        self.sleep = sleep

    def _fetch(self, url: str, strategy: str) -> RawMetrics:
        params: list[tuple[str, str]] = [("url", url), ("strategy", strategy)]
        params.extend(("category", category) for category in CATEGORIES)
        if self.api_key:
            params.append(("key", self.api_key))

        logger.info("Running PageSpeed analysis for %s (%s)", url, strategy)
        response = self.session.get(PAGESPEED_URL, params=params, timeout=self.timeout)

        if response.status_code == 429:
            raise UpstreamError(
                "pagespeed",
                "PageSpeed API rate limit erreicht. Bitte versuchen Sie es in einer Minute erneut.",
            )
        if response.status_code == 400:
            try:
                detail = (response.json().get("error") or {}).get("message")
            except ValueError:
                detail = None
            raise UpstreamError(
                "pagespeed",
                f"Ungültige URL: {detail or 'Die Website konnte nicht analysiert werden.'}",
            )
        if not response.ok:
            raise UpstreamError("pagespeed", f"PageSpeed API Fehler: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError("pagespeed", f"Invalid JSON response: {exc}") from exc

        metrics = parse_pagespeed_response(data, url, strategy)
        logger.info("PageSpeed %s complete: Performance %d", strategy, metrics["scores"]["performance"])
        return metrics

    def analyze(self, url: str, strategy: str) -> RawMetrics:
        """
        Run one PageSpeed Insights analysis. Retried with exponential backoff;
        raises UpstreamError once all attempts fail.
        """
        kwargs = {"sleep": self.sleep} if self.sleep else {}
        try:
            return with_retry(
                lambda: self._fetch(url, strategy),
                label=f"PageSpeed {strategy}",
                attempts=self.attempts,
                base_delay=self.retry_base,
                retry_on=(UpstreamError, requests.RequestException),
                **kwargs,
            )
        except requests.RequestException as exc:
            raise UpstreamError("pagespeed", str(exc)) from exc
