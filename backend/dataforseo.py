"""DataForSEO client for the optional SEO deep dive.

Every sub-call degrades to an empty result on failure, so a partial deep dive
still reaches the report. Only enabled when login and password are configured.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable
from urllib.parse import urlparse

import requests

from errors import UpstreamError
from logger import get_logger
from models import BacklinkData, KeywordData, RankingResult, SeoAnalysis
from retry import with_retry

logger = get_logger(__name__)

API_BASE = "https://api.dataforseo.com/v3"
REQUEST_TIMEOUT = 60

LOCATION_CODES = {"Austria": 2040, "Germany": 2276}
LANGUAGE_CODE = "de"

INDUSTRY_KEYWORDS = [
    "kosmetikstudio",
    "kosmetikerin",
    "gesichtsbehandlung",
    "hautpflege",
    "anti aging",
    "faltenbehandlung",
    "microneedling",
    "permanent makeup",
    "wimpernverlängerung",
    "maniküre pediküre",
    "wellness massage",
    "beauty salon",
    "hautanalyse",
    "aknebehandlung",
    "lifting",
]


def industry_keywords(location: str | None = None) -> list[str]:
    """Cosmetics-studio keywords, optionally also suffixed with a location."""
    if location:
        return [f"{k} {location}" for k in INDUSTRY_KEYWORDS] + list(INDUSTRY_KEYWORDS)
    return list(INDUSTRY_KEYWORDS)


def domain_of(url: str) -> str:
    host = urlparse(url).hostname or ""
    return host[4:] if host.startswith("www.") else host


def location_for(domain: str) -> str:
    return "Germany" if domain.endswith(".de") else "Austria"


def empty_backlinks() -> BacklinkData:
    return {"total_backlinks": 0, "referring_domains": 0, "domain_rank": 0, "top_backlinks": []}


def _first_result(response: dict) -> dict:
    tasks = response.get("tasks") or []
    results = (tasks[0] or {}).get("result") if tasks else None
    return (results[0] or {}) if results else {}


class DataForSEOClient:
    def __init__(
        self,
        login: str = "",
        password: str = "",
        session: requests.Session | None = None,
        attempts: int = 3,
        retry_base: float = 1.0,
        sleep: Callable[[float], None] | None = None,
    ):
        self.login = login
        self.password = password
        self.session = session or requests.Session()
        self.attempts = attempts
        self.retry_base = retry_base
        self.sleep = sleep

    @property
    def is_configured(self) -> bool:
        return bool(self.login and self.password)

    def _post(self, endpoint: str, payload: list[dict]) -> dict:
        def call() -> dict:
            response = self.session.post(
                f"{API_BASE}{endpoint}",
                json=payload,
                auth=(self.login, self.password),
                timeout=REQUEST_TIMEOUT,
            )
            if not response.ok:
                raise UpstreamError("dataforseo", f"DataForSEO API Error: {response.status_code} - {response.text}")
            return response.json()

        kwargs = {"sleep": self.sleep} if self.sleep else {}
        return with_retry(
            call,
            label=f"DataForSEO {endpoint}",
            attempts=self.attempts,
            base_delay=self.retry_base,
            retry_on=(UpstreamError, requests.RequestException, ValueError),
            **kwargs,
        )

    def _safe(self, label: str, fn: Callable[[], Any], default: Any) -> Any:
        try:
            return fn()
        except (UpstreamError, requests.RequestException, ValueError, KeyError, TypeError) as exc:
            logger.error("DataForSEO %s failed: %s", label, exc)
            return default

    # --- Endpoints -----------------------------------------------------------

    def keyword_data(self, keywords: list[str], location: str = "Austria") -> list[KeywordData]:
        """Search volume, CPC and competition per keyword."""
        if not keywords:
            return []
        response = self._post(
            "/keywords_data/google_ads/search_volume/live",
            [{
                "keywords": keywords,
                "location_code": LOCATION_CODES.get(location, 2040),
                "language_code": LANGUAGE_CODE,
            }],
        )
        tasks = response.get("tasks") or []
        items = ((tasks[0] or {}).get("result") or []) if tasks else []
        return [
            {
                "keyword": item.get("keyword") or "",
                "search_volume": item.get("search_volume") or 0,
                "cpc": item.get("cpc") or 0,
                "competition": item.get("competition") or 0,
                "competition_level": item.get("competition_level") or "unknown",
                "trend": [m.get("search_volume") or 0 for m in item.get("monthly_searches") or []],
            }
            for item in items
            if isinstance(item, dict)
        ]

    def ranked_keywords(self, domain: str, limit: int = 20) -> list[RankingResult]:
        response = self._post(
            "/dataforseo_labs/google/ranked_keywords/live",
            [{
                "target": domain,
                "location_code": LOCATION_CODES["Austria"],
                "language_code": LANGUAGE_CODE,
                "limit": limit,
                "order_by": ["keyword_data.keyword_info.search_volume,desc"],
                "filters": [["ranked_serp_element.serp_item.rank_absolute", "<=", 100]],
            }],
        )
        results: list[RankingResult] = []
        for item in _first_result(response).get("items") or []:
            keyword_data = item.get("keyword_data") or {}
            serp_item = (item.get("ranked_serp_element") or {}).get("serp_item") or {}
            results.append({
                "keyword": keyword_data.get("keyword") or "",
                "position": serp_item.get("rank_absolute") or None,
                "url": serp_item.get("url") or None,
                "title": serp_item.get("title") or None,
                "search_volume": (keyword_data.get("keyword_info") or {}).get("search_volume") or 0,
            })
        return results

    def backlink_profile(self, domain: str) -> BacklinkData:
        summary = _first_result(
            self._post("/backlinks/summary/live", [{"target": domain, "include_subdomains": True}])
        )
        backlinks = _first_result(
            self._post(
                "/backlinks/backlinks/live",
                [{
                    "target": domain,
                    "include_subdomains": True,
                    "limit": 20,
                    "order_by": ["rank,desc"],
                    "filters": ["dofollow", "=", True],
                }],
            )
        ).get("items") or []
        return {
            "total_backlinks": summary.get("backlinks") or 0,
            "referring_domains": summary.get("referring_domains") or 0,
            "domain_rank": summary.get("rank") or 0,
            "top_backlinks": [
                {
                    "url": link.get("url_from") or "",
                    "anchor": link.get("anchor") or "",
                    "domain_rank": link.get("domain_from_rank") or 0,
                    "is_dofollow": bool(link.get("dofollow")),
                }
                for link in backlinks[:10]
            ],
        }

    def competitors(self, domain: str, limit: int = 5) -> list[dict]:
        response = self._post(
            "/dataforseo_labs/google/competitors_domain/live",
            [{
                "target": domain,
                "location_code": LOCATION_CODES["Austria"],
                "language_code": LANGUAGE_CODE,
                "limit": limit,
                "filters": [["avg_position", "<", 50]],
            }],
        )
        competitors = []
        for item in (_first_result(response).get("items") or [])[:3]:
            organic = (item.get("metrics") or {}).get("organic") or {}
            competitors.append({
                "domain": item.get("domain") or "",
                "metrics": {
                    "domain_rank": item.get("avg_position") or 0,
                    "organic_traffic": organic.get("etv") or 0,
                    "organic_keywords": organic.get("count") or 0,
                    "backlinks": 0,
                    "referring_domains": 0,
                },
            })
        return competitors

    # --- Combined ------------------------------------------------------------

    def run_comprehensive(self, url: str, scraped_keywords: list[str] | None = None) -> SeoAnalysis:
        """
        Ranked keywords, backlinks, competitors and keyword volumes for the
        site's domain, fetched concurrently. Rankings are enriched with the
        search volumes of matching keywords.
        """
        domain = domain_of(url)
        location = location_for(domain)
        keywords_to_check = list(
            dict.fromkeys((scraped_keywords or [])[:5] + industry_keywords()[:5])
        )[:10]
        logger.info("DataForSEO analysis for %s, keywords: %s", domain, ", ".join(keywords_to_check))

        with ThreadPoolExecutor(max_workers=4) as pool:
            ranked_future = pool.submit(self._safe, "ranked keywords", lambda: self.ranked_keywords(domain, 20), [])
            backlinks_future = pool.submit(self._safe, "backlinks", lambda: self.backlink_profile(domain), empty_backlinks())
            competitors_future = pool.submit(self._safe, "competitors", lambda: self.competitors(domain, 5), [])
            keywords_future = pool.submit(
                self._safe, "keyword data", lambda: self.keyword_data(keywords_to_check, location), []
            )
            rankings = ranked_future.result()
            backlinks = backlinks_future.result()
            competitors = competitors_future.result()
            keyword_data = keywords_future.result()

        volumes = {k["keyword"].lower(): k["search_volume"] for k in keyword_data}
        enriched = [
            {**ranking, "search_volume": volumes.get(ranking["keyword"].lower()) or ranking["search_volume"]}
            for ranking in rankings
        ]
        logger.info("DataForSEO analysis complete for %s: %d ranked keywords", domain, len(rankings))

        return {
            "domain": domain,
            "analyzed_at": datetime.now(timezone.utc).isoformat(),
            "domain_metrics": {
                "domain_rank": backlinks["domain_rank"],
                "organic_traffic": 0,
                "organic_keywords": len(rankings),
                "backlinks": backlinks["total_backlinks"],
                "referring_domains": backlinks["referring_domains"],
            },
            "keywords": keyword_data,
            "rankings": enriched,
            "backlinks": backlinks,
            "competitors": competitors,
        }
