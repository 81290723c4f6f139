"""Assemble the composite summary consumed by the AI prompt and the HTML renderer.

build_summary is total: every input may be missing or malformed, and every
leaf of the result has a typed default. A summary built purely from defaults
still renders.
"""

from typing import Any

from grading import grade, overall_grade
from logger import get_logger

logger = get_logger(__name__)

CompositeSummary = dict[str, Any]

_MISSING = object()


def _get(data: Any, *path: str, default: Any = None) -> Any:
    """Walk nested dicts; return `default` if any step is missing or of the wrong shape."""
    current = data
    for key in path:
        if not isinstance(current, dict):
            return default
        current = current.get(key, _MISSING)
        if current is _MISSING or current is None:
            return default
    return current


def _num(data: Any, *path: str, default: float = 0) -> float:
    value = _get(data, *path, default=default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def _str(data: Any, *path: str, default: str = "") -> str:
    value = _get(data, *path, default=default)
    return value if isinstance(value, str) else default


def _bool(data: Any, *path: str) -> bool:
    return bool(_get(data, *path, default=False))


def _list(data: Any, *path: str) -> list:
    value = _get(data, *path, default=[])
    return value if isinstance(value, list) else []


def _dict(data: Any, *path: str) -> dict:
    value = _get(data, *path, default={})
    return value if isinstance(value, dict) else {}


def _status(length: float, low: int, high: int) -> str:
    return "gut" if low < length < high else "optimieren"


def default_summary(client_name: str = "", website_url: str = "") -> CompositeSummary:
    """The all-default summary, used directly when assembly fails."""
    return build_summary(client_name=client_name, website_url=website_url)


def _seo_analysis_section(seo_analysis: Any) -> dict:
    available = isinstance(seo_analysis, dict) and bool(seo_analysis)
    rankings = [
        {
            "keyword": _str(r, "keyword"),
            "position": _get(r, "position") if isinstance(_get(r, "position"), int) else None,
            "search_volume": _num(r, "search_volume"),
        }
        for r in _list(seo_analysis, "rankings")[:10]
        if isinstance(r, dict)
    ]
    competitors = [
        {"domain": _str(c, "domain"), "organic_keywords": _num(c, "metrics", "organic_keywords")}
        for c in _list(seo_analysis, "competitors")[:3]
        if isinstance(c, dict)
    ]
    return {
        "available": available,
        "domain_rank": _num(seo_analysis, "domain_metrics", "domain_rank"),
        "organic_keywords": _num(seo_analysis, "domain_metrics", "organic_keywords"),
        "backlinks": {
            "total": _num(seo_analysis, "backlinks", "total_backlinks"),
            "referring_domains": _num(seo_analysis, "backlinks", "referring_domains"),
            "domain_rank": _num(seo_analysis, "backlinks", "domain_rank"),
        },
        "rankings": rankings,
        "competitors": competitors,
    }


def _assemble(
    mobile: Any,
    desktop: Any,
    scraped: Any,
    broken_links: Any,
    robots_sitemap: Any,
    security_headers: Any,
    client_name: str,
    website_url: str,
    seo_analysis: Any,
    extracted_keywords: Any,
) -> CompositeSummary:
    scores = {
        "performance": _num(mobile, "scores", "performance"),
        "seo": _num(mobile, "scores", "seo"),
        "security": _num(security_headers, "score"),
        "accessibility": _num(mobile, "scores", "accessibility"),
    }

    broken = [
        link for link in (broken_links if isinstance(broken_links, list) else [])
        if isinstance(link, dict) and link.get("type") == "broken"
    ]
    h1_list = _list(scraped, "headings", "h1")
    title_length = _num(scraped, "meta", "title_length")
    description_length = _num(scraped, "meta", "description_length")
    opportunities = _dict(mobile, "opportunities")

    return {
        "client_name": client_name or "",
        "website_url": website_url or "",
        "overall_grade": overall_grade(scores),
        "grades": {key: grade(value) for key, value in scores.items()},
        "scores": scores,
        "performance": {
            "mobile": _num(mobile, "scores", "performance"),
            "desktop": _num(desktop, "scores", "performance"),
            "best_practices": _num(mobile, "scores", "best_practices"),
            "lcp": _str(mobile, "core_web_vitals", "lcp", default="N/A"),
            "fcp": _str(mobile, "core_web_vitals", "fcp", default="N/A"),
            "cls": _str(mobile, "core_web_vitals", "cls", default="N/A"),
            "tbt": _str(mobile, "core_web_vitals", "tbt", default="N/A"),
            "speed_index": _str(mobile, "core_web_vitals", "speed_index", default="N/A"),
            "total_size": _str(mobile, "page_metrics", "total_size", default="N/A"),
            "opportunities": {
                key: _str(opportunities, key, default="Keine Einsparung")
                for key in ("reduce_unused_js", "reduce_unused_css", "serve_modern_images", "text_compression")
            },
        },
        "seo_on_page": {
            "title": _str(scraped, "meta", "title"),
            "title_length": title_length,
            "title_status": _status(title_length, 30, 60),
            "description": _str(scraped, "meta", "description")[:160],
            "description_length": description_length,
            "description_status": _status(description_length, 120, 160),
            "h1": h1_list[0] if h1_list and isinstance(h1_list[0], str) and h1_list[0] else "FEHLT!",
            "h1_count": len(h1_list),
            "h2_count": len(_list(scraped, "headings", "h2")),
            "has_canonical": _bool(scraped, "meta", "canonical"),
            "has_lang": _bool(scraped, "meta", "lang"),
            "robots_blocked": "noindex" in _str(scraped, "meta", "robots"),
        },
        "images": {
            "total": _num(scraped, "images", "total"),
            "missing_alt": _num(scraped, "images", "missing_alt"),
            "lazy_loaded": _num(scraped, "images", "lazy_loaded"),
        },
        "links": {
            "internal": _num(scraped, "links", "internal"),
            "external": _num(scraped, "links", "external"),
            "broken": len(broken),
            "broken_urls": [str(link.get("url") or "") for link in broken[:5]],
        },
        "technical": {
            "is_https": _bool(scraped, "security", "is_https") or website_url.startswith("https://"),
            "has_viewport": _bool(scraped, "technical", "has_viewport"),
            "has_favicon": _bool(scraped, "technical", "has_favicon"),
            "cms": _str(scraped, "technical", "detected_cms", default="Unbekannt"),
            "technologies": [t for t in _list(scraped, "technical", "detected_technologies") if isinstance(t, str)][:5],
            "has_analytics": _bool(scraped, "technical", "has_google_analytics"),
            "has_structured_data": _bool(scraped, "technical", "has_structured_data"),
            "has_sitemap": _bool(robots_sitemap, "has_sitemap"),
            "has_robots_txt": _bool(robots_sitemap, "has_robots_txt"),
            "robots_issues": [i for i in _list(robots_sitemap, "robots_txt_issues") if isinstance(i, str)],
        },
        "security": {
            "score": _num(security_headers, "score"),
            "issues": [i for i in _list(security_headers, "issues") if isinstance(i, str)][:5],
            "recommendations": [r for r in _list(security_headers, "recommendations") if isinstance(r, str)][:3],
        },
        "contact": {
            "has_email": bool(_list(scraped, "contact", "emails")),
            "has_phone": bool(_list(scraped, "contact", "phones")),
            "has_form": _bool(scraped, "contact", "has_contact_form"),
            "social_links": sorted(str(k) for k in _dict(scraped, "contact", "social_links")),
        },
        "accessibility": {
            "score": _num(mobile, "scores", "accessibility"),
            "has_skip_link": _bool(scraped, "accessibility", "has_skip_link"),
            "has_aria_labels": _bool(scraped, "accessibility", "has_aria_labels"),
            "forms_without_labels": _num(scraped, "accessibility", "forms_without_labels"),
        },
        "design": {
            "colors": [c for c in _list(scraped, "design", "colors") if isinstance(c, str)][:5],
            "fonts": [f for f in _list(scraped, "design", "fonts") if isinstance(f, str)][:3],
            "has_dark_mode": _bool(scraped, "design", "has_dark_mode"),
        },
        "business": {
            "has_online_booking": _bool(scraped, "business", "has_online_booking"),
            "booking_system": _str(scraped, "business", "booking_system"),
            "has_google_maps": _bool(scraped, "business", "has_google_maps"),
            "has_price_list": _bool(scraped, "business", "has_price_list"),
            "has_impressum": _bool(scraped, "business", "has_impressum"),
            "has_datenschutz": _bool(scraped, "business", "has_datenschutz"),
            "has_agb": _bool(scraped, "business", "has_agb"),
        },
        "readability": {
            "score": _num(scraped, "readability", "score"),
            "level": _str(scraped, "readability", "level", default="N/A"),
            "avg_sentence_length": _num(scraped, "readability", "avg_sentence_length"),
        },
        "seo_analysis": _seo_analysis_section(seo_analysis),
        "extracted_keywords": [
            k for k in (extracted_keywords if isinstance(extracted_keywords, list) else []) if isinstance(k, str)
        ][:10],
    }


def build_summary(
    *,
    mobile: Any = None,
    desktop: Any = None,
    scraped: Any = None,
    broken_links: Any = None,
    robots_sitemap: Any = None,
    security_headers: Any = None,
    client_name: str = "",
    website_url: str = "",
    seo_analysis: Any = None,
    extracted_keywords: Any = None,
) -> CompositeSummary:
    try:
        return _assemble(
            mobile,
            desktop,
            scraped,
            broken_links,
            robots_sitemap,
            security_headers,
            client_name if isinstance(client_name, str) else "",
            website_url if isinstance(website_url, str) else "",
            seo_analysis,
            extracted_keywords,
        )
    except Exception:
        logger.exception("Summary assembly failed for %s, using defaults", website_url)
        return _assemble(None, None, None, None, None, None, str(client_name or ""), str(website_url or ""), None, None)
