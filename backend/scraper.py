"""Homepage scraper plus robots.txt, sitemap, security-header and link probes.

Fetches a single page, parses it with BeautifulSoup and extracts on-page
signals (meta tags, headings, links, content, technology, contact, security,
accessibility, performance, design, business, readability).
Does NOT crawl subpages.
"""

import json as _json
import math
import re
from concurrent.futures import ThreadPoolExecutor
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

import extractors
from logger import get_logger
from models import (
    BrokenLink,
    LinkInfo,
    RobotsSitemap,
    ScrapedSignals,
    SecurityHeaders,
)

logger = get_logger(__name__)

_REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; WebsiteAnalyzer/1.0; +https://arsenio.at)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

PAGE_TIMEOUT = 30
ROBOTS_TIMEOUT = 5
HEADERS_TIMEOUT = 10
LINK_TIMEOUT = 3
MAX_LINK_CHECKS = 20

WORDS_PER_MINUTE = 200
MAX_IMAGES = 20
MAX_LINKS = 50
MAX_TEXT = 5000

SECURITY_HEADERS: list[tuple[str, str, int]] = [
    ("strict-transport-security", "HSTS", 20),
    ("content-security-policy", "CSP", 25),
    ("x-frame-options", "X-Frame-Options", 15),
    ("x-content-type-options", "X-Content-Type-Options", 10),
    ("referrer-policy", "Referrer-Policy", 10),
    ("permissions-policy", "Permissions-Policy", 10),
    ("x-xss-protection", "X-XSS-Protection", 5),
    ("cross-origin-opener-policy", "COOP", 5),
]
SECURITY_RECOMMENDATIONS = {
    "strict-transport-security": "HSTS aktivieren für sichere HTTPS-Verbindung",
    "content-security-policy": "Content Security Policy definieren gegen XSS-Angriffe",
    "x-frame-options": "X-Frame-Options setzen gegen Clickjacking",
    "x-content-type-options": "X-Content-Type-Options: nosniff setzen",
}

ROBOTS_BLOCK_ALL_RE = re.compile(r"^\s*disallow:\s*/\s*$", re.I | re.M)
ROBOTS_SITEMAP_RE = re.compile(r"sitemap:\s*(.+)", re.I)
CONTRAST_PROBES = ("color: #fff", "color:#fff", "color: white", "color:white")


# --- Defaults ----------------------------------------------------------------


def default_scraped(url: str) -> ScrapedSignals:
    """All-default signals used when the homepage cannot be fetched or parsed."""
    return {
        "meta": {
            "title": "",
            "title_length": 0,
            "description": "",
            "description_length": 0,
            "canonical": "",
            "robots": "",
            "og_tags": {},
            "twitter_tags": {},
            "lang": "",
            "keywords": "",
            "author": "",
            "generator": "",
        },
        "headings": {f"h{level}": [] for level in range(1, 7)},
        "images": {"total": 0, "missing_alt": 0, "lazy_loaded": 0, "with_dimensions": 0, "images": []},
        "links": {"internal": 0, "external": 0, "total": 0, "nofollow": 0, "empty_anchors": 0, "all_links": []},
        "content": {"word_count": 0, "text_content": "", "reading_time": 0},
        "technical": {
            "has_viewport": False,
            "has_favicon": False,
            "has_structured_data": False,
            "structured_data_types": [],
            "detected_cms": None,
            "detected_technologies": [],
            "has_google_analytics": False,
            "has_google_tag_manager": False,
            "has_facebook_pixel": False,
            "has_hotjar": False,
            "inline_css": False,
            "inline_js": False,
            "has_service_worker": False,
            "has_manifest": False,
        },
        "contact": {"emails": [], "phones": [], "addresses": [], "has_contact_form": False, "social_links": {}},
        "security": {"is_https": url.startswith("https://"), "has_mixed_content": False, "external_scripts": []},
        "accessibility": {
            "has_skip_link": False,
            "has_main_landmark": False,
            "has_nav_landmark": False,
            "forms_with_labels": 0,
            "forms_without_labels": 0,
            "has_aria_labels": False,
            "tabindex_issues": 0,
            "contrast_issues_hint": False,
        },
        "performance": {
            "total_scripts": 0,
            "external_scripts": 0,
            "total_stylesheets": 0,
            "external_stylesheets": 0,
            "has_async_scripts": False,
            "has_defer_scripts": False,
            "has_preconnect": False,
            "has_preload": False,
            "has_dns_prefetch": False,
            "estimated_dom_size": 0,
            "iframe_count": 0,
        },
        "design": {"colors": [], "fonts": [], "has_dark_mode": False},
        "business": {
            "has_online_booking": False,
            "booking_system": None,
            "has_google_maps": False,
            "has_price_list": False,
            "has_impressum": False,
            "has_datenschutz": False,
            "has_agb": False,
        },
        "readability": {"avg_sentence_length": 0, "avg_word_length": 0.0, "score": 0, "level": "N/A"},
    }


def default_robots_sitemap() -> RobotsSitemap:
    return {
        "has_robots_txt": False,
        "robots_txt_content": None,
        "robots_txt_issues": [],
        "has_sitemap": False,
        "sitemap_url": None,
        "sitemap_issues": [],
    }


def default_security_headers() -> SecurityHeaders:
    return {"headers": {}, "score": 0, "issues": ["Konnte nicht geprüft werden"], "recommendations": []}


# --- Parsing -----------------------------------------------------------------


def _meta_content(soup: BeautifulSoup, **attrs) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag and tag.get("content"):
        return str(tag["content"]).strip()
    return ""


def _has_rel(soup: BeautifulSoup, rel: str) -> bool:
    return bool(soup.find("link", rel=lambda value: value and rel in value))


def _structured_data_types(soup: BeautifulSoup) -> list[str]:
    types: list[str] = []
    for script_tag in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = _json.loads(script_tag.string or "")
        except ValueError:
            continue
        items = data if isinstance(data, list) else [data]
        for item in items:
            if not isinstance(item, dict):
                continue
            graph = item.get("@graph")
            for node in [item] + (graph if isinstance(graph, list) else []):
                if not isinstance(node, dict):
                    continue
                sd_type = node.get("@type")
                if isinstance(sd_type, list):
                    types.extend(str(t) for t in sd_type if t)
                elif sd_type:
                    types.append(str(sd_type))
    return list(dict.fromkeys(types))


def _prefixed_tags(soup: BeautifulSoup, attr: str, prefix: str) -> dict[str, str]:
    tags: dict[str, str] = {}
    for tag in soup.find_all("meta", attrs={attr: re.compile(f"^{re.escape(prefix)}")}):
        key = str(tag.get(attr) or "").replace(prefix, "", 1)
        if key:
            tags[key] = str(tag.get("content") or "")
    return tags


def _images(soup: BeautifulSoup) -> dict:
    images = []
    lazy_loaded = with_dimensions = missing_alt = 0
    all_images = soup.find_all("img")
    for img in all_images:
        src = str(img.get("src") or img.get("data-src") or "")
        alt = img.get("alt")
        lazy = img.get("loading") == "lazy" or img.get("data-src") is not None
        if lazy:
            lazy_loaded += 1
        if img.get("width") is not None and img.get("height") is not None:
            with_dimensions += 1
        if alt is None:
            missing_alt += 1
        if src:
            images.append({"src": src, "alt": alt, "lazy": lazy})
    return {
        "total": len(all_images),
        "missing_alt": missing_alt,
        "lazy_loaded": lazy_loaded,
        "with_dimensions": with_dimensions,
        "images": images[:MAX_IMAGES],
    }


def _external_script_hosts(soup: BeautifulSoup, page_url: str) -> list[str]:
    base_host = urlparse(page_url).hostname
    hosts: list[str] = []
    for script in soup.find_all("script", src=True):
        try:
            host = urlparse(urljoin(page_url, str(script["src"]))).hostname
        except ValueError:
            continue
        if host and host != base_host:
            hosts.append(host)
    return list(dict.fromkeys(hosts))[:10]


def _accessibility(html: str, soup: BeautifulSoup) -> dict:
    with_labels = without_labels = 0
    for field in soup.find_all("input"):
        if field.get("type") in ("hidden", "submit", "button"):
            continue
        field_id = field.get("id")
        has_label = bool(field_id) and soup.find("label", attrs={"for": field_id}) is not None
        if has_label or field.get("aria-label"):
            with_labels += 1
        elif not field.get("placeholder"):
            without_labels += 1

    tabindex_issues = 0
    for element in soup.find_all(attrs={"tabindex": True}):
        try:
            if int(str(element["tabindex"])) > 0:
                tabindex_issues += 1
        except ValueError:
            continue

    return {
        "has_skip_link": bool(soup.select('a[href="#main"], a[href="#content"], a.skip-link, a.skip-to-content')),
        "has_main_landmark": bool(soup.select('main, [role="main"]')),
        "has_nav_landmark": bool(soup.select('nav, [role="navigation"]')),
        "forms_with_labels": with_labels,
        "forms_without_labels": without_labels,
        "has_aria_labels": bool(soup.select("[aria-label], [aria-labelledby], [aria-describedby]")),
        "tabindex_issues": tabindex_issues,
        "contrast_issues_hint": any(probe in html for probe in CONTRAST_PROBES),
    }


def _performance(soup: BeautifulSoup) -> dict:
    stylesheets = soup.find_all("link", rel=lambda value: value and "stylesheet" in value)
    return {
        "total_scripts": len(soup.find_all("script")),
        "external_scripts": len(soup.find_all("script", src=True)),
        "total_stylesheets": len(stylesheets),
        "external_stylesheets": sum(1 for link in stylesheets if str(link.get("href") or "").startswith("http")),
        "has_async_scripts": bool(soup.find("script", attrs={"async": True})),
        "has_defer_scripts": bool(soup.find("script", attrs={"defer": True})),
        "has_preconnect": _has_rel(soup, "preconnect"),
        "has_preload": _has_rel(soup, "preload"),
        "has_dns_prefetch": _has_rel(soup, "dns-prefetch"),
        "estimated_dom_size": len(soup.find_all(True)),
        "iframe_count": len(soup.find_all("iframe")),
    }


def _visible_text(html: str) -> str:
    body_soup = BeautifulSoup(html, "html.parser")
    for tag in body_soup.find_all(["script", "style", "noscript"]):
        tag.decompose()
    root = body_soup.body or body_soup
    return re.sub(r"\s+", " ", root.get_text(" ")).strip()


def parse_html(html: str, url: str) -> ScrapedSignals:
    """Extract every on-page signal from a fetched homepage."""
    soup = BeautifulSoup(html, "html.parser")
    is_https = url.startswith("https://")

    title = soup.title.get_text(strip=True) if soup.title else ""
    description = _meta_content(soup, name="description")
    generator = _meta_content(soup, name="generator")
    canonical_tag = soup.find("link", rel=lambda value: value and "canonical" in value)
    html_tag = soup.find("html")

    headings = {
        f"h{level}": [h.get_text(" ", strip=True) for h in soup.find_all(f"h{level}")]
        for level in range(1, 7)
    }

    links = extractors.classify_links(soup, url)
    all_links: list[LinkInfo] = links["all_links"]

    text_content = _visible_text(html)
    word_count = len(text_content.split())

    structured_data_types = _structured_data_types(soup)
    analytics = extractors.detect_analytics(html)
    inline_js = any(
        len(script.string or "") > 100 for script in soup.find_all("script") if not script.get("src")
    )

    has_mixed_content = is_https and bool(
        soup.select('img[src^="http://"], script[src^="http://"], link[href^="http://"]')
    )

    return {
        "meta": {
            "title": title,
            "title_length": len(title),
            "description": description,
            "description_length": len(description),
            "canonical": str(canonical_tag.get("href") or "") if canonical_tag else "",
            "robots": _meta_content(soup, name="robots"),
            "og_tags": _prefixed_tags(soup, "property", "og:"),
            "twitter_tags": _prefixed_tags(soup, "name", "twitter:"),
            "lang": str(html_tag.get("lang") or "") if html_tag else "",
            "keywords": _meta_content(soup, name="keywords"),
            "author": _meta_content(soup, name="author"),
            "generator": generator,
        },
        "headings": headings,
        "images": _images(soup),
        "links": {**links, "all_links": all_links[:MAX_LINKS]},
        "content": {
            "word_count": word_count,
            "text_content": text_content[:MAX_TEXT],
            "reading_time": math.ceil(word_count / WORDS_PER_MINUTE),
        },
        "technical": {
            "has_viewport": soup.find("meta", attrs={"name": "viewport"}) is not None,
            "has_favicon": bool(soup.select('link[rel="icon"], link[rel="shortcut icon"]')),
            "has_structured_data": bool(structured_data_types),
            "structured_data_types": structured_data_types,
            "detected_cms": extractors.detect_cms(html, generator),
            "detected_technologies": extractors.detect_technologies(html),
            "has_google_analytics": analytics["has_google_analytics"],
            "has_google_tag_manager": analytics["has_google_tag_manager"],
            "has_facebook_pixel": analytics["has_facebook_pixel"],
            "has_hotjar": analytics["has_hotjar"],
            "inline_css": bool(soup.find("style")) or len(soup.select("[style]")) > 5,
            "inline_js": inline_js,
            "has_service_worker": "serviceWorker" in html or "service-worker" in html,
            "has_manifest": _has_rel(soup, "manifest"),
        },
        "contact": extractors.extract_contact(html, soup),
        "security": {
            "is_https": is_https,
            "has_mixed_content": has_mixed_content,
            "external_scripts": _external_script_hosts(soup, url),
        },
        "accessibility": _accessibility(html, soup),
        "performance": _performance(soup),
        "design": extractors.extract_design(html, soup),
        "business": extractors.extract_business(html, soup, all_links, text_content),
        "readability": extractors.compute_readability(text_content),
    }


# --- Network -----------------------------------------------------------------


class SiteScraper:
    """Network probes against one website. Pass a `requests.Session` (or fake) for tests."""

    def __init__(self, session: requests.Session | None = None):
        self.session = session or requests.Session()

    def scrape(self, url: str) -> ScrapedSignals:
        """Fetch the homepage and parse it. Network and HTTP errors propagate."""
        response = self.session.get(url, timeout=PAGE_TIMEOUT, headers=_REQUEST_HEADERS)
        response.raise_for_status()
        return parse_html(response.text, url)

    def check_robots_sitemap(self, url: str) -> RobotsSitemap:
        parsed = urlparse(url)
        origin = f"{parsed.scheme}://{parsed.netloc}"
        result = default_robots_sitemap()

        try:
            response = self.session.get(f"{origin}/robots.txt", timeout=ROBOTS_TIMEOUT)
            if response.ok:
                content = response.text
                result["has_robots_txt"] = True
                result["robots_txt_content"] = content
                if ROBOTS_BLOCK_ALL_RE.search(content):
                    result["robots_txt_issues"].append("Website komplett für Suchmaschinen blockiert")
                sitemap_match = ROBOTS_SITEMAP_RE.search(content)
                if sitemap_match:
                    result["sitemap_url"] = sitemap_match.group(1).strip()
                else:
                    result["robots_txt_issues"].append("Keine Sitemap in robots.txt verlinkt")
        except requests.RequestException as exc:
            logger.info("robots.txt fetch failed for %s: %s", url, exc)
            result["robots_txt_issues"].append("robots.txt konnte nicht geladen werden")

        candidates = [result["sitemap_url"], f"{origin}/sitemap.xml", f"{origin}/sitemap_index.xml"]
        for candidate in candidates:
            if not candidate:
                continue
            try:
                response = self.session.head(candidate, timeout=ROBOTS_TIMEOUT, allow_redirects=True)
            except requests.RequestException:
                continue
            if response.ok:
                result["has_sitemap"] = True
                result["sitemap_url"] = candidate
                break

        if not result["has_sitemap"]:
            result["sitemap_issues"].append("Keine Sitemap gefunden")
        return result

    def check_security_headers(self, url: str) -> SecurityHeaders:
        """Weighted score over eight response headers; 0 with one issue if the probe fails."""
        result: SecurityHeaders = {"headers": {}, "score": 0, "issues": [], "recommendations": []}
        try:
            response = self.session.head(url, timeout=HEADERS_TIMEOUT, allow_redirects=True)
        except requests.RequestException as exc:
            logger.info("Security header probe failed for %s: %s", url, exc)
            result["issues"].append("Security Headers konnten nicht geprüft werden")
            return result

        total_weight = earned = 0
        for name, label, weight in SECURITY_HEADERS:
            value = response.headers.get(name)
            result["headers"][name] = value
            total_weight += weight
            if value:
                earned += weight
                continue
            result["issues"].append(f"{label} Header fehlt")
            if name in SECURITY_RECOMMENDATIONS:
                result["recommendations"].append(SECURITY_RECOMMENDATIONS[name])

        result["score"] = int(earned / total_weight * 100 + 0.5)
        return result

    def _check_link(self, link: LinkInfo, base_url: str) -> BrokenLink | None:
        href = str(link.get("href") or "")
        try:
            full_url = href if href.startswith("http") else urljoin(base_url, href)
            if urlparse(full_url).scheme not in ("http", "https"):
                return None
        except ValueError:
            logger.info("Skipping malformed link %r", href)
            return None

        try:
            response = self.session.head(full_url, timeout=LINK_TIMEOUT, allow_redirects=True)
        except (requests.exceptions.InvalidURL, requests.exceptions.InvalidSchema, requests.exceptions.MissingSchema):
            return None
        except requests.RequestException:
            return {"url": full_url, "status": "Timeout", "type": "timeout"}

        if response.status_code >= 400:
            return {"url": full_url, "status": response.status_code, "type": "broken"}
        if response.history:
            return {"url": full_url, "status": response.status_code, "type": "redirect"}
        return None

    def check_broken_links(self, links: list[LinkInfo], base_url: str, limit: int = 8) -> list[BrokenLink]:
        """HEAD the first `limit` links concurrently and keep the problematic ones."""
        to_check = links[: max(0, min(limit, MAX_LINK_CHECKS))]
        if not to_check:
            return []
        with ThreadPoolExecutor(max_workers=len(to_check)) as pool:
            results = list(pool.map(lambda link: self._check_link(link, base_url), to_check))
        return [result for result in results if result is not None]
