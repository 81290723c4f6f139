"""Data models and types used across the backend.

Database table definitions are in database.py.
Types for fetchers, the composite summary and AI output live here.
"""

from typing import TypedDict


# --- PageSpeed ---------------------------------------------------------------


class PageSpeedScores(TypedDict):
    performance: int
    seo: int
    accessibility: int
    best_practices: int


class CoreWebVitals(TypedDict):
    lcp: str
    fcp: str
    cls: str
    tbt: str
    speed_index: str


class PageMetrics(TypedDict):
    total_size: str
    total_requests: int
    time_to_interactive: str


class Opportunities(TypedDict):
    reduce_unused_js: str
    reduce_unused_css: str
    serve_modern_images: str
    text_compression: str


class SeoFindings(TypedDict):
    meta_description: str
    robots_txt: str
    link_text: str


class RawMetrics(TypedDict, total=False):
    """One PageSpeed Insights run for a single device strategy."""

    type: str
    url: str
    fetch_time: str
    overall_grade: str
    scores: PageSpeedScores
    core_web_vitals: CoreWebVitals
    page_metrics: PageMetrics
    opportunities: Opportunities
    seo_findings: SeoFindings
    best_practices_issues: list[str]
    screenshot: str | None


# --- Scraper -----------------------------------------------------------------


class MetaSignals(TypedDict):
    title: str
    title_length: int
    description: str
    description_length: int
    canonical: str
    robots: str
    og_tags: dict[str, str]
    twitter_tags: dict[str, str]
    lang: str
    keywords: str
    author: str
    generator: str


class ImageSignals(TypedDict):
    total: int
    missing_alt: int
    lazy_loaded: int
    with_dimensions: int
    images: list[dict]


class LinkInfo(TypedDict):
    href: str
    text: str
    is_external: bool


class LinkSignals(TypedDict):
    internal: int
    external: int
    total: int
    nofollow: int
    empty_anchors: int
    all_links: list[LinkInfo]


class ContentSignals(TypedDict):
    word_count: int
    text_content: str
    reading_time: int


class TechnicalSignals(TypedDict):
    has_viewport: bool
    has_favicon: bool
    has_structured_data: bool
    structured_data_types: list[str]
    detected_cms: str | None
    detected_technologies: list[str]
    has_google_analytics: bool
    has_google_tag_manager: bool
    has_facebook_pixel: bool
    has_hotjar: bool
    inline_css: bool
    inline_js: bool
    has_service_worker: bool
    has_manifest: bool


class ContactSignals(TypedDict):
    emails: list[str]
    phones: list[str]
    addresses: list[str]
    has_contact_form: bool
    social_links: dict[str, str]


class SecuritySignals(TypedDict):
    is_https: bool
    has_mixed_content: bool
    external_scripts: list[str]


class AccessibilitySignals(TypedDict):
    has_skip_link: bool
    has_main_landmark: bool
    has_nav_landmark: bool
    forms_with_labels: int
    forms_without_labels: int
    has_aria_labels: bool
    tabindex_issues: int
    contrast_issues_hint: bool


class PerformanceSignals(TypedDict):
    total_scripts: int
    external_scripts: int
    total_stylesheets: int
    external_stylesheets: int
    has_async_scripts: bool
    has_defer_scripts: bool
    has_preconnect: bool
    has_preload: bool
    has_dns_prefetch: bool
    estimated_dom_size: int
    iframe_count: int


class DesignSignals(TypedDict):
    colors: list[str]
    fonts: list[str]
    has_dark_mode: bool


class BusinessSignals(TypedDict):
    has_online_booking: bool
    booking_system: str | None
    has_google_maps: bool
    has_price_list: bool
    has_impressum: bool
    has_datenschutz: bool
    has_agb: bool


class Readability(TypedDict):
    avg_sentence_length: int
    avg_word_length: float
    score: int
    level: str


class ScrapedSignals(TypedDict):
    """Structured output of the homepage scraper."""

    meta: MetaSignals
    headings: dict[str, list[str]]
    images: ImageSignals
    links: LinkSignals
    content: ContentSignals
    technical: TechnicalSignals
    contact: ContactSignals
    security: SecuritySignals
    accessibility: AccessibilitySignals
    performance: PerformanceSignals
    design: DesignSignals
    business: BusinessSignals
    readability: Readability


class RobotsSitemap(TypedDict):
    has_robots_txt: bool
    robots_txt_content: str | None
    robots_txt_issues: list[str]
    has_sitemap: bool
    sitemap_url: str | None
    sitemap_issues: list[str]


class SecurityHeaders(TypedDict):
    headers: dict[str, str | None]
    score: int
    issues: list[str]
    recommendations: list[str]


class BrokenLink(TypedDict):
    url: str
    status: int | str
    type: str


# --- DataForSEO --------------------------------------------------------------


class DomainMetrics(TypedDict):
    domain_rank: float
    organic_traffic: float
    organic_keywords: int
    backlinks: int
    referring_domains: int


class KeywordData(TypedDict):
    keyword: str
    search_volume: int
    cpc: float
    competition: float
    competition_level: str
    trend: list[int]


class RankingResult(TypedDict):
    keyword: str
    position: int | None
    url: str | None
    title: str | None
    search_volume: int


class BacklinkData(TypedDict):
    total_backlinks: int
    referring_domains: int
    domain_rank: float
    top_backlinks: list[dict]


class SeoAnalysis(TypedDict):
    domain: str
    analyzed_at: str
    domain_metrics: DomainMetrics
    keywords: list[KeywordData]
    rankings: list[RankingResult]
    backlinks: BacklinkData
    competitors: list[dict]


# --- Report ------------------------------------------------------------------


class Recommendation(TypedDict):
    priority: str
    title: str
    description: str
    impact: str


class AIContent(TypedDict):
    """Narrative report content, from Claude or the deterministic fallback."""

    greeting: str
    summary: str
    key_insights: list[str]
    performance_analysis: str
    seo_analysis: str
    security_analysis: str
    recommendations: list[Recommendation]
    positives: list[str]
    conclusion: str


class LeadRow(TypedDict):
    id: str
    first_name: str
    email: str
    website_url: str
    status: str
    created_at: str
