"""
Analysis pipeline for one lead.

Status is persisted before each step so the widget can poll progress:
queued -> analyzing_performance -> analyzing_seo -> checking_links ->
generating_report -> saving_results -> sending_email -> completed.
Any unhandled error sets the lead to `failed` and raises PipelineError.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypedDict

from ai_service import ReportWriter
from database import Database
from dataforseo import DataForSEOClient
from errors import LeadNotFoundError, PipelineError
from extractors import extract_keywords
from logger import get_logger
from mailer import BrevoMailer, analysis_subject
from models import RawMetrics, RobotsSitemap, ScrapedSignals, SecurityHeaders
from pagespeed import PageSpeedClient
from report import render_report_html
from scraper import SiteScraper, default_robots_sitemap, default_scraped, default_security_headers
from summary import build_summary

logger = get_logger(__name__)

KEYWORD_TEXT_LIMIT = 2000


class PipelineScores(TypedDict):
    performance_mobile: int
    performance_desktop: int
    seo: int
    accessibility: int
    security: int


class PipelineResult(TypedDict):
    analysis_id: str
    scores: PipelineScores
    has_dataforseo: bool


def _analysis_row(
    mobile: RawMetrics,
    desktop: RawMetrics,
    scraped: ScrapedSignals,
    robots_sitemap: RobotsSitemap,
    security_headers: SecurityHeaders,
    broken_links: list,
    seo_analysis: dict | None,
    recommendations: list,
    html_report: str,
) -> dict[str, Any]:
    """Flatten one run into analysis_results columns."""
    meta = scraped["meta"]
    headings = scraped["headings"]
    links = scraped["links"]
    return {
        "performance_score_mobile": mobile["scores"]["performance"],
        "performance_score_desktop": desktop["scores"]["performance"],
        "accessibility_score": mobile["scores"]["accessibility"],
        "best_practices_score": mobile["scores"]["best_practices"],
        "seo_score": mobile["scores"]["seo"],
        "lcp_mobile": mobile["core_web_vitals"]["lcp"],
        "lcp_desktop": desktop["core_web_vitals"]["lcp"],
        "fcp_mobile": mobile["core_web_vitals"]["fcp"],
        "fcp_desktop": desktop["core_web_vitals"]["fcp"],
        "cls_mobile": mobile["core_web_vitals"]["cls"],
        "cls_desktop": desktop["core_web_vitals"]["cls"],
        "tbt_mobile": mobile["core_web_vitals"]["tbt"],
        "tbt_desktop": desktop["core_web_vitals"]["tbt"],
        "meta_title": meta["title"],
        "meta_title_length": meta["title_length"],
        "meta_description": meta["description"],
        "meta_description_length": meta["description_length"],
        "has_h1": bool(headings["h1"]),
        "h1_count": len(headings["h1"]),
        "h2_count": len(headings["h2"]),
        "h3_count": len(headings["h3"]),
        "missing_alt_images": scraped["images"]["missing_alt"],
        "total_images": scraped["images"]["total"],
        "has_sitemap": robots_sitemap["has_sitemap"],
        "has_robots_txt": robots_sitemap["has_robots_txt"],
        "is_https": scraped["security"]["is_https"],
        "is_mobile_friendly": scraped["technical"]["has_viewport"],
        "detected_cms": scraped["technical"]["detected_cms"],
        "detected_technologies": scraped["technical"]["detected_technologies"],
        "security_score": security_headers["score"],
        "total_links": links["total"],
        "internal_links": links["internal"],
        "external_links": links["external"],
        "broken_links_count": sum(1 for link in broken_links if link.get("type") == "broken"),
        "broken_links": broken_links,
        "ai_recommendations": recommendations,
        "html_report": html_report,
        "raw_mobile_data": mobile,
        "raw_desktop_data": desktop,
        "raw_seo_data": {
            "scraped": scraped,
            "robots_sitemap": robots_sitemap,
            "security_headers": security_headers,
            "seo_analysis": seo_analysis,
        },
        "screenshot_url": mobile.get("screenshot"),
    }


class AnalysisPipeline:
    def __init__(
        self,
        database: Database,
        pagespeed: PageSpeedClient,
        scraper: SiteScraper,
        dataforseo: DataForSEOClient,
        writer: ReportWriter,
        mailer: BrevoMailer,
        broken_link_limit: int = 8,
    ):
        self.database = database
        self.pagespeed = pagespeed
        self.scraper = scraper
        self.dataforseo = dataforseo
        self.writer = writer
        self.mailer = mailer
        self.broken_link_limit = broken_link_limit

    def _set_status(self, lead_id: str, status: str) -> None:
        self.database.update_lead_status(lead_id, status)
        logger.info("[%s] Status: %s", lead_id, status)

    def _fetch_all(self, lead_id: str, url: str):
        """Step 1 fan-out. Only the mobile PageSpeed run is allowed to fail the pipeline."""
        with ThreadPoolExecutor(max_workers=5, thread_name_prefix="fetch") as pool:
            mobile_future = pool.submit(self.pagespeed.analyze, url, "mobile")
            desktop_future = pool.submit(self.pagespeed.analyze, url, "desktop")
            scrape_future = pool.submit(self.scraper.scrape, url)
            robots_future = pool.submit(self.scraper.check_robots_sitemap, url)
            headers_future = pool.submit(self.scraper.check_security_headers, url)

            mobile = mobile_future.result()

            try:
                desktop = desktop_future.result()
            except Exception as exc:
                logger.warning("[%s] Desktop PageSpeed failed, using mobile data: %s", lead_id, exc)
                desktop = {**mobile, "type": "desktop"}

            try:
                scraped = scrape_future.result()
            except Exception as exc:
                logger.error("[%s] Scrape failed: %s", lead_id, exc)
                scraped = default_scraped(url)

            try:
                robots_sitemap = robots_future.result()
            except Exception as exc:
                logger.error("[%s] robots/sitemap check failed: %s", lead_id, exc)
                robots_sitemap = default_robots_sitemap()

            try:
                security_headers = headers_future.result()
            except Exception as exc:
                logger.error("[%s] Security header check failed: %s", lead_id, exc)
                security_headers = default_security_headers()

        return mobile, desktop, scraped, robots_sitemap, security_headers

    def run(self, lead_id: str) -> PipelineResult:
        lead = self.database.get_lead(lead_id)
        if lead is None:
            raise LeadNotFoundError(lead_id)

        url = lead["website_url"]
        logger.info("[%s] Starting analysis for %s", lead_id, url)

        try:
            self._set_status(lead_id, "analyzing_performance")
            mobile, desktop, scraped, robots_sitemap, security_headers = self._fetch_all(lead_id, url)

            self._set_status(lead_id, "analyzing_seo")
            keywords = extract_keywords(
                scraped["meta"]["title"],
                scraped["meta"]["description"],
                scraped["headings"]["h1"] + scraped["headings"]["h2"],
                scraped["content"]["text_content"][:KEYWORD_TEXT_LIMIT],
            )
            logger.info("[%s] Extracted keywords: %s", lead_id, ", ".join(keywords[:5]))

            seo_analysis = None
            if self.dataforseo.is_configured:
                try:
                    seo_analysis = self.dataforseo.run_comprehensive(url, keywords)
                except Exception as exc:
                    logger.error("[%s] DataForSEO error, continuing without: %s", lead_id, exc)
            else:
                logger.info("[%s] DataForSEO not configured, skipping SEO deep analysis", lead_id)

            self._set_status(lead_id, "checking_links")
            broken_links = self.scraper.check_broken_links(
                scraped["links"]["all_links"], url, self.broken_link_limit
            )

            self._set_status(lead_id, "generating_report")
            summary = build_summary(
                mobile=mobile,
                desktop=desktop,
                scraped=scraped,
                broken_links=broken_links,
                robots_sitemap=robots_sitemap,
                security_headers=security_headers,
                client_name=lead["first_name"],
                website_url=url,
                seo_analysis=seo_analysis,
                extracted_keywords=keywords,
            )
            content = self.writer.generate_content(summary)
            html_report = render_report_html(content, summary)

            self._set_status(lead_id, "saving_results")
            analysis_id = self.database.insert_analysis_result(
                lead_id,
                _analysis_row(
                    mobile,
                    desktop,
                    scraped,
                    robots_sitemap,
                    security_headers,
                    broken_links,
                    seo_analysis,
                    content["recommendations"],
                    html_report,
                ),
            )

            self._set_status(lead_id, "sending_email")
            email_sent = self.mailer.send_analysis_email(
                to=lead["email"],
                to_name=lead["first_name"],
                subject=analysis_subject(lead["first_name"]),
                html_content=html_report,
            )

            self._set_status(lead_id, "completed")
            if email_sent:
                self.database.mark_email_sent(analysis_id)
            logger.info("[%s] Analysis completed", lead_id)

        except Exception as exc:
            logger.exception("[%s] Analysis error", lead_id)
            try:
                self.database.update_lead_status(lead_id, "failed")
            except Exception as status_exc:
                logger.error("[%s] Could not mark lead as failed: %s", lead_id, status_exc)
            raise PipelineError(lead_id, str(exc) or exc.__class__.__name__) from exc

        return {
            "analysis_id": analysis_id,
            "scores": {
                "performance_mobile": mobile["scores"]["performance"],
                "performance_desktop": desktop["scores"]["performance"],
                "seo": mobile["scores"]["seo"],
                "accessibility": mobile["scores"]["accessibility"],
                "security": security_headers["score"],
            },
            "has_dataforseo": seo_analysis is not None,
        }
