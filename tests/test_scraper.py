import pytest
import requests

from conftest import SALON_HTML, SITE_URL, FakeResponse, FakeSession
from scraper import SiteScraper, default_scraped, parse_html


def test_parse_html_meta_and_headings():
    scraped = parse_html(SALON_HTML, SITE_URL)
    meta = scraped["meta"]
    assert meta["title"] == "Friseur Muster Wien | Haarschnitt und Farbe"
    assert meta["title_length"] == len(meta["title"])
    assert meta["description"] == "Ihr Friseursalon in Wien."
    assert meta["canonical"] == "https://example.com/"
    assert meta["lang"] == "de"
    assert meta["og_tags"] == {"title": "Friseur Muster"}
    assert scraped["headings"]["h1"] == ["Friseur Muster"]
    assert len(scraped["headings"]["h2"]) == 2


def test_parse_html_images_and_links():
    scraped = parse_html(SALON_HTML, SITE_URL)
    assert scraped["images"]["total"] == 2
    assert scraped["images"]["missing_alt"] == 1
    assert scraped["images"]["lazy_loaded"] == 1

    links = scraped["links"]
    assert links["internal"] == 2
    assert links["external"] == 2
    assert links["total"] == 4
    assert all(not link["href"].startswith("mailto:") for link in links["all_links"])


def test_parse_html_technical_and_business_signals():
    scraped = parse_html(SALON_HTML, SITE_URL)
    technical = scraped["technical"]
    assert technical["detected_cms"] == "WordPress"
    assert technical["has_viewport"]
    assert technical["has_favicon"]
    assert technical["structured_data_types"] == ["HairSalon"]
    assert technical["has_google_tag_manager"]

    assert scraped["contact"]["emails"] == ["hallo@muster.at"]
    assert scraped["contact"]["social_links"] == {"instagram": "https://www.instagram.com/muster"}
    assert scraped["business"]["has_online_booking"]
    assert scraped["business"]["booking_system"] == "Calendly"
    assert scraped["business"]["has_impressum"]
    assert scraped["design"]["colors"] == ["#e91e63"]
    assert scraped["design"]["fonts"] == ["Lato"]
    assert scraped["security"]["is_https"]
    assert scraped["content"]["reading_time"] == 1


def test_visible_text_skips_scripts():
    scraped = parse_html(SALON_HTML, SITE_URL)
    text = scraped["content"]["text_content"]
    assert "Willkommen im Salon" in text
    assert "schema.org" not in text
    assert "font-family" not in text


def test_default_scraped_is_fully_populated():
    scraped = default_scraped("http://example.com")
    assert scraped["security"]["is_https"] is False
    assert scraped["readability"]["level"] == "N/A"
    assert scraped["headings"]["h6"] == []


def test_scrape_raises_on_http_error():
    scraper = SiteScraper(FakeSession({("GET", SITE_URL): FakeResponse(500)}))
    with pytest.raises(requests.HTTPError):
        scraper.scrape(SITE_URL)


def test_robots_block_all_and_linked_sitemap():
    robots = "User-agent: *\nDisallow: /\nSitemap: https://example.com/custom-sitemap.xml\n"
    session = FakeSession({
        ("GET", f"{SITE_URL}/robots.txt"): FakeResponse(200, text=robots),
        ("HEAD", "https://example.com/custom-sitemap.xml"): FakeResponse(200),
    })
    result = SiteScraper(session).check_robots_sitemap(SITE_URL)
    assert result["has_robots_txt"]
    assert "Website komplett für Suchmaschinen blockiert" in result["robots_txt_issues"]
    assert result["has_sitemap"]
    assert result["sitemap_url"] == "https://example.com/custom-sitemap.xml"


def test_robots_partial_disallow_is_not_a_full_block():
    session = FakeSession({
        ("GET", f"{SITE_URL}/robots.txt"): FakeResponse(200, text="User-agent: *\nDisallow: /admin\n"),
        ("HEAD", f"{SITE_URL}/sitemap.xml"): FakeResponse(200),
    })
    result = SiteScraper(session).check_robots_sitemap(SITE_URL)
    assert result["robots_txt_issues"] == ["Keine Sitemap in robots.txt verlinkt"]
    assert result["sitemap_url"] == f"{SITE_URL}/sitemap.xml"


def test_missing_robots_and_sitemap():
    result = SiteScraper(FakeSession()).check_robots_sitemap(SITE_URL)
    assert not result["has_robots_txt"]
    assert not result["has_sitemap"]
    assert result["sitemap_issues"] == ["Keine Sitemap gefunden"]


def test_security_header_score_is_weighted():
    session = FakeSession({
        ("HEAD", SITE_URL): FakeResponse(
            200,
            headers={
                "Strict-Transport-Security": "max-age=1",
                "Content-Security-Policy": "default-src 'self'",
                "X-Frame-Options": "DENY",
            },
        )
    })
    result = SiteScraper(session).check_security_headers(SITE_URL)
    assert result["score"] == 60
    assert len(result["issues"]) == 5
    assert result["recommendations"] == ["X-Content-Type-Options: nosniff setzen"]


def test_security_header_probe_failure():
    session = FakeSession({("HEAD", SITE_URL): requests.ConnectionError("refused")})
    result = SiteScraper(session).check_security_headers(SITE_URL)
    assert result["score"] == 0
    assert result["issues"] == ["Security Headers konnten nicht geprüft werden"]


def test_check_broken_links_classifies_results():
    session = FakeSession({
        ("HEAD", f"{SITE_URL}/ok"): FakeResponse(200),
        ("HEAD", f"{SITE_URL}/missing"): FakeResponse(404),
        ("HEAD", "https://slow.example.org"): requests.Timeout("timed out"),
        ("HEAD", f"{SITE_URL}/moved"): FakeResponse(200, history=[FakeResponse(301)]),
    })
    links = [
        {"href": "/ok", "text": "", "is_external": False},
        {"href": "/missing", "text": "", "is_external": False},
        {"href": "https://slow.example.org", "text": "", "is_external": True},
        {"href": "/moved", "text": "", "is_external": False},
        {"href": "javascript:void(0)", "text": "", "is_external": False},
    ]
    results = SiteScraper(session).check_broken_links(links, SITE_URL)
    assert results == [
        {"url": f"{SITE_URL}/missing", "status": 404, "type": "broken"},
        {"url": "https://slow.example.org", "status": "Timeout", "type": "timeout"},
        {"url": f"{SITE_URL}/moved", "status": 200, "type": "redirect"},
    ]


def test_check_broken_links_respects_limit():
    session = FakeSession()
    links = [{"href": f"/page-{i}", "text": "", "is_external": False} for i in range(10)]
    results = SiteScraper(session).check_broken_links(links, SITE_URL, limit=2)
    assert len(results) == 2
    assert len(session.calls_to("HEAD")) == 2


def test_check_broken_links_skips_malformed_urls():
    session = FakeSession()
    links = [{"href": "http://[kaputt/seite", "text": "Alt", "is_external": True}]
    assert SiteScraper(session).check_broken_links(links, SITE_URL) == []
    assert session.calls_to("HEAD") == []
