import requests

from conftest import FakeResponse, FakeSession
from dataforseo import API_BASE, DataForSEOClient, domain_of, industry_keywords, location_for


def _task(result):
    return {"tasks": [{"result": result}]}


RANKED = _task([{
    "items": [
        {
            "keyword_data": {"keyword": "Kosmetikstudio Wien", "keyword_info": {"search_volume": 0}},
            "ranked_serp_element": {"serp_item": {"rank_absolute": 4, "url": "https://salon.at/", "title": "Salon"}},
        },
    ]
}])
BACKLINK_SUMMARY = _task([{"backlinks": 120, "referring_domains": 30, "rank": 15}])
BACKLINKS = _task([{"items": [{"url_from": "https://blog.at/a", "anchor": "Salon", "domain_from_rank": 20, "dofollow": True}]}])
COMPETITORS = _task([{
    "items": [{"domain": "konkurrenz.at", "avg_position": 12, "metrics": {"organic": {"etv": 50, "count": 80}}}]
}])
VOLUMES = _task([{
    "keyword": "kosmetikstudio wien",
    "search_volume": 1300,
    "cpc": 1.2,
    "competition": 0.4,
    "competition_level": "MEDIUM",
    "monthly_searches": [{"search_volume": 1200}, {"search_volume": 1400}],
}])


def _routes(overrides=None):
    routes = {
        ("POST", f"{API_BASE}/dataforseo_labs/google/ranked_keywords/live"): FakeResponse(200, json_data=RANKED),
        ("POST", f"{API_BASE}/backlinks/summary/live"): FakeResponse(200, json_data=BACKLINK_SUMMARY),
        ("POST", f"{API_BASE}/backlinks/backlinks/live"): FakeResponse(200, json_data=BACKLINKS),
        ("POST", f"{API_BASE}/dataforseo_labs/google/competitors_domain/live"): FakeResponse(200, json_data=COMPETITORS),
        ("POST", f"{API_BASE}/keywords_data/google_ads/search_volume/live"): FakeResponse(200, json_data=VOLUMES),
    }
    routes.update(overrides or {})
    return routes


def _client(session):
    return DataForSEOClient("login", "secret", session=session, sleep=lambda _: None)


def test_helpers():
    assert domain_of("https://www.salon.at/kontakt") == "salon.at"
    assert location_for("salon.de") == "Germany"
    assert location_for("salon.at") == "Austria"
    assert industry_keywords("Wien")[0] == "kosmetikstudio Wien"
    assert not DataForSEOClient().is_configured


def test_run_comprehensive_merges_results():
    session = FakeSession(_routes())
    analysis = _client(session).run_comprehensive("https://www.salon.at", ["haarschnitt"])

    assert analysis["domain"] == "salon.at"
    assert analysis["domain_metrics"]["domain_rank"] == 15
    assert analysis["domain_metrics"]["organic_keywords"] == 1
    assert analysis["backlinks"]["total_backlinks"] == 120
    assert analysis["backlinks"]["top_backlinks"][0]["is_dofollow"] is True
    assert analysis["competitors"][0]["metrics"]["organic_keywords"] == 80
    assert analysis["keywords"][0]["trend"] == [1200, 1400]
    assert analysis["rankings"][0]["position"] == 4
    assert analysis["rankings"][0]["search_volume"] == 1300

    _, _, kwargs = session.calls_to("POST")[0]
    assert kwargs["auth"] == ("login", "secret")


def test_run_comprehensive_degrades_per_call():
    session = FakeSession(_routes({
        ("POST", f"{API_BASE}/backlinks/summary/live"): FakeResponse(500, text="error"),
        ("POST", f"{API_BASE}/dataforseo_labs/google/competitors_domain/live"): requests.ConnectionError("down"),
    }))
    analysis = _client(session).run_comprehensive("https://salon.at")

    assert analysis["backlinks"]["total_backlinks"] == 0
    assert analysis["competitors"] == []
    assert analysis["rankings"][0]["keyword"] == "Kosmetikstudio Wien"
