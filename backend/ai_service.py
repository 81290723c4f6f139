"""
Narrative report content from Claude, with a deterministic German fallback.

The Claude API key is read from ANTHROPIC_API_KEY (see config.py). Without a
key, or when the call or the JSON parse fails, fallback_content is used so a
report is always produced.
"""

import json
import re
import time
from typing import Any, Callable

from anthropic import Anthropic

from errors import UpstreamError
from logger import get_logger
from models import AIContent, Recommendation
from retry import with_retry
from summary import CompositeSummary

logger = get_logger(__name__)

TEMPERATURE = 0.3
PRIORITIES = ("Hoch", "Mittel", "Niedrig")

SYSTEM_MESSAGE = """Du bist ein erfahrener SEO-Berater und Website-Analyst.
Antworte NUR mit gültigem, rohem JSON, das exakt dem Schema entspricht.
Kein Markdown, keine Code-Blöcke, kein Text außerhalb des JSON."""

USER_TEMPLATE = """## KUNDENDATEN
- Name: {client_name}
- Website: {website_url}

## ANALYSE-ERGEBNISSE
{summary_json}

## AUFGABE
Schreibe die Inhalte für einen persönlichen Website-Analyse-Report, der wie eine
echte Beratung wirkt. Erkläre Fachbegriffe verständlich, sei spezifisch mit
Zahlen und priorisiere Maßnahmen nach Impact.

- greeting: persönliche Anrede mit Vornamen
- summary: Gesamtnote ({overall_grade}) und die wichtigsten Erkenntnisse in 2-3 Sätzen
- keyInsights: 3 wichtigste Erkenntnisse
- performanceAnalysis: Core Web Vitals (LCP {lcp}, CLS {cls}) und Mobile vs Desktop erklärt
- seoAnalysis: Title, Meta Description, H1-Struktur, Bilder ohne Alt-Text{keyword_hint}
- securityAnalysis: HTTPS und Security Score {security_score}/100
- recommendations: 5-7 Maßnahmen, priority ist "Hoch", "Mittel" oder "Niedrig"
- positives: 2-3 Dinge, die die Website bereits gut macht
- conclusion: Abschluss mit Einladung zum kostenlosen Beratungsgespräch

Verwende keine doppelten Anführungszeichen innerhalb von JSON-Strings.

Gib NUR diese JSON-Struktur zurück:

{{
  "greeting": "string",
  "summary": "string",
  "keyInsights": ["string"],
  "performanceAnalysis": "string",
  "seoAnalysis": "string",
  "securityAnalysis": "string",
  "recommendations": [
    {{ "priority": "Hoch", "title": "string", "description": "string", "impact": "string" }}
  ],
  "positives": ["string"],
  "conclusion": "string"
}}"""

COMPACT_RETRY_SUFFIX = """
Die vorherige Antwort war kein gültiges oder vollständiges JSON.
Erzeuge das komplette JSON erneut und halte es kompakt:
- keyInsights: genau 3 kurze Punkte
- recommendations: genau 5 Einträge
- alle Klammern schließen
Kein Text außerhalb des JSON.
"""


FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


def _extract_json(text: str) -> dict | None:
    """Strip code fences and parse the span between the first `{` and the last `}`."""
    text = FENCE_RE.sub("", (text or "").strip())
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end < start:
        return None
    try:
        parsed = json.loads(text[start : end + 1])
    except ValueError as e:
        logger.warning("Claude JSON parse error: %s", e)
        return None
    return parsed if isinstance(parsed, dict) else None


def _extract_response_text(response: object) -> str:
    content = ""
    for block in getattr(response, "content", []) or []:
        text = getattr(block, "text", None)
        if text:
            content += text
    return content.strip()


def _is_retryable_error(exc: BaseException) -> bool:
    if isinstance(exc, UpstreamError):
        return True
    msg = str(exc).lower()
    retry_tokens = (
        "overloaded",
        "529",
        "rate limit",
        "rate_limit",
        "429",
        "500",
        "502",
        "503",
        "504",
        "timeout",
    )
    return any(token in msg for token in retry_tokens)


def _normalize_content(raw: dict) -> AIContent:
    """Map Claude's camelCase JSON onto AIContent, dropping anything malformed."""
    def text(v) -> str:
        return str(v).strip() if isinstance(v, (str, int, float)) else ""

    def str_list(v) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(x).strip() for x in v if isinstance(x, (str, int, float)) and str(x).strip()]

    def recommendation_list(v) -> list[Recommendation]:
        if not isinstance(v, list):
            return []
        out: list[Recommendation] = []
        for item in v:
            if not isinstance(item, dict):
                continue
            title = text(item.get("title"))
            if not title:
                continue
            priority = text(item.get("priority"))
            out.append({
                "priority": priority if priority in PRIORITIES else "Mittel",
                "title": title,
                "description": text(item.get("description")),
                "impact": text(item.get("impact")),
            })
        return out

    return {
        "greeting": text(raw.get("greeting")),
        "summary": text(raw.get("summary")),
        "key_insights": str_list(raw.get("keyInsights")),
        "performance_analysis": text(raw.get("performanceAnalysis")),
        "seo_analysis": text(raw.get("seoAnalysis")),
        "security_analysis": text(raw.get("securityAnalysis")),
        "recommendations": recommendation_list(raw.get("recommendations")),
        "positives": str_list(raw.get("positives")),
        "conclusion": text(raw.get("conclusion")),
    }


def _is_usable(content: AIContent) -> bool:
    return bool(content["summary"] and content["recommendations"])


def _fmt(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def fallback_content(summary: CompositeSummary) -> AIContent:
    """Deterministic German report content built from the summary numbers alone."""
    scores = summary.get("scores") or {}
    seo = summary.get("seo_on_page") or {}
    images = summary.get("images") or {}
    technical = summary.get("technical") or {}
    security = summary.get("security") or {}
    performance = summary.get("performance") or {}
    links = summary.get("links") or {}
    business = summary.get("business") or {}
    accessibility = summary.get("accessibility") or {}

    name = summary.get("client_name") or ""
    website = summary.get("website_url") or "Ihre Website"
    grade = summary.get("overall_grade") or "F"

    perf = scores.get("performance", 0)
    seo_score = scores.get("seo", 0)
    sec = scores.get("security", 0)
    acc = scores.get("accessibility", 0)

    recommendations: list[Recommendation] = []
    if perf < 50:
        recommendations.append({
            "priority": "Hoch",
            "title": "Ladezeit deutlich verbessern",
            "description": f"Der mobile Performance-Score liegt bei {_fmt(perf)}/100. Bilder komprimieren, "
                           "ungenutztes JavaScript entfernen und Caching aktivieren.",
            "impact": "Weniger Absprünge und bessere Rankings",
        })
    elif perf < 80:
        recommendations.append({
            "priority": "Mittel",
            "title": "Performance optimieren",
            "description": f"Mit {_fmt(perf)}/100 ist die Ladezeit ausbaufähig. Moderne Bildformate und "
                           "Textkomprimierung bringen schnelle Gewinne.",
            "impact": "Schnellere Seite auf dem Smartphone",
        })
    if seo.get("h1") == "FEHLT!":
        recommendations.append({
            "priority": "Hoch",
            "title": "H1-Überschrift ergänzen",
            "description": "Die Startseite hat keine H1-Überschrift. Google nutzt sie, um das Thema der Seite zu verstehen.",
            "impact": "Klareres Thema für Suchmaschinen",
        })
    if seo.get("description_status") == "optimieren":
        recommendations.append({
            "priority": "Mittel",
            "title": "Meta Description überarbeiten",
            "description": f"Die Meta Description hat {_fmt(seo.get('description_length', 0))} Zeichen. "
                           "Ideal sind 120 bis 160 Zeichen mit klarem Nutzen.",
            "impact": "Mehr Klicks in den Suchergebnissen",
        })
    if seo.get("title_status") == "optimieren":
        recommendations.append({
            "priority": "Mittel",
            "title": "Title Tag optimieren",
            "description": f"Der Title hat {_fmt(seo.get('title_length', 0))} Zeichen. "
                           "Ideal sind 30 bis 60 Zeichen mit dem wichtigsten Keyword.",
            "impact": "Bessere Sichtbarkeit bei Google",
        })
    if images.get("missing_alt", 0) > 0:
        recommendations.append({
            "priority": "Mittel",
            "title": "Alt-Texte für Bilder ergänzen",
            "description": f"{_fmt(images.get('missing_alt', 0))} von {_fmt(images.get('total', 0))} Bildern "
                           "haben keinen Alt-Text.",
            "impact": "Barrierefreiheit und Bilder-SEO",
        })
    if not technical.get("is_https", False):
        recommendations.append({
            "priority": "Hoch",
            "title": "HTTPS aktivieren",
            "description": "Die Website wird nicht verschlüsselt ausgeliefert. Browser warnen Besucher davor.",
            "impact": "Vertrauen und Rankings",
        })
    if sec < 50:
        recommendations.append({
            "priority": "Mittel",
            "title": "Security Header setzen",
            "description": f"Der Security Score liegt bei {_fmt(sec)}/100. "
                           + "; ".join(security.get("recommendations") or ["HSTS und CSP konfigurieren"]),
            "impact": "Schutz vor Angriffen wie XSS und Clickjacking",
        })
    if links.get("broken", 0) > 0:
        recommendations.append({
            "priority": "Mittel",
            "title": "Defekte Links reparieren",
            "description": f"{_fmt(links.get('broken', 0))} Links führen ins Leere.",
            "impact": "Bessere Nutzererfahrung",
        })
    if not business.get("has_online_booking", False):
        recommendations.append({
            "priority": "Niedrig",
            "title": "Online-Terminbuchung anbieten",
            "description": "Kunden können aktuell keinen Termin direkt online buchen.",
            "impact": "Mehr Buchungen rund um die Uhr",
        })
    if not technical.get("has_sitemap", False):
        recommendations.append({
            "priority": "Niedrig",
            "title": "XML-Sitemap bereitstellen",
            "description": "Es wurde keine Sitemap gefunden. Sie hilft Google, alle Seiten zu finden.",
            "impact": "Vollständigere Indexierung",
        })
    if not recommendations:
        recommendations.append({
            "priority": "Niedrig",
            "title": "Inhalte regelmäßig erweitern",
            "description": "Die technische Basis ist solide. Neue Inhalte zu Ihren Leistungen stärken die Sichtbarkeit.",
            "impact": "Mehr Keywords und Besucher",
        })

    positives: list[str] = []
    if technical.get("is_https", False):
        positives.append("Die Website ist per HTTPS verschlüsselt.")
    if technical.get("has_viewport", False):
        positives.append("Die Seite ist für mobile Geräte vorbereitet.")
    if perf >= 80:
        positives.append(f"Sehr gute mobile Performance mit {_fmt(perf)}/100.")
    if seo_score >= 80:
        positives.append(f"Solide SEO-Grundlagen mit {_fmt(seo_score)}/100.")
    if business.get("has_impressum", False):
        positives.append("Ein Impressum ist vorhanden.")
    if not positives:
        positives.append("Die Website ist online erreichbar und bietet eine gute Basis für Verbesserungen.")

    return {
        "greeting": f"Hallo {name}," if name else "Hallo,",
        "summary": f"Wir haben {website} analysiert. Die Gesamtnote lautet {grade}: "
                   f"Performance {_fmt(perf)}, SEO {_fmt(seo_score)}, Sicherheit {_fmt(sec)} "
                   f"und Barrierefreiheit {_fmt(acc)} von 100 Punkten.",
        "key_insights": [
            f"Mobile Performance: {_fmt(performance.get('mobile', 0))}/100, "
            f"Desktop: {_fmt(performance.get('desktop', 0))}/100.",
            f"{_fmt(images.get('missing_alt', 0))} von {_fmt(images.get('total', 0))} Bildern ohne Alt-Text.",
            f"Security Score: {_fmt(security.get('score', 0))}/100.",
        ],
        "performance_analysis": f"Der Largest Contentful Paint liegt bei {performance.get('lcp') or 'N/A'}, "
                                f"der Cumulative Layout Shift bei {performance.get('cls') or 'N/A'}. "
                                "Diese Werte zeigen, wie schnell der Hauptinhalt sichtbar wird und wie "
                                "stabil das Layout beim Laden bleibt.",
        "seo_analysis": f"Der Title hat {_fmt(seo.get('title_length', 0))} Zeichen "
                        f"({seo.get('title_status') or 'optimieren'}), die Meta Description "
                        f"{_fmt(seo.get('description_length', 0))} Zeichen "
                        f"({seo.get('description_status') or 'optimieren'}). "
                        f"Es gibt {_fmt(seo.get('h1_count', 0))} H1-Überschrift(en).",
        "security_analysis": f"HTTPS: {'aktiv' if technical.get('is_https', False) else 'nicht aktiv'}. "
                             f"Security Score: {_fmt(security.get('score', 0))}/100. "
                             f"Barrierefreiheit: {_fmt(accessibility.get('score', 0))}/100.",
        "recommendations": recommendations[:7],
        "positives": positives[:3],
        "conclusion": "Gerne besprechen wir die Ergebnisse in einem kostenlosen Beratungsgespräch "
                      "und zeigen Ihnen, wie Sie die wichtigsten Punkte schnell umsetzen.",
    }


class ReportWriter:
    """Generates report content with Claude; any failure yields fallback_content."""

    def __init__(
        self,
        client: Anthropic | None = None,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 4000,
        max_retries: int = 3,
        retry_base: float = 3.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.max_retries = max(1, max_retries)
        self.retry_base = retry_base
        self.sleep = sleep

    def _build_user_message(self, summary: CompositeSummary) -> str:
        performance = summary.get("performance") or {}
        seo_analysis = summary.get("seo_analysis") or {}
        keyword_hint = (
            f", Rankings für {seo_analysis.get('organic_keywords', 0)} Keywords und das Backlink-Profil"
            if seo_analysis.get("available")
            else ", die extrahierten Keywords und warum Backlinks wichtig sind"
        )
        return USER_TEMPLATE.format(
            client_name=summary.get("client_name") or "",
            website_url=summary.get("website_url") or "",
            summary_json=json.dumps(summary, ensure_ascii=False, indent=2, default=str),
            overall_grade=summary.get("overall_grade") or "F",
            lcp=performance.get("lcp") or "N/A",
            cls=performance.get("cls") or "N/A",
            security_score=_fmt((summary.get("security") or {}).get("score", 0)),
            keyword_hint=keyword_hint,
        )

    def _request(self, user_message: str) -> str:
        response = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=SYSTEM_MESSAGE,
            messages=[{"role": "user", "content": user_message}],
            temperature=TEMPERATURE,
        )
        if getattr(response, "stop_reason", None) == "max_tokens":
            logger.warning("Claude output hit max_tokens for model=%s", self.model)
        content = _extract_response_text(response)
        if not content:
            raise UpstreamError("Claude", "empty response content")
        return content

    def _call_claude(self, user_message: str) -> str:
        return with_retry(
            lambda: self._request(user_message),
            label="Claude",
            attempts=self.max_retries,
            base_delay=self.retry_base,
            should_retry=_is_retryable_error,
            sleep=self.sleep,
        )

    def generate_content(self, summary: CompositeSummary) -> AIContent:
        """
        Ask Claude for the report narrative. One extra compact request is made
        when the first answer cannot be parsed. Never raises.
        """
        if self.client is None:
            logger.info("ANTHROPIC_API_KEY not configured, using fallback report content")
            return fallback_content(summary)

        try:
            user_message = self._build_user_message(summary)
            parsed = _extract_json(self._call_claude(user_message))
            if parsed is None:
                logger.warning("Claude returned invalid JSON, retrying once with compact instructions")
                parsed = _extract_json(self._call_claude(user_message + "\n" + COMPACT_RETRY_SUFFIX))
            if parsed is None:
                return fallback_content(summary)

            content = _normalize_content(parsed)
            if not _is_usable(content):
                logger.warning("Claude content incomplete, using fallback report content")
                return fallback_content(summary)
            return content
        except Exception as e:
            logger.error("Claude report generation failed: %s", e)
            return fallback_content(summary)
