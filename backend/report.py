"""Deterministic HTML report assembly.

render_report_html is pure and total: every interpolated value passes through
_text, so missing or malformed fields render as empty strings or sentinels and
the markup never contains None, null or undefined.
"""

from html import escape
from typing import Any

from grading import score_color
from models import AIContent
from summary import CompositeSummary

CONTAINER_STYLE = (
    "max-width:680px;margin:0 auto;font-family:-apple-system,BlinkMacSystemFont,"
    "'Segoe UI',Roboto,sans-serif;color:#1f2937;line-height:1.6;"
)
HEADER_STYLE = (
    "background:linear-gradient(135deg,#1e1b4b 0%,#7c3aed 50%,#ec4899 100%);"
    "padding:40px 30px;border-radius:16px 16px 0 0;text-align:center;"
)
BODY_STYLE = "background:#ffffff;padding:30px;border:1px solid #e5e7eb;border-top:none;"
FOOTER_STYLE = "background:#111827;padding:24px 30px;border-radius:0 0 16px 16px;text-align:center;"
H2_STYLE = "font-size:20px;color:#111827;margin:32px 0 12px 0;"
P_STYLE = "margin:0 0 12px 0;font-size:15px;"

PRIORITY_COLORS = {
    "Hoch": ("#fef2f2", "#ef4444"),
    "Mittel": ("#fff7ed", "#f97316"),
    "Niedrig": ("#fefce8", "#eab308"),
}

CTA_URL = "https://calendly.com/arsenio-at"
CONTACT_LINE = "arsenio.at | office@arsenio.at | +43 660 150 3210"

SCORE_LABELS = [
    ("performance", "Performance"),
    ("seo", "SEO"),
    ("security", "Sicherheit"),
    ("accessibility", "Barrierefreiheit"),
]


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return escape(default)
    if isinstance(value, bool):
        return "Ja" if value else "Nein"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return escape(str(value))


def _section(data: Any, key: str) -> dict:
    value = data.get(key) if isinstance(data, dict) else None
    return value if isinstance(value, dict) else {}


def _list(data: Any, key: str) -> list:
    value = data.get(key) if isinstance(data, dict) else None
    return value if isinstance(value, list) else []


def _number(data: dict, key: str) -> float:
    value = data.get(key)
    return value if isinstance(value, (int, float)) and not isinstance(value, bool) else 0


def _fmt(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _paragraph(text: Any) -> str:
    body = _text(text)
    return f'<p style="{P_STYLE}">{body}</p>' if body else ""


def _bullets(items: list, color: str = "#374151") -> str:
    rows = "".join(
        f'<li style="margin:0 0 6px 0;color:{color};">{_text(item)}</li>'
        for item in items
        if item is not None and str(item).strip()
    )
    return f'<ul style="margin:0 0 12px 0;padding-left:20px;">{rows}</ul>' if rows else ""


def _check(flag: Any) -> str:
    return "✓" if flag else "✗"


def _score_cards(scores: dict) -> str:
    cells = []
    for key, label in SCORE_LABELS:
        value = _number(scores, key)
        color = score_color(value)
        cells.append(
            f'<td style="width:25%;padding:6px;">'
            f'<div style="border:2px solid {color};border-radius:12px;padding:14px 6px;text-align:center;">'
            f'<div style="font-size:28px;font-weight:700;color:{color};">{_text(value)}</div>'
            f'<div style="font-size:12px;color:#6b7280;">{escape(label)}</div>'
            f"</div></td>"
        )
    return (
        '<table role="presentation" style="width:100%;border-collapse:collapse;margin:0 0 8px 0;">'
        f"<tr>{''.join(cells)}</tr></table>"
    )


def _keyword_section(summary: dict) -> str:
    seo_analysis = _section(summary, "seo_analysis")
    if seo_analysis.get("available"):
        rankings = [
            f'"{r.get("keyword") or ""}" (Pos. {r.get("position") or ">100"})'
            for r in _list(seo_analysis, "rankings")
            if isinstance(r, dict)
        ]
        backlinks = _section(seo_analysis, "backlinks")
        return (
            f'<h2 style="{H2_STYLE}">Keywords &amp; Backlinks</h2>'
            + _paragraph(f"Aktuell rankt die Seite für {_fmt(_number(seo_analysis, 'organic_keywords'))} Keywords.")
            + (_paragraph("Top Rankings: " + ", ".join(rankings)) if rankings else "")
            + _paragraph(
                f"{_fmt(_number(backlinks, 'total'))} Backlinks von {_fmt(_number(backlinks, 'referring_domains'))} Domains, "
                f"Domain-Autorität {_fmt(_number(backlinks, 'domain_rank'))}."
            )
        )

    keywords = [k for k in _list(summary, "extracted_keywords") if isinstance(k, str)]
    if not keywords:
        return ""
    return (
        f'<h2 style="{H2_STYLE}">Keywords</h2>'
        + _paragraph("Auf Ihrer Startseite häufig verwendete Begriffe: " + ", ".join(keywords))
    )


def _technical_table(summary: dict) -> str:
    technical = _section(summary, "technical")
    seo = _section(summary, "seo_on_page")
    images = _section(summary, "images")
    links = _section(summary, "links")
    business = _section(summary, "business")
    rows = [
        ("HTTPS", _check(technical.get("is_https"))),
        ("Mobile Viewport", _check(technical.get("has_viewport"))),
        ("Sitemap", _check(technical.get("has_sitemap"))),
        ("robots.txt", _check(technical.get("has_robots_txt"))),
        ("Strukturierte Daten", _check(technical.get("has_structured_data"))),
        ("CMS", technical.get("cms") or "Unbekannt"),
        ("Title", f"{_fmt(_number(seo, 'title_length'))} Zeichen ({seo.get('title_status') or 'optimieren'})"),
        (
            "Meta Description",
            f"{_fmt(_number(seo, 'description_length'))} Zeichen ({seo.get('description_status') or 'optimieren'})",
        ),
        ("H1", seo.get("h1") or "FEHLT!"),
        ("Bilder ohne Alt-Text", f"{_fmt(_number(images, 'missing_alt'))} von {_fmt(_number(images, 'total'))}"),
        ("Defekte Links", f"{_fmt(_number(links, 'broken'))}"),
        ("Online-Buchung", _check(business.get("has_online_booking"))),
        ("Impressum", _check(business.get("has_impressum"))),
        ("Datenschutz", _check(business.get("has_datenschutz"))),
    ]
    body = "".join(
        f'<tr><td style="padding:8px;border-bottom:1px solid #f3f4f6;color:#6b7280;">{escape(label)}</td>'
        f'<td style="padding:8px;border-bottom:1px solid #f3f4f6;font-weight:600;">{_text(value)}</td></tr>'
        for label, value in rows
    )
    return (
        f'<h2 style="{H2_STYLE}">Technische Übersicht</h2>'
        f'<table role="presentation" style="width:100%;border-collapse:collapse;font-size:14px;">{body}</table>'
    )


def _recommendations(items: list) -> str:
    boxes = []
    for item in items:
        if not isinstance(item, dict):
            continue
        priority = item.get("priority") if item.get("priority") in PRIORITY_COLORS else "Mittel"
        background, border = PRIORITY_COLORS[priority]
        impact = _text(item.get("impact"))
        boxes.append(
            f'<div style="background:{background};border-left:4px solid {border};border-radius:8px;'
            f'padding:14px 16px;margin:0 0 12px 0;">'
            f'<div style="font-size:12px;font-weight:700;color:{border};text-transform:uppercase;">'
            f"Priorität {escape(priority)}</div>"
            f'<div style="font-weight:600;margin:4px 0;">{_text(item.get("title"))}</div>'
            f'<div style="font-size:14px;">{_text(item.get("description"))}</div>'
            + (f'<div style="font-size:13px;color:#6b7280;margin-top:6px;">Impact: {impact}</div>' if impact else "")
            + "</div>"
        )
    if not boxes:
        return ""
    return f'<h2 style="{H2_STYLE}">Top Maßnahmen</h2>' + "".join(boxes)


def render_report_html(content: AIContent | dict | None, summary: CompositeSummary | dict | None) -> str:
    """Render the full report. Always starts with a <div container."""
    content = content if isinstance(content, dict) else {}
    summary = summary if isinstance(summary, dict) else {}

    scores = _section(summary, "scores")
    performance = _section(summary, "performance")
    security = _section(summary, "security")

    grade = summary.get("overall_grade") or "F"
    website_url = summary.get("website_url") or ""

    parts = [
        f'<div style="{CONTAINER_STYLE}">',
        f'<div style="{HEADER_STYLE}">',
        '<h1 style="color:white;font-size:28px;margin:0 0 8px 0;font-weight:700;">Website-Analyse Report</h1>',
        f'<p style="color:rgba(255,255,255,0.8);margin:0;font-size:14px;">{_text(website_url)}</p>',
        "</div>",
        f'<div style="{BODY_STYLE}">',
        _paragraph(content.get("greeting")),
        f'<div style="text-align:center;margin:16px 0;">'
        f'<span style="display:inline-block;font-size:40px;font-weight:800;color:#7c3aed;">{_text(grade)}</span>'
        f'<div style="font-size:13px;color:#6b7280;">Gesamtnote</div></div>',
        _paragraph(content.get("summary")),
        _bullets(_list(content, "key_insights")),
        f'<h2 style="{H2_STYLE}">Score-Übersicht</h2>',
        _score_cards(scores),
        _keyword_section(summary),
        f'<h2 style="{H2_STYLE}">Performance</h2>',
        _paragraph(
            f"Mobile {_fmt(_number(performance, 'mobile'))}/100, Desktop {_fmt(_number(performance, 'desktop'))}/100. "
            f"LCP {performance.get('lcp') or 'N/A'}, CLS {performance.get('cls') or 'N/A'}, "
            f"TBT {performance.get('tbt') or 'N/A'}."
        ),
        _paragraph(content.get("performance_analysis")),
        f'<h2 style="{H2_STYLE}">SEO On-Page</h2>',
        _paragraph(content.get("seo_analysis")),
        f'<h2 style="{H2_STYLE}">Sicherheit</h2>',
        _paragraph(f"Security Score: {_fmt(_number(security, 'score'))}/100"),
        _paragraph(content.get("security_analysis")),
        _bullets(_list(security, "issues"), color="#b91c1c"),
        _technical_table(summary),
        _recommendations(_list(content, "recommendations")),
    ]

    positives = _list(content, "positives")
    if positives:
        parts.append(f'<h2 style="{H2_STYLE}">Das machen Sie bereits gut</h2>')
        parts.append(_bullets(positives, color="#047857"))

    parts += [
        _paragraph(content.get("conclusion")),
        "</div>",
        f'<div style="{FOOTER_STYLE}">',
        f'<a href="{CTA_URL}" style="display:inline-block;background:linear-gradient(90deg,#ec4899,#8b5cf6);'
        'color:white;padding:14px 32px;border-radius:50px;text-decoration:none;font-weight:600;font-size:16px;">'
        "Kostenloses Beratungsgespräch vereinbaren</a>",
        f'<p style="color:#9ca3af;font-size:12px;margin:16px 0 0 0;">{escape(CONTACT_LINE)}</p>',
        "</div>",
        "</div>",
    ]
    return "".join(parts)
