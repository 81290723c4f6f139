"""Heuristic extractors over the raw HTML and its parsed DOM.

Each function is pure and returns one slice of the scraped signals. The probes
are plain substring/regex checks against the markup, so they are fast but
approximate.
"""

import re
from collections import Counter
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from models import (
    BusinessSignals,
    ContactSignals,
    DesignSignals,
    LinkInfo,
    Readability,
)

# Ordered, first match wins: (cms, raw html probes, generator meta probe)
CMS_PROBES: list[tuple[str, tuple[str, ...], str | None]] = [
    ("WordPress", ("wp-content", "wordpress"), "wordpress"),
    ("Wix", ("wix.com", "static.wixstatic"), None),
    ("Squarespace", ("squarespace",), None),
    ("Shopify", ("shopify", "cdn.shopify"), None),
    ("Webflow", ("webflow",), None),
    ("Joomla", ("joomla",), "joomla"),
    ("Drupal", ("drupal",), "drupal"),
    ("TYPO3", ("typo3",), "typo3"),
    ("Jimdo", ("jimdo",), None),
    ("Weebly", ("weebly",), None),
    ("Ghost", ("ghost.io",), "ghost"),
]

TECHNOLOGY_PROBES: list[tuple[str, tuple[str, ...]]] = [
    ("React/Next.js", ("react", "__NEXT_DATA__")),
    ("Vue.js", ("vue", "__VUE__")),
    ("Angular", ("angular", "ng-")),
    ("Bootstrap", ("bootstrap",)),
    ("Tailwind CSS", ("tailwind",)),
    ("jQuery", ("jquery", "jQuery")),
    ("Cloudflare", ("cloudflare",)),
    ("CDN", ("cdn.jsdelivr", "cdnjs.cloudflare")),
    ("Stripe", ("stripe",)),
    ("PayPal", ("paypal",)),
    ("reCAPTCHA", ("recaptcha", "grecaptcha")),
    ("Cookie Consent", ("cookiebot", "cookie-consent", "cookieconsent")),
]

ANALYTICS_PROBES: dict[str, tuple[str, ...]] = {
    "has_google_analytics": ("google-analytics.com", "gtag", "ga(", "analytics.js"),
    "has_google_tag_manager": ("googletagmanager.com", "gtm.js"),
    "has_facebook_pixel": ("facebook.com/tr", "fbq(", "connect.facebook.net"),
    "has_hotjar": ("hotjar", "hj("),
}

BOOKING_SYSTEMS: list[tuple[str, re.Pattern[str]]] = [
    ("Calendly", re.compile(r"calendly\.com", re.I)),
    ("Booksy", re.compile(r"booksy\.com", re.I)),
    ("Treatwell", re.compile(r"treatwell", re.I)),
    ("Shore", re.compile(r"shore\.com", re.I)),
    ("SimplyBook", re.compile(r"simplybook", re.I)),
    ("Acuity", re.compile(r"acuityscheduling", re.I)),
    ("Square Appointments", re.compile(r"squareup.*appointment", re.I)),
    ("Timify", re.compile(r"timify", re.I)),
    ("Terminland", re.compile(r"terminland", re.I)),
    ("Doctolib", re.compile(r"doctolib", re.I)),
]
BOOKING_WORDS = ("termin", "buchen", "reserv", "book")

SOCIAL_PATTERNS: dict[str, re.Pattern[str]] = {
    "facebook": re.compile(r"facebook\.com"),
    "instagram": re.compile(r"instagram\.com"),
    "twitter": re.compile(r"twitter\.com|x\.com"),
    "linkedin": re.compile(r"linkedin\.com"),
    "youtube": re.compile(r"youtube\.com"),
    "tiktok": re.compile(r"tiktok\.com"),
    "pinterest": re.compile(r"pinterest\.com"),
    "whatsapp": re.compile(r"wa\.me|whatsapp\.com"),
}

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_RE = re.compile(r"(?:\+\d{1,3}[-.\s]?)?\(?\d{1,4}\)?[-.\s]?\d{1,4}[-.\s]?\d{1,9}")
ADDRESS_RE = re.compile(
    r"\d{4,5}\s+[A-ZÄÖÜa-zäöüß\s]+,?\s*[A-ZÄÖÜa-zäöüß\s]+(?:straße|strasse|gasse|weg|platz|ring)",
    re.I,
)

HEX_COLOR_RE = re.compile(r"#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{3})\b")
BRAND_COLOR_PATTERNS = [
    re.compile(r"\.btn[^{]*\{[^}]*(?:background|color):\s*(#[0-9A-Fa-f]{3,6})", re.I),
    re.compile(r"\.button[^{]*\{[^}]*(?:background|color):\s*(#[0-9A-Fa-f]{3,6})", re.I),
    re.compile(r"a\s*\{[^}]*color:\s*(#[0-9A-Fa-f]{3,6})", re.I),
    re.compile(r"\.primary[^{]*\{[^}]*(?:background|color):\s*(#[0-9A-Fa-f]{3,6})", re.I),
    re.compile(r"\.accent[^{]*\{[^}]*(?:background|color):\s*(#[0-9A-Fa-f]{3,6})", re.I),
    re.compile(r"--primary[^:]*:\s*(#[0-9A-Fa-f]{3,6})", re.I),
    re.compile(r"--accent[^:]*:\s*(#[0-9A-Fa-f]{3,6})", re.I),
    re.compile(r"--brand[^:]*:\s*(#[0-9A-Fa-f]{3,6})", re.I),
]
BRAND_COLOR_WEIGHT = 10
MAX_COLORS = 10

FONT_FAMILY_RE = re.compile(r"font-family:\s*['\"]?([^'\";,}]+)", re.I)
GOOGLE_FONT_FAMILY_RE = re.compile(r"family=([^&:]+)")
MAX_FONTS = 5

DARK_MODE_PROBES = ("dark-mode", "dark-theme", "prefers-color-scheme", "theme-dark")
GOOGLE_MAPS_PROBES = ("maps.google", "google.com/maps", "maps.googleapis.com")

SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

STOP_WORDS = {
    "und", "der", "die", "das", "in", "zu", "den", "ist", "von", "für", "mit",
    "auf", "des", "eine", "ein", "im", "dem", "nicht", "sich", "als", "auch",
    "es", "an", "er", "so", "aus", "bei", "wird", "sie", "nach", "werden",
    "hat", "sind", "oder", "einer", "haben", "diese", "einem", "kann", "noch",
    "wie", "ihr", "ihre", "ihren", "ihrer", "über", "zum", "zur", "uns", "wir",
    "ich", "du", "mich", "dich", "euch", "wenn", "was", "nur", "mehr",
    "aber", "hier", "alle", "ohne", "denn", "dann", "sehr", "schon", "mal",
    "ganz", "ja", "nein", "immer", "wieder", "heute", "jetzt", "neue", "neuen",
}


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return int(value * factor + 0.5) / factor if value >= 0 else -int(-value * factor + 0.5) / factor


# --- Technology --------------------------------------------------------------


def detect_cms(html: str, generator: str = "") -> str | None:
    generator_lower = (generator or "").lower()
    for name, probes, generator_probe in CMS_PROBES:
        if any(probe in html for probe in probes):
            return name
        if generator_probe and generator_probe in generator_lower:
            return name
    return None


def detect_technologies(html: str) -> list[str]:
    found: list[str] = []
    for name, probes in TECHNOLOGY_PROBES:
        if any(probe in html for probe in probes) and name not in found:
            found.append(name)
    return found


def detect_analytics(html: str) -> dict[str, bool]:
    return {flag: any(probe in html for probe in probes) for flag, probes in ANALYTICS_PROBES.items()}


# --- Design ------------------------------------------------------------------


def _expand_hex(color: str) -> str:
    value = color.lower().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    return f"#{value}"


def is_boring_color(color: str) -> bool:
    """True for white, black and greys, which say nothing about a brand."""
    full = _expand_hex(color).lstrip("#")
    try:
        r, g, b = int(full[0:2], 16), int(full[2:4], 16), int(full[4:6], 16)
    except ValueError:
        return True

    if (r > 250 and g > 250 and b > 250) or (r < 5 and g < 5 and b < 5):
        return True
    spread = max(r, g, b) - min(r, g, b)
    if spread < 20 and 30 < r < 230:
        return True
    if r > 240 and g > 240 and b > 240:
        return True
    if r < 15 and g < 15 and b < 15:
        return True
    return False


def extract_colors(html: str) -> list[str]:
    counts: Counter[str] = Counter()

    for match in HEX_COLOR_RE.findall(html):
        color = _expand_hex(match)
        if not is_boring_color(color):
            counts[color] += 1

    for pattern in BRAND_COLOR_PATTERNS:
        for match in pattern.finditer(html):
            raw = match.group(1)
            if len(raw) not in (4, 7):
                continue
            color = _expand_hex(raw)
            if not is_boring_color(color):
                counts[color] += BRAND_COLOR_WEIGHT

    return [color for color, _ in counts.most_common(MAX_COLORS)]


def extract_fonts(html: str, soup: BeautifulSoup) -> list[str]:
    fonts: list[str] = []

    for match in FONT_FAMILY_RE.findall(html):
        font = match.strip()
        if font and "{" not in font and len(font) < 50 and font not in fonts:
            fonts.append(font)

    for link in soup.select('link[href*="fonts.googleapis.com"]'):
        family = GOOGLE_FONT_FAMILY_RE.search(str(link.get("href") or ""))
        if not family:
            continue
        for name in family.group(1).split("|"):
            font = name.replace("+", " ").strip()
            if font and font not in fonts:
                fonts.append(font)

    return fonts[:MAX_FONTS]


def extract_design(html: str, soup: BeautifulSoup) -> DesignSignals:
    return {
        "colors": extract_colors(html),
        "fonts": extract_fonts(html, soup),
        "has_dark_mode": any(probe in html for probe in DARK_MODE_PROBES),
    }


# --- Business ----------------------------------------------------------------


def detect_booking(html: str, soup: BeautifulSoup) -> tuple[bool, str | None]:
    for name, pattern in BOOKING_SYSTEMS:
        if pattern.search(html):
            return True, name

    for element in soup.find_all(["a", "button"]):
        text = element.get_text(" ", strip=True).lower()
        if any(word in text for word in BOOKING_WORDS):
            return True, None

    return False, None


def detect_legal_pages(html: str, links: list[LinkInfo]) -> dict[str, bool]:
    """
    Impressum / Datenschutz / AGB presence. A link probe is OR'd with a raw
    HTML probe, so body copy merely mentioning e.g. "Datenschutz" also counts.
    """
    html_lower = html.lower()
    hrefs = [str(link.get("href") or "").lower() for link in links]
    texts = [str(link.get("text") or "").lower() for link in links]

    has_impressum = (
        any("impressum" in h for h in hrefs)
        or any("impressum" in t for t in texts)
        or "impressum" in html_lower
    )

    has_datenschutz = (
        any("datenschutz" in h or "privacy" in h for h in hrefs)
        or any("datenschutz" in t for t in texts)
        or "datenschutz" in html_lower
        or "privacy-policy" in html_lower
        or "privacypolicy" in html_lower
    )

    has_agb = (
        any("agb" in h for h in hrefs)
        or any("agb" in t or "geschäftsbedingungen" in t for t in texts)
        or "/agb" in html_lower
        or "allgemeine geschäftsbedingungen" in html_lower
    )

    return {
        "has_impressum": has_impressum,
        "has_datenschutz": has_datenschutz,
        "has_agb": has_agb,
    }


def detect_price_list(html: str, text: str) -> bool:
    html_lower = html.lower()
    text_lower = text.lower()
    mentions_prices = "preis" in html_lower and ("€" in html or "EUR" in html or "euro" in html_lower)
    return mentions_prices or any(word in text_lower for word in ("preisliste", "preise", "tarife"))


def extract_business(html: str, soup: BeautifulSoup, links: list[LinkInfo], text: str) -> BusinessSignals:
    has_booking, booking_system = detect_booking(html, soup)
    legal = detect_legal_pages(html, links)
    has_maps = any(probe in html for probe in GOOGLE_MAPS_PROBES) or bool(
        soup.select('iframe[src*="google.com/maps"]')
    )
    return {
        "has_online_booking": has_booking,
        "booking_system": booking_system,
        "has_google_maps": has_maps,
        "has_price_list": detect_price_list(html, text),
        "has_impressum": legal["has_impressum"],
        "has_datenschutz": legal["has_datenschutz"],
        "has_agb": legal["has_agb"],
    }


# --- Contact -----------------------------------------------------------------


def _unique(values: list[str], limit: int) -> list[str]:
    return list(dict.fromkeys(v.strip() for v in values if v.strip()))[:limit]


def extract_contact(html: str, soup: BeautifulSoup) -> ContactSignals:
    social_links: dict[str, str] = {}
    for anchor in soup.find_all("a", href=True):
        href = str(anchor.get("href") or "")
        for platform, pattern in SOCIAL_PATTERNS.items():
            if platform not in social_links and pattern.search(href):
                social_links[platform] = href

    has_contact_form = bool(
        soup.select('form[action*="contact"], form[id*="contact"], form[class*="contact"]')
        or soup.select('input[type="email"]')
    )

    return {
        "emails": _unique(EMAIL_RE.findall(html), 5),
        "phones": _unique(PHONE_RE.findall(html), 5),
        "addresses": _unique(ADDRESS_RE.findall(html), 3),
        "has_contact_form": has_contact_form,
        "social_links": social_links,
    }


# --- Links -------------------------------------------------------------------


def classify_links(soup: BeautifulSoup, page_url: str) -> dict:
    base_host = (urlparse(page_url).hostname or "").lower()
    all_links: list[LinkInfo] = []
    internal = external = nofollow = empty_anchors = 0

    for anchor in soup.find_all("a", href=True):
        href = str(anchor.get("href") or "")
        text = anchor.get_text(" ", strip=True)
        rel = anchor.get("rel") or []
        rel_text = " ".join(rel) if isinstance(rel, list) else str(rel)

        if not text and not anchor.get("aria-label") and not anchor.find("img"):
            empty_anchors += 1

        if href.startswith(("mailto:", "tel:")):
            continue

        try:
            host = (urlparse(urljoin(page_url, href)).hostname or "").lower()
            is_external = bool(host) and host != base_host
        except ValueError:
            is_external = href.startswith("http")

        if is_external:
            external += 1
        else:
            internal += 1
        if "nofollow" in rel_text:
            nofollow += 1

        all_links.append({"href": href, "text": text, "is_external": is_external})

    return {
        "internal": internal,
        "external": external,
        "total": len(all_links),
        "nofollow": nofollow,
        "empty_anchors": empty_anchors,
        "all_links": all_links,
    }


# --- Text --------------------------------------------------------------------


def compute_readability(text: str) -> Readability:
    """
    Flesch-like score: start at 100, lose 2 points per word of average
    sentence length above 20 and 10 points per character of average word
    length above 6, clamped to 0..100.
    """
    sentences = [s for s in SENTENCE_SPLIT_RE.split(text or "") if s.strip()]
    words = (text or "").split()

    avg_sentence_length = int(_round_half_up(len(words) / len(sentences))) if sentences else 0
    avg_word_length = _round_half_up(sum(len(w) for w in words) / len(words), 1) if words else 0.0

    score = 100.0
    if avg_sentence_length > 20:
        score -= (avg_sentence_length - 20) * 2
    if avg_word_length > 6:
        score -= (avg_word_length - 6) * 10
    score = max(0, min(100, int(_round_half_up(score))))

    if score < 60:
        level = "Komplex"
    elif score < 80:
        level = "Mittel"
    else:
        level = "Einfach"

    return {
        "avg_sentence_length": avg_sentence_length,
        "avg_word_length": avg_word_length,
        "score": score,
        "level": level,
    }


def extract_keywords(title: str, description: str, headings: list[str], content: str, limit: int = 15) -> list[str]:
    """Most frequent non-stop-words across title, description, headings and text."""
    all_text = f"{title} {description} {' '.join(headings)} {content}".lower()
    cleaned = re.sub(r"[^a-z0-9_äöüß\s]", " ", all_text)
    words = [
        word
        for word in cleaned.split()
        if len(word) > 2 and word not in STOP_WORDS and not word.isdigit()
    ]
    return [word for word, _ in Counter(words).most_common(limit)]
