from bs4 import BeautifulSoup

from extractors import (
    compute_readability,
    detect_booking,
    detect_cms,
    detect_legal_pages,
    detect_price_list,
    extract_colors,
    extract_keywords,
    is_boring_color,
)


def test_detect_cms_first_match_wins():
    html = '<link href="/wp-content/x.css"><script src="https://cdn.shopify.com/a.js"></script>'
    assert detect_cms(html) == "WordPress"


def test_detect_cms_from_generator_meta():
    assert detect_cms("<html></html>", "Joomla! 4 - Open Source") == "Joomla"
    assert detect_cms("<html></html>") is None


def test_boring_colors():
    assert is_boring_color("#fff")
    assert is_boring_color("#000000")
    assert is_boring_color("#808080")
    assert not is_boring_color("#3366cc")


def test_extract_colors_ranks_brand_colors_first():
    html = (
        "<style>p { color: #3366cc; } h1 { color: #3366cc; } "
        ".btn { background: #f06; } body { background: #ffffff; }</style>"
    )
    colors = extract_colors(html)
    assert colors[0] == "#ff0066"
    assert "#3366cc" in colors
    assert "#ffffff" not in colors


def test_extract_colors_ignores_four_and_five_digit_hex():
    assert extract_colors("<p style='color:#12345'>x</p><p style='color:#abcd'>y</p>") == []


def test_detect_booking_by_system_and_by_button_text():
    soup = BeautifulSoup("<a href='x'>Hallo</a>", "html.parser")
    assert detect_booking("<iframe src='https://booksy.com/widget'></iframe>", soup) == (True, "Booksy")

    soup = BeautifulSoup("<button>Jetzt Termin vereinbaren</button>", "html.parser")
    assert detect_booking(str(soup), soup) == (True, None)

    soup = BeautifulSoup("<a href='/about'>Über uns</a>", "html.parser")
    assert detect_booking(str(soup), soup) == (False, None)


def test_legal_pages_also_match_body_copy():
    legal = detect_legal_pages("<p>Hinweise zur Datenschutzerklärung</p>", [])
    assert legal == {"has_impressum": False, "has_datenschutz": True, "has_agb": False}

    links = [{"href": "/impressum", "text": "Impressum", "is_external": False}]
    assert detect_legal_pages("<p></p>", links)["has_impressum"]


def test_detect_price_list():
    assert detect_price_list("<p>Preise ab 30 €</p>", "Preise ab 30 €")
    assert not detect_price_list("<p>Hallo</p>", "Hallo")


def test_readability_of_empty_text():
    assert compute_readability("") == {
        "avg_sentence_length": 0,
        "avg_word_length": 0.0,
        "score": 100,
        "level": "Einfach",
    }


def test_readability_penalises_long_sentences():
    text = " ".join(["wort"] * 35) + "."
    result = compute_readability(text)
    assert result["avg_sentence_length"] == 35
    assert result["score"] == 70
    assert result["level"] == "Mittel"


def test_extract_keywords_drops_stop_words_digits_and_short_words():
    keywords = extract_keywords("Friseur Wien", "Friseur in Wien", ["Haarschnitt Wien"], "und der die 2024 ab")
    assert keywords == ["wien", "friseur", "haarschnitt"]


def test_extract_keywords_limit():
    content = " ".join(f"begriff{i}" for i in range(30))
    assert len(extract_keywords("", "", [], content)) == 15


def test_readability_is_clamped_for_one_huge_sentence():
    result = compute_readability(" ".join(["Donaudampfschifffahrt"] * 500))
    assert result["avg_sentence_length"] == 500
    assert result["score"] == 0
    assert result["level"] == "Komplex"
