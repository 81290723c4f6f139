import requests

from conftest import FakeResponse, FakeSession
from mailer import BREVO_SEND_URL, BrevoMailer, analysis_subject, wrap_in_email_template

REPORT = '<div style="x">Report</div>'


def _send(mailer):
    return mailer.send_analysis_email(
        to="anna@example.com",
        to_name="Anna",
        subject=analysis_subject("Anna"),
        html_content=REPORT,
    )


def test_subject_uses_first_name():
    assert analysis_subject("Anna") == "Anna, Ihre Website-Analyse ist fertig!"


def test_template_wraps_report():
    html = wrap_in_email_template(REPORT, "Anna")
    assert html.strip().startswith("<!DOCTYPE html>")
    assert REPORT in html


def test_send_without_api_key_is_skipped():
    session = FakeSession()
    assert _send(BrevoMailer(api_key="", session=session)) is False
    assert session.calls == []


def test_send_posts_to_brevo():
    session = FakeSession({("POST", BREVO_SEND_URL): FakeResponse(201, json_data={"messageId": "1"})})
    mailer = BrevoMailer(api_key="brevo-key", cc_email="office@arsenio.at", session=session)

    assert _send(mailer) is True

    _, url, kwargs = session.calls[0]
    assert url == BREVO_SEND_URL
    assert kwargs["headers"]["api-key"] == "brevo-key"
    payload = kwargs["json"]
    assert payload["to"] == [{"email": "anna@example.com", "name": "Anna"}]
    assert payload["cc"][0]["email"] == "office@arsenio.at"
    assert payload["subject"] == "Anna, Ihre Website-Analyse ist fertig!"
    assert REPORT in payload["htmlContent"]


def test_send_without_cc():
    session = FakeSession({("POST", BREVO_SEND_URL): FakeResponse(201)})
    assert _send(BrevoMailer(api_key="brevo-key", cc_email="", session=session)) is True
    assert "cc" not in session.calls[0][2]["json"]


def test_send_failure_returns_false():
    session = FakeSession({("POST", BREVO_SEND_URL): FakeResponse(401)})
    assert _send(BrevoMailer(api_key="brevo-key", session=session)) is False

    session = FakeSession({("POST", BREVO_SEND_URL): requests.ConnectionError("down")})
    assert _send(BrevoMailer(api_key="brevo-key", session=session)) is False


def test_template_title_uses_escaped_name():
    assert "<title>Anna &amp; Ben, Ihre Website-Analyse ist fertig!</title>" in wrap_in_email_template(REPORT, "Anna & Ben")
    assert "<title>Ihre Website-Analyse ist fertig</title>" in wrap_in_email_template(REPORT)
