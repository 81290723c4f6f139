"""Report delivery through Brevo's transactional email API."""

from html import escape

import requests

from logger import get_logger

logger = get_logger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"
REQUEST_TIMEOUT = 30


def analysis_subject(first_name: str) -> str:
    return f"{first_name}, Ihre Website-Analyse ist fertig!"


def wrap_in_email_template(content: str, name: str = "") -> str:
    """Wrap the rendered report in the branded email layout. `name` personalises the title."""
    title = escape(analysis_subject(name)) if name else "Ihre Website-Analyse ist fertig"
    return f"""
<!DOCTYPE html>
<html lang="de">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body style="margin:0;padding:0;background-color:#f5f5f5;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;">
  <table role="presentation" style="width:100%;border-collapse:collapse;">
    <tr>
      <td style="padding:20px 0;">
        <table role="presentation" style="max-width:680px;margin:0 auto;background-color:#ffffff;border-radius:12px;overflow:hidden;box-shadow:0 4px 6px rgba(0,0,0,0.1);">
          <tr>
            <td style="background:linear-gradient(135deg,#ec4899,#8b5cf6);padding:30px 20px;text-align:center;">
              <img src="https://arsenio.at/wp-content/uploads/2025/03/favicon_black.png" alt="arsenio.at" style="width:60px;margin-bottom:10px;">
              <h1 style="color:#ffffff;margin:0;font-size:24px;">Website-Analyse Ergebnis</h1>
            </td>
          </tr>
          <tr>
            <td style="padding:0;">
              {content}
            </td>
          </tr>
          <tr>
            <td style="background-color:#f9fafb;padding:30px 20px;text-align:center;border-top:1px solid #e5e7eb;">
              <p style="margin:0 0 10px 0;font-size:14px;color:#6b7280;">
                Sie haben diese E-Mail erhalten, weil Sie eine kostenlose Website-Analyse angefordert haben.
              </p>
              <p style="margin:0;font-size:14px;color:#6b7280;">
                <strong>arsenio.at</strong> |
                <a href="mailto:office@arsenio.at" style="color:#ec4899;">office@arsenio.at</a> |
                +43 660 150 3210
              </p>
              <p style="margin:15px 0 0 0;font-size:12px;color:#9ca3af;">
                <a href="https://arsenio.at/impressum" style="color:#9ca3af;">Impressum</a> |
                <a href="https://arsenio.at/datenschutz" style="color:#9ca3af;">Datenschutz</a>
              </p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


class BrevoMailer:
    def __init__(
        self,
        api_key: str = "",
        sender_email: str = "office@arsenio.at",
        sender_name: str = "Bojan - arsenio.at",
        cc_email: str = "",
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.cc_email = cc_email
        self.session = session or requests.Session()

    def send_analysis_email(self, *, to: str, to_name: str, subject: str, html_content: str) -> bool:
        """Send the wrapped report. Returns False instead of raising when delivery fails."""
        if not self.api_key:
            logger.warning("Email skipped: BREVO_API_KEY not configured")
            return False

        payload = {
            "sender": {"name": self.sender_name, "email": self.sender_email},
            "to": [{"email": to, "name": to_name}],
            "subject": subject,
            "htmlContent": wrap_in_email_template(html_content, to_name),
        }
        if self.cc_email:
            payload["cc"] = [{"email": self.cc_email, "name": "arsenio.at"}]

        try:
            response = self.session.post(
                BREVO_SEND_URL,
                json=payload,
                headers={"api-key": self.api_key, "accept": "application/json"},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Email error for %s: %s", to, e)
            return False

        logger.info("Email sent successfully to %s", to)
        return True
