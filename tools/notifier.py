"""
Notifier — sinks that deliver one posting at a time.

Each sink's send() raises DeliveryError on failure. The delivery controller
owns rate limiting and failure isolation; sinks never retry.
"""

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Protocol

import httpx

from models.errors import DeliveryError
from models.posting import Posting
from tools.formatter import format_posting_embed, format_posting_text


logger = logging.getLogger(__name__)


class Sink(Protocol):
    def send(self, posting: Posting) -> Optional[bool]:
        ...


class DiscordWebhookSink:
    """Posts each posting to a Discord channel webhook as text plus an embed."""

    def __init__(self, webhook_url: str, client: httpx.Client = None, timeout: float = 30.0):
        self.webhook_url = webhook_url
        self._client = client or httpx.Client(timeout=timeout)

    def send(self, posting: Posting) -> bool:
        payload = {
            "content": format_posting_text(posting),
            "embeds": [format_posting_embed(posting)],
        }
        try:
            resp = self._client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as e:
            raise DeliveryError(posting.id, f"Webhook request failed: {e}") from e

        if resp.status_code == 429:
            raise DeliveryError(posting.id, "Webhook rate limited (HTTP 429)")
        if not 200 <= resp.status_code < 300:
            raise DeliveryError(posting.id, f"Webhook returned HTTP {resp.status_code}")
        return True

    def close(self) -> None:
        self._client.close()


def _build_html_email(posting: Posting) -> str:
    """Build a small HTML email body for one posting."""
    title = html.escape(posting.title)
    url = html.escape(posting.url, quote=True)
    rows = "".join(
        f'<tr><td style="padding:6px 12px;color:#6b7280;">{html.escape(label)}</td>'
        f'<td style="padding:6px 12px;">{html.escape(value)}</td></tr>'
        for label, value in (
            ("Company", posting.company),
            ("Location", posting.location),
            ("Source", posting.source.value),
            *((key.replace("_", " ").title(), value) for key, value in posting.attributes.items()
              if key not in ("email_subject",)),
        )
    )
    return f"""
    <html>
    <body style="font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;background:#f9fafb;padding:20px;">
        <div style="max-width:600px;margin:0 auto;background:#fff;border-radius:10px;overflow:hidden;">
            <div style="background:linear-gradient(135deg,#1e40af,#7c3aed);padding:20px 24px;">
                <h1 style="color:#fff;margin:0;font-size:20px;">
                    <a href="{url}" style="color:#fff;text-decoration:none;">{title}</a>
                </h1>
            </div>
            <table style="width:100%;border-collapse:collapse;font-size:14px;">{rows}</table>
            <div style="padding:16px 24px;"><a href="{url}" style="color:#2563eb;">Apply</a></div>
        </div>
    </body>
    </html>
    """


class EmailSink:
    """Sends one email per posting over SMTP (stdlib smtplib, no extra dependencies)."""

    def __init__(
        self,
        recipient: str,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        sender: str = None,
    ):
        self.recipient = recipient
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.sender = sender or smtp_user

    def send(self, posting: Posting) -> bool:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = f"New job: {posting.title} at {posting.company}"
        msg["From"] = self.sender
        msg["To"] = self.recipient

        # Plain text fallback
        msg.attach(MIMEText(format_posting_text(posting).replace("**", ""), "plain"))
        msg.attach(MIMEText(_build_html_email(posting), "html"))

        try:
            if self.smtp_port == 465:
                server = smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, timeout=30)
            else:
                server = smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30)
                server.starttls()
            try:
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.sender, [self.recipient], msg.as_string())
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(posting.id, f"Email to {self.recipient} failed: {e}") from e

        return True


class ConsoleSink:
    """Writes postings to the log; used when no channel is configured."""

    def send(self, posting: Posting) -> bool:
        logger.info("New posting:\n%s", format_posting_text(posting))
        return True
