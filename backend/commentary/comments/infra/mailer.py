"""SMTP delivery for comment notification emails."""

from __future__ import annotations

import hashlib
import logging
from email.message import EmailMessage
from html import escape

import aiosmtplib

from commentary.settings import Settings

logger = logging.getLogger(__name__)


def mask_email(email: str) -> str:
    return hashlib.sha256(email.lower().encode("utf-8")).hexdigest()[:12]


class SmtpMailer:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def send(self, to_email: str, subject: str, body_html: str) -> bool:
        """Send one email; failures are logged and reported as ``False``."""
        if not self.settings.smtp_configured():
            logger.warning("SMTP not configured, skipping email to %s", mask_email(to_email))
            return False

        msg = EmailMessage()
        msg["From"] = self.settings.smtp_from_email
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(body_html, subtype="html")

        # STARTTLS on 587, implicit TLS on 465.
        start_tls = bool(self.settings.smtp_tls) and int(self.settings.smtp_port) == 587
        use_tls = bool(self.settings.smtp_tls) and int(self.settings.smtp_port) == 465
        try:
            await aiosmtplib.send(
                msg,
                hostname=self.settings.smtp_host,
                port=self.settings.smtp_port,
                username=self.settings.smtp_user,
                password=self.settings.smtp_password,
                start_tls=start_tls,
                use_tls=use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", mask_email(to_email), exc.__class__.__name__)
            return False
        logger.info("Email sent to %s", mask_email(to_email))
        return True


def moderator_email(*, origin: str, domain: str, path: str, author: str, html: str, state: str) -> tuple[str, str]:
    subject = f"New comment pending moderation on {domain}" if state != "approved" else f"New comment on {domain}"
    body = f"""
    <html>
        <body>
            <p>{escape(author)} commented on <a href="http://{escape(domain)}{escape(path)}">{escape(domain)}{escape(path)}</a>:</p>
            <blockquote>{html}</blockquote>
            <p>Status: <strong>{escape(state)}</strong></p>
            <p><a href="{escape(origin)}/dashboard">Open the moderation dashboard</a></p>
        </body>
    </html>
    """
    return subject, body


def reply_email(*, domain: str, path: str, author: str, html: str) -> tuple[str, str]:
    subject = f"{author} replied to your comment on {domain}"
    body = f"""
    <html>
        <body>
            <p>{escape(author)} replied to your comment on <a href="http://{escape(domain)}{escape(path)}">{escape(domain)}{escape(path)}</a>:</p>
            <blockquote>{html}</blockquote>
        </body>
    </html>
    """
    return subject, body
