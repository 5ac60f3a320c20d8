"""
Outgoing email over SMTP.

Port 465 uses implicit TLS; any other port upgrades with STARTTLS.
"""

from contextlib import contextmanager
from email.message import EmailMessage
import logging
import smtplib
import ssl

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Reset your password"


def password_reset_email(reset_url: str) -> tuple[str, str, str]:
    """Subject, HTML and plain text bodies of the reset link email."""
    html_body = f"""
    <p>Hello!</p>
    <p>We received a request to reset the password of your business card account.</p>
    <p><a href="{reset_url}" style="background:#3B82F6;color:#fff;padding:12px 18px;border-radius:8px;text-decoration:none;">Reset password</a></p>
    <p>If it was not you, ignore this message.</p>
    """
    return RESET_SUBJECT, html_body, f"Use this link to reset your password: {reset_url}"


def _smtp_ready(settings: Settings) -> bool:
    return all((settings.smtp_host, settings.smtp_user, settings.smtp_password, settings.smtp_from))


@contextmanager
def _smtp_connection(settings: Settings):
    port = settings.smtp_port or 465
    context = ssl.create_default_context()
    if port == 465:
        server = smtplib.SMTP_SSL(settings.smtp_host, port, context=context)
    else:
        server = smtplib.SMTP(settings.smtp_host, port)
        server.ehlo()
        server.starttls(context=context)
    try:
        server.login(settings.smtp_user, settings.smtp_password)
        yield server
    finally:
        server.quit()


def send_email(subject: str, to_email: str, html_body: str, text_body: str | None = None) -> bool:
    """Send one message; returns False when SMTP is not configured or delivery fails."""
    settings = get_settings()
    if not _smtp_ready(settings):
        logger.warning("SMTP not configured; skipping email to %s", to_email)
        return False
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to_email
    msg.set_content(text_body or html_body)
    msg.add_alternative(html_body, subtype="html")
    try:
        with _smtp_connection(settings) as server:
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send email to %s: %s", to_email, exc)
        return False
    logger.info("email '%s' sent to %s", subject, to_email)
    return True
