"""
app/services/email_service.py

Purpose: Outgoing email (verification and password reset)

- SMTP delivery runs in a worker thread so the event loop is not blocked
- Without SMTP_HOST configured, messages are logged instead of sent
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from urllib.parse import quote

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


def _deliver(to: str, subject: str, html: str):
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.EMAIL_FROM
    msg["To"] = to
    msg.attach(MIMEText(html, "html"))

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.sendmail(settings.EMAIL_FROM, [to], msg.as_string())


async def send_email(to: str, subject: str, html: str) -> bool:
    """
    Sends an HTML email.

    Args:
        to: Recipient address
        subject: Subject line
        html: HTML body

    Returns:
        True if delivered (or logged in development), False on SMTP failure
    """
    if not settings.email_enabled:
        logger.info(f"📧 Email (not sent, SMTP disabled) to={to} subject={subject!r}")
        logger.debug(html)
        return True

    try:
        await asyncio.to_thread(_deliver, to, subject, html)
        logger.info(f"📧 Email sent to {to}: {subject}")
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to}: {e}", exc_info=True)
        return False


async def send_verification_email(email: str, token: str) -> bool:
    link = f"{settings.CLIENT_URL}/verify-email?token={quote(token)}"
    html = (
        "<h2>Welcome to Blaze!</h2>"
        "<p>Please confirm your email address to activate your account.</p>"
        f'<p><a href="{link}">Verify my email</a></p>'
        f"<p>If the button does not work, paste this link into your browser:<br>{link}</p>"
    )
    return await send_email(email, "Verify your Blaze account", html)


async def send_password_reset_email(email: str, token: str) -> bool:
    link = f"{settings.CLIENT_URL}/reset-password?token={quote(token)}"
    html = (
        "<h2>Password reset</h2>"
        "<p>You asked to reset your password. The link below is valid for "
        f"{settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes.</p>"
        f'<p><a href="{link}">Reset password</a></p>'
        "<p>If you did not request this, you can ignore this email.</p>"
    )
    return await send_email(email, "Reset your Blaze password", html)
