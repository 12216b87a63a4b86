import smtplib
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from typing import Iterator, Literal

from localmarket.core.config import settings

SMTP_TIMEOUT_SECONDS = 20

EmailDeliveryStatus = Literal["sent", "not_configured", "failed"]

RESET_EMAIL_TEMPLATE = """\
Someone asked to reset the password of your {app_name} account.

{instructions}

The reset expires at {expires_at}.
If this wasn't you, no action is needed and your password stays the same.
"""


@dataclass(frozen=True)
class EmailDeliveryResult:
    status: EmailDeliveryStatus
    detail: str | None = None


def smtp_configured() -> bool:
    return bool(settings.smtp_host) and bool(settings.smtp_sender_email)


def _reset_instructions(reset_token: str) -> str:
    base_url = settings.password_reset_web_base_url
    if base_url:
        return f"Choose a new password here: {base_url.rstrip('/')}?token={reset_token}"
    return f"Paste this code on the password reset screen:\n{reset_token}"


@contextmanager
def _smtp_session() -> Iterator[smtplib.SMTP]:
    if settings.smtp_use_ssl:
        server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT_SECONDS)
    else:
        server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT_SECONDS)
    with server:
        if not settings.smtp_use_ssl and settings.smtp_use_starttls:
            server.starttls()
        if settings.smtp_username:
            server.login(settings.smtp_username, settings.smtp_password or "")
        yield server


def send_password_reset_email(
    *,
    recipient_email: str,
    reset_token: str,
    expires_at: datetime,
) -> EmailDeliveryResult:
    """Mail a reset token. Never raises; the outcome is in the result status."""
    if not smtp_configured():
        return EmailDeliveryResult(status="not_configured", detail="SMTP not configured")

    message = EmailMessage()
    message["Subject"] = f"{settings.app_name}: password reset"
    message["From"] = settings.smtp_sender_email
    message["To"] = recipient_email
    if settings.smtp_reply_to_email:
        message["Reply-To"] = settings.smtp_reply_to_email
    message.set_content(
        RESET_EMAIL_TEMPLATE.format(
            app_name=settings.app_name,
            instructions=_reset_instructions(reset_token),
            expires_at=expires_at.isoformat(),
        )
    )

    try:
        with _smtp_session() as server:
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        return EmailDeliveryResult(status="failed", detail=str(exc))
    return EmailDeliveryResult(status="sent")
