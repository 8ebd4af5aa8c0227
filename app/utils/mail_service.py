# app/utils/mail_service.py
import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)

SUBSCRIPTION_CONFIRMED = "subscription_confirmed"
COURSE_ACCESS_CONFIRMED = "course_access_confirmed"
REMINDER = "reminder"
EXPIRED = "expired"
CANCELLED = "cancelled"


def _line(label: str, value: Any) -> str:
    return f"{label}: {value}\n" if value not in (None, "") else ""


def render(kind: str, data: Dict[str, Any]) -> tuple[str, str]:
    """Return (subject, text body) for a template kind."""
    name = data.get("name") or "there"
    title = data.get("title", "")

    if kind == SUBSCRIPTION_CONFIRMED:
        subject = "Live Class Registration Confirmed"
        body = (
            f"Hi {name},\n\nYour registration for {title} is confirmed.\n\n"
            + _line("Starts", data.get("start_time"))
            + _line("Amount", data.get("amount"))
            + _line("Receipt", data.get("receipt_number"))
            + _line("Payment ID", data.get("payment_id"))
            + _line("Meeting link", data.get("meeting_link"))
            + _line("Password", data.get("password"))
        )
    elif kind == COURSE_ACCESS_CONFIRMED:
        subject = "Your Live Class Access Is Unlocked"
        body = (
            f"Hi {name},\n\nYour course fee for {title} was received.\n\n"
            + _line("Amount", data.get("amount"))
            + _line("Receipt", data.get("receipt_number"))
            + _line("Meeting link", data.get("meeting_link"))
            + _line("Password", data.get("password"))
        )
    elif kind == REMINDER:
        subject = f"Reminder: {title} starts soon"
        body = (
            f"Hi {name},\n\n{title} starts soon.\n\n"
            + _line("Starts", data.get("start_time"))
            + _line("Meeting link", data.get("meeting_link"))
            + _line("Password", data.get("password"))
        )
    elif kind == EXPIRED:
        subject = "Your Live Class Subscription Has Expired"
        body = f"Hi {name},\n\nYour subscription to {title} has expired. Renew it any time to regain access.\n"
    elif kind == CANCELLED:
        subject = "Your Live Class Subscription Has Been Cancelled"
        body = f"Hi {name},\n\nYour subscription to {title} has been cancelled.\n"
    else:
        raise ValueError(f"Unknown email template: {kind}")

    return subject, body


class MailService:
    """SMTP sender for transactional live class emails"""

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        encryption: str = "tls",
        from_address: str = "no-reply@example.com",
        from_name: str = "Live Class Platform",
        enabled: bool = True,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.encryption = encryption
        self.from_address = from_address
        self.from_name = from_name
        self.enabled = enabled

    def _send_sync(self, to_address: str, subject: str, body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_address}>"
        msg["To"] = to_address
        msg.attach(MIMEText(body, "plain", "utf-8"))

        if self.encryption == "ssl":
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=15)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=15)
        with server:
            if self.encryption == "tls":
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.sendmail(self.from_address, [to_address], msg.as_string())

    async def send(self, to_address: str, kind: str, data: Dict[str, Any]) -> None:
        """
        Render and send one email. Raises on delivery failure; callers that
        treat mail as fire-and-forget go through NotificationService.
        """
        subject, body = render(kind, data)
        if not self.enabled:
            logger.info(f"Mail disabled, skipping '{kind}' email to {to_address}")
            return
        await asyncio.to_thread(self._send_sync, to_address, subject, body)
        logger.info(f"Sent '{kind}' email to {to_address}")


mail_service = MailService(
    host=settings.mail_host,
    port=settings.mail_port,
    username=settings.mail_username,
    password=settings.mail_password,
    encryption=settings.mail_encryption,
    from_address=settings.mail_from_address,
    from_name=settings.mail_from_name,
    enabled=settings.mail_enabled,
)
