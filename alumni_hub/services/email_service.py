# alumni_hub/services/email_service.py
"""Outbound email. Sending is best-effort: failures are logged, never raised."""
from email.message import EmailMessage
from typing import Any, Dict, Optional, Tuple
import asyncio
import logging
import smtplib

from ..core.config import settings

logger = logging.getLogger(__name__)


def _connection_request(data: Dict[str, Any]) -> Tuple[str, str]:
    subject = "New Connection Request"
    body = (
        f"Hi {data['receiver_name']},\n\n"
        f"{data['sender_name']} wants to connect with you on {settings.app_name}.\n\n"
        f"View request: {settings.frontend_url}/connections\n"
        f"View profile: {settings.frontend_url}/profile/{data['sender_id']}\n"
    )
    return subject, body


def _connection_accepted(data: Dict[str, Any]) -> Tuple[str, str]:
    subject = "Connection Request Accepted"
    body = (
        f"Hi {data['sender_name']},\n\n"
        f"Great news! {data['accepter_name']} accepted your connection request.\n"
        "You are now connected and can message each other.\n\n"
        f"View profile: {settings.frontend_url}/profile/{data['accepter_id']}\n"
        f"Send message: {settings.frontend_url}/messages/{data['accepter_id']}\n"
    )
    return subject, body


TEMPLATES = {
    "connection_request": _connection_request,
    "connection_accepted": _connection_accepted,
}


class EmailService:
    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
    ):
        self.host = host if host is not None else settings.smtp_host
        self.port = port or settings.smtp_port
        self.user = user if user is not None else settings.smtp_user
        self.password = password if password is not None else settings.smtp_password
        self.sender = sender or settings.email_from or self.user

    @property
    def configured(self) -> bool:
        return bool(self.host and self.sender)

    async def send(self, to: str, template: str, data: Dict[str, Any]) -> None:
        try:
            render = TEMPLATES[template]
            subject, body = render(data)
            if not self.configured:
                logger.debug(f"SMTP not configured, skipping '{template}' email to {to}")
                return
            message = EmailMessage()
            message["Subject"] = subject
            message["From"] = f'"{settings.app_name}" <{self.sender}>'
            message["To"] = to
            message.set_content(body)
            await asyncio.to_thread(self._deliver, message)
            logger.info(f"Sent '{template}' email to {to}")
        except Exception as e:
            logger.error(f"Failed to send '{template}' email to {to}: {e}")

    def _deliver(self, message: EmailMessage):
        with smtplib.SMTP(self.host, self.port, timeout=10) as server:
            server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.send_message(message)


def get_email_service() -> EmailService:
    return EmailService()
