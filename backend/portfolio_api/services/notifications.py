from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, ReplyTo
from starlette.concurrency import run_in_threadpool

from portfolio_api.core.config import Settings
from portfolio_api.core.logger import init_logger
from portfolio_api.services.contact_service import ContactNotice

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates" / "email"

env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=select_autoescape(["html"]))

notify_logger = init_logger("notifications")


class EmailTemplate:
    """
        Jinja2 templates for the two contact notifications
    """

    def __init__(self, template: str):
        self.template = env.get_template(template)

    def render(self, **kwargs) -> str:
        return self.template.render(**kwargs)

    @staticmethod
    def admin_notification(notice: ContactNotice) -> str:
        return EmailTemplate("admin_notification.html").render(notice=notice)

    @staticmethod
    def auto_reply(notice: ContactNotice) -> str:
        return EmailTemplate("auto_reply.html").render(notice=notice)


class ContactNotifier:
    """
        Sends the admin alert and the auto-reply for a new submission.

        Without both a sender address and a SendGrid key every dispatch is
        skipped. Delivery failures are logged and never raised.
    """

    def __init__(
        self,
        sender: Optional[str],
        api_key: Optional[str],
        admin_email: Optional[str] = None,
        client: Any = None,
    ):
        self.sender = sender
        self.admin_email = admin_email or sender
        self._api_key = api_key
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "ContactNotifier":
        return cls(
            sender=settings.EMAIL_FROM,
            api_key=settings.SENDGRID_API_KEY,
            admin_email=settings.ADMIN_EMAIL,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.sender and (self._api_key or self._client is not None))

    @property
    def client(self):
        if self._client is None:
            self._client = SendGridAPIClient(self._api_key)
        return self._client

    def admin_message(self, notice: ContactNotice) -> Mail:
        message = Mail(
            from_email=self.sender,
            to_emails=self.admin_email,
            subject=f"New Portfolio Contact: {notice.subject}",
            html_content=EmailTemplate.admin_notification(notice),
        )
        message.reply_to = ReplyTo(notice.email, notice.name)
        return message

    def auto_reply_message(self, notice: ContactNotice) -> Mail:
        return Mail(
            from_email=self.sender,
            to_emails=notice.email,
            subject="Thank you for reaching out!",
            html_content=EmailTemplate.auto_reply(notice),
        )

    def send(self, message: Mail) -> bool:
        response = self.client.send(message)
        status_code = getattr(response, "status_code", 0)
        if 200 <= status_code < 300:
            return True
        raise RuntimeError(f"SendGrid responded with status {status_code}")

    async def dispatch(self, notice: ContactNotice) -> None:
        if not self.enabled:
            notify_logger.debug("Email credentials not configured, skipping notifications")
            return

        try:
            messages = {
                "admin notification": self.admin_message(notice),
                "auto-reply": self.auto_reply_message(notice),
            }
            results = await asyncio.gather(
                *(run_in_threadpool(self.send, m) for m in messages.values()),
                return_exceptions=True,
            )
        except Exception:
            notify_logger.exception(f"Could not prepare notifications for contact {notice.id}")
            return

        for label, result in zip(messages, results):
            if isinstance(result, BaseException):
                notify_logger.error(f"Failed to send {label} for contact {notice.id}: {result}")
            else:
                notify_logger.info(f"Sent {label} for contact {notice.id}")
