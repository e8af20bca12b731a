"""
Email sending through the Resend API.

`send_email` is the raw provider call; `send_template` renders one of the
templates under templates/emails/ first.
"""

import logging
import re
from typing import Any, Dict, Optional

import resend
from flask import current_app, render_template

from errors import DependencyError

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(self, api_key: str, from_email: str):
        if not api_key:
            raise DependencyError("Resend API key not configured")
        resend.api_key = api_key
        self.from_email = from_email

    @classmethod
    def from_config(cls, config) -> "EmailService":
        return cls(config.get("RESEND_API_KEY", ""), config["MAIL_FROM"])

    @staticmethod
    def _html_to_text(html_content: str) -> str:
        text = re.sub(r"<[^>]+>", "", html_content)
        return re.sub(r"\s+", " ", text).strip()

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {
            "from": self.from_email,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
            "text": text_content or self._html_to_text(html_content),
        }
        try:
            response = resend.Emails.send(params)
        except Exception as e:
            logger.error("Failed to send email to %s: %s", to_email, e)
            raise DependencyError(f"Failed to send email: {e}")

        logger.info("Email sent to %s: %s", to_email, subject)
        return response

    def send_template(self, to_email: str, subject: str, template: str, data: Dict[str, Any]):
        html = render_template(f"emails/{template}.html", **data)
        return self.send_email(to_email, subject, html)


def get_email_service() -> EmailService:
    service = current_app.extensions.get("email_service")
    if service is None:
        service = EmailService.from_config(current_app.config)
    return service
