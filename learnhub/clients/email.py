# learnhub/clients/email.py
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from learnhub.core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

RESEND_SEND_EMAILS_URL = "https://api.resend.com/emails"


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    idempotency_key: Optional[str] = None


class EmailSender(ABC):
    @abstractmethod
    def send(self, message: EmailMessage) -> Optional[str]:
        """Deliver one message; returns the provider message id when known."""


class ResendEmailSender(EmailSender):
    """Transactional email through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        from_address: str,
        from_name: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.from_address = from_address
        self.from_name = from_name
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def sender(self) -> str:
        if self.from_name:
            return f"{self.from_name} <{self.from_address}>"
        return self.from_address

    def send(self, message: EmailMessage) -> Optional[str]:
        if not self.api_key:
            raise UpstreamServiceError("Email provider is not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if message.idempotency_key:
            headers["Idempotency-Key"] = message.idempotency_key

        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }

        try:
            response = self.session.post(
                RESEND_SEND_EMAILS_URL,
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to send email to {message.to}: {e}")
            raise UpstreamServiceError("Failed to send email")

        email_id = data.get("id") if isinstance(data, dict) else None
        logger.info(f"Email sent to {message.to} (id={email_id})")
        return email_id


@dataclass
class InMemoryEmailSender(EmailSender):
    """Collects messages instead of sending them."""

    fail: bool = False
    outbox: List[EmailMessage] = field(default_factory=list)

    def send(self, message: EmailMessage) -> Optional[str]:
        if self.fail:
            raise UpstreamServiceError("Failed to send email")
        self.outbox.append(message)
        return f"test-{len(self.outbox)}"
