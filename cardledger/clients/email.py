# cardledger/clients/email.py

import base64
import logging
from dataclasses import dataclass
from typing import List, Optional

import requests

from cardledger.errors import DependencyError

logger = logging.getLogger(__name__)


@dataclass
class Attachment:
    filename: str
    content: bytes


class EmailClient:
    """Thin client for the Resend transactional email API."""

    def __init__(self, api_key, sender, url="https://api.resend.com/emails", timeout=10.0):
        self.api_key = api_key
        self.sender = sender
        self.url = url
        self.timeout = timeout

    def send(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: Optional[List[Attachment]] = None,
    ) -> Optional[str]:
        """
        Send one message. Returns the provider's message id.

        Raises DependencyError when the provider is not configured, is
        unreachable, or answers with a non-2xx status.
        """
        if not self.api_key:
            raise DependencyError("Email delivery is not configured (RESEND_API_KEY is empty)")

        payload = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
            # Resend expects base64 file content
            "attachments": [
                {
                    "filename": a.filename,
                    "content": base64.b64encode(a.content).decode("ascii"),
                }
                for a in attachments or []
            ],
        }

        try:
            response = requests.post(
                self.url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Email to %s failed: %s", to, exc)
            raise DependencyError(f"Email delivery to {to} failed: {exc}") from exc

        try:
            message_id = response.json().get("id")
        except ValueError:
            # delivered, but the provider sent back a non-JSON body
            message_id = None
        logger.info("Email sent to %s (id=%s)", to, message_id)
        return message_id
