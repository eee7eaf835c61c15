# core/mailer.py
"""
Minimal async client for the Resend email API.

Only the single call the feedback endpoint needs: POST /emails.
"""

import logging
from typing import Dict, Any, Optional
import httpx
from core.errors import MailDeliveryError

logger = logging.getLogger(__name__)

RESEND_BASE_URL = "https://api.resend.com"


class ResendMailer:
    def __init__(self, api_key: str, base_url: str = RESEND_BASE_URL,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            api_key: Resend API key (только в памяти)
            base_url: Resend API origin
            transport: Подменный транспорт httpx (тесты)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.transport = transport

    async def send(self, message: Dict[str, Any]) -> str:
        """
        Отправляет письмо.

        Args:
            message: from, to, reply_to, subject, html, text

        Returns:
            str: ID письма у провайдера

        Raises:
            MailDeliveryError: провайдер отклонил письмо или недоступен
        """
        try:
            async with httpx.AsyncClient(
                    base_url=self.base_url,
                    transport=self.transport,
                    timeout=30.0
            ) as client:
                response = await client.post(
                    "/emails",
                    json=message,
                    headers={"Authorization": f"Bearer {self.api_key}"}
                )
        except httpx.HTTPError as e:
            raise MailDeliveryError(f"Resend unreachable: {e}") from e

        if response.status_code >= 400:
            try:
                details = response.json().get('message', response.text)
            except ValueError:
                details = response.text
            raise MailDeliveryError(f"Resend rejected email (HTTP {response.status_code}): {details}")

        email_id = response.json().get('id', '')
        logger.debug(f"Resend accepted email: {email_id}")
        return email_id
