"""
Outbound email transports.

Both transports send one HTML email with one attachment to one address and
either return a message id or raise DeliveryTransportError:

  BrevoTransport  Brevo transactional email API (primary)
  SmtpTransport   direct SMTP submission via aiosmtplib (fallback)

Adding a transport:
  1. Subclass EmailTransport and implement ``send``.
  2. Wrap every provider failure in DeliveryTransportError.
"""

import base64
import logging
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Optional

import aiosmtplib
import httpx

from app.config import BrevoSettings, SmtpSettings

logger = logging.getLogger(__name__)

_ZIP_MIME = ("application", "zip")


class DeliveryTransportError(Exception):
    """One transport failed to deliver one message."""

    def __init__(self, transport: str, message: str):
        super().__init__(f"{transport}: {message}")
        self.transport = transport
        self.message = message


@dataclass(frozen=True)
class OutgoingEmail:
    recipient: str
    subject: str
    html: str
    attachment_name: str
    attachment: bytes


class EmailTransport:
    """Base class: deliver one OutgoingEmail and return the provider message id."""

    name = "transport"

    @property
    def configured(self) -> bool:
        return True

    async def send(self, email: OutgoingEmail) -> str:
        raise NotImplementedError


class BrevoTransport(EmailTransport):
    """
    Sends through Brevo's ``POST /v3/smtp/email`` endpoint.

    The attachment travels base64-encoded inside the JSON body. Pass an
    ``httpx.AsyncClient`` to reuse a connection pool (or, in tests, a client
    built on ``httpx.MockTransport``); otherwise one client is opened per send.
    """

    name = "brevo"

    def __init__(
        self,
        settings: BrevoSettings,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = 30.0,
    ):
        self._settings = settings
        self._client = client
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return self._settings.configured

    def build_payload(self, email: OutgoingEmail) -> dict:
        return {
            "sender": {
                "name": self._settings.sender_name,
                "email": self._settings.sender_email,
            },
            "to": [{"email": email.recipient}],
            "subject": email.subject,
            "htmlContent": email.html,
            "attachment": [{
                "name": email.attachment_name,
                "content": base64.b64encode(email.attachment).decode("ascii"),
            }],
        }

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        return await client.post(
            self._settings.api_url,
            json=payload,
            headers={
                "api-key": self._settings.api_key,
                "accept": "application/json",
            },
        )

    async def send(self, email: OutgoingEmail) -> str:
        if not self.configured:
            raise DeliveryTransportError(self.name, "BREVO_API_KEY / BREVO_SENDER_EMAIL not configured")

        payload = self.build_payload(email)
        try:
            if self._client is not None:
                response = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._post(client, payload)
        except httpx.HTTPError as e:
            raise DeliveryTransportError(self.name, f"request failed: {e}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("message") or response.text
            except ValueError:
                detail = response.text
            raise DeliveryTransportError(
                self.name, f"API rejected message ({response.status_code}): {detail}"
            )

        try:
            message_id = response.json().get("messageId", "")
        except ValueError:
            message_id = ""
        return message_id


class SmtpTransport(EmailTransport):
    """
    Direct SMTP submission.

    TLS follows the usual port conventions: implicit TLS on 465, STARTTLS on
    any other port when ``use_tls`` is set, plain SMTP otherwise.
    """

    name = "smtp"

    def __init__(self, settings: SmtpSettings, timeout: Optional[float] = 30.0):
        self._settings = settings
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return self._settings.configured

    def build_message(self, email: OutgoingEmail) -> EmailMessage:
        s = self._settings
        msg = EmailMessage()
        msg["From"] = formataddr((s.from_name, s.from_email))
        msg["To"] = email.recipient
        msg["Subject"] = email.subject
        msg["Message-ID"] = make_msgid(domain=s.from_email.partition("@")[2] or None)
        msg.set_content("Your files are attached as a ZIP archive.")
        msg.add_alternative(email.html, subtype="html")
        msg.add_attachment(
            email.attachment,
            maintype=_ZIP_MIME[0],
            subtype=_ZIP_MIME[1],
            filename=email.attachment_name,
        )
        return msg

    async def send(self, email: OutgoingEmail) -> str:
        if not self.configured:
            raise DeliveryTransportError(self.name, "SMTP_HOST / SMTP_FROM_EMAIL not configured")

        s = self._settings
        msg = self.build_message(email)
        implicit_tls = s.use_tls and s.port == 465
        try:
            await aiosmtplib.send(
                msg,
                hostname=s.host,
                port=s.port,
                username=s.user or None,
                password=s.password or None,
                use_tls=implicit_tls,
                start_tls=s.use_tls and not implicit_tls,
                timeout=self._timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            raise DeliveryTransportError(self.name, str(e) or e.__class__.__name__) from e

        return msg["Message-ID"]
