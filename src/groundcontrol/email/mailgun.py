"""
Mailgun email client.

Messages are posted as form data to <base_url>/<domain>/messages with HTTP
basic auth ("api", <key>).
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from groundcontrol.config import Settings, get_settings
from groundcontrol.email.templates import (
    ADMIN_EVENT_INVITE_SUBJECT,
    ADMIN_EVENT_INVITE_TEXT,
    EVENT_DELETION_HTML,
    EVENT_DELETION_SUBJECT,
    EVENT_DELETION_TEXT,
    TemplateRenderer,
)
from groundcontrol.shared.exceptions import ExternalServiceError
from groundcontrol.shared.links import event_link
from groundcontrol.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    """Email message to be sent."""

    from_email: str
    to: Sequence[str]
    subject: str
    text: str
    html: str | None = None
    bcc: Sequence[str] = field(default_factory=tuple)
    reply_to: str | None = None


@dataclass(frozen=True)
class EmailResult:
    message_id: str | None
    recipients: int


class DeletedEvent(Protocol):
    """What a deletion notice needs to know about an event."""

    name: str | None
    start_dt: Any
    event_id_obfuscated: str | None


class MailgunClient:
    """Sends mail through the Mailgun HTTP API."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._http_client = http_client
        self._owns_client = http_client is None
        self._renderer = renderer or TemplateRenderer()

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(30.0))
        return self._http_client

    async def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    @property
    def messages_url(self) -> str:
        return f"{self._settings.mailgun_base_url.rstrip('/')}/{self._settings.mailgun_domain}/messages"

    async def send(self, message: EmailMessage) -> EmailResult:
        """Send one message.

        Raises:
            ExternalServiceError: If Mailgun rejects the message or is unreachable.
        """
        data: dict[str, Any] = {
            "from": message.from_email,
            "to": [address for address in message.to if address],
            "subject": message.subject,
            "text": message.text,
        }
        bcc = [address for address in message.bcc if address]
        if bcc:
            data["bcc"] = bcc
        if message.html:
            data["html"] = message.html
        if message.reply_to:
            data["h:Reply-To"] = message.reply_to

        recipients = len(data["to"]) + len(bcc)
        logger.info(
            "Sending email",
            extra={"subject": message.subject, "recipients": recipients},
        )

        try:
            response = await self._get_client().post(
                self.messages_url,
                auth=("api", self._settings.mailgun_api_key),
                data=data,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.exception(
                "Mailgun rejected message",
                extra={"status_code": exc.response.status_code},
            )
            raise ExternalServiceError(
                f"Mailgun error: {exc.response.status_code}",
                details={"body": exc.response.text[:500]},
            ) from exc
        except httpx.HTTPError as exc:
            logger.exception("Mailgun request failed")
            raise ExternalServiceError(f"Mailgun request failed: {exc}") from exc

        body = response.json() if response.content else {}
        return EmailResult(message_id=body.get("id"), recipients=recipients)

    async def send_event_deletion_notification(
        self,
        recipient: str,
        message: str,
        events: Sequence[DeletedEvent],
    ) -> EmailResult:
        lines = []
        for event in events:
            start = event.start_dt.strftime("%Y-%m-%d %H:%M") if event.start_dt else "TBD"
            link = event_link(self._settings, event.event_id_obfuscated)
            lines.append(f"- {event.name} ({start} UTC) {link}")

        rendered = self._renderer.render(
            EVENT_DELETION_SUBJECT,
            EVENT_DELETION_TEXT,
            {"message": message, "event_list": "\n".join(lines)},
            html_body=EVENT_DELETION_HTML,
        )
        return await self.send(
            EmailMessage(
                from_email=self._settings.default_from_email,
                to=[recipient],
                subject=rendered.subject,
                text=rendered.text,
                html=rendered.html,
            )
        )

    async def send_admin_event_invite(
        self,
        host_address: str,
        sender_address: str,
        host_message: str,
        sender_message: str,
        recipient_address: str,
        host_email_subject: str,
    ) -> EmailResult:
        """Send a fast forward invite written by a host, relayed by an admin.

        Replies go to the host.
        """
        rendered = self._renderer.render(
            ADMIN_EVENT_INVITE_SUBJECT,
            ADMIN_EVENT_INVITE_TEXT,
            {
                "subject": host_email_subject,
                "sender_message": sender_message,
                "host_message": host_message,
            },
        )
        return await self.send(
            EmailMessage(
                from_email=sender_address,
                to=[recipient_address],
                subject=rendered.subject,
                text=rendered.text,
                reply_to=host_address,
            )
        )
