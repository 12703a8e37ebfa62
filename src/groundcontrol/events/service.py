"""
Admin workflows on events: editing, deleting, reviewing, emailing hosts and
attendees, event files and fast forward invites.
"""

from datetime import datetime
from typing import Any, Literal, Sequence

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.auth.guards import admin_required, auth_required
from groundcontrol.auth.models import User
from groundcontrol.bsd import BSDClient, BSDError, BSDExistsError, BSDValidationError
from groundcontrol.config import Settings, get_settings
from groundcontrol.email.mailgun import EmailMessage, MailgunClient
from groundcontrol.events.fields import event_columns, event_from_api_fields, event_to_dict
from groundcontrol.events.models import Event, EventFile, FastFwdRequest
from groundcontrol.events.repository import EventRepository
from groundcontrol.people.models import Communication
from groundcontrol.people.repository import PeopleRepository
from groundcontrol.shared.clock import Clock, utcnow
from groundcontrol.shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ExternalServiceError,
    NotFoundError,
)
from groundcontrol.shared.logging import get_logger
from groundcontrol.shared.relay import decode_id, local_id

logger = get_logger(__name__)

EmailTarget = Literal["host", "attendees", "hostAndAttendees"]

# Event types whose RSVPs must include a phone number.
EVENT_TYPES_REQUIRING_PHONE = frozenset({22, 31, 32, 39, 41, 45})

# BSD rejects partial host addresses, so they are never pushed.
HOST_ADDRESS_FIELDS = (
    "host_addr_addressee",
    "host_addr_addr1",
    "host_addr_addr2",
    "host_addr_zip",
    "host_addr_city",
    "host_addr_state_cd",
    "host_addr_country",
)


def _bsd_payload(event: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in event.items()
    }


def _event_ids(ids: Sequence[str | int]) -> list[int]:
    return [int(decode_id(value)) for value in ids]


class EventService:
    """Event mutations performed by admins (and a few by any logged-in user)."""

    def __init__(
        self,
        session: AsyncSession,
        bsd: BSDClient,
        mailer: MailgunClient,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._session = session
        self._bsd = bsd
        self._mailer = mailer
        self._settings = settings or get_settings()
        self._clock = clock or utcnow
        self._events = EventRepository(session)
        self._people = PeopleRepository(session)

    async def edit_events(self, user: User | None, events: Sequence[dict[str, Any]]) -> str:
        """Apply edits from the admin UI to BSD and the local mirror.

        Returns:
            "N Event(s) Updated", or the comma-joined list of per-event errors.
        """
        user = admin_required(user)
        message = f"{len(events)} Event{'s' if len(events) > 1 else ''} Updated"
        update_errors: list[str] = []
        reviewed: list[int] = []
        columns = event_columns()

        for fields in events:
            new_data = event_from_api_fields(fields)
            event = await self._events.get_event(new_data.get("event_id", ""))
            if event is None:
                update_errors.append(f"{new_data.get('event_id')}: Event not found")
                continue

            if event.flag_approval is True and new_data.get("flag_approval") is False:
                reviewed.append(event.event_id)

            logger.info(
                "Event updated",
                extra={
                    "event_id": event.event_id,
                    "event_id_obfuscated": event.event_id_obfuscated,
                    "user_email": user.email,
                    "changed_fields": sorted(new_data),
                },
            )

            merged = {**event_to_dict(event), **new_data}
            merged = {key: value for key, value in merged.items() if value != ""}
            if merged.get("event_type_id") in EVENT_TYPES_REQUIRING_PHONE:
                merged["attendee_require_phone"] = 1
            for field in HOST_ADDRESS_FIELDS:
                merged.pop(field, None)

            try:
                await self._bsd.update_event(_bsd_payload(merged))
            except BSDValidationError as exc:
                logger.warning(
                    "BSD rejected event update",
                    extra={"event_id": event.event_id, "error": exc.message},
                )
                update_errors.append(f"{event.event_id_obfuscated}: {exc.message}")
                continue
            except BSDExistsError:
                await self._events.delete_events([event.event_id])
                logger.info("Deleted event missing from BSD", extra={"event_id": event.event_id})
                continue
            except (BSDError, httpx.HTTPError) as exc:
                logger.exception(
                    "Unknown error updating event in BSD",
                    extra={"event_id": event.event_id},
                )
                update_errors.append(f"{event.event_id_obfuscated}: {exc}")

            for key, value in merged.items():
                if key in columns and key != "event_id":
                    setattr(event, key, value)
            event.modified_dt = self._clock()

        await self._session.flush()

        if update_errors:
            message = ", ".join(update_errors)
        if reviewed:
            await self._events.mark_reviewed(reviewed)
        return message

    async def delete_events(
        self,
        user: User | None,
        ids: Sequence[str],
        host_message: str | None = None,
    ) -> list[int]:
        """Delete events in BSD and locally, optionally notifying people by email.

        Non-superusers may only delete one event at a time.
        """
        user = admin_required(user)
        if not user.is_superuser and len(ids) != 1:
            raise AuthorizationError(
                "Your account is only authorized to delete one event at a time."
            )

        event_ids = _event_ids(ids)
        try:
            await self._bsd.delete_events(event_ids)
        except (BSDError, httpx.HTTPError) as exc:
            logger.exception("BSD event deletion failed", extra={"event_ids": event_ids})
            raise ExternalServiceError(f"Could not delete events in BSD: {exc}") from exc

        logger.info(
            "Events deleted",
            extra={"event_ids": event_ids, "count": len(event_ids), "user_email": user.email},
        )

        if host_message:
            try:
                await self._notify_deletion(user, event_ids, host_message)
            except ExternalServiceError:
                logger.exception("Could not send deletion email", extra={"event_ids": event_ids})

        await self._events.delete_events(event_ids)
        await self._events.mark_reviewed(event_ids)
        return event_ids

    async def _notify_deletion(self, user: User, event_ids: list[int], message: str) -> None:
        events = await self._events.get_many(event_ids)
        people_ids = await self._events.host_ids(event_ids)
        people_ids += await self._events.attendee_ids(event_ids)

        for person in await self._people.get_people(people_ids):
            recipient = await self._people.get_primary_email(person)
            if recipient:
                await self._mailer.send_event_deletion_notification(recipient, message, events)

        await self._mailer.send_event_deletion_notification(user.email, message, events)

    async def email_host_attendees(
        self,
        user: User | None,
        ids: Sequence[str],
        reply_to: str | None,
        bcc: Sequence[str] | None,
        subject: str,
        message: str,
        target: EmailTarget,
    ) -> str:
        """Send one message to the hosts and/or attendees of the given events.

        All recipients are blind copied on a message from the default sender to
        itself.
        """
        user = admin_required(user)
        event_ids = _event_ids(ids)
        logger.info(
            "Event email sent",
            extra={"event_ids": event_ids, "target": target, "user_email": user.email},
        )

        people_ids: list[int] = []
        if target in ("host", "hostAndAttendees"):
            people_ids += await self._events.host_ids(event_ids)
        if target in ("attendees", "hostAndAttendees"):
            people_ids += await self._events.attendee_ids(event_ids)

        recipients: list[str] = []
        for person in await self._people.get_people(people_ids):
            email = await self._people.get_primary_email(person)
            if email:
                recipients.append(email)

        sender = self._settings.default_from_email
        await self._mailer.send(
            EmailMessage(
                from_email=sender,
                to=[sender],
                bcc=[*(bcc or []), *recipients],
                subject=subject,
                text=message,
                reply_to=reply_to,
            )
        )
        return f"Message sent to {len(recipients)} recipients."

    async def review_events(
        self,
        user: User | None,
        ids: Sequence[str],
        pending_review: bool = False,
    ) -> list[int]:
        user = admin_required(user)
        event_ids = _event_ids(ids)
        logger.info(
            "Events marked reviewed",
            extra={"event_ids": event_ids, "pending_review": pending_review, "user_email": user.email},
        )
        return await self._events.mark_reviewed(event_ids, pending_review)

    async def save_event_file(
        self,
        user: User | None,
        file_name: str,
        file_type_slug: str,
        mime_type: str,
        key: str,
        notes: str | None,
        source_event_id: str,
    ) -> Event:
        """Record a file already uploaded to S3 under `key`."""
        user = auth_required(user)
        file_type = await self._events.file_type_by_slug(file_type_slug)
        if file_type is None:
            raise NotFoundError(f"Unknown event file type: {file_type_slug}")
        event = await self._events.get_event(source_event_id)
        if event is None:
            raise NotFoundError(f"Event {source_event_id} not found")

        await self._events.add_file(
            EventFile(
                event_id=event.event_id,
                event_file_type_id=file_type.id,
                uploader_id=user.id,
                mime_type=mime_type,
                name=file_name,
                notes=notes,
                s3_key=key,
            )
        )
        logger.info(
            "Event file saved",
            extra={"event_id": event.event_id, "file_type": file_type_slug, "user_email": user.email},
        )
        return event

    async def create_admin_event_email(
        self,
        user: User | None,
        host_email: str,
        sender_email: str,
        admin_email: str,
        host_email_subject: str,
        host_message: str,
        sender_message: str,
        recipients: Sequence[str] | None,
        tool_password: str,
        event_id: str,
    ) -> None:
        """Send a fast forward invite for an event.

        A copy goes to `admin_email` first. Each recipient gets the invite at
        their primary email and a `communications` row so later searches skip
        them. The request is stamped as sent only when recipients were given.
        """
        user = admin_required(user)
        if tool_password != self._settings.fast_fwd_tool_password:
            raise AuthenticationError("Incorrect password for this tool.", code="BAD_TOOL_PASSWORD")

        event = await self._events.get_event(event_id)
        if event is None:
            raise NotFoundError(f"Event {event_id} not found")
        local_event_id = event.event_id
        request = await self._events.fast_fwd_request(local_event_id)
        if request is not None and request.email_sent_dt is not None:
            raise AuthorizationError("Fast Forward has already been sent for this event.")

        invite = {
            "host_address": host_email,
            "sender_address": sender_email,
            "host_message": host_message,
            "sender_message": sender_message,
            "host_email_subject": host_email_subject,
        }
        await self._mailer.send_admin_event_invite(recipient_address=admin_email, **invite)

        recipients = list(recipients or [])
        for recipient_id in recipients:
            person = await self._people.get_person(decode_id(recipient_id))
            if person is None:
                logger.warning("Fast forward recipient not found", extra={"recipient": recipient_id})
                continue
            email = await self._people.get_primary_email(person)
            if email is None:
                logger.warning(
                    "Fast forward recipient has no primary email",
                    extra={"cons_id": person.cons_id},
                )
                continue
            await self._mailer.send_admin_event_invite(recipient_address=email, **invite)
            self._session.add(Communication(person_id=person.cons_id, type="EMAIL"))

        if recipients and request is not None:
            request.email_sent_dt = self._clock()
        await self._session.flush()

        logger.info(
            "Fast forward request fulfilled",
            extra={"event_id": local_event_id, "recipients": len(recipients), "user_email": user.email},
        )

    async def create_fast_fwd_request(self, event_id: str, host_message: str) -> FastFwdRequest:
        """Create or replace the host's fast forward request for an event."""
        event = await self._events.get_event(event_id)
        if event is None:
            raise NotFoundError(f"Event {event_id} not found")
        request = await self._events.upsert_fast_fwd_request(event.event_id, host_message)
        logger.info("Fast forward request saved", extra={"event_id": event.event_id})
        return request

    async def get_fast_fwd_request(self, identifier: str) -> FastFwdRequest | None:
        """Look up a request by its own global id or by any event identifier."""
        raw = local_id(identifier, "FastFwdRequest")
        if raw != identifier and raw.isdigit():
            return await self._session.get(FastFwdRequest, int(raw))
        event = await self._events.get_event(identifier)
        if event is None:
            return None
        return await self._events.fast_fwd_request(event.event_id)
