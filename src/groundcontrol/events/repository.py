"""
Event repository for database operations.
"""

from datetime import datetime
from typing import Any, Literal, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.calls.models import CallAssignment
from groundcontrol.events.fields import event_columns, event_field_from_api_field
from groundcontrol.events.models import (
    Event,
    EventAttendee,
    EventFile,
    EventFileType,
    EventType,
    FastFwdRequest,
    GCEvent,
)
from groundcontrol.people.models import Person
from groundcontrol.people.repository import apply_person_filters
from groundcontrol.shared.exceptions import ValidationError
from groundcontrol.shared.relay import local_id

EventStatus = Literal[
    "pastEvents", "pendingApproval", "pendingReview", "approved", "fastFwdRequest"
]


class EventRepository:
    """Repository for events and the rows hanging off them."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, event_id: int) -> Event | None:
        return await self._session.get(Event, event_id)

    async def get_by_obfuscated_id(self, event_id_obfuscated: str) -> Event | None:
        result = await self._session.execute(
            select(Event).where(Event.event_id_obfuscated == event_id_obfuscated)
        )
        return result.scalar_one_or_none()

    async def get_event(self, identifier: str | int) -> Event | None:
        """Find an event by Relay global id, numeric id or obfuscated id."""
        raw = local_id(identifier, "Event")
        if raw.isdigit():
            event = await self.get(int(raw))
            if event is not None:
                return event
        return await self.get_by_obfuscated_id(raw)

    async def get_many(self, event_ids: Sequence[int]) -> list[Event]:
        if not event_ids:
            return []
        result = await self._session.execute(
            select(Event).where(Event.event_id.in_(event_ids)).order_by(Event.event_id)
        )
        return list(result.scalars())

    async def list_events(
        self,
        now: datetime,
        event_filters: dict[str, Any] | None = None,
        host_filters: dict[str, Any] | None = None,
        status: EventStatus | None = None,
        sort_field: str | None = None,
        sort_direction: Literal["asc", "desc"] | None = None,
        first: int | None = None,
    ) -> list[Event]:
        """List events for the admin event table.

        Args:
            now: Reference time separating past from upcoming events.
            event_filters: Column names (already mapped from API names) to values.
            host_filters: Person filters applied to the event host.
            status: Review state to select; past events ignore review state.
            sort_field: API or column name to sort by (start date by default).
            sort_direction: "asc" (default) or "desc".
            first: Maximum number of events.

        Returns:
            Matching events.
        """
        columns = event_columns()
        stmt = select(Event)

        for column, value in (event_filters or {}).items():
            if column not in columns:
                raise ValidationError(f"Unknown event field: {column}")
            stmt = stmt.where(getattr(Event, column) == value)

        if status == "pastEvents":
            stmt = stmt.where(Event.start_dt < now)
        else:
            stmt = stmt.where(Event.start_dt >= now)

        if status == "pendingReview":
            stmt = stmt.join(GCEvent, GCEvent.event_id == Event.event_id).where(
                GCEvent.pending_review.is_(True), Event.flag_approval.is_(False)
            )
        elif status == "pendingApproval":
            stmt = stmt.where(Event.flag_approval.is_(True))
        elif status == "approved":
            stmt = stmt.where(Event.flag_approval.is_(False))
        elif status == "fastFwdRequest":
            stmt = stmt.join(FastFwdRequest, FastFwdRequest.event_id == Event.event_id).where(
                Event.flag_approval.is_(False), FastFwdRequest.email_sent_dt.is_(None)
            )

        if host_filters:
            stmt = stmt.outerjoin(Person, Person.cons_id == Event.creator_cons_id)
            stmt = apply_person_filters(stmt, host_filters, Event.creator_cons_id)

        sort_column = event_field_from_api_field(sort_field) if sort_field else "start_dt"
        if sort_column not in columns:
            raise ValidationError(f"Unknown event sort field: {sort_field}")
        order = getattr(Event, sort_column)
        stmt = stmt.order_by(order.desc() if sort_direction == "desc" else order.asc())

        if first is not None:
            stmt = stmt.limit(first)

        result = await self._session.execute(stmt)
        return list(result.scalars().unique())

    async def delete_events(self, event_ids: Sequence[int]) -> None:
        await self._session.execute(delete(Event).where(Event.event_id.in_(event_ids)))

    async def mark_reviewed(self, event_ids: Sequence[int], pending_review: bool = False) -> list[int]:
        await self._session.execute(
            update(GCEvent)
            .where(GCEvent.event_id.in_(event_ids))
            .values(pending_review=pending_review)
        )
        return list(event_ids)

    async def host_ids(self, event_ids: Sequence[int]) -> list[int]:
        result = await self._session.execute(
            select(Event.creator_cons_id).where(
                Event.event_id.in_(event_ids), Event.creator_cons_id.is_not(None)
            )
        )
        return list(result.scalars())

    async def attendee_ids(self, event_ids: Sequence[int]) -> list[int]:
        result = await self._session.execute(
            select(EventAttendee.attendee_cons_id)
            .where(EventAttendee.event_id.in_(event_ids))
            .order_by(EventAttendee.event_attendee_id)
        )
        return list(result.scalars())

    async def attendees_count(self, event: Event) -> int:
        result = await self._session.execute(
            select(func.count(EventAttendee.event_attendee_id)).where(
                EventAttendee.event_id == event.event_id
            )
        )
        return result.scalar() or 0

    async def files(self, event: Event) -> list[EventFile]:
        result = await self._session.execute(
            select(EventFile).where(EventFile.event_id == event.event_id).order_by(EventFile.id)
        )
        return list(result.scalars())

    async def add_file(self, event_file: EventFile) -> EventFile:
        self._session.add(event_file)
        await self._session.flush()
        await self._session.refresh(event_file)
        return event_file

    async def file_types(self) -> list[EventFileType]:
        result = await self._session.execute(select(EventFileType).order_by(EventFileType.id))
        return list(result.scalars())

    async def file_type_by_slug(self, slug: str) -> EventFileType | None:
        result = await self._session.execute(
            select(EventFileType).where(EventFileType.slug == slug)
        )
        return result.scalar_one_or_none()

    async def event_types(self) -> list[EventType]:
        result = await self._session.execute(select(EventType).order_by(EventType.name.asc()))
        return list(result.scalars())

    async def related_call_assignment(self, event: Event) -> CallAssignment | None:
        result = await self._session.execute(
            select(CallAssignment)
            .join(GCEvent, GCEvent.turn_out_assignment == CallAssignment.id)
            .where(GCEvent.event_id == event.event_id)
            .limit(1)
        )
        return result.scalars().first()

    async def related_event(self, assignment: CallAssignment) -> Event | None:
        result = await self._session.execute(
            select(Event)
            .join(GCEvent, GCEvent.event_id == Event.event_id)
            .where(GCEvent.turn_out_assignment == assignment.id)
            .limit(1)
        )
        return result.scalars().first()

    async def fast_fwd_request(self, event_id: int) -> FastFwdRequest | None:
        result = await self._session.execute(
            select(FastFwdRequest).where(FastFwdRequest.event_id == event_id)
        )
        return result.scalar_one_or_none()

    async def upsert_fast_fwd_request(self, event_id: int, host_message: str) -> FastFwdRequest:
        request = await self.fast_fwd_request(event_id)
        if request is None:
            request = FastFwdRequest(event_id=event_id, host_message=host_message)
            self._session.add(request)
        else:
            request.host_message = host_message
        await self._session.flush()
        await self._session.refresh(request)
        return request
