"""
Radius searches: events near a person and people near an event.

Candidates are pre-filtered with an indexable latitude/longitude window and
then checked with the exact haversine distance.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.events.models import Event, EventType
from groundcontrol.geo.distance import bounding_box, haversine_meters
from groundcontrol.people.models import Address, Communication, Email, Person, Subscription
from groundcontrol.people.repository import PeopleRepository
from groundcontrol.shared.clock import Clock, utcnow
from groundcontrol.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class NearbyPeopleConfig:
    """Expanding-radius parameters for the invite search around an event."""

    limit: int = 500
    initial_radius_meters: int = 1000
    initial_step_meters: int = 1000
    wide_step_meters: int = 5000
    wide_step_from_meters: int = 15000
    max_radius_meters: int = 50000


class GeoSearchService:
    """Distance based lookups used by the Person and Event types."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock | None = None,
        config: NearbyPeopleConfig | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or utcnow
        self._config = config or NearbyPeopleConfig()
        self._people = PeopleRepository(session)

    async def nearby_events(
        self,
        person: Person,
        within_km: float,
        type_name: str | None = None,
    ) -> list[Event]:
        """Upcoming, approved, searchable events within `within_km` of the person.

        Args:
            person: Person whose primary address is the center.
            within_km: Search radius in kilometers.
            type_name: Optional case-insensitive fragment of the event type name.

        Returns:
            Matching events ordered by distance.
        """
        address = await self._people.get_primary_address(person)
        if address is None or address.latitude is None or address.longitude is None:
            return []

        meters = within_km * 1000
        box = bounding_box(address.latitude, address.longitude, meters)

        stmt = select(Event).where(
            Event.start_dt > self._clock(),
            Event.flag_approval.is_(False),
            Event.is_searchable != 0,
            Event.latitude.between(box.min_latitude, box.max_latitude),
            Event.longitude.between(box.min_longitude, box.max_longitude),
        )
        if type_name:
            type_ids = select(EventType.event_type_id).where(
                func.lower(EventType.name).contains(type_name.lower())
            )
            stmt = stmt.where(Event.event_type_id.in_(type_ids))

        result = await self._session.execute(stmt)
        ranked = []
        for event in result.scalars():
            distance = haversine_meters(
                address.latitude, address.longitude, event.latitude, event.longitude
            )
            if distance <= meters:
                ranked.append((distance, event))
        ranked.sort(key=lambda item: item[0])
        return [event for _, event in ranked]

    async def nearby_people(self, event: Event) -> list[Person]:
        """Up to `limit` invitable people around an event, nearest rings first.

        A person qualifies with a primary address inside the radius, a primary
        email, an active subscription and no prior communication. Each email
        address is returned once.
        """
        if event.latitude is None or event.longitude is None:
            return []

        config = self._config
        radius = config.initial_radius_meters
        step = config.initial_step_meters
        found: list[Person] = []
        found_ids: set[int] = set()
        seen_emails: set[str] = set()

        while len(found) < config.limit and radius <= config.max_radius_meters:
            candidates = await self._candidates_within(event, radius, found_ids)
            for person, email in candidates:
                if len(found) >= config.limit:
                    break
                if person.cons_id in found_ids or email in seen_emails:
                    continue
                found.append(person)
                found_ids.add(person.cons_id)
                seen_emails.add(email)

            radius += step
            if radius == config.wide_step_from_meters:
                step = config.wide_step_meters

        logger.info(
            "Nearby people search finished",
            extra={"event_id": event.event_id, "found": len(found), "radius": radius},
        )
        return found

    async def _candidates_within(
        self,
        event: Event,
        radius: float,
        exclude: set[int],
    ) -> list[tuple[Person, str]]:
        box = bounding_box(event.latitude, event.longitude, radius)
        stmt = (
            select(Person, Email.email, Address.latitude, Address.longitude)
            .join(Address, Address.cons_id == Person.cons_id)
            .join(Email, Email.cons_id == Person.cons_id)
            .join(Subscription, Subscription.cons_id == Person.cons_id)
            .outerjoin(Communication, Communication.person_id == Person.cons_id)
            .where(
                Address.is_primary.is_(True),
                Email.is_primary.is_(True),
                Subscription.isunsub.is_(False),
                Communication.id.is_(None),
                Address.latitude.between(box.min_latitude, box.max_latitude),
                Address.longitude.between(box.min_longitude, box.max_longitude),
            )
        )
        if exclude:
            stmt = stmt.where(Person.cons_id.not_in(exclude))

        result = await self._session.execute(stmt)
        ranked = []
        for person, email, latitude, longitude in result.all():
            distance = haversine_meters(event.latitude, event.longitude, latitude, longitude)
            if distance <= radius:
                ranked.append((distance, person.cons_id, person, email))
        ranked.sort(key=lambda item: (item[0], item[1]))
        return [(person, email) for _, _, person, email in ranked]
