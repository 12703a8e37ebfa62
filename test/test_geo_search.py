"""
Tests for radius searches around people and events.
"""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import NOW, add_event, add_person
from groundcontrol.events.models import EventType
from groundcontrol.geo.search import GeoSearchService, NearbyPeopleConfig
from groundcontrol.people.models import Communication

CENTER = (40.7128, -74.0060)
# Roughly 0.009 degrees of latitude per kilometer.
KM = 0.009


class TestNearbyEvents:
    """Tests for GeoSearchService.nearby_events."""

    @pytest.mark.asyncio
    async def test_filters_and_orders_by_distance(self, db_session: AsyncSession) -> None:
        """Only upcoming, approved, searchable events in range come back, nearest first."""
        person = await add_person(db_session, 1, latitude=CENTER[0], longitude=CENTER[1])
        soon = NOW + timedelta(days=3)
        lat, lon = CENTER

        await add_event(db_session, 10, soon, latitude=lat + 5 * KM, longitude=lon)
        await add_event(db_session, 11, soon, latitude=lat + 1 * KM, longitude=lon)
        await add_event(db_session, 12, soon, latitude=lat + 50 * KM, longitude=lon)
        await add_event(db_session, 13, NOW - timedelta(days=1), latitude=lat, longitude=lon)
        await add_event(db_session, 14, soon, flag_approval=True, latitude=lat, longitude=lon)
        await add_event(db_session, 15, soon, is_searchable=0, latitude=lat, longitude=lon)

        service = GeoSearchService(db_session, clock=lambda: NOW)
        events = await service.nearby_events(person, within_km=10)

        assert [event.event_id for event in events] == [11, 10]

    @pytest.mark.asyncio
    async def test_type_filter(self, db_session: AsyncSession) -> None:
        person = await add_person(db_session, 1, latitude=CENTER[0], longitude=CENTER[1])
        db_session.add_all(
            [
                EventType(event_type_id=1, name="Phonebank"),
                EventType(event_type_id=2, name="Canvass"),
            ]
        )
        soon = NOW + timedelta(days=1)
        await add_event(db_session, 20, soon, event_type_id=1, latitude=CENTER[0], longitude=CENTER[1])
        await add_event(db_session, 21, soon, event_type_id=2, latitude=CENTER[0], longitude=CENTER[1])

        service = GeoSearchService(db_session, clock=lambda: NOW)
        events = await service.nearby_events(person, within_km=5, type_name="phone")

        assert [event.event_id for event in events] == [20]

    @pytest.mark.asyncio
    async def test_person_without_coordinates(self, db_session: AsyncSession) -> None:
        person = await add_person(db_session, 1)
        await add_event(db_session, 30, NOW + timedelta(days=1), latitude=CENTER[0], longitude=CENTER[1])

        service = GeoSearchService(db_session, clock=lambda: NOW)

        assert await service.nearby_events(person, within_km=100) == []


class TestNearbyPeople:
    """Tests for GeoSearchService.nearby_people."""

    @pytest.mark.asyncio
    async def test_invitable_people_nearest_first(self, db_session: AsyncSession) -> None:
        """Unsubscribed, already contacted and duplicate-email people are skipped."""
        lat, lon = CENTER
        event = await add_event(db_session, 40, NOW + timedelta(days=2), latitude=lat, longitude=lon)

        await add_person(db_session, 1, email="far@example.org", subscribed=True, latitude=lat + 3 * KM, longitude=lon)
        await add_person(db_session, 2, email="near@example.org", subscribed=True, latitude=lat + 0.5 * KM, longitude=lon)
        await add_person(db_session, 3, email="gone@example.org", subscribed=False, latitude=lat, longitude=lon)
        await add_person(db_session, 4, email="told@example.org", subscribed=True, latitude=lat, longitude=lon)
        await add_person(db_session, 5, email="near@example.org", subscribed=True, latitude=lat + 2 * KM, longitude=lon)
        await add_person(db_session, 6, email="distant@example.org", subscribed=True, latitude=lat + 80 * KM, longitude=lon)
        db_session.add(Communication(person_id=4, type="EMAIL"))
        await db_session.flush()

        service = GeoSearchService(db_session)
        people = await service.nearby_people(event)

        assert [person.cons_id for person in people] == [2, 1]

    @pytest.mark.asyncio
    async def test_limit_stops_the_search(self, db_session: AsyncSession) -> None:
        lat, lon = CENTER
        event = await add_event(db_session, 41, NOW + timedelta(days=2), latitude=lat, longitude=lon)
        for cons_id in range(1, 6):
            await add_person(
                db_session,
                cons_id,
                email=f"p{cons_id}@example.org",
                subscribed=True,
                latitude=lat + cons_id * 0.1 * KM,
                longitude=lon,
            )

        service = GeoSearchService(db_session, config=NearbyPeopleConfig(limit=3))
        people = await service.nearby_people(event)

        assert [person.cons_id for person in people] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_event_without_coordinates(self, db_session: AsyncSession) -> None:
        event = await add_event(db_session, 42, NOW + timedelta(days=2))
        await add_person(db_session, 1, email="a@example.org", subscribed=True, latitude=1.0, longitude=1.0)

        assert await GeoSearchService(db_session).nearby_people(event) == []

    @pytest.mark.asyncio
    async def test_radius_grows_to_fifty_kilometers(self, db_session: AsyncSession) -> None:
        """Rings widen by 1 km up to 15 km, then by 5 km, and stop after 50 km."""
        lat, lon = CENTER
        event = await add_event(db_session, 43, NOW + timedelta(days=2), latitude=lat, longitude=lon)
        for cons_id, km in ((1, 51), (2, 49), (3, 17)):
            await add_person(
                db_session,
                cons_id,
                email=f"p{cons_id}@example.org",
                subscribed=True,
                latitude=lat + km * KM,
                longitude=lon,
            )

        service = GeoSearchService(db_session)
        searched = []
        candidates_within = service._candidates_within

        async def record(event, radius, exclude):
            searched.append(radius)
            return await candidates_within(event, radius, exclude)

        service._candidates_within = record
        people = await service.nearby_people(event)

        assert [person.cons_id for person in people] == [3, 2]
        assert searched == list(range(1000, 15001, 1000)) + list(range(20000, 50001, 5000))
