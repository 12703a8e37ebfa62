"""
Tests for the people and call assignment repositories.
"""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import NOW, add_assignment, add_person, add_user
from groundcontrol.auth.models import UserGroup, UserUserGroup
from groundcontrol.calls.models import Call, GCGroup
from groundcontrol.calls.repository import CallAssignmentRepository, assignment_query_description
from groundcontrol.people.models import Address
from groundcontrol.people.repository import PeopleRepository
from groundcontrol.shared.exceptions import ValidationError
from groundcontrol.shared.relay import to_global_id


class TestSearchPeople:
    """Tests for PeopleRepository.search_people."""

    @pytest.mark.asyncio
    async def test_filters(self, db_session: AsyncSession) -> None:
        await add_person(db_session, 1, firstname="Ana", email="ana@example.org", phone="5550001111")
        await add_person(db_session, 2, firstname="Ben", zip_code="02139", timezone_offset=-5)
        repository = PeopleRepository(db_session)

        async def ids(filters, **kwargs) -> list[int]:
            return [person.cons_id for person in await repository.search_people(filters, **kwargs)]

        assert await ids({"firstname": "Ana"}) == [1]
        assert await ids({"email": "ana@example.org"}) == [1]
        assert await ids({"phone": "+1 (555) 000-1111"}) == [1]
        assert await ids({"zip": "02139"}) == [2]
        assert await ids({"id": to_global_id("Person", 2)}) == [2]
        assert await ids({"state": "NY"}, sort_field="firstname", sort_direction="desc") == [2, 1]
        assert await ids({"state": "NY"}, first=1, sort_field="firstname", sort_direction="asc") == [1]

    @pytest.mark.asyncio
    async def test_combined_address_filters_use_primary_address(self, db_session: AsyncSession) -> None:
        await add_person(db_session, 1, zip_code="10001")
        await add_person(db_session, 2, zip_code="02139")
        db_session.add(Address(cons_id=2, is_primary=False, zip="10001", city="Albany", state_cd="NY"))
        await db_session.flush()
        repository = PeopleRepository(db_session)

        found = await repository.search_people({"zip": "10001", "state": "NY", "city": "Springfield"})
        assert [person.cons_id for person in found] == [1]
        assert await repository.search_people({"city": "Albany", "state": "NY"}) == []

    @pytest.mark.asyncio
    async def test_empty_filters_match_nobody(self, db_session: AsyncSession) -> None:
        await add_person(db_session, 1)

        assert await PeopleRepository(db_session).search_people({}) == []

    @pytest.mark.asyncio
    async def test_unknown_field(self, db_session: AsyncSession) -> None:
        with pytest.raises(ValidationError, match="Unknown person field"):
            await PeopleRepository(db_session).search_people({"shoe_size": 9})


class TestPersonLookups:
    """Tests for address offsets and call history."""

    @pytest.mark.asyncio
    async def test_local_utc_offset_from_zip(self, db_session: AsyncSession) -> None:
        person = await add_person(db_session, 1, zip_code="94110", timezone_offset=-8)
        stray = await add_person(db_session, 2, zip_code="00000", timezone_offset=None)
        repository = PeopleRepository(db_session)

        address = await repository.get_primary_address(person)
        assert await repository.local_utc_offset(address) == -480
        assert await repository.local_utc_offset(await repository.get_primary_address(stray)) == 0

    @pytest.mark.asyncio
    async def test_last_called(self, db_session: AsyncSession) -> None:
        caller = await add_user(db_session)
        assignment = await add_assignment(db_session)
        person = await add_person(db_session, 1)
        repository = PeopleRepository(db_session)
        assert await repository.last_called(person) is None

        for hours in (5, 1):
            db_session.add(
                Call(
                    caller_id=caller.id,
                    interviewee_id=1,
                    call_assignment_id=assignment.id,
                    completed=False,
                    attempted_at=NOW - timedelta(hours=hours),
                    create_dt=NOW - timedelta(hours=hours),
                )
            )
        await db_session.flush()

        assert await repository.last_called(person) == NOW - timedelta(hours=1)


class TestCallAssignmentRepository:
    """Tests for CallAssignmentRepository."""

    @pytest.mark.asyncio
    async def test_active_filter(self, db_session: AsyncSession) -> None:
        open_ended = await add_assignment(db_session)
        ending_soon = await add_assignment(db_session, survey_id=78, end_dt=NOW + timedelta(hours=12))
        later = await add_assignment(db_session, survey_id=79, end_dt=NOW + timedelta(days=5))
        repository = CallAssignmentRepository(db_session)

        active = await repository.list_call_assignments(NOW, active=True)
        inactive = await repository.list_call_assignments(NOW, active=False)

        assert [a.id for a in active] == [open_ended.id, later.id]
        assert [a.id for a in inactive] == [ending_soon.id]
        assert len(await repository.list_call_assignments(NOW)) == 3

    @pytest.mark.asyncio
    async def test_caller_groups(self, db_session: AsyncSession) -> None:
        caller = await add_user(db_session)
        outsider = await add_user(db_session, email="outsider@example.org")
        team = UserGroup(name="Phone team")
        db_session.add(team)
        await db_session.flush()
        db_session.add(UserUserGroup(user_id=caller.id, user_group_id=team.id))
        public = await add_assignment(db_session)
        restricted = await add_assignment(db_session, survey_id=78, caller_group=team.id)
        repository = CallAssignmentRepository(db_session)

        assert [a.id for a in await repository.call_assignments_for_user(caller, NOW)] == [public.id, restricted.id]
        assert [a.id for a in await repository.call_assignments_for_user(outsider, NOW)] == [public.id]

    @pytest.mark.asyncio
    async def test_calls_made(self, db_session: AsyncSession) -> None:
        caller = await add_user(db_session)
        first = await add_assignment(db_session)
        second = await add_assignment(db_session, survey_id=78)
        db_session.add_all(
            [
                Call(caller_id=caller.id, interviewee_id=1, call_assignment_id=first.id, completed=True),
                Call(caller_id=caller.id, interviewee_id=2, call_assignment_id=first.id, completed=False),
                Call(caller_id=caller.id, interviewee_id=3, call_assignment_id=second.id, completed=True),
            ]
        )
        await db_session.flush()
        repository = CallAssignmentRepository(db_session)

        assert await repository.calls_made(caller) == 3
        assert await repository.calls_made(caller, assignment_id=first.id) == 2
        assert await repository.calls_made(caller, assignment_id=first.id, completed=True) == 1
        assert await repository.assignment_calls_made(second) == 1

    @pytest.mark.asyncio
    async def test_query_description(self, db_session: AsyncSession) -> None:
        bsd_group = GCGroup(cons_group_id=5)
        db_session.add(bsd_group)
        await db_session.flush()
        assignment = await add_assignment(db_session, group=bsd_group)
        everyone = await add_assignment(db_session, survey_id=78)

        assert await assignment_query_description(db_session, assignment) == "BSD Constituent Group: 5"
        assert await assignment_query_description(db_session, everyone) == "everyone"
