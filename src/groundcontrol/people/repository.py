"""
People repository for database operations.
"""

from datetime import datetime
from typing import Any, Literal, Sequence

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.calls.models import Call
from groundcontrol.events.models import Event
from groundcontrol.people.models import Address, Email, Person, Phone, ZipCode
from groundcontrol.people.phone import normalize_phone
from groundcontrol.shared.exceptions import ValidationError
from groundcontrol.shared.logging import get_logger
from groundcontrol.shared.relay import local_id

logger = get_logger(__name__)

SortDirection = Literal["asc", "desc"]

# Filter keys that live on the primary address rather than on bsd_people.
_ADDRESS_FILTERS = {"zip": Address.zip, "city": Address.city, "state": Address.state_cd}

# API names that differ from the bsd_people column they filter on.
_PERSON_FILTER_ALIASES = {
    "id": "cons_id",
    "first_name": "firstname",
    "middle_name": "middlename",
    "last_name": "lastname",
    "birth_date": "birth_dt",
}


def person_column(name: str):
    """Resolve an API filter or sort name to a `Person` column."""
    column_name = _PERSON_FILTER_ALIASES.get(name, name)
    column = Person.__table__.columns.get(column_name)
    if column is None:
        raise ValidationError(f"Unknown person field: {name}")
    return getattr(Person, column_name)


def apply_person_filters(stmt, filters: dict[str, Any], cons_id_column):
    """Add WHERE clauses for person filters to `stmt`.

    Args:
        stmt: Select statement to extend.
        filters: API filter names mapped to required values.
        cons_id_column: The column holding the person's cons_id in `stmt`.

    Returns:
        The filtered statement.
    """
    address_conditions = []
    for key, value in filters.items():
        if key == "email":
            stmt = stmt.join(Email, Email.cons_id == cons_id_column).where(Email.email == value)
        elif key == "phone":
            stmt = stmt.join(Phone, Phone.cons_id == cons_id_column).where(
                Phone.phone == normalize_phone(value)
            )
        elif key in _ADDRESS_FILTERS:
            address_conditions.append(_ADDRESS_FILTERS[key] == value)
        else:
            if key == "id":
                value = int(local_id(value, "Person"))
            stmt = stmt.where(person_column(key) == value)
    if address_conditions:
        stmt = stmt.join(
            Address, and_(Address.cons_id == cons_id_column, Address.is_primary.is_(True))
        ).where(*address_conditions)
    return stmt


class PeopleRepository:
    """Repository for constituent lookups."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_person(self, cons_id: int | str) -> Person | None:
        return await self._session.get(Person, int(cons_id))

    async def get_people(self, cons_ids: Sequence[int]) -> list[Person]:
        """Load people keeping the order of `cons_ids` and skipping unknown ids."""
        if not cons_ids:
            return []
        result = await self._session.execute(
            select(Person).where(Person.cons_id.in_(set(cons_ids)))
        )
        by_id = {person.cons_id: person for person in result.scalars()}
        return [by_id[cons_id] for cons_id in cons_ids if cons_id in by_id]

    async def get_person_by_email(self, email: str) -> Person | None:
        """Find the person owning an email address (any of their emails)."""
        stmt = (
            select(Person)
            .join(Email, Email.cons_id == Person.cons_id)
            .where(Email.email == email)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def get_primary_email(self, person: Person) -> str | None:
        stmt = select(Email.email).where(
            Email.cons_id == person.cons_id, Email.is_primary.is_(True)
        )
        result = await self._session.execute(stmt.limit(1))
        return result.scalar()

    async def get_primary_phone(self, person: Person) -> str | None:
        stmt = select(Phone.phone).where(
            Phone.cons_id == person.cons_id, Phone.is_primary.is_(True)
        )
        result = await self._session.execute(stmt.limit(1))
        return result.scalar()

    async def get_primary_address(self, person: Person) -> Address | None:
        stmt = select(Address).where(
            Address.cons_id == person.cons_id, Address.is_primary.is_(True)
        )
        result = await self._session.execute(stmt.limit(1))
        return result.scalars().first()

    async def get_address(self, cons_addr_id: int | str) -> Address | None:
        return await self._session.get(Address, int(cons_addr_id))

    async def search_people(
        self,
        filters: dict[str, Any],
        first: int | None = None,
        sort_field: str | None = None,
        sort_direction: SortDirection | None = None,
    ) -> list[Person]:
        """Search people for the admin people list.

        Args:
            filters: Filter names mapped to values. Empty filters match nobody.
            first: Maximum number of people returned.
            sort_field: Optional `bsd_people` column to sort by.
            sort_direction: "asc" or "desc"; sorting needs both arguments.

        Returns:
            Matching people.
        """
        if not filters:
            return []

        stmt = apply_person_filters(select(Person), filters, Person.cons_id)

        if sort_field and sort_direction:
            column = person_column(sort_field)
            stmt = stmt.order_by(column.desc() if sort_direction == "desc" else column.asc())
        if first is not None:
            stmt = stmt.limit(first)

        logger.debug("Searching people", extra={"filters": sorted(filters)})
        result = await self._session.execute(stmt)
        return list(result.scalars().unique())

    async def last_called(self, person: Person) -> datetime | None:
        """Creation time of the most recent call to `person`."""
        stmt = (
            select(Call.create_dt)
            .where(Call.interviewee_id == person.cons_id)
            .order_by(Call.create_dt.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar()

    async def hosted_events(self, person: Person) -> list[Event]:
        result = await self._session.execute(
            select(Event)
            .where(Event.creator_cons_id == person.cons_id)
            .order_by(Event.start_dt.asc())
        )
        return list(result.scalars())

    async def local_utc_offset(self, address: Address) -> int:
        """UTC offset of the address in minutes, from its zip code. 0 if unknown."""
        if not address.zip:
            return 0
        zip_code = await self._session.get(ZipCode, address.zip)
        if zip_code is None or zip_code.timezone_offset is None:
            return 0
        return zip_code.timezone_offset * 60
