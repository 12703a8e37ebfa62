"""
Call assignment creation and interviewee group management.
"""

import re
from datetime import datetime
from typing import Any, Sequence

import httpx
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.auth.guards import admin_required
from groundcontrol.auth.models import User
from groundcontrol.bsd import BSDClient, BSDError
from groundcontrol.calls.models import (
    EVERYONE_GROUP,
    BSDGroup,
    BSDSurvey,
    BSDSurveyField,
    CallAssignment,
    GCGroup,
    GCSurvey,
    PersonGCGroup,
)
from groundcontrol.shared.clock import Clock, to_naive_utc, utcnow
from groundcontrol.shared.exceptions import ExternalServiceError, ValidationError
from groundcontrol.shared.logging import get_logger
from groundcontrol.shared.relay import decode_id

logger = get_logger(__name__)

FORBIDDEN_SQL = ("drop", "truncate", "delete", "update")
BSD_NOT_FOUND = 409

_TRAILING_SEMICOLONS = re.compile(r";*$")
_BSD_DATETIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d")


def parse_bsd_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    for fmt in _BSD_DATETIME_FORMATS:
        try:
            return datetime.strptime(str(value), fmt)
        except ValueError:
            continue
    return None


def _int_or_none(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _flag(value: Any) -> bool | None:
    if value is None:
        return None
    return str(value).strip().lower() in ("1", "true", "yes")


def normalize_group_query(query: str) -> str:
    """Lower-case, trim and drop trailing semicolons.

    Raises:
        ValidationError: The query contains a data-modifying keyword.
    """
    query = _TRAILING_SEMICOLONS.sub("", query.lower().strip())
    if any(keyword in query for keyword in FORBIDDEN_SQL):
        raise ValidationError("Cannot use DROP in your SQL")
    return query


class GroupService:
    """Resolves interviewee groups and materializes saved-query groups."""

    def __init__(self, session: AsyncSession, bsd: BSDClient) -> None:
        self._session = session
        self._bsd = bsd

    async def group_for(self, group_text: str) -> GCGroup:
        """Find or create the group for a BSD group id or a SQL query."""
        group_text = group_text.strip()
        if group_text.isdigit():
            return await self._constituent_group(int(group_text))
        return await self._query_group(normalize_group_query(group_text))

    async def _constituent_group(self, cons_group_id: int) -> GCGroup:
        if await self._session.get(BSDGroup, cons_group_id) is None:
            try:
                response = await self._bsd.get_constituent_group(cons_group_id)
            except BSDError as exc:
                if exc.status_code == BSD_NOT_FOUND:
                    raise ValidationError("Provided group ID does not exist in BSD.") from exc
                raise ExternalServiceError(f"BSD group lookup failed: {exc.message}") from exc
            except httpx.HTTPError as exc:
                raise ExternalServiceError(f"BSD group lookup failed: {exc}") from exc

            self._session.add(
                BSDGroup(
                    cons_group_id=cons_group_id,
                    name=response.get("name"),
                    description=response.get("description"),
                    create_dt=parse_bsd_datetime(response.get("create_dt")) or utcnow(),
                    modified_dt=parse_bsd_datetime(response.get("modified_dt")) or utcnow(),
                )
            )
            await self._session.flush()

        group = await self._session.scalar(
            select(GCGroup).where(GCGroup.cons_group_id == cons_group_id).limit(1)
        )
        if group is None:
            group = GCGroup(cons_group_id=cons_group_id)
            self._session.add(group)
            await self._session.flush()
        return group

    async def _query_group(self, query: str) -> GCGroup:
        if query != EVERYONE_GROUP:
            await self.validate_query(query)

        group = await self._session.scalar(select(GCGroup).where(GCGroup.query == query).limit(1))
        if group is None:
            group = GCGroup(query=query)
            self._session.add(group)
            await self._session.flush()
            await self.refresh_query_group(group)
        return group

    async def validate_query(self, query: str) -> None:
        """Run the query for a single row to check that it is valid SQL."""
        limited = query if "order by" in query else f"{query} order by cons_id"
        limited = f"{limited} limit 1 offset 0"
        try:
            async with self._session.begin_nested():
                connection = await self._session.connection()
                await connection.exec_driver_sql(limited)
        except SQLAlchemyError as exc:
            cause = getattr(exc, "orig", None) or exc
            raise ValidationError(f"Invalid SQL query: {cause}") from exc

    async def refresh_query_group(self, group: GCGroup) -> int:
        """Replace the stored members of a saved-query group with the query's rows.

        Returns:
            Number of members stored.
        """
        if not group.query or group.query == EVERYONE_GROUP:
            return 0

        connection = await self._session.connection()
        result = await connection.exec_driver_sql(
            f"select distinct q.cons_id from ({group.query}) as q"
        )
        cons_ids = [row[0] for row in result]

        await self._session.execute(
            delete(PersonGCGroup).where(PersonGCGroup.gc_bsd_group_id == group.id)
        )
        self._session.add_all(
            PersonGCGroup(cons_id=cons_id, gc_bsd_group_id=group.id) for cons_id in cons_ids
        )
        await self._session.flush()

        logger.info("Query group refreshed", extra={"group_id": group.id, "members": len(cons_ids)})
        return len(cons_ids)


class CallAssignmentService:
    """Creates call assignments from the admin UI."""

    def __init__(
        self,
        session: AsyncSession,
        bsd: BSDClient,
        clock: Clock | None = None,
    ) -> None:
        self._session = session
        self._bsd = bsd
        self._clock = clock or utcnow
        self._groups = GroupService(session, bsd)

    async def create(
        self,
        user: User | None,
        name: str,
        interviewee_group: str,
        survey_id: int,
        renderer: str,
        processors: Sequence[str] | None = None,
        instructions: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        caller_group_id: str | None = None,
    ) -> CallAssignment:
        """Create a call assignment.

        The BSD survey and constituent group are mirrored locally on first use.

        Raises:
            ValidationError: Unknown survey or group in BSD, or a bad SQL group.
        """
        user = admin_required(user)

        await self._ensure_survey(survey_id)
        survey = GCSurvey(signup_form_id=survey_id, processors=list(processors or []))
        self._session.add(survey)
        await self._session.flush()

        group = await self._groups.group_for(interviewee_group)

        assignment = CallAssignment(
            name=name,
            renderer=renderer,
            instructions=instructions,
            interviewee_group=group.id,
            gc_bsd_survey_id=survey.id,
            start_dt=to_naive_utc(start_date) or self._clock(),
            end_dt=to_naive_utc(end_date),
            caller_group=int(decode_id(caller_group_id)) if caller_group_id else None,
        )
        self._session.add(assignment)
        await self._session.flush()
        await self._session.refresh(assignment)

        logger.info(
            "Call assignment created",
            extra={
                "call_assignment_id": assignment.id,
                "survey_id": survey_id,
                "group_id": group.id,
                "user_email": user.email,
            },
        )
        return assignment

    async def _ensure_survey(self, survey_id: int) -> BSDSurvey:
        survey = await self._session.get(BSDSurvey, survey_id)
        if survey is not None:
            return survey

        try:
            form = await self._bsd.get_form(survey_id)
            fields = await self._bsd.list_form_fields(survey_id)
        except BSDError as exc:
            if exc.status_code == BSD_NOT_FOUND:
                raise ValidationError("Provided survey ID does not exist in BSD.") from exc
            raise ExternalServiceError(f"BSD survey lookup failed: {exc.message}") from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"BSD survey lookup failed: {exc}") from exc

        survey = BSDSurvey(
            signup_form_id=survey_id,
            signup_form_slug=form.get("signup_form_slug"),
            create_dt=parse_bsd_datetime(form.get("create_dt")) or utcnow(),
            modified_dt=parse_bsd_datetime(form.get("modified_dt")) or utcnow(),
        )
        self._session.add(survey)

        for field in fields:
            field_id = _int_or_none(field.get("signup_form_field_id"))
            if field_id is None or await self._session.get(BSDSurveyField, field_id) is not None:
                continue
            self._session.add(
                BSDSurveyField(
                    signup_form_field_id=field_id,
                    signup_form_id=survey_id,
                    format=_int_or_none(field.get("format")),
                    label=field.get("label"),
                    description=field.get("description"),
                    display_order=_int_or_none(field.get("display_order")),
                    is_shown=_flag(field.get("is_shown")),
                    is_required=_flag(field.get("is_required")),
                    create_dt=parse_bsd_datetime(field.get("create_dt")) or utcnow(),
                    modified_dt=parse_bsd_datetime(field.get("modified_dt")) or utcnow(),
                )
            )
        await self._session.flush()
        logger.info("BSD survey mirrored", extra={"survey_id": survey_id, "fields": len(fields)})
        return survey
