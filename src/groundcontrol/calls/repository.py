"""
Call assignment repository for database operations.
"""

from datetime import datetime, timedelta

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.auth.models import User, UserUserGroup
from groundcontrol.calls.models import (
    BSDSurvey,
    Call,
    CallAssignment,
    GCGroup,
    GCSurvey,
)


def active_assignments(stmt: Select, now: datetime) -> Select:
    """Assignments ending more than a day from now, or never."""
    cutoff = now + timedelta(days=1)
    return stmt.where(or_(CallAssignment.end_dt > cutoff, CallAssignment.end_dt.is_(None)))


def inactive_assignments(stmt: Select, now: datetime) -> Select:
    """Assignments ending less than a day from now."""
    return stmt.where(CallAssignment.end_dt < now + timedelta(days=1))


def _filter_active(stmt: Select, now: datetime, active: bool | None) -> Select:
    if active is True:
        return active_assignments(stmt, now)
    if active is False:
        return inactive_assignments(stmt, now)
    return stmt


class CallAssignmentRepository:
    """Repository for call assignments and the calls made for them."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, assignment_id: int | str) -> CallAssignment | None:
        return await self._session.get(CallAssignment, int(assignment_id))

    async def list_call_assignments(
        self,
        now: datetime,
        active: bool | None = None,
        first: int | None = None,
    ) -> list[CallAssignment]:
        stmt = _filter_active(select(CallAssignment), now, active).order_by(CallAssignment.id)
        if first is not None:
            stmt = stmt.limit(first)
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def call_assignments_for_user(
        self,
        user: User,
        now: datetime,
        active: bool | None = None,
        first: int | None = None,
    ) -> list[CallAssignment]:
        """Assignments open to everyone plus those for the user's caller groups."""
        member_groups = select(UserUserGroup.user_group_id).where(
            UserUserGroup.user_id == user.id
        )
        stmt = select(CallAssignment).where(
            or_(
                CallAssignment.caller_group.is_(None),
                CallAssignment.caller_group.in_(member_groups),
            )
        )
        stmt = _filter_active(stmt, now, active).order_by(CallAssignment.id)
        if first is not None:
            stmt = stmt.limit(first)
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def calls_made(
        self,
        user: User,
        assignment_id: int | None = None,
        completed: bool | None = None,
    ) -> int:
        stmt = select(func.count(Call.id)).where(Call.caller_id == user.id)
        if assignment_id is not None:
            stmt = stmt.where(Call.call_assignment_id == assignment_id)
        if completed is not None:
            stmt = stmt.where(Call.completed.is_(completed))
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def assignment_calls_made(self, assignment: CallAssignment) -> int:
        result = await self._session.execute(
            select(func.count(Call.id)).where(Call.call_assignment_id == assignment.id)
        )
        return result.scalar() or 0

    async def get_survey(self, survey_id: int | str) -> GCSurvey | None:
        return await self._session.get(GCSurvey, int(survey_id))

    async def get_bsd_survey(self, signup_form_id: int) -> BSDSurvey | None:
        return await self._session.get(BSDSurvey, signup_form_id)

    async def get_call(self, call_id: int | str) -> Call | None:
        return await self._session.get(Call, int(call_id))


async def assignment_query_description(session: AsyncSession, assignment: CallAssignment) -> str | None:
    """Human readable description of who an assignment calls."""
    group = await session.get(GCGroup, assignment.interviewee_group)
    if group is None:
        return None
    if group.cons_group_id:
        return f"BSD Constituent Group: {group.cons_group_id}"
    return group.query
