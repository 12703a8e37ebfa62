"""
Picks the next person a caller should phone for an assignment.
"""

from datetime import datetime, timedelta

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.auth.models import User
from groundcontrol.calls.hours import callable_utc_offsets
from groundcontrol.calls.models import (
    EVERYONE_GROUP,
    AssignedCall,
    Call,
    CallAssignment,
    CallFailureReason,
    GCGroup,
    PersonBSDGroup,
    PersonGCGroup,
)
from groundcontrol.people.models import Address, Email, Person, Phone, ZipCode
from groundcontrol.shared.clock import Clock, utcnow
from groundcontrol.shared.exceptions import NotFoundError
from groundcontrol.shared.logging import get_logger
from groundcontrol.shared.relay import local_id

logger = get_logger(__name__)

# Numbers that will never reach the person, on any assignment.
UNREACHABLE_REASONS = (
    CallFailureReason.WRONG_NUMBER.value,
    CallFailureReason.DISCONNECTED_NUMBER.value,
    CallFailureReason.OTHER_LANGUAGE.value,
)
# Try again once this long has passed.
RETRY_REASONS = (CallFailureReason.NO_PICKUP.value, CallFailureReason.CALL_BACK.value)
RETRY_AFTER = timedelta(hours=24)


class IntervieweeSelector:
    """Assigns one interviewee at a time to a caller.

    A caller holds at most one assigned call; asking for a new interviewee
    releases the previous one.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock | None = None,
        development: bool = False,
    ) -> None:
        self._session = session
        self._clock = clock or utcnow
        self._development = development

    async def select(self, user: User, assignment_id: str | int) -> Person | None:
        """Return the person `user` should call next, or None.

        None means nobody is callable right now: either no time zone is within
        calling hours or the group is exhausted.

        Raises:
            NotFoundError: The call assignment does not exist.
        """
        local_assignment_id = int(local_id(assignment_id, "CallAssignment"))

        await self._session.execute(delete(AssignedCall).where(AssignedCall.caller_id == user.id))

        assignment = await self._session.get(CallAssignment, local_assignment_id)
        if assignment is None:
            raise NotFoundError(f"Call assignment {assignment_id} not found")

        now = self._clock()
        offsets = callable_utc_offsets(now, self._development)
        if not offsets:
            logger.info("No time zones within calling hours", extra={"user_id": user.id})
            return None

        group = await self._session.get(GCGroup, assignment.interviewee_group)
        if group is None:
            raise NotFoundError(f"Interviewee group {assignment.interviewee_group} not found")

        stmt = self._candidates(group, local_assignment_id, offsets, now)

        caller_cons_id = await self._session.scalar(
            select(Email.cons_id).where(Email.email == user.email).limit(1)
        )
        if caller_cons_id is not None:
            stmt = stmt.where(Person.cons_id != caller_cons_id)

        cons_id = await self._session.scalar(stmt.limit(1))
        if cons_id is None:
            logger.info(
                "No interviewee available",
                extra={"user_id": user.id, "call_assignment_id": local_assignment_id},
            )
            return None

        # Another request for this caller may have assigned someone meanwhile.
        existing = await self._session.scalar(
            select(AssignedCall).where(
                AssignedCall.caller_id == user.id,
                AssignedCall.call_assignment_id == local_assignment_id,
            )
        )
        if existing is not None:
            return await self._session.get(Person, existing.interviewee_id)

        self._session.add(
            AssignedCall(
                caller_id=user.id,
                interviewee_id=cons_id,
                call_assignment_id=local_assignment_id,
                create_dt=now,
                modified_dt=now,
            )
        )
        await self._session.flush()

        logger.info(
            "Interviewee assigned",
            extra={"user_id": user.id, "interviewee_id": cons_id, "call_assignment_id": local_assignment_id},
        )
        return await self._session.get(Person, cons_id)

    def _candidates(self, group: GCGroup, assignment_id: int, offsets: list[int], now: datetime):
        previous_calls = select(Call.interviewee_id).where(
            or_(
                and_(Call.completed.is_(True), Call.call_assignment_id == assignment_id),
                Call.reason_not_completed.in_(UNREACHABLE_REASONS),
                and_(
                    Call.reason_not_completed.in_(RETRY_REASONS),
                    Call.attempted_at > now - RETRY_AFTER,
                ),
                and_(
                    Call.call_assignment_id == assignment_id,
                    Call.reason_not_completed == CallFailureReason.NOT_INTERESTED.value,
                ),
            )
        )
        assigned_calls = select(AssignedCall.interviewee_id)

        stmt = select(Person.cons_id)
        if group.cons_group_id:
            stmt = stmt.join(PersonBSDGroup, PersonBSDGroup.cons_id == Person.cons_id).where(
                PersonBSDGroup.cons_group_id == group.cons_group_id
            )
        elif group.query and group.query != EVERYONE_GROUP:
            stmt = stmt.join(PersonGCGroup, PersonGCGroup.cons_id == Person.cons_id).where(
                PersonGCGroup.gc_bsd_group_id == group.id
            )

        return (
            stmt.join(Phone, Phone.cons_id == Person.cons_id)
            .join(Address, Address.cons_id == Person.cons_id)
            .join(ZipCode, ZipCode.zip == Address.zip)
            .where(
                Phone.is_primary.is_(True),
                Address.is_primary.is_(True),
                ZipCode.timezone_offset.in_(offsets),
                Person.cons_id.not_in(previous_calls),
                Person.cons_id.not_in(assigned_calls),
            )
        )
