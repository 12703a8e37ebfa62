"""
Call survey submission.

A caller submits the survey for the interviewee they were assigned. When the
call completed, the survey's processors push the answers to BSD. The assigned
call is then replaced by a `bsd_calls` record.
"""

import json
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.auth.guards import auth_required
from groundcontrol.auth.models import User
from groundcontrol.bsd import BSDClient
from groundcontrol.calls.models import (
    AssignedCall,
    BSDSurveyField,
    Call,
    CallAssignment,
    CallFailureReason,
    GCSurvey,
    SurveyProcessor,
)
from groundcontrol.people.models import Person
from groundcontrol.people.repository import PeopleRepository
from groundcontrol.shared.clock import Clock, utcnow
from groundcontrol.shared.exceptions import (
    CallAssignmentMismatchError,
    NotFoundError,
    ValidationError,
)
from groundcontrol.shared.logging import get_logger
from groundcontrol.shared.relay import decode_id, local_id

logger = get_logger(__name__)

# Keys the survey form sends that are not BSD form answers.
RESERVED_KEYS = frozenset({"person"})


def parse_field_values(raw: str | dict[str, Any]) -> dict[str, Any]:
    if isinstance(raw, dict):
        values = dict(raw)
    else:
        try:
            values = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Survey field values are not valid JSON: {exc}") from exc
        if not isinstance(values, dict):
            raise ValidationError("Survey field values must be a JSON object")
    return {key: value for key, value in values.items() if key not in RESERVED_KEYS}


class SurveySubmissionService:
    """Records call outcomes and runs survey processors."""

    def __init__(
        self,
        session: AsyncSession,
        bsd: BSDClient,
        clock: Clock | None = None,
    ) -> None:
        self._session = session
        self._bsd = bsd
        self._clock = clock or utcnow
        self._people = PeopleRepository(session)

    async def submit(
        self,
        caller: User | None,
        assignment_id: str,
        interviewee_id: str,
        completed: bool,
        left_voicemail: bool | None,
        sent_text: bool | None,
        reason_not_completed: str | None,
        survey_field_values: str | dict[str, Any],
    ) -> User:
        """Submit a call survey for the caller's assigned call.

        Raises:
            CallAssignmentMismatchError: No assigned call, or it belongs to
                another interviewee or assignment.
            ValidationError: Bad field values or failure reason.
        """
        caller = auth_required(caller)
        local_interviewee_id = int(decode_id(interviewee_id))
        local_assignment_id = int(local_id(assignment_id, "CallAssignment"))

        if reason_not_completed is not None:
            try:
                reason_not_completed = CallFailureReason(reason_not_completed).value
            except ValueError as exc:
                raise ValidationError(f"Unknown reason: {reason_not_completed}") from exc

        assigned_call = await self._session.scalar(
            select(AssignedCall).where(
                AssignedCall.caller_id == caller.id,
                AssignedCall.call_assignment_id == local_assignment_id,
            )
        )
        if assigned_call is None:
            raise CallAssignmentMismatchError(
                f"No assigned call found when caller {caller.id} submitted call survey "
                f"for interviewee {local_interviewee_id}"
            )

        assigned = (assigned_call.caller_id, assigned_call.interviewee_id, assigned_call.call_assignment_id)
        submitted = (caller.id, local_interviewee_id, local_assignment_id)
        if assigned != submitted:
            raise CallAssignmentMismatchError(
                "Assigned call does not match submitted call info.",
                details={"assigned": list(assigned), "submitted": list(submitted)},
            )

        assignment = await self._session.get(CallAssignment, local_assignment_id)
        survey = await self._session.get(GCSurvey, assignment.gc_bsd_survey_id) if assignment else None
        if survey is None:
            raise NotFoundError(f"Survey for call assignment {local_assignment_id} not found")

        field_values = parse_field_values(survey_field_values)
        person = await self._session.get(Person, local_interviewee_id)
        if person is None:
            raise NotFoundError(f"Person {local_interviewee_id} not found")

        if completed:
            for processor in survey.processors or []:
                await self._run_processor(processor, survey, person, field_values)

        await self._session.delete(assigned_call)
        self._session.add(
            Call(
                completed=completed,
                attempted_at=self._clock(),
                left_voicemail=left_voicemail,
                sent_text=sent_text,
                reason_not_completed=reason_not_completed,
                caller_id=caller.id,
                interviewee_id=assigned_call.interviewee_id,
                call_assignment_id=assigned_call.call_assignment_id,
            )
        )
        await self._session.flush()

        logger.info(
            "Call survey submitted",
            extra={
                "caller_id": caller.id,
                "interviewee_id": local_interviewee_id,
                "call_assignment_id": local_assignment_id,
                "completed": completed,
                "reason_not_completed": reason_not_completed,
            },
        )
        return caller

    async def _run_processor(
        self,
        processor: str,
        survey: GCSurvey,
        person: Person,
        field_values: dict[str, Any],
    ) -> None:
        if processor == SurveyProcessor.EVENT_RSVPER.value:
            await self._rsvp_to_event(person, field_values)
        elif processor == SurveyProcessor.FORM_SUBMITTER.value:
            await self._submit_form(survey, person, field_values)
        else:
            logger.warning("Unknown survey processor", extra={"processor": processor})

    async def _rsvp_to_event(self, person: Person, field_values: dict[str, Any]) -> None:
        event_id = field_values.get("event_id")
        if not event_id:
            return
        address = await self._people.get_primary_address(person)
        await self._bsd.no_fail_api_request(
            "add_rsvp_to_event",
            {
                "email": await self._people.get_primary_email(person),
                "zip": address.zip if address else None,
                "phone": await self._people.get_primary_phone(person),
                "event_id_obfuscated": event_id,
            },
        )

    async def _submit_form(
        self,
        survey: GCSurvey,
        person: Person,
        field_values: dict[str, Any],
    ) -> None:
        email = await self._people.get_primary_email(person)
        if not email:
            logger.error(
                "Could not find an e-mail address for constituent",
                extra={"cons_id": person.cons_id},
            )
            return

        values = {**field_values, "Email": email}
        form_values: dict[str, Any] = {}
        for key, value in values.items():
            field_id = key if str(key).isdigit() else await self._form_field_id(survey, key)
            if field_id is not None:
                form_values[str(field_id)] = value

        await self._bsd.no_fail_api_request("process_signup", survey.signup_form_id, form_values)

    async def _form_field_id(self, survey: GCSurvey, label: str) -> int | None:
        """Form field for an answer key: exact label, else a label starting "[key]"."""
        by_label = select(BSDSurveyField.signup_form_field_id).where(
            BSDSurveyField.signup_form_id == survey.signup_form_id
        )
        field_id = await self._session.scalar(
            by_label.where(BSDSurveyField.label == label).limit(1)
        )
        if field_id is None:
            field_id = await self._session.scalar(
                by_label.where(
                    func.lower(BSDSurveyField.label).startswith(f"[{label.lower()}]", autoescape=True)
                ).limit(1)
            )
        return field_id
