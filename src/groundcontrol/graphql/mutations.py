"""
Relay mutations. Each one delegates to a service and returns the objects the
admin UI refetches.
"""

import graphene
from graphene import relay

from groundcontrol.auth.jwt import JWTService
from groundcontrol.auth.service import AuthService
from groundcontrol.calls.service import CallAssignmentService
from groundcontrol.calls.survey import SurveySubmissionService
from groundcontrol.graphql.context import get_context
from groundcontrol.graphql.inputs import Date, EmailTarget, EventInput, enum_value, input_fields
from groundcontrol.graphql.types import (
    LIST_CONTAINER,
    CallAssignment,
    Event,
    FastFwdRequest,
    ListContainer,
    User,
)


class EditEvents(relay.ClientIDMutation):
    class Input:
        events = graphene.NonNull(graphene.List(EventInput))

    message = graphene.String()
    list_container = graphene.Field(ListContainer)

    @classmethod
    async def mutate_and_get_payload(cls, root, info, events, client_mutation_id=None):
        context = get_context(info)
        message = await context.event_service.edit_events(
            context.user, [input_fields(event) for event in events]
        )
        return EditEvents(message=message, list_container=LIST_CONTAINER)


class ReviewEvents(relay.ClientIDMutation):
    class Input:
        ids = graphene.NonNull(graphene.List(graphene.String))
        pending_review = graphene.Boolean()

    list_container = graphene.Field(ListContainer)

    @classmethod
    async def mutate_and_get_payload(
        cls, root, info, ids, pending_review=False, client_mutation_id=None
    ):
        context = get_context(info)
        await context.event_service.review_events(context.user, ids, bool(pending_review))
        return ReviewEvents(list_container=LIST_CONTAINER)


class SaveEventFile(relay.ClientIDMutation):
    class Input:
        file_name = graphene.String(required=True)
        file_type_slug = graphene.String(required=True)
        mime_type = graphene.String(required=True)
        key = graphene.String(required=True)
        notes = graphene.String()
        source_event_id = graphene.String(required=True)

    event = graphene.Field(Event)

    @classmethod
    async def mutate_and_get_payload(
        cls,
        root,
        info,
        file_name,
        file_type_slug,
        mime_type,
        key,
        source_event_id,
        notes=None,
        client_mutation_id=None,
    ):
        context = get_context(info)
        event = await context.event_service.save_event_file(
            context.user,
            file_name=file_name,
            file_type_slug=file_type_slug,
            mime_type=mime_type,
            key=key,
            notes=notes,
            source_event_id=source_event_id,
        )
        return SaveEventFile(event=event)


class SubmitCallSurvey(relay.ClientIDMutation):
    class Input:
        call_assignment_id = graphene.String(required=True)
        interviewee_id = graphene.String(required=True)
        completed = graphene.Boolean(required=True)
        left_voicemail = graphene.Boolean()
        sent_text = graphene.Boolean()
        reason_not_completed = graphene.String()
        survey_field_values = graphene.String(required=True)

    current_user = graphene.Field(User)

    @classmethod
    async def mutate_and_get_payload(
        cls,
        root,
        info,
        call_assignment_id,
        interviewee_id,
        completed,
        survey_field_values,
        left_voicemail=None,
        sent_text=None,
        reason_not_completed=None,
        client_mutation_id=None,
    ):
        context = get_context(info)
        caller = await SurveySubmissionService(context.session, context.bsd, context.clock).submit(
            context.user,
            assignment_id=call_assignment_id,
            interviewee_id=interviewee_id,
            completed=completed,
            left_voicemail=left_voicemail,
            sent_text=sent_text,
            reason_not_completed=reason_not_completed,
            survey_field_values=survey_field_values,
        )
        return SubmitCallSurvey(current_user=caller)


class CreateCallAssignment(relay.ClientIDMutation):
    class Input:
        name = graphene.String(required=True)
        interviewee_group = graphene.String(required=True)
        survey_id = graphene.Int(required=True)
        renderer = graphene.String(required=True)
        processors = graphene.List(graphene.String)
        instructions = graphene.String()
        start_date = Date()
        end_date = Date()
        caller_group_id = graphene.String()

    list_container = graphene.Field(ListContainer)
    call_assignment = graphene.Field(CallAssignment)

    @classmethod
    async def mutate_and_get_payload(cls, root, info, client_mutation_id=None, **input):
        context = get_context(info)
        assignment = await CallAssignmentService(
            context.session, context.bsd, context.clock
        ).create(context.user, **input)
        return CreateCallAssignment(list_container=LIST_CONTAINER, call_assignment=assignment)


class DeleteEvents(relay.ClientIDMutation):
    class Input:
        ids = graphene.NonNull(graphene.List(graphene.String))
        host_message = graphene.String()

    list_container = graphene.Field(ListContainer)

    @classmethod
    async def mutate_and_get_payload(cls, root, info, ids, host_message=None, client_mutation_id=None):
        context = get_context(info)
        await context.event_service.delete_events(context.user, ids, host_message)
        return DeleteEvents(list_container=LIST_CONTAINER)


class EmailHostAttendees(relay.ClientIDMutation):
    class Input:
        ids = graphene.NonNull(graphene.List(graphene.String))
        reply_to = graphene.String()
        bcc = graphene.List(graphene.String)
        subject = graphene.String()
        message = graphene.String()
        target = EmailTarget()

    success = graphene.Boolean()
    message = graphene.String()

    @classmethod
    async def mutate_and_get_payload(
        cls,
        root,
        info,
        ids,
        reply_to=None,
        bcc=None,
        subject=None,
        message=None,
        target=None,
        client_mutation_id=None,
    ):
        context = get_context(info)
        result = await context.event_service.email_host_attendees(
            context.user,
            ids,
            reply_to=reply_to,
            bcc=bcc,
            subject=subject or "",
            message=message or "",
            target=enum_value(target),
        )
        return EmailHostAttendees(success=True, message=result)


class CreateAdminEventEmail(relay.ClientIDMutation):
    class Input:
        host_email = graphene.String(required=True)
        sender_email = graphene.String(required=True)
        admin_email = graphene.String(required=True)
        host_email_subject = graphene.String(required=True)
        host_message = graphene.String(required=True)
        sender_message = graphene.String(required=True)
        recipients = graphene.List(graphene.String)
        tool_password = graphene.String(required=True)
        event_id = graphene.String(required=True)

    list_container = graphene.Field(ListContainer)

    @classmethod
    async def mutate_and_get_payload(cls, root, info, client_mutation_id=None, **input):
        context = get_context(info)
        recipients = input.pop("recipients", None)
        await context.event_service.create_admin_event_email(
            context.user, recipients=recipients, **input
        )
        return CreateAdminEventEmail(list_container=LIST_CONTAINER)


class CreateFastFwdRequest(relay.ClientIDMutation):
    class Input:
        event_id = graphene.String(required=True)
        host_message = graphene.String(required=True)

    fast_fwd_request = graphene.Field(FastFwdRequest)

    @classmethod
    async def mutate_and_get_payload(cls, root, info, event_id, host_message, client_mutation_id=None):
        request = await get_context(info).event_service.create_fast_fwd_request(event_id, host_message)
        return CreateFastFwdRequest(fast_fwd_request=request)


class ChangeUserPassword(relay.ClientIDMutation):
    class Input:
        current_password = graphene.String()
        new_password = graphene.String()

    dummy = graphene.String()

    @classmethod
    async def mutate_and_get_payload(
        cls, root, info, current_password=None, new_password=None, client_mutation_id=None
    ):
        context = get_context(info)
        service = AuthService(context.session, context.bsd, JWTService(context.settings))
        await service.change_password(context.user, current_password or "", new_password or "")
        return ChangeUserPassword(dummy="")


class RootMutation(graphene.ObjectType):
    edit_events = EditEvents.Field()
    review_events = ReviewEvents.Field()
    save_event_file = SaveEventFile.Field()
    submit_call_survey = SubmitCallSurvey.Field()
    create_call_assignment = CreateCallAssignment.Field()
    delete_events = DeleteEvents.Field()
    email_host_attendees = EmailHostAttendees.Field()
    create_admin_event_email = CreateAdminEventEmail.Field()
    create_fast_fwd_request = CreateFastFwdRequest.Field()
    change_user_password = ChangeUserPassword.Field()
