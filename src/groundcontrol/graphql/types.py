"""
GraphQL object types.

Every type implements the Relay `Node` interface. Resolvers receive ORM rows
and read their collaborators from the request context.
"""

from datetime import datetime
from typing import Any

import graphene
from graphene import relay

from groundcontrol.auth.guards import auth_required
from groundcontrol.auth.models import User as UserModel
from groundcontrol.auth.repository import UserRepository
from groundcontrol.calls.models import (
    Call as CallModel,
    CallAssignment as CallAssignmentModel,
    GCSurvey,
)
from groundcontrol.calls.repository import assignment_query_description
from groundcontrol.calls.selection import IntervieweeSelector
from groundcontrol.events import fields as event_fields
from groundcontrol.events.models import (
    Event as EventModel,
    EventFile as EventFileModel,
    EventFileType as EventFileTypeModel,
    EventType as EventTypeModel,
    FastFwdRequest as FastFwdRequestModel,
)
from groundcontrol.graphql.context import get_context
from groundcontrol.graphql.inputs import (
    Date,
    EventInput,
    EventStatus,
    PersonInput,
    SortDirection,
    enum_value,
    input_fields,
)
from groundcontrol.people.models import Address as AddressModel, Person as PersonModel
from groundcontrol.shared.clock import to_naive_utc
from groundcontrol.shared.links import event_file_url, event_link, survey_url
from groundcontrol.shared.relay import local_id


class ListContainerRoot:
    """The single object behind `listContainer`."""

    id = 1


LIST_CONTAINER = ListContainerRoot()


def _person_filters(filters: Any) -> dict[str, Any]:
    values = input_fields(filters)
    return {
        key: to_naive_utc(value) if isinstance(value, datetime) else value
        for key, value in values.items()
    }


class ListContainer(graphene.ObjectType):
    class Meta:
        interfaces = (relay.Node,)

    event_file_types = graphene.List(lambda: EventFileType)
    event_types = graphene.List(lambda: EventType)
    events = relay.ConnectionField(
        lambda: EventConnection,
        event_filter_options=EventInput(),
        host_filter_options=PersonInput(),
        status=EventStatus(),
        sort_field=graphene.String(),
        sort_direction=SortDirection(),
    )
    people = relay.ConnectionField(
        lambda: PersonConnection,
        person_filters=PersonInput(),
        sort_field=graphene.String(),
        sort_direction=SortDirection(),
    )
    call_assignments = relay.ConnectionField(
        lambda: CallAssignmentConnection,
        active=graphene.Boolean(),
    )

    @classmethod
    def is_type_of(cls, root, info):
        return isinstance(root, ListContainerRoot)

    @classmethod
    def get_node(cls, info, id):
        return LIST_CONTAINER

    async def resolve_event_file_types(root, info):
        return await get_context(info).events.file_types()

    async def resolve_event_types(root, info):
        return await get_context(info).events.event_types()

    async def resolve_events(
        root,
        info,
        event_filter_options=None,
        host_filter_options=None,
        status=None,
        sort_field=None,
        sort_direction=None,
        first=None,
        **kwargs,
    ):
        context = get_context(info)
        return await context.events.list_events(
            now=context.clock(),
            event_filters=event_fields.event_from_api_fields(input_fields(event_filter_options)),
            host_filters=_person_filters(host_filter_options),
            status=enum_value(status),
            sort_field=sort_field,
            sort_direction=enum_value(sort_direction),
            first=first,
        )

    async def resolve_people(
        root,
        info,
        person_filters=None,
        sort_field=None,
        sort_direction=None,
        first=None,
        **kwargs,
    ):
        return await get_context(info).people.search_people(
            _person_filters(person_filters),
            first=first,
            sort_field=sort_field,
            sort_direction=enum_value(sort_direction),
        )

    async def resolve_call_assignments(root, info, active=None, first=None, **kwargs):
        context = get_context(info)
        return await context.assignments.list_call_assignments(
            context.clock(), active=active, first=first
        )


class User(graphene.ObjectType):
    class Meta:
        interfaces = (relay.Node,)
        description = "User of ground control"

    is_admin = graphene.Boolean()
    is_superuser = graphene.Boolean()
    email = graphene.String()
    related_person = graphene.Field(lambda: Person)
    first_name = graphene.String()
    call_assignments = relay.ConnectionField(
        lambda: CallAssignmentConnection,
        active=graphene.Boolean(),
    )
    calls_made = graphene.Int(
        for_assignment_id=graphene.String(),
        completed=graphene.Boolean(),
    )
    interviewee_for_call_assignment = graphene.Field(
        lambda: Person,
        call_assignment_id=graphene.String(),
    )

    @classmethod
    def is_type_of(cls, root, info):
        return isinstance(root, UserModel)

    @classmethod
    async def get_node(cls, info, id):
        return await UserRepository(get_context(info).session).get_by_id(id)

    async def resolve_related_person(root, info):
        return await get_context(info).people.get_person_by_email(root.email)

    async def resolve_first_name(root, info):
        person = await get_context(info).people.get_person_by_email(root.email)
        return person.firstname if person else None

    async def resolve_call_assignments(root, info, active=None, first=None, **kwargs):
        context = get_context(info)
        return await context.assignments.call_assignments_for_user(
            root, context.clock(), active=active, first=first
        )

    async def resolve_calls_made(root, info, for_assignment_id=None, completed=None):
        assignment_id = None
        if for_assignment_id:
            assignment_id = int(local_id(for_assignment_id, "CallAssignment"))
        return await get_context(info).assignments.calls_made(
            root, assignment_id=assignment_id, completed=completed
        )

    async def resolve_interviewee_for_call_assignment(root, info, call_assignment_id=None):
        context = get_context(info)
        auth_required(context.user)
        selector = IntervieweeSelector(
            context.session, context.clock, development=context.settings.is_development
        )
        return await selector.select(root, call_assignment_id)


class Address(graphene.ObjectType):
    class Meta:
        interfaces = (relay.Node,)
        description = "An address"

    person_id = graphene.Int(source="cons_id")
    addr1 = graphene.String()
    addr2 = graphene.String()
    addr3 = graphene.String()
    city = graphene.String()
    state = graphene.String(source="state_cd")
    country = graphene.String()
    zip = graphene.String()
    latitude = graphene.Float()
    longitude = graphene.Float()
    local_utc_offset = graphene.Int(name="localUTCOffset")
    people = graphene.List(lambda: Person)

    @classmethod
    def is_type_of(cls, root, info):
        return isinstance(root, AddressModel)

    @classmethod
    async def get_node(cls, info, id):
        return await get_context(info).people.get_address(id)

    def resolve_id(root, info):
        return root.cons_addr_id

    async def resolve_local_utc_offset(root, info):
        return await get_context(info).people.local_utc_offset(root)

    async def resolve_people(root, info):
        return await get_context(info).people.get_people([root.cons_id])


class Person(graphene.ObjectType):
    class Meta:
        interfaces = (relay.Node,)
        description = "A person."

    prefix = graphene.String()
    first_name = graphene.String(source="firstname")
    middle_name = graphene.String(source="middlename")
    last_name = graphene.String(source="lastname")
    suffix = graphene.String()
    gender = graphene.String()
    birth_date = Date(source="birth_dt")
    title = graphene.String()
    employer = graphene.String()
    occupation = graphene.String()
    phone = graphene.String()
    email = graphene.String()
    address = graphene.Field(Address)
    last_called = graphene.String()
    nearby_events = graphene.Field(
        graphene.List(lambda: Event),
        within=graphene.Int(),
        args={"type_": graphene.Argument(graphene.String, name="type")},
    )
    hosted_events = graphene.List(lambda: Event)

    @classmethod
    def is_type_of(cls, root, info):
        return isinstance(root, PersonModel)

    @classmethod
    async def get_node(cls, info, id):
        return await get_context(info).people.get_person(id)

    def resolve_id(root, info):
        return root.cons_id

    async def resolve_phone(root, info):
        return await get_context(info).people.get_primary_phone(root)

    async def resolve_email(root, info):
        return await get_context(info).people.get_primary_email(root)

    async def resolve_address(root, info):
        return await get_context(info).people.get_primary_address(root)

    async def resolve_last_called(root, info):
        return Date.serialize(await get_context(info).people.last_called(root))

    async def resolve_nearby_events(root, info, within=None, type_=None):
        if within is None:
            return []
        return await get_context(info).geo.nearby_events(root, within, type_)

    async def resolve_hosted_events(root, info):
        return await get_context(info).people.hosted_events(root)


class PersonConnection(relay.Connection):
    class Meta:
        node = Person


class Call(graphene.ObjectType):
    class Meta:
        interfaces = (relay.Node,)

    attempted_at = graphene.String()
    left_voicemail = graphene.Boolean()
    sent_text = graphene.Boolean()
    completed = graphene.Boolean()
    reason_not_completed = graphene.String()
    caller = graphene.Field(User)
    interviewee = graphene.Field(Person)
    call_assignment = graphene.Field(lambda: CallAssignment)

    @classmethod
    def is_type_of(cls, root, info):
        return isinstance(root, CallModel)

    @classmethod
    async def get_node(cls, info, id):
        return await get_context(info).assignments.get_call(id)

    def resolve_attempted_at(root, info):
        return Date.serialize(root.attempted_at)

    async def resolve_caller(root, info):
        return await UserRepository(get_context(info).session).get_by_id(root.caller_id)

    async def resolve_interviewee(root, info):
        return await get_context(info).people.get_person(root.interviewee_id)

    async def resolve_call_assignment(root, info):
        return await get_context(info).assignments.get(root.call_assignment_id)


class EventFileType(graphene.ObjectType):
    class Meta:
        interfaces = (relay.Node,)

    slug = graphene.String()
    name = graphene.String()
    description = graphene.String()

    @classmethod
    def is_type_of(cls, root, info):
        return isinstance(root, EventFileTypeModel)

    @classmethod
    async def get_node(cls, info, id):
        return await get_context(info).session.get(EventFileTypeModel, int(id))


class EventFile(graphene.ObjectType):
    class Meta:
        interfaces = (relay.Node,)

    type_ = graphene.Field(EventFileType, name="type")
    uploader = graphene.Field(User)
    mime_type = graphene.String()
    name = graphene.String()
    notes = graphene.String()
    url = graphene.String()
    modified_date = Date(source="modified_dt")

    @classmethod
    def is_type_of(cls, root, info):
        return isinstance(root, EventFileModel)

    @classmethod
    async def get_node(cls, info, id):
        return await get_context(info).session.get(EventFileModel, int(id))

    async def resolve_type_(root, info):
        return await get_context(info).session.get(EventFileTypeModel, root.event_file_type_id)

    async def resolve_uploader(root, info):
        if root.uploader_id is None:
            return None
        return await UserRepository(get_context(info).session).get_by_id(root.uploader_id)

    def resolve_url(root, info):
        return event_file_url(get_context(info).settings, root.s3_key)


class EventType(graphene.ObjectType):
    class Meta:
        interfaces = (relay.Node,)

    name = graphene.String()
    description = graphene.String()

    @classmethod
    def is_type_of(cls, root, info):
        return isinstance(root, EventTypeModel)

    @classmethod
    async def get_node(cls, info, id):
        return await get_context(info).session.get(EventTypeModel, int(id))

    def resolve_id(root, info):
        return root.event_type_id


class FastFwdRequest(graphene.ObjectType):
    class Meta:
        interfaces = (relay.Node,)

    host_message = graphene.String()

    @classmethod
    def is_type_of(cls, root, info):
        return isinstance(root, FastFwdRequestModel)

    @classmethod
    async def get_node(cls, info, id):
        return await get_context(info).session.get(FastFwdRequestModel, int(id))


class Event(graphene.ObjectType):
    class Meta:
        interfaces = (relay.Node,)

    event_id_obfuscated = graphene.String()
    event_id_un_obfuscated = graphene.Int(source="event_id")
    is_official = graphene.Boolean()
    creator_name = graphene.String()
    host = graphene.Field(Person)
    event_type = graphene.Field(EventType)
    flag_approval = graphene.Boolean()
    name = graphene.String()
    description = graphene.String()
    venue_name = graphene.String()
    venue_zip = graphene.String()
    venue_city = graphene.String()
    venue_state = graphene.String(source="venue_state_cd")
    venue_addr1 = graphene.String()
    venue_addr2 = graphene.String()
    venue_country = graphene.String()
    venue_directions = graphene.String()
    local_timezone = graphene.String()
    local_utc_offset = graphene.Int(name="localUTCOffset")
    start_date = Date(source="start_dt")
    create_date = Date(source="create_dt")
    duration = graphene.Int()
    capacity = graphene.Int()
    latitude = graphene.Float()
    longitude = graphene.Float()
    attendee_volunteer_show = graphene.Int()
    attendee_volunteer_message = graphene.String()
    is_searchable = graphene.Int()
    public_phone = graphene.Boolean()
    contact_phone = graphene.String()
    host_receive_rsvp_emails = graphene.Boolean()
    rsvp_use_reminder_email = graphene.Boolean()
    rsvp_email_reminder_hours = graphene.Int()
    link = graphene.String()
    attendees_count = graphene.Int()
    attendees = graphene.List(Person)
    files = graphene.List(EventFile)
    related_call_assignment = graphene.Field(lambda: CallAssignment)
    nearby_people = graphene.List(Person)
    fast_fwd_request = graphene.Field(FastFwdRequest)

    @classmethod
    def is_type_of(cls, root, info):
        return isinstance(root, EventModel)

    @classmethod
    async def get_node(cls, info, id):
        return await get_context(info).events.get(int(id))

    def resolve_id(root, info):
        return root.event_id

    async def resolve_host(root, info):
        if root.creator_cons_id is None:
            return None
        return await get_context(info).people.get_person(root.creator_cons_id)

    async def resolve_event_type(root, info):
        if root.event_type_id is None:
            return None
        return await get_context(info).session.get(EventTypeModel, root.event_type_id)

    def resolve_local_timezone(root, info):
        return event_fields.local_timezone(root)

    def resolve_local_utc_offset(root, info):
        return event_fields.local_utc_offset(root, get_context(info).clock())

    def resolve_link(root, info):
        return event_link(get_context(info).settings, root.event_id_obfuscated)

    async def resolve_attendees_count(root, info):
        return await get_context(info).events.attendees_count(root)

    async def resolve_attendees(root, info):
        context = get_context(info)
        return await context.people.get_people(await context.events.attendee_ids([root.event_id]))

    async def resolve_files(root, info):
        return await get_context(info).events.files(root)

    async def resolve_related_call_assignment(root, info):
        return await get_context(info).events.related_call_assignment(root)

    async def resolve_nearby_people(root, info):
        return await get_context(info).geo.nearby_people(root)

    async def resolve_fast_fwd_request(root, info):
        return await get_context(info).events.fast_fwd_request(root.event_id)


class EventConnection(relay.Connection):
    class Meta:
        node = Event


class Survey(graphene.ObjectType):
    class Meta:
        interfaces = (relay.Node,)
        description = "A survey to be filled out by a person"

    full_url = graphene.String(name="fullURL")

    @classmethod
    def is_type_of(cls, root, info):
        return isinstance(root, GCSurvey)

    @classmethod
    async def get_node(cls, info, id):
        return await get_context(info).assignments.get_survey(id)

    async def resolve_full_url(root, info):
        context = get_context(info)
        survey = await context.assignments.get_bsd_survey(root.signup_form_id)
        return survey_url(context.settings, survey.signup_form_slug if survey else None)


class CallAssignment(graphene.ObjectType):
    class Meta:
        interfaces = (relay.Node,)
        description = "A mass calling assignment"

    name = graphene.String()
    instructions = graphene.String()
    end_date = Date(source="end_dt")
    survey = graphene.Field(Survey)
    renderer = graphene.String()
    calls_made = graphene.Int()
    related_event = graphene.Field(Event)
    query = graphene.String()

    @classmethod
    def is_type_of(cls, root, info):
        return isinstance(root, CallAssignmentModel)

    @classmethod
    async def get_node(cls, info, id):
        return await get_context(info).assignments.get(id)

    async def resolve_survey(root, info):
        return await get_context(info).assignments.get_survey(root.gc_bsd_survey_id)

    async def resolve_calls_made(root, info):
        return await get_context(info).assignments.assignment_calls_made(root)

    async def resolve_related_event(root, info):
        return await get_context(info).events.related_event(root)

    async def resolve_query(root, info):
        return await assignment_query_description(get_context(info).session, root)


class CallAssignmentConnection(relay.Connection):
    class Meta:
        node = CallAssignment


NODE_TYPES = [
    ListContainer,
    User,
    Address,
    Person,
    Call,
    EventFile,
    EventFileType,
    EventType,
    Event,
    CallAssignment,
    Survey,
    FastFwdRequest,
]
