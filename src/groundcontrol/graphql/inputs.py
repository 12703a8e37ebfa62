"""
GraphQL scalars, enums and input objects.
"""

from datetime import datetime, timezone
from typing import Any

import graphene
from graphql.language import ast

from groundcontrol.shared.clock import as_utc


class Date(graphene.Scalar):
    """UTC timestamp serialized as `YYYY-MM-DDTHH:MM:SS.sssZ`."""

    @staticmethod
    def serialize(value: datetime | None) -> str | None:
        if value is None:
            return None
        if not isinstance(value, datetime):
            raise ValueError("Field error: value is not a datetime")
        return as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")

    @staticmethod
    def parse_value(value: str) -> datetime:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @classmethod
    def parse_literal(cls, node, _variables=None):
        if not isinstance(node, ast.StringValueNode):
            raise ValueError(f"Query error: Can only parse strings to dates but got a: {node.kind}")
        try:
            return cls.parse_value(node.value)
        except ValueError as exc:
            raise ValueError("Query error: Invalid date") from exc


class SortDirection(graphene.Enum):
    class Meta:
        name = "GraphQLSortDirection"

    ASC = "asc"
    DESC = "desc"


class EventStatus(graphene.Enum):
    class Meta:
        name = "GraphQLEventStatus"

    PAST_EVENTS = "pastEvents"
    PENDING_APPROVAL = "pendingApproval"
    PENDING_REVIEW = "pendingReview"
    APPROVED = "approved"
    FAST_FWD_REQUEST = "fastFwdRequest"


class EmailTarget(graphene.Enum):
    class Meta:
        name = "GraphQLEmailTarget"

    HOST = "host"
    ATTENDEES = "attendees"
    HOST_AND_ATTENDEES = "hostAndAttendees"


def enum_value(value: Any) -> Any:
    """Plain value of an enum argument (resolvers may receive the member)."""
    return getattr(value, "value", value)


def input_fields(value: Any) -> dict[str, Any]:
    """Fields the client actually sent on an input object, minus nulls."""
    if not value:
        return {}
    return {key: item for key, item in dict(value).items() if item is not None}


class PersonInput(graphene.InputObjectType):
    id = graphene.String()
    prefix = graphene.String()
    firstname = graphene.String()
    middlename = graphene.String()
    lastname = graphene.String()
    suffix = graphene.String()
    gender = graphene.String()
    birth_date = Date()
    title = graphene.String()
    employer = graphene.String()
    occupation = graphene.String()
    phone = graphene.String()
    email = graphene.String()
    city = graphene.String()
    state = graphene.String()
    zip = graphene.String()


class EventInput(graphene.InputObjectType):
    id = graphene.String()
    event_id_obfuscated = graphene.String()
    is_official = graphene.Boolean()
    event_type_id = graphene.String()
    creator_name = graphene.String()
    host_id = graphene.String()
    flag_approval = graphene.Boolean()
    name = graphene.String()
    description = graphene.String()
    venue_name = graphene.String()
    venue_zip = graphene.String()
    venue_city = graphene.String()
    venue_state = graphene.String()
    venue_addr1 = graphene.String()
    venue_addr2 = graphene.String()
    venue_country = graphene.String()
    venue_directions = graphene.String()
    local_timezone = graphene.String()
    create_date = Date()
    start_date = Date()
    duration = graphene.Int()
    latitude = graphene.Float()
    longitude = graphene.Float()
    capacity = graphene.Int()
    attendee_volunteer_show = graphene.Int()
    attendee_volunteer_message = graphene.String()
    is_searchable = graphene.Int()
    public_phone = graphene.Boolean()
    contact_phone = graphene.String()
    host_receive_rsvp_emails = graphene.Boolean()
    rsvp_use_reminder_email = graphene.Boolean()
    rsvp_email_reminder_hours = graphene.Int()
