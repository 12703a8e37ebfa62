"""
Root query and the assembled schema.
"""

import graphene
from graphene import relay

from groundcontrol.auth.guards import admin_required, auth_required
from groundcontrol.graphql.context import get_context
from groundcontrol.graphql.mutations import RootMutation
from groundcontrol.graphql.types import (
    LIST_CONTAINER,
    NODE_TYPES,
    CallAssignment,
    Event,
    FastFwdRequest,
    ListContainer,
    User,
)
from groundcontrol.shared.relay import local_id


class RootQuery(graphene.ObjectType):
    node = relay.Node.Field()
    list_container = graphene.Field(ListContainer)
    current_user = graphene.Field(User)
    call_assignment = graphene.Field(CallAssignment, id=graphene.String(required=True))
    event = graphene.Field(Event, id=graphene.String(required=True))
    fast_fwd_request = graphene.Field(FastFwdRequest, id=graphene.String(required=True))

    def resolve_list_container(root, info):
        admin_required(get_context(info).user)
        return LIST_CONTAINER

    def resolve_current_user(root, info):
        return auth_required(get_context(info).user)

    async def resolve_call_assignment(root, info, id):
        context = get_context(info)
        auth_required(context.user)
        raw = local_id(id, "CallAssignment")
        if not raw.isdigit():
            return None
        return await context.assignments.get(raw)

    async def resolve_event(root, info, id):
        return await get_context(info).events.get_event(id)

    async def resolve_fast_fwd_request(root, info, id):
        context = get_context(info)
        auth_required(context.user)
        return await context.event_service.get_fast_fwd_request(id)


schema = graphene.Schema(query=RootQuery, mutation=RootMutation, types=NODE_TYPES)
