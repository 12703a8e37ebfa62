"""
Per-request GraphQL context.
"""

from dataclasses import dataclass, field

from graphene import ResolveInfo
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.auth.models import User
from groundcontrol.bsd import BSDClient
from groundcontrol.calls.repository import CallAssignmentRepository
from groundcontrol.config import Settings
from groundcontrol.email.mailgun import MailgunClient
from groundcontrol.events.repository import EventRepository
from groundcontrol.events.service import EventService
from groundcontrol.geo.search import GeoSearchService
from groundcontrol.people.repository import PeopleRepository
from groundcontrol.shared.clock import Clock, utcnow


@dataclass
class GraphQLContext:
    """Everything resolvers need for one request."""

    session: AsyncSession
    bsd: BSDClient
    mailer: MailgunClient
    settings: Settings
    user: User | None = None
    clock: Clock = field(default=utcnow)

    @property
    def people(self) -> PeopleRepository:
        return PeopleRepository(self.session)

    @property
    def events(self) -> EventRepository:
        return EventRepository(self.session)

    @property
    def assignments(self) -> CallAssignmentRepository:
        return CallAssignmentRepository(self.session)

    @property
    def geo(self) -> GeoSearchService:
        return GeoSearchService(self.session, self.clock)

    @property
    def event_service(self) -> EventService:
        return EventService(self.session, self.bsd, self.mailer, self.settings, self.clock)


def get_context(info: ResolveInfo) -> GraphQLContext:
    return info.context
