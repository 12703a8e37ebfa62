"""
Pytest configuration and shared fixtures.
"""

from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import groundcontrol.models  # noqa: F401
from groundcontrol.auth.models import User
from groundcontrol.bsd import BSDClient
from groundcontrol.calls.models import CallAssignment, GCGroup, GCSurvey, BSDSurvey
from groundcontrol.config import Settings
from groundcontrol.email.mailgun import MailgunClient
from groundcontrol.events.models import Event, GCEvent
from groundcontrol.people.models import Address, Email, Person, Phone, Subscription, ZipCode
from groundcontrol.shared.database import Base

# 2024-06-04 18:00 UTC: 14:00 on the east coast, 08:00 in Hawaii.
NOW = datetime(2024, 6, 4, 18, 0, 0)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        app_env="production",
        debug=False,
        database_url="sqlite+aiosqlite:///:memory:",
        bsd_host="bsd.example.org",
        bsd_api_id="gc-api",
        bsd_api_secret="bsd-secret",
        mailgun_api_key="mg-key",
        mailgun_domain="mg.example.org",
        default_from_email="info@example.org",
        s3_bucket="gc-files",
        fast_fwd_tool_password="open-sesame",
        jwt_secret_key="test-secret-key-for-testing-only",
        jwt_access_token_expire_minutes=60,
    )


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[Any, None]:
    """In-memory SQLite engine with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: Any) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session


@dataclass
class FakeHTTP:
    """Answers requests from a table of path -> response and records them."""

    routes: dict[str, Any] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)
    default: httpx.Response | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if callable(route):
            return route(request)
        if isinstance(route, list):
            return route.pop(0)
        if route is not None:
            return route
        return self.default or httpx.Response(200, text="<api></api>")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def bsd_http() -> FakeHTTP:
    return FakeHTTP()


@pytest.fixture
def mailgun_http() -> FakeHTTP:
    return FakeHTTP(default=httpx.Response(200, json={"id": "<1@mg.example.org>", "message": "Queued"}))


@pytest.fixture
def bsd_client(test_settings: Settings, bsd_http: FakeHTTP) -> BSDClient:
    return BSDClient(
        test_settings,
        http_client=bsd_http.client(),
        timestamp=lambda: 1_700_000_000,
        deferred_poll_interval=0,
        deferred_max_attempts=3,
    )


@pytest.fixture
def mailer(test_settings: Settings, mailgun_http: FakeHTTP) -> MailgunClient:
    return MailgunClient(test_settings, http_client=mailgun_http.client())


def sent_form(request: httpx.Request) -> list[tuple[str, str]]:
    """Decoded form fields of a recorded Mailgun request."""
    return httpx.QueryParams(request.content.decode()).multi_items()


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------


async def add_user(
    session: AsyncSession,
    email: str = "caller@example.org",
    is_admin: bool = False,
    is_superuser: bool = False,
) -> User:
    user = User(email=email, is_admin=is_admin, is_superuser=is_superuser)
    session.add(user)
    await session.flush()
    return user


async def add_zip(session: AsyncSession, zip_code: str, timezone_offset: int) -> ZipCode:
    row = await session.get(ZipCode, zip_code)
    if row is None:
        row = ZipCode(zip=zip_code, timezone_offset=timezone_offset)
        session.add(row)
        await session.flush()
    return row


async def add_person(
    session: AsyncSession,
    cons_id: int,
    firstname: str = "Pat",
    email: str | None = None,
    phone: str | None = "5555550100",
    zip_code: str | None = "10001",
    timezone_offset: int | None = -5,
    latitude: float | None = None,
    longitude: float | None = None,
    subscribed: bool | None = None,
) -> Person:
    """Insert a person with primary email, phone and address rows."""
    person = Person(cons_id=cons_id, firstname=firstname, lastname=f"Person{cons_id}")
    session.add(person)
    await session.flush()

    if email:
        session.add(Email(cons_id=cons_id, email=email, is_primary=True))
    if phone:
        session.add(Phone(cons_id=cons_id, phone=phone, is_primary=True))
    if zip_code:
        if timezone_offset is not None:
            await add_zip(session, zip_code, timezone_offset)
        session.add(
            Address(
                cons_id=cons_id,
                is_primary=True,
                zip=zip_code,
                city="Springfield",
                state_cd="NY",
                latitude=latitude,
                longitude=longitude,
            )
        )
    if subscribed is not None:
        session.add(Subscription(cons_id=cons_id, isunsub=not subscribed))
    await session.flush()
    return person


async def add_event(
    session: AsyncSession,
    event_id: int,
    start_dt: datetime,
    flag_approval: bool = False,
    pending_review: bool | None = None,
    **values: Any,
) -> Event:
    event = Event(
        event_id=event_id,
        event_id_obfuscated=values.pop("event_id_obfuscated", f"ev{event_id}"),
        name=values.pop("name", f"Event {event_id}"),
        start_dt=start_dt,
        flag_approval=flag_approval,
        **values,
    )
    session.add(event)
    await session.flush()
    if pending_review is not None:
        session.add(GCEvent(event_id=event_id, pending_review=pending_review))
        await session.flush()
    return event


async def add_assignment(
    session: AsyncSession,
    group: GCGroup | None = None,
    survey_id: int = 77,
    processors: list[str] | None = None,
    end_dt: datetime | None = None,
    caller_group: int | None = None,
) -> CallAssignment:
    """Call assignment over `group` (everyone by default) with a mirrored survey."""
    if group is None:
        group = GCGroup(query="everyone")
        session.add(group)
    if await session.get(BSDSurvey, survey_id) is None:
        session.add(BSDSurvey(signup_form_id=survey_id, signup_form_slug=f"survey-{survey_id}"))
    await session.flush()

    survey = GCSurvey(signup_form_id=survey_id, processors=processors or [])
    session.add(survey)
    await session.flush()

    assignment = CallAssignment(
        name="Turn out",
        renderer="BSDSurvey",
        interviewee_group=group.id,
        gc_bsd_survey_id=survey.id,
        caller_group=caller_group,
        start_dt=NOW,
        end_dt=end_dt,
    )
    session.add(assignment)
    await session.flush()
    return assignment
