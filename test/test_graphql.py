"""
Integration tests for the GraphQL endpoint.
"""

import json
from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import NOW, FakeHTTP, add_assignment, add_event, add_person, add_user
from groundcontrol.auth.jwt import JWTService
from groundcontrol.auth.models import User
from groundcontrol.bsd import BSDClient
from groundcontrol.config import Settings, get_settings
from groundcontrol.email.mailgun import MailgunClient
from groundcontrol.events.models import EventType
from groundcontrol.main import create_app
from groundcontrol.shared.database import get_db_session
from groundcontrol.shared.relay import to_global_id


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    bsd_client: BSDClient,
    mailer: MailgunClient,
    test_settings: Settings,
) -> AsyncGenerator[AsyncClient, None]:
    app = create_app()
    app.state.bsd = bsd_client
    app.state.mailer = mailer
    app.state.clock = lambda: NOW

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_settings] = lambda: test_settings

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def auth_headers(user: User, settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {JWTService(settings).create_access_token(user)}"}


async def graphql(
    client: AsyncClient,
    query: str,
    variables: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> tuple[int, dict[str, Any]]:
    response = await client.post(
        "/graphql", json={"query": query, "variables": variables}, headers=headers or {}
    )
    return response.status_code, response.json()


def error_payload(body: dict[str, Any]) -> dict[str, Any]:
    return json.loads(body["errors"][0]["message"])


class TestQueries:
    """Tests for root query fields."""

    @pytest.mark.asyncio
    async def test_current_user_requires_login(self, client: AsyncClient) -> None:
        status, body = await graphql(client, "{ currentUser { email } }")

        assert status == 200
        assert body["data"] == {"currentUser": None}
        assert error_payload(body) == {
            "status": 401,
            "message": "You must login to access that resource.",
        }

    @pytest.mark.asyncio
    async def test_current_user(
        self, client: AsyncClient, db_session: AsyncSession, test_settings: Settings
    ) -> None:
        user = await add_user(db_session, email="pat@example.org")
        await add_person(db_session, 1, firstname="Pat", email="pat@example.org")
        headers = auth_headers(user, test_settings)

        status, body = await graphql(
            client, "{ currentUser { id email isAdmin firstName relatedPerson { firstName } } }", headers=headers
        )

        assert status == 200
        assert body["data"]["currentUser"] == {
            "id": to_global_id("User", user.id),
            "email": "pat@example.org",
            "isAdmin": False,
            "firstName": "Pat",
            "relatedPerson": {"firstName": "Pat"},
        }

    @pytest.mark.asyncio
    async def test_list_container_requires_admin(
        self, client: AsyncClient, db_session: AsyncSession, test_settings: Settings
    ) -> None:
        caller = await add_user(db_session)

        _, body = await graphql(
            client, "{ listContainer { id } }", headers=auth_headers(caller, test_settings)
        )

        assert error_payload(body)["status"] == 403

    @pytest.mark.asyncio
    async def test_event_connection(
        self, client: AsyncClient, db_session: AsyncSession, test_settings: Settings
    ) -> None:
        admin = await add_user(db_session, is_admin=True)
        await add_event(db_session, 1, NOW - timedelta(days=1))
        await add_event(
            db_session, 2, NOW + timedelta(days=1), start_tz="America/New_York", venue_state_cd="NY"
        )
        await add_event(db_session, 3, NOW + timedelta(days=2), flag_approval=True)

        query = """
            query Events($status: GraphQLEventStatus) {
              listContainer {
                events(first: 10, status: $status, sortDirection: DESC) {
                  edges { node { id eventIdObfuscated venueState localUTCOffset startDate link } }
                }
              }
            }
        """
        status, body = await graphql(
            client, query, {"status": "APPROVED"}, headers=auth_headers(admin, test_settings)
        )

        assert status == 200, body
        nodes = [edge["node"] for edge in body["data"]["listContainer"]["events"]["edges"]]
        assert nodes == [
            {
                "id": to_global_id("Event", 2),
                "eventIdObfuscated": "ev2",
                "venueState": "NY",
                "localUTCOffset": -240,
                "startDate": "2024-06-05T18:00:00.000Z",
                "link": "https://bsd.example.org/page/event/detail/ev2",
            }
        ]

    @pytest.mark.asyncio
    async def test_event_by_any_identifier(self, client: AsyncClient, db_session: AsyncSession) -> None:
        await add_event(db_session, 7, NOW + timedelta(days=1))

        for identifier in ("7", "ev7", to_global_id("Event", 7)):
            _, body = await graphql(
                client, "query E($id: String!) { event(id: $id) { eventIdUnObfuscated } }", {"id": identifier}
            )
            assert body["data"]["event"] == {"eventIdUnObfuscated": 7}

    @pytest.mark.asyncio
    async def test_node_lookup(self, client: AsyncClient, db_session: AsyncSession) -> None:
        await add_event(db_session, 7, NOW + timedelta(days=1), name="Rally")

        _, body = await graphql(
            client,
            "query N($id: ID!) { node(id: $id) { ... on Event { name } } }",
            {"id": to_global_id("Event", 7)},
        )

        assert body["data"]["node"] == {"name": "Rally"}

    @pytest.mark.asyncio
    async def test_interviewee_for_call_assignment(
        self, client: AsyncClient, db_session: AsyncSession, test_settings: Settings
    ) -> None:
        caller = await add_user(db_session)
        assignment = await add_assignment(db_session)
        await add_person(db_session, 1, firstname="Robin")

        query = """
            query I($id: String) {
              currentUser { intervieweeForCallAssignment(callAssignmentId: $id) { firstName phone } }
            }
        """
        _, body = await graphql(
            client,
            query,
            {"id": to_global_id("CallAssignment", assignment.id)},
            headers=auth_headers(caller, test_settings),
        )

        assert body["data"]["currentUser"]["intervieweeForCallAssignment"] == {
            "firstName": "Robin",
            "phone": "5555550100",
        }

    @pytest.mark.asyncio
    async def test_nearby_events_with_type(
        self, client: AsyncClient, db_session: AsyncSession, test_settings: Settings
    ) -> None:
        user = await add_user(db_session, email="pat@example.org")
        await add_person(
            db_session, 1, email="pat@example.org", latitude=40.7128, longitude=-74.0060
        )
        db_session.add_all(
            [EventType(event_type_id=1, name="Phonebank"), EventType(event_type_id=2, name="Canvass")]
        )
        soon = NOW + timedelta(days=1)
        await add_event(db_session, 20, soon, event_type_id=1, latitude=40.7218, longitude=-74.0060)
        await add_event(db_session, 21, soon, event_type_id=2, latitude=40.7218, longitude=-74.0060)
        await add_event(db_session, 22, soon, event_type_id=1, latitude=41.7128, longitude=-74.0060)

        query = """
            query Nearby($within: Int, $type: String) {
              currentUser { relatedPerson { nearbyEvents(within: $within, type: $type) { eventIdUnObfuscated } } }
            }
        """
        headers = auth_headers(user, test_settings)
        _, typed = await graphql(client, query, {"within": 10, "type": "phone"}, headers=headers)
        _, untyped = await graphql(client, query, {"within": 10}, headers=headers)

        person = typed["data"]["currentUser"]["relatedPerson"]
        assert person["nearbyEvents"] == [{"eventIdUnObfuscated": 20}]
        assert len(untyped["data"]["currentUser"]["relatedPerson"]["nearbyEvents"]) == 2

    @pytest.mark.asyncio
    async def test_syntax_error_is_400(self, client: AsyncClient) -> None:
        status, body = await graphql(client, "{ currentUser { ")

        assert status == 400
        assert body["data"] is None


class TestMutations:
    """Tests for mutations through the endpoint."""

    @pytest.mark.asyncio
    async def test_create_fast_fwd_request(self, client: AsyncClient, db_session: AsyncSession) -> None:
        await add_event(db_session, 7, NOW + timedelta(days=1))

        query = """
            mutation F($input: CreateFastFwdRequestInput!) {
              createFastFwdRequest(input: $input) { clientMutationId fastFwdRequest { hostMessage } }
            }
        """
        _, body = await graphql(
            client, query, {"input": {"eventId": "ev7", "hostMessage": "Invite please", "clientMutationId": "1"}}
        )

        assert body["data"]["createFastFwdRequest"] == {
            "clientMutationId": "1",
            "fastFwdRequest": {"hostMessage": "Invite please"},
        }

    @pytest.mark.asyncio
    async def test_email_host_attendees(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        test_settings: Settings,
        mailgun_http: FakeHTTP,
    ) -> None:
        admin = await add_user(db_session, is_admin=True)
        await add_person(db_session, 1, email="host@example.org")
        await add_event(db_session, 7, NOW + timedelta(days=1), creator_cons_id=1)

        query = """
            mutation M($input: EmailHostAttendeesInput!) {
              emailHostAttendees(input: $input) { success message }
            }
        """
        variables = {
            "input": {"ids": ["7"], "subject": "Hi", "message": "Hello", "target": "HOST"}
        }
        _, body = await graphql(client, query, variables, headers=auth_headers(admin, test_settings))

        assert body["data"]["emailHostAttendees"] == {
            "success": True,
            "message": "Message sent to 1 recipients.",
        }
        assert len(mailgun_http.requests) == 1

    @pytest.mark.asyncio
    async def test_submit_call_survey_mismatch(
        self, client: AsyncClient, db_session: AsyncSession, test_settings: Settings
    ) -> None:
        caller = await add_user(db_session)
        assignment = await add_assignment(db_session)
        headers = auth_headers(caller, test_settings)

        query = """
            mutation S($input: SubmitCallSurveyInput!) {
              submitCallSurvey(input: $input) { currentUser { email } }
            }
        """
        variables = {
            "input": {
                "callAssignmentId": str(assignment.id),
                "intervieweeId": "1",
                "completed": True,
                "surveyFieldValues": "{}",
            }
        }
        _, body = await graphql(client, query, variables, headers=headers)

        assert body["data"]["submitCallSurvey"] is None
        assert error_payload(body)["status"] == 400

    @pytest.mark.asyncio
    async def test_change_password_bsd_rejects_current(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        test_settings: Settings,
        bsd_http: FakeHTTP,
    ) -> None:
        caller = await add_user(db_session)
        bsd_http.routes["/page/api/account/check_credentials"] = httpx.Response(409, text="no")

        query = """
            mutation P($input: ChangeUserPasswordInput!) {
              changeUserPassword(input: $input) { dummy }
            }
        """
        _, body = await graphql(
            client,
            query,
            {"input": {"currentPassword": "old", "newPassword": "new"}},
            headers=auth_headers(caller, test_settings),
        )

        assert error_payload(body) == {
            "status": 403,
            "message": "The current password you entered does not match our records. Please try again.",
        }
