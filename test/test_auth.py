"""
Tests for access guards, session tokens and BSD-backed login.
"""

from datetime import datetime, timedelta, timezone

import httpx
import jwt
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import FakeHTTP, add_user
from groundcontrol.auth.dependencies import resolve_user_from_token
from groundcontrol.auth.guards import admin_required, auth_required, superuser_required
from groundcontrol.auth.jwt import JWTService
from groundcontrol.auth.models import User
from groundcontrol.auth.repository import UserRepository
from groundcontrol.auth.service import AuthService
from groundcontrol.bsd import BSDClient
from groundcontrol.config import Settings
from groundcontrol.shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ExternalServiceError,
    InvalidTokenError,
    TokenExpiredError,
)

CONS_XML = '<api><cons id="12"><firstname>Pat</firstname></cons></api>'
CHECK_CREDENTIALS = "/page/api/account/check_credentials"
SET_PASSWORD = "/page/api/account/set_cons_password"


class TestGuards:
    """Tests for auth_required, admin_required and superuser_required."""

    def test_anonymous_is_401(self) -> None:
        with pytest.raises(AuthenticationError) as exc_info:
            auth_required(None)

        assert exc_info.value.to_payload() == {
            "status": 401,
            "message": "You must login to access that resource.",
        }

    def test_admin_flags(self) -> None:
        caller = User(email="c@example.org", is_admin=False, is_superuser=False)
        admin = User(email="a@example.org", is_admin=True, is_superuser=False)

        assert auth_required(caller) is caller
        assert admin_required(admin) is admin
        with pytest.raises(AuthorizationError) as exc_info:
            admin_required(caller)
        assert exc_info.value.status_code == 403
        with pytest.raises(AuthorizationError):
            superuser_required(admin)
        with pytest.raises(AuthenticationError):
            admin_required(None)


class TestJWTService:
    """Tests for JWTService."""

    def test_round_trip(self, test_settings: Settings) -> None:
        service = JWTService(test_settings)
        user = User(id=5, email="a@example.org")

        payload = service.decode_access_token(service.create_access_token(user))

        assert payload["sub"] == "5"
        assert payload["email"] == "a@example.org"
        assert service.get_token_expiry() == 3600

    def test_expired_token(self, test_settings: Settings) -> None:
        token = jwt.encode(
            {"sub": "5", "type": "access", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            test_settings.jwt_secret_key,
            algorithm="HS256",
        )

        with pytest.raises(TokenExpiredError):
            JWTService(test_settings).decode_access_token(token)

    def test_wrong_secret(self, test_settings: Settings) -> None:
        token = jwt.encode({"sub": "5", "type": "access"}, "another-secret", algorithm="HS256")

        with pytest.raises(InvalidTokenError):
            JWTService(test_settings).decode_access_token(token)

    def test_refresh_type_rejected(self, test_settings: Settings) -> None:
        token = jwt.encode({"sub": "5", "type": "refresh"}, test_settings.jwt_secret_key, algorithm="HS256")

        with pytest.raises(InvalidTokenError, match="Not an access token"):
            JWTService(test_settings).decode_access_token(token)


class TestResolveUserFromToken:
    """Tests for resolve_user_from_token."""

    @pytest.mark.asyncio
    async def test_valid_and_invalid_tokens(self, db_session: AsyncSession, test_settings: Settings) -> None:
        user = await add_user(db_session)
        token = JWTService(test_settings).create_access_token(user)

        assert await resolve_user_from_token(db_session, token, test_settings) is user
        assert await resolve_user_from_token(db_session, None, test_settings) is None
        assert await resolve_user_from_token(db_session, "garbage", test_settings) is None


class TestAuthService:
    """Tests for AuthService."""

    @pytest.mark.asyncio
    async def test_login_creates_user(
        self,
        db_session: AsyncSession,
        bsd_client: BSDClient,
        bsd_http: FakeHTTP,
        test_settings: Settings,
    ) -> None:
        bsd_http.routes[CHECK_CREDENTIALS] = httpx.Response(200, text=CONS_XML)
        service = AuthService(db_session, bsd_client, JWTService(test_settings))

        response = await service.login(" Pat@Example.org ", "secret")

        assert response.user.email == "pat@example.org"
        assert response.user.is_admin is False
        stored = await UserRepository(db_session).get_by_email("pat@example.org")
        assert stored is not None
        assert JWTService(test_settings).decode_access_token(response.access_token)["sub"] == str(stored.id)
        assert bsd_http.requests[0].url.params["userid"] == "pat@example.org"

    @pytest.mark.asyncio
    async def test_login_rejected(
        self, db_session: AsyncSession, bsd_client: BSDClient, bsd_http: FakeHTTP
    ) -> None:
        bsd_http.routes[CHECK_CREDENTIALS] = httpx.Response(409, text="bad credentials")

        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            await AuthService(db_session, bsd_client).login("pat@example.org", "nope")

    @pytest.mark.asyncio
    async def test_change_password(
        self, db_session: AsyncSession, bsd_client: BSDClient, bsd_http: FakeHTTP
    ) -> None:
        user = await add_user(db_session)
        bsd_http.routes[CHECK_CREDENTIALS] = httpx.Response(200, text=CONS_XML)

        await AuthService(db_session, bsd_client).change_password(user, "old", "new")

        assert bsd_http.paths() == [CHECK_CREDENTIALS, SET_PASSWORD]
        form = dict(httpx.QueryParams(bsd_http.requests[1].content.decode()))
        assert form == {"userid": "caller@example.org", "password": "new"}

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(
        self, db_session: AsyncSession, bsd_client: BSDClient, bsd_http: FakeHTTP
    ) -> None:
        user = await add_user(db_session)
        bsd_http.routes[CHECK_CREDENTIALS] = httpx.Response(409, text="no")

        with pytest.raises(AuthorizationError, match="does not match our records"):
            await AuthService(db_session, bsd_client).change_password(user, "wrong", "new")

        assert SET_PASSWORD not in bsd_http.paths()

    @pytest.mark.asyncio
    async def test_change_password_bsd_failure(
        self, db_session: AsyncSession, bsd_client: BSDClient, bsd_http: FakeHTTP
    ) -> None:
        user = await add_user(db_session)
        bsd_http.routes[CHECK_CREDENTIALS] = httpx.Response(200, text=CONS_XML)
        bsd_http.routes[SET_PASSWORD] = httpx.Response(500, text="down")

        with pytest.raises(ExternalServiceError, match="Something went wrong"):
            await AuthService(db_session, bsd_client).change_password(user, "old", "new")
