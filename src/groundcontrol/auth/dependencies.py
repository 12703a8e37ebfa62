"""
Resolve the current user from a bearer token.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.auth.jwt import JWTService
from groundcontrol.auth.models import User
from groundcontrol.auth.repository import UserRepository
from groundcontrol.config import Settings, get_settings
from groundcontrol.shared.database import get_db_session
from groundcontrol.shared.exceptions import AuthenticationError, InvalidTokenError
from groundcontrol.shared.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


async def resolve_user_from_token(
    session: AsyncSession,
    token: str | None,
    settings: Settings | None = None,
) -> User | None:
    """The user a token belongs to, or None for a missing or unusable token.

    GraphQL resolvers decide for themselves whether a user is required.
    """
    if not token:
        return None
    try:
        payload = JWTService(settings).decode_access_token(token)
    except AuthenticationError:
        return None

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        return None
    return await UserRepository(session).get_by_id(int(subject))


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User | None:
    token = credentials.credentials if credentials else None
    return await resolve_user_from_token(session, token, settings)


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """FastAPI dependency requiring a valid bearer token."""
    if credentials is None:
        logger.warning(
            "Missing authentication credentials",
            extra={"endpoint": str(request.url.path), "method": request.method},
        )
        raise AuthenticationError()

    payload = JWTService(settings).decode_access_token(credentials.credentials)
    user = await UserRepository(session).get_by_id(int(payload["sub"]))
    if user is None:
        raise InvalidTokenError("User not found", details={"user_id": payload["sub"]})
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]
