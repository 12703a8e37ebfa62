"""
Login and password changes through BSD credentials.
"""

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.auth.guards import auth_required
from groundcontrol.auth.jwt import JWTService
from groundcontrol.auth.models import User
from groundcontrol.auth.repository import UserRepository
from groundcontrol.auth.schemas import CurrentUser, TokenResponse
from groundcontrol.bsd import BSDClient, BSDError
from groundcontrol.shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ExternalServiceError,
)
from groundcontrol.shared.logging import get_logger

logger = get_logger(__name__)


class AuthService:
    """Checks credentials against BSD and issues session tokens."""

    def __init__(
        self,
        session: AsyncSession,
        bsd: BSDClient,
        jwt_service: JWTService | None = None,
    ) -> None:
        self._users = UserRepository(session)
        self._bsd = bsd
        self._jwt = jwt_service or JWTService()

    async def login(self, email: str, password: str) -> TokenResponse:
        """Verify credentials with BSD and return an access token.

        The `users` row is created on first login.

        Raises:
            AuthenticationError: BSD rejected the credentials.
        """
        email = email.strip().lower()
        constituent = await self._bsd.check_credentials(email, password)
        if constituent is None:
            logger.info("Login rejected", extra={"email": email})
            raise AuthenticationError("Invalid email or password.", code="INVALID_CREDENTIALS")

        user = await self._users.get_or_create(email)
        logger.info("User logged in", extra={"user_id": user.id, "email": user.email})

        return TokenResponse(
            access_token=self._jwt.create_access_token(user),
            expires_in=self._jwt.get_token_expiry(),
            user=CurrentUser.model_validate(user),
        )

    async def change_password(self, user: User | None, current_password: str, new_password: str) -> None:
        """Change the user's BSD password after re-checking the current one.

        Raises:
            AuthorizationError: The current password is wrong.
            ExternalServiceError: BSD failed to store the new password.
        """
        user = auth_required(user)
        if await self._bsd.check_credentials(user.email, current_password) is None:
            raise AuthorizationError(
                "The current password you entered does not match our records. Please try again."
            )

        try:
            await self._bsd.set_constituent_password(user.email, new_password)
        except (BSDError, httpx.HTTPError) as exc:
            logger.exception("BSD password change failed", extra={"user_id": user.id})
            raise ExternalServiceError(
                f"Something went wrong while changing your password: {exc}"
            ) from exc

        logger.info("Password changed", extra={"user_id": user.id})
