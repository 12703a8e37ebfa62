"""Session tokens handed out by `/api/auth/login`."""

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from groundcontrol.auth.models import User
from groundcontrol.config import Settings, get_settings
from groundcontrol.shared.exceptions import InvalidTokenError, TokenExpiredError
from groundcontrol.shared.logging import get_logger

logger = get_logger(__name__)

ACCESS = "access"


class JWTService:
    """Issues and checks HS256 access tokens for Ground Control users."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    @property
    def _lifetime(self) -> timedelta:
        return timedelta(minutes=self._settings.jwt_access_token_expire_minutes)

    def get_token_expiry(self) -> int:
        """Access token lifetime in seconds."""
        return int(self._lifetime.total_seconds())

    def create_access_token(self, user: User) -> str:
        issued = datetime.now(timezone.utc)
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "type": ACCESS,
            "iat": issued,
            "exp": issued + self._lifetime,
        }
        return jwt.encode(claims, self._settings.jwt_secret_key, algorithm=self._settings.jwt_algorithm)

    def decode_access_token(self, token: str) -> dict[str, Any]:
        """Claims of a valid access token.

        Raises:
            TokenExpiredError: The token is past its expiry.
            InvalidTokenError: Bad signature, malformed, or not an access token.
        """
        try:
            claims = jwt.decode(
                token, self._settings.jwt_secret_key, algorithms=[self._settings.jwt_algorithm]
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except jwt.InvalidTokenError as exc:
            logger.warning("Rejected token", extra={"reason": str(exc)})
            raise InvalidTokenError(details={"error": str(exc)}) from exc

        if claims.get("type") != ACCESS:
            raise InvalidTokenError("Not an access token")
        return claims
