"""
User repository for database operations.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.auth.models import User


class UserRepository:
    """Repository for Ground Control users."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: int | str) -> User | None:
        return await self._session.get(User, int(user_id))

    async def get_by_email(self, email: str) -> User | None:
        result = await self._session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_or_create(self, email: str) -> User:
        """Return the user with this email, creating a plain caller if needed."""
        user = await self.get_by_email(email)
        if user is None:
            user = User(email=email, is_admin=False, is_superuser=False)
            self._session.add(user)
            await self._session.flush()
            await self._session.refresh(user)
        return user
