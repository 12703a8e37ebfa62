"""
Access checks shared by GraphQL resolvers and REST routes.
"""

from typing import Protocol

from groundcontrol.shared.exceptions import AuthenticationError, AuthorizationError


class UserLike(Protocol):
    is_admin: bool
    is_superuser: bool


def auth_required(user: UserLike | None) -> UserLike:
    if user is None:
        raise AuthenticationError()
    return user


def admin_required(user: UserLike | None) -> UserLike:
    user = auth_required(user)
    if not user.is_admin:
        raise AuthorizationError()
    return user


def superuser_required(user: UserLike | None) -> UserLike:
    user = auth_required(user)
    if not user.is_superuser:
        raise AuthorizationError()
    return user
