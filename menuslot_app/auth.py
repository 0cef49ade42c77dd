"""
Caller identity. The core trusts whatever the session layer hands it.
"""

from dataclasses import dataclass
from typing import Protocol

from .errors import AuthorizationError, NotFoundError
from .models import Role, User
from .storage import USERS, Storage


@dataclass(frozen=True)
class Caller:
    user_id: int
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class IdentityProvider(Protocol):
    def identify(self, user_id: int) -> Caller: ...


class StoredUserIdentityProvider:
    """Looks the passed-in user id up in the users table. No verification."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def identify(self, user_id: int) -> Caller:
        rows = self.storage.select(USERS, {"user_id": user_id})
        if not rows:
            raise NotFoundError(f"User {user_id} not found")
        user = User.from_row(rows[0])
        return Caller(user_id=user.user_id, role=user.role)

    def list_users(self) -> list[User]:
        return [User.from_row(r) for r in self.storage.select(USERS, order_by="user_id")]


def require_admin(caller: Caller) -> None:
    if not caller.is_admin:
        raise AuthorizationError("Administrator role required")
