"""User directory for console sessions."""

import logging
from typing import Optional

from ..core.exceptions import ConflictError
from ..schemas.user import User

logger = logging.getLogger(__name__)


class UserDirectory:
    """Operator accounts keyed by username."""

    def __init__(self):
        self._users: dict[str, User] = {}

    def add(self, user: User) -> User:
        if user.username in self._users:
            raise ConflictError(
                detail=f"User '{user.username}' already exists",
                conflicting_resource={"username": user.username}
            )
        self._users[user.username] = user
        return user

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user when the password matches exactly, else None."""
        user = self._users.get(username)
        if user is None or not user.authenticate(password):
            logger.warning("Login failed", extra={"username": username})
            return None
        logger.info("Login succeeded", extra={"username": username, "role": user.role.value})
        return user

    def all(self) -> list[User]:
        return list(self._users.values())
