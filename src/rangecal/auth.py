"""Session handling against a list of configured users."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

logger = logging.getLogger("rangecal")


class NotSignedInError(Exception):
    pass


@dataclass(frozen=True)
class User:
    id: int
    email: str


@runtime_checkable
class AuthProvider(Protocol):
    """Only "who is signed in" and sign-out are needed by the calendar."""

    @property
    def current_user(self) -> User | None: ...

    def sign_in(self, email: str) -> User: ...

    def sign_out(self) -> None: ...


class ConfiguredAuth:
    """Signs in any user listed in the config file, matched by email."""

    def __init__(self, users: list[User]):
        self._users = {u.email.lower(): u for u in users}
        self._current: User | None = None

    @property
    def current_user(self) -> User | None:
        return self._current

    def sign_in(self, email: str) -> User:
        user = self._users.get(email.strip().lower())
        if user is None:
            raise ValueError(f"Unknown user: {email}")
        self._current = user
        logger.info("Signed in: %s (id=%s)", user.email, user.id)
        return user

    def sign_out(self) -> None:
        if self._current is not None:
            logger.info("Signed out: %s", self._current.email)
        self._current = None


def require_user(auth: AuthProvider) -> User:
    user = auth.current_user
    if user is None:
        raise NotSignedInError("Not signed in")
    return user
