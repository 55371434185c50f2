"""In-memory session slots, one per elevated auth level.

A slot is either empty or holds one complete Session. Reads take no
lock; writes and logins for the slot hold its lock, which makes the
lock the single-flight guard for that level's login.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Any

from kaito_auth.levels import AuthLevel


@dataclass(frozen=True)
class Session:
    level: AuthLevel
    token: str
    expires_at: float
    created_at: float

    def is_valid(self, now: float) -> bool:
        return bool(self.token) and now < self.expires_at

    def seconds_remaining(self, now: float) -> float:
        return max(0.0, self.expires_at - now)

    def age(self, now: float) -> float:
        return max(0.0, now - self.created_at)


class SessionSlot:
    """Holds the current session for one level."""

    def __init__(self, level: AuthLevel) -> None:
        if not level.is_session:
            raise ValueError(f"{level.value} has no session slot")
        self.level = level
        self.lock = threading.Lock()
        self._session: Session | None = None
        self._owner: Any = None
        self._generation = 0

    @property
    def generation(self) -> int:
        """Bumped on every store; lets a waiting login detect a fresh session."""
        return self._generation

    @property
    def session(self) -> Session | None:
        return self._session

    def current(self, now: float) -> Session | None:
        session = self._session
        if session is not None and session.is_valid(now):
            return session
        return None

    def is_valid(self, now: float) -> bool:
        return self.current(now) is not None

    def owned_by(self, credentials: Any) -> bool:
        """True when the stored session was issued for ``credentials``."""
        return self._session is not None and self._owner == credentials

    # Callers hold self.lock for the methods below.

    def store(self, token: str, now: float, ttl: float, owner: Any = None) -> Session:
        session = Session(level=self.level, token=token, expires_at=now + ttl, created_at=now)
        self._session = session
        self._owner = owner
        self._generation += 1
        return session

    def extend(self, now: float, ttl: float) -> Session | None:
        session = self.current(now)
        if session is None:
            return None
        extended = replace(session, expires_at=session.expires_at + ttl)
        self._session = extended
        return extended

    def clear(self) -> bool:
        had_session = self._session is not None
        self._session = None
        self._owner = None
        return had_session
