"""Authorization levels for the platform API.

Levels are ordered: NONE < API_KEY < SESSION_LEVEL_1 < SESSION_LEVEL_2.
Only the two SESSION_* levels are backed by a login session.
"""

from __future__ import annotations

from enum import Enum


class AuthLevel(Enum):
    NONE = "none"
    API_KEY = "api_key"
    SESSION_LEVEL_1 = "session_level_1"
    SESSION_LEVEL_2 = "session_level_2"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @property
    def is_session(self) -> bool:
        return self in SESSION_LEVELS

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, AuthLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, AuthLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, AuthLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, AuthLevel):
            return NotImplemented
        return self.rank >= other.rank


_RANKS = {
    AuthLevel.NONE: 0,
    AuthLevel.API_KEY: 1,
    AuthLevel.SESSION_LEVEL_1: 2,
    AuthLevel.SESSION_LEVEL_2: 3,
}

SESSION_LEVELS = (AuthLevel.SESSION_LEVEL_1, AuthLevel.SESSION_LEVEL_2)

_METHOD_ALIASES = {
    "level_1": AuthLevel.SESSION_LEVEL_1,
    "level1": AuthLevel.SESSION_LEVEL_1,
    "v1": AuthLevel.SESSION_LEVEL_1,
    "session_level_1": AuthLevel.SESSION_LEVEL_1,
    "level_2": AuthLevel.SESSION_LEVEL_2,
    "level2": AuthLevel.SESSION_LEVEL_2,
    "v2": AuthLevel.SESSION_LEVEL_2,
    "session_level_2": AuthLevel.SESSION_LEVEL_2,
}


def parse_preferred_method(value: str | AuthLevel | None) -> AuthLevel:
    """Resolve a preferred elevation method to its session level.

    Accepts an AuthLevel or one of the aliases ``level_1``/``v1`` and
    ``level_2``/``v2``. Empty values default to SESSION_LEVEL_2.
    """
    if value is None or value == "":
        return AuthLevel.SESSION_LEVEL_2
    if isinstance(value, AuthLevel):
        if not value.is_session:
            raise ValueError(f"Preferred method must be a session level, got {value.value}")
        return value
    key = value.strip().lower().replace("-", "_")
    try:
        return _METHOD_ALIASES[key]
    except KeyError:
        raise ValueError(f"Unknown preferred auth method: {value!r}") from None


def other_session_level(level: AuthLevel) -> AuthLevel:
    if level == AuthLevel.SESSION_LEVEL_1:
        return AuthLevel.SESSION_LEVEL_2
    if level == AuthLevel.SESSION_LEVEL_2:
        return AuthLevel.SESSION_LEVEL_1
    raise ValueError(f"{level.value} is not a session level")
