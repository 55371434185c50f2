"""Static endpoint policy: which auth level each platform path requires.

Rules are matched in order against a normalized path (query string and
trailing slash removed, lower-cased). The first match wins; anything
unmatched is a read and needs only the API key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from kaito_auth.levels import AuthLevel


@dataclass(frozen=True)
class PolicyRule:
    pattern: re.Pattern[str]
    level: AuthLevel
    description: str = ""

    def matches(self, path: str) -> bool:
        return self.pattern.search(path) is not None


def _rule(regex: str, level: AuthLevel, description: str = "") -> PolicyRule:
    return PolicyRule(re.compile(regex), level, description)


DEFAULT_RULES: tuple[PolicyRule, ...] = (
    _rule(r"^/public(/|$)", AuthLevel.API_KEY, "public read endpoints"),
    _rule(r"(^|/)(user_login_v2|login_by_email_or_username|login_by_2fa)$", AuthLevel.API_KEY, "logins"),
    # login-cookie endpoints
    _rule(r"/[a-z_]+_v2$", AuthLevel.SESSION_LEVEL_2, "v2 write actions"),
    _rule(r"(^|/)tweet/(create|delete)$", AuthLevel.SESSION_LEVEL_2, "tweet create/delete"),
    _rule(r"(^|/)action/(like|unlike|retweet|quote|bookmark|unbookmark)$",
          AuthLevel.SESSION_LEVEL_2, "engagement actions"),
    _rule(r"(^|/)user/(follow|unfollow)$", AuthLevel.SESSION_LEVEL_2, "follows"),
    _rule(r"(^|/)dm(/|$)", AuthLevel.SESSION_LEVEL_2, "direct messages"),
    _rule(r"(^|/)media/upload(/|$)", AuthLevel.SESSION_LEVEL_2, "media upload"),
    _rule(r"(^|/)(spaces|community|fleets)/", AuthLevel.SESSION_LEVEL_2, "spaces and communities"),
    # auth-session endpoints
    _rule(r"(^|/)create_tweet$", AuthLevel.SESSION_LEVEL_1, "v1 tweet create"),
    _rule(r"(^|/)tweet/destroy$", AuthLevel.SESSION_LEVEL_1, "v1 tweet delete"),
    _rule(r"(^|/)statuses/(update|retweet|unretweet)$", AuthLevel.SESSION_LEVEL_1, "v1 statuses"),
    _rule(r"(^|/)favorites/(create|destroy)$", AuthLevel.SESSION_LEVEL_1, "v1 favorites"),
    _rule(r"(^|/)friendships/(create|destroy)$", AuthLevel.SESSION_LEVEL_1, "v1 friendships"),
    _rule(r"(^|/)user/(like|unlike|retweet|unretweet)$", AuthLevel.SESSION_LEVEL_1, "v1 engagement"),
)


class EndpointPolicy:
    """Maps endpoint paths to the auth level they require.

    Lookups are pure: the answer depends on the path string only.
    Invalid paths fail closed and require the highest level.
    """

    def __init__(
        self,
        rules: tuple[PolicyRule, ...] | None = None,
        default_level: AuthLevel = AuthLevel.API_KEY,
    ) -> None:
        self._rules = DEFAULT_RULES if rules is None else tuple(rules)
        self._default = default_level

    @staticmethod
    def normalize(path: str) -> str:
        path = path.strip().split("?", 1)[0].split("#", 1)[0]
        if len(path) > 1:
            path = path.rstrip("/")
        return path.lower()

    @staticmethod
    def validate(path: object) -> str | None:
        """Return a problem description for an unusable path, else None."""
        if not isinstance(path, str):
            return f"endpoint must be a string, got {type(path).__name__}"
        stripped = path.strip()
        if not stripped:
            return "endpoint is empty"
        if not stripped.startswith("/"):
            return f"endpoint must start with '/': {path!r}"
        if any(ch.isspace() for ch in stripped):
            return f"endpoint contains whitespace: {path!r}"
        return None

    def required_level(self, path: str) -> AuthLevel:
        if self.validate(path) is not None:
            return AuthLevel.SESSION_LEVEL_2
        normalized = self.normalize(path)
        for rule in self._rules:
            if rule.matches(normalized):
                return rule.level
        return self._default

    @property
    def rules(self) -> tuple[PolicyRule, ...]:
        return self._rules
