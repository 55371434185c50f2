"""Result types returned by login and connection checks.

Logins never raise; callers branch on ``result.success``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from kaito_auth.levels import AuthLevel


class FailureKind(Enum):
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    MALFORMED_RESPONSE = "malformed_response"


_RETRYABLE = (FailureKind.NETWORK, FailureKind.RATE_LIMITED)


@dataclass(frozen=True)
class LoginSuccess:
    level: AuthLevel
    token: str
    expires_at: float
    coalesced: bool = False
    success: bool = True


@dataclass(frozen=True)
class LoginFailure:
    level: AuthLevel | None
    kind: FailureKind
    error: str
    status: int | None = None
    retry_after: float | None = None
    success: bool = False

    @property
    def retryable(self) -> bool:
        return self.kind in _RETRYABLE


LoginResult = Union[LoginSuccess, LoginFailure]


@dataclass(frozen=True)
class ConnectionResult:
    success: bool
    error: str | None = None
    status: int | None = None
    cached: bool = False


@dataclass(frozen=True)
class ConnectionReport:
    api_key: ConnectionResult
    sessions: dict[AuthLevel, ConnectionResult]
    overall: bool
