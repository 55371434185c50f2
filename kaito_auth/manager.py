"""Tiered authentication and session manager for the platform API.

Three independent credentials back three auth levels:

  API_KEY          the primary key, sent on every request
  SESSION_LEVEL_1  auth-session token from the level-1 login
  SESSION_LEVEL_2  login cookie from the level-2 login

The two sessions live in separate slots and never affect each other.
The effective level is the preferred session if valid, then the
highest valid session, then the API key. An endpoint that needs a
session is reachable only while that level's own session is valid.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from kaito_auth.config import (
    API_KEY_ENV,
    AuthConfig,
    AuthConfigurationError,
    EnvironmentReport,
    environment_report,
    load_config,
)
from kaito_auth.credentials import CredentialsBundle, Level1Credentials, Level2Credentials
from kaito_auth.levels import SESSION_LEVELS, AuthLevel, other_session_level, parse_preferred_method
from kaito_auth.policy import EndpointPolicy
from kaito_auth.responses import (
    LEVEL_1_TOKEN_FIELDS,
    LEVEL_2_TOKEN_FIELDS,
    LoginRejected,
    MalformedResponse,
    TokenIssued,
    normalize_login_response,
)
from kaito_auth.results import (
    ConnectionReport,
    ConnectionResult,
    FailureKind,
    LoginFailure,
    LoginResult,
    LoginSuccess,
)
from kaito_auth.retry import RetryPolicy
from kaito_auth.session import SessionSlot
from kaito_auth.transport import HttpResponse, HttpTransport, TransportError

logger = logging.getLogger(__name__)

DEBUG_INFO_VERSION = 1
USER_AGENT = "kaito-auth/0.1"

_MIN_KEY_LENGTH = 10
_KEY_CHARS = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-")

_PARAM_NAMES = {
    AuthLevel.SESSION_LEVEL_1: "auth_session",
    AuthLevel.SESSION_LEVEL_2: "login_cookie",
}


class Transport(Protocol):
    def post_json(self, path: str, payload: Any, headers: Any = None) -> HttpResponse: ...

    def get_json(self, path: str, params: Any = None, headers: Any = None) -> HttpResponse: ...


@dataclass(frozen=True)
class AuthStatus:
    api_key_valid: bool
    v1_session_valid: bool
    v2_session_valid: bool
    current_level: AuthLevel
    valid_levels: frozenset[AuthLevel]
    can_perform_user_actions: bool
    session_expiry: float | None
    missing_environment: tuple[str, ...] = ()


@dataclass(frozen=True)
class ApiKeyDebug:
    present: bool
    length: int
    valid_format: bool
    masked: str
    last_verified_at: str | None


@dataclass(frozen=True)
class SessionDebug:
    valid: bool
    created_at: str | None
    age_seconds: float | None
    expires_at: str | None
    seconds_until_expiry: float | None


@dataclass(frozen=True)
class DebugInfo:
    current_level: AuthLevel
    preferred_method: AuthLevel
    valid_levels: tuple[AuthLevel, ...]
    api_key: ApiKeyDebug
    sessions: dict[AuthLevel, SessionDebug]
    environment: EnvironmentReport
    generated_at: str
    version: int = DEBUG_INFO_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "current_level": self.current_level.value,
            "preferred_method": self.preferred_method.value,
            "valid_levels": [lvl.value for lvl in self.valid_levels],
            "api_key": asdict(self.api_key),
            "sessions": {lvl.value: asdict(s) for lvl, s in self.sessions.items()},
            "environment": {
                "present": list(self.environment.present),
                "missing": list(self.environment.missing),
            },
            "generated_at": self.generated_at,
        }


def _iso(ts: float | None) -> str | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _platform_message(body: Any) -> str | None:
    if isinstance(body, dict):
        for container in (body, body.get("data")):
            if isinstance(container, dict):
                for name in ("error", "message", "msg", "detail"):
                    value = container.get(name)
                    if isinstance(value, str) and value.strip():
                        return value.strip()
    elif isinstance(body, str) and body.strip():
        return body.strip()[:200]
    return None


@dataclass
class _Validation:
    at: float | None = None
    status: int | None = None


class AuthManager:
    """Tracks credential validity and hands out headers and parameters.

    Reads (status, headers, policy checks) never block. Logins for one
    level are single-flight: concurrent callers wait for the login in
    progress and reuse its session if it was issued for the same account.
    """

    def __init__(
        self,
        api_key: str | None = None,
        preferred_method: str | AuthLevel | None = None,
        config: AuthConfig | None = None,
        transport: Transport | None = None,
        clock: Callable[[], float] | None = None,
        policy: EndpointPolicy | None = None,
    ) -> None:
        cfg = config if config is not None else load_config()
        key = cfg.api_key if api_key is None else api_key
        if not key or not key.strip():
            raise AuthConfigurationError(f"{API_KEY_ENV} is required")

        self.config = cfg
        self._api_key = key.strip()
        self._preferred = (
            cfg.preferred_method if preferred_method is None
            else parse_preferred_method(preferred_method)
        )
        self._clock = clock or time.time
        self._policy = policy or EndpointPolicy()
        self._transport: Transport = transport or HttpTransport(
            cfg.api_base_url,
            timeout=cfg.request_timeout,
            retry_policy=RetryPolicy(max_retries=cfg.max_retries, backoff=cfg.retry_backoff)
            if cfg.max_retries > 0 else None,
        )
        self._slots = {level: SessionSlot(level) for level in SESSION_LEVELS}
        self._validation = _Validation()

        logger.info(
            "AuthManager ready (header=%s, preferred=%s)",
            cfg.auth_header, self._preferred.value,
        )

    # ------------------------------------------------------------------
    # API key
    # ------------------------------------------------------------------

    @property
    def preferred_method(self) -> AuthLevel:
        return self._preferred

    def is_api_key_valid(self) -> bool:
        """Format check only; see test_connection() for a live check."""
        key = self._api_key
        return len(key) >= _MIN_KEY_LENGTH and all(ch in _KEY_CHARS for ch in key)

    def get_auth_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.config.auth_header == "bearer":
            headers["Authorization"] = f"Bearer {self._api_key}"
        else:
            headers["x-api-key"] = self._api_key
        return headers

    def get_obfuscated_api_key(self) -> str:
        key = self._api_key
        if len(key) <= 8:
            return "*" * len(key)
        return key[:4] + "*" * (len(key) - 4)

    def test_connection(self) -> ConnectionResult:
        """Check the API key against the platform with a cheap read."""
        if not self.is_api_key_valid():
            return ConnectionResult(success=False, error="Invalid API key format")

        now = self._clock()
        last = self._validation.at
        if last is not None and now - last < self.config.validation_cache_seconds:
            return ConnectionResult(success=True, status=self._validation.status, cached=True)

        result = self._check(
            self.config.health_check_path,
            {"query": "test", "queryType": "Latest", "count": 1},
            "Connection test failed",
        )
        if result.success:
            self._validation.at = now
            self._validation.status = result.status
        return result

    def test_session_connection(self, level: AuthLevel) -> ConnectionResult:
        """Check one session against an endpoint that needs it. Never cached."""
        if not level.is_session:
            raise ValueError(f"{level.value} is not a session level")
        session = self._slots[level].current(self._clock())
        if session is None:
            return ConnectionResult(success=False, error="No valid login session")
        return self._check(
            self.config.session_check_path,
            {"userName": "me", _PARAM_NAMES[level]: session.token},
            "Authentication test failed",
        )

    def test_all_connections(self) -> ConnectionReport:
        """API-key check plus one check per session level.

        ``overall`` needs the key check and at least one session check to pass.
        """
        api_key = self.test_connection()
        sessions = {level: self.test_session_connection(level) for level in SESSION_LEVELS}
        return ConnectionReport(
            api_key=api_key,
            sessions=sessions,
            overall=api_key.success and any(r.success for r in sessions.values()),
        )

    def _check(self, path: str, params: dict[str, Any], fallback: str) -> ConnectionResult:
        try:
            response = self._transport.get_json(path, params, self.get_auth_headers())
        except TransportError as exc:
            logger.warning("%s: %s", fallback, exc)
            return ConnectionResult(success=False, error=str(exc) or fallback)

        if response.ok:
            return ConnectionResult(success=True, status=response.status)
        if response.status == 401:
            error = "Invalid API key - authentication failed"
        elif response.status == 403:
            error = "API key lacks required permissions"
        elif response.status == 429:
            error = "Rate limit exceeded (HTTP 429)"
        else:
            error = f"HTTP {response.status}"
        return ConnectionResult(success=False, error=error, status=response.status)

    def reset_auth(self) -> None:
        """Forget the cached connection-test result."""
        self._validation.at = None
        self._validation.status = None

    def force_refresh_auth(self) -> bool:
        """Drop the connection-test cache, then extend the effective session.

        With no valid session this falls back to a full login().
        """
        self.reset_auth()
        if self.get_current_auth_level().is_session:
            return self.refresh_session()
        return self.login().success

    # ------------------------------------------------------------------
    # Logins
    # ------------------------------------------------------------------

    def login_level_1(self, credentials: Level1Credentials) -> LoginResult:
        return self._login(
            AuthLevel.SESSION_LEVEL_1, credentials,
            self.config.level_1_login_path, LEVEL_1_TOKEN_FIELDS,
        )

    def login_level_2(self, credentials: Level2Credentials) -> LoginResult:
        return self._login(
            AuthLevel.SESSION_LEVEL_2, credentials,
            self.config.level_2_login_path, LEVEL_2_TOKEN_FIELDS,
        )

    def _login(
        self,
        level: AuthLevel,
        credentials: Level1Credentials | Level2Credentials,
        path: str,
        token_fields: tuple[str, ...],
    ) -> LoginResult:
        problems = credentials.validate()
        if problems:
            return LoginFailure(level, FailureKind.VALIDATION, "; ".join(problems))

        slot = self._slots[level]
        seen_generation = slot.generation
        with slot.lock:
            # Only a session issued for the same account is shared.
            if slot.generation != seen_generation and slot.owned_by(credentials):
                session = slot.current(self._clock())
                if session is not None:
                    logger.info("Reusing %s session from concurrent login", level.value)
                    return LoginSuccess(level, session.token, session.expires_at, coalesced=True)

            logger.info("Logging in at %s", level.value)
            outcome = self._post_login(level, path, credentials.to_payload(), token_fields)
            if isinstance(outcome, LoginFailure):
                logger.warning("%s login failed (%s): %s", level.value, outcome.kind.value, outcome.error)
                return outcome

            session = slot.store(
                outcome, self._clock(), self.config.session_ttl_seconds, owner=credentials,
            )
            logger.info("%s login succeeded; session valid until %s", level.value, _iso(session.expires_at))
            return LoginSuccess(level, session.token, session.expires_at)

    def _post_login(
        self,
        level: AuthLevel,
        path: str,
        payload: dict[str, Any],
        token_fields: tuple[str, ...],
    ) -> str | LoginFailure:
        """Run the login request; return the token or a failure."""
        try:
            response = self._transport.post_json(path, payload, self.get_auth_headers())
        except TransportError as exc:
            return LoginFailure(level, FailureKind.NETWORK, str(exc) or "Network error")
        except Exception as exc:  # logins never raise
            logger.exception("Unexpected transport failure during %s login", level.value)
            return LoginFailure(level, FailureKind.NETWORK, f"Unexpected transport error: {exc}")

        if response.status == 429:
            return LoginFailure(
                level, FailureKind.RATE_LIMITED, "Rate limit exceeded (HTTP 429)",
                status=429, retry_after=response.retry_after,
            )
        if response.status >= 500:
            detail = _platform_message(response.body)
            error = f"HTTP {response.status}" + (f": {detail}" if detail else "")
            return LoginFailure(level, FailureKind.NETWORK, error, status=response.status)
        if not response.ok:
            detail = _platform_message(response.body)
            if response.status == 401:
                error = "Unauthorized (HTTP 401)"
            elif response.status == 403:
                error = "Forbidden (HTTP 403)"
            else:
                error = f"HTTP {response.status}"
            if detail:
                error = f"{error}: {detail}"
            return LoginFailure(level, FailureKind.AUTHENTICATION, error, status=response.status)

        parsed = normalize_login_response(response.body, token_fields)
        if isinstance(parsed, TokenIssued):
            return parsed.token
        if isinstance(parsed, LoginRejected):
            return LoginFailure(level, FailureKind.AUTHENTICATION, parsed.message, status=response.status)
        if isinstance(parsed, MalformedResponse):
            reason = parsed.reason
        else:
            reason = parsed.description
        return LoginFailure(level, FailureKind.MALFORMED_RESPONSE, reason, status=response.status)

    def login(self, bundle: CredentialsBundle | None = None) -> LoginResult:
        """Log in with the preferred method, falling back to the other one.

        The fallback runs when the preferred credentials are absent or
        incomplete, or when the preferred login fails.
        """
        creds = bundle if bundle is not None else self.config.credentials
        attempts: dict[AuthLevel, tuple[Any, Callable[[Any], LoginResult]]] = {
            AuthLevel.SESSION_LEVEL_1: (creds.level_1, self.login_level_1),
            AuthLevel.SESSION_LEVEL_2: (creds.level_2, self.login_level_2),
        }

        first_failure: LoginResult | None = None
        for level in (self._preferred, other_session_level(self._preferred)):
            level_creds, do_login = attempts[level]
            if level_creds is None or not level_creds.is_complete():
                logger.info("No complete %s credentials; skipping", level.value)
                continue
            result = do_login(level_creds)
            if result.success:
                return result
            if first_failure is None:
                first_failure = result

        if first_failure is not None:
            return first_failure

        if bundle is None:
            missing = environment_report(self.config).missing
            detail = ", ".join(name for name in missing if name != API_KEY_ENV)
        else:
            detail = "; ".join(
                f"{level.value}: " + (", ".join(c.missing_fields()) if c is not None else "not provided")
                for level, (c, _) in attempts.items()
            )
        return LoginFailure(
            None, FailureKind.CONFIGURATION,
            f"No complete login credentials; missing {detail or 'level_1 or level_2 credentials'}",
        )

    def ensure_auth_level(self, required: AuthLevel) -> bool:
        """Make sure ``required`` is satisfied, logging in only if needed.

        Session levels log in with that level's configured credentials.
        """
        if self._satisfies(required):
            return True
        if required == AuthLevel.SESSION_LEVEL_1:
            return self.login_level_1(self.config.level_1).success
        if required == AuthLevel.SESSION_LEVEL_2:
            return self.login_level_2(self.config.level_2).success
        return False

    def refresh_session(self, level: AuthLevel | None = None) -> bool:
        """Push a valid session's expiry out by one TTL window."""
        target = level if level is not None else self.get_current_auth_level()
        if not target.is_session:
            return False
        slot = self._slots[target]
        with slot.lock:
            extended = slot.extend(self._clock(), self.config.session_ttl_seconds)
        if extended is None:
            return False
        logger.info("%s session extended to %s", target.value, _iso(extended.expires_at))
        return True

    def logout(self, level: AuthLevel | None = None) -> None:
        if level is not None and not level.is_session:
            return
        levels = (level,) if level is not None else SESSION_LEVELS
        for lvl in levels:
            slot = self._slots[lvl]
            with slot.lock:
                if slot.clear():
                    logger.info("Logged out of %s", lvl.value)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def is_session_valid(self, level: AuthLevel) -> bool:
        if not level.is_session:
            return False
        return self._slots[level].is_valid(self._clock())

    def get_valid_auth_levels(self) -> frozenset[AuthLevel]:
        levels = {lvl for lvl in SESSION_LEVELS if self.is_session_valid(lvl)}
        if self.is_api_key_valid():
            levels.add(AuthLevel.API_KEY)
        return frozenset(levels)

    def get_current_auth_level(self) -> AuthLevel:
        return self._effective_level(self.get_valid_auth_levels())

    def _effective_level(self, valid: frozenset[AuthLevel]) -> AuthLevel:
        if self._preferred in valid:
            return self._preferred
        if valid:
            return max(valid)
        return AuthLevel.NONE

    def _satisfies(self, required: AuthLevel) -> bool:
        # A session level needs its own token; the other session's token
        # is not accepted by that level's endpoints.
        if required == AuthLevel.NONE:
            return True
        return required in self.get_valid_auth_levels()

    def get_auth_parameters(self) -> dict[str, Any]:
        """One entry per valid session: ``auth_session`` and/or ``login_cookie``."""
        now = self._clock()
        params: dict[str, Any] = {}
        for level in SESSION_LEVELS:
            session = self._slots[level].current(now)
            if session is not None:
                params[_PARAM_NAMES[level]] = session.token
        return params

    def get_user_session(self) -> str | None:
        """Raw token of the effective session, for callers that build their own requests."""
        current = self.get_current_auth_level()
        if not current.is_session:
            return None
        session = self._slots[current].current(self._clock())
        return session.token if session else None

    def get_required_auth_level(self, endpoint: str) -> AuthLevel:
        return self._policy.required_level(endpoint)

    def requires_user_session(self, endpoint: str) -> bool:
        return self.get_required_auth_level(endpoint).is_session

    def can_access_endpoint(self, endpoint: str) -> bool:
        if self._policy.validate(endpoint) is not None:
            return False
        if not self.is_api_key_valid():
            return False
        return self._satisfies(self.get_required_auth_level(endpoint))

    def get_auth_status(self) -> AuthStatus:
        valid = self.get_valid_auth_levels()
        current = self._effective_level(valid)
        expiry = None
        if current.is_session:
            session = self._slots[current].current(self._clock())
            expiry = session.expires_at if session else None
        return AuthStatus(
            api_key_valid=AuthLevel.API_KEY in valid,
            v1_session_valid=AuthLevel.SESSION_LEVEL_1 in valid,
            v2_session_valid=AuthLevel.SESSION_LEVEL_2 in valid,
            current_level=current,
            valid_levels=valid,
            can_perform_user_actions=any(lvl.is_session for lvl in valid),
            session_expiry=expiry,
            missing_environment=environment_report(self.config).missing,
        )

    def get_debug_info(self) -> DebugInfo:
        now = self._clock()
        valid = self.get_valid_auth_levels()
        sessions = {}
        for level in SESSION_LEVELS:
            session = self._slots[level].current(now)
            sessions[level] = SessionDebug(
                valid=session is not None,
                created_at=_iso(session.created_at) if session else None,
                age_seconds=session.age(now) if session else None,
                expires_at=_iso(session.expires_at) if session else None,
                seconds_until_expiry=session.seconds_remaining(now) if session else None,
            )
        return DebugInfo(
            current_level=self._effective_level(valid),
            preferred_method=self._preferred,
            valid_levels=tuple(sorted(valid)),
            api_key=ApiKeyDebug(
                present=bool(self._api_key),
                length=len(self._api_key),
                valid_format=self.is_api_key_valid(),
                masked=self.get_obfuscated_api_key(),
                last_verified_at=_iso(self._validation.at),
            ),
            sessions=sessions,
            environment=environment_report(self.config),
            generated_at=_iso(now) or "",
        )
