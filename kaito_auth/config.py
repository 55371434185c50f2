"""Configuration loader for kaito-auth.

Loads YAML config files with environment variable overrides. The
environment is only read by load_config(); AuthManager takes the
resulting AuthConfig and never looks at os.environ again.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from kaito_auth.credentials import CredentialsBundle, Level1Credentials, Level2Credentials
from kaito_auth.levels import AuthLevel, parse_preferred_method

AUTH_HEADER_STYLES = ("x-api-key", "bearer")

API_KEY_ENV = "KAITO_API_TOKEN"
LEVEL_1_ENV = ("X_USERNAME", "X_EMAIL", "X_PASSWORD")
LEVEL_1_OPTIONAL_ENV = ("X_TOTP_SECRET", "X_PROXY")
LEVEL_2_ENV = ("TWITTER_USERNAME", "TWITTER_EMAIL", "TWITTER_PASSWORD")
LEVEL_2_OPTIONAL_ENV = ("TWITTER_PROXY",)


class AuthConfigurationError(ValueError):
    """Raised when the primary API key is missing."""


@dataclass
class AuthConfig:
    """Everything the auth manager needs, resolved up front."""
    api_key: str = ""
    api_base_url: str = "https://api.twitterapi.io"
    auth_header: str = "x-api-key"
    preferred_method: AuthLevel = AuthLevel.SESSION_LEVEL_2
    session_ttl_seconds: float = 24 * 60 * 60
    request_timeout: float = 10.0
    max_retries: int = 0
    retry_backoff: float = 1.0
    validation_cache_seconds: float = 60 * 60
    level_1_login_path: str = "/twitter/login_by_email_or_username"
    level_2_login_path: str = "/twitter/user_login_v2"
    health_check_path: str = "/twitter/tweet/advanced_search"
    session_check_path: str = "/twitter/user/info"
    level_1: Level1Credentials = field(default_factory=Level1Credentials)
    level_2: Level2Credentials = field(default_factory=Level2Credentials)

    def __post_init__(self) -> None:
        style = self.auth_header.strip().lower()
        if style not in AUTH_HEADER_STYLES:
            raise ValueError(
                f"auth_header must be one of {', '.join(AUTH_HEADER_STYLES)}, got {self.auth_header!r}"
            )
        self.auth_header = style
        self.preferred_method = parse_preferred_method(self.preferred_method)

    @property
    def credentials(self) -> CredentialsBundle:
        return CredentialsBundle(
            level_1=self.level_1 if self.level_1.is_complete() else None,
            level_2=self.level_2 if self.level_2.is_complete() else None,
        )


@dataclass(frozen=True)
class EnvironmentReport:
    """Which expected inputs are set. Names only, never values."""
    present: tuple[str, ...]
    missing: tuple[str, ...]

    @property
    def complete(self) -> bool:
        return not self.missing


def load_config(path: Path | None = None) -> AuthConfig:
    """Load config from YAML file with env var overrides.

    Env vars override YAML values. Mapping:
      KAITO_API_TOKEN → api.key
      KAITO_API_BASE_URL → api.base_url
      KAITO_AUTH_HEADER → api.auth_header
      KAITO_REQUEST_TIMEOUT → api.timeout
      KAITO_MAX_RETRIES → api.max_retries
      KAITO_RETRY_BACKOFF → api.backoff
      KAITO_SESSION_TTL_HOURS → session.ttl_hours
      KAITO_PREFERRED_AUTH_METHOD → session.preferred_method
      X_USERNAME / X_EMAIL / X_PASSWORD / X_TOTP_SECRET / X_PROXY → level_1.*
      TWITTER_USERNAME / TWITTER_EMAIL / TWITTER_PASSWORD / TWITTER_PROXY → level_2.*
    """
    raw: dict[str, Any] = {}
    if path and path.exists():
        loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        raw = loaded if isinstance(loaded, dict) else {}

    api = _section(raw, "api")
    session = _section(raw, "session")
    level_1 = _section(raw, "level_1")
    level_2 = _section(raw, "level_2")

    return AuthConfig(
        api_key=_env_or(API_KEY_ENV, api.get("key", "")).strip(),
        api_base_url=_env_or("KAITO_API_BASE_URL", api.get("base_url", "https://api.twitterapi.io")),
        auth_header=_env_or("KAITO_AUTH_HEADER", api.get("auth_header", "x-api-key")),
        preferred_method=_env_or("KAITO_PREFERRED_AUTH_METHOD", session.get("preferred_method", "level_2")),
        session_ttl_seconds=_env_float("KAITO_SESSION_TTL_HOURS", session.get("ttl_hours", 24)) * 3600,
        request_timeout=_env_float("KAITO_REQUEST_TIMEOUT", api.get("timeout", 10.0)),
        max_retries=int(_env_float("KAITO_MAX_RETRIES", api.get("max_retries", 0))),
        retry_backoff=_env_float("KAITO_RETRY_BACKOFF", api.get("backoff", 1.0)),
        level_1=Level1Credentials(
            user_name=_env_or("X_USERNAME", level_1.get("user_name", "")),
            email=_env_or("X_EMAIL", level_1.get("email", "")),
            password=_env_or("X_PASSWORD", level_1.get("password", "")),
            totp_secret=_env_or("X_TOTP_SECRET", level_1.get("totp_secret", "")) or None,
            proxy=_env_or("X_PROXY", level_1.get("proxy", "")) or None,
        ),
        level_2=Level2Credentials(
            user_name=_env_or("TWITTER_USERNAME", level_2.get("user_name", "")),
            email=_env_or("TWITTER_EMAIL", level_2.get("email", "")),
            password=_env_or("TWITTER_PASSWORD", level_2.get("password", "")),
            proxy=_env_or("TWITTER_PROXY", level_2.get("proxy", "")) or None,
        ),
    )


def environment_report(cfg: AuthConfig) -> EnvironmentReport:
    """Report the expected inputs resolved into cfg, by environment name."""
    values = {
        API_KEY_ENV: cfg.api_key,
        "X_USERNAME": cfg.level_1.user_name,
        "X_EMAIL": cfg.level_1.email,
        "X_PASSWORD": cfg.level_1.password,
        "X_TOTP_SECRET": cfg.level_1.totp_secret,
        "X_PROXY": cfg.level_1.proxy,
        "TWITTER_USERNAME": cfg.level_2.user_name,
        "TWITTER_EMAIL": cfg.level_2.email,
        "TWITTER_PASSWORD": cfg.level_2.password,
        "TWITTER_PROXY": cfg.level_2.proxy,
    }
    present = tuple(name for name, value in values.items() if value)

    # Optional inputs are never reported as missing; a level counts as
    # missing only when none of its credentials are complete.
    missing: list[str] = []
    if not cfg.api_key:
        missing.append(API_KEY_ENV)
    if not cfg.level_1.is_complete() and not cfg.level_2.is_complete():
        missing.extend(name for name in LEVEL_1_ENV + LEVEL_2_ENV if not values[name])
    return EnvironmentReport(present=present, missing=tuple(missing))


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


def _env_or(name: str, default: Any) -> str:
    value = os.environ.get(name)
    if value is None:
        return "" if default is None else str(default)
    return value


def _env_float(name: str, default: Any) -> float:
    val = os.environ.get(name)
    if val is None or val.strip() == "":
        return float(default)
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {val!r}") from None
