"""Login credentials for the two elevated session levels."""

from __future__ import annotations

import urllib.parse
from dataclasses import dataclass
from typing import Any


def _is_http_url(value: str) -> bool:
    parsed = urllib.parse.urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


@dataclass(frozen=True)
class Level1Credentials:
    """Credentials for the auth-session login (second factor supported)."""
    user_name: str = ""
    email: str = ""
    password: str = ""
    totp_secret: str | None = None
    proxy: str | None = None

    def missing_fields(self) -> list[str]:
        return [
            name for name in ("user_name", "email", "password")
            if not (getattr(self, name) or "").strip()
        ]

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def validate(self) -> list[str]:
        return _common_problems(self.missing_fields(), self.email, self.proxy)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "user_name": self.user_name,
            "email": self.email,
            "password": self.password,
        }
        if self.totp_secret:
            payload["totp_secret"] = self.totp_secret
        if self.proxy:
            payload["proxy"] = self.proxy
        return payload


@dataclass(frozen=True)
class Level2Credentials:
    """Credentials for the login-cookie login. No second factor."""
    user_name: str = ""
    email: str = ""
    password: str = ""
    proxy: str | None = None

    def missing_fields(self) -> list[str]:
        return [
            name for name in ("user_name", "email", "password")
            if not (getattr(self, name) or "").strip()
        ]

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def validate(self) -> list[str]:
        return _common_problems(self.missing_fields(), self.email, self.proxy)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "user_name": self.user_name,
            "email": self.email,
            "password": self.password,
        }
        if self.proxy:
            payload["proxy"] = self.proxy
        return payload


def _common_problems(missing: list[str], email: str, proxy: str | None) -> list[str]:
    problems = [f"{name} is required" for name in missing]
    if email and "@" not in email:
        problems.append("email is not a valid address")
    if proxy and not _is_http_url(proxy):
        problems.append("proxy must be an http(s) URL")
    return problems


@dataclass(frozen=True)
class CredentialsBundle:
    level_1: Level1Credentials | None = None
    level_2: Level2Credentials | None = None
