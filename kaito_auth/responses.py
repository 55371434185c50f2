"""Normalization of platform login responses.

The platform has answered logins with more than one body shape. Each
recognized shape is a parser tried in order; a parser returns None when
the body is not its shape. Nothing recognized yields UnknownShape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Union

LEVEL_1_TOKEN_FIELDS = ("session_token", "auth_session")
LEVEL_2_TOKEN_FIELDS = ("login_cookie", "login_cookies")

_MESSAGE_FIELDS = ("error", "message", "msg", "detail")


@dataclass(frozen=True)
class TokenIssued:
    token: str


@dataclass(frozen=True)
class LoginRejected:
    message: str


@dataclass(frozen=True)
class MalformedResponse:
    reason: str


@dataclass(frozen=True)
class UnknownShape:
    description: str


ParsedLogin = Union[TokenIssued, LoginRejected, MalformedResponse, UnknownShape]


def _success_flag(body: Mapping[str, Any]) -> bool | None:
    flag = body.get("success")
    if isinstance(flag, bool):
        return flag
    status = body.get("status")
    if isinstance(status, str):
        return status.strip().lower() in ("success", "ok")
    return None


def _message(*bodies: Mapping[str, Any]) -> str | None:
    for body in bodies:
        for name in _MESSAGE_FIELDS:
            value = body.get(name)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def _token(token_fields: tuple[str, ...], *bodies: Mapping[str, Any]) -> str | None:
    for body in bodies:
        for name in token_fields:
            value = body.get(name)
            if isinstance(value, str) and value.strip():
                return value
    return None


def _interpret(
    flag: bool,
    body: Mapping[str, Any],
    token_fields: tuple[str, ...],
    outer: Mapping[str, Any],
) -> ParsedLogin:
    if not flag:
        return LoginRejected(_message(body, outer) or "Login rejected by platform")
    token = _token(token_fields, body, outer)
    if token is None:
        return MalformedResponse(
            f"success response without a token field ({', '.join(token_fields)})"
        )
    return TokenIssued(token)


def _parse_envelope(payload: Any, token_fields: tuple[str, ...]) -> ParsedLogin | None:
    """``{"data": {"success": true, "<token>": "..."}}``"""
    if not isinstance(payload, Mapping):
        return None
    inner = payload.get("data")
    if not isinstance(inner, Mapping):
        return None
    flag = _success_flag(inner)
    if flag is None:
        flag = _success_flag(payload)
    if flag is None:
        return None
    return _interpret(flag, inner, token_fields, payload)


def _parse_flat(payload: Any, token_fields: tuple[str, ...]) -> ParsedLogin | None:
    """``{"success": true, "<token>": "..."}`` or ``{"status": "success", ...}``"""
    if not isinstance(payload, Mapping):
        return None
    flag = _success_flag(payload)
    if flag is None:
        return None
    return _interpret(flag, payload, token_fields, payload)


SHAPES: tuple[Callable[[Any, tuple[str, ...]], ParsedLogin | None], ...] = (
    _parse_envelope,
    _parse_flat,
)


def normalize_login_response(payload: Any, token_fields: tuple[str, ...]) -> ParsedLogin:
    for parse in SHAPES:
        parsed = parse(payload, token_fields)
        if parsed is not None:
            return parsed
    if isinstance(payload, Mapping):
        keys = ", ".join(sorted(str(k) for k in payload)) or "no keys"
        return UnknownShape(f"unrecognized login response ({keys})")
    return UnknownShape(f"unrecognized login response of type {type(payload).__name__}")
