"""Minimal JSON-over-HTTP transport for the platform API.

Every HTTP status comes back as an HttpResponse; only connection-level
failures raise. With a RetryPolicy, connection failures and 5xx answers
are retried. 429 is returned as-is so callers can back off.
"""

from __future__ import annotations

import json
import logging
import socket
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from kaito_auth.retry import RetryError, RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """Raised when no HTTP response could be obtained."""

    def __init__(self, message: str, timed_out: bool = False) -> None:
        self.timed_out = timed_out
        super().__init__(message)


class _ServerError(Exception):
    def __init__(self, response: HttpResponse) -> None:
        self.response = response
        super().__init__(f"HTTP {response.status}")


@dataclass
class HttpResponse:
    status: int
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @property
    def retry_after(self) -> float | None:
        value = self.header("Retry-After")
        if value is None:
            return None
        try:
            return max(0.0, float(value))
        except ValueError:
            return None


def _decode(raw: bytes) -> Any:
    text = raw.decode("utf-8", errors="replace")
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


class HttpTransport:
    """urllib-based client bound to one API base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        retry_policy: RetryPolicy | None = None,
        sleep_func: Callable[[float], None] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._retry_policy = retry_policy
        self._sleep = sleep_func

    def _url(self, path: str, params: Mapping[str, Any] | None = None) -> str:
        url = f"{self.base_url}/{path.lstrip('/')}"
        if params:
            query = urllib.parse.urlencode(
                {k: str(v) for k, v in params.items() if v is not None}
            )
            url = f"{url}?{query}"
        return url

    def _send(self, req: urllib.request.Request) -> HttpResponse:
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return HttpResponse(
                    status=resp.status,
                    body=_decode(resp.read()),
                    headers=dict(resp.headers.items()),
                )
        except urllib.error.HTTPError as exc:
            return HttpResponse(
                status=exc.code,
                body=_decode(exc.read()),
                headers=dict(exc.headers.items()) if exc.headers else {},
            )
        except (socket.timeout, TimeoutError) as exc:
            raise TransportError("Connection timeout", timed_out=True) from exc
        except urllib.error.URLError as exc:
            if isinstance(exc.reason, (socket.timeout, TimeoutError)):
                raise TransportError("Connection timeout", timed_out=True) from exc
            raise TransportError(f"Network error: {exc.reason}") from exc
        except OSError as exc:
            raise TransportError(f"Network error: {exc}") from exc

    def _attempt(self, req: urllib.request.Request) -> HttpResponse:
        response = self._send(req)
        if response.status >= 500:
            raise _ServerError(response)
        return response

    def request(self, req: urllib.request.Request) -> HttpResponse:
        if self._retry_policy is None:
            return self._send(req)
        try:
            return call_with_retry(
                self._attempt, self._retry_policy,
                (TransportError, _ServerError), self._sleep, req,
            )
        except RetryError as exc:
            last = exc.last_error
            if isinstance(last, _ServerError):
                return last.response
            raise TransportError(str(last), timed_out=getattr(last, "timed_out", False)) from last

    def post_json(
        self,
        path: str,
        payload: Mapping[str, Any],
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        data = json.dumps(dict(payload)).encode("utf-8")
        req = urllib.request.Request(
            self._url(path), data=data,
            headers={"Content-Type": "application/json", **(headers or {})},
            method="POST",
        )
        logger.debug("POST %s", path)
        return self.request(req)

    def get_json(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        req = urllib.request.Request(
            self._url(path, params), headers=dict(headers or {}), method="GET",
        )
        logger.debug("GET %s", path)
        return self.request(req)
