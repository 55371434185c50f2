"""Shared fixtures: keep the developer's real credentials out of tests."""

import pytest

from kaito_auth.config import API_KEY_ENV, LEVEL_1_ENV, LEVEL_1_OPTIONAL_ENV, LEVEL_2_ENV, LEVEL_2_OPTIONAL_ENV

_ENV_VARS = (
    API_KEY_ENV,
    "KAITO_API_BASE_URL",
    "KAITO_AUTH_HEADER",
    "KAITO_PREFERRED_AUTH_METHOD",
    "KAITO_SESSION_TTL_HOURS",
    "KAITO_REQUEST_TIMEOUT",
    "KAITO_MAX_RETRIES",
    "KAITO_RETRY_BACKOFF",
) + LEVEL_1_ENV + LEVEL_1_OPTIONAL_ENV + LEVEL_2_ENV + LEVEL_2_OPTIONAL_ENV


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
