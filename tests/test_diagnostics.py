"""Tests for authentication diagnostics."""

import pytest

from kaito_auth.config import AuthConfig
from kaito_auth.credentials import Level1Credentials
from kaito_auth.diagnostics import (
    analyze_auth_error,
    diagnose_configuration,
    diagnose_login_failure,
    generate_diagnostic_report,
)
from kaito_auth.levels import AuthLevel
from kaito_auth.manager import AuthStatus


class TestAnalyzeAuthError:
    @pytest.mark.parametrize("message,expected", [
        ("Rate limit exceeded (HTTP 429)", "RATE_LIMITED"),
        ("Authentication failed for user", "AUTHENTICATION_FAILED"),
        ("Login failed: unknown reason", "LOGIN_FAILED"),
        ("Connection timeout", "NETWORK_ERROR"),
        ("Unauthorized (HTTP 401)", "UNAUTHORIZED"),
        ("Forbidden (HTTP 403)", "FORBIDDEN"),
        ("something else entirely", "UNKNOWN_ERROR"),
        ("", "UNKNOWN_ERROR"),
    ])
    def test_classification(self, message, expected):
        assert analyze_auth_error(message).error_type == expected

    def test_first_rule_wins(self):
        # mentions both a rate limit and a network problem
        assert analyze_auth_error("429 from network proxy").error_type == "RATE_LIMITED"


class TestDiagnoseConfiguration:
    def test_missing(self):
        result = diagnose_configuration(AuthConfig())
        assert result.status == "missing"
        assert "KAITO_API_TOKEN is not set" in result.issues
        assert result.recommendations

    def test_partial(self):
        result = diagnose_configuration(AuthConfig(api_key="abcdefghijklmnop"))
        assert result.status == "partial"
        assert "X_USERNAME is not set" in result.issues

    def test_complete(self):
        cfg = AuthConfig(
            api_key="abcdefghijklmnop",
            level_1=Level1Credentials("u", "e@x.com", "p"),
        )
        result = diagnose_configuration(cfg)
        assert result.status == "complete"
        assert result.issues == ()

    def test_bad_values(self):
        cfg = AuthConfig(api_key="short", level_1=Level1Credentials("u", "nope", "p"))
        result = diagnose_configuration(cfg)
        assert result.status == "partial"
        assert "KAITO_API_TOKEN is too short" in result.issues
        assert "level_1: email is not a valid address" in result.issues


class TestDiagnoseLoginFailure:
    def _status(self, api_key_valid=True):
        valid = frozenset({AuthLevel.API_KEY}) if api_key_valid else frozenset()
        return AuthStatus(
            api_key_valid=api_key_valid,
            v1_session_valid=False,
            v2_session_valid=False,
            current_level=AuthLevel.API_KEY if api_key_valid else AuthLevel.NONE,
            valid_levels=valid,
            can_perform_user_actions=False,
            session_expiry=None,
        )

    def test_high_severity_adds_next_steps(self):
        result = diagnose_login_failure("Unauthorized (HTTP 401)", self._status())
        assert result.error.error_type == "UNAUTHORIZED"
        assert "UNAUTHORIZED" in result.summary
        assert len(result.next_steps) == 3

    def test_invalid_key_is_critical(self):
        result = diagnose_login_failure("Connection timeout", self._status(api_key_valid=False))
        assert "API key format is invalid" in result.critical_issues
        assert len(result.next_steps) == 1

    def test_incomplete_config_is_critical(self):
        result = diagnose_login_failure("login failed", cfg=AuthConfig())
        assert "Configuration is incomplete" in result.critical_issues

    def test_report(self):
        report = generate_diagnostic_report("Rate limit exceeded (HTTP 429)", self._status())
        assert report.startswith("Authentication diagnostic report\n")
        assert "Summary: Main cause of login failure: RATE_LIMITED (severity: medium)" in report
        assert "Recommended actions:\n  1. " in report
        assert report.endswith("=" * 32 + "\n")
