"""Advisory diagnostics for authentication failures.

Turns a login error message into a structured classification for
operators. Nothing here changes manager behavior.
"""

from __future__ import annotations

from dataclasses import dataclass

from kaito_auth.config import API_KEY_ENV, AuthConfig, LEVEL_1_ENV, LEVEL_2_ENV, environment_report
from kaito_auth.manager import AuthStatus


@dataclass(frozen=True)
class ErrorDiagnosis:
    error_type: str
    severity: str  # "low", "medium", "high"
    possible_causes: tuple[str, ...]
    recommended_actions: tuple[str, ...]


@dataclass(frozen=True)
class _Rule:
    keywords: tuple[str, ...]
    diagnosis: ErrorDiagnosis

    def matches(self, message: str) -> bool:
        return any(word in message for word in self.keywords)


_RULES: tuple[_Rule, ...] = (
    _Rule(("429", "rate limit", "too many requests"), ErrorDiagnosis(
        error_type="RATE_LIMITED",
        severity="medium",
        possible_causes=(
            "Too many requests in a short period",
            "Several processes sharing one API key",
        ),
        recommended_actions=(
            "Wait for the Retry-After period before logging in again",
            "Reduce request frequency or add backoff",
        ),
    )),
    _Rule(("authentication failed", "wrong password", "incorrect password"), ErrorDiagnosis(
        error_type="AUTHENTICATION_FAILED",
        severity="high",
        possible_causes=(
            "Wrong user name or password",
            "Account is locked",
            "Second-factor setup problem",
            "Wrong TOTP secret",
        ),
        recommended_actions=(
            "Try logging in on the platform website directly",
            "Re-check X_USERNAME, X_EMAIL and X_PASSWORD",
            "Check the account's two-factor settings",
            "Check whether the account is locked",
        ),
    )),
    _Rule(("login failed",), ErrorDiagnosis(
        error_type="LOGIN_FAILED",
        severity="high",
        possible_causes=(
            "Problem on the API provider's side",
            "Network connectivity problem",
            "API key problem",
            "Login endpoint changed",
        ),
        recommended_actions=(
            f"Re-check the {API_KEY_ENV} environment variable",
            "Check network connectivity",
            "Check the API provider's status page",
            "Check whether the API key has expired",
        ),
    )),
    _Rule(("timeout", "timed out", "network", "connection"), ErrorDiagnosis(
        error_type="NETWORK_ERROR",
        severity="medium",
        possible_causes=(
            "Unstable network connection",
            "Proxy misconfiguration",
            "Firewall blocking the request",
            "DNS problem",
        ),
        recommended_actions=(
            "Check the internet connection",
            "Check the proxy settings",
            "Check the firewall settings",
            "Retry after a short wait",
        ),
    )),
    _Rule(("unauthorized", "401"), ErrorDiagnosis(
        error_type="UNAUTHORIZED",
        severity="high",
        possible_causes=(
            "API key invalid or expired",
            "Session token problem",
            "Insufficient access rights",
        ),
        recommended_actions=(
            "Regenerate the API key",
            f"Update the {API_KEY_ENV} environment variable",
            "Check the account's permissions",
        ),
    )),
    _Rule(("forbidden", "403"), ErrorDiagnosis(
        error_type="FORBIDDEN",
        severity="medium",
        possible_causes=(
            "API key lacks the required permissions",
            "Account is restricted",
        ),
        recommended_actions=(
            "Check the API key's permission level",
            "Check the account status",
        ),
    )),
)

_UNKNOWN = ErrorDiagnosis(
    error_type="UNKNOWN_ERROR",
    severity="medium",
    possible_causes=("Unexpected error", "Problem on the provider's side", "Configuration problem"),
    recommended_actions=("Read the full error message", "Re-check the configuration", "Contact support"),
)


def analyze_auth_error(message: str) -> ErrorDiagnosis:
    """Classify an error message. Rules are checked in order."""
    text = (message or "").lower()
    for rule in _RULES:
        if rule.matches(text):
            return rule.diagnosis
    return _UNKNOWN


@dataclass(frozen=True)
class ConfigDiagnosis:
    status: str  # "complete", "partial", "missing"
    issues: tuple[str, ...]
    recommendations: tuple[str, ...]


def diagnose_configuration(cfg: AuthConfig) -> ConfigDiagnosis:
    issues: list[str] = []
    report = environment_report(cfg)
    for name in report.missing:
        issues.append(f"{name} is not set")

    if cfg.api_key and len(cfg.api_key) < 10:
        issues.append(f"{API_KEY_ENV} is too short")
    for label, creds in (("level_1", cfg.level_1), ("level_2", cfg.level_2)):
        if creds.is_complete():
            issues.extend(f"{label}: {problem}" for problem in creds.validate())

    expected = (API_KEY_ENV,) + LEVEL_1_ENV + LEVEL_2_ENV
    if not issues:
        status = "complete"
    elif not any(name in report.present for name in expected):
        status = "missing"
    else:
        status = "partial"

    recommendations: list[str] = []
    if report.missing:
        recommendations.append("Add the missing variables to the environment or the config file")
        recommendations.append("Example: X_USERNAME=your_username")
    if len(issues) > len(report.missing):
        recommendations.append("Re-check the configured values")
    return ConfigDiagnosis(status=status, issues=tuple(issues), recommendations=tuple(recommendations))


@dataclass(frozen=True)
class LoginFailureDiagnosis:
    summary: str
    error: ErrorDiagnosis
    critical_issues: tuple[str, ...] = ()
    action_plan: tuple[str, ...] = ()
    next_steps: tuple[str, ...] = ()


def diagnose_login_failure(
    message: str,
    status: AuthStatus | None = None,
    cfg: AuthConfig | None = None,
) -> LoginFailureDiagnosis:
    analysis = analyze_auth_error(message)
    critical: list[str] = []
    actions: list[str] = []
    next_steps: list[str] = []

    if cfg is not None:
        config_diagnosis = diagnose_configuration(cfg)
        if config_diagnosis.status != "complete":
            critical.append("Configuration is incomplete")
            actions.extend(config_diagnosis.recommendations)

    if status is not None and not status.api_key_valid:
        critical.append("API key format is invalid")
        actions.append(f"Check the {API_KEY_ENV} environment variable")

    critical.append(f"Authentication error: {analysis.error_type}")
    actions.extend(analysis.recommended_actions)

    if analysis.severity == "high":
        next_steps.append("Verify the environment variables and API key first")
        next_steps.append("Check that the account can log in on the platform website")
    next_steps.append("Contact support if the problem persists")

    return LoginFailureDiagnosis(
        summary=f"Main cause of login failure: {analysis.error_type} (severity: {analysis.severity})",
        error=analysis,
        critical_issues=tuple(critical),
        action_plan=tuple(actions),
        next_steps=tuple(next_steps),
    )


def generate_diagnostic_report(
    message: str,
    status: AuthStatus | None = None,
    cfg: AuthConfig | None = None,
) -> str:
    diagnosis = diagnose_login_failure(message, status, cfg)
    lines = ["Authentication diagnostic report", "=" * 32, "", f"Summary: {diagnosis.summary}", ""]

    for title, items in (
        ("Critical issues", diagnosis.critical_issues),
        ("Recommended actions", diagnosis.action_plan),
        ("Next steps", diagnosis.next_steps),
    ):
        if not items:
            continue
        lines.append(f"{title}:")
        lines.extend(f"  {i}. {item}" for i, item in enumerate(items, 1))
        lines.append("")

    lines.append("=" * 32)
    return "\n".join(lines) + "\n"
