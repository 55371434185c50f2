"""kaito-auth: tiered authentication for the TwitterAPI.io platform API.

API key for reads, two independent login sessions for writes, and a
static endpoint policy deciding which one a request needs.
"""

__version__ = "0.1.0"

from kaito_auth.config import AuthConfig, AuthConfigurationError, load_config
from kaito_auth.credentials import CredentialsBundle, Level1Credentials, Level2Credentials
from kaito_auth.levels import AuthLevel
from kaito_auth.manager import AuthManager, AuthStatus, DebugInfo
from kaito_auth.policy import EndpointPolicy
from kaito_auth.results import (
    ConnectionReport,
    ConnectionResult,
    FailureKind,
    LoginFailure,
    LoginResult,
    LoginSuccess,
)

__all__ = [
    "AuthConfig",
    "AuthConfigurationError",
    "load_config",
    "CredentialsBundle",
    "Level1Credentials",
    "Level2Credentials",
    "AuthLevel",
    "AuthManager",
    "AuthStatus",
    "DebugInfo",
    "EndpointPolicy",
    "ConnectionReport",
    "ConnectionResult",
    "FailureKind",
    "LoginFailure",
    "LoginResult",
    "LoginSuccess",
]
