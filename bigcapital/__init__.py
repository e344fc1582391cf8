"""
Bigcapital Client Package
An async client for the Bigcapital accounting API with persisted sessions
and transparent re-authentication on 401 responses.

CLI Usage:
    python -m bigcapital <command> [options]

    Commands:
        login       Log in and store the session
        logout      Forget the stored session
        status      Show the stored session (without its token)
        request     Send an authenticated request and print the JSON reply
        expenses    List a page of expenses
"""

from .auth import (
    MAX_RETRIES,
    AuthState,
    CookieCredentialStore,
    CredentialRecord,
    CredentialStore,
    Credentials,
    FileCredentialStore,
    MemoryCredentialStore,
    Session,
    SessionFactory,
)
from .client import BigcapitalClient, build_executor, build_store, get_client
from .errors import (
    AccountInvalid,
    ApiError,
    AuthenticationFailed,
    BigcapitalError,
    ConfigurationError,
    NetworkError,
    RequestTimeout,
)
from .executor import RequestExecutor
from .monitor import ClientMetrics, RequestMonitor
from .run_config import ClientRunConfig
from .transport import HttpTransport, OutboundRequest

__all__ = [
    # Client
    'BigcapitalClient',
    'get_client',
    'build_executor',
    'build_store',
    'ClientRunConfig',
    # Core
    'RequestExecutor',
    'HttpTransport',
    'OutboundRequest',
    'RequestMonitor',
    'ClientMetrics',
    # Auth
    'Session',
    'SessionFactory',
    'Credentials',
    'CredentialRecord',
    'CredentialStore',
    'MemoryCredentialStore',
    'FileCredentialStore',
    'CookieCredentialStore',
    'AuthState',
    'MAX_RETRIES',
    # Errors
    'BigcapitalError',
    'AuthenticationFailed',
    'AccountInvalid',
    'ApiError',
    'NetworkError',
    'RequestTimeout',
    'ConfigurationError',
]

__version__ = '1.0.0'
