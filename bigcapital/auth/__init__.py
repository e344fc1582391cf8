"""
Authentication Module
=====================
Session establishment and persistence for the Bigcapital client.

Architecture:
    - ``Session``          — authenticated identity (token + tenant)
    - ``CredentialRecord`` — persisted counterpart of a session
    - ``Credentials``      — email/password container (resolved from env)
    - ``CredentialStore``  — persistence boundary (memory / file / cookie)
    - ``SessionFactory``   — fresh login or restoration from a store

Usage::

    from bigcapital.auth import FileCredentialStore, SessionFactory

    factory = SessionFactory(base_url, store=FileCredentialStore())
    session = await factory.restore() or await factory.login(email, password)
"""

from .session import (
    MAX_RETRIES,
    AuthState,
    CredentialRecord,
    Credentials,
    Session,
    resolve_credentials,
)
from .credential_store import (
    CookieCredentialStore,
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
)
from .session_factory import SessionFactory

__all__ = [
    "MAX_RETRIES",
    "AuthState",
    "CredentialRecord",
    "Credentials",
    "Session",
    "resolve_credentials",
    "CredentialStore",
    "MemoryCredentialStore",
    "FileCredentialStore",
    "CookieCredentialStore",
    "SessionFactory",
]
