"""
Session Factory
===============
Establishes a ``Session`` by credential login, or restores one from a
``CredentialStore``.

Splitting "may persist" from "may not" lets read-only call sites obtain a
session without attempting writes that would fail in that context, while
mutation call sites opt into persistence.

Usage::

    factory = SessionFactory(base_url, store=FileCredentialStore())
    session = await factory.restore()
    if session is None:
        session = await factory.login(email, password, persist=True)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from ..errors import AuthenticationFailed, ConfigurationError
from ..monitor import RequestMonitor
from ..transport import HttpTransport, OutboundRequest
from .credential_store import CredentialStore, MemoryCredentialStore
from .session import CredentialRecord, Credentials, Session, resolve_credentials

logger = logging.getLogger(__name__)


LOGIN_ENDPOINT = "/api/auth/login"

# The Bigcapital login validator expects this (misspelled) field name.
LOGIN_CREDENTIAL_FIELD = "crediential"


class SessionFactory:
    """Creates sessions for one API base URL and one credential store."""

    def __init__(
        self,
        base_url: str,
        store: Optional[CredentialStore] = None,
        *,
        transport: Optional[HttpTransport] = None,
        monitor: Optional[RequestMonitor] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.store = store if store is not None else MemoryCredentialStore()
        self.transport = transport or HttpTransport(self.base_url)
        self.monitor = monitor

    # ── Public API ────────────────────────────────────────────────

    async def login(self, email: str, password: str, persist: bool = True) -> Session:
        """Authenticate against ``/api/auth/login``.

        Args:
            email:    Account email (sent as the ``crediential`` field).
            password: Account password.
            persist:  Save the new session to the credential store. A failed
                      save never fails the login.

        Returns:
            A ``Session`` carrying the token, tenant ids and the credentials
            used, so it can re-authenticate itself later.

        Raises:
            AuthenticationFailed: On a non-2xx response or a response without
                a token.
            NetworkError: If the login request never got a response.
        """
        request = OutboundRequest(
            method="POST",
            endpoint=LOGIN_ENDPOINT,
            body={LOGIN_CREDENTIAL_FIELD: email, "password": password},
            headers={"Content-Type": "application/json"},
            timeout=self.transport.timeout,
        )
        response = await self.transport.send(request)

        if not response.ok:
            logger.warning(f"[SESSION] Login rejected with HTTP {response.status_code}")
            raise AuthenticationFailed(
                f"Login failed: {response.text}",
                status=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise AuthenticationFailed(
                "Login failed: response was not JSON",
                status=response.status_code,
                body=response.text,
            ) from exc

        session = self._session_from_login(data, email, password)
        if session is None:
            raise AuthenticationFailed(
                "Login failed: response carried no token",
                status=response.status_code,
                body=response.text,
            )

        logger.info(
            f"[SESSION] Logged in (tenant={session.tenant_id}, "
            f"organization={session.organization_id})"
        )
        if self.monitor:
            await self.monitor.record_login()

        if persist:
            self.store.save(CredentialRecord.from_session(session))

        return session

    async def restore(self) -> Optional[Session]:
        """Rebuild a session from the credential store.

        Returns:
            The restored session, or ``None`` when no usable record exists
            (the caller should fall back to ``login``).
        """
        record = self.store.load()
        if record is None:
            return None
        logger.debug("[SESSION] Session restored from credential store")
        return record.to_session()

    async def get_session(
        self,
        credentials: Optional[Credentials] = None,
        *,
        persist: bool = False,
    ) -> Session:
        """Restore a stored session, else log in with default credentials.

        Raises:
            ConfigurationError: If no session is stored and no complete
                credentials can be resolved.
        """
        session = await self.restore()
        if session is not None:
            return session

        creds = resolve_credentials(credentials)
        if not creds.is_complete:
            raise ConfigurationError(
                "Please configure BIGCAPITAL_EMAIL and BIGCAPITAL_PASSWORD "
                "(environment or .env file)"
            )
        return await self.login(creds.email, creds.password, persist=persist)

    # ── Internal ──────────────────────────────────────────────────

    @staticmethod
    def _session_from_login(
        data: Any, email: str, password: str
    ) -> Optional[Session]:
        if not isinstance(data, dict):
            return None
        token = data.get("token")
        if not isinstance(token, str) or not token:
            return None

        tenant: Dict[str, Any] = data.get("tenant") or {}
        if not isinstance(tenant, dict):
            tenant = {}
        tenant_id = tenant.get("id") or data.get("tenant_id")
        organization_id = tenant.get("organizationId") or tenant.get("organization_id")

        return Session(
            token=token,
            tenant_id=tenant_id,
            organization_id=str(organization_id) if organization_id else None,
            email=email,
            password=password,
        )


def describe_record(record: Optional[CredentialRecord]) -> str:
    """One-line, token-free description of a stored record (CLI ``status``)."""
    if record is None:
        return "No stored session"
    return json.dumps({
        "email": record.email,
        "tenantId": record.tenant_id,
        "organizationId": record.organization_id,
        "timestamp": record.timestamp,
    })
