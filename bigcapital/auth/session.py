"""
Session Model
=============
In-memory authenticated identity plus its persisted counterpart.

    - ``Session``          — token + tenant, cached credentials, retry counter
    - ``CredentialRecord`` — what the credential store keeps (never the password)
    - ``Credentials``      — email/password container resolved from env
    - ``AuthState``        — re-authentication state derived from ``retry_count``

Security:
    - ``Session.password`` is held in memory only and hidden from ``repr``.
    - ``CredentialRecord`` has no password field at all.
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Optional, Union

from ..errors import MalformedCredentialRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_RETRIES = 3
"""Maximum re-authentication attempts per session before it is declared invalid."""

PLACEHOLDER_EMAIL = "your_email@example.com"
"""Value shipped in sample ``.env`` files; treated as unset."""

TenantId = Union[str, int]


class AuthState(Enum):
    """Where a session stands in the re-authentication protocol."""

    FRESH = "fresh"
    RETRYING = "retrying"
    EXHAUSTED = "exhausted"


# ---------------------------------------------------------------------------
# Credentials container
# ---------------------------------------------------------------------------

@dataclass
class Credentials:
    """Plain credential container, resolved once and used for (re-)login."""
    email: str = ""
    password: str = field(default="", repr=False)

    @property
    def is_complete(self) -> bool:
        return bool(self.email and self.password and self.email != PLACEHOLDER_EMAIL)


def resolve_credentials(
    creds: Optional[Credentials] = None,
    *,
    env_prefixes: Iterable[str] = ("BIGCAPITAL",),
    environ: Optional[Dict[str, str]] = None,
) -> Credentials:
    """Build ``Credentials`` from an existing object and environment variables.

    Resolution order:
        1. Existing *creds* object (if provided and complete) → use as-is
        2. Environment variables (``{PREFIX}_EMAIL``, ``{PREFIX}_PASSWORD``)

    Returns:
        A new ``Credentials`` instance (may still be incomplete).
    """
    env = os.environ if environ is None else environ
    resolved = Credentials(
        email=creds.email if creds else "",
        password=creds.password if creds else "",
    )
    if resolved.email == PLACEHOLDER_EMAIL:
        resolved.email = ""

    if resolved.is_complete:
        return resolved

    for prefix in env_prefixes:
        if not resolved.email:
            email = env.get(f"{prefix}_EMAIL", "")
            resolved.email = "" if email == PLACEHOLDER_EMAIL else email
        if not resolved.password:
            resolved.password = env.get(f"{prefix}_PASSWORD", "")

    if resolved.is_complete:
        logger.debug("[SESSION] Credentials resolved from environment")
    return resolved


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

@dataclass
class Session:
    """The authenticated identity stamped on every outbound request.

    Created by ``SessionFactory`` (fresh login or store restoration) and
    mutated in place by ``RequestExecutor`` during re-authentication.
    """

    token: str
    tenant_id: Optional[TenantId] = None
    organization_id: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    retry_count: int = 0
    max_retries: int = field(default=MAX_RETRIES, repr=False)

    def __post_init__(self) -> None:
        if not self.token:
            raise ValueError("Session token must be a non-empty string")

    @property
    def has_organization(self) -> bool:
        return bool(self.organization_id)

    @property
    def credentials(self) -> Credentials:
        return Credentials(email=self.email or "", password=self.password or "")

    @property
    def auth_state(self) -> AuthState:
        if self.retry_count <= 0:
            return AuthState.FRESH
        if self.retry_count < self.max_retries:
            return AuthState.RETRYING
        return AuthState.EXHAUSTED

    def adopt(self, other: "Session") -> None:
        """Take over token and tenant fields from a freshly logged-in session."""
        self.token = other.token
        self.tenant_id = other.tenant_id
        self.organization_id = other.organization_id
        if other.email:
            self.email = other.email
        if other.password:
            self.password = other.password

    def reset_retries(self) -> None:
        self.retry_count = 0


# ---------------------------------------------------------------------------
# Persisted record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CredentialRecord:
    """Externally stored counterpart of a ``Session``.

    ``timestamp`` is the write time in milliseconds since the epoch. It is
    informational only; expiry belongs to the storage layer.
    """

    token: str
    tenant_id: Optional[TenantId] = None
    organization_id: Optional[str] = None
    email: Optional[str] = None
    timestamp: int = 0

    @classmethod
    def from_session(cls, session: Session) -> "CredentialRecord":
        return cls(
            token=session.token,
            tenant_id=session.tenant_id,
            organization_id=session.organization_id,
            email=session.email,
        )

    def to_session(self) -> Session:
        return Session(
            token=self.token,
            tenant_id=self.tenant_id,
            organization_id=self.organization_id,
            email=self.email,
        )

    def with_timestamp(self, timestamp: int) -> "CredentialRecord":
        return CredentialRecord(
            token=self.token,
            tenant_id=self.tenant_id,
            organization_id=self.organization_id,
            email=self.email,
            timestamp=timestamp,
        )

    def to_json(self) -> str:
        data = {"token": self.token, "timestamp": self.timestamp}
        if self.tenant_id is not None:
            data["tenantId"] = self.tenant_id
        if self.organization_id is not None:
            data["organizationId"] = self.organization_id
        if self.email is not None:
            data["email"] = self.email
        return json.dumps(data)

    @classmethod
    def from_json(cls, text: str) -> "CredentialRecord":
        """Parse a stored record.

        Raises:
            MalformedCredentialRecord: If *text* is not a JSON object with a
                non-empty string ``token``.
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as exc:
            raise MalformedCredentialRecord(f"Record is not valid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise MalformedCredentialRecord("Record is not a JSON object")

        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise MalformedCredentialRecord("Record has no token")

        tenant_id = data.get("tenantId")
        if tenant_id is not None and not isinstance(tenant_id, (str, int)):
            raise MalformedCredentialRecord("Record tenantId has an unexpected type")

        organization_id = data.get("organizationId")
        if organization_id is not None:
            organization_id = str(organization_id)

        email = data.get("email")
        if email is not None and not isinstance(email, str):
            raise MalformedCredentialRecord("Record email is not a string")

        timestamp = data.get("timestamp") or 0
        if not isinstance(timestamp, (int, float)) or not math.isfinite(timestamp):
            raise MalformedCredentialRecord("Record timestamp is not a finite number")

        return cls(
            token=token,
            tenant_id=tenant_id,
            organization_id=organization_id,
            email=email,
            timestamp=int(timestamp),
        )
