"""
Unified Client Configuration
============================
Single source of truth for ALL client defaults.

The CLI, ``get_client()`` and ``BigcapitalClient`` helpers read from this
object. Environment variables and CLI flags populate it; nothing else in
the package hard-codes these values.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Mapping, Optional

from .auth.session import MAX_RETRIES, Credentials, resolve_credentials

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults: the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "base_url": "http://localhost:3000",
    "timeout_seconds": 30.0,          # per HTTP call
    "deadline_seconds": None,         # whole execute() incl. re-auth (None = unbounded)
    "max_retries": MAX_RETRIES,
    "state_path": "bigcapital_auth.json",
    "cookie_name": "bigcapital_auth",
    "cookie_max_age_days": 30,
    "persist": False,                 # read-only call sites by default
}

_ENV_VARS = {
    "base_url": "BIGCAPITAL_API_URL",
    "email": "BIGCAPITAL_EMAIL",
    "password": "BIGCAPITAL_PASSWORD",
    "timeout_seconds": "BIGCAPITAL_TIMEOUT",
    "state_path": "BIGCAPITAL_STATE_PATH",
}


@dataclass
class ClientRunConfig:
    """
    Configuration consumed by every client subsystem.

    Populate via:
      - ``ClientRunConfig()``                    → all defaults
      - ``ClientRunConfig(base_url="...")``      → override one value
      - ``ClientRunConfig.from_env()``           → from ``BIGCAPITAL_*`` vars
      - ``ClientRunConfig.from_cli_args(ns)``    → from argparse Namespace
    """

    # ---- Endpoint ----
    base_url: str = _DEFAULTS["base_url"]

    # ---- Default credentials (never logged) ----
    email: str = ""
    password: str = field(default="", repr=False)

    # ---- Limits ----
    timeout_seconds: float = _DEFAULTS["timeout_seconds"]
    deadline_seconds: Optional[float] = _DEFAULTS["deadline_seconds"]
    max_retries: int = _DEFAULTS["max_retries"]

    # ---- Credential storage ----
    state_path: str = _DEFAULTS["state_path"]
    cookie_name: str = _DEFAULTS["cookie_name"]
    cookie_max_age_days: int = _DEFAULTS["cookie_max_age_days"]
    persist: bool = _DEFAULTS["persist"]

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientRunConfig":
        """Build from ``BIGCAPITAL_*`` environment variables."""
        env = os.environ if environ is None else environ
        kwargs: Dict[str, object] = {}
        for attr, var in _ENV_VARS.items():
            value = env.get(var)
            if not value:
                continue
            if attr == "timeout_seconds":
                try:
                    kwargs[attr] = float(value)
                except ValueError:
                    logger.warning(f"[CONFIG] Ignoring non-numeric {var}={value!r}")
                continue
            kwargs[attr] = value
        cfg = cls(**kwargs)
        cfg.validate()
        return cfg

    @classmethod
    def from_cli_args(cls, ns, environ: Optional[Mapping[str, str]] = None) -> "ClientRunConfig":
        """Build from an argparse Namespace, falling back to the environment."""
        cfg = cls.from_env(environ)
        if getattr(ns, "base_url", None):
            cfg.base_url = ns.base_url
        if getattr(ns, "email", None):
            cfg.email = ns.email
        if getattr(ns, "timeout", None) is not None:
            cfg.timeout_seconds = ns.timeout
        if getattr(ns, "deadline", None) is not None:
            cfg.deadline_seconds = ns.deadline
        if getattr(ns, "state_file", None):
            cfg.state_path = ns.state_file
        cfg.validate()
        return cfg

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def credentials(self) -> Credentials:
        return resolve_credentials(Credentials(email=self.email, password=self.password))

    @property
    def cookie_max_age(self) -> timedelta:
        return timedelta(days=self.cookie_max_age_days)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Clamp invalid values to their defaults, warning for each."""
        self.base_url = self.base_url.rstrip("/")
        if not self.base_url.startswith(("http://", "https://")):
            logger.warning(f"[CONFIG] base_url {self.base_url!r} has no http(s) scheme")
        if self.timeout_seconds <= 0:
            logger.warning(f"[CONFIG] timeout_seconds={self.timeout_seconds} → default")
            self.timeout_seconds = _DEFAULTS["timeout_seconds"]
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            logger.warning(f"[CONFIG] deadline_seconds={self.deadline_seconds} → unbounded")
            self.deadline_seconds = None
        if self.max_retries < 1:
            logger.warning(f"[CONFIG] max_retries={self.max_retries} → {MAX_RETRIES}")
            self.max_retries = MAX_RETRIES
        if self.cookie_max_age_days < 1:
            self.cookie_max_age_days = _DEFAULTS["cookie_max_age_days"]

    def summary(self) -> str:
        """Human-readable summary (never includes the password)."""
        return (
            f"base_url={self.base_url} "
            f"email={self.email or '(env)'} "
            f"timeout={self.timeout_seconds}s "
            f"deadline={self.deadline_seconds or 'none'} "
            f"max_retries={self.max_retries} "
            f"state={self.state_path}"
        )
