"""
Credential Store
================
Persists the authenticated session between calls and runs.

Responsibilities:
    1. Save a ``CredentialRecord`` after login (stamped with write time)
    2. Load it back for session restoration
    3. Clear it when the account is declared invalid
    4. Swallow write failures in contexts that cannot write (read-only)

A store never raises for a missing or malformed record — ``load()``
returns ``None`` and the caller falls back to a fresh login.

Backends:
    - ``MemoryCredentialStore`` — in-process slot (tests, scripts)
    - ``FileCredentialStore``   — JSON file on disk (CLI default)
    - ``CookieCredentialStore`` — cookie in a ``requests`` cookie jar

Usage::

    from bigcapital.auth.credential_store import FileCredentialStore

    with FileCredentialStore("bigcapital_auth.json") as store:
        record = store.load()
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from pathlib import Path
from typing import Optional

from requests.cookies import RequestsCookieJar, create_cookie

from ..errors import MalformedCredentialRecord, StoreWriteError
from .session import CredentialRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default settings
# ---------------------------------------------------------------------------

DEFAULT_RECORD_NAME = "bigcapital_auth"
DEFAULT_STATE_PATH = "bigcapital_auth.json"
DEFAULT_MAX_AGE = timedelta(days=30)


def _now_ms() -> int:
    return int(time.time() * 1000)


class CredentialStore(ABC):
    """Abstract persistence boundary for one credential record.

    Lifecycle::

        store.init()        # or ``with store:``
        store.save(record) / store.load() / store.clear()
        store.teardown()

    Subclasses implement the raw text operations; this base class owns
    serialization, timestamping, locking and the soft-fail policy.
    """

    def __init__(self, *, read_only: bool = False):
        self.read_only = read_only
        self._lock = threading.Lock()
        self._last_timestamp = 0
        self._open = False

    # ── Lifecycle ─────────────────────────────────────────────────

    def init(self) -> None:
        self._open = True

    def teardown(self) -> None:
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def __enter__(self) -> "CredentialStore":
        self.init()
        return self

    def __exit__(self, *args: object) -> None:
        self.teardown()

    # ── Public API ────────────────────────────────────────────────

    def save(self, record: CredentialRecord) -> Optional[CredentialRecord]:
        """Write *record*, overwriting any previous one.

        Returns:
            The record as stored (with a fresh ``timestamp``), or ``None``
            if the environment refused the write.
        """
        with self._lock:
            if self.read_only:
                logger.info("[STORE] Read-only context, credential record not saved")
                return None

            stamped = record.with_timestamp(self._next_timestamp())
            try:
                self._write_raw(stamped.to_json())
            except (OSError, StoreWriteError) as exc:
                logger.warning(f"[STORE] Could not save credential record: {exc}")
                return None

            logger.debug(f"[STORE] Credential record saved ({type(self).__name__})")
            return stamped

    def load(self) -> Optional[CredentialRecord]:
        """Return the stored record, or ``None`` if absent or unreadable."""
        with self._lock:
            try:
                raw = self._read_raw()
            except (OSError, ValueError) as exc:
                logger.warning(f"[STORE] Could not read credential record: {exc}")
                return None

            if raw is None:
                logger.debug("[STORE] No credential record found")
                return None

            try:
                record = CredentialRecord.from_json(raw)
            except MalformedCredentialRecord as exc:
                logger.warning(f"[STORE] Ignoring malformed credential record: {exc}")
                return None

            self._last_timestamp = max(self._last_timestamp, record.timestamp)
            return record

    def clear(self) -> None:
        """Delete the stored record (soft-fails like ``save``)."""
        with self._lock:
            if self.read_only:
                logger.info("[STORE] Read-only context, credential record not cleared")
                return
            try:
                self._delete_raw()
            except (OSError, StoreWriteError) as exc:
                logger.warning(f"[STORE] Could not clear credential record: {exc}")
                return
            logger.info("[STORE] Credential record cleared")

    # ── Internal ──────────────────────────────────────────────────

    def _next_timestamp(self) -> int:
        # Strictly increasing per store so the last writer always wins.
        stamp = max(_now_ms(), self._last_timestamp + 1)
        self._last_timestamp = stamp
        return stamp

    @abstractmethod
    def _read_raw(self) -> Optional[str]:
        """Return the stored text, or ``None`` if nothing is stored."""
        ...

    @abstractmethod
    def _write_raw(self, text: str) -> None:
        ...

    @abstractmethod
    def _delete_raw(self) -> None:
        ...


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class MemoryCredentialStore(CredentialStore):
    """Keeps the record text in memory for the lifetime of the object."""

    def __init__(self, initial: Optional[str] = None, *, read_only: bool = False):
        super().__init__(read_only=read_only)
        self._text = initial

    @property
    def raw(self) -> Optional[str]:
        return self._text

    def _read_raw(self) -> Optional[str]:
        return self._text

    def _write_raw(self, text: str) -> None:
        self._text = text

    def _delete_raw(self) -> None:
        self._text = None


class FileCredentialStore(CredentialStore):
    """Stores the record as a JSON file.

    Files older than ``max_age`` (by modification time) are treated as
    absent, which gives the file backend the same multi-week expiry the
    cookie backend gets from its jar.
    """

    def __init__(
        self,
        path: str = DEFAULT_STATE_PATH,
        *,
        max_age: timedelta = DEFAULT_MAX_AGE,
        read_only: bool = False,
    ):
        super().__init__(read_only=read_only)
        self.path = Path(path)
        self.max_age = max_age

    def _read_raw(self) -> Optional[str]:
        if not self.path.exists():
            return None

        age_seconds = time.time() - self.path.stat().st_mtime
        if age_seconds > self.max_age.total_seconds():
            logger.info(
                f"[STORE] Credential file is {age_seconds / 86400:.1f} days old, expired"
            )
            return None

        return self.path.read_text(encoding="utf-8")

    def _write_raw(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(text, encoding="utf-8")

    def _delete_raw(self) -> None:
        self.path.unlink(missing_ok=True)


class CookieCredentialStore(CredentialStore):
    """Stores the record as a single HttpOnly cookie in a cookie jar.

    Expiry is enforced by the jar: the cookie is written with an absolute
    ``expires`` and expired cookies are purged before every read.
    """

    def __init__(
        self,
        jar: Optional[RequestsCookieJar] = None,
        *,
        name: str = DEFAULT_RECORD_NAME,
        max_age: timedelta = DEFAULT_MAX_AGE,
        secure: bool = False,
        domain: str = "",
        read_only: bool = False,
    ):
        super().__init__(read_only=read_only)
        self.jar = jar if jar is not None else RequestsCookieJar()
        self.name = name
        self.max_age = max_age
        self.secure = secure
        self.domain = domain

    def _read_raw(self) -> Optional[str]:
        self.jar.clear_expired_cookies()
        return self.jar.get(self.name, domain=self.domain or None, path="/")

    def _write_raw(self, text: str) -> None:
        cookie = create_cookie(
            self.name,
            text,
            domain=self.domain,
            path="/",
            secure=self.secure,
            expires=int(time.time() + self.max_age.total_seconds()),
            rest={"HttpOnly": None, "SameSite": "Lax"},
        )
        self.jar.set_cookie(cookie)

    def _delete_raw(self) -> None:
        try:
            self.jar.clear(self.domain, "/", self.name)
        except KeyError:
            pass
