"""
Tests for the credential stores (memory, file, cookie).

Covers:
  1. save → load round trip (only the timestamp changes)
  2. malformed / missing records read as absent
  3. soft-fail writes in read-only contexts and on OS errors
  4. storage-layer expiry (file mtime, cookie expires)
"""

import dataclasses
import os
import time
from datetime import timedelta

import pytest
from requests.cookies import RequestsCookieJar, create_cookie

from bigcapital.auth.credential_store import (
    DEFAULT_RECORD_NAME,
    CookieCredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
)
from bigcapital.auth.session import CredentialRecord

RECORD = CredentialRecord(token="T1", tenant_id=7, organization_id="org-7", email="a@x.com")


def _without_timestamp(record):
    return dataclasses.replace(record, timestamp=0)


@pytest.fixture(params=["memory", "file", "cookie"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return MemoryCredentialStore()
    if request.param == "file":
        return FileCredentialStore(str(tmp_path / "auth.json"))
    return CookieCredentialStore(RequestsCookieJar())


# ====================================================================
# Behaviour shared by every backend
# ====================================================================

class TestStoreContract:

    def test_load_empty_is_none(self, any_store):
        assert any_store.load() is None

    def test_round_trip_refreshes_timestamp(self, any_store):
        before = int(time.time() * 1000)
        saved = any_store.save(RECORD)
        loaded = any_store.load()
        assert loaded == saved
        assert _without_timestamp(loaded) == RECORD
        assert loaded.timestamp >= before

    def test_save_overwrites(self, any_store):
        any_store.save(RECORD)
        any_store.save(dataclasses.replace(RECORD, token="T2"))
        assert any_store.load().token == "T2"

    def test_timestamps_strictly_increase(self, any_store):
        first = any_store.save(RECORD)
        second = any_store.save(RECORD)
        assert second.timestamp > first.timestamp

    def test_clear(self, any_store):
        any_store.save(RECORD)
        any_store.clear()
        assert any_store.load() is None

    def test_clear_when_empty_is_harmless(self, any_store):
        any_store.clear()
        assert any_store.load() is None

    def test_lifecycle(self, any_store):
        assert not any_store.is_open
        with any_store as s:
            assert s.is_open
        assert not any_store.is_open


# ====================================================================
# Memory backend
# ====================================================================

class TestMemoryStore:

    def test_non_json_record_is_absent(self):
        store = MemoryCredentialStore("definitely { not json")
        assert store.load() is None

    @pytest.mark.parametrize("text", [
        '{"token": "T1", "timestamp": NaN}',
        '{"token": "T1", "timestamp": Infinity}',
        '{"token": "T1", "timestamp": 1e400}',
    ])
    def test_non_finite_timestamp_is_absent(self, text):
        assert MemoryCredentialStore(text).load() is None

    def test_record_without_token_is_absent(self):
        store = MemoryCredentialStore('{"email": "a@x.com"}')
        assert store.load() is None

    def test_read_only_save_is_soft(self):
        store = MemoryCredentialStore(read_only=True)
        assert store.save(RECORD) is None
        assert store.raw is None

    def test_read_only_clear_is_soft(self):
        store = MemoryCredentialStore(RECORD.to_json(), read_only=True)
        store.clear()
        assert store.load() is not None


# ====================================================================
# File backend
# ====================================================================

class TestFileStore:

    def test_writes_json_file(self, tmp_path):
        path = tmp_path / "nested" / "auth.json"
        store = FileCredentialStore(str(path))
        store.save(RECORD)
        assert path.exists()
        assert '"token": "T1"' in path.read_text(encoding="utf-8")

    def test_expired_file_is_absent(self, tmp_path):
        path = tmp_path / "auth.json"
        store = FileCredentialStore(str(path), max_age=timedelta(days=30))
        store.save(RECORD)
        old = time.time() - 31 * 86400
        os.utime(path, (old, old))
        assert store.load() is None

    def test_write_error_is_soft(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")
        store = FileCredentialStore(str(blocker / "auth.json"))
        assert store.save(RECORD) is None
        assert store.load() is None

    def test_corrupt_file_is_absent(self, tmp_path):
        path = tmp_path / "auth.json"
        path.write_text("{truncated", encoding="utf-8")
        assert FileCredentialStore(str(path)).load() is None

    def test_undecodable_file_is_absent(self, tmp_path):
        path = tmp_path / "auth.json"
        path.write_bytes(b'{"token": "\xff\xfe"}')
        assert FileCredentialStore(str(path)).load() is None


# ====================================================================
# Cookie backend
# ====================================================================

class TestCookieStore:

    def test_cookie_attributes(self):
        jar = RequestsCookieJar()
        store = CookieCredentialStore(jar, secure=True)
        store.save(RECORD)
        cookie = next(iter(jar))
        assert cookie.name == DEFAULT_RECORD_NAME
        assert cookie.path == "/"
        assert cookie.secure
        assert cookie.has_nonstandard_attr("HttpOnly")
        # roughly 30 days ahead
        assert cookie.expires - time.time() > 29 * 86400

    def test_expired_cookie_is_absent(self):
        jar = RequestsCookieJar()
        jar.set_cookie(create_cookie(
            DEFAULT_RECORD_NAME, RECORD.to_json(), path="/", expires=int(time.time()) - 10,
        ))
        assert CookieCredentialStore(jar).load() is None

    def test_reads_cookie_set_by_someone_else(self):
        jar = RequestsCookieJar()
        jar.set(DEFAULT_RECORD_NAME, RECORD.to_json(), path="/")
        loaded = CookieCredentialStore(jar).load()
        assert loaded.token == "T1"

    def test_read_only_context(self):
        jar = RequestsCookieJar()
        store = CookieCredentialStore(jar, read_only=True)
        assert store.save(RECORD) is None
        assert len(jar) == 0

    def test_custom_name(self):
        jar = RequestsCookieJar()
        CookieCredentialStore(jar, name="books_auth").save(RECORD)
        assert "books_auth" in jar
