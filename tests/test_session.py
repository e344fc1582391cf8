"""
Tests for the session model: Session, CredentialRecord, Credentials.
"""

import json

import pytest

from bigcapital.auth.session import (
    MAX_RETRIES,
    PLACEHOLDER_EMAIL,
    AuthState,
    CredentialRecord,
    Credentials,
    Session,
    resolve_credentials,
)
from bigcapital.errors import MalformedCredentialRecord


# ====================================================================
# Session
# ====================================================================

class TestSession:

    def test_empty_token_rejected(self):
        with pytest.raises(ValueError):
            Session(token="")

    def test_auth_state_follows_retry_count(self):
        s = Session(token="T1")
        assert s.auth_state is AuthState.FRESH
        s.retry_count = 1
        assert s.auth_state is AuthState.RETRYING
        s.retry_count = MAX_RETRIES - 1
        assert s.auth_state is AuthState.RETRYING
        s.retry_count = MAX_RETRIES
        assert s.auth_state is AuthState.EXHAUSTED

    def test_auth_state_uses_session_budget(self):
        s = Session(token="T1", max_retries=1, retry_count=1)
        assert s.auth_state is AuthState.EXHAUSTED
        s.max_retries = 5
        assert s.auth_state is AuthState.RETRYING

    def test_reset_retries(self):
        s = Session(token="T1", retry_count=2)
        s.reset_retries()
        assert s.retry_count == 0
        assert s.auth_state is AuthState.FRESH

    def test_has_organization(self):
        assert Session(token="T", organization_id="org-1").has_organization
        assert not Session(token="T", organization_id="").has_organization
        assert not Session(token="T").has_organization

    def test_adopt_replaces_token_and_tenant(self):
        s = Session(token="T1", tenant_id=1, organization_id="org-1",
                    email="a@x.com", password="pw", retry_count=2)
        s.adopt(Session(token="T2", tenant_id=2, organization_id="org-2"))
        assert (s.token, s.tenant_id, s.organization_id) == ("T2", 2, "org-2")
        # cached credentials survive when the fresh session has none
        assert s.email == "a@x.com"
        assert s.password == "pw"
        # the retry counter belongs to the executor, not to adopt()
        assert s.retry_count == 2

    def test_password_hidden_from_repr(self):
        s = Session(token="T1", email="a@x.com", password="hunter2")
        assert "hunter2" not in repr(s)


# ====================================================================
# CredentialRecord
# ====================================================================

class TestCredentialRecord:

    def test_json_uses_wire_keys(self):
        record = CredentialRecord(token="T1", tenant_id=7, organization_id="org-7",
                                  email="a@x.com", timestamp=123)
        data = json.loads(record.to_json())
        assert data == {"token": "T1", "tenantId": 7, "organizationId": "org-7",
                        "email": "a@x.com", "timestamp": 123}

    def test_json_round_trip(self):
        record = CredentialRecord(token="T1", tenant_id="t-1", email="a@x.com", timestamp=5)
        assert CredentialRecord.from_json(record.to_json()) == record

    def test_never_carries_password(self):
        s = Session(token="T1", email="a@x.com", password="hunter2")
        text = CredentialRecord.from_session(s).to_json()
        assert "hunter2" not in text
        assert "password" not in text

    def test_to_session_has_no_password(self):
        s = CredentialRecord(token="T1", email="a@x.com").to_session()
        assert s.password is None
        assert s.email == "a@x.com"
        assert s.retry_count == 0

    @pytest.mark.parametrize("text", [
        "not json at all",
        "[1, 2, 3]",
        '"just a string"',
        "{}",
        '{"token": ""}',
        '{"token": 42}',
        '{"token": "T", "email": 5}',
        '{"token": "T", "timestamp": "yesterday"}',
        '{"token": "T", "timestamp": NaN}',
        '{"token": "T", "timestamp": 1e400}',
    ])
    def test_malformed_records_raise(self, text):
        with pytest.raises(MalformedCredentialRecord):
            CredentialRecord.from_json(text)

    def test_missing_optional_fields(self):
        record = CredentialRecord.from_json('{"token": "T1"}')
        assert record.tenant_id is None
        assert record.organization_id is None
        assert record.email is None
        assert record.timestamp == 0


# ====================================================================
# Credentials
# ====================================================================

class TestCredentials:

    def test_complete_object_used_as_is(self):
        creds = resolve_credentials(
            Credentials("me@x.com", "pw"),
            environ={"BIGCAPITAL_EMAIL": "env@x.com", "BIGCAPITAL_PASSWORD": "envpw"},
        )
        assert (creds.email, creds.password) == ("me@x.com", "pw")

    def test_missing_fields_from_environment(self):
        creds = resolve_credentials(
            Credentials(email="me@x.com"),
            environ={"BIGCAPITAL_EMAIL": "env@x.com", "BIGCAPITAL_PASSWORD": "envpw"},
        )
        assert (creds.email, creds.password) == ("me@x.com", "envpw")

    def test_placeholder_email_counts_as_unset(self):
        creds = resolve_credentials(
            environ={"BIGCAPITAL_EMAIL": PLACEHOLDER_EMAIL, "BIGCAPITAL_PASSWORD": "pw"},
        )
        assert not creds.is_complete
        assert creds.email == ""

    def test_custom_prefix(self):
        creds = resolve_credentials(
            env_prefixes=("BOOKS", "BIGCAPITAL"),
            environ={"BOOKS_EMAIL": "b@x.com", "BIGCAPITAL_PASSWORD": "pw"},
        )
        assert (creds.email, creds.password) == ("b@x.com", "pw")

    def test_input_not_mutated(self):
        original = Credentials(email="me@x.com")
        resolve_credentials(original, environ={"BIGCAPITAL_PASSWORD": "pw"})
        assert original.password == ""
