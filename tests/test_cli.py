"""
Tests for the ``python -m bigcapital`` command line.
"""

import json

import pytest

import bigcapital.__main__ as cli
from bigcapital.auth.credential_store import FileCredentialStore
from bigcapital.auth.session import CredentialRecord
from bigcapital.transport import HttpTransport

from conftest import BASE_URL, LOGIN_PATH, login_ok, make_response, unauthorized


@pytest.fixture
def state_file(tmp_path):
    return str(tmp_path / "auth.json")


@pytest.fixture(autouse=True)
def _offline(monkeypatch, fake_http):
    """No .env loading; every transport talks to the fake."""
    monkeypatch.setattr(cli, "_load_env", lambda: None)
    monkeypatch.setattr(HttpTransport, "_create_session", staticmethod(lambda: fake_http))


def _run(state_file, *args):
    return cli.main(["--base-url", BASE_URL, "--state-file", state_file, *args])


class TestCli:

    def test_status_without_session(self, state_file, capsys):
        assert _run(state_file, "status") == cli.EXIT_OK
        assert "No stored session" in capsys.readouterr().out

    def test_status_hides_token(self, state_file, capsys):
        FileCredentialStore(state_file).save(
            CredentialRecord(token="SECRET", organization_id="org-7", email="a@x.com"))
        assert _run(state_file, "status") == cli.EXIT_OK
        out = capsys.readouterr().out
        assert "SECRET" not in out
        assert json.loads(out)["email"] == "a@x.com"

    def test_logout(self, state_file):
        store = FileCredentialStore(state_file)
        store.save(CredentialRecord(token="T1"))
        assert _run(state_file, "logout") == cli.EXIT_OK
        assert store.load() is None

    def test_login_without_credentials_fails(self, state_file, capsys):
        assert _run(state_file, "login", "--no-prompt") == cli.EXIT_ERROR
        assert "required" in capsys.readouterr().err

    def test_login_saves_session(self, state_file, fake_http, monkeypatch, capsys):
        monkeypatch.setenv("BIGCAPITAL_EMAIL", "a@x.com")
        monkeypatch.setenv("BIGCAPITAL_PASSWORD", "pw")
        fake_http.add("POST", LOGIN_PATH, login_ok("T1"))

        assert _run(state_file, "login", "--no-prompt") == cli.EXIT_OK
        assert "Logged in as a@x.com" in capsys.readouterr().out
        assert FileCredentialStore(state_file).load().token == "T1"

    def test_login_rejected(self, state_file, fake_http, monkeypatch, capsys):
        monkeypatch.setenv("BIGCAPITAL_EMAIL", "a@x.com")
        monkeypatch.setenv("BIGCAPITAL_PASSWORD", "wrong")
        fake_http.add("POST", LOGIN_PATH, make_response(400, {"message": "Invalid details"}))

        assert _run(state_file, "login", "--no-prompt") == cli.EXIT_ERROR
        assert "Login failed" in capsys.readouterr().err

    def test_request_prints_json(self, state_file, fake_http, capsys):
        FileCredentialStore(state_file).save(CredentialRecord(token="T1", organization_id="org-7"))
        fake_http.add("GET", "/api/accounts", make_response(200, {"accounts": [{"id": 1}]}))

        assert _run(state_file, "request", "get", "/api/accounts") == cli.EXIT_OK
        assert json.loads(capsys.readouterr().out) == {"accounts": [{"id": 1}]}
        assert fake_http.calls[0].headers["x-access-token"] == "T1"

    def test_request_bad_data(self, state_file, capsys):
        assert _run(state_file, "request", "POST", "/api/expenses", "--data", "{nope") == cli.EXIT_USAGE

    def test_request_exhausted_session(self, state_file, fake_http, capsys):
        store = FileCredentialStore(state_file)
        store.save(CredentialRecord(token="T1"))
        fake_http.add("GET", "/api/accounts", unauthorized())

        assert _run(state_file, "request", "GET", "/api/accounts") == cli.EXIT_ERROR
        assert "re-enter your credentials" in capsys.readouterr().err
        assert store.load() is None

    def test_expenses_listing(self, state_file, fake_http, capsys):
        FileCredentialStore(state_file).save(CredentialRecord(token="T1"))
        fake_http.add("GET", "/api/expenses", make_response(200, {
            "expenses": [{"id": 3, "payment_date": "2024-01-15", "total_amount": 100,
                          "description": "Office rent"}],
            "pagination": {"page": 1, "total": 1},
        }))
        assert _run(state_file, "expenses", "--page-size", "10") == cli.EXIT_OK
        out = capsys.readouterr().out
        assert "Office rent" in out
        assert fake_http.calls[0].kwargs["params"] == {"page": 1, "page_size": 10}
