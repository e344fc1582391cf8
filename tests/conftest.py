"""
Shared fixtures for the Bigcapital client tests.

HTTP is faked with ``FakeHttp``: a scripted stand-in for
``requests.Session`` that returns real ``requests.Response`` objects, so
``.ok``, ``.json()`` and ``.text`` behave exactly as in production.
No test touches the network.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple, Union
from urllib.parse import urlsplit

import pytest
import requests

from bigcapital.auth.credential_store import MemoryCredentialStore
from bigcapital.auth.session_factory import SessionFactory
from bigcapital.executor import RequestExecutor
from bigcapital.monitor import RequestMonitor
from bigcapital.transport import HttpTransport

BASE_URL = "https://books.example.test"
LOGIN_PATH = "/api/auth/login"

_REASONS = {200: "OK", 201: "Created", 400: "Bad Request", 401: "Unauthorized",
            403: "Forbidden", 404: "Not Found", 500: "Internal Server Error"}


def make_response(
    status: int = 200,
    json_body: Any = None,
    *,
    text: str = None,
    content: bytes = None,
    content_type: str = None,
) -> requests.Response:
    """Build a real ``requests.Response`` with the given status and body."""
    resp = requests.Response()
    resp.status_code = status
    resp.reason = _REASONS.get(status, "")
    resp.encoding = "utf-8"
    if json_body is not None:
        resp._content = json.dumps(json_body).encode("utf-8")
        resp.headers["Content-Type"] = content_type or "application/json; charset=utf-8"
    elif content is not None:
        resp._content = content
        resp.headers["Content-Type"] = content_type or "application/octet-stream"
    else:
        resp._content = (text or "").encode("utf-8")
        resp.headers["Content-Type"] = content_type or "text/plain"
    return resp


def login_ok(token: str, tenant_id: Any = 7, organization_id: str = "org-7") -> requests.Response:
    return make_response(200, {
        "token": token,
        "tenant": {"id": tenant_id, "organizationId": organization_id},
        "user": {"email": "a@x.com"},
    })


def unauthorized() -> requests.Response:
    return make_response(401, {"message": "Unauthorized"})


@dataclass
class Call:
    method: str
    path: str
    headers: Dict[str, str]
    json: Any
    kwargs: Dict[str, Any] = field(default_factory=dict)


Scripted = Union[requests.Response, Exception, Callable[..., requests.Response]]


class FakeHttp:
    """Scripted ``requests.Session`` stand-in.

    Each (method, path) route holds a queue of responses; the last entry
    repeats forever. Entries may be responses, exceptions (raised), or
    callables ``f(**kwargs) -> Response``.
    """

    def __init__(self) -> None:
        self.calls: List[Call] = []
        self.headers: Dict[str, str] = {}
        self._routes: Dict[Tuple[str, str], List[Scripted]] = {}
        self.closed = False

    def add(self, method: str, path: str, *responses: Scripted) -> "FakeHttp":
        self._routes.setdefault((method.upper(), path), []).extend(responses)
        return self

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        path = urlsplit(url).path
        self.calls.append(Call(
            method=method,
            path=path,
            headers=dict(kwargs.get("headers") or {}),
            json=kwargs.get("json"),
            kwargs=kwargs,
        ))
        queue = self._routes.get((method.upper(), path))
        if not queue:
            raise AssertionError(f"Unexpected request: {method} {path}")
        entry = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(entry, Exception):
            raise entry
        if callable(entry) and not isinstance(entry, requests.Response):
            return entry(**kwargs)
        return entry

    def calls_to(self, path: str) -> List[Call]:
        return [c for c in self.calls if c.path == path]

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Default credentials must come from each test, never the host."""
    for var in ("BIGCAPITAL_EMAIL", "BIGCAPITAL_PASSWORD", "BIGCAPITAL_API_URL",
                "BIGCAPITAL_TIMEOUT", "BIGCAPITAL_STATE_PATH"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def fake_http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def transport(fake_http) -> HttpTransport:
    return HttpTransport(BASE_URL, fake_http, timeout=5)


@pytest.fixture
def store() -> MemoryCredentialStore:
    return MemoryCredentialStore()


@pytest.fixture
def monitor() -> RequestMonitor:
    return RequestMonitor()


@pytest.fixture
def factory(store, transport, monitor) -> SessionFactory:
    return SessionFactory(BASE_URL, store, transport=transport, monitor=monitor)


@pytest.fixture
def executor(factory, monitor) -> RequestExecutor:
    return RequestExecutor(factory, monitor=monitor)
