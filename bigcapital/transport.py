"""
HTTP Transport
==============
Sends one ``OutboundRequest`` and returns the raw ``requests.Response``.

The blocking ``requests`` call runs in the event loop's default executor,
so every network call is an ``await`` point for the caller. Transport
failures are mapped onto the client's error taxonomy:

    - ``requests.Timeout``          → ``RequestTimeout``
    - ``requests.RequestException`` → ``NetworkError``

HTTP error statuses are NOT raised here; interpreting them is the
executor's job.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

import requests

from .errors import NetworkError, RequestTimeout

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "bigcapital-client/1.0"


@dataclass(frozen=True)
class OutboundRequest:
    """One attempt at an API call. Never mutated; derive a new one instead."""

    method: str
    endpoint: str
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    files: Optional[Mapping[str, Any]] = None
    params: Optional[Mapping[str, Any]] = None
    timeout: float = DEFAULT_TIMEOUT
    is_retry: bool = False

    def with_headers(self, headers: Mapping[str, str]) -> "OutboundRequest":
        return replace(self, headers=dict(headers))

    def as_retry(self) -> "OutboundRequest":
        return replace(self, is_retry=True)

    @property
    def sends_body(self) -> bool:
        return self.body is not None and self.method.upper() != "GET"


class HttpTransport:
    """Thin async wrapper around a ``requests.Session``."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or self._create_session()

    @staticmethod
    def _create_session() -> requests.Session:
        session = requests.Session()
        session.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "application/json, */*;q=0.8",
        })
        return session

    @property
    def session(self) -> requests.Session:
        return self._session

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    async def send(self, request: OutboundRequest) -> requests.Response:
        """Send *request* without blocking the event loop."""
        loop = asyncio.get_running_loop()
        call = functools.partial(self._send_sync, request)
        return await loop.run_in_executor(None, call)

    def _send_sync(self, request: OutboundRequest) -> requests.Response:
        kwargs: Dict[str, Any] = {
            "headers": dict(request.headers),
            "timeout": request.timeout or self.timeout,
        }
        if request.params:
            kwargs["params"] = dict(request.params)
        if request.files:
            kwargs["files"] = dict(request.files)
            if request.sends_body:
                kwargs["data"] = request.body
        elif request.sends_body:
            kwargs["json"] = request.body

        url = self.url_for(request.endpoint)
        try:
            return self._session.request(request.method.upper(), url, **kwargs)
        except requests.Timeout as exc:
            raise RequestTimeout(
                f"{request.method} {request.endpoint} timed out after {kwargs['timeout']}s"
            ) from exc
        except requests.RequestException as exc:
            raise NetworkError(f"{request.method} {request.endpoint} failed: {exc}") from exc

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
