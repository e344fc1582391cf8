"""
Authenticated Request Executor
==============================
Issues API calls with session headers and drives re-authentication on 401.

Response handling:
    1. 2xx + JSON content type → parsed payload, ``retry_count`` reset
    2. 2xx + anything else     → raw ``requests.Response``, ``retry_count`` reset
    3. 401 on a first attempt  → re-authentication protocol, then ONE retry
    4. any other non-2xx       → ``ApiError(status, message)``

Re-authentication protocol (bounded loop, state derived from the session)::

    FRESH ──401──▶ RETRYING(1) ──login fails──▶ RETRYING(2) ──▶ ... ──▶ EXHAUSTED
      ▲                 │
      └── 2xx ◀─ retry ◀┘ login succeeds

    EXHAUSTED → credential store cleared, ``AccountInvalid`` raised.

A 401 on the retried request is terminal (``ApiError``): exactly one
re-issue per successful re-login.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Mapping, Optional, Union

import requests

from .auth.session import MAX_RETRIES, Credentials, Session, resolve_credentials
from .auth.session_factory import SessionFactory
from .errors import (
    AccountInvalid,
    ApiError,
    AuthenticationFailed,
    NetworkError,
    RequestTimeout,
)
from .monitor import RequestMonitor, RequestTiming
from .transport import HttpTransport, OutboundRequest

logger = logging.getLogger(__name__)

ACCESS_TOKEN_HEADER = "x-access-token"
ORGANIZATION_HEADER = "organization-id"

Payload = Union[dict, list, requests.Response, None]


def build_headers(
    session: Session,
    extra: Optional[Mapping[str, str]] = None,
    *,
    json_body: bool = True,
) -> dict:
    """Headers for one authenticated call.

    ``organization-id`` is present if and only if the session has a
    non-empty organization id.
    """
    headers = {ACCESS_TOKEN_HEADER: session.token}
    if json_body:
        headers["Content-Type"] = "application/json"
    if extra:
        headers.update(extra)
    if session.has_organization:
        headers[ORGANIZATION_HEADER] = str(session.organization_id)
    else:
        headers.pop(ORGANIZATION_HEADER, None)
    return headers


def extract_error_message(response: requests.Response) -> str:
    """Best-effort message: JSON ``message``, then ``error``, else raw text."""
    text = response.text
    try:
        data = json.loads(text)
    except ValueError:
        return text
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if message:
            return message if isinstance(message, str) else json.dumps(message)
    return text


def is_json_response(response: requests.Response) -> bool:
    content_type = response.headers.get("Content-Type", "")
    return "application/json" in content_type.lower()


class RequestExecutor:
    """Sends authenticated requests on behalf of a ``Session``.

    Args:
        factory:     Used to log in again on 401; its store is cleared when
                     the session is declared invalid.
        transport:   Defaults to the factory's transport.
        monitor:     Optional metrics sink.
        credentials: Fallback credentials when the session carries none
                     (before the ``BIGCAPITAL_*`` environment variables).
        max_retries: Re-authentication budget per session.
    """

    def __init__(
        self,
        factory: SessionFactory,
        transport: Optional[HttpTransport] = None,
        *,
        monitor: Optional[RequestMonitor] = None,
        credentials: Optional[Credentials] = None,
        max_retries: int = MAX_RETRIES,
    ):
        self.factory = factory
        self.transport = transport or factory.transport
        self.monitor = monitor
        self.credentials = credentials
        self.max_retries = max_retries

    # ── Public API ────────────────────────────────────────────────

    async def execute(
        self,
        session: Session,
        method: str,
        endpoint: str,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        *,
        files: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> Payload:
        """Send one logical request, re-authenticating on 401 if needed.

        Args:
            session:  Session whose token/tenant headers are stamped on the call.
                      Updated in place by a successful re-authentication.
            method:   HTTP method.
            endpoint: Path below the base URL (e.g. ``/api/expenses``).
            body:     JSON body (ignored for GET).
            headers:  Extra headers; override the defaults.
            files:    Multipart files; switches off the JSON content type.
            params:   Query string parameters.
            timeout:  Per-HTTP-call timeout in seconds.
            deadline: Upper bound in seconds for the whole call, including
                      re-authentication.

        Returns:
            Parsed JSON, or the raw response for non-JSON content.

        Raises:
            ApiError, AccountInvalid, NetworkError, RequestTimeout.
        """
        session.max_retries = self.max_retries
        request = OutboundRequest(
            method=method.upper(),
            endpoint=endpoint,
            body=body,
            headers=dict(headers or {}),
            files=files,
            params=params,
            timeout=timeout or self.transport.timeout,
        )
        pipeline = self._run(session, request)
        if deadline is None:
            return await pipeline
        try:
            return await asyncio.wait_for(pipeline, timeout=deadline)
        except asyncio.TimeoutError as exc:
            raise RequestTimeout(
                f"{request.method} {endpoint} exceeded its {deadline}s deadline"
            ) from exc

    # ── Internal ──────────────────────────────────────────────────

    async def _run(self, session: Session, request: OutboundRequest) -> Payload:
        while True:
            response = await self._send(session, request)

            if response.status_code == 401 and not request.is_retry:
                logger.info(
                    f"[BIGCAPITAL] Got 401 on {request.method} {request.endpoint}, "
                    f"re-authenticating"
                )
                await self._reauthenticate(session)
                request = request.as_retry()
                continue

            return self._interpret(session, request, response)

    async def _send(self, session: Session, request: OutboundRequest) -> requests.Response:
        stamped = request.with_headers(
            build_headers(session, request.headers, json_body=not request.files)
        )
        started = time.monotonic()
        try:
            response = await self.transport.send(stamped)
        except NetworkError:
            if self.monitor:
                await self.monitor.record_network_error()
            raise

        if self.monitor:
            await self.monitor.record_request(RequestTiming(
                method=request.method,
                endpoint=request.endpoint,
                status=response.status_code,
                elapsed_ms=(time.monotonic() - started) * 1000,
                is_retry=request.is_retry,
            ))
        return response

    async def _reauthenticate(self, session: Session) -> None:
        """Log in again until it works or the session's budget runs out.

        Raises:
            AccountInvalid: The budget is exhausted (store already cleared).
        """
        creds = self._resolve_credentials(session)
        if not creds.is_complete:
            logger.error("[BIGCAPITAL] Cannot re-authenticate: missing credentials")
            await self._exhaust(session)

        while session.retry_count < self.max_retries:
            session.retry_count += 1
            logger.info(
                f"[BIGCAPITAL] Re-authentication attempt "
                f"{session.retry_count}/{self.max_retries}"
            )
            try:
                fresh = await self.factory.login(creds.email, creds.password, persist=True)
            except (AuthenticationFailed, NetworkError) as exc:
                logger.error(f"[BIGCAPITAL] Re-authentication failed: {exc}")
                if self.monitor:
                    await self.monitor.record_reauth(success=False)
                continue

            if self.monitor:
                await self.monitor.record_reauth(success=True)
            session.adopt(fresh)
            return

        await self._exhaust(session)

    async def _exhaust(self, session: Session) -> None:
        session.retry_count = max(session.retry_count, self.max_retries)
        logger.error(
            f"[BIGCAPITAL] Account invalid after {self.max_retries} attempts, "
            f"clearing stored credentials"
        )
        self.factory.store.clear()
        if self.monitor:
            await self.monitor.record_exhausted()
        raise AccountInvalid(self.max_retries)

    def _resolve_credentials(self, session: Session) -> Credentials:
        if session.credentials.is_complete:
            return session.credentials
        if self.credentials is not None and self.credentials.is_complete:
            return self.credentials
        return resolve_credentials(Credentials(email=session.email or ""))

    def _interpret(
        self, session: Session, request: OutboundRequest, response: requests.Response
    ) -> Payload:
        if not response.ok:
            message = extract_error_message(response)
            logger.error(
                f"[BIGCAPITAL] {request.method} {request.endpoint} failed: "
                f"HTTP {response.status_code} {response.reason or ''}".rstrip()
            )
            logger.debug(f"[BIGCAPITAL] Error body: {response.text}")
            raise ApiError(response.status_code, message)

        session.reset_retries()

        if is_json_response(response):
            if not response.content:
                return None
            try:
                payload = response.json()
            except ValueError as exc:
                raise ApiError(response.status_code, f"Invalid JSON body: {exc}") from exc
            logger.debug(
                f"[BIGCAPITAL] {request.method} {request.endpoint} "
                f"→ {response.status_code}: {json.dumps(payload)[:2000]}"
            )
            return payload

        logger.debug(
            f"[BIGCAPITAL] {request.method} {request.endpoint} → {response.status_code} "
            f"(non-JSON, {response.headers.get('Content-Type', 'no content type')})"
        )
        return response
