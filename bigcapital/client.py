"""
Bigcapital Resource Client
==========================
One coroutine per REST resource/action, all funnelled through
``RequestExecutor.execute`` so every call gets the session headers and the
401 re-authentication protocol.

Note: Bigcapital uses POST (not PUT) to update existing records.

Usage::

    client = await BigcapitalClient.login("user@example.com", "pw")
    expenses = await client.get_expenses(page=1, page_size=50)
    await client.publish_expense(expenses["expenses"][0]["id"])
"""

from __future__ import annotations

import json
import logging
from typing import Any, BinaryIO, Mapping, Optional, Union

import requests
from requests.cookies import RequestsCookieJar

from .auth.credential_store import CookieCredentialStore, CredentialStore, FileCredentialStore
from .auth.session import Session
from .auth.session_factory import SessionFactory
from .errors import ApiError
from .executor import Payload, RequestExecutor
from .models import (
    AccountsResponse,
    AttachmentUpload,
    Contact,
    CustomersResponse,
    EmailMessage,
    Expense,
    ExpensesResponse,
    InvoicesResponse,
    Invoice,
    Item,
    ItemsResponse,
    ModelRef,
    OrganizationUpdate,
    VendorsResponse,
    WriteoffRequest,
)
from .monitor import RequestMonitor
from .run_config import ClientRunConfig
from .transport import HttpTransport

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


def build_store(
    config: ClientRunConfig,
    jar: Optional[RequestsCookieJar] = None,
) -> CredentialStore:
    """Cookie store when a jar is supplied, else the JSON file at ``state_path``."""
    if jar is not None:
        return CookieCredentialStore(
            jar, name=config.cookie_name, max_age=config.cookie_max_age
        )
    return FileCredentialStore(config.state_path, max_age=config.cookie_max_age)


def build_executor(
    config: ClientRunConfig,
    store: Optional[CredentialStore] = None,
    *,
    monitor: Optional[RequestMonitor] = None,
    http: Optional[requests.Session] = None,
) -> RequestExecutor:
    """Wire transport, factory and executor for *config*."""
    transport = HttpTransport(config.base_url, http, timeout=config.timeout_seconds)
    if store is None:
        store = build_store(config)
    factory = SessionFactory(config.base_url, store, transport=transport, monitor=monitor)
    return RequestExecutor(
        factory,
        transport,
        monitor=monitor,
        credentials=config.credentials,
        max_retries=config.max_retries,
    )


class BigcapitalClient:
    """Typed operations over the Bigcapital REST API for one session."""

    def __init__(
        self,
        session: Session,
        executor: RequestExecutor,
        *,
        deadline: Optional[float] = None,
    ):
        self.session = session
        self.executor = executor
        self.deadline = deadline

    # ── Construction ──────────────────────────────────────────────

    @classmethod
    async def login(
        cls,
        email: str,
        password: str,
        *,
        config: Optional[ClientRunConfig] = None,
        store: Optional[CredentialStore] = None,
        persist: bool = True,
        monitor: Optional[RequestMonitor] = None,
        http: Optional[requests.Session] = None,
    ) -> "BigcapitalClient":
        """Log in and return a client bound to the new session."""
        config = config or ClientRunConfig.from_env()
        executor = build_executor(config, store, monitor=monitor, http=http)
        session = await executor.factory.login(email, password, persist=persist)
        return cls(session, executor, deadline=config.deadline_seconds)

    @classmethod
    async def from_store(
        cls,
        *,
        config: Optional[ClientRunConfig] = None,
        store: Optional[CredentialStore] = None,
        monitor: Optional[RequestMonitor] = None,
        http: Optional[requests.Session] = None,
    ) -> Optional["BigcapitalClient"]:
        """Restore a client from the credential store, or ``None`` if nothing is stored."""
        config = config or ClientRunConfig.from_env()
        executor = build_executor(config, store, monitor=monitor, http=http)
        session = await executor.factory.restore()
        if session is None:
            return None
        return cls(session, executor, deadline=config.deadline_seconds)

    # ── Core ──────────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        **kwargs: Any,
    ) -> Payload:
        """Pass-through to ``RequestExecutor.execute`` for this session."""
        kwargs.setdefault("deadline", self.deadline)
        return await self.executor.execute(
            self.session, method, endpoint, body, headers, **kwargs
        )

    def set_organization_id(self, organization_id: str) -> None:
        """Switch the tenant used for subsequent calls."""
        self.session.organization_id = organization_id

    @staticmethod
    def _page(page: int, page_size: int) -> dict:
        return {"page": page, "page_size": page_size}

    # ── Customers ─────────────────────────────────────────────────

    async def get_customers(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> CustomersResponse:
        return await self.request("GET", "/api/customers", params=self._page(page, page_size))

    async def get_customer(self, customer_id: int) -> Contact:
        return await self.request("GET", f"/api/customers/{customer_id}")

    async def create_customer(self, customer: Contact) -> Contact:
        return await self.request("POST", "/api/customers", customer)

    async def update_customer(self, customer_id: int, customer: Contact) -> Contact:
        return await self.request("POST", f"/api/customers/{customer_id}", customer)

    async def delete_customer(self, customer_id: int) -> None:
        await self.request("DELETE", f"/api/customers/{customer_id}")

    # ── Vendors ───────────────────────────────────────────────────

    async def get_vendors(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> VendorsResponse:
        return await self.request("GET", "/api/vendors", params=self._page(page, page_size))

    async def get_vendor(self, vendor_id: int) -> Contact:
        return await self.request("GET", f"/api/vendors/{vendor_id}")

    async def create_vendor(self, vendor: Contact) -> Contact:
        return await self.request("POST", "/api/vendors", vendor)

    async def update_vendor(self, vendor_id: int, vendor: Contact) -> Contact:
        return await self.request("POST", f"/api/vendors/{vendor_id}", vendor)

    async def delete_vendor(self, vendor_id: int) -> None:
        await self.request("DELETE", f"/api/vendors/{vendor_id}")

    # ── Contacts ──────────────────────────────────────────────────

    async def activate_contact(self, contact_id: int) -> None:
        await self.request("POST", f"/api/contacts/{contact_id}/activate")

    async def inactivate_contact(self, contact_id: int) -> None:
        await self.request("POST", f"/api/contacts/{contact_id}/inactivate")

    # ── Items ─────────────────────────────────────────────────────

    async def get_items(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> ItemsResponse:
        return await self.request("GET", "/api/items", params=self._page(page, page_size))

    async def get_item(self, item_id: int) -> Item:
        return await self.request("GET", f"/api/items/{item_id}")

    async def create_item(self, item: Item) -> Item:
        return await self.request("POST", "/api/items", item)

    async def update_item(self, item_id: int, item: Item) -> Item:
        return await self.request("POST", f"/api/items/{item_id}", item)

    async def delete_item(self, item_id: int) -> None:
        await self.request("DELETE", f"/api/items/{item_id}")

    async def activate_item(self, item_id: int) -> None:
        await self.request("POST", f"/api/items/{item_id}/activate")

    async def inactivate_item(self, item_id: int) -> None:
        await self.request("POST", f"/api/items/{item_id}/inactivate")

    # ── Invoices ──────────────────────────────────────────────────

    async def get_invoices(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> InvoicesResponse:
        return await self.request("GET", "/api/sales/invoices", params=self._page(page, page_size))

    async def get_invoice(self, invoice_id: int) -> Invoice:
        return await self.request("GET", f"/api/sales/invoices/{invoice_id}")

    async def create_invoice(self, invoice: Invoice) -> Invoice:
        return await self.request("POST", "/api/sales/invoices", invoice)

    async def update_invoice(self, invoice_id: int, invoice: Invoice) -> Invoice:
        return await self.request("POST", f"/api/sales/invoices/{invoice_id}", invoice)

    async def delete_invoice(self, invoice_id: int) -> None:
        await self.request("DELETE", f"/api/sales/invoices/{invoice_id}")

    async def deliver_invoice(self, invoice_id: int) -> Invoice:
        return await self.request("POST", f"/api/sales/invoices/{invoice_id}/deliver")

    async def get_invoice_pdf(self, invoice_id: int) -> bytes:
        """Download the invoice rendered as PDF."""
        response = await self.request(
            "GET", f"/api/sales/invoices/{invoice_id}", headers={"Accept": "application/pdf"}
        )
        return _content_of(response)

    async def send_invoice(self, invoice_id: int, email: EmailMessage) -> Any:
        return await self.request("POST", f"/api/sales/invoices/{invoice_id}/mail", email)

    async def send_invoice_reminder(self, invoice_id: int, email: EmailMessage) -> None:
        await self.request("POST", f"/api/sales/invoices/{invoice_id}/mail-reminder", email)

    async def send_invoice_sms(self, invoice_id: int, notification_key: str) -> None:
        await self.request(
            "POST",
            f"/api/sales/invoices/{invoice_id}/notify-by-sms",
            {"notification_key": notification_key},
        )

    async def writeoff_invoice(self, invoice_id: int, writeoff: WriteoffRequest) -> None:
        await self.request("POST", f"/api/sales/invoices/{invoice_id}/writeoff", writeoff)

    async def cancel_invoice_writeoff(self, invoice_id: int) -> None:
        await self.request("POST", f"/api/sales/invoices/{invoice_id}/writeoff/cancel")

    async def get_payable_invoices(self, customer_id: Optional[int] = None) -> InvoicesResponse:
        params = {"customer_id": customer_id} if customer_id else None
        return await self.request("GET", "/api/sales/invoices/payable", params=params)

    async def get_invoice_payment_transactions(self, invoice_id: int) -> Any:
        return await self.request("GET", f"/api/sales/invoices/{invoice_id}/payment-transactions")

    # ── Expenses ──────────────────────────────────────────────────

    async def get_expenses(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> ExpensesResponse:
        return await self.request("GET", "/api/expenses", params=self._page(page, page_size))

    async def get_expense(self, expense_id: int) -> Expense:
        return await self.request("GET", f"/api/expenses/{expense_id}")

    async def create_expense(self, expense: Expense) -> Expense:
        return await self.request("POST", "/api/expenses", expense)

    async def update_expense(self, expense_id: int, expense: Expense) -> Expense:
        return await self.request("POST", f"/api/expenses/{expense_id}", expense)

    async def delete_expense(self, expense_id: int) -> None:
        await self.request("DELETE", f"/api/expenses/{expense_id}")

    async def publish_expense(self, expense_id: int) -> Expense:
        return await self.request("POST", f"/api/expenses/{expense_id}/publish")

    # ── Accounts / settings / organization ────────────────────────

    async def get_accounts(self) -> AccountsResponse:
        return await self.request("GET", "/api/accounts")

    async def get_tax_rates(self) -> Any:
        return await self.request("GET", "/api/settings/tax-rates")

    async def get_organization(self) -> Any:
        return await self.request("GET", "/api/organization")

    async def update_organization(self, organization: OrganizationUpdate) -> Any:
        return await self.request("PUT", "/api/organization", organization)

    # ── Attachments ───────────────────────────────────────────────

    async def upload_attachment(
        self,
        file: Union[bytes, BinaryIO],
        filename: str,
        content_type: str = "application/octet-stream",
    ) -> AttachmentUpload:
        """Upload a file; link it later via ``attachments=[{"key": ...}]`` or ``link_attachment``.

        Streams are read up front so a re-issued request after a 401 sends
        the same bytes.
        """
        content = file if isinstance(file, (bytes, bytearray)) else file.read()
        result = await self.request(
            "POST", "/api/attachments/", files={"file": (filename, content, content_type)}
        )
        if not isinstance(result, dict) or "data" not in result:
            status = result.status_code if isinstance(result, requests.Response) else 200
            raise ApiError(status, "Attachment upload response has no data envelope")
        return result["data"]

    async def download_attachment(self, key: str) -> bytes:
        return _content_of(await self.request("GET", f"/api/attachments/{key}"))

    async def delete_attachment(self, key: str) -> None:
        await self.request("DELETE", f"/api/attachments/{key}")

    async def link_attachment(self, key: str, model_ref: ModelRef, model_id: int) -> None:
        await self.request(
            "POST", f"/api/attachments/{key}/link", {"modelRef": model_ref, "modelId": model_id}
        )

    async def unlink_attachment(self, key: str, model_ref: ModelRef, model_id: int) -> None:
        await self.request(
            "POST", f"/api/attachments/{key}/unlink", {"modelRef": model_ref, "modelId": model_id}
        )

    async def get_attachment_presigned_url(self, key: str) -> dict:
        return await self.request("GET", f"/api/attachments/{key}/presigned-url")


def _content_of(payload: Payload) -> bytes:
    if isinstance(payload, requests.Response):
        return payload.content
    # Some deployments answer binary endpoints with JSON (e.g. a URL envelope).
    return json.dumps(payload).encode("utf-8")


async def get_client(
    *,
    config: Optional[ClientRunConfig] = None,
    store: Optional[CredentialStore] = None,
    persist: Optional[bool] = None,
    monitor: Optional[RequestMonitor] = None,
    http: Optional[requests.Session] = None,
) -> BigcapitalClient:
    """Stored session if there is one, else log in with the configured defaults.

    ``persist`` should be True only at call sites allowed to write the
    credential store (mutations); reads leave the store untouched. When
    omitted, ``config.persist`` decides.

    Raises:
        ConfigurationError: No stored session and no default credentials.
    """
    config = config or ClientRunConfig.from_env()
    if persist is None:
        persist = config.persist
    executor = build_executor(config, store, monitor=monitor, http=http)
    session = await executor.factory.get_session(config.credentials, persist=persist)
    return BigcapitalClient(session, executor, deadline=config.deadline_seconds)
