"""
Payload Shapes
==============
``TypedDict`` descriptions of the JSON the Bigcapital API sends and accepts.

Only the commonly used fields are listed; ``total=False`` keeps every key
optional because create/update calls send partial objects and list
endpoints omit computed fields.
"""

from __future__ import annotations

from typing import List, Literal, Optional, TypedDict, Union


class PaginationMeta(TypedDict):
    total: int
    page: int
    page_size: int


class FilterMeta(TypedDict, total=False):
    sort_order: str
    sort_by: str


class Contact(TypedDict, total=False):
    id: int
    display_name: str
    contact_service: Literal["customer", "vendor"]
    contact_type: str
    currency_code: str
    email: str
    work_phone: str
    personal_phone: str
    company_name: str
    first_name: str
    last_name: str
    website: str
    note: str
    active: bool
    balance: float
    opening_balance: float
    opening_balance_at: str
    billing_address_1: str
    billing_address_2: str
    billing_address_city: str
    billing_address_country: str
    billing_address_state: str
    billing_address_zipcode: str
    billing_address_phone: str
    shipping_address_1: str
    shipping_address_2: str
    shipping_address_city: str
    shipping_address_country: str
    shipping_address_state: str
    shipping_address_zipcode: str
    shipping_address_phone: str
    created_at: str
    updated_at: str


class Item(TypedDict, total=False):
    id: int
    name: str
    type: Literal["service", "non-inventory", "inventory"]
    code: str
    sellable: bool
    purchasable: bool
    sell_price: float
    cost_price: float
    sell_account_id: int
    cost_account_id: int
    inventory_account_id: int
    sell_description: str
    purchase_description: str
    quantity_on_hand: float
    category_id: int
    active: bool


class Attachment(TypedDict, total=False):
    key: str
    mime_type: str
    mimeType: str
    origin_name: str
    originName: str
    size: int


class AttachmentUpload(TypedDict, total=False):
    id: int
    key: str
    mimeType: str
    size: int
    originName: str
    createdAt: str
    updatedAt: str


class InvoiceEntry(TypedDict, total=False):
    index: int
    item_id: int
    description: str
    quantity: float
    rate: float
    discount: float
    discount_type: Literal["amount", "percentage"]
    tax_rate_id: int
    warehouse_id: int
    project_id: int


class Invoice(TypedDict, total=False):
    id: int
    customer_id: int
    invoice_date: str  # YYYY-MM-DD
    due_date: str  # YYYY-MM-DD
    invoice_no: str
    reference_no: str
    invoice_message: str
    terms_conditions: str
    entries: List[InvoiceEntry]
    attachments: List[Attachment]
    delivered: bool
    is_inclusive_tax: bool
    currency_code: str
    exchange_rate: float
    branch_id: int
    warehouse_id: int
    project_id: int
    # computed by the server
    amount: float
    payment_amount: float
    due_amount: float
    overdue_days: int
    is_delivered: bool
    delivered_at: str


class Account(TypedDict, total=False):
    id: int
    name: str
    slug: str
    account_type: str
    parent_account_id: Optional[int]
    code: str
    description: str
    active: int
    predefined: int
    amount: float
    currency_code: str
    account_type_label: str
    account_parent_type: str
    account_root_type: str
    account_normal: str
    is_balance_sheet_account: bool
    is_pl_sheet: bool


class ExpenseCategory(TypedDict, total=False):
    id: int
    index: int
    expense_id: int
    expense_account_id: int
    amount: float
    description: str
    landed_cost: float
    project_id: int
    expense_account: Account


class Expense(TypedDict, total=False):
    id: int
    reference_no: Optional[str]
    payment_date: str  # YYYY-MM-DD
    payment_account_id: int
    payee_id: Optional[int]
    description: Optional[str]
    currency_code: str
    exchange_rate: float
    branch_id: Optional[int]
    project_id: Optional[int]
    categories: List[ExpenseCategory]
    attachments: List[Attachment]
    publish: bool
    # computed by the server
    total_amount: float
    formatted_amount: str
    is_published: bool
    published_at: str
    payment_account: Account


class EmailMessage(TypedDict, total=False):
    to: List[str]
    subject: str
    message: str


class WriteoffRequest(TypedDict, total=False):
    expense_account_id: int
    date: str
    reason: str


class OrganizationUpdate(TypedDict, total=False):
    name: str
    industry: str
    location: str
    base_currency: str
    timezone: str
    fiscal_year: str
    language: str
    date_format: str
    tax_number: str


class ExpensesResponse(TypedDict, total=False):
    expenses: List[Expense]
    pagination: PaginationMeta
    filter_meta: FilterMeta


class VendorsResponse(TypedDict, total=False):
    vendors: List[Contact]
    pagination: PaginationMeta
    filter_meta: FilterMeta


class CustomersResponse(TypedDict, total=False):
    customers: List[Contact]
    pagination: PaginationMeta
    filter_meta: FilterMeta


class InvoicesResponse(TypedDict, total=False):
    invoices: List[Invoice]
    pagination: PaginationMeta
    filter_meta: FilterMeta


class ItemsResponse(TypedDict, total=False):
    items: List[Item]
    pagination: PaginationMeta
    filter_meta: FilterMeta


class AccountsResponse(TypedDict, total=False):
    accounts: List[Account]


# Entity types accepted by attachment link/unlink.
ModelRef = Union[
    Literal["SaleInvoice"],
    Literal["SaleEstimate"],
    Literal["SaleReceipt"],
    Literal["PaymentReceive"],
    Literal["CreditNote"],
    Literal["Bill"],
    Literal["PaymentMade"],
    Literal["VendorCredit"],
    Literal["Expense"],
    Literal["ManualJournal"],
]
