"""
Document models: customers, vendors, branding settings, line items and the
three commercial documents (Quote, Invoice, PurchaseOrder).

Field names are snake_case in Python and camelCase on the wire.
"""
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


def generate_id() -> str:
    return uuid4().hex


def to_number(value) -> float:
    """Coerce form input to a float; anything non-numeric becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class DocumentKind(str, Enum):
    QUOTE = "quote"
    INVOICE = "invoice"
    PURCHASE_ORDER = "purchase_order"

    @property
    def label(self) -> str:
        return {"quote": "Quote", "invoice": "Invoice", "purchase_order": "Purchase Order"}[self.value]

    @property
    def title(self) -> str:
        return {"quote": "QUOTATION", "invoice": "INVOICE", "purchase_order": "PURCHASE ORDER"}[self.value]

    @property
    def slug(self) -> str:
        # used in filenames and URLs
        return self.value.replace("_", "-")


# --- Counterparties & branding ---

class Customer(CamelModel):
    id: str = ""
    name: str = ""
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def display_name(self) -> str:
        return (self.name or "").strip() or (self.company or "").strip()


class Vendor(CamelModel):
    id: str = ""
    name: str = ""
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bank_details: Optional[str] = None
    payment_terms: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def display_name(self) -> str:
        return (self.name or "").strip()


class BrandingSettings(CamelModel):
    company_name: str = ""
    address: str = ""
    vat_number: str = ""
    logo_url: Optional[str] = None
    seal_url: Optional[str] = None
    signature_url: Optional[str] = None
    currency: str = "AED"
    default_terms: Optional[str] = None
    default_invoice_terms: Optional[str] = None
    quote_number_pattern: str = "AAT-YYYYMMDD-NNNN"
    invoice_number_pattern: str = "INV-YYYYMMDD-NNNN"
    purchase_order_number_pattern: str = "PO-YYYYMMDD-NNNN"
    footer_address_english: Optional[str] = None
    footer_address_arabic: Optional[str] = None
    footer_contact_english: Optional[str] = None
    footer_contact_arabic: Optional[str] = None


# --- Line items ---

@dataclass(frozen=True)
class PercentTax:
    percent: float
    kind: Literal["percent"] = "percent"

    def amount_for(self, gross: float) -> float:
        return gross * self.percent / 100


@dataclass(frozen=True)
class FlatTax:
    amount: float
    kind: Literal["flat"] = "flat"

    def amount_for(self, gross: float) -> float:
        return self.amount


TaxRule = Union[PercentTax, FlatTax]


class LineItem(CamelModel):
    id: str = Field(default_factory=generate_id)
    serial_number: Optional[int] = None
    description: str = ""
    quantity: float = 0
    unit_price: float = 0
    tax_percent: Optional[float] = None
    # legacy flat tax amount, kept for display when tax_percent is set
    tax: Optional[float] = None

    gross_amount: float = 0
    line_tax_amount: float = 0
    line_total: float = 0

    @field_validator("quantity", "unit_price", "gross_amount", "line_tax_amount", "line_total", mode="before")
    @classmethod
    def _coerce_number(cls, value):
        return to_number(value)

    @field_validator("tax_percent", "tax", mode="before")
    @classmethod
    def _coerce_optional_number(cls, value):
        if value is None or value == "":
            return None
        return to_number(value)

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    def tax_rule(self) -> TaxRule:
        """taxPercent takes precedence; the legacy flat amount is the fallback."""
        if self.tax_percent is not None:
            return PercentTax(self.tax_percent)
        return FlatTax(self.tax or 0.0)

    @property
    def reference(self) -> str:
        """What identifies the line to a reader (description or vehicle)."""
        return (self.description or "").strip()


class VehicleLineMixin(CamelModel):
    vehicle_type_id: Optional[str] = None
    vehicle_type_label: Optional[str] = None
    vehicle_number: Optional[str] = None
    rental_basis: Optional[Literal["hourly", "monthly"]] = None

    @property
    def reference(self) -> str:
        for value in (self.description, self.vehicle_type_label, self.vehicle_number, self.vehicle_type_id):
            if value and value.strip():
                return value.strip()
        return ""


class QuoteItem(VehicleLineMixin, LineItem):
    pass


class InvoiceItem(VehicleLineMixin, LineItem):
    amount_received: float = 0

    @field_validator("amount_received", mode="before")
    @classmethod
    def _coerce_received(cls, value):
        return to_number(value)


class PurchaseOrderItem(LineItem):
    pass


# --- Documents ---

QuoteStatus = Literal["draft", "sent", "accepted", "rejected"]
InvoiceStatus = Literal["draft", "invoice_sent", "payment_received"]
PurchaseOrderStatus = Literal["draft", "sent", "accepted"]

STATUSES = {
    DocumentKind.QUOTE: ("draft", "sent", "accepted", "rejected"),
    DocumentKind.INVOICE: ("draft", "invoice_sent", "payment_received"),
    DocumentKind.PURCHASE_ORDER: ("draft", "sent", "accepted"),
}


class Document(CamelModel):
    kind: ClassVar[DocumentKind]

    id: str = Field(default_factory=generate_id)
    number: str = ""
    date: str = ""
    currency: str = "AED"
    items: List[LineItem] = Field(default_factory=list)
    subtotal: float = 0
    # user-entered document level tax; replaced by the item tax sum when items carry tax
    tax: float = 0
    total: float = 0
    # kept as a plain string so unknown statuses reach validation instead of failing parsing
    status: Optional[str] = "draft"
    notes: Optional[str] = ""
    terms: Optional[str] = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("subtotal", "tax", "total", mode="before")
    @classmethod
    def _coerce_total(cls, value):
        return to_number(value)

    @property
    def counterparty_id(self) -> str:
        raise NotImplementedError

    @property
    def counterparty_name(self) -> str:
        raise NotImplementedError

    @property
    def filename_stem(self) -> str:
        return f"{self.kind.slug}-{self.number}"


class Quote(Document):
    kind: ClassVar[DocumentKind] = DocumentKind.QUOTE

    valid_until: Optional[str] = None
    customer: Optional[Customer] = None
    items: List[QuoteItem] = Field(default_factory=list)

    @property
    def counterparty_id(self) -> str:
        return self.customer.id if self.customer else ""

    @property
    def counterparty_name(self) -> str:
        return self.customer.display_name if self.customer else ""


class Invoice(Document):
    kind: ClassVar[DocumentKind] = DocumentKind.INVOICE

    due_date: Optional[str] = None
    customer_id: Optional[str] = None
    # snapshot of the customer, when the caller has one
    customer: Optional[Customer] = None
    vendor_id: Optional[str] = None
    quote_id: Optional[str] = None
    purchase_order_id: Optional[str] = None
    amount_received: float = 0
    items: List[InvoiceItem] = Field(default_factory=list)

    @field_validator("amount_received", mode="before")
    @classmethod
    def _coerce_received(cls, value):
        return to_number(value)

    @computed_field
    @property
    def pending(self) -> float:
        return self.total - self.amount_received

    @property
    def counterparty_id(self) -> str:
        return self.customer_id or ""

    @property
    def counterparty_name(self) -> str:
        return self.customer.display_name if self.customer else ""


class PurchaseOrder(Document):
    kind: ClassVar[DocumentKind] = DocumentKind.PURCHASE_ORDER

    vendor_id: Optional[str] = None
    vendor: Optional[Vendor] = None
    items: List[PurchaseOrderItem] = Field(default_factory=list)

    @property
    def counterparty_id(self) -> str:
        return self.vendor_id or ""

    @property
    def counterparty_name(self) -> str:
        return self.vendor.display_name if self.vendor else ""


DOCUMENT_TYPES = {
    DocumentKind.QUOTE: Quote,
    DocumentKind.INVOICE: Invoice,
    DocumentKind.PURCHASE_ORDER: PurchaseOrder,
}
