"""
Layout plan shared by every renderer.

All text and numbers of a rendered document are decided here, once, from
the totals module. Renderers only paint the plan, so the spreadsheet, word,
PDF and HTML outputs cannot disagree on what a document says.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from .branding import BrandImages
from .errors import RenderError
from .models import (
    BrandingSettings,
    Document,
    DocumentKind,
    Invoice,
    InvoiceItem,
    LineItem,
    PercentTax,
    PurchaseOrder,
    Quote,
)
from .text import html_to_lines
from .totals import (
    DocumentTotals,
    LineTotals,
    compute_line_totals,
    format_money,
    format_percent,
    format_quantity,
    totals_for,
)

MONEY_FORMAT = "#,##0.00"
PERCENT_FORMAT = "0.00"

QUANTITY_FORMATS = {
    DocumentKind.QUOTE: "#,##0",
    DocumentKind.INVOICE: "#,##0.00",
    DocumentKind.PURCHASE_ORDER: "#,##0.00",
}

# Descriptive columns can be switched off; the numeric ones always render
TOGGLEABLE_COLUMNS = ("serialNumber", "vehicleNumber", "description", "rentalBasis")

DEFAULT_VISIBLE_COLUMNS = {
    DocumentKind.QUOTE: {"serialNumber": True, "vehicleNumber": True, "description": True, "rentalBasis": True},
    DocumentKind.INVOICE: {"serialNumber": True, "vehicleNumber": True, "description": True, "rentalBasis": True},
    DocumentKind.PURCHASE_ORDER: {
        "serialNumber": True, "vehicleNumber": False, "description": True, "rentalBasis": False,
    },
}

STATUS_LABELS = {
    "draft": "Draft",
    "sent": "Sent",
    "accepted": "Accepted",
    "rejected": "Rejected",
    "invoice_sent": "Invoice Sent",
    "payment_received": "Payment Received",
}


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    width: float
    align: str = "left"
    num_format: Optional[str] = None

    @property
    def numeric(self) -> bool:
        return self.num_format is not None


def build_columns(kind: DocumentKind, visible: Optional[Mapping[str, bool]] = None) -> List[Column]:
    shown = dict(DEFAULT_VISIBLE_COLUMNS[kind])
    for key, value in (visible or {}).items():
        if key in TOGGLEABLE_COLUMNS:
            shown[key] = bool(value)

    columns = [
        Column("serialNumber", "#", 5, "center"),
        Column("vehicleNumber", "Vehicle", 14),
        Column("description", "Description", 24),
        Column("rentalBasis", "Basis", 10, "center"),
    ]
    columns = [col for col in columns if shown.get(col.key, True)]
    columns += [
        Column("quantity", "Qty", 8, "right", QUANTITY_FORMATS[kind]),
        Column("rate", "Rate", 12, "right", MONEY_FORMAT),
        Column("grossAmount", "Gross", 13, "right", MONEY_FORMAT),
        Column("taxPercent", "Tax %", 8, "right", PERCENT_FORMAT),
        Column("taxAmount", "Tax", 12, "right", MONEY_FORMAT),
        Column("netAmount", "Net", 14, "right", MONEY_FORMAT),
    ]
    if kind == DocumentKind.INVOICE:
        columns.append(Column("amountReceived", "Received", 13, "right", MONEY_FORMAT))
    return columns


@dataclass(frozen=True)
class ItemRow:
    serial: int
    item: LineItem
    line: LineTotals

    @property
    def tax_percent(self) -> Optional[float]:
        """None when the line carries a flat (legacy) tax amount."""
        rule = self.item.tax_rule()
        return rule.percent if isinstance(rule, PercentTax) else None

    @property
    def received(self) -> float:
        return self.item.amount_received if isinstance(self.item, InvoiceItem) else 0.0

    def value(self, key: str):
        item = self.item
        if key == "serialNumber":
            return self.serial
        if key == "vehicleNumber":
            return getattr(item, "vehicle_number", None) or getattr(item, "vehicle_type_label", None) or "-"
        if key == "description":
            return item.description or getattr(item, "vehicle_type_label", None) or "-"
        if key == "rentalBasis":
            basis = getattr(item, "rental_basis", None)
            return basis.capitalize() if basis else "-"
        if key == "quantity":
            return item.quantity
        if key == "rate":
            return item.unit_price
        if key == "grossAmount":
            return self.line.gross_amount
        if key == "taxPercent":
            return self.tax_percent
        if key == "taxAmount":
            return self.line.line_tax_amount
        if key == "netAmount":
            return self.line.line_total
        if key == "amountReceived":
            return self.received
        raise KeyError(key)

    def text(self, key: str) -> str:
        value = self.value(key)
        if key == "quantity":
            return format_quantity(value)
        if key == "taxPercent":
            return "-" if value is None else format_percent(value)
        if key in ("rate", "grossAmount", "taxAmount", "netAmount", "amountReceived"):
            return format_money(value)
        return str(value)


@dataclass(frozen=True)
class TotalLine:
    key: str
    label: str
    value: float
    emphasis: bool = False

    @property
    def text(self) -> str:
        return format_money(self.value)


@dataclass(frozen=True)
class Footer:
    authorized_label: str
    date_text: str
    address_lines: Tuple[str, ...] = ()
    contact_lines: Tuple[str, ...] = ()

    @property
    def lines(self) -> List[str]:
        return [*self.address_lines, *self.contact_lines]


@dataclass(frozen=True)
class LayoutPlan:
    kind: DocumentKind
    title: str
    number: str
    date: str
    currency: str
    company_name: str
    company_lines: List[str]
    metadata: List[Tuple[str, str]]
    counterparty_heading: str
    counterparty: List[Tuple[str, str]]
    columns: List[Column]
    rows: List[ItemRow]
    totals: DocumentTotals
    total_lines: List[TotalLine]
    notes_lines: List[str]
    terms_lines: List[str]
    footer: Footer
    filename_stem: str
    images: BrandImages = field(default_factory=BrandImages)

    def column_index(self, key: str) -> Optional[int]:
        """1-based position of a column, None when it is not shown."""
        for index, column in enumerate(self.columns, start=1):
            if column.key == key:
                return index
        return None

    def total_line(self, key: str) -> Optional[TotalLine]:
        return next((line for line in self.total_lines if line.key == key), None)


# --- Section builders ---

def _metadata(document: Document) -> List[Tuple[str, str]]:
    rows = [(f"{document.kind.label} #:", document.number), ("Date:", document.date)]
    if isinstance(document, Quote) and document.valid_until:
        rows.append(("Valid Up To:", document.valid_until))
    if isinstance(document, Invoice) and document.due_date:
        rows.append(("Due Date:", document.due_date))
    rows.append(("Currency:", document.currency))
    if isinstance(document, (Invoice, PurchaseOrder)) and document.status:
        rows.append(("Status:", STATUS_LABELS.get(document.status, document.status)))
    return rows


def _counterparty(document: Document, name: str) -> List[Tuple[str, str]]:
    rows: List[Tuple[str, str]] = [("Name:", name)]
    if isinstance(document, PurchaseOrder):
        vendor = document.vendor
        if vendor is not None:
            for label, value in (("Contact:", vendor.contact_person), ("Address:", vendor.address),
                                 ("Email:", vendor.email), ("Phone:", vendor.phone)):
                if value:
                    rows.append((label, value))
        return rows

    customer = document.customer
    if customer is not None:
        for label, value in (("Company:", customer.company), ("Address:", customer.address),
                             ("Email:", customer.email), ("Phone:", customer.phone)):
            if value and not (label == "Company:" and value == name):
                rows.append((label, value))
    return rows


def _total_lines(document: Document, totals: DocumentTotals) -> List[TotalLine]:
    lines = [
        TotalLine("subtotal", "Subtotal:", totals.subtotal),
        TotalLine("tax", "Tax:", totals.tax),
        TotalLine("total", "TOTAL:", totals.total, emphasis=True),
    ]
    if isinstance(document, Invoice) and totals.amount_received:
        lines.append(TotalLine("amountReceived", "Amount Received:", totals.amount_received))
        lines.append(TotalLine("pending", "Pending:", totals.pending))
    return lines


def _terms(document: Document, branding: BrandingSettings) -> List[str]:
    if document.terms and document.terms.strip():
        return html_to_lines(document.terms)
    if isinstance(document, Invoice) and branding.default_invoice_terms:
        return html_to_lines(branding.default_invoice_terms)
    return html_to_lines(branding.default_terms)


def _footer(document: Document, branding: BrandingSettings) -> Footer:
    address = tuple(line for line in (branding.footer_address_english, branding.footer_address_arabic) if line)
    contact = tuple(line for line in (branding.footer_contact_english, branding.footer_contact_arabic) if line)
    return Footer(
        authorized_label="Authorized By:",
        date_text=f"Date: {document.date}",
        address_lines=tuple(line.strip() for line in address if line.strip()),
        contact_lines=tuple(line.strip() for line in contact if line.strip()),
    )


def build_layout(document: Document, branding: BrandingSettings, counterparty_name: Optional[str] = None,
                 images: Optional[BrandImages] = None,
                 visible_columns: Optional[Dict[str, bool]] = None) -> LayoutPlan:
    if not document.items:
        raise RenderError(f"{document.kind.label} {document.number or document.id} has no line items")

    name = (counterparty_name or "").strip() or document.counterparty_name
    rows = [ItemRow(serial=index, item=item, line=compute_line_totals(item))
            for index, item in enumerate(document.items, start=1)]
    totals = totals_for(document)

    company_lines = []
    if branding.address:
        company_lines.append(branding.address)
    if branding.vat_number:
        company_lines.append(f"VAT: {branding.vat_number}")

    return LayoutPlan(
        kind=document.kind,
        title=document.kind.title,
        number=document.number,
        date=document.date,
        currency=document.currency or branding.currency,
        company_name=branding.company_name,
        company_lines=company_lines,
        metadata=_metadata(document),
        counterparty_heading="VENDOR" if isinstance(document, PurchaseOrder) else "CUSTOMER",
        counterparty=_counterparty(document, name),
        columns=build_columns(document.kind, visible_columns),
        rows=rows,
        totals=totals,
        total_lines=_total_lines(document, totals),
        notes_lines=html_to_lines(document.notes),
        terms_lines=_terms(document, branding),
        footer=_footer(document, branding),
        filename_stem=document.filename_stem,
        images=images or BrandImages(),
    )
