"""
Totals for line items and documents.

Pure functions, safe to call on every edit. Values stay unrounded doubles;
the only rounding step is format_money/format_quantity at render time.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, TypeVar

from .models import Document, Invoice, InvoiceItem, LineItem


@dataclass(frozen=True)
class LineTotals:
    gross_amount: float
    line_tax_amount: float
    line_total: float


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: float
    item_tax_total: float
    tax: float
    total: float
    # invoices only; None for quotes and purchase orders
    amount_received: Optional[float] = None

    @property
    def pending(self) -> Optional[float]:
        if self.amount_received is None:
            return None
        return self.total - self.amount_received

    @property
    def uses_item_tax(self) -> bool:
        return self.item_tax_total > 0


def compute_line_totals(item: LineItem) -> LineTotals:
    gross = item.quantity * item.unit_price
    tax_amount = item.tax_rule().amount_for(gross)
    return LineTotals(gross_amount=gross, line_tax_amount=tax_amount, line_total=gross + tax_amount)


def compute_document_totals(items: Iterable[LineItem], fallback_tax: float = 0.0,
                            fallback_received: Optional[float] = None) -> DocumentTotals:
    """
    subtotal = sum of gross amounts. If the items carry any tax, the document tax
    is their sum and fallback_tax is ignored; otherwise fallback_tax stands.

    fallback_received is only given for invoices: item level receipts win when
    any item has one, else the document level figure is used.
    """
    subtotal = 0.0
    item_tax_total = 0.0
    item_received = 0.0
    for item in items:
        line = compute_line_totals(item)
        subtotal += line.gross_amount
        item_tax_total += line.line_tax_amount
        if isinstance(item, InvoiceItem):
            item_received += item.amount_received

    tax = item_tax_total if item_tax_total > 0 else float(fallback_tax or 0.0)

    amount_received = None
    if fallback_received is not None:
        amount_received = item_received if item_received > 0 else float(fallback_received)

    return DocumentTotals(
        subtotal=subtotal,
        item_tax_total=item_tax_total,
        tax=tax,
        total=subtotal + tax,
        amount_received=amount_received,
    )


def totals_for(document: Document) -> DocumentTotals:
    fallback_received = document.amount_received if isinstance(document, Invoice) else None
    return compute_document_totals(document.items, document.tax, fallback_received)


D = TypeVar("D", bound=Document)


def apply_totals(document: D) -> D:
    """Return a copy with derived item fields, serial numbers and totals refreshed."""
    items = []
    for index, item in enumerate(document.items, start=1):
        line = compute_line_totals(item)
        items.append(item.model_copy(update={
            "serial_number": index,
            "gross_amount": line.gross_amount,
            "line_tax_amount": line.line_tax_amount,
            "line_total": line.line_total,
        }))

    totals = totals_for(document)
    update = {"items": items, "subtotal": totals.subtotal, "tax": totals.tax, "total": totals.total}
    if totals.amount_received is not None:
        update["amount_received"] = totals.amount_received
    return document.model_copy(update=update)


def round_half_up(value: float, places: int = 2) -> Decimal:
    """
    Round halves away from zero after reducing the double to 15 significant
    digits, the way spreadsheet number formats display it. 0.125 shows as
    0.13 in every export format.
    """
    return Decimal(format(float(value or 0.0), ".15g")).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def format_money(value: float) -> str:
    return f"{round_half_up(value):,.2f}"


def format_percent(value: float) -> str:
    return f"{round_half_up(value):.2f}"


def format_quantity(value: float) -> str:
    rounded = round_half_up(value)
    if rounded == rounded.to_integral_value():
        return f"{int(rounded):,}"
    return f"{rounded:,.2f}".rstrip("0").rstrip(".")
