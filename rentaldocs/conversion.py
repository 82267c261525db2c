"""
Document numbering and the quote -> invoice conversion.
"""
import random
import re
from datetime import date
from typing import Optional

from .models import BrandingSettings, Invoice, InvoiceItem, Quote, generate_id
from .totals import apply_totals

DEFAULT_INVOICE_PATTERN = "INV-YYYYMMDD-NNNN"

_TOKENS = re.compile(r"YYYYMMDD|YYYY|MM|DD|NNNN")


def generate_number(pattern: str, today: Optional[date] = None, rng: Optional[random.Random] = None) -> str:
    """
    Expand a number pattern such as ``AAT-YYYYMMDD-NNNN``.

    NNNN is a random four digit suffix, not a counter; uniqueness is enforced
    by the persistence tier validation.
    """
    today = today or date.today()
    rng = rng or random
    values = {
        "YYYYMMDD": today.strftime("%Y%m%d"),
        "YYYY": f"{today.year:04d}",
        "MM": f"{today.month:02d}",
        "DD": f"{today.day:02d}",
    }

    def expand(match):
        token = match.group(0)
        if token == "NNNN":
            return f"{rng.randrange(10000):04d}"
        return values[token]

    return _TOKENS.sub(expand, pattern)


def convert_quote_to_invoice(quote: Quote, branding: Optional[BrandingSettings] = None, *,
                             today: Optional[date] = None, rng: Optional[random.Random] = None) -> Invoice:
    if quote.customer is None or not (quote.customer.id or "").strip():
        raise ValueError(
            "Quote must have a valid customer to convert to invoice. "
            "The customer may have been deleted."
        )
    if not quote.items:
        raise ValueError("Quote must have at least one item to convert to invoice")

    pattern = branding.invoice_number_pattern if branding else DEFAULT_INVOICE_PATTERN
    today = today or date.today()

    items = [
        InvoiceItem(
            id=generate_id(),
            description=item.vehicle_type_label or item.description or "",
            vehicle_type_id=item.vehicle_type_id,
            vehicle_type_label=item.vehicle_type_label,
            vehicle_number=item.vehicle_number,
            rental_basis=item.rental_basis,
            quantity=item.quantity,
            unit_price=item.unit_price,
            tax_percent=item.tax_percent,
            tax=item.tax,
        )
        for item in quote.items
    ]

    invoice = Invoice(
        id=generate_id(),
        number=generate_number(pattern, today, rng),
        date=today.isoformat(),
        due_date=quote.valid_until or None,
        customer_id=quote.customer.id,
        customer=quote.customer,
        quote_id=quote.id,
        currency=quote.currency,
        items=items,
        tax=quote.tax,
        amount_received=0,
        status="draft",
        notes=quote.notes or "",
    )
    return apply_totals(invoice)
