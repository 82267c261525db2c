"""
Validation for quotes, invoices and purchase orders.

Two tiers share one result shape:

* export tier (``validate_for_export``): synchronous, no lookups; gates the
  export actions and is cheap enough to run on every edit.
* persistence tier (``validate_for_save``): everything above plus stricter
  field rules and lookups through the persistence client (number uniqueness,
  counterparty existence, linked quote / purchase order existence).

Validation never raises for bad input. A lookup that fails (collaborator
down, timeout...) is logged and the check is skipped, not failed.
"""
import asyncio
import re
from datetime import date as date_type, datetime
from typing import Awaitable, List, Optional

from pydantic import computed_field

from .logging_setup import setup_logger
from .models import (
    STATUSES,
    CamelModel,
    Document,
    DocumentKind,
    Invoice,
    InvoiceItem,
    PurchaseOrder,
    Quote,
)
from .persistence import PersistenceClient
from .totals import compute_line_totals, totals_for

logger = setup_logger(__name__)

NUMBER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9/_-]*$")


class FieldError(CamelModel):
    field: str
    message: str


class ValidationResult(CamelModel):
    errors: List[FieldError] = []

    @computed_field(alias="isValid")
    @property
    def is_valid(self) -> bool:
        return not self.errors

    def fields(self) -> set:
        return {error.field for error in self.errors}

    def messages_for(self, field: str) -> List[str]:
        return [error.message for error in self.errors if error.field == field]


# --- Field helpers ---

def parse_date(value: Optional[str]) -> Optional[date_type]:
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    try:
        return date_type.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


def is_valid_date(value: Optional[str]) -> bool:
    return parse_date(value) is not None


def is_date_on_or_after(later: Optional[str], earlier: Optional[str]) -> bool:
    later_date, earlier_date = parse_date(later), parse_date(earlier)
    if later_date is None or earlier_date is None:
        return False
    return later_date >= earlier_date


def is_non_empty_string(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def is_positive_number(value) -> bool:
    return isinstance(value, (int, float)) and value == value and value > 0


def is_non_negative_number(value) -> bool:
    return isinstance(value, (int, float)) and value == value and value >= 0


def is_integer(value) -> bool:
    return isinstance(value, (int, float)) and float(value).is_integer()


def is_in_range(value, low: float, high: float) -> bool:
    return isinstance(value, (int, float)) and low <= value <= high


# --- Per-kind field names ---

def _end_date(document: Document):
    """(field, value, label, ordering label) for the optional date that must not precede `date`."""
    if isinstance(document, Quote):
        return "validUntil", document.valid_until, "Valid Until", "Valid Until date"
    if isinstance(document, Invoice):
        return "dueDate", document.due_date, "Due date", "Due date"
    return None, None, None, None


def _counterparty_field(document: Document) -> str:
    if isinstance(document, Quote):
        return "customer"
    if isinstance(document, Invoice):
        return "customerId"
    return "vendorId"


def _counterparty_snapshot(document: Document):
    if isinstance(document, PurchaseOrder):
        return document.vendor
    return document.customer


# --- Export tier ---

def validate_for_export(document: Document) -> ValidationResult:
    errors: List[FieldError] = []
    label = document.kind.label
    totals = totals_for(document)

    if not is_non_empty_string(document.number):
        errors.append(FieldError(field="number", message=f"{label} number is required"))

    if not is_valid_date(document.date):
        errors.append(FieldError(field="date", message=f"Valid {label.lower()} date is required"))

    end_field, end_value, end_label, order_label = _end_date(document)
    if end_field and end_value:
        if not is_valid_date(end_value):
            errors.append(FieldError(field=end_field, message=f"{end_label} must be a valid date"))
        elif is_valid_date(document.date) and not is_date_on_or_after(end_value, document.date):
            errors.append(FieldError(
                field=end_field,
                message=f"{order_label} must be on or after the {label.lower()} date",
            ))

    errors.extend(_counterparty_errors(document))
    errors.extend(_item_errors_for_export(document))

    if not is_positive_number(totals.total):
        errors.append(FieldError(field="total", message=f"{label} total must be greater than zero"))

    if isinstance(document, Invoice):
        received = totals.amount_received
        if not is_non_negative_number(received):
            errors.append(FieldError(
                field="amountReceived",
                message="Amount received must be a valid non-negative number",
            ))
        elif received > totals.total:
            errors.append(FieldError(
                field="amountReceived",
                message="Amount received cannot exceed the invoice total",
            ))

    return ValidationResult(errors=errors)


def _counterparty_errors(document: Document) -> List[FieldError]:
    field = _counterparty_field(document)
    who = "Vendor" if isinstance(document, PurchaseOrder) else "Customer"

    if not is_non_empty_string(document.counterparty_id):
        return [FieldError(field=field, message=f"{who} must be selected")]

    snapshot = _counterparty_snapshot(document)
    # Invoices and purchase orders may carry only the id; the name is resolved at render time
    if snapshot is None:
        return []

    if isinstance(document, PurchaseOrder):
        if not is_non_empty_string(snapshot.name):
            return [FieldError(field=field, message="Vendor must have a name")]
        return []

    if not is_non_empty_string(snapshot.name) and not is_non_empty_string(snapshot.company or ""):
        return [FieldError(field=field, message="Customer must have either a name or company")]
    return []


def _item_errors_for_export(document: Document) -> List[FieldError]:
    if not document.items:
        return [FieldError(field="items", message="At least one line item is required")]

    errors: List[FieldError] = []
    for index, item in enumerate(document.items):
        prefix = f"items[{index}]"
        if not is_non_negative_number(item.quantity):
            errors.append(FieldError(field=f"{prefix}.quantity", message="Quantity cannot be negative"))
        elif isinstance(document, Quote) and not is_integer(item.quantity):
            errors.append(FieldError(field=f"{prefix}.quantity", message="Quantity must be a whole number"))
        if not is_non_negative_number(item.unit_price):
            errors.append(FieldError(
                field=f"{prefix}.unitPrice",
                message="Unit price must be a valid number (>= 0)",
            ))
        if item.tax_percent is not None and not is_in_range(item.tax_percent, 0, 100):
            errors.append(FieldError(
                field=f"{prefix}.taxPercent",
                message="Tax percent must be between 0 and 100",
            ))
        if item.tax is not None and not is_non_negative_number(item.tax):
            errors.append(FieldError(field=f"{prefix}.tax", message="Tax must be a valid non-negative number"))
        if isinstance(item, InvoiceItem):
            if not is_non_negative_number(item.amount_received):
                errors.append(FieldError(
                    field=f"{prefix}.amountReceived",
                    message="Amount received must be a valid non-negative number",
                ))
            elif item.amount_received > compute_line_totals(item).line_total:
                errors.append(FieldError(
                    field=f"{prefix}.amountReceived",
                    message="Amount received cannot exceed the line total",
                ))

    if not any(is_non_empty_string(item.reference) and item.unit_price > 0 for item in document.items):
        what = "vehicle type" if isinstance(document, Quote) else "description"
        errors.append(FieldError(
            field="items",
            message=f"At least one line item with {what} and price > 0 is required",
        ))
    return errors


def validate_quote_for_export(quote: Quote) -> ValidationResult:
    return validate_for_export(quote)


def validate_invoice_for_export(invoice: Invoice) -> ValidationResult:
    return validate_for_export(invoice)


def validate_purchase_order_for_export(po: PurchaseOrder) -> ValidationResult:
    return validate_for_export(po)


# --- Persistence tier ---

def _field_rules_for_save(document: Document) -> List[FieldError]:
    errors: List[FieldError] = []
    label = document.kind.label

    if is_non_empty_string(document.number) and not NUMBER_PATTERN.match(document.number.strip()):
        errors.append(FieldError(
            field="number",
            message=f"{label} number may only contain letters, digits, '-', '/' and '_'",
        ))

    if not is_non_empty_string(document.currency):
        errors.append(FieldError(field="currency", message="Currency is required"))

    allowed = STATUSES[document.kind]
    if document.status and document.status not in allowed:
        errors.append(FieldError(field="status", message=f"Status must be one of: {', '.join(allowed)}"))

    for index, item in enumerate(document.items):
        prefix = f"items[{index}]"
        if isinstance(document, Quote):
            if not is_non_empty_string(item.reference):
                errors.append(FieldError(field=f"{prefix}.vehicleTypeId", message="Vehicle type must be selected"))
            if not is_integer(item.quantity) or item.quantity < 1:
                errors.append(FieldError(
                    field=f"{prefix}.quantity",
                    message="Quantity must be a positive integer (>= 1)",
                ))
        else:
            if not is_non_empty_string(item.reference):
                errors.append(FieldError(field=f"{prefix}.description", message="Item description is required"))
            if not is_positive_number(item.quantity):
                errors.append(FieldError(field=f"{prefix}.quantity", message="Quantity must be greater than zero"))
            if isinstance(document, Invoice) and not is_positive_number(item.unit_price):
                errors.append(FieldError(field=f"{prefix}.unitPrice", message="Unit price must be greater than zero"))
    return errors


async def _guarded(check_name: str, check: Awaitable[List[FieldError]]) -> List[FieldError]:
    try:
        return await check
    except Exception as exc:
        logger.warning("validation lookup failed; check skipped", extra={
            "check": check_name,
            "error": repr(exc),
        })
        return []


async def _check_number_unique(document: Document, client: PersistenceClient,
                               exclude_id: Optional[str]) -> List[FieldError]:
    existing = await client.get_all_documents(document.kind)
    number = document.number.strip()
    for other in existing:
        if (other.number or "").strip() == number and other.id != exclude_id:
            return [FieldError(field="number", message=f"{document.kind.label} number must be unique")]
    return []


async def _check_counterparty_exists(document: Document, client: PersistenceClient) -> List[FieldError]:
    field = _counterparty_field(document)
    if isinstance(document, PurchaseOrder):
        vendor = await client.get_vendor_by_id(document.counterparty_id)
        if vendor is None:
            return [FieldError(field=field, message="Selected vendor does not exist")]
        return []
    customer = await client.get_customer_by_id(document.counterparty_id)
    if customer is None:
        return [FieldError(field=field, message="Selected customer does not exist")]
    return []


async def _check_quote_exists(quote_id: str, client: PersistenceClient) -> List[FieldError]:
    if await client.get_quote_by_id(quote_id) is None:
        return [FieldError(field="quoteId", message="Linked quote does not exist")]
    return []


async def _check_purchase_order_exists(po_id: str, client: PersistenceClient) -> List[FieldError]:
    if await client.get_purchase_order_by_id(po_id) is None:
        return [FieldError(field="purchaseOrderId", message="Linked purchase order does not exist")]
    return []


async def validate_for_save(
    document: Document,
    client: PersistenceClient,
    *,
    exclude_id: Optional[str] = None,
    check_uniqueness: bool = True,
    check_counterparty_exists: bool = True,
    check_links_exist: bool = True,
) -> ValidationResult:
    """
    exclude_id is the edit-mode rule: when updating, pass the document's own id
    so its stored copy does not count against the uniqueness check.
    """
    errors = list(validate_for_export(document).errors)
    errors.extend(_field_rules_for_save(document))

    checks = []
    if check_uniqueness and is_non_empty_string(document.number):
        checks.append(_guarded("number_unique", _check_number_unique(document, client, exclude_id)))
    if check_counterparty_exists and is_non_empty_string(document.counterparty_id):
        checks.append(_guarded("counterparty_exists", _check_counterparty_exists(document, client)))
    if check_links_exist and isinstance(document, Invoice):
        if is_non_empty_string(document.quote_id):
            checks.append(_guarded("quote_exists", _check_quote_exists(document.quote_id, client)))
        if is_non_empty_string(document.purchase_order_id):
            checks.append(_guarded(
                "purchase_order_exists",
                _check_purchase_order_exists(document.purchase_order_id, client),
            ))

    for found in await asyncio.gather(*checks):
        errors.extend(found)

    return ValidationResult(errors=errors)


async def validate_quote(quote: Quote, client: PersistenceClient, *,
                         exclude_quote_id: Optional[str] = None, **options) -> ValidationResult:
    return await validate_for_save(quote, client, exclude_id=exclude_quote_id, **options)


async def validate_invoice(invoice: Invoice, client: PersistenceClient, *,
                           exclude_invoice_id: Optional[str] = None, **options) -> ValidationResult:
    return await validate_for_save(invoice, client, exclude_id=exclude_invoice_id, **options)


async def validate_purchase_order(po: PurchaseOrder, client: PersistenceClient, *,
                                  exclude_purchase_order_id: Optional[str] = None,
                                  **options) -> ValidationResult:
    return await validate_for_save(po, client, exclude_id=exclude_purchase_order_id, **options)
