import asyncio

from rentaldocs.models import Customer, Invoice, InvoiceItem, PurchaseOrder, Quote, QuoteItem
from rentaldocs.persistence import Entity
from rentaldocs.totals import apply_totals
from rentaldocs.validation import (
    validate_for_export,
    validate_invoice,
    validate_invoice_for_export,
    validate_purchase_order,
    validate_quote,
    validate_quote_for_export,
)


class BrokenStore:
    """Every lookup fails, as if the API were down."""

    async def get_all_documents(self, kind):
        raise ConnectionError("api down")

    async def get_customer_by_id(self, customer_id):
        raise ConnectionError("api down")

    async def get_vendor_by_id(self, vendor_id):
        raise ConnectionError("api down")

    async def get_quote_by_id(self, quote_id):
        raise ConnectionError("api down")

    async def get_purchase_order_by_id(self, po_id):
        raise ConnectionError("api down")


def sedan_invoice(**overrides):
    fields = dict(
        id="inv_a",
        number="INV-001",
        date="2026-03-01",
        customer_id="cus_1",
        customer=Customer(id="cus_1", name="Fatima Ali"),
        items=[InvoiceItem(description="Sedan Rental", quantity=2, unit_price=100, tax=0)],
    )
    fields.update(overrides)
    return Invoice(**fields)


# --- Export tier ---

def test_valid_documents_pass(quote, invoice, purchase_order):
    assert validate_quote_for_export(quote).is_valid
    assert validate_invoice_for_export(invoice).is_valid
    assert validate_for_export(purchase_order).is_valid


def test_invoice_totals_and_overpayment():
    invoice = apply_totals(sedan_invoice())
    assert (invoice.subtotal, invoice.tax, invoice.total) == (200, 0, 200)
    assert validate_for_export(invoice).is_valid

    overpaid = sedan_invoice(amount_received=250)
    result = validate_for_export(overpaid)
    assert not result.is_valid
    assert result.messages_for("amountReceived") == ["Amount received cannot exceed the invoice total"]


def test_quote_without_customer_id_fails(quote):
    quote = quote.model_copy(update={"customer": Customer(id="", name="Walk-in")})
    result = validate_for_export(quote)
    assert "customer" in result.fields()


def test_quote_customer_with_company_only_passes(quote):
    quote = quote.model_copy(update={"customer": Customer(id="cus_9", company="Gulf Builders LLC")})
    result = validate_for_export(quote)
    assert result.is_valid


def test_quote_customer_without_name_or_company_fails(quote):
    quote = quote.model_copy(update={"customer": Customer(id="cus_9")})
    result = validate_for_export(quote)
    assert result.messages_for("customer") == ["Customer must have either a name or company"]


def test_missing_number_and_bad_date():
    result = validate_for_export(sedan_invoice(number="  ", date="yesterday"))
    assert result.messages_for("number") == ["Invoice number is required"]
    assert result.messages_for("date") == ["Valid invoice date is required"]


def test_due_date_before_date():
    result = validate_for_export(sedan_invoice(due_date="2026-02-01"))
    assert result.messages_for("dueDate") == ["Due date must be on or after the invoice date"]


def test_valid_until_not_a_date(quote):
    result = validate_for_export(quote.model_copy(update={"valid_until": "soon"}))
    assert result.messages_for("validUntil") == ["Valid Until must be a valid date"]


def test_no_items():
    result = validate_for_export(sedan_invoice(items=[]))
    assert "At least one line item is required" in result.messages_for("items")
    assert "total" in result.fields()


def test_items_need_a_priced_reference():
    result = validate_for_export(sedan_invoice(items=[InvoiceItem(description="", quantity=1, unit_price=10)]))
    assert result.messages_for("items") == ["At least one line item with description and price > 0 is required"]


def test_item_level_errors_are_indexed():
    items = [
        InvoiceItem(description="Sedan Rental", quantity=1, unit_price=100),
        InvoiceItem(description="Bad", quantity=-1, unit_price=-5, tax_percent=120, tax=-1),
    ]
    fields = validate_for_export(sedan_invoice(items=items)).fields()
    assert {"items[1].quantity", "items[1].unitPrice", "items[1].taxPercent", "items[1].tax"} <= fields


def test_item_receipt_above_line_total():
    items = [InvoiceItem(description="Sedan Rental", quantity=1, unit_price=100, amount_received=150)]
    result = validate_for_export(sedan_invoice(items=items))
    assert "items[0].amountReceived" in result.fields()


def test_purchase_order_without_vendor():
    po = PurchaseOrder(number="PO-1", date="2026-01-01",
                       items=[{"description": "Tyres", "quantity": 1, "unitPrice": 10}])
    assert validate_for_export(po).messages_for("vendorId") == ["Vendor must be selected"]


def test_export_validation_is_pure(invoice):
    assert validate_for_export(invoice) == validate_for_export(invoice)


def test_result_wire_shape():
    wire = validate_for_export(sedan_invoice(number="")).to_wire()
    assert wire["isValid"] is False
    assert wire["errors"][0] == {"field": "number", "message": "Invoice number is required"}


# --- Persistence tier ---

def test_duplicate_invoice_number_flagged(store, customer):
    async def scenario():
        await store.save(Entity.CUSTOMERS, customer)
        await store.save(Entity.INVOICES, sedan_invoice(id="inv_other"))
        return await validate_invoice(sedan_invoice(id="inv_new"), store)

    result = asyncio.run(scenario())
    assert any("unique" in message for message in result.messages_for("number"))


def test_exclude_own_id_on_update(store, customer):
    async def scenario():
        await store.save(Entity.CUSTOMERS, customer)
        await store.save(Entity.INVOICES, sedan_invoice())
        return await validate_invoice(sedan_invoice(notes="edited"), store, exclude_invoice_id="inv_a")

    result = asyncio.run(scenario())
    assert result.is_valid, result.errors


def test_dangling_references(store):
    async def scenario():
        invoice = sedan_invoice(customer_id="cus_missing", quote_id="quo_gone", purchase_order_id="po_gone")
        return await validate_invoice(invoice, store)

    result = asyncio.run(scenario())
    assert result.messages_for("customerId") == ["Selected customer does not exist"]
    assert result.messages_for("quoteId") == ["Linked quote does not exist"]
    assert result.messages_for("purchaseOrderId") == ["Linked purchase order does not exist"]


def test_missing_vendor(store, purchase_order):
    result = asyncio.run(validate_purchase_order(purchase_order, store))
    assert result.messages_for("vendorId") == ["Selected vendor does not exist"]


def test_lookup_failures_skip_checks(caplog):
    invoice = sedan_invoice(quote_id="quo_1")
    with caplog.at_level("WARNING"):
        result = asyncio.run(validate_invoice(invoice, BrokenStore()))
    assert result.is_valid
    assert "check skipped" in caplog.text


def test_persistence_field_rules(store, customer):
    quote = Quote(
        number="AAT 0001",
        date="2026-01-01",
        currency="",
        status="archived",
        customer=customer,
        items=[QuoteItem(vehicle_type_label="Sedan", quantity=1.5, unit_price=100)],
    )

    async def scenario():
        await store.save(Entity.CUSTOMERS, customer)
        return await validate_quote(quote, store)

    fields = asyncio.run(scenario()).fields()
    assert {"number", "currency", "status", "items[0].quantity"} <= fields


def test_disabled_checks(store):
    invoice = sedan_invoice(customer_id="cus_missing", quote_id="quo_gone")
    result = asyncio.run(validate_invoice(
        invoice, store, check_counterparty_exists=False, check_links_exist=False,
    ))
    assert result.is_valid


def test_fractional_quote_quantity_blocks_export(quote):
    items = [quote.items[0].model_copy(update={"quantity": 1.5}), quote.items[1]]
    result = validate_for_export(quote.model_copy(update={"items": items}))
    assert result.messages_for("items[0].quantity") == ["Quantity must be a whole number"]


def test_fractional_invoice_quantity_allowed():
    items = [InvoiceItem(description="Sedan Rental", quantity=1.5, unit_price=100)]
    assert validate_for_export(sedan_invoice(items=items)).is_valid


def test_stored_number_with_whitespace_still_duplicates(store, customer):
    async def scenario():
        await store.save(Entity.CUSTOMERS, customer)
        await store.save(Entity.INVOICES, sedan_invoice(id="inv_old", number="INV-001 "))
        return await validate_invoice(sedan_invoice(id="inv_new", number="INV-001"), store)

    result = asyncio.run(scenario())
    assert result.messages_for("number") == ["Invoice number must be unique"]
