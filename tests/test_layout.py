import pytest

from rentaldocs.errors import RenderError
from rentaldocs.layout import build_columns, build_layout
from rentaldocs.models import DocumentKind, InvoiceItem, LineItem


def test_quote_columns_in_order():
    keys = [column.key for column in build_columns(DocumentKind.QUOTE)]
    assert keys == ["serialNumber", "vehicleNumber", "description", "rentalBasis", "quantity", "rate",
                    "grossAmount", "taxPercent", "taxAmount", "netAmount"]


def test_invoice_adds_received_column():
    assert build_columns(DocumentKind.INVOICE)[-1].key == "amountReceived"


def test_purchase_order_hides_vehicle_columns():
    keys = [column.key for column in build_columns(DocumentKind.PURCHASE_ORDER)]
    assert "vehicleNumber" not in keys
    assert "rentalBasis" not in keys


def test_numeric_columns_cannot_be_hidden():
    columns = build_columns(DocumentKind.QUOTE, {"description": False, "quantity": False})
    keys = [column.key for column in columns]
    assert "description" not in keys
    assert "quantity" in keys


def test_plan_numbers_match_totals(quote, branding):
    plan = build_layout(quote, branding)
    assert plan.title == "QUOTATION"
    assert plan.total_line("subtotal").text == "350.00"
    assert plan.total_line("tax").text == "17.50"
    assert plan.total_line("total").text == "367.50"
    first = plan.rows[0]
    assert first.text("netAmount") == "210.00"
    assert first.text("taxPercent") == "5.00"
    assert first.text("rentalBasis") == "Monthly"


def test_plan_sections(quote, branding):
    plan = build_layout(quote, branding)
    assert plan.company_lines == ["Warehouse 4, Industrial Area, Sharjah", "VAT: 100200300400003"]
    assert ("Valid Up To:", "2026-01-31") in plan.metadata
    assert plan.counterparty[0] == ("Name:", "Fatima Ali")
    assert plan.notes_lines == ["Driver included", "Fuel excluded"]
    assert plan.terms_lines == ["Payment within 30 days"]
    assert plan.footer.lines == ["PO Box 1234, Sharjah, UAE", "Tel +971 6 000 0000"]
    assert plan.filename_stem == "quote-AAT-20260101-0001"


def test_counterparty_name_override(quote, branding):
    plan = build_layout(quote, branding, counterparty_name="Gulf Builders LLC")
    assert plan.counterparty[0] == ("Name:", "Gulf Builders LLC")


def test_invoice_terms_prefer_invoice_default(invoice, branding):
    branding = branding.model_copy(update={"default_invoice_terms": "<p>Bank transfer only</p>"})
    assert build_layout(invoice, branding).terms_lines == ["Bank transfer only"]


def test_invoice_receipt_lines_only_when_paid(invoice, branding):
    plan = build_layout(invoice, branding)
    assert plan.total_line("amountReceived") is None

    paid = invoice.model_copy(update={"items": [
        InvoiceItem(description="Sedan Rental", quantity=2, unit_price=100, tax_percent=5, amount_received=100),
    ]})
    plan = build_layout(paid, branding)
    assert plan.total_line("amountReceived").text == "100.00"
    assert plan.total_line("pending").text == "110.00"


def test_flat_tax_row_has_no_percent(invoice, branding):
    legacy = invoice.model_copy(update={"items": [InvoiceItem(description="Van", quantity=1, unit_price=100, tax=5)]})
    row = build_layout(legacy, branding).rows[0]
    assert row.tax_percent is None
    assert row.text("taxPercent") == "-"
    assert row.text("taxAmount") == "5.00"


def test_no_items_raises(invoice, branding):
    with pytest.raises(RenderError):
        build_layout(invoice.model_copy(update={"items": []}), branding)
