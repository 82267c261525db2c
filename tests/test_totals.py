import pytest

from rentaldocs.models import FlatTax, Invoice, InvoiceItem, LineItem, PercentTax, QuoteItem
from rentaldocs.totals import (
    apply_totals,
    compute_document_totals,
    compute_line_totals,
    format_money,
    format_percent,
    format_quantity,
)


def test_line_totals_with_percent_tax():
    line = compute_line_totals(LineItem(quantity=2, unit_price=100, tax_percent=5))
    assert line.gross_amount == 200
    assert line.line_tax_amount == 10
    assert line.line_total == 210


@pytest.mark.parametrize("quantity,price,percent", [(0, 0, 0), (1, 99.99, 5), (7, 12.5, 0), (2.5, 40, 15)])
def test_line_total_is_gross_plus_tax(quantity, price, percent):
    line = compute_line_totals(LineItem(quantity=quantity, unit_price=price, tax_percent=percent))
    assert line.gross_amount == quantity * price
    assert line.line_total == line.gross_amount + line.line_tax_amount


def test_percent_tax_wins_over_flat_tax():
    item = LineItem(quantity=2, unit_price=100, tax_percent=5, tax=99)
    assert item.tax_rule() == PercentTax(5)
    assert compute_line_totals(item).line_tax_amount == 10
    # legacy value is kept for display
    assert item.tax == 99


def test_flat_tax_used_without_percent():
    item = LineItem(quantity=2, unit_price=100, tax=7)
    assert item.tax_rule() == FlatTax(7)
    assert compute_line_totals(item).line_total == 207


def test_non_numeric_input_coerces_to_zero():
    item = LineItem(quantity="abc", unit_price=None, tax_percent="")
    assert item.quantity == 0
    assert item.unit_price == 0
    assert item.tax_percent is None


def test_item_tax_overrides_document_tax():
    items = [LineItem(quantity=1, unit_price=100, tax_percent=5)]
    totals = compute_document_totals(items, fallback_tax=40)
    assert totals.tax == 5
    assert totals.total == totals.subtotal + totals.tax


def test_document_tax_used_when_items_carry_none():
    items = [LineItem(quantity=1, unit_price=100)]
    totals = compute_document_totals(items, fallback_tax=12.5)
    assert totals.tax == 12.5
    assert totals.total == 112.5
    assert not totals.uses_item_tax


def test_document_totals_idempotent():
    items = [LineItem(quantity=3, unit_price=33.33, tax_percent=5), LineItem(quantity=1, unit_price=0.1)]
    assert compute_document_totals(items) == compute_document_totals(items)


def test_invoice_receipts_from_items_win():
    items = [
        InvoiceItem(description="A", quantity=1, unit_price=100, amount_received=60),
        InvoiceItem(description="B", quantity=1, unit_price=100, amount_received=20),
    ]
    totals = compute_document_totals(items, fallback_received=5)
    assert totals.amount_received == 80
    assert totals.pending == 120


def test_invoice_receipts_fall_back_to_document_field():
    items = [InvoiceItem(description="A", quantity=1, unit_price=100)]
    totals = compute_document_totals(items, fallback_received=30)
    assert totals.amount_received == 30


def test_apply_totals_returns_refreshed_copy():
    invoice = Invoice(
        number="INV-1",
        items=[InvoiceItem(description="Sedan Rental", quantity=2, unit_price=100, tax_percent=5),
               InvoiceItem(description="Driver", quantity=1, unit_price=50)],
        total=999,
    )
    refreshed = apply_totals(invoice)

    assert invoice.total == 999
    assert invoice.items[0].line_total == 0
    assert refreshed.subtotal == 250
    assert refreshed.tax == 10
    assert refreshed.total == 260
    assert [item.serial_number for item in refreshed.items] == [1, 2]
    assert refreshed.items[0].line_total == 210
    assert refreshed.pending == 260


def test_quote_item_reference_falls_back_to_vehicle():
    assert QuoteItem(vehicle_type_label="Sedan").reference == "Sedan"
    assert QuoteItem(description="Chauffeur", vehicle_type_label="Sedan").reference == "Chauffeur"


def test_format_money():
    assert format_money(210) == "210.00"
    assert format_money(1234.5) == "1,234.50"
    assert format_money(None) == "0.00"


def test_format_quantity():
    assert format_quantity(3) == "3"
    assert format_quantity(2.5) == "2.5"
    assert format_quantity(1.25) == "1.25"


def test_format_money_rounds_half_cents_up():
    assert format_money(0.125) == "0.13"
    assert format_money(1.005) == "1.01"
    assert format_money(2.675) == "2.68"
    assert format_money(-0.125) == "-0.13"
    assert format_money(1234567.895) == "1,234,567.90"


def test_format_quantity_rounds_half_up():
    assert format_quantity(1.005) == "1.01"
    assert format_quantity(2.999) == "3"


def test_format_percent():
    assert format_percent(5) == "5.00"
    assert format_percent(12.345) == "12.35"


def test_half_cent_tax_line():
    line = compute_line_totals(LineItem(quantity=1, unit_price=2.5, tax_percent=5))
    assert line.line_tax_amount == 0.125
    assert format_money(line.line_tax_amount) == "0.13"
    assert format_money(line.line_total) == "2.63"
