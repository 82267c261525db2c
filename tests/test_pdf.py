import asyncio
import re

from rentaldocs.layout import build_layout
from rentaldocs.models import QuoteItem
from rentaldocs.renderers import PdfRenderer

PAGE = re.compile(rb"/Type\s*/Page\b")


def render(document, branding):
    return asyncio.run(PdfRenderer().render(document, branding))


def test_renders_pdf(invoice, branding):
    blob = render(invoice, branding)
    assert blob.media_type == "application/pdf"
    assert blob.content.startswith(b"%PDF")
    assert len(PAGE.findall(blob.content)) >= 1


def test_long_documents_paginate(quote, branding):
    items = [
        QuoteItem(vehicle_type_label=f"Vehicle {n}", vehicle_number=f"SHJ {n:05d}", quantity=1, unit_price=100,
                  tax_percent=5)
        for n in range(60)
    ]
    blob = render(quote.model_copy(update={"items": items}), branding)
    assert len(PAGE.findall(blob.content)) > 1


def test_table_data_matches_plan(quote, branding):
    renderer = PdfRenderer()
    plan = build_layout(quote, branding)

    table = renderer.items_table_data(plan)
    assert table[0][:3] == ["#", "Vehicle", "Description"]
    assert table[1][-1] == "210.00"
    assert len(table) == 3

    totals = renderer.totals_table_data(plan)
    assert totals[-1] == ["TOTAL:", "367.50 AED"]
