import base64
from io import BytesIO

import pytest
from PIL import Image

from rentaldocs.database import init_db, make_engine, make_session_factory
from rentaldocs.models import (
    BrandingSettings,
    Customer,
    Invoice,
    InvoiceItem,
    PurchaseOrder,
    PurchaseOrderItem,
    Quote,
    QuoteItem,
    Vendor,
)
from rentaldocs.persistence import TTLCache
from rentaldocs.store import SqlPersistenceClient


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def png_bytes(width=40, height=20, color=(200, 30, 30)) -> bytes:
    out = BytesIO()
    Image.new("RGB", (width, height), color).save(out, format="PNG")
    return out.getvalue()


def png_data_url(width=40, height=20) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes(width, height)).decode("ascii")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    engine = make_engine("sqlite://")
    init_db(engine)
    return SqlPersistenceClient(make_session_factory(engine), TTLCache(ttl=2.0, clock=clock))


@pytest.fixture
def branding():
    return BrandingSettings(
        company_name="Al Amal Transport",
        address="Warehouse 4, Industrial Area, Sharjah",
        vat_number="100200300400003",
        footer_address_english="PO Box 1234, Sharjah, UAE",
        footer_contact_english="Tel +971 6 000 0000",
        default_terms="Payment within 30 days",
    )


@pytest.fixture
def customer():
    return Customer(id="cus_1", name="Fatima Ali", company="Gulf Builders LLC")


@pytest.fixture
def vendor():
    return Vendor(id="ven_1", name="Desert Fleet Supplies")


@pytest.fixture
def quote(customer):
    return Quote(
        id="quo_1",
        number="AAT-20260101-0001",
        date="2026-01-01",
        valid_until="2026-01-31",
        customer=customer,
        items=[
            QuoteItem(vehicle_type_id="vt_1", vehicle_type_label="Sedan", vehicle_number="DXB 12345",
                      rental_basis="monthly", quantity=2, unit_price=100, tax_percent=5),
            QuoteItem(vehicle_type_id="vt_2", vehicle_type_label="Pickup Truck", rental_basis="hourly",
                      quantity=3, unit_price=50, tax_percent=5),
        ],
        notes="<p>Driver included</p><p>Fuel excluded</p>",
    )


@pytest.fixture
def invoice(customer):
    return Invoice(
        id="inv_1",
        number="INV-20260105-0001",
        date="2026-01-05",
        due_date="2026-02-05",
        customer_id=customer.id,
        customer=customer,
        items=[InvoiceItem(description="Sedan Rental", quantity=2, unit_price=100, tax_percent=5)],
    )


@pytest.fixture
def purchase_order(vendor):
    return PurchaseOrder(
        id="po_1",
        number="PO-20260110-0001",
        date="2026-01-10",
        vendor_id=vendor.id,
        vendor=vendor,
        items=[PurchaseOrderItem(description="Tyres", quantity=4, unit_price=250, tax_percent=5)],
    )
