import asyncio

from rentaldocs.models import DocumentKind
from rentaldocs.persistence import Entity, TTLCache

from .conftest import FakeClock


def test_ttl_cache_expires():
    clock = FakeClock()
    cache = TTLCache(ttl=2.0, clock=clock)
    cache.set("database", True)
    assert cache.get("database") is True
    clock.advance(1.9)
    assert cache.get("database") is True
    clock.advance(0.2)
    assert cache.get("database") is None


def test_ttl_cache_clear():
    cache = TTLCache(ttl=60)
    cache.set("a", 1)
    cache.clear()
    assert cache.get("a") is None


def test_save_and_load_documents(store, customer, quote, invoice):
    async def scenario():
        await store.save(Entity.CUSTOMERS, customer)
        await store.save_document(quote)
        await store.save_document(invoice)
        return (
            await store.get_customer_by_id("cus_1"),
            await store.get_quote_by_id("quo_1"),
            await store.get_all_documents(DocumentKind.INVOICE),
        )

    found_customer, found_quote, invoices = asyncio.run(scenario())
    assert found_customer == customer
    assert found_quote.number == quote.number
    assert found_quote.items[0].vehicle_type_label == "Sedan"
    assert [doc.id for doc in invoices] == ["inv_1"]


def test_missing_entities_are_none(store, invoice):
    async def scenario():
        await store.save_document(invoice)
        return (
            await store.get_vendor_by_id("nope"),
            await store.get_by_id(Entity.QUOTES, ""),
            # right id, wrong kind
            await store.get_quote_by_id("inv_1"),
        )

    assert asyncio.run(scenario()) == (None, None, None)


def test_save_updates_in_place(store, invoice):
    async def scenario():
        await store.save_document(invoice)
        await store.save_document(invoice.model_copy(update={"status": "invoice_sent"}))
        return await store.get_all_documents(DocumentKind.INVOICE)

    invoices = asyncio.run(scenario())
    assert len(invoices) == 1
    assert invoices[0].status == "invoice_sent"


def test_save_assigns_missing_id(store, vendor):
    saved = asyncio.run(store.save(Entity.VENDORS, vendor.model_copy(update={"id": ""})))
    assert saved.id.startswith("ven_")


def test_delete(store, customer):
    async def scenario():
        await store.save(Entity.CUSTOMERS, customer)
        await store.delete(Entity.CUSTOMERS, customer.id)
        await store.delete(Entity.CUSTOMERS, "already-gone")
        return await store.get_customer_by_id(customer.id)

    assert asyncio.run(scenario()) is None


def test_health_check_is_cached(store, clock):
    calls = []
    real_factory = store.session_factory

    def counting_factory():
        calls.append(1)
        return real_factory()

    store.session_factory = counting_factory

    assert asyncio.run(store.check_health()) is True
    assert asyncio.run(store.check_health()) is True
    assert len(calls) == 1

    clock.advance(2.5)
    assert asyncio.run(store.check_health()) is True
    assert len(calls) == 2
