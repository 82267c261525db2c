"""
Contract for the persistence collaborator.

get_by_id returns None when the entity does not exist; callers (validation,
conversion) rely on that instead of an exception. Anything raised means the
collaborator itself failed.
"""
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

from pydantic import BaseModel

from .models import Customer, Document, DocumentKind, Invoice, PurchaseOrder, Quote, Vendor


class Entity(str, Enum):
    CUSTOMERS = "customers"
    VENDORS = "vendors"
    QUOTES = "quotes"
    INVOICES = "invoices"
    PURCHASE_ORDERS = "purchase_orders"

    @property
    def model(self):
        return ENTITY_MODELS[self]

    @classmethod
    def for_kind(cls, kind: DocumentKind) -> "Entity":
        return {
            DocumentKind.QUOTE: cls.QUOTES,
            DocumentKind.INVOICE: cls.INVOICES,
            DocumentKind.PURCHASE_ORDER: cls.PURCHASE_ORDERS,
        }[kind]


ENTITY_MODELS = {
    Entity.CUSTOMERS: Customer,
    Entity.VENDORS: Vendor,
    Entity.QUOTES: Quote,
    Entity.INVOICES: Invoice,
    Entity.PURCHASE_ORDERS: PurchaseOrder,
}


V = TypeVar("V")


class TTLCache(Generic[V]):
    """Small expiring key/value cache. The clock is injectable for tests."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[Hashable, Tuple[float, V]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self.clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: V) -> None:
        self._entries[key] = (self.clock(), value)

    def clear(self) -> None:
        self._entries.clear()


class PersistenceClient(ABC):

    @abstractmethod
    async def get_all(self, entity: Entity) -> List[Any]:
        ...

    @abstractmethod
    async def get_by_id(self, entity: Entity, entity_id: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def save(self, entity: Entity, obj: BaseModel) -> Any:
        ...

    @abstractmethod
    async def delete(self, entity: Entity, entity_id: str) -> None:
        ...

    async def check_health(self) -> bool:
        return True

    # --- Named lookups ---

    async def get_customer_by_id(self, customer_id: str) -> Optional[Customer]:
        return await self.get_by_id(Entity.CUSTOMERS, customer_id)

    async def get_vendor_by_id(self, vendor_id: str) -> Optional[Vendor]:
        return await self.get_by_id(Entity.VENDORS, vendor_id)

    async def get_quote_by_id(self, quote_id: str) -> Optional[Quote]:
        return await self.get_by_id(Entity.QUOTES, quote_id)

    async def get_invoice_by_id(self, invoice_id: str) -> Optional[Invoice]:
        return await self.get_by_id(Entity.INVOICES, invoice_id)

    async def get_purchase_order_by_id(self, po_id: str) -> Optional[PurchaseOrder]:
        return await self.get_by_id(Entity.PURCHASE_ORDERS, po_id)

    async def get_all_documents(self, kind: DocumentKind) -> List[Document]:
        return await self.get_all(Entity.for_kind(kind))

    async def get_document(self, kind: DocumentKind, document_id: str) -> Optional[Document]:
        return await self.get_by_id(Entity.for_kind(kind), document_id)

    async def save_document(self, document: Document) -> Document:
        return await self.save(Entity.for_kind(document.kind), document)
