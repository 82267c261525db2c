"""
SQLAlchemy implementation of the persistence contract.

Each save runs in its own transaction and is rolled back on any error, so a
document is either fully written or not at all.
"""
from typing import Any, List, Optional

from pydantic import BaseModel
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .db_models import CustomerRecord, DocumentRecord, VendorRecord, gen_id
from .logging_setup import setup_logger
from .models import Document
from .persistence import Entity, PersistenceClient, TTLCache

logger = setup_logger(__name__)

_DOCUMENT_KINDS = {
    Entity.QUOTES: "quote",
    Entity.INVOICES: "invoice",
    Entity.PURCHASE_ORDERS: "purchase_order",
}

_ID_PREFIXES = {
    Entity.CUSTOMERS: "cus",
    Entity.VENDORS: "ven",
    Entity.QUOTES: "quo",
    Entity.INVOICES: "inv",
    Entity.PURCHASE_ORDERS: "po",
}


class SqlPersistenceClient(PersistenceClient):

    def __init__(self, session_factory: sessionmaker, health_cache: Optional[TTLCache] = None):
        self.session_factory = session_factory
        self.health_cache = health_cache if health_cache is not None else TTLCache(ttl=2.0)

    # --- Helpers ---

    @staticmethod
    def _record_type(entity: Entity):
        if entity == Entity.CUSTOMERS:
            return CustomerRecord
        if entity == Entity.VENDORS:
            return VendorRecord
        return DocumentRecord

    @staticmethod
    def _to_model(entity: Entity, row) -> Any:
        return entity.model.model_validate(row.payload)

    def _fill(self, entity: Entity, row, obj: BaseModel) -> None:
        row.payload = obj.model_dump(mode="json", by_alias=True)
        if entity in (Entity.CUSTOMERS, Entity.VENDORS):
            row.name = obj.name or ""
        if entity == Entity.CUSTOMERS:
            row.company = obj.company
        elif isinstance(obj, Document):
            row.kind = _DOCUMENT_KINDS[entity]
            row.number = obj.number
            row.status = obj.status
            row.counterparty_id = obj.counterparty_id or None
            row.subtotal = obj.subtotal
            row.tax_total = obj.tax
            row.grand_total = obj.total

    # --- Contract ---

    async def get_all(self, entity: Entity) -> List[Any]:
        record_type = self._record_type(entity)
        stmt = select(record_type)
        if record_type is DocumentRecord:
            stmt = stmt.where(DocumentRecord.kind == _DOCUMENT_KINDS[entity])
        with self.session_factory() as db:
            rows = db.scalars(stmt.order_by(record_type.created_at)).all()
            return [self._to_model(entity, row) for row in rows]

    async def get_by_id(self, entity: Entity, entity_id: str) -> Optional[Any]:
        if not entity_id:
            return None
        record_type = self._record_type(entity)
        with self.session_factory() as db:
            row = db.get(record_type, entity_id)
            if row is None:
                return None
            if record_type is DocumentRecord and row.kind != _DOCUMENT_KINDS[entity]:
                return None
            return self._to_model(entity, row)

    async def save(self, entity: Entity, obj: BaseModel) -> Any:
        if not getattr(obj, "id", None):
            obj = obj.model_copy(update={"id": gen_id(_ID_PREFIXES[entity])})
        record_type = self._record_type(entity)
        with self.session_factory() as db:
            try:
                row = db.get(record_type, obj.id)
                if row is None:
                    row = record_type(id=obj.id)
                    db.add(row)
                self._fill(entity, row, obj)
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                logger.exception("save failed", extra={"entity": entity.value, "entity_id": obj.id})
                raise
        logger.info("saved", extra={"entity": entity.value, "entity_id": obj.id})
        return obj

    async def delete(self, entity: Entity, entity_id: str) -> None:
        record_type = self._record_type(entity)
        with self.session_factory() as db:
            row = db.get(record_type, entity_id)
            if row is None:
                return
            try:
                db.delete(row)
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise

    async def check_health(self) -> bool:
        cached = self.health_cache.get("database")
        if cached is not None:
            return cached
        try:
            with self.session_factory() as db:
                db.execute(text("SELECT 1"))
            healthy = True
        except SQLAlchemyError as exc:
            logger.warning("database health check failed", extra={"error": repr(exc)})
            healthy = False
        self.health_cache.set("database", healthy)
        return healthy
