"""
SQLAlchemy tables behind SqlPersistenceClient.

Every row keeps the full wire payload as JSON; the scalar columns are copies
for lookups and listings.
"""
from sqlalchemy import Column, String, Float, DateTime, JSON, Index
from datetime import datetime
import uuid

from .database import Base


def gen_id(prefix: str):
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


class CustomerRecord(Base):
    __tablename__ = "customers"

    id = Column(String, primary_key=True, default=lambda: gen_id("cus"))
    name = Column(String(255), nullable=False, default="")
    company = Column(String(255), nullable=True)

    payload = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class VendorRecord(Base):
    __tablename__ = "vendors"

    id = Column(String, primary_key=True, default=lambda: gen_id("ven"))
    name = Column(String(255), nullable=False, default="")

    payload = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class DocumentRecord(Base):
    """Quote, invoice or purchase order, told apart by `kind`"""
    __tablename__ = "documents"

    id = Column(String, primary_key=True, default=lambda: gen_id("doc"))
    kind = Column(String(20), nullable=False)

    number = Column(String(100), nullable=False)
    status = Column(String(20), default="draft")
    counterparty_id = Column(String, nullable=True)

    payload = Column(JSON, nullable=False)

    # Totals as last computed, for listings
    subtotal = Column(Float, default=0)
    tax_total = Column(Float, default=0)
    grand_total = Column(Float, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (Index("ix_documents_kind_number", "kind", "number"),)
