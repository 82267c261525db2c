"""
Save and export flows.

Both actions recompute totals first, so what is validated, stored and
rendered always carries the same numbers. Validation failures come back as
DocumentRejected / ExportBlocked with the full result attached; collaborator
failures during a save are wrapped in SaveFailed.
"""
from typing import Dict, Optional, Tuple

from .branding import BrandingResolver
from .errors import DocumentRejected, ExportBlocked, SaveFailed, UnknownFormat
from .logging_setup import setup_logger
from .models import BrandingSettings, Document, PurchaseOrder
from .persistence import PersistenceClient
from .renderers import RENDERERS, Blob
from .totals import apply_totals
from .validation import validate_for_export, validate_for_save

logger = setup_logger(__name__)


async def save_document(document: Document, client: PersistenceClient, *,
                        exclude_id: Optional[str] = None, **options) -> Document:
    document = apply_totals(document)
    result = await validate_for_save(document, client, exclude_id=exclude_id, **options)
    if not result.is_valid:
        logger.info("save rejected", extra={
            "kind": document.kind.value,
            "number": document.number,
            "fields": sorted(result.fields()),
        })
        raise DocumentRejected(result)

    try:
        return await client.save_document(document)
    except Exception as exc:
        logger.exception("save failed", extra={"kind": document.kind.value, "number": document.number})
        raise SaveFailed(f"Failed to save {document.kind.label.lower()}", cause=exc) from exc


async def resolve_counterparty_name(document: Document, client: Optional[PersistenceClient]) -> str:
    """Look the counterparty up by id; fall back to the embedded snapshot."""
    snapshot = document.counterparty_name
    if client is None or not document.counterparty_id:
        return snapshot
    try:
        if isinstance(document, PurchaseOrder):
            found = await client.get_vendor_by_id(document.counterparty_id)
        else:
            found = await client.get_customer_by_id(document.counterparty_id)
    except Exception as exc:
        logger.warning("counterparty lookup failed; using snapshot", extra={
            "counterparty_id": document.counterparty_id,
            "error": repr(exc),
        })
        return snapshot
    if found is None:
        return snapshot
    return found.display_name or snapshot


async def export_document(
    document: Document,
    fmt: str,
    client: Optional[PersistenceClient],
    branding: BrandingSettings,
    *,
    resolver: Optional[BrandingResolver] = None,
    save_first: bool = False,
    visible_columns: Optional[Dict[str, bool]] = None,
) -> Tuple[Blob, str]:
    renderer_type = RENDERERS.get(fmt)
    if renderer_type is None:
        raise UnknownFormat(f"Unknown export format: {fmt}")

    document = apply_totals(document)
    result = validate_for_export(document)
    if not result.is_valid:
        raise ExportBlocked(result)

    if save_first:
        # create flow: the document is persisted before it is exported
        if client is None:
            raise SaveFailed("No persistence client to save to")
        # its own stored copy does not count against the uniqueness check
        document = await save_document(document, client, exclude_id=document.id)

    name = await resolve_counterparty_name(document, client)
    renderer = renderer_type()
    blob = await renderer.render(document, branding, name, resolver=resolver, visible_columns=visible_columns)
    return blob, renderer.filename(document)
