from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import ValidationError

from .branding import BrandingResolver
from .config import get_settings
from .conversion import convert_quote_to_invoice
from .errors import DocumentRejected, ExportBlocked, RenderError, SaveFailed, UnknownFormat
from .logging_setup import setup_logger
from .middleware import log_request_middleware
from .models import DOCUMENT_TYPES, BrandingSettings, Document, DocumentKind
from .persistence import PersistenceClient, TTLCache
from .renderers import HtmlRenderer
from .service import export_document, resolve_counterparty_name, save_document
from .totals import apply_totals
from .validation import validate_for_export

logger = setup_logger(__name__)

KINDS = {
    "quotes": DocumentKind.QUOTE,
    "invoices": DocumentKind.INVOICE,
    "purchase-orders": DocumentKind.PURCHASE_ORDER,
}


def create_app(store: Optional[PersistenceClient] = None,
               branding: Optional[BrandingSettings] = None,
               resolver_factory=None) -> FastAPI:
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.store is None:
            from .database import SessionLocal, engine, init_db
            from .store import SqlPersistenceClient

            init_db(engine)
            app.state.store = SqlPersistenceClient(SessionLocal, TTLCache(settings.health_check_ttl_seconds))
        yield

    app = FastAPI(title="Rental Documents API", version="1.0.0", lifespan=lifespan)
    app.state.store = store
    app.state.branding = branding or BrandingSettings(currency=settings.default_currency)
    app.state.resolver_factory = resolver_factory or (lambda b: BrandingResolver(
        b,
        asset_base_url=settings.asset_base_url,
        data_dir=settings.data_dir,
        timeout=settings.image_timeout_seconds,
    ))
    app.middleware("http")(log_request_middleware)
    _register_routes(app)
    return app


# --- Dependencies ---

def get_store(request: Request) -> PersistenceClient:
    store = request.app.state.store
    if store is None:
        raise HTTPException(503, "Persistence is not configured")
    return store


def get_branding(request: Request) -> BrandingSettings:
    return request.app.state.branding


def get_kind(kind: str) -> DocumentKind:
    if kind not in KINDS:
        raise HTTPException(404, f"Unknown document type: {kind}")
    return KINDS[kind]


def parse_document(kind: DocumentKind, payload: Dict[str, Any]) -> Document:
    try:
        return DOCUMENT_TYPES[kind].model_validate(payload)
    except ValidationError as e:
        raise HTTPException(422, [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()])


async def load_document(store: PersistenceClient, kind: DocumentKind, doc_id: str) -> Document:
    try:
        document = await store.get_document(kind, doc_id)
    except Exception as e:
        logger.exception("document lookup failed", extra={"kind": kind.value, "id": doc_id})
        raise HTTPException(503, f"Failed to load {kind.label.lower()}") from e
    if document is None:
        raise HTTPException(404, f"{kind.label} not found")
    return document


def rejection(result) -> JSONResponse:
    return JSONResponse(status_code=422, content=result.to_wire())


def _register_routes(app: FastAPI) -> None:

    # --- Health ---
    @app.get("/healthz")
    async def healthz(request: Request):
        store = request.app.state.store
        database = await store.check_health() if store is not None else False
        return {"ok": True, "database": database}

    # --- Documents ---
    @app.post("/v1/{kind}/validate")
    async def validate_document(kind: str, payload: Dict[str, Any] = Body(...)):
        document = apply_totals(parse_document(get_kind(kind), payload))
        return validate_for_export(document).to_wire()

    @app.post("/v1/{kind}", status_code=201)
    async def create_document(kind: str, payload: Dict[str, Any] = Body(...),
                              store: PersistenceClient = Depends(get_store)):
        document = parse_document(get_kind(kind), payload)
        try:
            existing = await store.get_document(document.kind, document.id)
        except Exception as e:
            logger.exception("document lookup failed", extra={"kind": document.kind.value, "id": document.id})
            raise HTTPException(503, f"Failed to save {document.kind.label.lower()}") from e
        try:
            saved = await save_document(document, store, exclude_id=document.id if existing else None)
        except DocumentRejected as e:
            return rejection(e.result)
        except SaveFailed as e:
            raise HTTPException(503, str(e))
        return saved.to_wire()

    @app.get("/v1/{kind}/{doc_id}/export/{fmt}")
    async def export(kind: str, doc_id: str, fmt: str, request: Request,
                     store: PersistenceClient = Depends(get_store),
                     branding: BrandingSettings = Depends(get_branding)):
        document = await load_document(store, get_kind(kind), doc_id)
        resolver = request.app.state.resolver_factory(branding)
        try:
            blob, filename = await export_document(document, fmt, store, branding, resolver=resolver)
        except UnknownFormat as e:
            raise HTTPException(404, str(e))
        except ExportBlocked as e:
            return rejection(e.result)
        except RenderError as e:
            raise HTTPException(422, str(e))
        return Response(
            content=blob.content,
            media_type=blob.media_type,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.get("/v1/{kind}/{doc_id}/html", response_class=HTMLResponse)
    async def document_html(kind: str, doc_id: str, request: Request,
                            store: PersistenceClient = Depends(get_store),
                            branding: BrandingSettings = Depends(get_branding)):
        document = apply_totals(await load_document(store, get_kind(kind), doc_id))
        if not document.items:
            raise HTTPException(422, f"{document.kind.label} has no line items")
        name = await resolve_counterparty_name(document, store)
        blob = await HtmlRenderer().render(document, branding, name,
                                           resolver=request.app.state.resolver_factory(branding))
        return HTMLResponse(content=blob.content.decode("utf-8"))

    @app.post("/v1/quotes/{quote_id}/convert", status_code=201)
    async def convert_quote(quote_id: str,
                            store: PersistenceClient = Depends(get_store),
                            branding: BrandingSettings = Depends(get_branding)):
        quote = await load_document(store, DocumentKind.QUOTE, quote_id)
        try:
            invoice = convert_quote_to_invoice(quote, branding)
        except ValueError as e:
            raise HTTPException(422, str(e))
        return invoice.to_wire()


app = create_app()
