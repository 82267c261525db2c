"""
Renderer contract shared by the spreadsheet, word, PDF and HTML backends.

A render loads the branding images, builds the layout plan and hands it to
the backend's ``paint``. Callers must run export tier validation first; a
document without line items raises RenderError.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Dict, Optional, Union

from ..branding import BrandImages, BrandingResolver
from ..errors import RenderError
from ..layout import LayoutPlan, build_layout
from ..logging_setup import setup_logger
from ..models import BrandingSettings, Document, Invoice, PurchaseOrder, Quote

logger = setup_logger(__name__)


@dataclass(frozen=True)
class Blob:
    content: bytes
    media_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def download(blob: Blob, filename: str, directory: Union[str, Path] = ".", extension: Optional[str] = None) -> Path:
    """Write the artifact to disk and return where it went."""
    if extension and not filename.endswith(f".{extension}"):
        filename = f"{filename}.{extension}"
    target = Path(directory) / filename
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(blob.content)
    logger.info("document written", extra={"path": str(target), "bytes": blob.size})
    return target


class DocumentRenderer(ABC):
    extension: ClassVar[str]
    media_type: ClassVar[str]

    @abstractmethod
    def paint(self, plan: LayoutPlan) -> bytes:
        ...

    async def render(self, document: Document, branding: BrandingSettings,
                     counterparty_name: Optional[str] = None, *,
                     resolver: Optional[BrandingResolver] = None,
                     visible_columns: Optional[Dict[str, bool]] = None) -> Blob:
        if not document.items:
            raise RenderError(f"{document.kind.label} {document.number or document.id} has no line items")

        resolver = resolver or BrandingResolver(branding)
        images: BrandImages = await resolver.load_all()
        plan = build_layout(document, branding, counterparty_name, images, visible_columns)
        content = self.paint(plan)
        logger.info("document rendered", extra={
            "kind": document.kind.value,
            "number": document.number,
            "format": self.extension,
            "bytes": len(content),
        })
        return Blob(content=content, media_type=self.media_type)

    async def render_quote(self, quote: Quote, branding: BrandingSettings,
                           customer_name: Optional[str] = None, **options) -> Blob:
        return await self.render(quote, branding, customer_name, **options)

    async def render_invoice(self, invoice: Invoice, branding: BrandingSettings,
                             customer_name: Optional[str] = None, **options) -> Blob:
        return await self.render(invoice, branding, customer_name, **options)

    async def render_purchase_order(self, po: PurchaseOrder, branding: BrandingSettings,
                                    vendor_name: Optional[str] = None, **options) -> Blob:
        return await self.render(po, branding, vendor_name, **options)

    def filename(self, document: Document) -> str:
        return f"{document.filename_stem}.{self.extension}"

    def download(self, blob: Blob, filename: str, directory: Union[str, Path] = ".") -> Path:
        return download(blob, filename, directory, extension=self.extension)
