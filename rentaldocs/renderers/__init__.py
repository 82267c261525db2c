from .base import Blob, DocumentRenderer, download
from .html import HtmlRenderer
from .pdf import PdfRenderer
from .spreadsheet import SpreadsheetRenderer
from .word import WordRenderer

RENDERERS = {
    "xlsx": SpreadsheetRenderer,
    "docx": WordRenderer,
    "pdf": PdfRenderer,
    "html": HtmlRenderer,
}

__all__ = [
    "Blob",
    "DocumentRenderer",
    "download",
    "HtmlRenderer",
    "PdfRenderer",
    "SpreadsheetRenderer",
    "WordRenderer",
    "RENDERERS",
]
