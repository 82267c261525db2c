from typing import Optional


class DocumentError(Exception):
    """Base class for failures the save/export actions report to the user."""


class DocumentRejected(DocumentError):
    """Persistence tier validation failed; the document was not saved."""

    def __init__(self, result, message: str = "Document failed validation"):
        super().__init__(message)
        self.result = result


class ExportBlocked(DocumentError):
    """Export tier validation failed; nothing was rendered."""

    def __init__(self, result, message: str = "Document is not ready for export"):
        super().__init__(message)
        self.result = result


class SaveFailed(DocumentError):
    """The persistence collaborator could not store the document."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class RenderError(DocumentError):
    """The document cannot produce a meaningful artifact (e.g. it has no line items)."""


class UnknownFormat(DocumentError):
    pass
