"""In-memory storage adapter."""

from ..core.id import IdFactory
from ..core.logging_config import get_logger
from ..schema.document import Document
from .documents import DocumentSummary, create_empty_document, summarize
from .errors import DocumentNotFoundError

logger = get_logger(__name__)


class MemoryStorage:
    """Keeps saved Document values in a dict. Used when no storage dir is set."""

    def __init__(self, ids: IdFactory | None = None):
        self.ids = ids or IdFactory()
        self._documents: dict[str, Document] = {}

    def create_empty_document(self, name: str, doc_id: str, now: str) -> Document:
        return create_empty_document(name, doc_id, now, self.ids.page())

    def load_document(self, doc_id: str) -> Document:
        try:
            return self._documents[doc_id]
        except KeyError:
            raise DocumentNotFoundError(doc_id) from None

    def save_document(self, doc: Document) -> None:
        self._documents[doc.id] = doc
        logger.debug("document_stored", doc_id=doc.id)

    def list_recent(self) -> list[DocumentSummary]:
        docs = sorted(self._documents.values(), key=lambda d: d.updated_at, reverse=True)
        return [summarize(doc) for doc in docs]

    def __contains__(self, doc_id: str) -> bool:
        return doc_id in self._documents
