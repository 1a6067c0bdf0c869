"""
File-backed storage adapter.

One envelope file per document (``<dir>/<docId><extension>``). Writes are
skipped when the document fingerprint has not changed since the last load
or save, and loads reject files that contain dangling references.
"""

import os
from pathlib import Path

from returns.pipeline import is_successful

from ..core.hash import document_fingerprint
from ..core.id import IdFactory
from ..core.logging_config import get_logger
from ..schema.document import Document
from ..schema.integrity import validate_document
from .documents import DocumentSummary, create_empty_document, summarize
from .envelope import deserialize_project, serialize_project
from .errors import DocumentNotFoundError, EnvelopeError, StorageError

logger = get_logger(__name__)


class FileStorage:
    """Stores each document as an envelope file in a directory."""

    def __init__(self, directory: str | Path, extension: str = ".canvas", ids: IdFactory | None = None):
        self.directory = Path(directory)
        self.extension = extension if extension.startswith(".") else f".{extension}"
        self.ids = ids or IdFactory()
        self._fingerprints: dict[str, str] = {}
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, doc_id: str) -> Path:
        if os.sep in doc_id or (os.altsep and os.altsep in doc_id) or doc_id in ("", ".", ".."):
            raise StorageError(f"Invalid document id for file storage: {doc_id!r}")
        return self.directory / f"{doc_id}{self.extension}"

    def create_empty_document(self, name: str, doc_id: str, now: str) -> Document:
        return create_empty_document(name, doc_id, now, self.ids.page())

    def _read(self, path: Path) -> Document:
        project = deserialize_project(path.read_bytes())
        result = validate_document(project.document)
        if not is_successful(result):
            raise EnvelopeError(f"{path.name}: {result.failure()}")
        return project.document

    def load_document(self, doc_id: str) -> Document:
        """
        Load and integrity-check a document.

        Raises:
            DocumentNotFoundError: If no file exists for the id
            EnvelopeError: If the file is malformed or inconsistent
        """
        path = self.path_for(doc_id)
        if not path.exists():
            raise DocumentNotFoundError(doc_id)
        doc = self._read(path)
        self._fingerprints[doc.id] = document_fingerprint(doc)
        logger.info("document_loaded", doc_id=doc.id, path=str(path))
        return doc

    def save_document(self, doc: Document) -> None:
        fingerprint = document_fingerprint(doc)
        if self._fingerprints.get(doc.id) == fingerprint:
            logger.debug("document_unchanged", doc_id=doc.id)
            return

        path = self.path_for(doc.id)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(serialize_project(doc), encoding="utf-8")
        tmp.replace(path)
        self._fingerprints[doc.id] = fingerprint
        logger.info("document_saved", doc_id=doc.id, path=str(path))

    def list_recent(self) -> list[DocumentSummary]:
        summaries: list[DocumentSummary] = []
        for path in self.directory.glob(f"*{self.extension}"):
            try:
                summaries.append(summarize(self._read(path)))
            except (EnvelopeError, OSError) as e:
                logger.warning("document_unreadable", path=str(path), error=str(e))
        return sorted(summaries, key=lambda s: s.updated_at, reverse=True)
