"""Storage errors."""


class StorageError(Exception):
    """Base class for persistence failures."""

    pass


class DocumentNotFoundError(StorageError):
    """No stored document with the requested id."""

    def __init__(self, doc_id: str):
        super().__init__(f"Document {doc_id} not found")
        self.doc_id = doc_id


class EnvelopeError(StorageError):
    """Document file is malformed or fails integrity checks."""

    pass
