"""
Project file envelope.

On disk a document is wrapped as::

    {"_format": "canvasmcp-v1", "version": "1.0.0", "document": {...},
     "viewport": {...}?, "selection": {...}?}

Token-bound values are stored as references and load back as references.
"""

from typing import Literal

from pydantic import Field, ValidationError

from ..core.json import JSONParseError, dumps, loads
from ..schema.document import Document, SelectionState
from ..schema.types import SCHEMA_VERSION, SchemaModel, now_iso
from .errors import EnvelopeError

FORMAT = "canvasmcp-v1"

_REQUIRED_DOCUMENT_KEYS = ("id", "schemaVersion", "pages", "frames", "layers")


class Viewport(SchemaModel):
    pan_x: float = 0
    pan_y: float = 0
    zoom: float = Field(default=1, gt=0)


class Project(SchemaModel):
    format: Literal["canvasmcp-v1"] = Field(default=FORMAT, alias="_format")
    version: str = SCHEMA_VERSION
    document: Document
    viewport: Viewport | None = None
    selection: SelectionState | None = None


def serialize_project(
    doc: Document,
    viewport: Viewport | None = None,
    selection: SelectionState | None = None,
    touch: bool = False,
) -> str:
    """
    Wrap a document in the file envelope.

    Args:
        doc: Document to save
        viewport: Optional viewport snapshot
        selection: Optional selection snapshot
        touch: Stamp ``updatedAt`` with the current time

    Returns:
        Indented JSON text
    """
    if touch:
        doc = doc.replace(updated_at=now_iso())
    project = Project(document=doc, viewport=viewport, selection=selection)
    return dumps(project.to_wire(), indent=True)


def deserialize_project(text: str | bytes) -> Project:
    """
    Parse and validate an envelope.

    Raises:
        EnvelopeError: On bad JSON, wrong format tag, or invalid document
    """
    try:
        data = loads(text)
    except JSONParseError as e:
        raise EnvelopeError(f"Invalid file: {e}") from e

    if not isinstance(data, dict) or data.get("_format") != FORMAT:
        raise EnvelopeError(f"Invalid file format. Expected {FORMAT} format.")

    document = data.get("document")
    if not isinstance(document, dict):
        raise EnvelopeError("Invalid file format. Missing document data.")
    missing = [key for key in _REQUIRED_DOCUMENT_KEYS if key not in document]
    if missing:
        raise EnvelopeError(f"Invalid document structure. Missing: {', '.join(missing)}")

    try:
        return Project.model_validate(data)
    except ValidationError as e:
        raise EnvelopeError(f"Invalid document: {e.error_count()} validation error(s)") from e
