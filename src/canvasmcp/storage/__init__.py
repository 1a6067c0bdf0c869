"""Document persistence: adapters and the project file envelope."""

from .errors import StorageError, DocumentNotFoundError, EnvelopeError
from .documents import DocumentSummary, FRAME_PRESETS, create_empty_document, frame_preset
from .envelope import FORMAT, Project, Viewport, serialize_project, deserialize_project
from .memory import MemoryStorage
from .files import FileStorage

__all__ = [
    "StorageError",
    "DocumentNotFoundError",
    "EnvelopeError",
    "DocumentSummary",
    "FRAME_PRESETS",
    "create_empty_document",
    "frame_preset",
    "FORMAT",
    "Project",
    "Viewport",
    "serialize_project",
    "deserialize_project",
    "MemoryStorage",
    "FileStorage",
]
