"""
Tool context and the collaborator contracts it carries.

The context is what every dispatch and tool handler receives: who is
calling, which document is active, and handles to storage, the live editor
state, the id factory and the clock.
"""

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Callable, Protocol

from ..core.id import IdFactory
from ..schema.document import Document, ExportFramePngInput, SelectionState
from ..schema.types import AgentActor, UserActor, now_iso

if TYPE_CHECKING:
    from .history import UndoHistory


class StorageAdapter(Protocol):
    """Persistence contract."""

    def create_empty_document(self, name: str, doc_id: str, now: str) -> Document: ...

    def load_document(self, doc_id: str) -> Document: ...

    def save_document(self, doc: Document) -> None: ...

    def list_recent(self) -> list[Any]: ...


class EditorRuntime(Protocol):
    """Live in-memory editor state."""

    def get_document(self, doc_id: str) -> Document | None: ...

    def set_document(self, doc: Document) -> None: ...

    def documents(self) -> list[Document]: ...

    def get_selection(self) -> SelectionState: ...

    def set_selection(self, selection: SelectionState) -> None: ...

    def export_frame_png(self, input: ExportFramePngInput) -> dict[str, str]: ...


@dataclass
class ToolContext:
    """Per-call context for commands and tools."""

    active_document_id: str | None
    actor: UserActor | AgentActor
    storage: StorageAdapter
    editor: EditorRuntime
    ids: IdFactory = field(default_factory=IdFactory)
    now: Callable[[], str] = now_iso
    history: "UndoHistory | None" = None

    def with_document(self, doc_id: str | None) -> "ToolContext":
        """Copy of this context with a different active document."""
        return replace(self, active_document_id=doc_id)
