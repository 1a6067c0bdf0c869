"""
In-memory editor runtime.

Holds the live documents, the current selection and the viewport, and
hands out ToolContexts. Rendering is delegated to an injected
``FrameRenderer``; pixel output is not produced here.
"""

import base64
from typing import Callable

from ..commands.context import StorageAdapter, ToolContext
from ..commands.history import UndoHistory
from ..core.config import Settings
from ..core.id import IdFactory
from ..core.logging_config import get_logger
from ..schema.document import Document, ExportFramePngInput, Frame, SelectionState
from ..schema.tree import NodeNotFoundError
from ..schema.types import AgentActor, UserActor, now_iso
from ..storage.envelope import Viewport

logger = get_logger(__name__)

# (document, frame, scale) -> PNG bytes
FrameRenderer = Callable[[Document, Frame, int], bytes]


class ExportUnavailableError(RuntimeError):
    """No renderer is attached to the session."""

    pass


class EditorSession:
    """Implements the EditorRuntime contract in memory."""

    def __init__(self, renderer: FrameRenderer | None = None):
        self.renderer = renderer
        self.viewport = Viewport()
        self._documents: dict[str, Document] = {}
        self._selection = SelectionState()

    def get_document(self, doc_id: str) -> Document | None:
        return self._documents.get(doc_id)

    def set_document(self, doc: Document) -> None:
        self._documents[doc.id] = doc

    def close_document(self, doc_id: str) -> None:
        self._documents.pop(doc_id, None)

    def documents(self) -> list[Document]:
        return list(self._documents.values())

    def get_selection(self) -> SelectionState:
        return self._selection

    def set_selection(self, selection: SelectionState) -> None:
        self._selection = selection
        logger.debug("selection_changed", count=len(selection.selected_ids))

    def set_viewport(self, viewport: Viewport) -> None:
        self.viewport = viewport

    def _find_frame(self, frame_id: str) -> tuple[Document, Frame]:
        for doc in self._documents.values():
            frame = doc.frames.get(frame_id)
            if frame is not None:
                return doc, frame
        raise NodeNotFoundError(frame_id)

    def export_frame_png(self, input: ExportFramePngInput) -> dict[str, str]:
        """
        Render a frame through the attached renderer.

        Raises:
            NodeNotFoundError: If no open document has the frame
            ExportUnavailableError: If no renderer is attached
        """
        doc, frame = self._find_frame(input.frame_id)
        if self.renderer is None:
            raise ExportUnavailableError("PNG export requires a frame renderer")
        png = self.renderer(doc, frame, input.scale)
        logger.info("frame_exported", frame_id=frame.id, scale=input.scale, size=len(png))
        return {"mimeType": "image/png", "bytesBase64": base64.b64encode(png).decode("ascii")}


class ContextProvider:
    """Builds ToolContexts bound to the session's collaborators."""

    def __init__(
        self,
        storage: StorageAdapter,
        editor: EditorSession,
        ids: IdFactory,
        settings: Settings,
        history: UndoHistory | None = None,
    ):
        self.storage = storage
        self.editor = editor
        self.ids = ids
        self.history = history
        self.default_actor = AgentActor(agent_name=settings.agent_name)
        self.active_document_id: str | None = None

    def set_active_document(self, doc_id: str | None) -> None:
        self.active_document_id = doc_id

    def context(
        self,
        actor: UserActor | AgentActor | None = None,
        doc_id: str | None = None,
        clock: Callable[[], str] = now_iso,
    ) -> ToolContext:
        return ToolContext(
            active_document_id=doc_id or self.active_document_id,
            actor=actor or self.default_actor,
            storage=self.storage,
            editor=self.editor,
            ids=self.ids,
            now=clock,
            history=self.history,
        )
