"""Tests for the editor session, context provider, logging and DI wiring."""

import base64

import pytest
import structlog

from canvasmcp.batch import BatchDesignProcessor
from canvasmcp.commands import CommandBus, ToolContext, UndoHistory
from canvasmcp.core import LogContext, SequentialIdFactory, Settings, configure_logging, create_container, get_logger
from canvasmcp.editor import ContextProvider, EditorSession, ExportUnavailableError
from canvasmcp.schema import AgentActor, ExportFramePngInput, NodeNotFoundError, UserActor
from canvasmcp.storage import FileStorage, MemoryStorage
from canvasmcp.tools import ToolRegistry


@pytest.mark.unit
class TestEditorSession:
    def test_export_with_renderer(self, editor, document):
        calls = []

        def renderer(doc, frame, scale):
            calls.append((doc.id, frame.id, scale))
            return b"\x89PNG"

        editor.renderer = renderer
        exported = editor.export_frame_png(ExportFramePngInput(frame_id="frame_1", scale=2))
        assert calls == [("doc_1", "frame_1", 2)]
        assert exported["mimeType"] == "image/png"
        assert base64.b64decode(exported["bytesBase64"]) == b"\x89PNG"

    def test_export_without_renderer(self, editor, document):
        with pytest.raises(ExportUnavailableError):
            editor.export_frame_png(ExportFramePngInput(frame_id="frame_1"))

    def test_export_unknown_frame(self, editor, document):
        with pytest.raises(NodeNotFoundError):
            editor.export_frame_png(ExportFramePngInput(frame_id="frame_404"))

    def test_documents_and_close(self, editor, document):
        assert [doc.id for doc in editor.documents()] == ["doc_1"]
        editor.close_document("doc_1")
        assert editor.get_document("doc_1") is None


@pytest.mark.unit
class TestContextProvider:
    def test_context_defaults(self, settings):
        provider = ContextProvider(MemoryStorage(), EditorSession(), SequentialIdFactory(), settings, history=UndoHistory())
        ctx = provider.context()
        assert isinstance(ctx, ToolContext)
        assert ctx.active_document_id is None
        assert ctx.actor == AgentActor(agent_name="assistant")

        provider.set_active_document("doc_9")
        assert provider.context().active_document_id == "doc_9"
        assert provider.context(doc_id="doc_1").active_document_id == "doc_1"

    def test_explicit_actor(self, settings):
        provider = ContextProvider(MemoryStorage(), EditorSession(), SequentialIdFactory(), settings)
        actor = UserActor(user_id="u1")
        assert provider.context(actor=actor).actor is actor


@pytest.mark.unit
class TestContainer:
    """Injector wiring."""

    def test_singletons(self):
        injector = create_container(Settings(_env_file=None))
        assert injector.get(CommandBus) is injector.get(CommandBus)
        registry = injector.get(ToolRegistry)
        assert "batch_design" in registry.tools
        assert isinstance(injector.get(BatchDesignProcessor), BatchDesignProcessor)

    def test_file_storage_when_configured(self, tmp_path):
        from canvasmcp.commands.context import StorageAdapter

        injector = create_container(Settings(_env_file=None, storage_dir=str(tmp_path)))
        assert isinstance(injector.get(StorageAdapter), FileStorage)

    def test_end_to_end(self):
        """A document created through the registry becomes the provider's active one."""
        injector = create_container(Settings(_env_file=None))
        registry = injector.get(ToolRegistry)
        provider = injector.get(ContextProvider)

        created = registry.invoke("create_document", {"name": "Wired", "preset": "tablet"}, provider.context())
        assert provider.active_document_id == created["documentId"]

        ctx = provider.context()
        report = registry.invoke("batch_design", {"operations": 'I(document, {name: "Hero"})', "id": "b1"}, ctx)
        assert report["success"], report["message"]
        state = registry.invoke("get_editor_state", {}, ctx)
        assert state["canUndo"] is True


@pytest.mark.unit
def test_log_context_binds_and_clears():
    configure_logging("DEBUG")
    with LogContext(batch_id="b1"):
        assert structlog.contextvars.get_contextvars()["batch_id"] == "b1"
    assert "batch_id" not in structlog.contextvars.get_contextvars()
    get_logger(__name__).debug("log_context_checked")
