"""Pytest configuration and fixtures."""

import os
from typing import Any, Callable

import pytest

from canvasmcp.batch import BatchDesignProcessor
from canvasmcp.commands import CommandBus, CommandResult, ToolContext, TransactionManager, UndoHistory
from canvasmcp.core import SequentialIdFactory, Settings
from canvasmcp.editor import EditorSession
from canvasmcp.schema import AgentActor, Document
from canvasmcp.storage import MemoryStorage
from canvasmcp.tools import ToolRegistry, ToolServices


# ============================================================================
# Pytest Hooks
# ============================================================================


def pytest_configure(config):
    """Configure pytest with environment variables."""
    os.environ["CANVAS_LOG_LEVEL"] = "DEBUG"
    os.environ.pop("CANVAS_STORAGE_DIR", None)


# ============================================================================
# Core Fixtures
# ============================================================================


class TickingClock:
    """Deterministic clock: every call advances one second."""

    def __init__(self) -> None:
        self.ticks = 0

    def __call__(self) -> str:
        self.ticks += 1
        minutes, seconds = divmod(self.ticks, 60)
        hours, minutes = divmod(minutes, 60)
        return f"2024-01-01T{hours:02d}:{minutes:02d}:{seconds:02d}Z"


@pytest.fixture
def settings():
    """Test settings (no .env, defaults only)."""
    return Settings(_env_file=None)


@pytest.fixture
def ids():
    return SequentialIdFactory()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def storage(ids):
    return MemoryStorage(ids)


@pytest.fixture
def editor():
    return EditorSession()


@pytest.fixture
def history():
    return UndoHistory(limit=50)


@pytest.fixture
def ctx(storage, editor, ids, clock, history):
    """Tool context with no active document yet."""
    return ToolContext(
        active_document_id=None,
        actor=AgentActor(agent_name="test-agent"),
        storage=storage,
        editor=editor,
        ids=ids,
        now=clock,
        history=history,
    )


@pytest.fixture
def bus():
    return CommandBus()


@pytest.fixture
def transactions():
    return TransactionManager()


@pytest.fixture
def processor(bus, transactions, settings):
    return BatchDesignProcessor(bus, transactions, settings)


@pytest.fixture
def registry(bus, transactions, processor):
    """Tool registry with every built-in tool."""
    return ToolRegistry(ToolServices(bus=bus, transactions=transactions, batch=processor))


# ============================================================================
# Document Fixtures
# ============================================================================


@pytest.fixture
def run(bus, ctx) -> Callable[..., CommandResult]:
    """Dispatch a command and assert it succeeded."""

    def _run(command_type: str, **payload: Any) -> CommandResult:
        payload.setdefault("doc_id", ctx.active_document_id)
        result = bus.dispatch({"type": command_type, "payload": payload}, ctx)
        assert result.ok, result.error
        return result

    return _run


@pytest.fixture
def doc_id(bus, ctx, run):
    """
    Active document ``doc_1`` with page ``page_1`` and frame ``frame_1``
    (400x600) holding three rects ``layer_1``..``layer_3``.
    """
    result = bus.dispatch({"type": "doc.create", "payload": {"doc_id": ctx.ids.doc(), "name": "Test"}}, ctx)
    assert result.ok, result.error
    ctx.active_document_id = "doc_1"

    run(
        "frame.create",
        frame_id=ctx.ids.frame(),
        input={"page_id": "page_1", "name": "Screen", "rect": {"x": 0, "y": 0, "w": 400, "h": 600}},
    )
    for index in range(1, 4):
        run(
            "layer.create",
            layer_id=ctx.ids.layer(),
            input={
                "frame_id": "frame_1",
                "type": "rect",
                "name": f"Box {index}",
                "rect": {"x": index * 10, "y": 0, "w": 50, "h": 50},
            },
        )
    ctx.history.clear()
    return "doc_1"


@pytest.fixture
def document(editor, doc_id) -> Callable[[], Document]:
    """Current live value of the fixture document."""
    return lambda: editor.get_document(doc_id)
