"""
Undo/redo history.

Snapshot based: every undoable dispatch records the Document value it
replaced. A group (opened by a transaction) collapses all of its records
into one step holding the state before the group began. The history is
owned by the caller and reached through ``ToolContext.history``.
"""

from typing import TYPE_CHECKING

from ..core.logging_config import get_logger
from ..schema.document import Document
from .types import CommandResult, make_command

if TYPE_CHECKING:
    from .bus import CommandBus
    from .context import ToolContext

logger = get_logger(__name__)


class UndoHistory:
    """Bounded undo/redo stacks of Document snapshots."""

    def __init__(self, limit: int = 50):
        self.limit = limit
        self._undo: list[Document] = []
        self._redo: list[Document] = []
        self._groups: list[list[Document]] = []

    def record(self, previous: Document) -> None:
        """Record the value a successful edit replaced."""
        if self._groups:
            self._groups[-1].append(previous)
        else:
            self._push(previous)

    def _push(self, previous: Document) -> None:
        self._undo.append(previous)
        if len(self._undo) > self.limit:
            del self._undo[: len(self._undo) - self.limit]
        self._redo.clear()

    def begin_group(self) -> None:
        self._groups.append([])

    def end_group(self) -> None:
        """Close the innermost group into a single step (nothing if empty)."""
        if not self._groups:
            return
        steps = self._groups.pop()
        if not steps:
            return
        if self._groups:
            self._groups[-1].append(steps[0])
        else:
            self._push(steps[0])

    def discard_group(self) -> None:
        """Drop the innermost group's records."""
        if self._groups:
            self._groups.pop()

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
        self._groups.clear()

    def _swap(
        self,
        source: list[Document],
        target: list[Document],
        bus: "CommandBus",
        ctx: "ToolContext",
    ) -> CommandResult | None:
        if not source:
            return None
        snapshot = source.pop()
        current = ctx.editor.get_document(snapshot.id)
        result = bus.dispatch(
            make_command("doc.restore", doc_id=snapshot.id, document=snapshot), ctx
        )
        if not result.ok:
            source.append(snapshot)
            return result
        if current is not None:
            target.append(current)
        return result

    def undo(self, bus: "CommandBus", ctx: "ToolContext") -> CommandResult | None:
        """Restore the most recent snapshot. None when there is nothing to undo."""
        result = self._swap(self._undo, self._redo, bus, ctx)
        if result is not None:
            logger.info("undo", ok=result.ok, remaining=len(self._undo))
        return result

    def redo(self, bus: "CommandBus", ctx: "ToolContext") -> CommandResult | None:
        result = self._swap(self._redo, self._undo, bus, ctx)
        if result is not None:
            logger.info("redo", ok=result.ok, remaining=len(self._redo))
        return result
