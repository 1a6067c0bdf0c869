"""
Transaction Manager.

Transactions are bookkeeping markers: they never snapshot or revert
document state. Callers that need real rollback (the batch processor)
snapshot the Document themselves and restore it through ``doc.restore``.

When the context carries an UndoHistory, a transaction doubles as an undo
group: ``begin`` opens it, ``commit`` folds it into one undo step and
``rollback`` discards it.
"""

from dataclasses import dataclass
from typing import Callable, TypeVar

from ..core.id import TransactionId
from ..core.logging_config import get_logger
from .context import ToolContext

logger = get_logger(__name__)

T = TypeVar("T")


class TransactionError(Exception):
    """Unknown or already-closed transaction."""

    pass


@dataclass(frozen=True)
class Transaction:
    id: TransactionId
    name: str
    document_id: str | None
    started_at: str


class TransactionManager:
    """Tracks open transactions."""

    def __init__(self) -> None:
        self._open: dict[str, Transaction] = {}

    def begin(self, name: str, ctx: ToolContext) -> TransactionId:
        tx_id = ctx.ids.tx()
        self._open[tx_id] = Transaction(
            id=tx_id, name=name, document_id=ctx.active_document_id, started_at=ctx.now()
        )
        if ctx.history is not None:
            ctx.history.begin_group()
        logger.info("transaction_begin", tx_id=tx_id, name=name)
        return tx_id

    def _close(self, tx_id: str) -> Transaction:
        tx = self._open.pop(tx_id, None)
        if tx is None:
            raise TransactionError(f"Unknown transaction: {tx_id}")
        return tx

    def commit(self, tx_id: str, ctx: ToolContext) -> None:
        tx = self._close(tx_id)
        if ctx.history is not None:
            ctx.history.end_group()
        logger.info("transaction_commit", tx_id=tx_id, name=tx.name)

    def rollback(self, tx_id: str, ctx: ToolContext) -> None:
        """Close the transaction. Document state is left untouched."""
        tx = self._close(tx_id)
        if ctx.history is not None:
            ctx.history.discard_group()
        logger.info("transaction_rollback", tx_id=tx_id, name=tx.name)

    def in_transaction(self, name: str, ctx: ToolContext, fn: Callable[[], T]) -> T:
        """Run ``fn`` inside a transaction; roll back and re-raise on failure."""
        tx_id = self.begin(name, ctx)
        try:
            result = fn()
        except Exception:
            self.rollback(tx_id, ctx)
            raise
        self.commit(tx_id, ctx)
        return result

    def active(self) -> list[Transaction]:
        return list(self._open.values())

    def is_open(self, tx_id: str) -> bool:
        return tx_id in self._open
