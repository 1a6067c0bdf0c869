"""
Session tools: selection, transactions and undo/redo.
"""

from typing import TYPE_CHECKING

from ...commands.context import ToolContext
from ...commands.transactions import TransactionError
from ..guardrails import expect_ok, require_doc_id, run_command
from ..inputs import (
    BeginTransactionInput,
    DocRef,
    HistoryOutput,
    OkOutput,
    SetSelectionInput,
    TransactionInput,
    TransactionOutput,
)
from ..registry import ToolDefinition, ToolError, ToolErrorCode

if TYPE_CHECKING:
    from ..registry import ToolRegistry, ToolServices


def register_session_tools(registry: "ToolRegistry", services: "ToolServices") -> None:
    """Register selection, transaction and history tools."""
    bus = services.bus
    transactions = services.transactions

    def set_selection(input: SetSelectionInput, ctx: ToolContext) -> OkOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        selection = {"page_id": input.page_id, "selected_ids": input.selected_ids}
        run_command(bus, ctx, "selection.set", doc_id=doc_id, selection=selection)
        return OkOutput()

    registry.register(ToolDefinition.create(
        name="set_selection",
        description="Set the editor selection (frame and layer ids)",
        category="session",
        input_model=SetSelectionInput,
        output_model=OkOutput,
        handler=set_selection,
    ))

    # =========================================================================
    # TRANSACTIONS - grouped edits, one undo step
    # =========================================================================

    def begin_transaction(input: BeginTransactionInput, ctx: ToolContext) -> TransactionOutput:
        return TransactionOutput(tx_id=transactions.begin(input.name, ctx))

    def commit_transaction(input: TransactionInput, ctx: ToolContext) -> OkOutput:
        try:
            transactions.commit(input.tx_id, ctx)
        except TransactionError as e:
            raise ToolError(ToolErrorCode.TRANSACTION_ERROR, str(e), {"txId": input.tx_id}) from e
        return OkOutput()

    def rollback_transaction(input: TransactionInput, ctx: ToolContext) -> OkOutput:
        try:
            transactions.rollback(input.tx_id, ctx)
        except TransactionError as e:
            raise ToolError(ToolErrorCode.TRANSACTION_ERROR, str(e), {"txId": input.tx_id}) from e
        return OkOutput()

    registry.register(ToolDefinition.create(
        name="begin_transaction",
        description="Begin a grouped transaction (one undo step)",
        category="session",
        input_model=BeginTransactionInput,
        output_model=TransactionOutput,
        handler=begin_transaction,
    ))
    registry.register(ToolDefinition.create(
        name="commit_transaction",
        description="Commit a grouped transaction",
        category="session",
        input_model=TransactionInput,
        output_model=OkOutput,
        handler=commit_transaction,
    ))
    registry.register(ToolDefinition.create(
        name="rollback_transaction",
        description="Close a transaction without keeping its undo step. Document edits are not reverted",
        category="session",
        input_model=TransactionInput,
        output_model=OkOutput,
        handler=rollback_transaction,
    ))

    # =========================================================================
    # HISTORY
    # =========================================================================

    def _history_step(ctx: ToolContext, redo: bool) -> HistoryOutput:
        history = ctx.history
        if history is None:
            return HistoryOutput(applied=False, can_undo=False, can_redo=False)
        result = history.redo(bus, ctx) if redo else history.undo(bus, ctx)
        if result is not None:
            expect_ok(result)
        return HistoryOutput(
            applied=result is not None, can_undo=history.can_undo(), can_redo=history.can_redo()
        )

    def undo(input: DocRef, ctx: ToolContext) -> HistoryOutput:
        require_doc_id(ctx, input.document_id)
        return _history_step(ctx, redo=False)

    def redo(input: DocRef, ctx: ToolContext) -> HistoryOutput:
        require_doc_id(ctx, input.document_id)
        return _history_step(ctx, redo=True)

    registry.register(ToolDefinition.create(
        name="undo",
        description="Undo the last edit (a committed transaction or batch counts as one)",
        category="session",
        input_model=DocRef,
        output_model=HistoryOutput,
        handler=undo,
    ))
    registry.register(ToolDefinition.create(
        name="redo",
        description="Redo the last undone edit",
        category="session",
        input_model=DocRef,
        output_model=HistoryOutput,
        handler=redo,
    ))
