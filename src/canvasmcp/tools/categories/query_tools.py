"""
Read-only tools: tree views, search, selection, tokens, editor state and export.
"""

from typing import TYPE_CHECKING

from ...commands.context import ToolContext
from ...editor.runtime import ExportUnavailableError
from ...schema.document import SelectionState
from ...schema.tokens import token_usage
from ...schema.tree import NodeNotFoundError, build_document_tree, search_nodes
from ...storage.documents import summarize
from ...storage.envelope import Viewport
from ..guardrails import load_document, require_doc_id
from ..inputs import (
    DesignTokensOutput,
    DocRef,
    DocumentTreeInput,
    DocumentTreeOutput,
    EditorStateOutput,
    EmptyInput,
    ExportFramePngToolInput,
    ExportOutput,
    NodesOutput,
    SearchDesignNodesInput,
)
from ..registry import ToolDefinition, ToolError, ToolErrorCode

if TYPE_CHECKING:
    from ..registry import ToolRegistry, ToolServices


def _node_not_found(e: NodeNotFoundError) -> ToolError:
    return ToolError("NOT_FOUND", str(e), {"id": e.node_id})


def register_query_tools(registry: "ToolRegistry", services: "ToolServices") -> None:
    """Register read-only tools. None of these dispatch commands."""

    def document_tree(input: DocumentTreeInput, ctx: ToolContext) -> DocumentTreeOutput:
        doc = load_document(ctx, require_doc_id(ctx, input.document_id))
        selected = ctx.editor.get_selection().selected_ids if input.selection_only else None
        try:
            tree = build_document_tree(doc, input.page_id, input.frame_id, selected)
        except NodeNotFoundError as e:
            raise _node_not_found(e) from e
        return DocumentTreeOutput(tree=tree)

    registry.register(ToolDefinition.create(
        name="document_tree",
        description="Nested page/frame/layer tree, optionally narrowed to a page, a frame or the selection",
        category="query",
        input_model=DocumentTreeInput,
        output_model=DocumentTreeOutput,
        handler=document_tree,
    ))

    def search_design_nodes(input: SearchDesignNodesInput, ctx: ToolContext) -> NodesOutput:
        doc = load_document(ctx, require_doc_id(ctx, input.document_id))
        try:
            nodes = search_nodes(
                doc,
                patterns=input.patterns,
                node_ids=input.node_ids,
                parent_id=input.parent_id,
                search_depth=input.search_depth,
                read_depth=input.read_depth,
            )
        except NodeNotFoundError as e:
            raise _node_not_found(e) from e
        return NodesOutput(nodes=nodes)

    registry.register(ToolDefinition.create(
        name="search_design_nodes",
        description="Search nodes by type/name/reusable patterns or fetch them by id",
        category="query",
        input_model=SearchDesignNodesInput,
        output_model=NodesOutput,
        handler=search_design_nodes,
    ))

    def selection_state(input: EmptyInput, ctx: ToolContext) -> SelectionState:
        return ctx.editor.get_selection()

    registry.register(ToolDefinition.create(
        name="selection_state",
        description="Current selection (ids and bounds)",
        category="query",
        input_model=EmptyInput,
        output_model=SelectionState,
        handler=selection_state,
    ))

    def design_tokens(input: DocRef, ctx: ToolContext) -> DesignTokensOutput:
        doc = load_document(ctx, require_doc_id(ctx, input.document_id))
        return DesignTokensOutput(tokens=list(doc.tokens.values()), usage=token_usage(doc))

    registry.register(ToolDefinition.create(
        name="design_tokens",
        description="Design tokens of the document and the nodes that use each one",
        category="query",
        input_model=DocRef,
        output_model=DesignTokensOutput,
        handler=design_tokens,
    ))

    def get_editor_state(input: EmptyInput, ctx: ToolContext) -> EditorStateOutput:
        doc_id = ctx.active_document_id
        doc = ctx.editor.get_document(doc_id) if doc_id else None
        history = ctx.history
        return EditorStateOutput(
            active_document_id=doc_id,
            active_page_id=doc.active_page_id if doc else None,
            document=summarize(doc) if doc else None,
            open_documents=[open_doc.id for open_doc in ctx.editor.documents()],
            selection=ctx.editor.get_selection(),
            viewport=getattr(ctx.editor, "viewport", None) or Viewport(),
            can_undo=history.can_undo() if history else False,
            can_redo=history.can_redo() if history else False,
            open_transactions=[tx.id for tx in services.transactions.active()],
            pending_batches=services.batch.pending(),
        )

    registry.register(ToolDefinition.create(
        name="get_editor_state",
        description="Active document, selection, viewport, undo availability and open transactions",
        category="query",
        input_model=EmptyInput,
        output_model=EditorStateOutput,
        handler=get_editor_state,
    ))

    def export_frame_png(input: ExportFramePngToolInput, ctx: ToolContext) -> ExportOutput:
        require_doc_id(ctx)
        try:
            exported = ctx.editor.export_frame_png(input)
        except NodeNotFoundError as e:
            raise _node_not_found(e) from e
        except ExportUnavailableError as e:
            raise ToolError(ToolErrorCode.EXPORT_UNAVAILABLE, str(e)) from e
        return ExportOutput.model_validate(exported)

    registry.register(ToolDefinition.create(
        name="export_frame_png",
        description="Export a frame as PNG (base64 bytes) at scale 1, 2 or 3",
        category="query",
        input_model=ExportFramePngToolInput,
        output_model=ExportOutput,
        handler=export_frame_png,
    ))
