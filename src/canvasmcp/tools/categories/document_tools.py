"""
Document, page and frame tools.
"""

from typing import TYPE_CHECKING

from ...commands.context import ToolContext
from ...schema.types import SCHEMA_VERSION
from ...storage.documents import frame_preset
from ..guardrails import FRAME_PATCH_KEYS, load_document, pick_patch, require_doc_id, run_command
from ..inputs import (
    CreateDocumentInput,
    CreateFrameToolInput,
    CreatePageInput,
    DocRef,
    DocumentCreatedOutput,
    DocumentListOutput,
    EmptyInput,
    FrameInput,
    FrameOutput,
    OkOutput,
    OpenDocumentInput,
    PageInput,
    PageOutput,
    RenamePageInput,
    UpdateFrameInput,
)
from ..registry import ToolDefinition, ToolError, ToolErrorCode

if TYPE_CHECKING:
    from ..registry import ToolRegistry, ToolServices


def register_document_tools(registry: "ToolRegistry", services: "ToolServices") -> None:
    """Register document lifecycle, page and frame tools."""
    bus = services.bus

    def activate(ctx: ToolContext, doc_id: str) -> None:
        ctx.active_document_id = doc_id
        if services.on_activate is not None:
            services.on_activate(doc_id)

    # =========================================================================
    # DOCUMENTS
    # =========================================================================

    def create_document(input: CreateDocumentInput, ctx: ToolContext) -> DocumentCreatedOutput:
        doc_id = ctx.ids.doc()
        run_command(bus, ctx, "doc.create", doc_id=doc_id, name=input.name)
        activate(ctx, doc_id)

        page_id = load_document(ctx, doc_id).active_page_id
        frame_id = None
        if input.preset is not None and page_id is not None:
            frame_id = ctx.ids.frame()
            run_command(
                bus,
                ctx,
                "frame.create",
                doc_id=doc_id,
                frame_id=frame_id,
                input={"page_id": page_id, **frame_preset(input.preset)},
            )
        return DocumentCreatedOutput(
            document_id=doc_id, schema_version=SCHEMA_VERSION, page_id=page_id, frame_id=frame_id
        )

    registry.register(ToolDefinition.create(
        name="create_document",
        description="Create a new document and set it active",
        category="document",
        input_model=CreateDocumentInput,
        output_model=DocumentCreatedOutput,
        handler=create_document,
    ))

    def open_document(input: OpenDocumentInput, ctx: ToolContext) -> OkOutput:
        run_command(bus, ctx, "doc.open", doc_id=input.document_id)
        activate(ctx, input.document_id)
        return OkOutput()

    registry.register(ToolDefinition.create(
        name="open_document",
        description="Load a document into the editor and set it active",
        category="document",
        input_model=OpenDocumentInput,
        output_model=OkOutput,
        handler=open_document,
    ))

    def save_document(input: DocRef, ctx: ToolContext) -> OkOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        run_command(bus, ctx, "doc.save", doc_id=doc_id)
        return OkOutput()

    registry.register(ToolDefinition.create(
        name="save_document",
        description="Persist the active document",
        category="document",
        input_model=DocRef,
        output_model=OkOutput,
        handler=save_document,
    ))

    def list_documents(input: EmptyInput, ctx: ToolContext) -> DocumentListOutput:
        return DocumentListOutput(documents=ctx.storage.list_recent())

    registry.register(ToolDefinition.create(
        name="list_documents",
        description="List stored documents, most recently updated first",
        category="document",
        input_model=EmptyInput,
        output_model=DocumentListOutput,
        handler=list_documents,
    ))

    # =========================================================================
    # PAGES
    # =========================================================================

    def create_page(input: CreatePageInput, ctx: ToolContext) -> PageOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        page_id = ctx.ids.page()
        run_command(bus, ctx, "page.create", doc_id=doc_id, page_id=page_id, name=input.name)
        return PageOutput(page_id=page_id)

    registry.register(ToolDefinition.create(
        name="create_page",
        description="Create a page in the active document",
        category="document",
        input_model=CreatePageInput,
        output_model=PageOutput,
        handler=create_page,
    ))

    def rename_page(input: RenamePageInput, ctx: ToolContext) -> OkOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        result = run_command(bus, ctx, "page.rename", doc_id=doc_id, page_id=input.page_id, name=input.name)
        return OkOutput(changed_ids=result.changed_ids)

    registry.register(ToolDefinition.create(
        name="rename_page",
        description="Rename a page",
        category="document",
        input_model=RenamePageInput,
        output_model=OkOutput,
        handler=rename_page,
    ))

    def delete_page(input: PageInput, ctx: ToolContext) -> OkOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        result = run_command(bus, ctx, "page.delete", doc_id=doc_id, page_id=input.page_id)
        return OkOutput(changed_ids=result.changed_ids)

    registry.register(ToolDefinition.create(
        name="delete_page",
        description="Delete a page with all of its frames and layers",
        category="document",
        input_model=PageInput,
        output_model=OkOutput,
        handler=delete_page,
    ))

    def set_active_page(input: PageInput, ctx: ToolContext) -> OkOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        run_command(bus, ctx, "page.setActive", doc_id=doc_id, page_id=input.page_id)
        return OkOutput()

    registry.register(ToolDefinition.create(
        name="set_active_page",
        description="Set the active page for subsequent operations",
        category="document",
        input_model=PageInput,
        output_model=OkOutput,
        handler=set_active_page,
    ))

    # =========================================================================
    # FRAMES
    # =========================================================================

    def create_frame(input: CreateFrameToolInput, ctx: ToolContext) -> FrameOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        page_id = input.page_id or load_document(ctx, doc_id).active_page_id
        if page_id is None:
            raise ToolError(ToolErrorCode.INVALID_INPUT, "No pageId given and the document has no active page")

        base = frame_preset(input.preset) if input.preset else {}
        rect = input.rect or base.get("rect")
        if rect is None:
            raise ToolError(ToolErrorCode.INVALID_INPUT, "create_frame needs a rect or a preset")

        frame_input = {
            "page_id": page_id,
            "name": input.name or base.get("name", "Frame"),
            "platform": input.platform or base.get("platform", "custom"),
            "rect": rect,
            "background": input.background,
        }
        frame_id = ctx.ids.frame()
        run_command(bus, ctx, "frame.create", doc_id=doc_id, frame_id=frame_id, input=frame_input)
        return FrameOutput(frame_id=frame_id)

    registry.register(ToolDefinition.create(
        name="create_frame",
        description="Create a frame (artboard) from a rect or a device preset",
        category="document",
        input_model=CreateFrameToolInput,
        output_model=FrameOutput,
        handler=create_frame,
    ))

    def update_frame(input: UpdateFrameInput, ctx: ToolContext) -> OkOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        patch = pick_patch(input.patch, FRAME_PATCH_KEYS)
        result = run_command(bus, ctx, "frame.update", doc_id=doc_id, frame_id=input.frame_id, patch=patch)
        return OkOutput(changed_ids=result.changed_ids)

    registry.register(ToolDefinition.create(
        name="update_frame",
        description="Update a frame. Patch is restricted to name, platform, rect, background and flags",
        category="document",
        input_model=UpdateFrameInput,
        output_model=OkOutput,
        handler=update_frame,
    ))

    def delete_frame(input: FrameInput, ctx: ToolContext) -> OkOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        result = run_command(bus, ctx, "frame.delete", doc_id=doc_id, frame_id=input.frame_id)
        return OkOutput(changed_ids=result.changed_ids)

    registry.register(ToolDefinition.create(
        name="delete_frame",
        description="Delete a frame and every layer it owns",
        category="document",
        input_model=FrameInput,
        output_model=OkOutput,
        handler=delete_frame,
    ))


__all__ = ["register_document_tools"]
