"""
Layer Tools
Create, patch, delete and restructure layers inside frames.
"""

from typing import TYPE_CHECKING

from ...commands.context import ToolContext
from ..guardrails import LAYER_PATCH_KEYS, pick_patch, require_doc_id, run_command
from ..inputs import (
    CreateLayerToolInput,
    GroupLayersInput,
    GroupOutput,
    LayerInput,
    LayerOutput,
    OkOutput,
    ReorderLayerInput,
    UngroupLayersInput,
    UpdateLayerInput,
)
from ..registry import ToolDefinition

if TYPE_CHECKING:
    from ..registry import ToolRegistry, ToolServices


def register_layer_tools(registry: "ToolRegistry", services: "ToolServices") -> None:
    """Register layer CRUD and structure tools."""
    bus = services.bus

    def create_layer(input: CreateLayerToolInput, ctx: ToolContext) -> LayerOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        layer_input = input.model_dump(by_alias=True, exclude={"document_id"}, exclude_none=True)
        layer_input.pop("documentId", None)
        layer_id = ctx.ids.layer()
        run_command(bus, ctx, "layer.create", doc_id=doc_id, layer_id=layer_id, input=layer_input)
        return LayerOutput(layer_id=layer_id)

    registry.register(ToolDefinition.create(
        name="create_layer",
        description=(
            "Create a layer (rect, ellipse, line, path, text, image, group) in a frame. "
            "parentId may be the frame or a group; detached=true keeps it outside every container"
        ),
        category="layer",
        input_model=CreateLayerToolInput,
        output_model=LayerOutput,
        handler=create_layer,
    ))

    def update_layer(input: UpdateLayerInput, ctx: ToolContext) -> OkOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        # Only safe keys reach the bus; an agent cannot replace the whole layer
        patch = pick_patch(input.patch, LAYER_PATCH_KEYS)
        result = run_command(bus, ctx, "layer.update", doc_id=doc_id, layer_id=input.layer_id, patch=patch)
        return OkOutput(changed_ids=result.changed_ids)

    registry.register(ToolDefinition.create(
        name="update_layer",
        description="Update a layer. Patch keys outside the allow-list are dropped",
        category="layer",
        input_model=UpdateLayerInput,
        output_model=OkOutput,
        handler=update_layer,
    ))

    def delete_layer(input: LayerInput, ctx: ToolContext) -> OkOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        result = run_command(bus, ctx, "layer.delete", doc_id=doc_id, layer_id=input.layer_id)
        return OkOutput(changed_ids=result.changed_ids)

    registry.register(ToolDefinition.create(
        name="delete_layer",
        description="Delete a layer (and its children if it is a group)",
        category="layer",
        input_model=LayerInput,
        output_model=OkOutput,
        handler=delete_layer,
    ))

    def group_layers(input: GroupLayersInput, ctx: ToolContext) -> GroupOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        group_id = ctx.ids.layer()
        run_command(
            bus, ctx, "layer.group", doc_id=doc_id, group_id=group_id, layer_ids=input.layer_ids, name=input.name
        )
        return GroupOutput(group_id=group_id)

    registry.register(ToolDefinition.create(
        name="group_layers",
        description="Group sibling layers under a new group layer",
        category="layer",
        input_model=GroupLayersInput,
        output_model=GroupOutput,
        handler=group_layers,
    ))

    def ungroup_layers(input: UngroupLayersInput, ctx: ToolContext) -> OkOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        result = run_command(bus, ctx, "layer.ungroup", doc_id=doc_id, group_id=input.group_id)
        return OkOutput(changed_ids=result.changed_ids)

    registry.register(ToolDefinition.create(
        name="ungroup_layers",
        description="Dissolve a group, moving its children into the group's place",
        category="layer",
        input_model=UngroupLayersInput,
        output_model=OkOutput,
        handler=ungroup_layers,
    ))

    def reorder_layer(input: ReorderLayerInput, ctx: ToolContext) -> OkOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        result = run_command(
            bus, ctx, "layer.reorder", doc_id=doc_id, layer_id=input.layer_id, to_index=input.to_index
        )
        return OkOutput(changed_ids=result.changed_ids)

    registry.register(ToolDefinition.create(
        name="reorder_layer",
        description="Move a layer to a new index within its container (remove, then insert)",
        category="layer",
        input_model=ReorderLayerInput,
        output_model=OkOutput,
        handler=reorder_layer,
    ))
