"""
Component, token and asset tools.
"""

from typing import TYPE_CHECKING

from ...commands.context import ToolContext
from ...schema.types import new_provenance
from ..guardrails import load_document, require_doc_id, run_command
from ..inputs import (
    AssetsUpsertedOutput,
    ComponentOutput,
    CreateComponentToolInput,
    InstanceOutput,
    InstantiateComponentToolInput,
    TokensUpsertedOutput,
    UpsertAssetsInput,
    UpsertTokensInput,
)
from ..registry import ToolDefinition

if TYPE_CHECKING:
    from ..registry import ToolRegistry, ToolServices


def register_component_tools(registry: "ToolRegistry", services: "ToolServices") -> None:
    """Register component definition, design token and asset tools."""
    bus = services.bus

    # =========================================================================
    # COMPONENTS
    # =========================================================================

    def create_component(input: CreateComponentToolInput, ctx: ToolContext) -> ComponentOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        component_id = ctx.ids.component()
        spec = input.model_dump(include={"name", "root_layer_id", "layer_ids"}, exclude_none=True)
        run_command(bus, ctx, "component.create", doc_id=doc_id, component_id=component_id, input=spec)
        return ComponentOutput(component_id=component_id)

    registry.register(ToolDefinition.create(
        name="create_component",
        description="Create a reusable component from a layer subtree",
        category="component",
        input_model=CreateComponentToolInput,
        output_model=ComponentOutput,
        handler=create_component,
    ))

    def instantiate_component(input: InstantiateComponentToolInput, ctx: ToolContext) -> InstanceOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        layer_id = ctx.ids.layer()
        spec = input.model_dump(exclude={"document_id"})
        run_command(
            bus, ctx, "component.instantiate", doc_id=doc_id, instance_layer_id=layer_id, input=spec
        )
        return InstanceOutput(instance_layer_id=layer_id)

    registry.register(ToolDefinition.create(
        name="instantiate_component",
        description="Place an instance of a component as a componentInstance layer",
        category="component",
        input_model=InstantiateComponentToolInput,
        output_model=InstanceOutput,
        handler=instantiate_component,
    ))

    # =========================================================================
    # TOKENS & ASSETS
    # =========================================================================

    def upsert_tokens(input: UpsertTokensInput, ctx: ToolContext) -> TokensUpsertedOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        tokens = [{**token, "id": token.get("id") or ctx.ids.token()} for token in input.tokens]
        run_command(bus, ctx, "tokens.upsert", doc_id=doc_id, tokens=tokens)
        return TokensUpsertedOutput(token_ids=[token["id"] for token in tokens])

    registry.register(ToolDefinition.create(
        name="upsert_tokens",
        description="Create or update design tokens (color, typography, spacing) keyed by id",
        category="component",
        input_model=UpsertTokensInput,
        output_model=TokensUpsertedOutput,
        handler=upsert_tokens,
    ))

    def upsert_assets(input: UpsertAssetsInput, ctx: ToolContext) -> AssetsUpsertedOutput:
        doc_id = require_doc_id(ctx, input.document_id)
        existing = load_document(ctx, doc_id).assets
        now = ctx.now()

        assets = []
        for asset in input.assets:
            asset_id = asset.id or ctx.ids.asset()
            previous = existing.get(asset_id)
            provenance = (
                previous.provenance.touched(now, ctx.actor)
                if previous is not None
                else new_provenance(now, ctx.actor)
            )
            assets.append({**asset.model_dump(exclude={"id"}), "id": asset_id, "provenance": provenance})

        run_command(bus, ctx, "assets.upsert", doc_id=doc_id, assets=assets)
        return AssetsUpsertedOutput(asset_ids=[asset["id"] for asset in assets])

    registry.register(ToolDefinition.create(
        name="upsert_assets",
        description="Create or update image assets referenced by image layers",
        category="component",
        input_model=UpsertAssetsInput,
        output_model=AssetsUpsertedOutput,
        handler=upsert_assets,
    ))
