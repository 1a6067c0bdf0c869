"""Tool input and output models. Wire keys are camelCase."""

from typing import Any, Literal

from pydantic import Field

from ..schema.document import (
    CreateLayerInput,
    ExportFramePngInput,
    InstantiateComponentInput,
    SelectionState,
)
from ..schema.tree import SearchPattern
from ..schema.types import FillStyle, PlatformTag, Rect, SchemaModel, Token
from ..storage.documents import DocumentSummary, FramePresetName
from ..storage.envelope import Viewport

# ============================================================================
# Inputs
# ============================================================================


class DocRef(SchemaModel):
    """Optional explicit document; defaults to the active one."""

    document_id: str | None = None


class EmptyInput(SchemaModel):
    pass


class CreateDocumentInput(SchemaModel):
    name: str
    preset: FramePresetName | None = Field(
        default=None, description="Also create a first frame from a device preset"
    )


class OpenDocumentInput(SchemaModel):
    document_id: str


class CreatePageInput(DocRef):
    name: str


class PageInput(DocRef):
    page_id: str


class RenamePageInput(DocRef):
    page_id: str
    name: str


class CreateFrameToolInput(DocRef):
    page_id: str | None = Field(default=None, description="Defaults to the active page")
    name: str | None = None
    platform: PlatformTag | None = None
    rect: Rect | None = None
    background: FillStyle | None = None
    preset: FramePresetName | None = None


class FrameInput(DocRef):
    frame_id: str


class UpdateFrameInput(DocRef):
    frame_id: str
    patch: dict[str, Any]


class CreateLayerToolInput(CreateLayerInput):
    """Layer input plus an optional document; type-specific keys pass through."""

    document_id: str | None = None


class LayerInput(DocRef):
    layer_id: str


class UpdateLayerInput(DocRef):
    layer_id: str
    patch: dict[str, Any]


class GroupLayersInput(DocRef):
    layer_ids: list[str] = Field(min_length=1)
    name: str = "Group"


class UngroupLayersInput(DocRef):
    group_id: str


class ReorderLayerInput(DocRef):
    layer_id: str
    to_index: int


class CreateComponentToolInput(DocRef):
    name: str
    root_layer_id: str
    layer_ids: list[str] | None = None


class InstantiateComponentToolInput(InstantiateComponentInput):
    document_id: str | None = None


class UpsertTokensInput(DocRef):
    tokens: list[dict[str, Any]] = Field(description="Tokens; ``id`` is assigned when missing")


class AssetInput(SchemaModel):
    id: str | None = None
    kind: Literal["image"] = "image"
    name: str | None = None
    mime_type: str
    uri: str


class UpsertAssetsInput(DocRef):
    assets: list[AssetInput]


class SetSelectionInput(DocRef):
    page_id: str | None = None
    selected_ids: list[str] = Field(default_factory=list)


class BeginTransactionInput(SchemaModel):
    name: str


class TransactionInput(SchemaModel):
    tx_id: str


class BatchDesignInput(SchemaModel):
    operations: str = Field(description="Script of I/C/R/M/D/U statements")
    id: str = Field(description="Batch id shared by every call of one (possibly streamed) batch")
    partial: bool = Field(default=False, description="More script text will follow")


class SearchDesignNodesInput(DocRef):
    patterns: list[SearchPattern] | None = None
    node_ids: list[str] | None = None
    parent_id: str | None = None
    search_depth: int | None = Field(default=None, ge=0)
    read_depth: int | None = Field(default=None, ge=0)


class DocumentTreeInput(DocRef):
    page_id: str | None = None
    frame_id: str | None = None
    selection_only: bool = False


class ExportFramePngToolInput(ExportFramePngInput):
    pass


# ============================================================================
# Outputs
# ============================================================================


class OkOutput(SchemaModel):
    ok: bool = True
    changed_ids: list[str] | None = None


class DocumentCreatedOutput(SchemaModel):
    document_id: str
    schema_version: str
    page_id: str | None = None
    frame_id: str | None = None


class DocumentListOutput(SchemaModel):
    documents: list[DocumentSummary]


class PageOutput(SchemaModel):
    page_id: str


class FrameOutput(SchemaModel):
    frame_id: str


class LayerOutput(SchemaModel):
    layer_id: str


class GroupOutput(SchemaModel):
    group_id: str


class ComponentOutput(SchemaModel):
    component_id: str


class InstanceOutput(SchemaModel):
    instance_layer_id: str


class TokensUpsertedOutput(SchemaModel):
    token_ids: list[str]


class AssetsUpsertedOutput(SchemaModel):
    asset_ids: list[str]


class TransactionOutput(SchemaModel):
    tx_id: str


class HistoryOutput(SchemaModel):
    applied: bool
    can_undo: bool
    can_redo: bool


class NodesOutput(SchemaModel):
    nodes: list[dict[str, Any]]


class DocumentTreeOutput(SchemaModel):
    tree: dict[str, Any]


class DesignTokensOutput(SchemaModel):
    tokens: list[Token]
    usage: dict[str, list[str]]


class EditorStateOutput(SchemaModel):
    active_document_id: str | None = None
    active_page_id: str | None = None
    document: DocumentSummary | None = None
    open_documents: list[str] = Field(default_factory=list)
    selection: SelectionState
    viewport: Viewport
    can_undo: bool = False
    can_redo: bool = False
    open_transactions: list[str] = Field(default_factory=list)
    pending_batches: list[str] = Field(default_factory=list)


class ExportOutput(SchemaModel):
    mime_type: str
    bytes_base64: str
