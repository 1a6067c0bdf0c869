"""Document aggregate and the entities it indexes."""

from typing import Any, Literal

from pydantic import ConfigDict, Field

from .layers import Layer, LayerBase
from .types import (
    SCHEMA_VERSION,
    FillStyle,
    LayerFlags,
    LayerType,
    PlatformTag,
    Provenance,
    Rect,
    SchemaModel,
    Token,
)


class Frame(SchemaModel):
    """Artboard: an ordered list of top-level layers on one page."""

    id: str
    page_id: str
    name: str
    platform: PlatformTag
    rect: Rect
    background: FillStyle | None = None
    child_layer_ids: list[str] = Field(default_factory=list)
    flags: LayerFlags | None = None
    provenance: Provenance


class Component(SchemaModel):
    """Reusable subgraph rooted at ``root_layer_id``."""

    id: str
    name: str
    root_layer_id: str
    layer_ids: list[str]
    provenance: Provenance


class Page(SchemaModel):
    id: str
    document_id: str
    name: str
    frame_ids: list[str] = Field(default_factory=list)
    provenance: Provenance


class Asset(SchemaModel):
    id: str
    kind: Literal["image"] = "image"
    name: str | None = None
    mime_type: str
    uri: str
    provenance: Provenance


class Document(SchemaModel):
    """
    Normalized, ID-indexed design file.

    Treated as an immutable value: every successful command yields a new
    Document. Unchanged map entries are shared between versions.
    """

    id: str
    schema_version: Literal["1.0.0"] = SCHEMA_VERSION
    name: str
    created_at: str
    updated_at: str
    active_page_id: str | None = None
    pages: dict[str, Page] = Field(default_factory=dict)
    frames: dict[str, Frame] = Field(default_factory=dict)
    layers: dict[str, Layer] = Field(default_factory=dict)
    components: dict[str, Component] = Field(default_factory=dict)
    tokens: dict[str, Token] = Field(default_factory=dict)
    assets: dict[str, Asset] = Field(default_factory=dict)
    meta: dict[str, Any] | None = None

    def replace(self, **changes: Any) -> "Document":
        """Copy-on-write update of top-level fields."""
        return self.model_copy(update=changes)

    def with_layer(self, layer: LayerBase) -> "Document":
        return self.replace(layers={**self.layers, layer.id: layer})

    def with_frame(self, frame: Frame) -> "Document":
        return self.replace(frames={**self.frames, frame.id: frame})

    def with_page(self, page: Page) -> "Document":
        return self.replace(pages={**self.pages, page.id: page})

    def node(self, node_id: str) -> Frame | LayerBase | None:
        """Frame or layer with the given id."""
        return self.frames.get(node_id) or self.layers.get(node_id)


class SelectionState(SchemaModel):
    page_id: str | None = None
    selected_ids: list[str] = Field(default_factory=list)
    bounds: Rect | None = None


# ============================================================================
# Create payloads
# ============================================================================


class CreateFrameInput(SchemaModel):
    page_id: str
    name: str
    platform: PlatformTag = "custom"
    rect: Rect
    background: FillStyle | None = None


class CreateLayerInput(SchemaModel):
    """Layer creation payload.

    Type-specific fields (``text``, ``points``, ``assetId`` ...) ride along as
    extra keys and are validated against the layer variant on creation.
    ``detached`` creates a frame-scoped layer outside every container.
    """

    model_config = ConfigDict(extra="allow")

    frame_id: str
    parent_id: str | None = None
    type: LayerType = "rect"
    name: str
    rect: Rect
    detached: bool = False

    def type_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class CreateComponentInput(SchemaModel):
    name: str
    root_layer_id: str
    layer_ids: list[str] | None = None


class InstantiateComponentInput(SchemaModel):
    frame_id: str
    parent_id: str | None = None
    component_id: str
    name: str
    rect: Rect


class ExportFramePngInput(SchemaModel):
    frame_id: str
    scale: Literal[1, 2, 3] = 1
