"""Normalized document graph: pages, frames, layers, components, tokens, assets."""

from .types import (
    SCHEMA_VERSION,
    Actor,
    AgentActor,
    ColorToken,
    CommonStyle,
    FillStyle,
    HexColor,
    LiteralColor,
    NoFill,
    Point,
    Provenance,
    Rect,
    SolidFill,
    SpacingToken,
    Token,
    TokenColor,
    TokenRef,
    TypographyToken,
    UserActor,
    new_provenance,
    now_iso,
)
from .layers import (
    ComponentInstanceLayer,
    GroupLayer,
    ImageLayer,
    InstanceOverrides,
    Layer,
    LayerBase,
    RectLayer,
    TextLayer,
    validate_layer,
)
from .document import (
    Asset,
    Component,
    CreateComponentInput,
    CreateFrameInput,
    CreateLayerInput,
    Document,
    ExportFramePngInput,
    Frame,
    InstantiateComponentInput,
    Page,
    SelectionState,
)
from .integrity import (
    Containment,
    IntegrityError,
    Violation,
    container_of,
    containment,
    descendants,
    find_dangling_references,
    validate_document,
)
from .tokens import resolve_color, resolve_spacing, resolve_typography, token_refs, token_usage
from .tree import NodeNotFoundError, SearchPattern, build_document_tree, search_nodes

__all__ = [
    # Values
    "SCHEMA_VERSION",
    "Actor",
    "AgentActor",
    "UserActor",
    "Provenance",
    "new_provenance",
    "now_iso",
    "Point",
    "Rect",
    "HexColor",
    "LiteralColor",
    "TokenColor",
    "TokenRef",
    "CommonStyle",
    "FillStyle",
    "NoFill",
    "SolidFill",
    # Tokens
    "Token",
    "ColorToken",
    "TypographyToken",
    "SpacingToken",
    "resolve_color",
    "resolve_typography",
    "resolve_spacing",
    "token_refs",
    "token_usage",
    # Layers
    "Layer",
    "LayerBase",
    "RectLayer",
    "TextLayer",
    "ImageLayer",
    "GroupLayer",
    "ComponentInstanceLayer",
    "InstanceOverrides",
    "validate_layer",
    # Document
    "Document",
    "Page",
    "Frame",
    "Component",
    "Asset",
    "SelectionState",
    "CreateFrameInput",
    "CreateLayerInput",
    "CreateComponentInput",
    "InstantiateComponentInput",
    "ExportFramePngInput",
    # Integrity
    "Containment",
    "IntegrityError",
    "Violation",
    "container_of",
    "containment",
    "descendants",
    "find_dangling_references",
    "validate_document",
    # Views
    "NodeNotFoundError",
    "SearchPattern",
    "build_document_tree",
    "search_nodes",
]
