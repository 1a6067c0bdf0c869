"""Layer variants.

A layer is a tagged union over its ``type``. Every variant shares the base
fields; ``group`` owns an ordered ``children`` list and ``componentInstance``
points at a component definition.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter

from .types import (
    ColorValue,
    CommonStyle,
    LayerFlags,
    LayoutHints,
    Point,
    Provenance,
    Rect,
    SchemaModel,
    TypographyValue,
)


class LayerBase(SchemaModel):
    id: str
    name: str
    parent_id: str | None = None
    frame_id: str
    rect: Rect
    rotation: float | None = None
    style: CommonStyle | None = None
    layout: LayoutHints | None = None
    flags: LayerFlags | None = None
    provenance: Provenance


class RectLayer(LayerBase):
    type: Literal["rect"] = "rect"


class EllipseLayer(LayerBase):
    type: Literal["ellipse"] = "ellipse"


class LineLayer(LayerBase):
    type: Literal["line"] = "line"
    points: list[Point] = Field(default_factory=list)


class MoveTo(SchemaModel):
    type: Literal["M"] = "M"
    point: Point


class LineTo(SchemaModel):
    type: Literal["L"] = "L"
    point: Point


class CubicTo(SchemaModel):
    type: Literal["C"] = "C"
    point: Point
    cp1: Point
    cp2: Point


class QuadTo(SchemaModel):
    type: Literal["Q"] = "Q"
    point: Point
    cp: Point


class ClosePath(SchemaModel):
    type: Literal["Z"] = "Z"


PathCommand = Annotated[
    Union[MoveTo, LineTo, CubicTo, QuadTo, ClosePath], Field(discriminator="type")
]


class PathLayer(LayerBase):
    type: Literal["path"] = "path"
    commands: list[PathCommand] = Field(default_factory=list)
    closed: bool | None = None


class TextLayer(LayerBase):
    type: Literal["text"] = "text"
    text: str = ""
    typography: TypographyValue | None = None
    color: ColorValue | None = None
    align: Literal["left", "center", "right"] | None = None
    vertical_align: Literal["top", "middle", "bottom"] | None = None


class Crop(SchemaModel):
    x: float
    y: float
    w: float
    h: float


class ImageLayer(LayerBase):
    type: Literal["image"] = "image"
    asset_id: str
    crop: Crop | None = None


class GroupLayer(LayerBase):
    type: Literal["group"] = "group"
    children: list[str] = Field(default_factory=list)


class InstanceOverrides(SchemaModel):
    """Per-child overrides keyed by the component's member layer ids."""

    text: dict[str, str] | None = None
    fill_color: dict[str, ColorValue] | None = None

    def layer_ids(self) -> set[str]:
        return set(self.text or {}) | set(self.fill_color or {})


class ComponentInstanceLayer(LayerBase):
    type: Literal["componentInstance"] = "componentInstance"
    component_id: str
    overrides: InstanceOverrides | None = None


Layer = Annotated[
    Union[
        RectLayer,
        EllipseLayer,
        LineLayer,
        PathLayer,
        TextLayer,
        ImageLayer,
        GroupLayer,
        ComponentInstanceLayer,
    ],
    Field(discriminator="type"),
]

LAYER_ADAPTER: TypeAdapter[Any] = TypeAdapter(Layer)

LAYER_CLASSES: dict[str, type[LayerBase]] = {
    "rect": RectLayer,
    "ellipse": EllipseLayer,
    "line": LineLayer,
    "path": PathLayer,
    "text": TextLayer,
    "image": ImageLayer,
    "group": GroupLayer,
    "componentInstance": ComponentInstanceLayer,
}

# Python attribute name -> wire key, across all variants
LAYER_WIRE_KEYS: dict[str, str] = {
    name: field.alias or name
    for cls in LAYER_CLASSES.values()
    for name, field in cls.model_fields.items()
}


def validate_layer(data: dict[str, Any]) -> LayerBase:
    """Validate a wire-form dict into the matching layer variant."""
    return LAYER_ADAPTER.validate_python(data)


def is_group(layer: LayerBase | None) -> bool:
    return isinstance(layer, GroupLayer)
