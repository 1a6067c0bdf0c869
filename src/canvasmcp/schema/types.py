"""Shared value types: geometry, provenance, tokens and styles."""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = "1.0.0"

PlatformTag = Literal["mobile", "tablet", "desktop", "web", "custom"]
LayerType = Literal[
    "rect", "ellipse", "line", "path", "text", "image", "group", "componentInstance"
]
TokenKind = Literal["color", "typography", "spacing"]

HEX_PATTERN = r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$"


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class SchemaModel(BaseModel):
    """Base for every document value.

    Values are immutable; edits produce new instances. Attributes are
    snake_case in Python and camelCase on the wire.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire (camelCase) keys, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================================
# Geometry
# ============================================================================


class Point(SchemaModel):
    x: float
    y: float


class Rect(SchemaModel):
    x: float
    y: float
    w: float = Field(ge=0)
    h: float = Field(ge=0)

    def union(self, other: "Rect") -> "Rect":
        """Smallest rect containing both rects."""
        left = min(self.x, other.x)
        top = min(self.y, other.y)
        right = max(self.x + self.w, other.x + other.w)
        bottom = max(self.y + self.h, other.y + other.h)
        return Rect(x=left, y=top, w=right - left, h=bottom - top)


# ============================================================================
# Attribution
# ============================================================================


class UserActor(SchemaModel):
    kind: Literal["user"] = "user"
    user_id: str | None = None
    display_name: str | None = None


class AgentActor(SchemaModel):
    kind: Literal["agent"] = "agent"
    agent_id: str | None = None
    agent_name: str | None = None
    client: str | None = None
    session_id: str | None = None


Actor = Annotated[Union[UserActor, AgentActor], Field(discriminator="kind")]


class Provenance(SchemaModel):
    """Audit metadata: who created/updated an entity and when."""

    created_at: str
    created_by: Actor
    updated_at: str | None = None
    updated_by: Actor | None = None
    instruction_id: str | None = None

    def touched(self, now: str, actor: UserActor | AgentActor) -> "Provenance":
        return self.model_copy(update={"updated_at": now, "updated_by": actor})


def new_provenance(now: str, actor: UserActor | AgentActor) -> Provenance:
    return Provenance(created_at=now, created_by=actor)


# ============================================================================
# Tokens
# ============================================================================


class HexColor(SchemaModel):
    format: Literal["hex"] = "hex"
    hex: str = Field(pattern=HEX_PATTERN)


class TypographySpec(SchemaModel):
    font_family: str
    font_weight: int = Field(ge=1, le=1000)
    font_size: float = Field(gt=0)
    line_height: float = Field(gt=0)
    letter_spacing: float | None = None


class SpacingSpec(SchemaModel):
    px: float


class ColorToken(SchemaModel):
    id: str
    kind: Literal["color"] = "color"
    name: str
    value: HexColor
    meta: dict[str, Any] | None = None


class TypographyToken(SchemaModel):
    id: str
    kind: Literal["typography"] = "typography"
    name: str
    value: TypographySpec
    meta: dict[str, Any] | None = None


class SpacingToken(SchemaModel):
    id: str
    kind: Literal["spacing"] = "spacing"
    name: str
    value: SpacingSpec
    meta: dict[str, Any] | None = None


Token = Annotated[Union[ColorToken, TypographyToken, SpacingToken], Field(discriminator="kind")]


class TokenRef(SchemaModel):
    token_id: str


# ============================================================================
# Token-bindable values
# ============================================================================


class LiteralColor(SchemaModel):
    literal: HexColor


class TokenColor(SchemaModel):
    token_ref: TokenRef


ColorValue = Union[LiteralColor, TokenColor]


class LiteralTypography(SchemaModel):
    literal: TypographySpec


class TokenTypography(SchemaModel):
    token_ref: TokenRef


TypographyValue = Union[LiteralTypography, TokenTypography]


# ============================================================================
# Style
# ============================================================================


class NoFill(SchemaModel):
    kind: Literal["none"] = "none"


class SolidFill(SchemaModel):
    kind: Literal["solid"] = "solid"
    color: ColorValue


FillStyle = Annotated[Union[NoFill, SolidFill], Field(discriminator="kind")]


class StrokeStyle(SchemaModel):
    width: float = Field(ge=0)
    color: ColorValue
    line_cap: Literal["butt", "round", "square"] | None = None
    line_join: Literal["miter", "round", "bevel"] | None = None
    miter_limit: float | None = None
    dash: list[float] | None = None


class CommonStyle(SchemaModel):
    opacity: float | None = Field(default=None, ge=0, le=1)
    fill: FillStyle | None = None
    stroke: StrokeStyle | None = None
    radius: float | None = Field(default=None, ge=0)


class Constraints(SchemaModel):
    left: bool | None = None
    right: bool | None = None
    top: bool | None = None
    bottom: bool | None = None
    center_x: bool | None = None
    center_y: bool | None = None


class GridHint(SchemaModel):
    columns: int = Field(gt=0)
    gutter: float = Field(ge=0)
    margin: float = Field(ge=0)


class LayoutHints(SchemaModel):
    constraints: Constraints | None = None
    grid: GridHint | None = None


class LayerFlags(SchemaModel):
    locked: bool | None = None
    hidden: bool | None = None
