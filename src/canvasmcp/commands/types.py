"""
Command and result types.

A command is a tagged request ``{"type": "layer.create", "payload": {...}}``.
The closed set of variants is a pydantic discriminated union, so raw agent
input is validated in one step by ``parse_command``.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union, get_args

from pydantic import Field, TypeAdapter

from ..schema.document import (
    Asset,
    CreateComponentInput,
    CreateFrameInput,
    CreateLayerInput,
    Document,
    InstantiateComponentInput,
    SelectionState,
)
from ..schema.types import SchemaModel, Token

# ============================================================================
# Errors
# ============================================================================


class ErrorCode(str, Enum):
    """Command failure taxonomy."""

    NOT_FOUND = "NOT_FOUND"
    MISSING_DOC_ID = "MISSING_DOC_ID"
    INVALID = "INVALID"
    UNKNOWN_COMMAND = "UNKNOWN_COMMAND"
    COMMAND_ERROR = "COMMAND_ERROR"


class CommandError(Exception):
    """Raised by handlers; converted to a failed CommandResult by the bus."""

    def __init__(self, code: ErrorCode, message: str, details: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class CommandErrorInfo(SchemaModel):
    code: str
    message: str
    details: Any = None


class CommandResult(SchemaModel):
    """Outcome of one dispatch. Errors are data, never raised."""

    ok: bool
    changed_ids: list[str] | None = None
    error: CommandErrorInfo | None = None

    @classmethod
    def success(cls, changed_ids: list[str] | None = None) -> "CommandResult":
        return cls(ok=True, changed_ids=changed_ids)

    @classmethod
    def failure(cls, code: ErrorCode | str, message: str, details: Any = None) -> "CommandResult":
        code_value = code.value if isinstance(code, ErrorCode) else code
        return cls(ok=False, error=CommandErrorInfo(code=code_value, message=message, details=details))

    @classmethod
    def from_error(cls, error: CommandError) -> "CommandResult":
        return cls.failure(error.code, error.message, error.details)


# ============================================================================
# Payloads
# ============================================================================


class DocPayload(SchemaModel):
    """Base payload; ``doc_id`` is optional so the bus can report MISSING_DOC_ID."""

    doc_id: str | None = None


class DocCreatePayload(DocPayload):
    name: str


class DocRestorePayload(DocPayload):
    document: Document


class PageCreatePayload(DocPayload):
    page_id: str
    name: str


class PageRefPayload(DocPayload):
    page_id: str


class PageRenamePayload(DocPayload):
    page_id: str
    name: str


class FrameCreatePayload(DocPayload):
    frame_id: str
    input: CreateFrameInput


class FrameUpdatePayload(DocPayload):
    frame_id: str
    patch: dict[str, Any]


class FrameRefPayload(DocPayload):
    frame_id: str


class LayerCreatePayload(DocPayload):
    layer_id: str
    input: CreateLayerInput


class LayerUpdatePayload(DocPayload):
    layer_id: str
    patch: dict[str, Any]


class LayerRefPayload(DocPayload):
    layer_id: str


class LayerGroupPayload(DocPayload):
    group_id: str
    layer_ids: list[str]
    name: str


class LayerUngroupPayload(DocPayload):
    group_id: str


class LayerReorderPayload(DocPayload):
    layer_id: str
    to_index: int


class ComponentCreatePayload(DocPayload):
    component_id: str
    input: CreateComponentInput


class ComponentInstantiatePayload(DocPayload):
    instance_layer_id: str
    input: InstantiateComponentInput


class TokensUpsertPayload(DocPayload):
    tokens: list[Token]


class AssetsUpsertPayload(DocPayload):
    assets: list[Asset]


class SelectionSetPayload(DocPayload):
    selection: SelectionState


# ============================================================================
# Commands
# ============================================================================


class DocCreate(SchemaModel):
    type: Literal["doc.create"] = "doc.create"
    payload: DocCreatePayload


class DocOpen(SchemaModel):
    type: Literal["doc.open"] = "doc.open"
    payload: DocPayload


class DocSave(SchemaModel):
    type: Literal["doc.save"] = "doc.save"
    payload: DocPayload


class DocRestore(SchemaModel):
    type: Literal["doc.restore"] = "doc.restore"
    payload: DocRestorePayload


class PageCreate(SchemaModel):
    type: Literal["page.create"] = "page.create"
    payload: PageCreatePayload


class PageDelete(SchemaModel):
    type: Literal["page.delete"] = "page.delete"
    payload: PageRefPayload


class PageRename(SchemaModel):
    type: Literal["page.rename"] = "page.rename"
    payload: PageRenamePayload


class PageSetActive(SchemaModel):
    type: Literal["page.setActive"] = "page.setActive"
    payload: PageRefPayload


class FrameCreate(SchemaModel):
    type: Literal["frame.create"] = "frame.create"
    payload: FrameCreatePayload


class FrameUpdate(SchemaModel):
    type: Literal["frame.update"] = "frame.update"
    payload: FrameUpdatePayload


class FrameDelete(SchemaModel):
    type: Literal["frame.delete"] = "frame.delete"
    payload: FrameRefPayload


class LayerCreate(SchemaModel):
    type: Literal["layer.create"] = "layer.create"
    payload: LayerCreatePayload


class LayerUpdate(SchemaModel):
    type: Literal["layer.update"] = "layer.update"
    payload: LayerUpdatePayload


class LayerDelete(SchemaModel):
    type: Literal["layer.delete"] = "layer.delete"
    payload: LayerRefPayload


class LayerGroup(SchemaModel):
    type: Literal["layer.group"] = "layer.group"
    payload: LayerGroupPayload


class LayerUngroup(SchemaModel):
    type: Literal["layer.ungroup"] = "layer.ungroup"
    payload: LayerUngroupPayload


class LayerReorder(SchemaModel):
    type: Literal["layer.reorder"] = "layer.reorder"
    payload: LayerReorderPayload


class ComponentCreate(SchemaModel):
    type: Literal["component.create"] = "component.create"
    payload: ComponentCreatePayload


class ComponentInstantiate(SchemaModel):
    type: Literal["component.instantiate"] = "component.instantiate"
    payload: ComponentInstantiatePayload


class TokensUpsert(SchemaModel):
    type: Literal["tokens.upsert"] = "tokens.upsert"
    payload: TokensUpsertPayload


class AssetsUpsert(SchemaModel):
    type: Literal["assets.upsert"] = "assets.upsert"
    payload: AssetsUpsertPayload


class SelectionSet(SchemaModel):
    type: Literal["selection.set"] = "selection.set"
    payload: SelectionSetPayload


Command = Annotated[
    Union[
        DocCreate,
        DocOpen,
        DocSave,
        DocRestore,
        PageCreate,
        PageDelete,
        PageRename,
        PageSetActive,
        FrameCreate,
        FrameUpdate,
        FrameDelete,
        LayerCreate,
        LayerUpdate,
        LayerDelete,
        LayerGroup,
        LayerUngroup,
        LayerReorder,
        ComponentCreate,
        ComponentInstantiate,
        TokensUpsert,
        AssetsUpsert,
        SelectionSet,
    ],
    Field(discriminator="type"),
]

COMMAND_ADAPTER: TypeAdapter[Any] = TypeAdapter(Command)

COMMAND_TYPES: frozenset[str] = frozenset(
    cls.model_fields["type"].default for cls in get_args(get_args(Command)[0])
)

# Variants that produce an undo step when they change the document
UNDOABLE: frozenset[str] = COMMAND_TYPES - {
    "doc.create",
    "doc.open",
    "doc.save",
    "doc.restore",
    "selection.set",
}


def parse_command(data: dict[str, Any]) -> Any:
    """
    Validate a raw ``{"type", "payload"}`` dict into a Command.

    Raises:
        pydantic.ValidationError: If the variant or payload is malformed
    """
    return COMMAND_ADAPTER.validate_python(data)


def make_command(command_type: str, **payload: Any) -> Any:
    """Build a command from keyword payload fields (snake_case or camelCase)."""
    return parse_command({"type": command_type, "payload": payload})
