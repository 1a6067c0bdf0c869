"""
Guardrails: document scoping and patch whitelisting.

Tool handlers do no business logic of their own. They resolve the target
document, strip patch keys an agent may not touch, and forward to the bus.
"""

from typing import Any, Iterable, Optional

from ..commands.bus import CommandBus
from ..commands.context import ToolContext
from ..commands.reducers import wire_key
from ..commands.types import CommandResult
from ..core.logging_config import get_logger
from ..schema.document import Document
from ..storage.errors import DocumentNotFoundError
from .registry import ToolError, ToolErrorCode

logger = get_logger(__name__)

LAYER_PATCH_KEYS = frozenset(
    {
        "name",
        "rect",
        "rotation",
        "style",
        "layout",
        "flags",
        # text
        "text",
        "typography",
        "color",
        "align",
        "verticalAlign",
        # image
        "assetId",
        "crop",
        # line / path
        "points",
        "commands",
        "closed",
    }
)

FRAME_PATCH_KEYS = frozenset({"name", "platform", "rect", "background", "flags"})


def require_doc_id(ctx: ToolContext, explicit: Optional[str] = None) -> str:
    """Explicit id, else the context's active document."""
    doc_id = explicit or ctx.active_document_id
    if not doc_id:
        raise ToolError(
            ToolErrorCode.NO_ACTIVE_DOCUMENT,
            "No active document. User must select an active document context.",
        )
    return doc_id


def pick_patch(patch: Optional[dict[str, Any]], allowed: Iterable[str]) -> dict[str, Any]:
    """Keep only allow-listed keys (snake_case input is accepted)."""
    allowed = set(allowed)
    kept: dict[str, Any] = {}
    dropped: list[str] = []
    for key, value in (patch or {}).items():
        name = wire_key(key)
        if name in allowed:
            kept[name] = value
        else:
            dropped.append(key)
    if dropped:
        logger.info("patch_keys_dropped", keys=dropped)
    return kept


def expect_ok(result: CommandResult) -> CommandResult:
    """Turn a failed CommandResult into a ToolError carrying the bus error code."""
    if not result.ok:
        error = result.error
        raise ToolError(error.code, error.message, error.details)
    return result


def load_document(ctx: ToolContext, doc_id: str) -> Document:
    """Live editor copy, falling back to storage."""
    doc = ctx.editor.get_document(doc_id)
    if doc is not None:
        return doc
    try:
        return ctx.storage.load_document(doc_id)
    except DocumentNotFoundError as e:
        raise ToolError("NOT_FOUND", str(e), {"id": doc_id}) from e


def run_command(bus: CommandBus, ctx: ToolContext, command_type: str, **payload: Any) -> CommandResult:
    """Dispatch a raw command and require success."""
    return expect_ok(bus.dispatch({"type": command_type, "payload": payload}, ctx))
