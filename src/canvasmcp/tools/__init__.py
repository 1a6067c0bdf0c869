"""Agent-facing tool surface: registry, guardrails and the built-in tools."""

from .registry import ToolDefinition, ToolError, ToolErrorCode, ToolRegistry, ToolServices
from .guardrails import (
    FRAME_PATCH_KEYS,
    LAYER_PATCH_KEYS,
    expect_ok,
    load_document,
    pick_patch,
    require_doc_id,
    run_command,
)

__all__ = [
    "ToolDefinition",
    "ToolError",
    "ToolErrorCode",
    "ToolRegistry",
    "ToolServices",
    "FRAME_PATCH_KEYS",
    "LAYER_PATCH_KEYS",
    "expect_ok",
    "load_document",
    "pick_patch",
    "require_doc_id",
    "run_command",
]
