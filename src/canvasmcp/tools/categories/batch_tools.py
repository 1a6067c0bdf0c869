"""
Batch Design Tool
Runs I/C/R/M/D/U scripts atomically, optionally streamed in several calls.
"""

from typing import TYPE_CHECKING

from ...batch.processor import BatchReport
from ...commands.context import ToolContext
from ..guardrails import require_doc_id
from ..inputs import BatchDesignInput
from ..registry import ToolDefinition

if TYPE_CHECKING:
    from ..registry import ToolRegistry, ToolServices

BATCH_DESCRIPTION = """Execute multiple design operations as one atomic batch.

Statements (one per line or separated by ';'):
  name = I(parent, {type, name, rect, ...})  insert a layer; binds its id
  name = C(source, parent, {name, rect, ...}) copy a layer subtree
  R(target, {name, rect, style, type})        replace fields
  U(target, {name, rect, style, rotation})    update fields
  M(target, _, index)                          reorder within the current container
  D(target)                                    delete
parent may be "document"/root (first frame of the active page), a frame id,
a group id, or a #binding. If any statement fails every change is rolled back."""


def register_batch_tools(registry: "ToolRegistry", services: "ToolServices") -> None:
    processor = services.batch

    def batch_design(input: BatchDesignInput, ctx: ToolContext) -> BatchReport:
        require_doc_id(ctx)
        report = processor.process(ctx, input.operations, input.id, partial=input.partial)
        if report is None:
            return BatchReport(success=True, message="Processing...")
        return report

    registry.register(ToolDefinition.create(
        name="batch_design",
        description=BATCH_DESCRIPTION,
        category="batch",
        input_model=BatchDesignInput,
        output_model=BatchReport,
        handler=batch_design,
    ))
