"""
Batch Design Script Processor.

Executes a script of I/C/R/M/D/U statements against the command bus as
one all-or-nothing unit. The pre-batch Document is snapshotted when a batch
starts; on the first failing statement execution stops, the snapshot is
restored through ``doc.restore`` and the transaction is rolled back.

Scripts may stream in: repeated ``partial`` calls with the same batch id
execute only the statements that became complete since the previous call.
The final call runs whatever remains and reports. Only one batch at a time
may hold an open transaction; a batch started while another is in progress
fails without touching the document.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from ..commands.bus import CommandBus
from ..commands.context import ToolContext
from ..commands.transactions import TransactionManager
from ..commands.types import CommandResult, make_command
from ..core.config import Settings
from ..core.logging_config import LogContext, get_logger
from ..core.validate import ValidationError, validate_data_depth, validate_script_size
from ..schema.document import Document
from ..schema.layers import GroupLayer, LayerBase
from ..schema.types import HEX_PATTERN, SchemaModel
from ..storage.errors import DocumentNotFoundError, StorageError
from .lexer import ScriptSyntaxError
from .parser import Binding, Statement, parse_script

logger = get_logger(__name__)

DOCUMENT_REF = "document"
RESERVED_BINDINGS = {"document": DOCUMENT_REF, "root": DOCUMENT_REF}

DEFAULT_RECT = {"x": 0, "y": 0, "w": 100, "h": 100}
REPLACE_KEYS = ("name", "rect", "style", "type")
UPDATE_KEYS = ("name", "rect", "style", "rotation")

# Layer fields never carried over when copying
_COPY_SKIP = {"id", "type", "name", "rect", "frameId", "parentId", "children", "provenance"}

_HEX = re.compile(HEX_PATTERN)


class BatchError(Exception):
    """Base class for statement failures."""

    pass


class BindingError(BatchError):
    def __init__(self, name: str):
        super().__init__(f"binding variable {name} not found")
        self.name = name


class BatchOperationError(BatchError):
    pass


class BatchReport(SchemaModel):
    success: bool
    message: str


@dataclass
class BatchState:
    """Per-batch-id execution state, kept across partial invocations."""

    doc_id: str | None
    bindings: dict[str, str] = field(default_factory=lambda: dict(RESERVED_BINDINGS))
    executed: int = 0
    inserted: int = 0
    log: list[str] = field(default_factory=list)
    failure: str | None = None
    snapshot: Document | None = None
    tx_id: str | None = None


def failure_message(statement: str, error: str) -> str:
    return (
        "## Failure during operation execution\n\n"
        f"Failed to execute: `{statement}`\n\n"
        f"Error: {error}\n\n"
        "All operations in this block have been rolled back."
    )


def success_message(log: list[str]) -> str:
    message = "# Successfully executed all operations.\n"
    if log:
        message += "\n## Operation results:\n" + "".join(log)
    return message


def _pick(data: dict[str, Any], keys: tuple[str, ...]) -> dict[str, Any]:
    return {key: data[key] for key in keys if key in data}


def _color_value(value: Any) -> Any:
    """``"#ff0000"`` shorthand -> literal color value."""
    if isinstance(value, str) and _HEX.match(value):
        return {"literal": {"format": "hex", "hex": value}}
    return value


class BatchDesignProcessor:
    """Interprets batch scripts; one instance serves many batch ids."""

    def __init__(self, bus: CommandBus, transactions: TransactionManager, settings: Settings):
        self.bus = bus
        self.transactions = transactions
        self.settings = settings
        self._batches: dict[str, BatchState] = {}

    def pending(self) -> list[str]:
        """Batch ids with state awaiting a final invocation."""
        return list(self._batches)

    def process(
        self, ctx: ToolContext, operations: str, batch_id: str, partial: bool = False
    ) -> BatchReport | None:
        """
        Run newly available statements of a batch.

        Args:
            ctx: Tool context (the active document is the target)
            operations: Full script text received so far
            batch_id: Identifier shared by all invocations of one batch
            partial: More text will follow; return None without reporting

        Returns:
            BatchReport on the final invocation, None on partial ones
        """
        state = self._batches.get(batch_id)
        if state is None:
            state = self._start(ctx, batch_id)
            self._batches[batch_id] = state

        with LogContext(batch_id=batch_id, doc_id=state.doc_id):
            if state.failure is None:
                self._run(state, ctx, operations, partial)

            if partial:
                return None

            del self._batches[batch_id]
            if state.failure is not None:
                logger.info("batch_failed", executed=state.executed)
                return BatchReport(success=False, message=state.failure)

            if state.tx_id is not None:
                self.transactions.commit(state.tx_id, ctx)
            logger.info("batch_committed", executed=state.executed)
            return BatchReport(success=True, message=success_message(state.log))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _document(self, ctx: ToolContext, doc_id: str) -> Document:
        doc = ctx.editor.get_document(doc_id)
        if doc is not None:
            return doc
        try:
            doc = ctx.storage.load_document(doc_id)
        except DocumentNotFoundError as e:
            raise BatchOperationError(f"Document {doc_id} not found") from e
        except StorageError as e:
            raise BatchOperationError(f"Cannot load document {doc_id}: {e}") from e
        ctx.editor.set_document(doc)
        return doc

    def _start(self, ctx: ToolContext, batch_id: str) -> BatchState:
        state = BatchState(doc_id=ctx.active_document_id)
        if state.doc_id is None:
            state.failure = failure_message(
                "<batch>", "No active document. User must select an active document context."
            )
            return state
        busy = [other for other, pending in self._batches.items() if pending.tx_id is not None]
        if busy:
            state.failure = failure_message(
                "<batch>", f"Batch {busy[0]} is still in progress. Finish it before starting another batch."
            )
            return state
        try:
            state.snapshot = self._document(ctx, state.doc_id)
        except BatchOperationError as e:
            state.failure = failure_message("<batch>", str(e))
            return state
        state.tx_id = self.transactions.begin(f"batch:{batch_id}", ctx)
        logger.info("batch_started", batch_id=batch_id, doc_id=state.doc_id)
        return state

    def _rollback(self, state: BatchState, ctx: ToolContext) -> None:
        """Restore the pre-batch snapshot and close the transaction."""
        if state.snapshot is not None and state.doc_id is not None:
            current = ctx.editor.get_document(state.doc_id)
            if current is not None and current != state.snapshot:
                result = self.bus.dispatch(
                    make_command("doc.restore", doc_id=state.doc_id, document=state.snapshot), ctx
                )
                if not result.ok:
                    logger.error("batch_restore_failed", error=result.error.message)
        if state.tx_id is not None:
            self.transactions.rollback(state.tx_id, ctx)
            state.tx_id = None

    def _run(self, state: BatchState, ctx: ToolContext, operations: str, partial: bool) -> None:
        try:
            validate_script_size(operations, self.settings.batch_max_script_length)
            statements = parse_script(
                operations, partial=partial, max_depth=self.settings.batch_max_depth
            )
            if len(statements) > self.settings.batch_max_statements:
                raise ValidationError(
                    f"Script has {len(statements)} statements, "
                    f"maximum is {self.settings.batch_max_statements}"
                )
        except ScriptSyntaxError as e:
            state.failure = failure_message(e.statement or operations.strip(), str(e))
            self._rollback(state, ctx)
            return
        except ValidationError as e:
            state.failure = failure_message("<script>", str(e))
            self._rollback(state, ctx)
            return
        except Exception as e:
            logger.error("batch_parse_crashed", exc_info=True)
            state.failure = failure_message("<script>", str(e) or type(e).__name__)
            self._rollback(state, ctx)
            return

        for statement in statements[state.executed :]:
            try:
                validate_data_depth(statement.args, self.settings.batch_max_depth)
                self._execute(state, ctx, statement)
            except (BatchError, ValidationError) as e:
                self._fail(state, ctx, statement, str(e))
                return
            except Exception as e:
                logger.error("batch_statement_crashed", statement=statement.source, exc_info=True)
                self._fail(state, ctx, statement, str(e) or type(e).__name__)
                return
            state.executed += 1

    def _fail(self, state: BatchState, ctx: ToolContext, statement: Statement, error: str) -> None:
        logger.info("batch_statement_failed", statement=statement.source, error=error)
        state.failure = failure_message(statement.source, error)
        self._rollback(state, ctx)

    # ------------------------------------------------------------------
    # Reference resolution
    # ------------------------------------------------------------------

    def _ref(self, state: BatchState, value: Any, role: str) -> str:
        """
        Resolve a target/parent/source argument to an id (or ``document``).

        ``"#inst/#child"`` style paths resolve every segment; ids are unique
        across the document, so the last segment names the node.
        """
        if isinstance(value, str) and "/" in value:
            segments = value.split("/")
            if not all(segments):
                raise BatchOperationError(f"Invalid {role} path: {value!r}")
            return [self._ref(state, segment, role) for segment in segments][-1]
        if isinstance(value, Binding):
            name = value.name
        elif isinstance(value, str) and value.startswith("#"):
            name = value[1:]
        elif isinstance(value, str) and value:
            return RESERVED_BINDINGS.get(value, value)
        else:
            raise BatchOperationError(f"Missing {role} reference")
        if name in state.bindings:
            return state.bindings[name]
        raise BindingError(name)

    def _resolve_data(self, state: BatchState, value: Any) -> Any:
        """Replace bindings inside script data (``ref`` fields, ``descendants`` keys)."""
        if isinstance(value, Binding):
            return self._ref(state, value, "binding")
        if isinstance(value, list):
            return [self._resolve_data(state, item) for item in value]
        if isinstance(value, dict):
            out: dict[str, Any] = {}
            for key, item in value.items():
                if key == "ref" and isinstance(item, str) and (item.startswith("#") or "/" in item):
                    out[key] = self._ref(state, item, "ref")
                elif key == "descendants" and isinstance(item, dict):
                    out[key] = {
                        (self._ref(state, k, "descendant") if k.startswith("#") or "/" in k else k): (
                            self._resolve_data(state, v)
                        )
                        for k, v in item.items()
                    }
                else:
                    out[key] = self._resolve_data(state, item)
            return out
        return value

    def _parent(self, doc: Document, ref: str) -> tuple[str, str | None]:
        """(frame id, group id or None) for a parent reference."""
        if ref == DOCUMENT_REF:
            page = doc.pages.get(doc.active_page_id or "")
            if page is None:
                raise BatchOperationError("No active page")
            if not page.frame_ids:
                raise BatchOperationError("No frames in active page")
            return page.frame_ids[0], None
        if ref in doc.frames:
            return ref, None
        layer = doc.layers.get(ref)
        if isinstance(layer, GroupLayer):
            return layer.frame_id, layer.id
        if layer is not None:
            return layer.frame_id, None
        raise BatchOperationError(f"Cannot resolve frame for parent: {ref}")

    def _layer(self, doc: Document, layer_id: str) -> LayerBase:
        layer = doc.layers.get(layer_id)
        if layer is None:
            raise BatchOperationError(f"Layer not found: {layer_id}")
        return layer

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _dispatch(self, ctx: ToolContext, command_type: str, **payload: Any) -> CommandResult:
        result = self.bus.dispatch({"type": command_type, "payload": payload}, ctx)
        if not result.ok:
            raise BatchOperationError(result.error.message)
        return result

    def _execute(self, state: BatchState, ctx: ToolContext, statement: Statement) -> None:
        handler = {
            "I": self._insert,
            "C": self._copy,
            "R": self._replace,
            "M": self._move,
            "D": self._delete,
            "U": self._update,
        }[statement.callee]
        bound = handler(state, ctx, statement)
        if statement.variable and bound is not None:
            state.bindings[statement.variable] = bound

    def _data(self, state: BatchState, statement: Statement, index: int) -> dict[str, Any]:
        data = self._resolve_data(state, statement.arg(index, {}))
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise BatchOperationError(f"{statement.callee}: argument {index + 1} must be an object")
        return data

    def _insert(self, state: BatchState, ctx: ToolContext, statement: Statement) -> str:
        parent_ref = self._ref(state, statement.arg(0), "parent")
        data = self._data(state, statement, 1)
        doc = self._document(ctx, state.doc_id)
        frame_id, parent_id = self._parent(doc, parent_ref)
        layer_id = self._create(state, ctx, frame_id, parent_id, data)
        state.log.append(f"- Inserted layer `{layer_id}`\n")
        return layer_id

    def _create(
        self,
        state: BatchState,
        ctx: ToolContext,
        frame_id: str,
        parent_id: str | None,
        data: dict[str, Any],
    ) -> str:
        data = dict(data)
        children = data.pop("children", None)
        ref = data.pop("ref", None)
        descendants = data.pop("descendants", None)

        state.inserted += 1
        layer_type = data.pop("type", "componentInstance" if ref else "rect")
        spec: dict[str, Any] = {
            "frameId": frame_id,
            "parentId": parent_id,
            "type": layer_type,
            "name": data.pop("name", f"Layer {state.inserted}"),
            "rect": data.pop("rect", DEFAULT_RECT),
            **data,
        }
        if ref is not None:
            spec["componentId"] = ref
        if descendants:
            text: dict[str, Any] = {}
            fill: dict[str, Any] = {}
            for child_id, override in descendants.items():
                if not isinstance(override, dict):
                    raise BatchOperationError(f"Override for {child_id} must be an object")
                if "text" in override:
                    text[child_id] = override["text"]
                if "fill" in override:
                    fill[child_id] = _color_value(override["fill"])
            spec["overrides"] = {"text": text or None, "fillColor": fill or None}

        if children and layer_type != "group":
            raise BatchOperationError("children are only allowed on group layers")

        layer_id = ctx.ids.layer()
        self._dispatch(ctx, "layer.create", docId=state.doc_id, layerId=layer_id, input=spec)

        for child in children or []:
            if not isinstance(child, dict):
                raise BatchOperationError("group children must be objects")
            self._create(state, ctx, frame_id, layer_id, child)
        return layer_id

    def _copy(self, state: BatchState, ctx: ToolContext, statement: Statement) -> str:
        source_id = self._ref(state, statement.arg(0), "source")
        doc = self._document(ctx, state.doc_id)
        source = self._layer(doc, source_id)

        if statement.arg(1) is None:
            frame_id = source.frame_id
            parent_id = source.parent_id if source.parent_id in doc.layers else None
        else:
            frame_id, parent_id = self._parent(doc, self._ref(state, statement.arg(1), "parent"))
        overrides = self._data(state, statement, 2)

        new_id = self._copy_subtree(state, ctx, doc, source, frame_id, parent_id, overrides)
        state.log.append(f"- Copied layer `{source_id}` to `{new_id}`\n")
        return new_id

    def _copy_subtree(
        self,
        state: BatchState,
        ctx: ToolContext,
        doc: Document,
        layer: LayerBase,
        frame_id: str,
        parent_id: str | None,
        overrides: dict[str, Any],
    ) -> str:
        wire = layer.model_dump(mode="json", by_alias=True, exclude_none=True)
        spec = {key: value for key, value in wire.items() if key not in _COPY_SKIP}
        spec.update(
            {
                "frameId": frame_id,
                "parentId": parent_id,
                "type": layer.type,
                "name": overrides.get("name", layer.name),
                "rect": wire["rect"],
            }
        )
        spec.update(_pick(overrides, UPDATE_KEYS))

        new_id = ctx.ids.layer()
        self._dispatch(ctx, "layer.create", docId=state.doc_id, layerId=new_id, input=spec)
        if isinstance(layer, GroupLayer):
            for child_id in layer.children:
                self._copy_subtree(state, ctx, doc, doc.layers[child_id], frame_id, new_id, {})
        return new_id

    def _replace(self, state: BatchState, ctx: ToolContext, statement: Statement) -> str:
        target = self._ref(state, statement.arg(0), "target")
        patch = _pick(self._data(state, statement, 1), REPLACE_KEYS)
        self._dispatch(ctx, "layer.update", docId=state.doc_id, layerId=target, patch=patch)
        state.log.append(f"- Replaced layer `{target}`\n")
        return target

    def _update(self, state: BatchState, ctx: ToolContext, statement: Statement) -> None:
        target = self._ref(state, statement.arg(0), "target")
        patch = _pick(self._data(state, statement, 1), UPDATE_KEYS)
        self._dispatch(ctx, "layer.update", docId=state.doc_id, layerId=target, patch=patch)
        state.log.append(f"- Updated layer `{target}`\n")

    def _move(self, state: BatchState, ctx: ToolContext, statement: Statement) -> None:
        target = self._ref(state, statement.arg(0), "target")
        doc = self._document(ctx, state.doc_id)
        layer = self._layer(doc, target)

        if statement.arg(1) is not None:
            parent_ref = self._ref(state, statement.arg(1), "parent")
            frame_id, group_id = self._parent(doc, parent_ref)
            holder = group_id or frame_id
            if holder != layer.parent_id:
                raise BatchOperationError(
                    f"Cannot move layer {target} to {parent_ref}: moving between parents is not supported"
                )

        index = statement.arg(2)
        if index is not None:
            if not isinstance(index, int) or isinstance(index, bool):
                raise BatchOperationError(f"Move index must be an integer, got {index!r}")
            self._dispatch(ctx, "layer.reorder", docId=state.doc_id, layerId=target, toIndex=index)
        state.log.append(f"- Moved layer `{target}`\n")

    def _delete(self, state: BatchState, ctx: ToolContext, statement: Statement) -> None:
        target = self._ref(state, statement.arg(0), "target")
        self._dispatch(ctx, "layer.delete", docId=state.doc_id, layerId=target)
        state.log.append(f"- Deleted layer `{target}`\n")
