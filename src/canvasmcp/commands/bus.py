"""
Command Bus.

The single mutation gateway: every change to a Document goes through
``CommandBus.dispatch``. Failures come back as ``CommandResult`` data;
handlers signal them by raising ``CommandError`` internally.
"""

from typing import Any

from pydantic import ValidationError

from ..core.logging_config import get_logger
from ..schema.document import Document
from ..storage.errors import DocumentNotFoundError
from .context import ToolContext
from .reducers import REDUCERS, Change, Env
from .types import (
    COMMAND_TYPES,
    UNDOABLE,
    CommandError,
    CommandResult,
    ErrorCode,
    parse_command,
)

logger = get_logger(__name__)


def _validation_details(error: ValidationError) -> list[dict[str, Any]]:
    return error.errors(include_url=False, include_context=False)


class CommandBus:
    """Validates commands, applies reducers, installs and persists results."""

    def __init__(self, reducers: dict[str, Any] | None = None):
        self._reducers = dict(reducers or REDUCERS)

    def dispatch(self, command: Any, ctx: ToolContext) -> CommandResult:
        """
        Execute one command.

        Args:
            command: A Command model or a raw ``{"type", "payload"}`` dict
            ctx: Tool context

        Returns:
            CommandResult (``ok`` with changed ids, or an error)
        """
        if isinstance(command, dict):
            command_type = command.get("type")
            if command_type not in COMMAND_TYPES:
                return CommandResult.failure(
                    ErrorCode.UNKNOWN_COMMAND, f"Unknown command: {command_type}"
                )
            try:
                command = parse_command(command)
            except ValidationError as e:
                return CommandResult.failure(
                    ErrorCode.INVALID, f"Invalid {command_type} payload", _validation_details(e)
                )

        try:
            return self._execute(command, ctx)
        except CommandError as e:
            logger.info("command_rejected", command=command.type, code=e.code.value, reason=e.message)
            return CommandResult.from_error(e)
        except ValidationError as e:
            logger.info("command_invalid", command=command.type, errors=e.error_count())
            return CommandResult.failure(
                ErrorCode.INVALID, f"{command.type}: {e.error_count()} validation error(s)",
                _validation_details(e),
            )
        except Exception as e:
            logger.error("command_failed", command=command.type, error=str(e), exc_info=True)
            return CommandResult.failure(ErrorCode.COMMAND_ERROR, str(e))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, doc_id: str, ctx: ToolContext) -> Document:
        doc = ctx.editor.get_document(doc_id)
        if doc is not None:
            return doc
        try:
            doc = ctx.storage.load_document(doc_id)
        except DocumentNotFoundError as e:
            raise CommandError(ErrorCode.NOT_FOUND, f"Document {doc_id} not found") from e
        ctx.editor.set_document(doc)
        return doc

    def _exists(self, doc_id: str, ctx: ToolContext) -> bool:
        if ctx.editor.get_document(doc_id) is not None:
            return True
        try:
            ctx.storage.load_document(doc_id)
        except DocumentNotFoundError:
            return False
        return True

    def _install(self, doc: Document, ctx: ToolContext) -> None:
        ctx.editor.set_document(doc)
        ctx.storage.save_document(doc)

    def _execute(self, command: Any, ctx: ToolContext) -> CommandResult:
        payload = command.payload
        doc_id = payload.doc_id
        if not doc_id:
            return CommandResult.failure(
                ErrorCode.MISSING_DOC_ID, f"{command.type} requires a document id"
            )

        if command.type == "doc.create":
            if self._exists(doc_id, ctx):
                raise CommandError(ErrorCode.INVALID, f"Document {doc_id} already exists")
            doc = ctx.storage.create_empty_document(payload.name, doc_id, ctx.now())
            self._install(doc, ctx)
            logger.info("document_created", doc_id=doc_id, name=payload.name)
            return CommandResult.success([doc.id, *doc.pages])

        if command.type == "doc.open":
            try:
                doc = ctx.storage.load_document(doc_id)
            except DocumentNotFoundError as e:
                raise CommandError(ErrorCode.NOT_FOUND, f"Document {doc_id} not found") from e
            ctx.editor.set_document(doc)
            logger.info("document_opened", doc_id=doc_id)
            return CommandResult.success([doc.id])

        current = self._load(doc_id, ctx)

        if command.type == "doc.save":
            ctx.storage.save_document(current)
            logger.info("document_saved", doc_id=doc_id)
            return CommandResult.success()

        if command.type == "doc.restore":
            if payload.document.id != doc_id:
                raise CommandError(
                    ErrorCode.INVALID,
                    f"Snapshot belongs to {payload.document.id}, not {doc_id}",
                )
            change = Change(payload.document, [doc_id])
        else:
            handler = self._reducers.get(command.type)
            if handler is None:
                return CommandResult.failure(
                    ErrorCode.UNKNOWN_COMMAND, f"Unknown command: {command.type}"
                )
            change = handler(current, payload, Env(now=ctx.now(), actor=ctx.actor))

        if command.type == "selection.set":
            ctx.editor.set_selection(payload.selection)

        updated = change.document
        if updated is not current and updated != current:
            self._install(updated, ctx)
            if command.type in UNDOABLE and ctx.history is not None:
                ctx.history.record(current)
            logger.info(
                "command_applied",
                command=command.type,
                doc_id=doc_id,
                changed=len(change.changed_ids),
            )
        return CommandResult.success(change.changed_ids)
