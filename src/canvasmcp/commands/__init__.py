"""Command bus, transactions and undo history."""

from .types import (
    Command,
    CommandError,
    CommandResult,
    ErrorCode,
    UNDOABLE,
    make_command,
    parse_command,
)
from .context import EditorRuntime, StorageAdapter, ToolContext
from .bus import CommandBus
from .history import UndoHistory
from .transactions import Transaction, TransactionError, TransactionManager

__all__ = [
    "Command",
    "CommandError",
    "CommandResult",
    "ErrorCode",
    "UNDOABLE",
    "make_command",
    "parse_command",
    "EditorRuntime",
    "StorageAdapter",
    "ToolContext",
    "CommandBus",
    "UndoHistory",
    "Transaction",
    "TransactionError",
    "TransactionManager",
]
