"""
canvasmcp - document mutation engine for an agent-driven canvas design tool.

Agents reach the document only through the tool registry; every mutation
goes through the command bus as a validated, tagged command.
"""

from .batch import BatchDesignProcessor, BatchReport
from .commands import CommandBus, CommandResult, ToolContext, TransactionManager, UndoHistory
from .core import Settings, configure_logging, create_container, get_settings
from .editor import ContextProvider, EditorSession
from .schema import Document
from .storage import FileStorage, MemoryStorage
from .tools import ToolError, ToolRegistry, ToolServices

__version__ = "0.1.0"

__all__ = [
    "BatchDesignProcessor",
    "BatchReport",
    "CommandBus",
    "CommandResult",
    "ContextProvider",
    "Document",
    "EditorSession",
    "FileStorage",
    "MemoryStorage",
    "Settings",
    "ToolContext",
    "ToolError",
    "ToolRegistry",
    "ToolServices",
    "TransactionManager",
    "UndoHistory",
    "configure_logging",
    "create_container",
    "get_settings",
]
