"""Dependency Injection Container."""

from injector import Injector, Module, provider, singleton

from ..batch.processor import BatchDesignProcessor
from ..commands.bus import CommandBus
from ..commands.context import StorageAdapter
from ..commands.history import UndoHistory
from ..commands.transactions import TransactionManager
from ..editor.runtime import ContextProvider, EditorSession
from ..storage.files import FileStorage
from ..storage.memory import MemoryStorage
from ..tools.registry import ToolRegistry, ToolServices
from .config import Settings, get_settings
from .id import IdFactory


class CoreModule(Module):
    """Core dependencies."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    @singleton
    @provider
    def provide_settings(self) -> Settings:
        return self.settings

    @singleton
    @provider
    def provide_ids(self) -> IdFactory:
        return IdFactory()

    @singleton
    @provider
    def provide_storage(self, ids: IdFactory) -> StorageAdapter:
        """File storage when a directory is configured, otherwise in-memory."""
        if self.settings.storage_dir:
            return FileStorage(self.settings.storage_dir, self.settings.file_extension, ids)
        return MemoryStorage(ids)

    @singleton
    @provider
    def provide_editor(self) -> EditorSession:
        return EditorSession()

    @singleton
    @provider
    def provide_history(self) -> UndoHistory:
        return UndoHistory(limit=self.settings.undo_limit)

    @singleton
    @provider
    def provide_bus(self) -> CommandBus:
        return CommandBus()

    @singleton
    @provider
    def provide_transactions(self) -> TransactionManager:
        return TransactionManager()

    @singleton
    @provider
    def provide_batch_processor(
        self, bus: CommandBus, transactions: TransactionManager
    ) -> BatchDesignProcessor:
        return BatchDesignProcessor(bus, transactions, self.settings)

    @singleton
    @provider
    def provide_context_provider(
        self, storage: StorageAdapter, editor: EditorSession, ids: IdFactory, history: UndoHistory
    ) -> ContextProvider:
        return ContextProvider(storage, editor, ids, self.settings, history=history)

    @singleton
    @provider
    def provide_tool_registry(
        self,
        bus: CommandBus,
        transactions: TransactionManager,
        batch: BatchDesignProcessor,
        contexts: ContextProvider,
    ) -> ToolRegistry:
        """Tool registry with every built-in tool registered."""
        services = ToolServices(
            bus=bus,
            transactions=transactions,
            batch=batch,
            on_activate=contexts.set_active_document,
        )
        return ToolRegistry(services)


def create_container(settings: Settings | None = None) -> Injector:
    """Create configured injector."""
    return Injector([CoreModule(settings)])
