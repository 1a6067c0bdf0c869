"""Editor runtime: live documents, selection, export and context building."""

from .runtime import ContextProvider, EditorSession, ExportUnavailableError, FrameRenderer

__all__ = ["ContextProvider", "EditorSession", "ExportUnavailableError", "FrameRenderer"]
