"""
Tool Categories
Tool definitions grouped by concern. Each module exposes one
``register_*_tools(registry, services)`` function.
"""

from .document_tools import register_document_tools
from .layer_tools import register_layer_tools
from .component_tools import register_component_tools
from .session_tools import register_session_tools
from .batch_tools import register_batch_tools
from .query_tools import register_query_tools

__all__ = [
    "register_document_tools",
    "register_layer_tools",
    "register_component_tools",
    "register_session_tools",
    "register_batch_tools",
    "register_query_tools",
]
