"""Tool Registry - the agent-facing surface, one typed handler per tool."""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..commands.bus import CommandBus
from ..commands.context import ToolContext
from ..commands.transactions import TransactionManager
from ..core.logging_config import get_logger

if TYPE_CHECKING:
    from ..batch.processor import BatchDesignProcessor

logger = get_logger(__name__)


# ============================================================================
# Errors
# ============================================================================


class ToolErrorCode(str, Enum):
    NO_ACTIVE_DOCUMENT = "NO_ACTIVE_DOCUMENT"
    INVALID_INPUT = "INVALID_INPUT"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    TOOL_EXISTS = "TOOL_EXISTS"
    TRANSACTION_ERROR = "TRANSACTION_ERROR"
    EXPORT_UNAVAILABLE = "EXPORT_UNAVAILABLE"


class ToolError(Exception):
    """Raised across the tool boundary. ``code`` is a ToolErrorCode or a bus ErrorCode value."""

    def __init__(self, code: str, message: str, details: Any = None):
        super().__init__(message)
        self.code = code.value if isinstance(code, Enum) else code
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


# ============================================================================
# Tool Registry Schema
# ============================================================================

ToolHandler = Callable[[Any, ToolContext], Any]


class ToolDefinition(BaseModel):
    """Definition of a callable tool."""

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    name: str = Field(..., description="Unique tool name")
    description: str = Field(..., description="What the tool does")
    category: str = Field(default="general", description="Tool category (document, layer, query, ...)")
    input_schema: Dict[str, Any] = Field(default_factory=dict, alias="inputSchema")
    output_schema: Dict[str, Any] = Field(default_factory=dict, alias="outputSchema")
    input_model: Any = Field(default=None, exclude=True)
    handler: Any = Field(default=None, exclude=True)

    @classmethod
    def create(
        cls,
        name: str,
        description: str,
        category: str,
        input_model: type[BaseModel],
        output_model: type[BaseModel],
        handler: ToolHandler,
    ) -> "ToolDefinition":
        """Build a definition whose schemas come from the pydantic models."""
        return cls(
            name=name,
            description=description,
            category=category,
            input_schema=input_model.model_json_schema(by_alias=True),
            output_schema=output_model.model_json_schema(by_alias=True),
            input_model=input_model,
            handler=handler,
        )


@dataclass
class ToolServices:
    """Collaborators shared by the tool handlers."""

    bus: CommandBus
    transactions: TransactionManager
    batch: "BatchDesignProcessor"
    # Called with the new active document id (create/open)
    on_activate: Optional[Callable[[str], None]] = None


class ToolRegistry:
    """
    Category-organized tool registry.

    With ``services`` the built-in tool set is registered on construction;
    without, the registry starts empty.
    """

    def __init__(self, services: ToolServices | None = None):
        self.tools: Dict[str, ToolDefinition] = {}
        self.services = services
        if services is not None:
            self._initialize_builtin_tools(services)

    def _initialize_builtin_tools(self, services: ToolServices) -> None:
        from .categories import (
            register_batch_tools,
            register_component_tools,
            register_document_tools,
            register_layer_tools,
            register_query_tools,
            register_session_tools,
        )

        register_document_tools(self, services)
        register_layer_tools(self, services)
        register_component_tools(self, services)
        register_session_tools(self, services)
        register_batch_tools(self, services)
        register_query_tools(self, services)

        logger.info(
            "tools_registered", tools=len(self.tools), categories=len(self.get_categories())
        )

    def register(self, tool: ToolDefinition) -> None:
        """Register a new tool; names are unique."""
        if tool.name in self.tools:
            raise ToolError(ToolErrorCode.TOOL_EXISTS, f"Tool already registered: {tool.name}")
        self.tools[tool.name] = tool
        logger.debug("tool_registered", tool=tool.name, category=tool.category)

    def get_tool(self, name: str) -> Optional[ToolDefinition]:
        return self.tools.get(name)

    def get_categories(self) -> List[str]:
        return sorted({tool.category for tool in self.tools.values()})

    def list_tools(self, category: Optional[str] = None) -> List[ToolDefinition]:
        """List all tools, optionally filtered by category."""
        tools = list(self.tools.values())
        if category:
            tools = [t for t in tools if t.category == category]
        return tools

    def get_tool_definitions(self) -> List[Dict[str, Any]]:
        """Wire form of every tool (name, description, schemas), handlers omitted."""
        return [tool.model_dump(by_alias=True) for tool in self.tools.values()]

    def get_tools_description(self) -> str:
        """Plain-text listing of all tools for agent context."""
        lines = ["=== DESIGN TOOLS ==="]
        for category in self.get_categories():
            lines.append(f"\n{category.upper()}:")
            for tool in self.list_tools(category):
                params = ", ".join(tool.input_schema.get("properties", {}))
                params_str = f"({params})" if params else "(no params)"
                lines.append(f"  - {tool.name}: {tool.description} {params_str}")
        return "\n".join(lines)

    def invoke(self, name: str, input: Optional[Dict[str, Any]], ctx: ToolContext) -> Any:
        """
        Validate input and run a tool.

        Returns:
            The handler's output model dumped with wire (camelCase) keys

        Raises:
            ToolError: Unknown tool, invalid input, or a failure reported by the handler
        """
        tool = self.tools.get(name)
        if tool is None:
            raise ToolError(ToolErrorCode.UNKNOWN_TOOL, f"Unknown tool: {name}")

        try:
            parsed = tool.input_model.model_validate(input or {})
        except ValidationError as e:
            raise ToolError(
                ToolErrorCode.INVALID_INPUT,
                f"Invalid input for {name}",
                e.errors(include_url=False, include_context=False),
            ) from e

        logger.debug("tool_invoked", tool=name)
        output = tool.handler(parsed, ctx)
        if isinstance(output, BaseModel):
            return output.model_dump(mode="json", by_alias=True, exclude_none=True)
        return output


# ============================================================================
# Exports
# ============================================================================

__all__ = [
    "ToolDefinition",
    "ToolError",
    "ToolErrorCode",
    "ToolRegistry",
    "ToolServices",
]
