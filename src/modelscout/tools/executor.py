"""Tool executor for modelscout.

Validates required arguments against the registry and dispatches tool
calls to registered handlers.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from modelscout.errors import ModelScoutError
from modelscout.tools.registry import get_tool_definition


logger = logging.getLogger(__name__)


ToolHandler = Callable[[dict[str, Any]], Any]


class ToolExecutor:
    """Executes registered tools, turning failures into error results."""

    def __init__(self) -> None:
        self._handlers: dict[str, ToolHandler] = {}

    def register_handler(self, tool_name: str, handler: ToolHandler) -> None:
        """Register a handler function for a tool."""
        self._handlers[tool_name] = handler

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers)

    def execute(
        self,
        tool_name: str,
        tool_input: dict[str, Any],
    ) -> dict[str, Any]:
        """Execute a tool.

        Returns dict with:
        - success: bool
        - result: Any (tool output, on success)
        - error: str (on failure)
        """
        handler = self._handlers.get(tool_name)
        if handler is None:
            return {"success": False, "error": f"No handler registered for tool: {tool_name}"}

        missing = _missing_required(tool_name, tool_input)
        if missing:
            return {"success": False, "error": f"Missing required argument(s): {', '.join(missing)}"}

        try:
            result = handler(tool_input)
        except (ModelScoutError, OSError, KeyError, TypeError, ValueError) as e:
            logger.warning("Tool %s failed: %s", tool_name, e)
            return {"success": False, "error": str(e)}
        return {"success": True, "result": result}


def _missing_required(tool_name: str, tool_input: dict[str, Any]) -> list[str]:
    definition = get_tool_definition(tool_name)
    if definition is None:
        return []
    required = definition["input_schema"].get("required", [])
    return [key for key in required if tool_input.get(key) is None]
