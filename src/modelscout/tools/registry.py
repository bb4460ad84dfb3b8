"""Tool registry for modelscout.

Defines the agent-facing tools with their JSON input schemas.
"""

from __future__ import annotations

from typing import Any


def get_tool_definitions() -> list[dict[str, Any]]:
    """Return all tool definitions (name, description, input_schema)."""
    return [
        {
            "name": "search_definitions",
            "description": (
                "Get details of model definitions by fuzzy name match. "
                "Returns each descriptor with its name merged in: kind, doc, elements, etc. "
                "Useful when constructing queries or modifying the model."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "description": "Name of the definition (fuzzy search, no regex or special characters)",
                    },
                    "kind": {
                        "type": "string",
                        "description": "Kind of the definition (service, entity, action, ...)",
                    },
                    "top_n": {
                        "type": "integer",
                        "description": "Number of results",
                        "default": 1,
                        "minimum": 1,
                    },
                },
            },
        },
        {
            "name": "list_definition_names",
            "description": (
                "List the names of all model definitions, optionally of one kind. "
                "Use search_definitions for details."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "kind": {
                        "type": "string",
                        "description": "Kind of the definition (service, entity, action, ...)",
                    },
                },
            },
        },
        {
            "name": "search_docs",
            "description": (
                "Semantic search over the documentation corpus. "
                "Returns the best matching sections with their subsections, "
                "prefixed by their parent headings."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Search query",
                    },
                    "max_results": {
                        "type": "integer",
                        "description": "Maximum number of sections to return",
                        "default": 5,
                        "minimum": 1,
                    },
                    "code_only": {
                        "type": "boolean",
                        "description": "Return only the code blocks of matching sections",
                        "default": False,
                    },
                },
                "required": ["query"],
            },
        },
    ]


def get_tool_names() -> list[str]:
    """Get list of all tool names."""
    return [t["name"] for t in get_tool_definitions()]


def get_tool_definition(name: str) -> dict[str, Any] | None:
    """Get a specific tool definition by name."""
    for tool in get_tool_definitions():
        if tool["name"] == name:
            return tool
    return None
