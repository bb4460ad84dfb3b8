"""Definition lookup tool handlers."""

from __future__ import annotations

from typing import Any

from modelscout.definitions.source import DefinitionSource, names_of_kind, search_definitions


def handle_search_definitions(
    tool_input: dict[str, Any],
    source: DefinitionSource,
) -> list[dict[str, Any]]:
    return search_definitions(
        source.definitions(),
        name=tool_input.get("name"),
        kind=tool_input.get("kind"),
        top_n=int(tool_input.get("top_n", 1)),
    )


def handle_list_definition_names(
    tool_input: dict[str, Any],
    source: DefinitionSource,
) -> list[str]:
    return names_of_kind(source.definitions(), tool_input.get("kind"))
