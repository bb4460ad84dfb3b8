"""Definition sources: name -> descriptor mappings from a compiled model.

A compiled model is a JSON document ``{"definitions": {name: descriptor}}``
where each descriptor is an object, typically carrying a ``kind`` (service,
entity, action, ...), an optional ``doc`` string and an ``elements`` object.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Mapping, Protocol

from modelscout.corpus.fuzzy import fuzzy_top_n
from modelscout.corpus.schema import Chunk
from modelscout.errors import InvalidInput


logger = logging.getLogger(__name__)


class DefinitionSource(Protocol):
    """Anything that can produce the current definition mapping."""

    def definitions(self) -> Mapping[str, dict[str, Any]]:
        ...


class StaticDefinitionSource:
    """Fixed in-memory definitions."""

    def __init__(self, definitions: Mapping[str, dict[str, Any]]):
        self._definitions = dict(definitions)

    def definitions(self) -> Mapping[str, dict[str, Any]]:
        return self._definitions


class JsonDefinitionSource:
    """Reads a compiled model JSON file, reloading when its mtime changes.

    Concurrent callers share one load. A failed reload keeps serving the
    previously loaded definitions; a failed first load raises.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._definitions: dict[str, dict[str, Any]] | None = None
        self._mtime: float | None = None

    def definitions(self) -> Mapping[str, dict[str, Any]]:
        with self._lock:
            mtime = self.path.stat().st_mtime if self.path.exists() else None
            if self._definitions is not None and mtime == self._mtime:
                return self._definitions
            try:
                self._definitions = load_definitions(self.path)
                self._mtime = mtime
            except (OSError, InvalidInput) as e:
                if self._definitions is None:
                    raise
                logger.warning("Keeping previous definitions, reload of %s failed: %s", self.path, e)
            return self._definitions


def load_definitions(path: Path) -> dict[str, dict[str, Any]]:
    """Parse a compiled model file into its definitions mapping."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidInput(f"compiled model is not valid JSON: {e}", path) from e

    definitions = data.get("definitions") if isinstance(data, dict) else None
    if not isinstance(definitions, dict) or not definitions:
        raise InvalidInput("compiled model has no definitions", path)

    result = {}
    for name, descriptor in definitions.items():
        if isinstance(descriptor, dict):
            result[name] = descriptor
        else:
            logger.debug("Skipping definition %s with non-object descriptor", name)
    logger.info("Loaded %d definitions from %s", len(result), path)
    return result


def names_of_kind(definitions: Mapping[str, dict[str, Any]], kind: str | None = None) -> list[str]:
    """Definition names, optionally restricted to one kind, in source order."""
    if not kind:
        return list(definitions)
    return [name for name, d in definitions.items() if d.get("kind") == kind]


def search_definitions(
    definitions: Mapping[str, dict[str, Any]],
    name: str | None = None,
    kind: str | None = None,
    top_n: int = 1,
) -> list[dict[str, Any]]:
    """Best fuzzy matches for ``name`` as descriptors with ``name`` merged in."""
    if top_n < 1:
        raise InvalidInput("top_n must be at least 1")
    matches = fuzzy_top_n(name or "", names_of_kind(definitions, kind), top_n)
    return [{"name": m.item, **definitions[m.item]} for m in matches]


def describe_definition(name: str, descriptor: Mapping[str, Any]) -> str:
    """Plain-text rendering of a definition, used as its embedding input."""
    lines = [name]
    kind = descriptor.get("kind")
    if kind:
        lines[0] = f"{kind} {name}"
    doc = descriptor.get("doc")
    if isinstance(doc, str) and doc.strip():
        lines.append(doc.strip())
    elements = descriptor.get("elements")
    if isinstance(elements, dict) and elements:
        lines.append("elements: " + ", ".join(elements))
    return "\n".join(lines)


def definition_chunks(definitions: Mapping[str, dict[str, Any]]) -> list[Chunk]:
    """One chunk per definition, headed by its name, for semantic indexing."""
    return [
        Chunk(id=i, content=describe_definition(name, descriptor), heading=name)
        for i, (name, descriptor) in enumerate(definitions.items())
    ]
