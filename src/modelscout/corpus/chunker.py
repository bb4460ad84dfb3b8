"""Heading-based markdown chunking for documentation corpora.

Splits markdown into one chunk per heading section, preserving the heading
hierarchy as parent links and pulling out fenced code blocks.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml

from modelscout.corpus.schema import Chunk


HEADING_PATTERN = re.compile(r"^(#{1,6})[ \t]+(.+)$", re.MULTILINE)
CODE_BLOCK_PATTERN = re.compile(r"```[\s\S]*?```")


def extract_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Extract YAML frontmatter and body from markdown content.

    Returns (frontmatter_dict, body_text).
    """
    if not content.startswith("---"):
        return {}, content

    parts = content.split("---", 2)
    if len(parts) < 3:
        return {}, content

    try:
        fm = yaml.safe_load(parts[1]) or {}
    except yaml.YAMLError:
        fm = {}
    if not isinstance(fm, dict):
        fm = {}

    body = parts[2].lstrip("\n")
    return fm, body


def chunk_markdown(content: str, start_id: int = 0) -> list[Chunk]:
    """Split markdown text into section chunks.

    Each heading starts a chunk that runs until the next heading of any
    level; ``parent_id`` points at the nearest preceding heading of a
    smaller level. Text before the first heading becomes an 'Overview'
    chunk with no parent. Ids are ordinals starting at ``start_id``.
    """
    _, body = extract_frontmatter(content)
    headings = _find_headings(body)

    chunks: list[Chunk] = []
    next_id = start_id

    preamble = body[:headings[0][0]] if headings else body
    if preamble.strip():
        chunks.append(_make_chunk(next_id, preamble.strip(), None, "Overview", 0))
        next_id += 1

    parents: list[tuple[int, int]] = []  # (level, chunk id)
    for i, (start, level, heading) in enumerate(headings):
        end = headings[i + 1][0] if i + 1 < len(headings) else len(body)
        text = body[start:end].strip()

        while parents and parents[-1][0] >= level:
            parents.pop()
        parent_id = parents[-1][1] if parents else None

        chunks.append(_make_chunk(next_id, text, parent_id, heading, level))
        parents.append((level, next_id))
        next_id += 1

    return chunks


def chunk_markdown_file(path: Path, start_id: int = 0) -> list[Chunk]:
    """Chunk a markdown file read as UTF-8."""
    return chunk_markdown(path.read_text(encoding="utf-8"), start_id=start_id)


def _find_headings(body: str) -> list[tuple[int, int, str]]:
    """(offset, level, title) of headings outside fenced code blocks."""
    fences = [(m.start(), m.end()) for m in CODE_BLOCK_PATTERN.finditer(body)]
    result = []
    for match in HEADING_PATTERN.finditer(body):
        pos = match.start()
        if any(start <= pos < end for start, end in fences):
            continue
        result.append((pos, len(match.group(1)), match.group(2).strip()))
    return result


def _make_chunk(chunk_id: int, text: str, parent_id: int | None, heading: str, level: int) -> Chunk:
    code = "\n\n".join(m.group(0) for m in CODE_BLOCK_PATTERN.finditer(text))
    return Chunk(
        id=chunk_id,
        content=text,
        parent_id=parent_id,
        heading=heading,
        level=level,
        code=code,
    )
