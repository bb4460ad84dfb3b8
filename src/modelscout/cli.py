"""modelscout CLI: main entry point.

Commands:
  embed     Print embedding vectors for texts
  index     Build an embedding corpus from markdown files
  search    Search a corpus and print the best sections
  tool      Run an agent tool with JSON input
  serve     Start the HTTP service
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from modelscout.config import configure_logging, load_settings, validate_settings
from modelscout.errors import ModelScoutError
from modelscout.utils.paths import find_project_root


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="modelscout",
        description="modelscout: local sentence embeddings and retrieval",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    subparsers = parser.add_subparsers(dest="command")

    # embed
    embed_parser = subparsers.add_parser("embed", help="Print embedding vectors for texts")
    embed_parser.add_argument("texts", nargs="+", help="Texts to embed")

    # index
    index_parser = subparsers.add_parser("index", help="Build a corpus from markdown files")
    index_parser.add_argument("sources", nargs="*", help="Markdown files or directories")
    index_parser.add_argument("--name", default=None, help="Corpus name (default: the docs corpus)")
    index_parser.add_argument("--force", action="store_true", help="Rebuild even if sources are unchanged")
    index_parser.add_argument(
        "--definitions", action="store_true", help="Index the configured model definitions instead"
    )

    # search
    search_parser = subparsers.add_parser("search", help="Search a corpus")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("--name", default=None, help="Corpus name (default: the docs corpus)")
    search_parser.add_argument("--top-n", type=int, default=5, help="Number of sections")
    search_parser.add_argument("--fuzzy", action="store_true", help="Rank by fuzzy text match")
    search_parser.add_argument("--code-only", action="store_true", help="Only print code blocks")

    # tool
    tool_parser = subparsers.add_parser("tool", help="Run an agent tool")
    tool_parser.add_argument("name", help="Tool name")
    tool_parser.add_argument("input", nargs="?", default="{}", help="Tool input as JSON")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind host")
    serve_parser.add_argument("--port", type=int, default=8742, help="Bind port")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    settings = load_settings(find_project_root())
    configure_logging(args.log_level or settings.log_level)
    problems = validate_settings(settings)
    if problems:
        for problem in problems:
            print(f"Invalid setting: {problem}", file=sys.stderr)
        return 1

    try:
        if args.command == "embed":
            return cmd_embed(args, settings)
        elif args.command == "index":
            return cmd_index(args, settings)
        elif args.command == "search":
            return cmd_search(args, settings)
        elif args.command == "tool":
            return cmd_tool(args, settings)
        elif args.command == "serve":
            return cmd_serve(args, settings)
        else:
            parser.print_help()
            return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130
    except (ModelScoutError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_embed(args: argparse.Namespace, settings) -> int:
    """Print one JSON vector per input text."""
    from modelscout.services import create_services

    services = create_services(settings)
    for vector in services.embedder.embed_batch(args.texts):
        print(json.dumps([round(float(x), 6) for x in vector]))
    return 0


def cmd_index(args: argparse.Namespace, settings) -> int:
    """Build an embedding corpus."""
    from modelscout.corpus.indexer import index_definitions, index_documents, is_corpus_stale
    from modelscout.services import create_services

    services = create_services(settings)

    if args.definitions:
        if services.definitions is None:
            print("No definitions_path configured.", file=sys.stderr)
            return 1
        name = args.name or "definitions"
        result = index_definitions(
            name, services.definitions.definitions(), services.embedder, services.store,
            batch_size=settings.batch_size,
        )
        print(f"Indexed {result['chunks_created']} definitions into {name}")
        return 0

    if not args.sources:
        print("No sources given.", file=sys.stderr)
        return 1
    name = args.name or settings.docs_corpus
    sources = [Path(s) for s in args.sources]

    if not args.force and not is_corpus_stale(name, sources, services.store):
        print(f"Corpus {name} is up to date.")
        return 0

    print(f"Indexing {len(sources)} source(s) into {name}...")
    result = index_documents(name, sources, services.embedder, services.store, batch_size=settings.batch_size)
    if result.get("success"):
        print(f"Indexed {result['files_indexed']} files, {result['chunks_created']} chunks created")
        return 0
    print(f"Index failed: {result.get('error', 'unknown')}", file=sys.stderr)
    return 1


def cmd_search(args: argparse.Namespace, settings) -> int:
    """Search a corpus and print the rendered sections."""
    from modelscout.corpus.search import DocumentSearch, FuzzyRanker, VectorRanker
    from modelscout.services import create_services

    services = create_services(settings)
    name = args.name or settings.docs_corpus
    chunks = services.docs.chunks() if name == services.docs.name else services.store.load(name)

    ranker = FuzzyRanker() if args.fuzzy else VectorRanker(services.embedder)
    text = DocumentSearch(ranker).render(args.query, chunks, top_n=args.top_n, code_only=args.code_only)
    if not text:
        print("No results.")
        return 0
    print(text)
    return 0


def cmd_tool(args: argparse.Namespace, settings) -> int:
    """Run a tool and print its JSON result."""
    from modelscout.services import create_services

    try:
        tool_input = json.loads(args.input)
    except json.JSONDecodeError as e:
        print(f"Invalid JSON input: {e}", file=sys.stderr)
        return 1
    if not isinstance(tool_input, dict):
        print("Tool input must be a JSON object", file=sys.stderr)
        return 1

    services = create_services(settings)
    output = services.executor.execute(args.name, tool_input)
    print(json.dumps(output, indent=2, default=str))
    return 0 if output["success"] else 1


def cmd_serve(args: argparse.Namespace, settings) -> int:
    """Start the HTTP service."""
    from modelscout.server import run_server

    run_server(args.host, args.port, log_level=str(settings.log_level).lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
