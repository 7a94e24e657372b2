"""
CLI commands - entry points for the knowledge base.

Each command follows a consistent pattern:
1. Parse arguments
2. Load environment
3. Call the service
4. Print results
5. Return exit code

Without USE_POSTGRES=true the store is in-memory and lives only for one
invocation; `crag ask --ingest FILE ...` loads files before asking.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from crag_engine.core.errors import CragError


def _load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()


def _get_service():
    from crag_engine.observability import init_phoenix
    from crag_engine.service import get_crag_service

    init_phoenix()
    return get_crag_service()


def _ingest_files(service, paths: list[Path]) -> int:
    stored = 0
    for path in paths:
        text = path.read_text(encoding="utf-8")
        service.store(text, doc_id=path.stem, metadata={"source": path.name})
        stored += 1
    return stored


def run_add_cli() -> int:
    """CLI entry point for adding documents."""
    _load_env()

    parser = argparse.ArgumentParser(description="Add documents to the knowledge base")
    parser.add_argument("files", nargs="*", type=Path, help="Text files to store")
    parser.add_argument("--text", help="Store this text instead of files")
    parser.add_argument("--id", dest="doc_id", help="Document id (with --text)")
    args = parser.parse_args()

    service = _get_service()
    try:
        if args.text:
            doc = service.store(args.text, doc_id=args.doc_id, metadata={"source": "cli"})
            print(f"Stored {doc.doc_id}")
        else:
            stored = _ingest_files(service, args.files)
            print(f"Stored {stored} document(s)")
    except (CragError, OSError) as e:
        print(f"Error: {e}")
        return 1
    return 0


def run_ask_cli() -> int:
    """CLI entry point for a CRAG query."""
    _load_env()

    parser = argparse.ArgumentParser(description="Run corrective retrieval for a query")
    parser.add_argument("query", help="Free-text query")
    parser.add_argument("--no-correction", action="store_true", help="Never refine the query")
    parser.add_argument("--ingest", nargs="*", type=Path, default=[], help="Files to store first")
    parser.add_argument("--json", action="store_true", help="Print the raw result")
    args = parser.parse_args()

    service = _get_service()
    try:
        _ingest_files(service, args.ingest)
    except (CragError, OSError) as e:
        print(f"Error: {e}")
        return 1

    result = service.perform_crag(args.query, enable_correction=not args.no_correction)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
        return 0

    evaluation = result.evaluation
    print("=" * 60)
    print(f"QUERY: {args.query}")
    if result.corrected:
        print(f"REFINED: {result.refined_query}")
    print("=" * 60)
    status = "RELEVANT" if evaluation.is_relevant else "NOT RELEVANT"
    print(f"[{status}] score={evaluation.score:.2f} ({evaluation.reason})")
    for doc in result.documents:
        print(f"  {doc.similarity:.3f}  {doc.doc_id}")
    if result.context:
        print("\n" + result.context)
    return 0


def run_list_cli() -> int:
    """CLI entry point for listing documents."""
    _load_env()

    try:
        previews = _get_service().list_preview()
    except CragError as e:
        print(f"Error: {e}")
        return 1

    for preview in previews:
        print(f"  {preview.doc_id}: {preview.text}")
    print(f"\nTotal: {len(previews)}")
    return 0


def run_count_cli() -> int:
    """CLI entry point for counting documents."""
    _load_env()

    try:
        print(_get_service().count())
    except CragError as e:
        print(f"Error: {e}")
        return 1
    return 0


def run_delete_cli() -> int:
    """CLI entry point for deleting one document."""
    _load_env()

    parser = argparse.ArgumentParser(description="Delete a document")
    parser.add_argument("doc_id", help="Document id")
    args = parser.parse_args()

    try:
        deleted = _get_service().delete(args.doc_id)
    except CragError as e:
        print(f"Error: {e}")
        return 1

    if deleted:
        print(f"Deleted {args.doc_id}")
        return 0
    print(f"Not found: {args.doc_id}")
    return 1


def run_clear_cli() -> int:
    """CLI entry point for clearing the knowledge base."""
    _load_env()

    parser = argparse.ArgumentParser(description="Delete every document")
    parser.add_argument("--yes", action="store_true", help="Skip confirmation")
    args = parser.parse_args()

    if not args.yes:
        print("Refusing to clear without --yes")
        return 1
    try:
        _get_service().clear()
    except CragError as e:
        print(f"Error: {e}")
        return 1
    print("All documents cleared")
    return 0


def run_remember_cli() -> int:
    """CLI entry point for storing a personal session summary."""
    _load_env()

    parser = argparse.ArgumentParser(description="Store a personal session summary")
    parser.add_argument("owner_id", help="Owning user id")
    parser.add_argument("summary", help="Summary text")
    parser.add_argument("--title", help="Summary title")
    args = parser.parse_args()

    try:
        doc = _get_service().store_summary(args.owner_id, args.summary, title=args.title)
    except CragError as e:
        print(f"Error: {e}")
        return 1
    print(f"Stored summary {doc.doc_id}")
    return 0


def run_recall_cli() -> int:
    """CLI entry point for personal memory search."""
    _load_env()

    parser = argparse.ArgumentParser(description="Search a user's personal memory")
    parser.add_argument("owner_id", help="Owning user id")
    parser.add_argument("query", help="Free-text query")
    parser.add_argument("-k", type=int, default=None, help="Number of results")
    args = parser.parse_args()

    try:
        results = _get_service().search_personal(args.owner_id, args.query, k=args.k)
    except CragError as e:
        print(f"Error: {e}")
        return 1
    for result in results:
        print(f"  {result.similarity:.3f}  {result.doc_id}: {result.text[:80]}")
    return 0


def main() -> int:
    """
    Main CLI entry point with subcommands.

    Usage:
        crag add FILE...          # Store documents
        crag ask "QUERY"          # Corrective retrieval
        crag list | count         # Inspect the knowledge base
        crag delete ID | clear    # Remove documents
        crag remember USER TEXT   # Store personal summary
        crag recall USER "QUERY"  # Search personal memory
    """
    _load_env()

    parser = argparse.ArgumentParser(
        description="Corrective retrieval over a private knowledge base",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  add         Store documents (files or --text)
  ask         Run CRAG for a query
  list        List document previews
  count       Count documents
  delete      Delete one document
  clear       Delete every document (needs --yes)
  remember    Store a personal session summary
  recall      Search personal memory

Examples:
  crag ask "what do cats eat" --ingest notes/*.txt
  crag ask "quarterly revenue" --no-correction
        """,
    )

    parser.add_argument(
        "command",
        choices=["add", "ask", "list", "count", "delete", "clear", "remember", "recall"],
        help="Command to run",
    )

    # Parse just the command first
    args, remaining = parser.parse_known_args()

    commands = {
        "add": run_add_cli,
        "ask": run_ask_cli,
        "list": run_list_cli,
        "count": run_count_cli,
        "delete": run_delete_cli,
        "clear": run_clear_cli,
        "remember": run_remember_cli,
        "recall": run_recall_cli,
    }

    # Re-inject remaining args for the subcommand
    sys.argv = [sys.argv[0]] + remaining

    try:
        return commands[args.command]()
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
