"""
Command-line interface for second-brain.

Sub-commands
------------
add     – Save a note.
search  – Find notes by meaning.
ask     – Show the notes most likely to answer a question.
list    – List notes, newest first.
context – Show notes relevant to the current directory / git project.
count   – Print the number of searchable notes.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from .brain import Brain
from .config import LOG_FORMAT, Config
from .context import Context, detect_context
from .errors import BrainError
from .models import SearchResult


def _parse_tags(value: str) -> list[str]:
    return [t.strip() for t in value.split(",") if t.strip()]


def _add_tags_option(parser: argparse.ArgumentParser, help_text: str) -> None:
    parser.add_argument(
        "-t",
        "--tags",
        type=_parse_tags,
        action="extend",
        default=[],
        metavar="TAG[,TAG...]",
        help=help_text,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="brain",
        description="A second brain for storing and retrieving ideas semantically.",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        metavar="PATH",
        help="Directory holding notes.json (default: $BRAIN_DATA_DIR or ~/.brain).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # add
    p_add = sub.add_parser("add", help="Add a new note.")
    p_add.add_argument("text", nargs="?", help="Note text (reads stdin if omitted).")
    _add_tags_option(p_add, "Tags for the note (comma-separated).")
    p_add.add_argument("-p", "--project", default=None, help="Project this note belongs to.")

    # search
    p_search = sub.add_parser("search", help="Search notes semantically.")
    p_search.add_argument("query", help="Natural-language query.")
    p_search.add_argument(
        "-l",
        "--limit",
        type=int,
        default=5,
        metavar="N",
        help="Maximum number of results (default: 5, 0 = all).",
    )
    _add_tags_option(p_search, "Only search notes with any of these tags.")
    p_search.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    # ask
    p_ask = sub.add_parser("ask", help="Ask a question about your notes.")
    p_ask.add_argument("question", help="Natural-language question.")

    # list
    p_list = sub.add_parser("list", help="List notes, most recent first.")
    p_list.add_argument(
        "-l",
        "--limit",
        type=int,
        default=0,
        metavar="N",
        help="Maximum number of notes to show (default: 0 = all).",
    )
    _add_tags_option(p_list, "Only list notes with any of these tags.")
    p_list.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    # context
    p_context = sub.add_parser("context", help="Show notes relevant to the current context.")
    p_context.add_argument(
        "-l",
        "--limit",
        type=int,
        default=5,
        metavar="N",
        help="Maximum number of results (default: 5).",
    )
    p_context.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    # count
    sub.add_parser("count", help="Print the number of stored notes.")

    return parser


def _make_brain(args: argparse.Namespace) -> Brain:
    return Brain(config=Config.from_env().with_overrides(data_dir=args.data_dir))


def _configure_logging(verbose: bool) -> None:
    level: Any = logging.DEBUG if verbose else Config.from_env().log_level
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _result_to_dict(result: SearchResult) -> dict[str, Any]:
    data = result.note.to_dict()
    data["similarity"] = round(result.similarity, 4)
    return data


def _print_results(results: list[SearchResult], show_date: bool = True) -> None:
    for i, r in enumerate(results, 1):
        if show_date:
            print(f"{i}. [{r.note.timestamp:%Y-%m-%d}] {r.note.content}")
        else:
            print(f"{i}. {r.note.content}")
        if r.note.tags:
            print(f"   Tags: {', '.join(sorted(r.note.tags))}")
        if r.note.project:
            print(f"   Project: {r.note.project}")
        print(f"   Relevance: {r.similarity * 100:.2f}%")
        print()


def _print_context(ctx: Context) -> None:
    print(f"Current context: {ctx.description}")
    if ctx.project:
        print(f"Project: {ctx.project}")
    print()


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        _configure_logging(args.verbose)
        brain = _make_brain(args)
        return _run(brain, args)
    except (BrainError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def _run(brain: Brain, args: argparse.Namespace) -> int:
    if args.command == "add":
        text = args.text
        if text is None:
            text = sys.stdin.read()
        if not text.strip():
            print("Error: no text provided.", file=sys.stderr)
            return 1
        note = brain.add(text.strip(), tags=args.tags, project=args.project)
        print(f"Note added (ID: {note.id})")

    elif args.command == "search":
        results = brain.search(args.query, limit=args.limit, tags=args.tags)
        if not results:
            print("No matching notes found.")
            return 0
        if args.as_json:
            print(json.dumps([_result_to_dict(r) for r in results], indent=2))
        else:
            print(f"Found {len(results)} relevant note(s):\n")
            _print_results(results)

    elif args.command == "ask":
        results = brain.search(args.question, limit=5)
        if not results:
            print("I don't have any notes that might answer that question.")
            print('Try adding some notes first with: brain add "your insight"')
            return 0
        print("Based on your notes, here's what I found:\n")
        print(f"Question: {args.question}\n")
        print("Relevant notes:")
        _print_results(results, show_date=False)

    elif args.command == "list":
        notes = sorted(brain.list_notes(tags=args.tags), key=lambda n: n.timestamp, reverse=True)
        if args.limit > 0:
            notes = notes[: args.limit]
        if not notes:
            print("No notes found.")
            return 0
        if args.as_json:
            print(json.dumps([n.to_dict() for n in notes], indent=2))
        else:
            print(f"Found {len(notes)} note(s):\n")
            for i, note in enumerate(notes, 1):
                print(f"{i}. [{note.timestamp:%Y-%m-%d %H:%M}] {note.content}")
                if note.tags:
                    print(f"   Tags: {', '.join(sorted(note.tags))}")
                if note.project:
                    print(f"   Project: {note.project}")
                print(f"   ID: {note.id}")
                print()

    elif args.command == "context":
        ctx = detect_context()
        results = brain.contextual_search(ctx, limit=args.limit)
        if args.as_json:
            print(json.dumps([_result_to_dict(r) for r in results], indent=2))
            return 0
        _print_context(ctx)
        if not results:
            print("No relevant notes found for this context.")
            return 0
        print(f"Found {len(results)} relevant note(s) for this context:\n")
        _print_results(results, show_date=False)

    elif args.command == "count":
        print(brain.count())

    return 0


if __name__ == "__main__":
    sys.exit(main())
