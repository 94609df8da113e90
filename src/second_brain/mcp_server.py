"""
MCP (Model Context Protocol) server for second-brain.

Exposes the Brain as a set of tools so that an assistant can save notes
and recall them by meaning or by the project being worked on.

Run as a stdio server:
    python -m second_brain.mcp_server

Or via the installed entry-point:
    brain-mcp

Configuration comes from the same environment variables as the CLI
(see :mod:`second_brain.config`).
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

from mcp.server.fastmcp import FastMCP

from .brain import Brain
from .config import LOG_FORMAT, Config
from .context import detect_context
from .models import SearchResult

# Lazy-initialised so the embedding provider is only built once.
_brain: Brain | None = None


def _get_brain() -> Brain:
    global _brain
    if _brain is None:
        _brain = Brain(config=Config.from_env())
    return _brain


def _parse_tags(tags: str) -> list[str]:
    return [t.strip() for t in tags.split(",") if t.strip()]


def _simplify(results: list[SearchResult]) -> list[dict[str, Any]]:
    return [
        {
            "id": r.note.id,
            "content": r.note.content,
            "similarity": round(r.similarity, 4),
            "tags": sorted(r.note.tags),
            "project": r.note.project,
            "timestamp": r.note.timestamp.isoformat(),
        }
        for r in results
    ]


# ---------------------------------------------------------------------------
# FastMCP server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "second-brain",
    instructions=(
        "A personal knowledge store of short notes. "
        "Use `add_note` to save an insight, decision or learning worth keeping. "
        "Use `search_notes` to find notes related to a question or topic. "
        "Use `context_notes` at the start of work in a project to surface "
        "notes relevant to it. "
        "Use `list_notes` to browse notes and `count_notes` to see how many exist."
    ),
)


@mcp.tool()
def add_note(content: str, tags: str = "", project: str = "") -> str:
    """
    Save a note.

    Args:
        content: The text to remember.
        tags:    Optional comma-separated tags, e.g. "go,performance".
        project: Optional project the note belongs to.

    Returns:
        A confirmation message with the ID of the new note.
    """
    if not content.strip():
        return "Nothing to save: content is empty."
    note = _get_brain().add(content.strip(), tags=_parse_tags(tags), project=project or None)
    return f"Note added. ID: {note.id}"


@mcp.tool()
def search_notes(query: str, limit: int = 5, tags: str = "") -> str:
    """
    Find the notes most similar in meaning to *query*.

    Args:
        query: Natural-language question or topic.
        limit: Maximum number of notes to return (default 5, 0 = all).
        tags:  Optional comma-separated tags; only notes with at least one
               of them are searched.

    Returns:
        JSON array of notes with id, content, similarity, tags, project
        and timestamp.
    """
    results = _get_brain().search(query, limit=limit, tags=_parse_tags(tags))
    if not results:
        return "No matching notes found."
    return json.dumps(_simplify(results), indent=2)


@mcp.tool()
def context_notes(directory: str = ".", limit: int = 5) -> str:
    """
    Surface notes relevant to the project checked out in *directory*.

    The project name and recent commit subjects are used as the query, and
    notes saved under the same project are ranked higher.

    Args:
        directory: Working directory to inspect (default: server cwd).
        limit:     Maximum number of notes to return (default 5).

    Returns:
        JSON object with the detected context and the matching notes.
    """
    ctx = detect_context(directory)
    results = _get_brain().contextual_search(ctx, limit=limit)
    payload = {
        "context": {"project": ctx.project, "description": ctx.description},
        "notes": _simplify(results),
    }
    return json.dumps(payload, indent=2)


@mcp.tool()
def list_notes(limit: int = 50, tags: str = "") -> str:
    """
    List notes, most recent first.

    Args:
        limit: Maximum number of notes to return (default 50, 0 = all).
        tags:  Optional comma-separated tag filter.

    Returns:
        JSON array of notes.
    """
    notes = sorted(
        _get_brain().list_notes(tags=_parse_tags(tags)),
        key=lambda n: n.timestamp,
        reverse=True,
    )
    if limit > 0:
        notes = notes[:limit]
    if not notes:
        return "No notes stored."
    return json.dumps([n.to_dict() for n in notes], indent=2)


@mcp.tool()
def count_notes() -> str:
    """
    Return the number of searchable notes.

    Returns:
        A short message with the count.
    """
    n = _get_brain().count()
    return f"{n} {'note' if n == 1 else 'notes'} stored."


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the MCP server over stdio."""
    # stdout carries the protocol; logs go to stderr.
    logging.basicConfig(level=Config.from_env().log_level, format=LOG_FORMAT, stream=sys.stderr)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
