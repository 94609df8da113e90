"""
Situational context: where the user is working, and how that re-ranks
search results.

:func:`detect_context` inspects the working directory and, when it sits
inside a git repository, the repository name and recent commit subjects.
:func:`boost_by_project` then favours notes that belong to that project.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .models import SearchResult
from .search import rank

logger = logging.getLogger(__name__)

#: Multiplier applied to results whose project matches the current one.
PROJECT_BOOST: float = 1.2

#: Upper bound on a boosted similarity.
MAX_SIMILARITY: float = 1.0

#: Number of recent commit subjects folded into the context keywords.
RECENT_COMMITS: int = 5


@dataclass(frozen=True)
class Context:
    directory: str
    project: str = ""
    description: str = ""
    keywords: tuple[str, ...] = field(default_factory=tuple)

    def query_text(self) -> str:
        """Text used as the semantic query for contextual search."""
        parts = [self.description or self.project, *self.keywords]
        return "\n".join(p for p in parts if p)


# ---------------------------------------------------------------------------
# Boosting
# ---------------------------------------------------------------------------


def boost_by_project(results: Iterable[SearchResult], project: str | None) -> list[SearchResult]:
    """
    Re-rank *results* in favour of notes belonging to *project*.

    Matching results have their similarity multiplied by
    :data:`PROJECT_BOOST` and capped at :data:`MAX_SIMILARITY`; the list is
    then re-sorted (ties keep their order).  With no project the results
    are returned as they came.
    """
    results = list(results)
    if not project:
        return results

    boosted = [
        dataclasses.replace(r, similarity=min(r.similarity * PROJECT_BOOST, MAX_SIMILARITY))
        if r.note.project == project
        else r
        for r in results
    ]
    return rank(boosted)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def _git(args: list[str], cwd: str) -> str | None:
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        logger.debug("git %s failed in %s: %s", " ".join(args), cwd, exc)
        return None
    return proc.stdout


def detect_context(cwd: str | os.PathLike[str] | None = None) -> Context:
    """
    Describe the working context rooted at *cwd* (default: the process cwd).

    Outside a git repository, or when git is not installed, the project is
    left empty and the directory name is the only keyword.
    """
    directory = str(Path(cwd).resolve()) if cwd is not None else os.getcwd()
    dir_name = Path(directory).name

    project = ""
    description = dir_name
    keywords: list[str] = []

    root = _git(["rev-parse", "--show-toplevel"], directory)
    if root and root.strip():
        project = Path(root.strip()).name
        description = project
        log = _git(["log", f"-{RECENT_COMMITS}", "--pretty=format:%s"], directory)
        if log:
            keywords.extend(line for line in log.splitlines() if line.strip())

    keywords.append(dir_name)
    return Context(
        directory=directory,
        project=project,
        description=description,
        keywords=tuple(keywords),
    )
