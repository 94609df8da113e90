"""
Similarity search: tag filtering, cosine scoring and ranking.

Everything here is a pure function over a snapshot of notes.  Searches
never raise on odd vectors: a zero vector or a dimension mismatch simply
scores ``0.0``.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from .models import Note, SearchResult

# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """
    Cosine of the angle between *a* and *b*, as a float in [-1, 1].

    Returns exactly ``0.0`` when the vectors differ in length or when either
    has zero magnitude.
    """
    va = np.asarray(a, dtype=np.float64).ravel()
    vb = np.asarray(b, dtype=np.float64).ravel()
    if va.shape != vb.shape:
        return 0.0

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    # Rounding can push parallel vectors a hair past the bounds.
    return min(1.0, max(-1.0, similarity))


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def has_any_tag(note_tags: Iterable[str], filter_tags: Iterable[str]) -> bool:
    """
    True when the two tag collections share at least one label.

    Matching is exact and case-sensitive.  An empty filter matches nothing;
    callers that want "no filter" skip the check entirely.
    """
    return not set(note_tags).isdisjoint(filter_tags)


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


def rank(results: Iterable[SearchResult]) -> list[SearchResult]:
    """Sort by descending similarity, keeping input order among ties."""
    return sorted(results, key=lambda r: r.similarity, reverse=True)


def search(
    notes: Iterable[Note],
    query: Sequence[float] | np.ndarray,
    limit: int | None = None,
    tags: Iterable[str] | None = None,
) -> list[SearchResult]:
    """
    Rank *notes* by cosine similarity to *query*.

    Parameters
    ----------
    notes:
        Candidate notes, in enumeration order (used to break ties).
    query:
        Query embedding.
    limit:
        Maximum number of results.  ``None`` returns every candidate;
        ``0`` returns nothing.
    tags:
        Optional tag filter with OR semantics.  ``None`` or an empty
        collection keeps every note.

    Returns
    -------
    list[SearchResult]
        Possibly empty; a filter that matches nothing is not an error.
    """
    if limit is not None and limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")

    filter_tags = set(tags) if tags else None
    scored: list[SearchResult] = []
    for note in notes:
        if filter_tags is not None and not has_any_tag(note.tags, filter_tags):
            continue
        vector = note.embedding if note.has_embedding else ()
        scored.append(SearchResult(note=note, similarity=cosine_similarity(query, vector)))

    results = rank(scored)

    if limit is not None and len(results) > limit:
        results = results[:limit]
    return results
