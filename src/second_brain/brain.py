"""
Brain: high-level API for saving notes and finding them again.

This is the entry-point for applications; it wires an embedding provider,
the in-memory :class:`~second_brain.store.VectorStore` and the note file
together.

Usage example::

    from second_brain import Brain, detect_context

    brain = Brain(data_dir="~/.brain")

    brain.add("Redis caching reduced API latency by 60%", tags=["perf"])

    for r in brain.search("making APIs faster"):
        print(r.note.content, r.similarity)

    for r in brain.contextual_search(detect_context()):
        print(r.note.content, r.similarity)
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Iterable

from .config import Config
from .context import Context, boost_by_project
from .embedder import Embedder, select_embedder
from .errors import EmbeddingError, PersistenceError
from .models import Note, SearchResult
from .persistence import NoteFile
from .search import has_any_tag
from .store import VectorStore

logger = logging.getLogger(__name__)

#: Default number of results for search and contextual search.
DEFAULT_LIMIT: int = 5


class Brain:
    """
    Note lifecycle over a single long-lived vector store.

    Responsibilities
    ----------------
    * **Add** – Embeds a note, writes the full collection to disk including
      the new note, and only then makes it visible to searches.  A failed
      write leaves memory and disk unchanged.
    * **Search** – Embeds the query and ranks a snapshot of the store by
      cosine similarity, optionally restricted to notes sharing a tag.
    * **Contextual search** – Searches with text derived from a
      :class:`~second_brain.context.Context` and boosts notes from the
      current project.
    * **Reload** – Replaces the store with the contents of the note file,
      recomputing every embedding.  Notes that cannot be embedded are
      skipped (and logged) but are still written back, in their original
      file position, on the next save.

    Parameters
    ----------
    data_dir:
        Directory holding ``notes.json``.  Overrides ``config.data_dir``.
    embedder:
        Embedding provider.  Defaults to :func:`select_embedder` over
        *config*.
    config:
        Runtime configuration.  Defaults to :meth:`Config.from_env`.
    """

    def __init__(
        self,
        data_dir: str | os.PathLike[str] | None = None,
        embedder: Embedder | None = None,
        config: Config | None = None,
        _store: VectorStore | None = None,
        _note_file: NoteFile | None = None,
    ) -> None:
        self.config = (config or Config.from_env()).with_overrides(data_dir=data_dir)
        self.embedder = embedder or select_embedder(self.config)
        self._store = _store or VectorStore()
        self._note_file = _note_file or NoteFile(self.config.notes_path)
        # Serialises the save-then-insert sequence of concurrent writers.
        self._write_lock = threading.Lock()
        # Notes that failed to embed on reload, with their position in the file.
        self._unembedded: list[tuple[int, Note]] = []
        self.reload()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add(
        self,
        content: str,
        tags: Iterable[str] = (),
        project: str | None = None,
    ) -> Note:
        """
        Save a new note and return it.

        Raises
        ------
        EmbeddingError
            The provider could not embed *content*; nothing is saved.
        PersistenceError
            The note file could not be written; the note is not added to
            the in-memory store either.
        """
        note = Note.create(content, tags=tags, project=project)
        note = note.with_embedding(self.embedder.embed(content))

        with self._write_lock:
            try:
                self._note_file.save(self._with_skipped([*self._store.all(), note]))
            except PersistenceError:
                logger.error("Failed to save note %s to %s", note.id, self._note_file.path)
                raise
            self._store.insert(note)

        logger.debug("Added note %s (tags=%s, project=%s)", note.id, sorted(note.tags), note.project)
        return note

    def search(
        self,
        query: str,
        limit: int = DEFAULT_LIMIT,
        tags: Iterable[str] | None = None,
    ) -> list[SearchResult]:
        """
        Return notes ranked by semantic similarity to *query*.

        ``limit <= 0`` means no limit.  An empty *tags* filter keeps every
        note; a filter no note matches yields an empty list.  An
        embedding failure raises :class:`EmbeddingError` instead of
        returning a list.
        """
        vector = self.embedder.embed(query)
        return self._store.search(vector, limit=limit if limit > 0 else None, tags=tags)

    def contextual_search(self, context: Context, limit: int = DEFAULT_LIMIT) -> list[SearchResult]:
        """
        Return notes relevant to *context*, favouring its project.

        Every note is scored first so that a boosted project note can climb
        into the top *limit* (``limit <= 0`` means no limit).
        """
        text = context.query_text()
        if not text:
            return []
        results = boost_by_project(self.search(text, limit=0), context.project)
        return results[:limit] if limit > 0 else results

    def list_notes(self, tags: Iterable[str] | None = None) -> list[Note]:
        """Return stored notes in insertion order, optionally filtered by tag."""
        notes = self._store.all()
        filter_tags = set(tags) if tags else None
        if filter_tags is None:
            return notes
        return [n for n in notes if has_any_tag(n.tags, filter_tags)]

    def count(self) -> int:
        """Return the number of searchable notes."""
        return self._store.count()

    def reload(self) -> int:
        """
        Replace the store with the notes saved on disk.

        Returns the number of notes that are now searchable.
        """
        with self._write_lock:
            saved = self._note_file.load()
            loaded, skipped = self._embed_all(saved)
            self._store.replace(loaded)
            self._unembedded = skipped

        logger.debug("Loaded %d note(s) from %s", len(loaded), self._note_file.path)
        return len(loaded)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _with_skipped(self, notes: list[Note]) -> list[Note]:
        """Put notes skipped on reload back at their original file positions."""
        merged = list(notes)
        for index, note in self._unembedded:
            merged.insert(min(index, len(merged)), note)
        return merged

    def _embed_all(self, notes: Iterable[Note]) -> tuple[list[Note], list[tuple[int, Note]]]:
        loaded: list[Note] = []
        skipped: list[tuple[int, Note]] = []
        for index, note in enumerate(notes):
            if not note.has_embedding:
                try:
                    note = note.with_embedding(self.embedder.embed(note.content))
                except EmbeddingError as exc:
                    logger.warning("Skipping note %s: cannot compute embedding (%s)", note.id, exc)
                    skipped.append((index, note))
                    continue
            loaded.append(note)
        return loaded, skipped
