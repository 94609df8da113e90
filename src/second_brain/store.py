"""
In-memory vector store holding every note together with its embedding.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, Sequence

import numpy as np

from . import search as search_engine
from .models import Note, SearchResult


class ReadWriteLock:
    """
    Readers-writer lock: any number of concurrent readers, or one writer.

    Waiting writers block new readers so a steady stream of searches cannot
    starve an insert.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class VectorStore:
    """
    Authoritative in-memory collection of notes.

    Notes are kept in insertion order.  There is no deduplication and no
    update or delete: the whole collection is swapped out by
    :meth:`replace` when the note file is reloaded.

    Readers receive a copy of the list, so callers can never mutate the
    store's internal state.  Individual notes are shared by reference
    because they are immutable.
    """

    def __init__(self, notes: Iterable[Note] = ()) -> None:
        self._notes: list[Note] = list(notes)
        self._lock = ReadWriteLock()

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def insert(self, note: Note) -> None:
        """Append *note*.  Inserting the same ID twice stores it twice."""
        with self._lock.write():
            self._notes.append(note)

    def replace(self, notes: Iterable[Note]) -> None:
        """Atomically discard the current collection and store *notes*."""
        new_notes = list(notes)
        with self._lock.write():
            self._notes = new_notes

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def all(self) -> list[Note]:
        """Return a copy of every stored note in insertion order."""
        with self._lock.read():
            return list(self._notes)

    def count(self) -> int:
        with self._lock.read():
            return len(self._notes)

    def search(
        self,
        query: Sequence[float] | np.ndarray,
        limit: int | None = None,
        tags: Iterable[str] | None = None,
    ) -> list[SearchResult]:
        """
        Rank a point-in-time snapshot of the store against *query*.

        The lock is only held while the snapshot is taken; scoring runs on
        the copy, so inserts that land mid-search are simply not seen.
        """
        return search_engine.search(self.all(), query, limit=limit, tags=tags)
