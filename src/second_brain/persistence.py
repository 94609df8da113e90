"""
Flat-file persistence for notes.

The whole collection is read at startup and rewritten on every save; there
is no incremental format.  Embeddings are never written and are recomputed
when the file is loaded.
"""

from __future__ import annotations

import contextlib
import json
import os
from pathlib import Path
from typing import Iterable

from .errors import PersistenceError
from .models import Note


class NoteFile:
    """JSON array of notes stored at *path*."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def load(self) -> list[Note]:
        """
        Return every saved note in file order.

        A missing file means no notes have been saved yet and yields an
        empty list.
        """
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"cannot read {self.path}: {exc}") from exc

        if data is None:
            return []
        if not isinstance(data, list):
            raise PersistenceError(f"{self.path} does not contain a list of notes")

        notes: list[Note] = []
        for i, item in enumerate(data):
            try:
                notes.append(Note.from_dict(item))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise PersistenceError(f"malformed note #{i} in {self.path}: {exc!r}") from exc
        return notes

    def save(self, notes: Iterable[Note]) -> None:
        """Overwrite the file with *notes*."""
        payload = [note.to_dict() for note in notes]
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise PersistenceError(f"cannot write {self.path}: {exc}") from exc
