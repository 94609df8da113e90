"""
Shared pytest fixtures for second-brain tests.

A deterministic fake embedder stands in for the real providers so that
tests run fast without network access or model downloads.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, Mapping, Sequence

import numpy as np
import pytest

from second_brain.brain import Brain
from second_brain.config import Config
from second_brain.embedder import Embedder
from second_brain.errors import EmbeddingError
from second_brain.models import Note


class FakeEmbedder(Embedder):
    """
    Maps text to a unit vector derived from its MD5 hash, unless an explicit
    vector was registered for that text.  Texts listed in *fail_on* raise
    :class:`EmbeddingError`.
    """

    dimension = 16

    def __init__(
        self,
        vectors: Mapping[str, Sequence[float]] | None = None,
        fail_on: Iterable[str] = (),
    ) -> None:
        self.vectors = dict(vectors or {})
        self.fail_on = set(fail_on)
        self.calls: list[str] = []

    def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        if text in self.fail_on:
            raise EmbeddingError(f"cannot embed {text!r}")
        if text in self.vectors:
            return np.asarray(self.vectors[text], dtype=np.float32)
        digest = hashlib.md5(text.encode()).digest()
        vec = np.array([(b - 128) / 128.0 for b in digest], dtype=np.float32)
        return vec / (np.linalg.norm(vec) or 1.0)


def make_note(
    note_id: str,
    embedding: Sequence[float] | None,
    tags: Iterable[str] = (),
    project: str | None = None,
    content: str | None = None,
) -> Note:
    return Note(
        id=note_id,
        content=content or f"note {note_id}",
        tags=frozenset(tags),
        project=project,
        embedding=None if embedding is None else np.asarray(embedding, dtype=np.float32),
    )


@pytest.fixture()
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def brain(tmp_path, embedder: FakeEmbedder) -> Brain:
    """Brain backed by a throwaway data directory and the fake embedder."""
    return Brain(data_dir=tmp_path, embedder=embedder, config=Config())
