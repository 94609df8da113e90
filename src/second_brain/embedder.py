"""
Embedding providers: turn a piece of text into a fixed-length vector.

Three providers are available:

* :class:`OpenAIEmbedder` calls the OpenAI embeddings API through
  ChromaDB's embedding-function adapter.
* :class:`SentenceTransformerEmbedder` runs a local sentence-transformers
  model, again through ChromaDB's adapter.
* :class:`LocalEmbedder` is a deterministic character-hash fallback that
  needs no network and no model download.

The provider is picked once, by :func:`select_embedder`, when the
:class:`~second_brain.brain.Brain` is built.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Sequence

import numpy as np
import openai
from chromadb.utils import embedding_functions

from .config import DEFAULT_MODEL, DEFAULT_OPENAI_MODEL, Config
from .errors import EmbeddingError

logger = logging.getLogger(__name__)

#: Vector size of the local fallback provider.
LOCAL_DIMENSION: int = 384

#: Output sizes of the models we know about.  Unknown models learn their
#: size from the first successful response.
KNOWN_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "all-MiniLM-L6-v2": 384,
    "all-mpnet-base-v2": 768,
}

EmbeddingFunction = Callable[[Sequence[str]], Any]


def get_embedding_function(
    model_name: str = DEFAULT_MODEL,
) -> embedding_functions.SentenceTransformerEmbeddingFunction:
    """Return a sentence-transformer embedding function for ChromaDB."""
    return embedding_functions.SentenceTransformerEmbeddingFunction(
        model_name=model_name
    )


class Embedder(ABC):
    """A provider that maps text to a vector of ``dimension`` floats."""

    #: Declared vector size, or ``None`` until the first response fixes it.
    dimension: int | None = None

    @abstractmethod
    def embed(self, text: str) -> np.ndarray:
        """
        Return the embedding of *text* as a 1-D float32 array.

        Raises :class:`EmbeddingError` when no vector can be produced.
        """

    @property
    def name(self) -> str:
        return type(self).__name__


class _EmbeddingFunctionEmbedder(Embedder):
    """Adapter over a ChromaDB-style ``f(list[str]) -> list[vector]`` callable."""

    source = "embedding function"
    errors: tuple[type[BaseException], ...] = ()

    def __init__(self, embedding_function: EmbeddingFunction, dimension: int | None) -> None:
        self._embedding_function = embedding_function
        self.dimension = dimension

    def embed(self, text: str) -> np.ndarray:
        try:
            vectors = self._embedding_function([text])
        except self.errors as exc:
            raise EmbeddingError(f"{self.source} request failed: {exc}") from exc

        vector = self._validate(vectors)
        if self.dimension is None:
            self.dimension = int(vector.size)
        return vector

    def _validate(self, vectors: Any) -> np.ndarray:
        if vectors is None or len(vectors) != 1:
            raise EmbeddingError(f"{self.source} returned no embedding")
        try:
            vector = np.asarray(vectors[0], dtype=np.float32).ravel()
        except (TypeError, ValueError) as exc:
            raise EmbeddingError(f"{self.source} returned a malformed embedding") from exc

        if vector.size == 0:
            raise EmbeddingError(f"{self.source} returned an empty embedding")
        if self.dimension is not None and vector.size != self.dimension:
            raise EmbeddingError(
                f"{self.source} returned {vector.size} dimensions, expected {self.dimension}"
            )
        if not np.all(np.isfinite(vector)):
            raise EmbeddingError(f"{self.source} returned non-finite values")
        return vector


class OpenAIEmbedder(_EmbeddingFunctionEmbedder):
    """
    Remote provider backed by the OpenAI embeddings endpoint.

    Missing credentials are reported at construction time so that
    :func:`select_embedder` can fall back to the local provider.
    """

    source = "OpenAI"
    errors = (openai.OpenAIError,)

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_OPENAI_MODEL,
        _embedding_function: EmbeddingFunction | None = None,
    ) -> None:
        if _embedding_function is None:
            if not api_key:
                raise EmbeddingError("OPENAI_API_KEY not set")
            try:
                _embedding_function = embedding_functions.OpenAIEmbeddingFunction(
                    api_key=api_key,
                    model_name=model,
                )
            except ValueError as exc:
                raise EmbeddingError(f"cannot initialise OpenAI embeddings: {exc}") from exc
        super().__init__(_embedding_function, KNOWN_DIMENSIONS.get(model))
        self.model = model


class SentenceTransformerEmbedder(_EmbeddingFunctionEmbedder):
    """Local sentence-transformers model (downloaded on first use)."""

    source = "sentence-transformers"
    errors = (RuntimeError, OSError, ValueError)

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        _embedding_function: EmbeddingFunction | None = None,
    ) -> None:
        if _embedding_function is None:
            try:
                _embedding_function = get_embedding_function(model)
            except (ValueError, OSError) as exc:
                raise EmbeddingError(f"cannot load model {model!r}: {exc}") from exc
        super().__init__(_embedding_function, KNOWN_DIMENSIONS.get(model))
        self.model = model


class LocalEmbedder(Embedder):
    """
    Deterministic fallback embedding with no external dependencies.

    Each character adds ``position / length`` to the bucket selected by its
    code point, and the result is L2-normalised.  It captures little real
    meaning but never fails and always returns the same vector for the same
    text.

    Positions and length are counted in characters, not UTF-8 bytes, so
    non-ASCII text embeds differently than in byte-offset variants of this
    scheme.  Vectors are never persisted; only consistency within a process
    matters.
    """

    def __init__(self, dimension: int = LOCAL_DIMENSION) -> None:
        self.dimension = dimension

    def embed(self, text: str) -> np.ndarray:
        vector = np.zeros(self.dimension, dtype=np.float32)
        length = np.float32(len(text))
        for position, char in enumerate(text, start=1):
            vector[ord(char) % self.dimension] += np.float32(position) / length

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector


def select_embedder(config: Config) -> Embedder:
    """
    Build the provider named by ``config.embedder``.

    ``auto`` prefers OpenAI and falls back to :class:`LocalEmbedder` when no
    API key is configured.  An explicitly requested provider that cannot be
    built raises :class:`EmbeddingError`.
    """
    kind = config.embedder
    if kind == "local":
        embedder: Embedder = LocalEmbedder()
    elif kind == "sentence-transformers":
        embedder = SentenceTransformerEmbedder(model=config.model)
    elif kind == "openai":
        embedder = OpenAIEmbedder(api_key=config.openai_api_key, model=config.openai_model)
    else:
        try:
            embedder = OpenAIEmbedder(api_key=config.openai_api_key, model=config.openai_model)
        except EmbeddingError as exc:
            logger.info("OpenAI embeddings unavailable (%s); using local embedder", exc)
            embedder = LocalEmbedder()

    logger.info("Using %s (dimension=%s)", embedder.name, embedder.dimension)
    return embedder
