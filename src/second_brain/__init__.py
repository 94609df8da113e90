"""
second-brain: a personal knowledge store with semantic retrieval.

Save short notes with tags and a project, then find them again by meaning
or by the context you are currently working in.
"""

from .brain import Brain
from .context import Context, boost_by_project, detect_context
from .embedder import Embedder, LocalEmbedder, OpenAIEmbedder, SentenceTransformerEmbedder
from .errors import BrainError, EmbeddingError, PersistenceError
from .models import Note, SearchResult
from .search import cosine_similarity, has_any_tag, search
from .store import VectorStore

__all__ = [
    "Brain",
    "BrainError",
    "Context",
    "Embedder",
    "EmbeddingError",
    "LocalEmbedder",
    "Note",
    "OpenAIEmbedder",
    "PersistenceError",
    "SearchResult",
    "SentenceTransformerEmbedder",
    "VectorStore",
    "boost_by_project",
    "cosine_similarity",
    "detect_context",
    "has_any_tag",
    "search",
]
