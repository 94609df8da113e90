"""
Exception hierarchy for second-brain.

Only the embedding provider and the persistence boundary can fail; search
and re-ranking are total over their inputs.
"""

from __future__ import annotations


class BrainError(Exception):
    """Base class for every error raised by this package."""


class EmbeddingError(BrainError):
    """The embedding provider could not produce a vector."""


class PersistenceError(BrainError):
    """Reading or writing the note file failed."""
