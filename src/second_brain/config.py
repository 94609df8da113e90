"""
Runtime configuration resolved from environment variables.

    BRAIN_DATA_DIR      - directory holding notes.json (default: ~/.brain)
    BRAIN_EMBEDDER      - auto | openai | sentence-transformers | local (default: auto)
    OPENAI_API_KEY      - credentials for the OpenAI embedding provider
    BRAIN_OPENAI_MODEL  - OpenAI embedding model (default: text-embedding-3-small)
    BRAIN_MODEL         - sentence-transformers model (default: all-MiniLM-L6-v2)
    BRAIN_LOG_LEVEL     - log level for the CLI and MCP server (default: WARNING)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

DEFAULT_DATA_DIR = Path.home() / ".brain"
NOTES_FILENAME = "notes.json"

DEFAULT_OPENAI_MODEL = "text-embedding-3-small"
DEFAULT_MODEL = "all-MiniLM-L6-v2"

EMBEDDER_CHOICES = ("auto", "openai", "sentence-transformers", "local")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Config:
    data_dir: Path = DEFAULT_DATA_DIR
    embedder: str = "auto"
    openai_api_key: str | None = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    model: str = DEFAULT_MODEL
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.embedder not in EMBEDDER_CHOICES:
            raise ValueError(
                f"Unknown embedder {self.embedder!r}; "
                f"expected one of {', '.join(EMBEDDER_CHOICES)}"
            )

    @property
    def notes_path(self) -> Path:
        return self.data_dir / NOTES_FILENAME

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        env = os.environ if environ is None else environ
        data_dir = env.get("BRAIN_DATA_DIR")
        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR,
            embedder=env.get("BRAIN_EMBEDDER", "auto").strip().lower() or "auto",
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            openai_model=env.get("BRAIN_OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            model=env.get("BRAIN_MODEL", DEFAULT_MODEL),
            log_level=env.get("BRAIN_LOG_LEVEL", "WARNING").upper(),
        )

    def with_overrides(self, **overrides: Any) -> Config:
        """Return a copy with every non-``None`` override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "data_dir" in changes:
            changes["data_dir"] = Path(changes["data_dir"]).expanduser()
        return replace(self, **changes)
