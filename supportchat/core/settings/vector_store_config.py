"""Vector store configuration."""

from pathlib import Path

from pydantic import BaseModel


class VectorStoreConfig(BaseModel, frozen=True):
    """Vector store settings."""

    path: Path
    chunk_size: int
    chunk_overlap: int
    top_k: int

    def index_file(self, index_name: str) -> Path:
        """Location of the serialized store for a retrieval index."""
        return self.path / f"{index_name}.json"
