"""Knowledge retrieval from per-company vector indexes."""

import asyncio
import re

import structlog
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_core.vectorstores import InMemoryVectorStore

from supportchat.core.settings import VectorStoreConfig

logger = structlog.get_logger()

INDEX_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,99}$")


class RetrievalIndexNotFoundError(Exception):
    """No serialized store exists for the requested index."""


class RetrievalService:
    """Similarity search over serialized ``InMemoryVectorStore`` indexes.

    Each index lives in ``<vector_store_path>/<index_name>.json`` and is loaded
    once per process.
    """

    def __init__(self, embeddings: Embeddings, config: VectorStoreConfig) -> None:
        self._embeddings = embeddings
        self._config = config
        self._stores: dict[str, InMemoryVectorStore] = {}

    async def _load_store(self, index_name: str) -> InMemoryVectorStore:
        if not INDEX_NAME_PATTERN.match(index_name):
            raise ValueError(f"Invalid retrieval index name: {index_name!r}")
        store = self._stores.get(index_name)
        if store is not None:
            return store
        path = self._config.index_file(index_name)
        if not path.is_file():
            raise RetrievalIndexNotFoundError(f"Retrieval index not found: {path}")
        store = await asyncio.to_thread(
            InMemoryVectorStore.load, str(path), self._embeddings
        )
        self._stores[index_name] = store
        logger.info("Retrieval index loaded", index_name=index_name, path=str(path))
        return store

    async def retrieve_documents(
        self, index_name: str, query: str, top_k: int | None = None
    ) -> list[Document]:
        """Documents most similar to ``query``."""
        store = await self._load_store(index_name)
        return await store.asimilarity_search(query, k=top_k or self._config.top_k)


def format_documents_as_context(documents: list[Document]) -> str:
    """Render retrieved documents as a system-message context block."""
    if not documents:
        return ""
    parts = [
        f"[Document {i}]\n{doc.page_content.strip()}"
        for i, doc in enumerate(documents, start=1)
    ]
    return "Relevant information from the knowledge base:\n\n" + "\n\n".join(parts)
