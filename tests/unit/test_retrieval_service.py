"""Tests for RetrievalService index loading and context formatting."""

from pathlib import Path

import pytest
from langchain_core.documents import Document
from langchain_core.embeddings import DeterministicFakeEmbedding
from langchain_core.vectorstores import InMemoryVectorStore

from supportchat.core.settings import VectorStoreConfig
from supportchat.services.retrieval_service import (
    RetrievalIndexNotFoundError,
    RetrievalService,
    format_documents_as_context,
)


@pytest.fixture
def embeddings() -> DeterministicFakeEmbedding:
    return DeterministicFakeEmbedding(size=16)


@pytest.fixture
def config(tmp_path: Path) -> VectorStoreConfig:
    return VectorStoreConfig(path=tmp_path, chunk_size=500, chunk_overlap=50, top_k=2)


class TestFormatDocuments:
    def test_empty(self) -> None:
        assert format_documents_as_context([]) == ""

    def test_numbered_blocks(self) -> None:
        context = format_documents_as_context(
            [Document(page_content=" Refunds take 5 days. "), Document(page_content="Ship free.")]
        )
        assert context == (
            "Relevant information from the knowledge base:\n\n"
            "[Document 1]\nRefunds take 5 days.\n\n"
            "[Document 2]\nShip free."
        )


class TestRetrievalService:
    async def test_rejects_path_like_index_names(
        self, embeddings: DeterministicFakeEmbedding, config: VectorStoreConfig
    ) -> None:
        service = RetrievalService(embeddings, config)
        with pytest.raises(ValueError):
            await service.retrieve_documents("../secrets", "refund")

    async def test_missing_index(
        self, embeddings: DeterministicFakeEmbedding, config: VectorStoreConfig
    ) -> None:
        service = RetrievalService(embeddings, config)
        with pytest.raises(RetrievalIndexNotFoundError):
            await service.retrieve_documents("acme-docs", "refund")

    async def test_loads_dumped_index(
        self, embeddings: DeterministicFakeEmbedding, config: VectorStoreConfig
    ) -> None:
        store = InMemoryVectorStore(embeddings)
        texts = ["Refunds take 5 days.", "Shipping is free.", "We are open 9-5."]
        await store.aadd_documents([Document(page_content=t) for t in texts])
        store.dump(str(config.index_file("acme-docs")))

        service = RetrievalService(embeddings, config)
        documents = await service.retrieve_documents("acme-docs", "Refunds take 5 days.")

        assert len(documents) == 2
        assert documents[0].page_content == "Refunds take 5 days."

        one = await service.retrieve_documents("acme-docs", "Shipping is free.", top_k=1)
        assert [d.page_content for d in one] == ["Shipping is free."]

    async def test_index_is_loaded_once(
        self,
        embeddings: DeterministicFakeEmbedding,
        config: VectorStoreConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        store = InMemoryVectorStore(embeddings)
        await store.aadd_documents([Document(page_content="Refunds take 5 days.")])
        store.dump(str(config.index_file("acme-docs")))

        loads: list[str] = []
        original_load = InMemoryVectorStore.load

        def counting_load(
            path: str, embedding: DeterministicFakeEmbedding
        ) -> InMemoryVectorStore:
            loads.append(path)
            return original_load(path, embedding)

        monkeypatch.setattr(InMemoryVectorStore, "load", counting_load)
        service = RetrievalService(embeddings, config)
        await service.retrieve_documents("acme-docs", "refund")
        await service.retrieve_documents("acme-docs", "refund")

        assert loads == [str(config.index_file("acme-docs"))]
