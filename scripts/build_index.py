"""Build a retrieval index from text and markdown files.

Usage:
    python -m scripts.build_index --index-name acme-docs docs/acme/
"""

import argparse
from pathlib import Path

from langchain_core.documents import Document
from langchain_core.vectorstores import InMemoryVectorStore
from langchain_text_splitters import RecursiveCharacterTextSplitter

from supportchat.core.config import settings
from supportchat.dependencies import get_embeddings
from supportchat.services.retrieval_service import INDEX_NAME_PATTERN

SOURCE_SUFFIXES = {".txt", ".md"}


def collect_documents(sources: list[Path]) -> list[Document]:
    """Load every text/markdown file under the given paths."""
    files: list[Path] = []
    for source in sources:
        if source.is_dir():
            files.extend(
                p for p in sorted(source.rglob("*")) if p.suffix in SOURCE_SUFFIXES
            )
        elif source.suffix in SOURCE_SUFFIXES:
            files.append(source)
    return [
        Document(page_content=f.read_text(encoding="utf-8"), metadata={"source": str(f)})
        for f in files
    ]


def build_index(index_name: str, sources: list[Path]) -> Path:
    """Split, embed and dump the documents as a serialized store."""
    if not INDEX_NAME_PATTERN.match(index_name):
        raise SystemExit(f"Invalid index name: {index_name!r}")

    config = settings.vector_store
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=config.chunk_size,
        chunk_overlap=config.chunk_overlap,
    )
    chunks = splitter.split_documents(collect_documents(sources))
    if not chunks:
        raise SystemExit("No .txt or .md content found")

    store = InMemoryVectorStore(get_embeddings())
    store.add_documents(chunks)

    output = config.index_file(index_name)
    output.parent.mkdir(parents=True, exist_ok=True)
    store.dump(str(output))
    print(f"Indexed {len(chunks)} chunks into {output}")
    return output


def main() -> None:
    parser = argparse.ArgumentParser(description="Build a retrieval index")
    parser.add_argument("--index-name", required=True, help="Name stored in chat configs")
    parser.add_argument("sources", nargs="+", type=Path, help="Files or directories")
    args = parser.parse_args()

    build_index(args.index_name, args.sources)


if __name__ == "__main__":
    main()
