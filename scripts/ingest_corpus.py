#!/usr/bin/env python
"""Ingest text files into the persisted research corpus.

Usage:
    python -m scripts.ingest_corpus data/filings --chunk-size 1000 --chunk-overlap 200

Files are chunked, embedded with the configured provider (mock embeddings
when no API key is set) and appended to the vector store on disk.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from research_engine.config import get_settings
from research_engine.documents.chunker import CharacterChunker, ChunkerConfig
from research_engine.documents.ingest import CorpusIngestor
from research_engine.documents.loader import TextFileLoader
from research_engine.embeddings.service import create_embedding_service
from research_engine.exceptions import ResearchEngineError
from research_engine.logging_config import get_logger, setup_logging
from research_engine.vectorstore.service import VectorStore

logger = get_logger(__name__)


async def ingest_paths(
    paths: list[Path],
    chunk_size: int,
    chunk_overlap: int,
    store_dir: Path | None = None,
) -> bool:
    """Ingest every supported file under the given paths.

    Args:
        paths: Files or directories to ingest.
        chunk_size: Target chunk size in characters.
        chunk_overlap: Overlap between chunks in characters.
        store_dir: Override for the vector store directory.

    Returns:
        True if every file was ingested, False otherwise.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level)

    store_settings = settings.vector_store
    if store_dir is not None:
        store_settings = store_settings.model_copy(update={"store_dir": store_dir})

    loader = TextFileLoader()
    files = [f for path in paths for f in loader.discover(path)]
    if not files:
        logger.warning("No supported files found", extra={"paths": [str(p) for p in paths]})
        return False

    store = VectorStore(store_settings)
    embedding_service = create_embedding_service(settings.embedding)
    ingestor = CorpusIngestor(
        embedding_service=embedding_service,
        vector_store=store,
        chunker=CharacterChunker(
            ChunkerConfig(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
        ),
    )

    failures = 0
    total_chunks = 0
    try:
        for file_path in files:
            try:
                records = await ingestor.ingest(loader.load(file_path))
            except ResearchEngineError as e:
                failures += 1
                logger.error(
                    f"Failed to ingest {file_path}: {e.message}",
                    extra={"error_code": e.code.value},
                )
                continue
            total_chunks += len(records)
            print(f"{file_path}: {len(records)} chunks")
    finally:
        await embedding_service.close()

    print(f"\nIngested {total_chunks} chunks from {len(files) - failures}/{len(files)} files")
    print(f"Corpus size: {len(store)} documents ({store.metadata_path.parent})")
    return failures == 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Ingest text files into the research corpus",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "paths",
        type=Path,
        nargs="+",
        help="Files or directories to ingest",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=1000,
        help="Target chunk size in characters",
    )
    parser.add_argument(
        "--chunk-overlap",
        type=int,
        default=200,
        help="Overlap between chunks in characters",
    )
    parser.add_argument(
        "--store-dir",
        type=Path,
        default=None,
        help="Vector store directory (defaults to VECTOR_STORE_STORE_DIR)",
    )

    args = parser.parse_args()

    succeeded = asyncio.run(
        ingest_paths(
            paths=args.paths,
            chunk_size=args.chunk_size,
            chunk_overlap=args.chunk_overlap,
            store_dir=args.store_dir,
        )
    )

    sys.exit(0 if succeeded else 1)


if __name__ == "__main__":
    main()
