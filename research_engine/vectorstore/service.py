"""In-process vector store with file-backed persistence.

Exact cosine-similarity search over an in-memory corpus. The corpus is
persisted as two positionally aligned JSON files: one array of
``{doc_id, text, meta}`` objects and one array of embedding vectors.
"""

import asyncio
import json
import math
import os
import tempfile
import time
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from research_engine.config import VectorStoreSettings, get_settings
from research_engine.exceptions import ErrorCode, VectorStoreError
from research_engine.logging_config import get_logger
from research_engine.observability.metrics import (
    record_fallback,
    track_vectorstore_operation,
)
from research_engine.vectorstore.models import DocumentRecord, RetrievedMatch

logger = get_logger(__name__)

SIMILARITY_EPSILON = 1e-9


def cosine_similarity(
    a: Sequence[float] | None,
    b: Sequence[float] | None,
) -> float:
    """Cosine similarity with an epsilon-stabilized denominator.

    Returns 0.0 when either vector is missing or their lengths differ.
    """
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b) + SIMILARITY_EPSILON)


class VectorStore:
    """File-backed vector store with exact linear-scan search.

    One instance is shared by every request handler of a running server.
    Searches are pure computation and run without locking; mutation and
    persistence go through ``add_and_save``, which holds a
    single-writer lock so a snapshot is never taken mid-mutation.
    """

    def __init__(
        self,
        settings: VectorStoreSettings | None = None,
    ) -> None:
        """Initialize the store and load any persisted corpus.

        Args:
            settings: Store configuration. Uses application settings if not provided.
        """
        self._settings = settings or get_settings().vector_store
        self._records: list[DocumentRecord] = []
        self._ids: set[str] = set()
        self._write_lock = asyncio.Lock()

        self.load()

    @property
    def metadata_path(self) -> Path:
        return self._settings.metadata_path

    @property
    def embeddings_path(self) -> Path:
        return self._settings.embeddings_path

    @property
    def records(self) -> tuple[DocumentRecord, ...]:
        """Current corpus in insertion order."""
        return tuple(self._records)

    @property
    def dimensions(self) -> int | None:
        """Embedding width of the corpus, or None when empty."""
        if not self._records:
            return None
        return len(self._records[0].embedding)

    def __len__(self) -> int:
        return len(self._records)

    def load(self) -> int:
        """Load the corpus from disk.

        Missing files leave the store empty. Corrupt or inconsistent files
        are logged and reset the store to empty; this method never raises.

        Returns:
            Number of records loaded.
        """
        start = time.perf_counter()
        self._records = []
        self._ids = set()

        if not (self.metadata_path.exists() and self.embeddings_path.exists()):
            logger.info(
                "No persisted corpus found, starting empty",
                extra={"store_dir": str(self._settings.store_dir)},
            )
            return 0

        try:
            records = self._read_records()
        except (OSError, ValueError, TypeError, KeyError, AttributeError, VectorStoreError) as e:
            logger.exception(
                "Failed to load vector store, starting empty",
                extra={"metadata_path": str(self.metadata_path)},
            )
            record_fallback("vectorstore", "corrupt_corpus", error=str(e))
            track_vectorstore_operation(
                "load", time.perf_counter() - start, success=False, documents=0
            )
            return 0

        self._records = records
        self._ids = {record.doc_id for record in records}
        track_vectorstore_operation(
            "load", time.perf_counter() - start, documents=len(records)
        )
        logger.info(f"Loaded {len(records)} documents", extra={"dimensions": self.dimensions})
        return len(records)

    def _read_records(self) -> list[DocumentRecord]:
        """Parse both files and zip them by position."""
        metadata = json.loads(self.metadata_path.read_text(encoding="utf-8"))
        embeddings = json.loads(self.embeddings_path.read_text(encoding="utf-8"))

        if not isinstance(metadata, list) or not isinstance(embeddings, list):
            raise ValueError("corpus files must contain JSON arrays")
        if len(metadata) != len(embeddings):
            raise VectorStoreError(
                "Metadata and embedding files are out of step",
                details={"metadata": len(metadata), "embeddings": len(embeddings)},
            )

        records = [
            DocumentRecord(
                doc_id=entry["doc_id"],
                text=entry["text"],
                meta=entry.get("meta") or {},
                embedding=embedding,
            )
            for entry, embedding in zip(metadata, embeddings)
        ]
        self._validate_batch(records, existing_ids=set(), width=None)
        return records

    def save(self) -> None:
        """Write a full snapshot of the corpus to disk.

        Both files are written to temporary files first and then renamed
        into place, so readers see either the old or the new pair.

        Raises:
            VectorStoreError: If the snapshot cannot be written.
        """
        start = time.perf_counter()
        records = list(self._records)
        metadata = [record.metadata_entry() for record in records]
        embeddings = [record.embedding for record in records]

        try:
            self._settings.store_dir.mkdir(parents=True, exist_ok=True)
            meta_tmp = self._write_temp(json.dumps(metadata, indent=2, ensure_ascii=False))
            try:
                emb_tmp = self._write_temp(json.dumps(embeddings))
            except OSError:
                meta_tmp.unlink(missing_ok=True)
                raise
            os.replace(emb_tmp, self.embeddings_path)
            os.replace(meta_tmp, self.metadata_path)
        except OSError as e:
            track_vectorstore_operation("save", time.perf_counter() - start, success=False)
            raise VectorStoreError(
                f"Failed to persist vector store: {e}",
                code=ErrorCode.PERSISTENCE_ERROR,
                details={"store_dir": str(self._settings.store_dir), "error": str(e)},
            ) from e

        track_vectorstore_operation(
            "save", time.perf_counter() - start, documents=len(records)
        )
        logger.info(f"Saved {len(records)} documents")

    def _write_temp(self, payload: str) -> Path:
        """Write payload to a temp file in the store directory."""
        fd, name = tempfile.mkstemp(
            dir=self._settings.store_dir, prefix=".corpus-", suffix=".tmp"
        )
        path = Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
        except OSError:
            path.unlink(missing_ok=True)
            raise
        return path

    def _validate_batch(
        self,
        records: Sequence[DocumentRecord],
        existing_ids: set[str],
        width: int | None,
    ) -> None:
        """Check ids are unique and every embedding has the corpus width."""
        seen = set(existing_ids)
        for record in records:
            if width is None:
                width = len(record.embedding)
            elif len(record.embedding) != width:
                raise VectorStoreError(
                    f"Embedding width {len(record.embedding)} does not match corpus width {width}",
                    code=ErrorCode.DIMENSION_MISMATCH,
                    details={"doc_id": record.doc_id},
                )
            if record.doc_id in seen:
                raise VectorStoreError(
                    f"Duplicate document id: {record.doc_id}",
                    code=ErrorCode.DUPLICATE_DOCUMENT,
                    details={"doc_id": record.doc_id},
                )
            seen.add(record.doc_id)

    def add(self, records: Iterable[DocumentRecord]) -> int:
        """Append records to the in-memory corpus.

        The batch is validated as a whole before anything is appended.
        Not persisted until ``save`` runs; concurrent writers should use
        ``add_and_save``.

        Raises:
            VectorStoreError: On width mismatch or duplicate ids.
        """
        batch = list(records)
        if not batch:
            return 0
        self._validate_batch(batch, self._ids, self.dimensions)
        self._records.extend(batch)
        self._ids.update(record.doc_id for record in batch)
        logger.debug(f"Added {len(batch)} records", extra={"total": len(self._records)})
        return len(batch)

    async def add_and_save(self, records: Iterable[DocumentRecord]) -> int:
        """Append records and persist the snapshot as one serialized step.

        If the save fails the appended records are removed again, so memory
        never holds records that are not on disk.
        """
        async with self._write_lock:
            before = len(self._records)
            added = self.add(records)
            if added:
                try:
                    await asyncio.to_thread(self.save)
                except Exception:
                    rolled_back = self._records[before:]
                    del self._records[before:]
                    self._ids.difference_update(record.doc_id for record in rolled_back)
                    logger.warning(
                        "Save failed, dropped unsaved records",
                        extra={"dropped": len(rolled_back)},
                    )
                    raise
            return added


    def search(
        self,
        query_embedding: Sequence[float] | None,
        k: int = 5,
    ) -> list[RetrievedMatch]:
        """Rank every record against the query.

        Args:
            query_embedding: Query vector.
            k: Maximum matches to return.

        Returns:
            Up to ``k`` matches, best first; equal scores are ordered by doc_id.
        """
        if not query_embedding or not self._records or k <= 0:
            return []

        start = time.perf_counter()
        scored = [
            RetrievedMatch(record=record, score=cosine_similarity(query_embedding, record.embedding))
            for record in self._records
        ]
        scored.sort(key=lambda match: (-match.score, match.doc_id))
        track_vectorstore_operation("search", time.perf_counter() - start)
        return scored[:k]

    def stats(self) -> dict[str, Any]:
        """Return basic stats for the store."""
        return {
            "backend": "file",
            "document_count": len(self._records),
            "dimensions": self.dimensions,
            "metadata_path": str(self.metadata_path),
            "embeddings_path": str(self.embeddings_path),
        }
