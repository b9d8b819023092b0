"""
Ingestion pipeline: chunk -> embed -> ensure index -> upsert.

Single documents are processed strictly in order. Directory ingestion fans out
over files concurrently; a failing file is logged and counted, and the
remaining files are still ingested.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import httpx

from content_engine.config import ChunkingConfig
from content_engine.schemas.content import CrawledPage
from content_engine.services.ai.clients import EmbeddingClient
from content_engine.services.crawler import FETCH_TIMEOUT, fetch_page
from content_engine.services.db.vector_index import (
    IndexedRecord,
    VectorIndex,
    ensure_index,
    sanitize_identifier,
)
from content_engine.services.errors import EmbeddingError, UpsertError, format_error_message
from content_engine.services.rag.chunker import chunk_with_config

logger = logging.getLogger(__name__)

DEFAULT_DIMENSION = 1536
DEFAULT_CONCURRENCY = 4


@dataclass
class IngestSummary:
    """Outcome of a batch ingestion."""

    processed: int = 0
    failed: int = 0
    chunks: int = 0
    errors: Dict[str, str] = field(default_factory=dict)

    def merge(self, other: "IngestSummary") -> None:
        self.processed += other.processed
        self.failed += other.failed
        self.chunks += other.chunks
        self.errors.update(other.errors)


class IngestionPipeline:
    """
    Usage:
        pipeline = IngestionPipeline(embedding_client, vector_index)
        count = await pipeline.ingest(text, source="faq", index_name="knowledge_base")
        summary = await pipeline.ingest_directory("wegic-docs", "wegic_knowledge")
    """

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        vector_index: VectorIndex,
        chunking: Optional[ChunkingConfig] = None,
        dimension: int = DEFAULT_DIMENSION,
        concurrency: int = DEFAULT_CONCURRENCY,
    ):
        self.embedding_client = embedding_client
        self.vector_index = vector_index
        self.chunking = chunking or ChunkingConfig()
        self.dimension = dimension
        self.concurrency = max(1, int(concurrency))

    @classmethod
    def from_settings(cls, settings, embedding_client, vector_index) -> "IngestionPipeline":
        return cls(
            embedding_client=embedding_client,
            vector_index=vector_index,
            chunking=settings.chunking,
            dimension=settings.embedding_dimension,
            concurrency=settings.ingest_concurrency,
        )

    async def ingest(
        self,
        content: str,
        source: str,
        index_name: str,
        doc_type: Optional[str] = None,
        sanitize: bool = False,
        extra_metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        Store one document in the vector index.

        Args:
            content: Document text
            source: Source identifier stored with every chunk
            index_name: Target index
            doc_type: Optional content type stored as `type`
            sanitize: Store source/type as storage-safe identifiers and keep
                the raw source as `original_path`
            extra_metadata: Additional fields stored with every chunk

        Returns:
            Number of chunks stored

        Raises:
            ChunkingError: Invalid chunking parameters
            EmbeddingError: Embedding failed or returned a mismatched count
            IndexCreationError: The index could not be created
            UpsertError: Writing to the index failed
        """
        chunks = [c for c in chunk_with_config(content, self.chunking) if c.text.strip()]
        if not chunks:
            logger.warning(f"No content to ingest for {source}", extra={"source": source})
            return 0

        logger.info(f"Number of chunks for {source}: {len(chunks)}", extra={"source": source})

        vectors = await self.embedding_client.embed_batch([c.text for c in chunks])
        if len(vectors) != len(chunks):
            raise EmbeddingError(
                f"Embedding count mismatch for {source}: "
                f"{len(chunks)} chunks, {len(vectors)} vectors"
            )
        for vector in vectors:
            if len(vector) != self.dimension:
                raise UpsertError(
                    f"Vector dimension {len(vector)} does not match index dimension {self.dimension}"
                )

        await ensure_index(self.vector_index, index_name, self.dimension)

        timestamp = datetime.now(timezone.utc).isoformat()
        stored_source = sanitize_identifier(source) if sanitize else source

        records: List[IndexedRecord] = []
        for chunk, vector in zip(chunks, vectors):
            metadata: Dict[str, Any] = {
                "text": chunk.text,
                "source": stored_source,
                "chunk_index": chunk.index,
                "source_offset": chunk.source_offset,
                "timestamp": timestamp,
            }
            if sanitize:
                metadata["original_path"] = source
            if doc_type:
                metadata["type"] = sanitize_identifier(doc_type) if sanitize else doc_type
            if extra_metadata:
                metadata.update(extra_metadata)
            records.append(IndexedRecord(vector=vector, metadata=metadata))

        await self.vector_index.upsert(index_name, records)

        logger.info(
            f"Stored {len(records)} chunks from {source} in {index_name}",
            extra={"source": source},
        )
        return len(records)

    async def ingest_file(self, path: Path, index_name: str) -> int:
        """Ingest one crawled page JSON file (`{path, title, content, url, type}`)."""
        raw = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        page = CrawledPage.model_validate(json.loads(raw))

        return await self.ingest(
            page.content,
            source=page.path,
            index_name=index_name,
            doc_type=page.type,
            sanitize=True,
            extra_metadata={"title": page.title, "url": page.url},
        )

    async def ingest_directory(self, directory: Path, index_name: str) -> IngestSummary:
        """
        Ingest every *.json file in `directory` concurrently.

        A failing file is logged and recorded in the summary; it never aborts
        the other files.
        """
        directory = Path(directory)
        summary = IngestSummary()

        if not directory.is_dir():
            logger.warning(f"Directory not found: {directory}")
            summary.errors[str(directory)] = "directory not found"
            return summary

        # Create the index before the fan-out so files don't race to create it
        await ensure_index(self.vector_index, index_name, self.dimension)

        files = sorted(p for p in directory.iterdir() if p.suffix == ".json")
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _process(file_path: Path) -> None:
            async with semaphore:
                logger.info(f"Processing {file_path.name}...")
                try:
                    count = await self.ingest_file(file_path, index_name)
                except Exception as e:
                    logger.error(
                        f"Failed to ingest {file_path.name}: {e}",
                        extra={"source": file_path.name, "error": str(e)},
                    )
                    summary.failed += 1
                    summary.errors[file_path.name] = format_error_message(e)
                    return

                summary.processed += 1
                summary.chunks += count
                logger.info(f"Completed processing {file_path.name}")

        await asyncio.gather(*(_process(f) for f in files))

        logger.info(
            f"Ingested directory {directory}: processed={summary.processed}, "
            f"failed={summary.failed}, chunks={summary.chunks}"
        )
        return summary

    async def ingest_directories(
        self,
        directories: Sequence[Path],
        index_name: str,
    ) -> IngestSummary:
        """Create the index once, then ingest several content directories into it."""
        await ensure_index(self.vector_index, index_name, self.dimension)

        total = IngestSummary()
        for directory in directories:
            logger.info(f"Processing directory {directory}...")
            total.merge(await self.ingest_directory(Path(directory), index_name))
        return total

    async def ingest_text(self, text: str, source: str, index_name: str) -> int:
        """Ingest a plain text snippet."""
        return await self.ingest(text, source=source, index_name=index_name)

    async def ingest_url(
        self,
        url: str,
        source: str,
        index_name: str,
        client: Optional[httpx.AsyncClient] = None,
    ) -> int:
        """
        Fetch a web page and ingest its plain text.

        Raises:
            FetchError: The page could not be fetched
        """
        if client is not None:
            page = await fetch_page(client, url)
        else:
            async with httpx.AsyncClient(timeout=FETCH_TIMEOUT) as http:
                page = await fetch_page(http, url)

        return await self.ingest(
            page.content,
            source=source,
            index_name=index_name,
            extra_metadata={"title": page.title, "url": url},
        )
