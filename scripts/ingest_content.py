"""
Ingest crawled JSON files (or plain text / a URL) into the vector index.

Usage:
    python scripts/ingest_content.py wegic-docs wegic-blog --index wegic_knowledge
    python scripts/ingest_content.py --text "Some notes" --source notes
    python scripts/ingest_content.py --url https://example.com --source example-website

Per-file failures are logged and reported in the final summary; they never
stop the remaining files.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from content_engine.config import ConfigError, load_settings
from content_engine.core.logging_config import setup_logging
from content_engine.dependencies import build_vector_index
from content_engine.services.ai import EmbeddingClient
from content_engine.services.errors import PipelineError, format_error_message
from content_engine.services.rag import IngestionPipeline


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Ingest content into the vector index")
    parser.add_argument("directories", nargs="*", type=Path, help="Directories of crawled *.json files")
    parser.add_argument("--index", default=None, help="Index name (defaults to KNOWLEDGE_INDEX)")
    parser.add_argument("--text", default=None, help="Ingest this text instead of directories")
    parser.add_argument("--url", default=None, help="Ingest this web page instead of directories")
    parser.add_argument("--source", default=None, help="Source identifier for --text / --url")
    return parser.parse_args(argv)


async def run(args, settings) -> int:
    pipeline = IngestionPipeline.from_settings(
        settings,
        EmbeddingClient.from_settings(settings),
        build_vector_index(settings),
    )
    index_name = args.index or settings.knowledge_index

    if args.text or args.url:
        source = args.source or args.url or "text"
        try:
            if args.url:
                count = await pipeline.ingest_url(args.url, source, index_name)
            else:
                count = await pipeline.ingest_text(args.text, source, index_name)
        except PipelineError as e:
            print(f"Ingestion of {source} failed: {format_error_message(e)}")
            return 1
        print(f"Stored {count} chunks from {source} in {index_name}")
        return 0

    if not args.directories:
        print("Nothing to ingest: pass directories, --text or --url")
        return 2

    summary = await pipeline.ingest_directories(args.directories, index_name)

    print(
        f"\nIngestion completed: {summary.processed} files processed, "
        f"{summary.failed} failed, {summary.chunks} chunks stored in {index_name}"
    )
    for name, reason in sorted(summary.errors.items()):
        print(f"  FAILED {name}: {reason}")

    return 0 if summary.failed == 0 else 1


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 2

    setup_logging(log_dir=settings.log_dir)
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
