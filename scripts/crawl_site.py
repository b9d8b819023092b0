"""
Crawl the documentation site and blog into JSON files.

Usage:
    python scripts/crawl_site.py --output . --prefix wegic
    python scripts/crawl_site.py --no-blog

Writes <output>/<prefix>-docs/*.json and <output>/<prefix>-blog/*.json.
A page that fails is logged and skipped; the summary lists the failures.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from content_engine.core.logging_config import setup_logging
from content_engine.services.crawler import (
    DEFAULT_BLOG_BASE_URL,
    DEFAULT_CONCURRENCY,
    DEFAULT_DOCS_BASE_URL,
    DEFAULT_PREFIX,
    crawl_site,
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Crawl docs and blog pages to JSON files")
    parser.add_argument("--output", type=Path, default=Path("."), help="Output root directory")
    parser.add_argument("--prefix", default=DEFAULT_PREFIX, help="Directory prefix (<prefix>-docs, <prefix>-blog)")
    parser.add_argument("--docs-url", default=DEFAULT_DOCS_BASE_URL, help="Documentation base URL")
    parser.add_argument("--blog-url", default=DEFAULT_BLOG_BASE_URL, help="Site hosting /blog")
    parser.add_argument("--no-blog", action="store_true", help="Skip blog discovery")
    parser.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()

    summary = asyncio.run(crawl_site(
        output_root=args.output,
        prefix=args.prefix,
        docs_base_url=args.docs_url,
        blog_base_url=None if args.no_blog else args.blog_url,
        concurrency=args.concurrency,
    ))

    print(f"\nCrawling completed: {summary.saved_count} saved, {summary.failed_count} failed")
    for path, reason in sorted(summary.failed.items()):
        print(f"  FAILED {path}: {reason}")

    return 0 if summary.saved_count else 1


if __name__ == "__main__":
    sys.exit(main())
