"""
Run the promotional article workflow for one topic.

Usage:
    python scripts/run_article.py "How AI is Revolutionizing Website Creation"
    python scripts/run_article.py "No-code websites" --output article.md

Prints step progress while the run executes; on failure reports the failing
step and exits non-zero without printing a partial article.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from content_engine.config import ConfigError, load_settings
from content_engine.core.logging_config import setup_logging
from content_engine.dependencies import build_services
from content_engine.services.rag import KnowledgeRetriever
from content_engine.services.workflow import build_article_workflow, build_content_agent


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate a promotional article")
    parser.add_argument("topic", help="Article topic")
    parser.add_argument("--index", default=None, help="Knowledge index (defaults to KNOWLEDGE_INDEX)")
    parser.add_argument("--output", type=Path, default=None, help="Write the article markdown here")
    return parser.parse_args(argv)


def print_progress(event: dict) -> None:
    if event["step_id"] is None:
        print(f"\nRun {event['run_id']} finished: {event['status']}")
        return

    print(f"Step {event['step_id']}: {event['status']}")
    result = event.get("result")
    if event["status"] == "success" and hasattr(result, "word_count"):
        print(f"  Word count: {result.word_count}")
    if event["status"] == "failed":
        print(f"  Error: {event.get('error')}")


async def run(args, settings) -> int:
    services = build_services(settings)
    retriever = KnowledgeRetriever(
        services.embedding_client,
        services.vector_index,
        args.index or settings.knowledge_index,
    )
    agent = build_content_agent(services.chat_client, retriever, settings)
    workflow = build_article_workflow(agent, retriever, settings)

    engine = workflow.engine()
    engine.watch(print_progress)

    run_result = await engine.start({"topic": args.topic})
    if not run_result.succeeded:
        print(f"\nWorkflow failed at step '{run_result.failed_step}': {run_result.error}")
        return 1

    article = run_result.results["finalize"]
    print(f"\nTotal word count: {article.total_word_count}")
    print("\nFinal article:\n")
    print(article.final_article)
    print("\nSEO metadata:")
    print(json.dumps(article.metadata.model_dump(by_alias=True), indent=2, ensure_ascii=False))

    if args.output:
        args.output.write_text(article.final_article, encoding="utf-8")
        print(f"\nSaved article to {args.output}")
    return 0


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
