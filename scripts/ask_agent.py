"""
Ask the content agent a free-form question or writing request.

Usage:
    python scripts/ask_agent.py "How do I connect a custom domain?"
    python scripts/ask_agent.py "Write a tweet about chat-based editing" --index wegic_knowledge

The agent may search the knowledge index before answering; each tool call
is listed after the answer.
"""

import argparse
import asyncio
import sys

from content_engine.config import ConfigError, load_settings
from content_engine.core.logging_config import setup_logging
from content_engine.dependencies import build_services
from content_engine.services.errors import GenerationError
from content_engine.services.rag import KnowledgeRetriever
from content_engine.services.workflow import build_content_agent


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Ask the content agent")
    parser.add_argument("prompt", help="Question or writing request")
    parser.add_argument("--index", default=None, help="Knowledge index (defaults to KNOWLEDGE_INDEX)")
    return parser.parse_args(argv)


async def ask(args, settings) -> int:
    services = build_services(settings)
    retriever = KnowledgeRetriever(
        services.embedding_client,
        services.vector_index,
        args.index or settings.knowledge_index,
    )
    agent = build_content_agent(services.chat_client, retriever, settings)

    try:
        response = await agent.generate(args.prompt)
    except GenerationError as e:
        print(f"Generation failed: {e}")
        return 1

    print(response.text)
    if response.tool_calls:
        print("\nTool calls:")
        for call in response.tool_calls:
            print(f"  {call['name']}({call['arguments']})")
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 2

    setup_logging(log_dir=settings.log_dir)
    return asyncio.run(ask(args, settings))


if __name__ == "__main__":
    sys.exit(main())
