"""
OpenAI-compatible AI clients.

All clients:
- use the AsyncOpenAI SDK
- accept already-normalized configuration (api_base ends with /v1)
- route every call through a RetryPolicy (SDK retries are disabled)
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from openai import (
    AsyncOpenAI,
    APIStatusError,
    APIConnectionError,
    APITimeoutError,
)

from content_engine.services.ai.retry import RetryPolicy
from content_engine.services.errors import (
    handle_openai_error,
    EmbeddingError,
    GenerationError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(90.0, connect=30.0)

DEFAULT_BATCH_SIZE = 100
DEFAULT_DIMENSIONS = 1536


def build_openai_client(
    api_key: str,
    api_base: str,
    proxy: Optional[str] = None,
    timeout: Optional[float] = None,
) -> AsyncOpenAI:
    """
    Create an AsyncOpenAI client.

    An explicit proxy is passed to a dedicated httpx client instead of relying on
    process-wide environment variables.
    """
    http_timeout = httpx.Timeout(timeout, connect=30.0) if timeout else DEFAULT_TIMEOUT
    http_client = httpx.AsyncClient(proxy=proxy, timeout=http_timeout) if proxy else None
    return AsyncOpenAI(
        api_key=api_key,
        base_url=api_base,
        timeout=http_timeout,
        max_retries=0,
        http_client=http_client,
    )


class ChatClient:
    """
    Chat Completion client.

    Usage:
        client = ChatClient(api_key, api_base, model)

        text = await client.complete(messages)
        message = await client.complete_with_tools(messages, tools)
    """

    def __init__(
        self,
        api_key: str,
        api_base: str,
        model: str,
        proxy: Optional[str] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        self.policy = policy or RetryPolicy()
        self._client = build_openai_client(api_key, api_base, proxy, self.policy.timeout_seconds)
        self.model = model

    @classmethod
    def from_settings(cls, settings) -> "ChatClient":
        return cls(
            api_key=settings.openai_api_key,
            api_base=settings.openai_base_url,
            model=settings.chat_model,
            proxy=settings.openai_proxy,
            policy=RetryPolicy.from_settings(settings),
        )

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> str:
        """
        Non-streaming chat completion.

        Returns:
            Generated text content

        Raises:
            GenerationError: The call failed
        """
        message = await self.complete_with_tools(
            messages, tools=None, temperature=temperature, max_tokens=max_tokens
        )
        return message.content or ""

    async def complete_with_tools(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ):
        """
        Chat completion that may answer with tool calls.

        Args:
            messages: Conversation so far, including tool results
            tools: OpenAI function tool specs, None disables tool calling

        Returns:
            The assistant message (content and tool_calls)

        Raises:
            GenerationError: The call failed
        """
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if tools:
            kwargs["tools"] = tools

        async def _call():
            try:
                response = await self._client.chat.completions.create(**kwargs)
            except (APIStatusError, APIConnectionError, APITimeoutError) as e:
                raise handle_openai_error(
                    e, "chat completion", GenerationError,
                    context={"model": self.model},
                ) from e
            except Exception as e:
                logger.error(f"Unexpected error in chat completion: {type(e).__name__}: {e}")
                raise GenerationError(f"Chat completion failed: {type(e).__name__}") from e

            if not response.choices:
                raise GenerationError("Chat completion returned no choices")
            return response.choices[0].message

        return await self.policy.run(_call, "chat completion", GenerationError)


class EmbeddingClient:
    """
    Embedding client.

    Usage:
        client = EmbeddingClient(api_key, api_base, model)

        vector = await client.embed(text)
        vectors = await client.embed_batch(texts)
    """

    def __init__(
        self,
        api_key: str,
        api_base: str,
        model: str,
        dimensions: int = DEFAULT_DIMENSIONS,
        proxy: Optional[str] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        self.policy = policy or RetryPolicy()
        self._client = build_openai_client(api_key, api_base, proxy, self.policy.timeout_seconds)
        self.model = model
        self.dimensions = dimensions

    @classmethod
    def from_settings(cls, settings) -> "EmbeddingClient":
        return cls(
            api_key=settings.openai_api_key,
            api_base=settings.openai_base_url,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimension,
            proxy=settings.openai_proxy,
            policy=RetryPolicy.from_settings(settings),
        )

    async def embed(self, text: str) -> List[float]:
        """
        Embed a single text (a batch of size one).

        Raises:
            EmbeddingError: Empty input or the call failed
        """
        if not text or not text.strip():
            raise EmbeddingError("Empty text provided for embedding")

        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(
        self,
        texts: List[str],
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> List[List[float]]:
        """
        Embed texts, preserving input order.

        The service is called in slices of `batch_size`; every slice must return
        exactly one vector per input text.

        Returns:
            One vector per input text, same order

        Raises:
            EmbeddingError: Empty text, transport failure or count mismatch
        """
        if not texts:
            return []

        for i, text in enumerate(texts):
            if not text or not text.strip():
                raise EmbeddingError(f"Empty text at position {i}")

        all_embeddings: List[List[float]] = []

        for batch_start in range(0, len(texts), batch_size):
            batch_texts = texts[batch_start:batch_start + batch_size]

            logger.debug(
                f"Processing batch {batch_start}-{batch_start + len(batch_texts)} of {len(texts)}"
            )

            async def _call(batch_texts=batch_texts):
                try:
                    return await self._client.embeddings.create(
                        model=self.model,
                        input=batch_texts,
                        dimensions=self.dimensions,
                    )
                except (APIStatusError, APIConnectionError, APITimeoutError) as e:
                    raise handle_openai_error(
                        e, "batch embedding", EmbeddingError,
                        context={"model": self.model, "batch_size": len(batch_texts)},
                    ) from e
                except Exception as e:
                    logger.error(f"Unexpected error in batch embedding: {type(e).__name__}: {e}")
                    raise EmbeddingError(f"Batch embedding failed: {type(e).__name__}") from e

            response = await self.policy.run(_call, "batch embedding", EmbeddingError)

            data = sorted(response.data, key=lambda item: item.index)
            if len(data) != len(batch_texts):
                raise EmbeddingError(
                    f"Embedding count mismatch: sent {len(batch_texts)} texts, "
                    f"received {len(data)} vectors"
                )
            all_embeddings.extend(item.embedding for item in data)

        logger.info(
            f"Generated embeddings: total={len(texts)}, "
            f"batches={len(range(0, len(texts), batch_size))}"
        )

        return all_embeddings
