"""
Runtime configuration.

Responsibilities:
1. Load settings from the environment (.env supported via python-dotenv)
2. Normalize OpenAI-compatible base URLs
3. Validate that required settings are present

Every client is constructed from an explicit Settings instance; nothing in this
module keeps process-wide state.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Missing or invalid configuration."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[Sequence[str]] = None,
    ):
        super().__init__(message)
        self.missing_keys = list(missing_keys or [])


DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_LOG_DIR = Path(__file__).parent.parent / "logs"


def normalize_base_url(url: str) -> str:
    """
    Normalize the base_url of an OpenAI-compatible API.

    The OpenAI SDK appends /embeddings, /chat/completions etc. itself, so the
    base_url should end with /v1.

    Examples:
        https://api.example.com/v1/chat/completions -> https://api.example.com/v1
        https://api.example.com/v1/embeddings -> https://api.example.com/v1
        https://api.example.com -> https://api.example.com/v1
        api.example.com/v1 -> https://api.example.com/v1
    """
    if not url:
        return url

    url = url.strip()

    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"

    url = url.rstrip("/")

    for suffix in ("/embeddings", "/chat/completions", "/completions"):
        if url.endswith(suffix):
            url = url[: -len(suffix)]
            break

    url = url.rstrip("/")

    if not url.endswith("/v1"):
        url = f"{url}/v1"

    return url


@dataclass(frozen=True)
class ChunkingConfig:
    """Chunker parameters (units are characters)."""

    size: int = 512
    overlap: int = 50
    separator: str = "\n"


@dataclass(frozen=True)
class Settings:
    openai_api_key: str
    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    openai_proxy: Optional[str] = None
    chat_model: str = "gpt-4o"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimension: int = 1536

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    knowledge_index: str = "knowledge_base"

    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)

    request_timeout_seconds: float = 90.0
    retry_max_attempts: int = 1
    retry_backoff_seconds: float = 2.0
    ingest_concurrency: int = 4
    agent_max_tool_rounds: int = 3

    brand_name: str = "Wegic"
    brand_url: str = "wegic.ai"

    log_dir: Path = DEFAULT_LOG_DIR

    def require_vector_store(self) -> None:
        """Raise ConfigError unless the Supabase connection settings are present."""
        missing = []
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        if not self.supabase_key:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")
        if missing:
            raise ConfigError(
                f"Missing vector store settings: {', '.join(missing)}",
                missing_keys=missing,
            )


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e


def _get_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from e


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    load_env_file: bool = True,
) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        env: Mapping to read from (defaults to os.environ)
        load_env_file: Read a local .env file first (ignored when env is given)

    Raises:
        ConfigError: A required value is missing or malformed
    """
    if env is None:
        if load_env_file:
            load_dotenv(find_dotenv())
        env = os.environ

    api_key = (env.get("OPENAI_API_KEY") or "").strip()
    if not api_key:
        raise ConfigError("OPENAI_API_KEY is not set", missing_keys=["OPENAI_API_KEY"])

    base_url = normalize_base_url(env.get("OPENAI_BASE_URL") or DEFAULT_OPENAI_BASE_URL)

    chunking = ChunkingConfig(
        size=_get_int(env, "CHUNK_SIZE", 512),
        overlap=_get_int(env, "CHUNK_OVERLAP", 50),
        separator=env.get("CHUNK_SEPARATOR") or "\n",
    )

    settings = Settings(
        openai_api_key=api_key,
        openai_base_url=base_url,
        openai_proxy=env.get("OPENAI_PROXY") or None,
        chat_model=env.get("CHAT_MODEL") or "gpt-4o",
        embedding_model=env.get("EMBEDDING_MODEL") or "text-embedding-3-small",
        embedding_dimension=_get_int(env, "EMBEDDING_DIMENSION", 1536),
        supabase_url=env.get("SUPABASE_URL") or None,
        supabase_key=env.get("SUPABASE_SERVICE_ROLE_KEY") or None,
        knowledge_index=env.get("KNOWLEDGE_INDEX") or "knowledge_base",
        chunking=chunking,
        request_timeout_seconds=_get_float(env, "REQUEST_TIMEOUT_SECONDS", 90.0),
        retry_max_attempts=max(1, _get_int(env, "RETRY_MAX_ATTEMPTS", 1)),
        retry_backoff_seconds=_get_float(env, "RETRY_BACKOFF_SECONDS", 2.0),
        ingest_concurrency=max(1, _get_int(env, "INGEST_CONCURRENCY", 4)),
        agent_max_tool_rounds=max(0, _get_int(env, "AGENT_MAX_TOOL_ROUNDS", 3)),
        brand_name=env.get("BRAND_NAME") or "Wegic",
        brand_url=env.get("BRAND_URL") or "wegic.ai",
        log_dir=Path(env.get("LOG_DIR") or DEFAULT_LOG_DIR),
    )

    logger.debug(
        f"Loaded settings: base_url={settings.openai_base_url}, "
        f"chat_model={settings.chat_model}, embedding_model={settings.embedding_model}, "
        f"index={settings.knowledge_index}"
    )
    return settings
