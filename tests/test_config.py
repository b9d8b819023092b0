"""Tests for settings loading and base URL normalization."""

from pathlib import Path

import pytest

from content_engine.config import ConfigError, Settings, load_settings, normalize_base_url


class TestNormalizeBaseUrl:

    @pytest.mark.parametrize("raw, expected", [
        ("https://api.example.com/v1/chat/completions", "https://api.example.com/v1"),
        ("https://api.example.com/v1/embeddings", "https://api.example.com/v1"),
        ("https://api.example.com", "https://api.example.com/v1"),
        ("api.example.com/v1/", "https://api.example.com/v1"),
        ("http://localhost:8000/v1", "http://localhost:8000/v1"),
    ])
    def test_normalizes(self, raw, expected) -> None:
        assert normalize_base_url(raw) == expected


class TestLoadSettings:

    def test_missing_api_key_raises(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_settings(env={})

        assert exc_info.value.missing_keys == ["OPENAI_API_KEY"]

    def test_defaults(self) -> None:
        settings = load_settings(env={"OPENAI_API_KEY": "sk-test"})

        assert settings.openai_base_url == "https://api.openai.com/v1"
        assert settings.embedding_dimension == 1536
        assert settings.chunking.size == 512
        assert settings.chunking.overlap == 50
        assert settings.retry_max_attempts == 1
        assert settings.request_timeout_seconds == 90.0
        assert settings.brand_name == "Wegic"
        assert settings.supabase_url is None

    def test_reads_overrides(self) -> None:
        settings = load_settings(env={
            "OPENAI_API_KEY": "sk-test",
            "OPENAI_BASE_URL": "proxy.example.com/v1/chat/completions",
            "EMBEDDING_DIMENSION": "768",
            "CHUNK_SIZE": "256",
            "CHUNK_OVERLAP": "32",
            "KNOWLEDGE_INDEX": "wegic_knowledge",
            "RETRY_MAX_ATTEMPTS": "3",
            "BRAND_NAME": "Acme",
            "LOG_DIR": "/tmp/logs",
        })

        assert settings.openai_base_url == "https://proxy.example.com/v1"
        assert settings.embedding_dimension == 768
        assert (settings.chunking.size, settings.chunking.overlap) == (256, 32)
        assert settings.knowledge_index == "wegic_knowledge"
        assert settings.retry_max_attempts == 3
        assert settings.brand_name == "Acme"
        assert settings.log_dir == Path("/tmp/logs")

    def test_malformed_number_raises(self) -> None:
        with pytest.raises(ConfigError, match="CHUNK_SIZE"):
            load_settings(env={"OPENAI_API_KEY": "sk-test", "CHUNK_SIZE": "big"})

    def test_vector_store_requirement(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            Settings(openai_api_key="sk-test", supabase_url="https://db.example.com").require_vector_store()

        assert exc_info.value.missing_keys == ["SUPABASE_SERVICE_ROLE_KEY"]
