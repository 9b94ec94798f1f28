# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for LLMProviderService

Tests provider catalog loading and generation through mocked SDK clients.
"""

import pytest
import yaml
from pathlib import Path
from tempfile import TemporaryDirectory
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from scenario_engine.core.errors import ConfigurationError, NotFoundError
from scenario_engine.services.llm_provider import LLMProviderService


@pytest.fixture
def temp_providers_config():
    """Create temporary YAML providers catalog"""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "providers.yaml"
        config_path.write_text(yaml.safe_dump({
            "providers": [
                {"id": "claude", "name": "Claude", "provider": "anthropic", "model": "claude-sonnet-4"},
                {"id": "gpt", "name": "GPT", "provider": "openai", "model": "gpt-4o-mini"},
                {"id": "old", "provider": "anthropic", "model": "claude-2", "is_active": False},
                {"id": "local", "provider": "ollama", "model": "llama3"},
            ]
        }))
        yield config_path


@pytest.fixture
def mock_anthropic_client():
    """Mock AsyncAnthropic client"""
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=SimpleNamespace(
        content=[
            SimpleNamespace(type="text", text="Hello "),
            SimpleNamespace(type="tool_use", id="t1"),
            SimpleNamespace(type="text", text="there"),
        ],
        usage=SimpleNamespace(input_tokens=12, output_tokens=4),
    ))
    return client


@pytest.fixture
def mock_openai_client():
    """Mock AsyncOpenAI client"""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="Hi"))],
        usage=SimpleNamespace(prompt_tokens=3, completion_tokens=2, total_tokens=5),
    ))
    return client


@pytest.fixture
def provider_service(temp_providers_config, mock_anthropic_client, mock_openai_client):
    return LLMProviderService(
        providers_config_path=temp_providers_config,
        anthropic_client=mock_anthropic_client,
        openai_client=mock_openai_client,
    )


MESSAGES = [
    {"role": "system", "content": "Be brief."},
    {"role": "user", "content": "Say hello"},
]


class TestLoadFromConfig:
    """Test load_from_config method"""

    @pytest.mark.asyncio
    async def test_loads_providers(self, provider_service):
        providers = await provider_service.load_from_config()

        assert set(providers) == {"claude", "gpt", "old", "local"}
        assert providers["claude"].model == "claude-sonnet-4"

    @pytest.mark.asyncio
    async def test_handles_missing_config_file(self):
        service = LLMProviderService(providers_config_path=Path("/nonexistent.yaml"))

        assert await service.load_from_config() == {}

    @pytest.mark.asyncio
    async def test_rejects_duplicate_ids(self, tmp_path):
        config_path = tmp_path / "providers.yaml"
        entry = {"id": "p", "provider": "openai", "model": "m"}
        config_path.write_text(yaml.safe_dump({"providers": [entry, entry]}))

        with pytest.raises(ConfigurationError, match="Duplicate provider ID"):
            await LLMProviderService(providers_config_path=config_path).load_from_config()

    @pytest.mark.asyncio
    async def test_rejects_entry_without_model(self, tmp_path):
        config_path = tmp_path / "providers.yaml"
        config_path.write_text(yaml.safe_dump({"providers": [{"id": "p", "provider": "openai"}]}))

        with pytest.raises(ConfigurationError, match="Invalid provider entry"):
            await LLMProviderService(providers_config_path=config_path).load_from_config()

    @pytest.mark.asyncio
    async def test_list_providers_hides_inactive(self, provider_service):
        providers = await provider_service.list_providers()

        assert [p.id for p in providers] == ["claude", "gpt", "local"]


class TestGetProvider:
    """Test get_provider method"""

    @pytest.mark.asyncio
    async def test_get_provider(self, provider_service):
        provider = await provider_service.get_provider("gpt")
        assert provider.provider == "openai"

    @pytest.mark.asyncio
    async def test_unknown_provider(self, provider_service):
        with pytest.raises(NotFoundError, match="LLM Provider not found: nope"):
            await provider_service.get_provider("nope")

    @pytest.mark.asyncio
    async def test_inactive_provider(self, provider_service):
        with pytest.raises(NotFoundError):
            await provider_service.get_provider("old")


class TestGenerate:
    """Test generate method"""

    @pytest.mark.asyncio
    async def test_anthropic(self, provider_service, mock_anthropic_client):
        response = await provider_service.generate("claude", MESSAGES, temperature=0.1, max_tokens=64)

        assert response.text == "Hello there"
        assert response.usage == {"input_tokens": 12, "output_tokens": 4, "total_tokens": 16}
        mock_anthropic_client.messages.create.assert_awaited_once_with(
            model="claude-sonnet-4",
            max_tokens=64,
            temperature=0.1,
            messages=[{"role": "user", "content": "Say hello"}],
            system="Be brief.",
        )

    @pytest.mark.asyncio
    async def test_openai(self, provider_service, mock_openai_client):
        response = await provider_service.generate("gpt", MESSAGES)

        assert response.text == "Hi"
        assert response.usage == {"input_tokens": 3, "output_tokens": 2, "total_tokens": 5}
        kwargs = mock_openai_client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == MESSAGES

    @pytest.mark.asyncio
    async def test_unsupported_provider_type(self, provider_service):
        with pytest.raises(ConfigurationError, match="Unsupported provider type: ollama"):
            await provider_service.generate("local", MESSAGES)

    @pytest.mark.asyncio
    async def test_missing_api_key(self, temp_providers_config):
        service = LLMProviderService(providers_config_path=temp_providers_config)

        with patch("scenario_engine.services.llm_provider.get_anthropic_api_key", return_value=None):
            with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
                await service.generate("claude", MESSAGES)

    @pytest.mark.asyncio
    async def test_client_created_from_env_key(self, temp_providers_config):
        service = LLMProviderService(providers_config_path=temp_providers_config)

        with patch("scenario_engine.services.llm_provider.get_openai_api_key", return_value="sk-test"), \
                patch("scenario_engine.services.llm_provider.openai.AsyncOpenAI") as client_cls:
            client_cls.return_value.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
                choices=[SimpleNamespace(message=SimpleNamespace(content=None))],
                usage=None,
            ))
            response = await service.generate("gpt", MESSAGES)

        client_cls.assert_called_once_with(api_key="sk-test")
        assert response.text == ""
        assert response.usage == {}
