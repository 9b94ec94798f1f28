# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
LLM Provider Service - Text generation for llm-call nodes.

Provider catalog lives in configs/providers.yaml (id -> provider/model).
API keys come from environment variables only and are never stored in the
catalog.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

import anthropic
import openai
import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from scenario_engine.core.config import get_anthropic_api_key, get_openai_api_key
from scenario_engine.core.errors import ConfigurationError, NotFoundError
from scenario_engine.core.logging import get_service_logger

logger = get_service_logger("llm_provider")

# Worth retrying: network trouble, rate limiting, provider-side 5xx
TRANSIENT_PROVIDER_ERRORS = (
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class ProviderDefinition(BaseModel):
    """Entry of the providers catalog"""
    id: str
    name: str = ""
    provider: str
    model: str
    description: str = ""
    is_active: bool = True


class LLMResponse(BaseModel):
    text: str
    usage: Dict[str, int] = Field(default_factory=dict)


class LLMProviderService:
    """
    Manages model providers and generates text through them.

    Responsibilities:
    - Load providers from configs/providers.yaml
    - Look up a provider by id
    - Call the anthropic / openai async SDKs
    """

    def __init__(
        self,
        providers_config_path: Optional[Path] = None,
        anthropic_client: Optional[anthropic.AsyncAnthropic] = None,
        openai_client: Optional[openai.AsyncOpenAI] = None,
    ):
        self.providers_config_path = Path(providers_config_path) if providers_config_path else None
        self.anthropic_client = anthropic_client
        self.openai_client = openai_client
        self.providers: Optional[Dict[str, ProviderDefinition]] = None
        self.lock = asyncio.Lock()

    async def load_from_config(self) -> Dict[str, ProviderDefinition]:
        """
        Load provider definitions from YAML.

        Raises:
            ConfigurationError: If the catalog is invalid
        """
        async with self.lock:
            providers: Dict[str, ProviderDefinition] = {}

            if self.providers_config_path is None or not self.providers_config_path.exists():
                logger.warning(f"Providers config not found at {self.providers_config_path}")
                self.providers = providers
                return providers

            try:
                with open(self.providers_config_path, "r") as f:
                    config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in providers config: {e}", str(self.providers_config_path))

            for entry in config_data.get("providers") or []:
                try:
                    provider = ProviderDefinition.model_validate(entry)
                except PydanticValidationError as e:
                    raise ConfigurationError(f"Invalid provider entry: {e}", str(self.providers_config_path))

                if provider.id in providers:
                    raise ConfigurationError(f"Duplicate provider ID: {provider.id}", str(self.providers_config_path))
                providers[provider.id] = provider

            self.providers = providers
            logger.info(f"Loaded {len(providers)} LLM providers from config")
            return providers

    async def list_providers(self) -> List[ProviderDefinition]:
        if self.providers is None:
            await self.load_from_config()
        return [p for p in self.providers.values() if p.is_active]

    async def get_provider(self, provider_id: str) -> ProviderDefinition:
        """
        Get an active provider.

        Raises:
            NotFoundError: If provider not found or inactive
        """
        if self.providers is None:
            await self.load_from_config()

        provider = self.providers.get(provider_id)
        if provider is None or not provider.is_active:
            raise NotFoundError("LLM Provider", provider_id)
        return provider

    async def generate(
        self,
        provider_id: str,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        """
        Generate text with a configured provider.

        Args:
            provider_id: Catalog id
            messages: [{"role": "system"|"user"|"assistant", "content": str}]
            temperature: Sampling temperature
            max_tokens: Response token limit

        Raises:
            NotFoundError: Unknown provider id
            ConfigurationError: Unsupported provider type or missing API key
        """
        provider = await self.get_provider(provider_id)
        provider_type = provider.provider.lower()

        if provider_type == "anthropic":
            return await self._generate_anthropic(provider, messages, temperature, max_tokens)
        elif provider_type == "openai":
            return await self._generate_openai(provider, messages, temperature, max_tokens)

        raise ConfigurationError(f"Unsupported provider type: {provider_type}")

    async def _generate_anthropic(
        self,
        provider: ProviderDefinition,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        client = self._get_anthropic_client()

        # Anthropic takes the system prompt separately
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        conversation = [m for m in messages if m["role"] != "system"]

        kwargs: Dict[str, Any] = {
            "model": provider.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": conversation,
        }
        if system:
            kwargs["system"] = system

        response = await client.messages.create(**kwargs)

        text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        return LLMResponse(
            text=text,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            },
        )

    async def _generate_openai(
        self,
        provider: ProviderDefinition,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        client = self._get_openai_client()

        response = await client.chat.completions.create(
            model=provider.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        usage = {}
        if response.usage is not None:
            usage = {
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        return LLMResponse(text=response.choices[0].message.content or "", usage=usage)

    def _get_anthropic_client(self) -> anthropic.AsyncAnthropic:
        if self.anthropic_client is None:
            api_key = get_anthropic_api_key()
            if not api_key:
                raise ConfigurationError("ANTHROPIC_API_KEY is not set")
            self.anthropic_client = anthropic.AsyncAnthropic(api_key=api_key)
        return self.anthropic_client

    def _get_openai_client(self) -> openai.AsyncOpenAI:
        if self.openai_client is None:
            api_key = get_openai_api_key()
            if not api_key:
                raise ConfigurationError("OPENAI_API_KEY is not set")
            self.openai_client = openai.AsyncOpenAI(api_key=api_key)
        return self.openai_client
