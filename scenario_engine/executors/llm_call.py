# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
LLM call node - prompts a configured model provider.

Config:
    providerId: Provider catalog id
    prompt: User prompt template (default "Process the following input: {{input}}")
    systemPrompt: Optional system prompt template
    temperature, maxTokens: Optional overrides of the engine defaults

Transient provider errors (connection, rate limit, 5xx) are retried with
exponential backoff until the run is cancelled. Everything else fails the
node straight away.
"""

import asyncio
import json
from typing import Any, Dict, List

from scenario_engine.core.errors import ScenarioError
from scenario_engine.core.logging import get_engine_logger
from scenario_engine.engine.exceptions import NodeExecutionException
from scenario_engine.engine.models import NodeType
from scenario_engine.engine.registry import NodeExecutor, NodeInvocation
from scenario_engine.engine.templates import render_template
from scenario_engine.services.llm_provider import TRANSIENT_PROVIDER_ERRORS

logger = get_engine_logger("llm_call")

DEFAULT_PROMPT = "Process the following input: {{input}}"


class LLMCallExecutor(NodeExecutor):
    node_type = NodeType.LLM_CALL

    def __init__(
        self,
        llm_service,
        max_retries: int = 2,
        retry_backoff: float = 1.0,
        default_temperature: float = 0.7,
        default_max_tokens: int = 1000,
    ):
        self.llm_service = llm_service
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    async def execute(self, invocation: NodeInvocation, config: Dict[str, Any]) -> Any:
        provider_id = config.get("providerId") or config.get("provider_id")
        if not provider_id:
            raise NodeExecutionException(
                invocation.node_id, invocation.node_type, "llm-call node requires a providerId in config"
            )

        messages = self._build_messages(config, invocation.scope)
        temperature = float(config.get("temperature", self.default_temperature))
        max_tokens = int(config.get("maxTokens", self.default_max_tokens))

        attempt = 0
        while True:
            try:
                response = await self.llm_service.generate(
                    provider_id,
                    messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
                break
            except TRANSIENT_PROVIDER_ERRORS as e:
                if attempt >= self.max_retries or invocation.cancelled:
                    raise NodeExecutionException(
                        invocation.node_id,
                        invocation.node_type,
                        f"Provider {provider_id} failed after {attempt + 1} attempts: {e}",
                        context={"provider_id": provider_id},
                    )
                delay = self.retry_backoff * (2 ** attempt)
                logger.warning(
                    f"Transient provider error on node {invocation.node_id}, retrying in {delay}s: {e}",
                    extra={"node_id": invocation.node_id, "attempt": attempt + 1},
                )
                attempt += 1
                await asyncio.sleep(delay)
            except ScenarioError as e:
                raise NodeExecutionException(
                    invocation.node_id, invocation.node_type, e.message, context={"provider_id": provider_id}
                )

        return {
            "text": response.text,
            "usage": response.usage,
            "provider_id": provider_id,
        }

    @staticmethod
    def _build_messages(config: Dict[str, Any], scope: Dict[str, Any]) -> List[Dict[str, str]]:
        messages = []

        system_prompt = config.get("systemPrompt")
        if system_prompt:
            messages.append({"role": "system", "content": _as_text(render_template(system_prompt, scope))})

        prompt = config.get("prompt") or DEFAULT_PROMPT
        messages.append({"role": "user", "content": _as_text(render_template(prompt, scope))})
        return messages


def _as_text(value: Any) -> str:
    # A prompt that is a single {{ref}} to an object resolves to the object
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)
