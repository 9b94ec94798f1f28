# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for node executors

Each executor is called directly with a hand-built NodeInvocation.
"""

import asyncio

import anthropic
import httpx
import pytest
from unittest.mock import AsyncMock

from scenario_engine.core.errors import NotFoundError
from scenario_engine.engine.exceptions import (
    ExecutionCancelledError,
    NodeExecutionException,
    TriggerMismatchError,
)
from scenario_engine.engine.models import NodeType, TriggerType
from scenario_engine.engine.registry import ExecutorRegistry, NodeInvocation
from scenario_engine.executors import (
    ActionExecutor,
    ConditionExecutor,
    DelayExecutor,
    EndExecutor,
    LLMCallExecutor,
    TransformExecutor,
    TriggerExecutor,
    build_default_registry,
)
from scenario_engine.services.llm_provider import LLMResponse
from scenario_engine.services.tool_service import ToolExecutionResult


def invocation(node_id="n1", node_type="action", **kwargs):
    return NodeInvocation(node_id=node_id, node_type=node_type, **kwargs)


class TestRegistry:
    """Test ExecutorRegistry"""

    def test_default_registry_covers_every_node_type(self, registry):
        assert sorted(registry.node_types) == sorted(t.value for t in NodeType)

    def test_rejects_unknown_type(self):
        with pytest.raises(ValueError, match="unknown node type"):
            ExecutorRegistry().register("teleport", TriggerExecutor())

    def test_rejects_duplicate_registration(self):
        registry = ExecutorRegistry()
        registry.register(NodeType.TRIGGER, TriggerExecutor())

        with pytest.raises(ValueError, match="already registered"):
            registry.register("trigger", TriggerExecutor())

    def test_build_default_registry_uses_config(self, tool_service, mock_llm_service, engine_config):
        registry = build_default_registry(tool_service, mock_llm_service, engine_config)

        llm_executor = registry.get("llm-call")
        assert llm_executor.max_retries == engine_config.llm_max_retries
        assert llm_executor.default_max_tokens == engine_config.llm_max_tokens
        assert "delay" in registry.node_types


class TestNodeInvocation:
    """Test upstream resolution"""

    def test_upstream_without_inputs_is_run_input(self):
        assert invocation(run_input={"a": 1}).upstream == {"a": 1}

    def test_upstream_single_input(self):
        assert invocation(inputs={"prev": [1, 2]}).upstream == [1, 2]

    def test_upstream_multiple_inputs(self):
        inputs = {"b": 1, "c": 2}
        assert invocation(inputs=inputs).upstream == inputs

    def test_mapped_input_wins(self):
        assert invocation(inputs={"prev": 1}, mapped_input={"x": 1}).upstream == {"x": 1}


class TestTriggerExecutor:
    """Test TriggerExecutor"""

    @pytest.mark.asyncio
    async def test_passes_run_input_through(self):
        result = await TriggerExecutor().execute(
            invocation(node_type="trigger", run_input={"msg": "hi"}), {}
        )
        assert result == {"msg": "hi"}

    @pytest.mark.asyncio
    async def test_mismatch_raises(self):
        with pytest.raises(TriggerMismatchError) as exc_info:
            await TriggerExecutor().execute(
                invocation(node_type="trigger", trigger_type=TriggerType.API),
                {"triggerType": "webhook"},
            )

        assert exc_info.value.expected == "webhook"
        assert exc_info.value.actual == "api"

    @pytest.mark.asyncio
    async def test_test_run_ignores_mismatch(self):
        result = await TriggerExecutor().execute(
            invocation(node_type="trigger", trigger_type=TriggerType.API, test_run=True, run_input={"k": 1}),
            {"triggerType": "webhook"},
        )
        assert result == {"k": 1}


class TestActionExecutor:
    """Test ActionExecutor"""

    @pytest.mark.asyncio
    async def test_renders_params(self):
        tool_service = AsyncMock()
        tool_service.execute_tool = AsyncMock(return_value=ToolExecutionResult(success=True, output={"ok": 1}))
        inv = invocation(scope={"input": {"city": "Oslo"}})

        result = await ActionExecutor(tool_service).execute(
            inv, {"toolId": "weather", "params": {"q": "{{input.city}}"}}
        )

        assert result == {"ok": 1}
        tool_service.execute_tool.assert_awaited_once_with("weather", {"q": "Oslo"})

    @pytest.mark.asyncio
    async def test_upstream_is_default_input(self, tool_service):
        result = await ActionExecutor(tool_service).execute(
            invocation(inputs={"prev": {"v": 2}}), {"tool": "echo"}
        )
        assert result == {"v": 2}

    @pytest.mark.asyncio
    async def test_missing_tool(self, tool_service):
        with pytest.raises(NodeExecutionException, match="requires a tool"):
            await ActionExecutor(tool_service).execute(invocation(), {})

    @pytest.mark.asyncio
    async def test_unsuccessful_result_raises(self):
        tool_service = AsyncMock()
        tool_service.execute_tool = AsyncMock(return_value=ToolExecutionResult(success=False, error="HTTP 500"))

        with pytest.raises(NodeExecutionException, match="HTTP 500") as exc_info:
            await ActionExecutor(tool_service).execute(invocation(), {"tool": "hook"})

        assert exc_info.value.context == {"tool": "hook"}


class TestLLMCallExecutor:
    """Test LLMCallExecutor"""

    @pytest.mark.asyncio
    async def test_builds_messages_and_returns_text(self, mock_llm_service):
        executor = LLMCallExecutor(mock_llm_service, default_temperature=0.2, default_max_tokens=50)
        inv = invocation(node_type="llm-call", scope={"input": {"topic": "otters"}})

        result = await executor.execute(inv, {
            "providerId": "claude",
            "systemPrompt": "You are terse.",
            "prompt": "Tell me about {{input.topic}}",
        })

        assert result["text"] == "Test result"
        assert result["provider_id"] == "claude"
        assert result["usage"]["total_tokens"] == 15
        mock_llm_service.generate.assert_awaited_once_with(
            "claude",
            [
                {"role": "system", "content": "You are terse."},
                {"role": "user", "content": "Tell me about otters"},
            ],
            temperature=0.2,
            max_tokens=50,
        )

    @pytest.mark.asyncio
    async def test_default_prompt_serializes_input(self, mock_llm_service):
        inv = invocation(node_type="llm-call", scope={"input": {"a": 1}})

        await LLMCallExecutor(mock_llm_service).execute(inv, {"providerId": "p", "temperature": 0})

        messages = mock_llm_service.generate.await_args.args[1]
        assert messages == [{"role": "user", "content": 'Process the following input: {"a": 1}'}]
        assert mock_llm_service.generate.await_args.kwargs["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_requires_provider(self, mock_llm_service):
        with pytest.raises(NodeExecutionException, match="providerId"):
            await LLMCallExecutor(mock_llm_service).execute(invocation(node_type="llm-call"), {})

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        service = AsyncMock()
        service.generate = AsyncMock(side_effect=[
            anthropic.APIConnectionError(request=request),
            anthropic.RateLimitError("slow down", response=httpx.Response(429, request=request), body=None),
            LLMResponse(text="finally"),
        ])

        result = await LLMCallExecutor(service, max_retries=2, retry_backoff=0).execute(
            invocation(node_type="llm-call"), {"providerId": "p"}
        )

        assert result["text"] == "finally"
        assert service.generate.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        service = AsyncMock()
        service.generate = AsyncMock(side_effect=anthropic.APIConnectionError(request=request))

        with pytest.raises(NodeExecutionException, match="after 2 attempts"):
            await LLMCallExecutor(service, max_retries=1, retry_backoff=0).execute(
                invocation(node_type="llm-call"), {"providerId": "p"}
            )

        assert service.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_no_retry_once_run_is_cancelled(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        service = AsyncMock()
        service.generate = AsyncMock(side_effect=anthropic.APIConnectionError(request=request))
        inv = invocation(node_type="llm-call")
        inv.cancel_event.set()

        with pytest.raises(NodeExecutionException, match="after 1 attempts"):
            await LLMCallExecutor(service, max_retries=5, retry_backoff=0).execute(inv, {"providerId": "p"})

        assert service.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_unknown_provider_is_not_retried(self):
        service = AsyncMock()
        service.generate = AsyncMock(side_effect=NotFoundError("LLM Provider", "nope"))

        with pytest.raises(NodeExecutionException, match="LLM Provider not found: nope"):
            await LLMCallExecutor(service, retry_backoff=0).execute(
                invocation(node_type="llm-call"), {"providerId": "nope"}
            )

        assert service.generate.await_count == 1


class TestConditionExecutor:
    """Test ConditionExecutor"""

    @pytest.mark.asyncio
    async def test_expression(self):
        result = await ConditionExecutor().execute(
            invocation(node_type="condition", scope={"input": {"n": 3}}),
            {"expression": "{{input.n}} >= 3"},
        )
        assert result == {"branch": "true", "branch_index": None, "matched": True}

    @pytest.mark.asyncio
    async def test_first_matching_branch(self):
        branches = [
            {"label": "big", "condition": "{{input.n}} > 10"},
            {"condition": "{{input.n}} > 1"},
            {"label": "other", "condition": "default"},
        ]

        result = await ConditionExecutor().execute(
            invocation(node_type="condition", scope={"input": {"n": 5}}), {"branches": branches}
        )

        assert result == {"branch": "1", "branch_index": 1, "matched": True}

    @pytest.mark.asyncio
    async def test_missing_expression(self):
        with pytest.raises(NodeExecutionException, match="requires an expression"):
            await ConditionExecutor().execute(invocation(node_type="condition"), {})

    @pytest.mark.asyncio
    async def test_evaluation_error(self):
        with pytest.raises(NodeExecutionException, match="Condition evaluation failed"):
            await ConditionExecutor().execute(
                invocation(node_type="condition"), {"expression": "open('x')"}
            )


class TestTransformExecutor:
    """Test TransformExecutor"""

    SCOPE = {"input": {"user": {"name": "Ada", "age": 36}}, "fetch": {"data": [1, 2]}}

    @pytest.mark.asyncio
    async def test_select(self):
        result = await TransformExecutor().execute(
            invocation(node_type="transform", scope=self.SCOPE),
            {"transformType": "select", "transformConfig": {"fields": ["input.user.name", "missing"]}},
        )
        assert result == {"input.user.name": "Ada"}

    @pytest.mark.asyncio
    async def test_map(self):
        result = await TransformExecutor().execute(
            invocation(node_type="transform", scope=self.SCOPE),
            {"transformType": "map", "transformConfig": {"mapping": {"input.user.age": "age", "fetch.data": "items"}}},
        )
        assert result == {"age": 36, "items": [1, 2]}

    @pytest.mark.asyncio
    async def test_passthrough(self):
        result = await TransformExecutor().execute(
            invocation(node_type="transform", inputs={"prev": "x"}), {}
        )
        assert result == "x"

    @pytest.mark.asyncio
    async def test_unknown_type(self):
        with pytest.raises(NodeExecutionException, match="Unknown transform type"):
            await TransformExecutor().execute(invocation(node_type="transform"), {"transformType": "zip"})


class TestDelayExecutor:
    """Test DelayExecutor"""

    @pytest.mark.asyncio
    async def test_waits_and_passes_upstream(self):
        loop = asyncio.get_running_loop()
        start = loop.time()

        result = await DelayExecutor().execute(
            invocation(node_type="delay", inputs={"prev": 7}), {"delayMs": 50}
        )

        assert result == 7
        assert loop.time() - start >= 0.04

    @pytest.mark.asyncio
    async def test_cancellation_wakes_delay(self):
        inv = invocation(node_type="delay")
        asyncio.get_running_loop().call_later(0.05, inv.cancel_event.set)

        with pytest.raises(ExecutionCancelledError):
            await asyncio.wait_for(DelayExecutor().execute(inv, {"delayMs": 10000}), timeout=2)


class TestEndExecutor:
    """Test EndExecutor"""

    @pytest.mark.asyncio
    async def test_renders_output_template(self):
        scope = {"input": {"id": 4}, "llm": {"text": "done"}}
        result = await EndExecutor().execute(
            invocation(node_type="end", scope=scope),
            {"output": {"id": "{{input.id}}", "summary": "{{llm.text}}"}},
        )
        assert result == {"id": 4, "summary": "done"}

    @pytest.mark.asyncio
    async def test_without_template_returns_upstream(self):
        result = await EndExecutor().execute(invocation(node_type="end", inputs={"llm": {"text": "x"}}), {})
        assert result == {"text": "x"}
