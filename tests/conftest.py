# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared fixtures for engine and service tests.

Runs use the real built-in tools (echo, data-transform, ...) and a mocked
LLM provider service, with short timeouts so deadline tests stay fast.
"""

import pytest
from unittest.mock import AsyncMock

from scenario_engine.core.config import Config
from scenario_engine.engine.executor import ScenarioExecutor
from scenario_engine.executors import build_default_registry
from scenario_engine.services.llm_provider import LLMResponse
from scenario_engine.services.tool_service import ToolService


@pytest.fixture
def engine_config(tmp_path):
    """Config with short timeouts and paths inside tmp_path"""
    return Config(
        definitions_path=str(tmp_path / "definitions"),
        executions_path=str(tmp_path / "executions"),
        tools_config_path=str(tmp_path / "tools.yaml"),
        providers_config_path=str(tmp_path / "providers.yaml"),
        logs_path=str(tmp_path / "logs"),
        execution_timeout=5.0,
        node_timeout=2.0,
        cancel_grace_period=0.1,
        llm_retry_backoff=0.0,
    )


@pytest.fixture
def tool_service():
    """ToolService with built-in tools only"""
    return ToolService(tools_config_path=None)


@pytest.fixture
def mock_llm_service():
    """Mock LLMProviderService"""
    service = AsyncMock()
    service.generate = AsyncMock(return_value=LLMResponse(
        text="Test result",
        usage={"input_tokens": 10, "output_tokens": 5, "total_tokens": 15},
    ))
    return service


@pytest.fixture
def registry(tool_service, mock_llm_service, engine_config):
    return build_default_registry(tool_service, mock_llm_service, engine_config)


@pytest.fixture
def executor(registry, engine_config):
    """ScenarioExecutor without a record sink"""
    return ScenarioExecutor(registry, config=engine_config)
