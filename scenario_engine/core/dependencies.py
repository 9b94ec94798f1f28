# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Service wiring for the scenario engine.

Builds services from the configuration so callers (HTTP layer, scripts,
tests) do not assemble the object graph themselves.
"""

from pathlib import Path
from typing import Optional

from scenario_engine.core.config import Config, get_config


def get_tool_service(config: Optional[Config] = None):
    """Get ToolService instance."""
    from scenario_engine.services.tool_service import ToolService
    config = config or get_config()
    return ToolService(
        tools_config_path=Path(config.tools_config_path),
        http_timeout=config.http_timeout,
    )


def get_llm_provider_service(config: Optional[Config] = None):
    """Get LLMProviderService instance."""
    from scenario_engine.services.llm_provider import LLMProviderService
    config = config or get_config()
    return LLMProviderService(providers_config_path=Path(config.providers_config_path))


def get_definition_store(config: Optional[Config] = None):
    """Get DefinitionStore instance."""
    from scenario_engine.services.definition_store import DefinitionStore
    config = config or get_config()
    return DefinitionStore(Path(config.definitions_path))


def get_execution_store(config: Optional[Config] = None):
    """Get ExecutionStore instance."""
    from scenario_engine.services.execution_store import ExecutionStore
    config = config or get_config()
    return ExecutionStore(config.executions_path)


def get_scenario_executor(
    config: Optional[Config] = None,
    tool_service=None,
    llm_service=None,
    record_sink=None,
):
    """Get ScenarioExecutor with the default executor registry."""
    from scenario_engine.engine.executor import ScenarioExecutor
    from scenario_engine.executors import build_default_registry
    config = config or get_config()

    registry = build_default_registry(
        tool_service or get_tool_service(config),
        llm_service or get_llm_provider_service(config),
        config,
    )
    return ScenarioExecutor(
        registry,
        config=config,
        record_sink=record_sink if record_sink is not None else get_execution_store(config),
        log_dir=config.logs_dir / "executions",
    )


def get_scenario_service(config: Optional[Config] = None):
    """Get ScenarioService instance."""
    from scenario_engine.services.scenario_service import ScenarioService
    config = config or get_config()
    return ScenarioService(
        definition_store=get_definition_store(config),
        executor=get_scenario_executor(config),
    )
