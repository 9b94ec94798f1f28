# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Node executors, one per NodeType.
"""

from typing import Optional

from scenario_engine.core.config import Config, get_config
from scenario_engine.engine.registry import ExecutorRegistry
from scenario_engine.executors.action import ActionExecutor
from scenario_engine.executors.condition import ConditionExecutor
from scenario_engine.executors.delay import DelayExecutor
from scenario_engine.executors.end import EndExecutor
from scenario_engine.executors.llm_call import LLMCallExecutor
from scenario_engine.executors.transform import TransformExecutor
from scenario_engine.executors.trigger import TriggerExecutor


def build_default_registry(tool_service, llm_service, config: Optional[Config] = None) -> ExecutorRegistry:
    """Registry with an executor for every NodeType"""
    config = config or get_config()

    registry = ExecutorRegistry()
    for executor in (
        TriggerExecutor(),
        ActionExecutor(tool_service),
        LLMCallExecutor(
            llm_service,
            max_retries=config.llm_max_retries,
            retry_backoff=config.llm_retry_backoff,
            default_temperature=config.llm_temperature,
            default_max_tokens=config.llm_max_tokens,
        ),
        ConditionExecutor(),
        TransformExecutor(),
        DelayExecutor(),
        EndExecutor(),
    ):
        registry.register(executor.node_type, executor)
    return registry


__all__ = [
    "ActionExecutor",
    "ConditionExecutor",
    "DelayExecutor",
    "EndExecutor",
    "LLMCallExecutor",
    "TransformExecutor",
    "TriggerExecutor",
    "build_default_registry",
]
