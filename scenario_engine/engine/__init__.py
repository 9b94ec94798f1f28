# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Scenario orchestration engine.

- models: definition, execution request and record models
- validation: load() a definition into a ValidatedGraph
- planner: plan() a deterministic execution order
- registry: node type -> executor
- executor: ScenarioExecutor, the run coordinator
"""

from scenario_engine.engine.executor import ScenarioExecutor
from scenario_engine.engine.graph import ValidatedGraph
from scenario_engine.engine.planner import ExecutionPlan, plan
from scenario_engine.engine.registry import ExecutorRegistry, NodeExecutor, NodeInvocation
from scenario_engine.engine.validation import load

__all__ = [
    "ExecutionPlan",
    "ExecutorRegistry",
    "NodeExecutor",
    "NodeInvocation",
    "ScenarioExecutor",
    "ValidatedGraph",
    "load",
    "plan",
]
