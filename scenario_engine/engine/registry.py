# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Node Executor Registry

Closed mapping from node type to the executor that runs it. Node types are
the NodeType enum; registering anything else, or registering a type twice,
fails at startup rather than at dispatch.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .models import NodeType, TriggerType
from .exceptions import UnknownNodeTypeError


@dataclass
class NodeInvocation:
    """Everything an executor may read for one node run"""
    node_id: str
    node_type: str
    label: str = ""
    inputs: Dict[str, Any] = field(default_factory=dict)   # live predecessor id -> output
    scope: Dict[str, Any] = field(default_factory=dict)    # "input" + completed outputs
    run_input: Dict[str, Any] = field(default_factory=dict)
    mapped_input: Optional[Dict[str, Any]] = None           # rendered input_mapping, if configured
    trigger_type: TriggerType = TriggerType.MANUAL
    test_run: bool = False
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def upstream(self) -> Any:
        """
        The value flowing into this node.

        Single live predecessor: its output. Several: the inputs dict keyed by
        predecessor id. None (trigger nodes): the run input. A configured
        input_mapping replaces all of these.
        """
        if self.mapped_input is not None:
            return self.mapped_input
        if not self.inputs:
            return self.run_input
        if len(self.inputs) == 1:
            return next(iter(self.inputs.values()))
        return dict(self.inputs)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()


class NodeExecutor(ABC):
    """Base class for node executors"""

    node_type: NodeType

    @abstractmethod
    async def execute(self, invocation: NodeInvocation, config: Dict[str, Any]) -> Any:
        """
        Run the node and return its output.

        Raises NodeExecutionException (or any exception) on failure; the
        runtime turns it into a node failure.
        """


class ExecutorRegistry:
    """Node type -> executor"""

    def __init__(self):
        self._executors: Dict[str, NodeExecutor] = {}

    def register(self, node_type: Any, executor: NodeExecutor) -> None:
        type_name = node_type.value if isinstance(node_type, NodeType) else str(node_type)

        if type_name not in {t.value for t in NodeType}:
            raise ValueError(f"Cannot register executor for unknown node type: {type_name}")
        if type_name in self._executors:
            raise ValueError(f"Executor already registered for node type: {type_name}")

        self._executors[type_name] = executor

    def get(self, node_type: str, node_id: Optional[str] = None) -> NodeExecutor:
        executor = self._executors.get(node_type)
        if executor is None:
            raise UnknownNodeTypeError(node_id or "?", node_type)
        return executor

    @property
    def node_types(self) -> List[str]:
        return list(self._executors)
