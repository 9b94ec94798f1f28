# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Scenario Execution Context

Tracks execution state for a single run. Owned by the coordinating task of
the run; executors only ever see copies of the values they need.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .models import ExecutionPhase, NodeStatus, TERMINAL_NODE_STATES, TriggerType


class ExecutionContext:
    """
    Execution context for a scenario run.

    Tracks:
    - Node outputs and per-node status
    - Per-node errors
    - Live outgoing edges per node
    - Completion order
    - Cancellation signal
    """

    def __init__(
        self,
        execution_id: str,
        definition_id: str,
        input: Optional[Dict[str, Any]] = None,
        trigger_type: TriggerType = TriggerType.MANUAL,
        test_run: bool = False,
    ):
        self.execution_id = execution_id
        self.definition_id = definition_id
        self.input = input or {}
        self.trigger_type = trigger_type
        self.test_run = test_run
        self.started_at = datetime.now(timezone.utc).isoformat()
        self.completed_at: Optional[str] = None
        self.phase = ExecutionPhase.INITIALIZING
        self._started_monotonic = time.monotonic()

        self.outputs: Dict[str, Any] = {}          # node_id -> output
        self.node_states: Dict[str, NodeStatus] = {}
        self.node_errors: Dict[str, str] = {}
        self.skipped_by_failure: set = set()       # skipped because an ancestor failed
        self.live_edges: Dict[str, List[Any]] = {}  # node_id -> live outgoing edges
        self.completion_order: List[str] = []
        self.cancel_event = asyncio.Event()

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def mark_pending(self, node_id: str) -> None:
        self.node_states[node_id] = NodeStatus.PENDING

    def mark_running(self, node_id: str) -> None:
        self._transition(node_id, NodeStatus.RUNNING)

    def mark_succeeded(self, node_id: str, output: Any, live_edges: List[Any]) -> None:
        """Record output and the outgoing edges the node made live"""
        self._transition(node_id, NodeStatus.SUCCEEDED)
        self.outputs[node_id] = output
        self.live_edges[node_id] = list(live_edges)
        self.completion_order.append(node_id)

    def mark_failed(self, node_id: str, error: str) -> None:
        self._transition(node_id, NodeStatus.FAILED)
        self.node_errors[node_id] = error
        self.live_edges[node_id] = []
        self.completion_order.append(node_id)

    def mark_skipped(self, node_id: str, due_to_failure: bool = False) -> None:
        self._transition(node_id, NodeStatus.SKIPPED)
        self.live_edges[node_id] = []
        if due_to_failure:
            self.skipped_by_failure.add(node_id)

    def _transition(self, node_id: str, status: NodeStatus) -> None:
        current = self.node_states.get(node_id, NodeStatus.PENDING)
        if current in TERMINAL_NODE_STATES:
            raise RuntimeError(
                f"Node '{node_id}' already {current.value}, cannot move to {status.value}"
            )
        self.node_states[node_id] = status

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def status(self, node_id: str) -> NodeStatus:
        return self.node_states.get(node_id, NodeStatus.PENDING)

    def is_terminal(self, node_id: str) -> bool:
        return self.status(node_id) in TERMINAL_NODE_STATES

    def nodes_in(self, status: NodeStatus) -> List[str]:
        return [node_id for node_id, s in self.node_states.items() if s == status]

    def is_blocked_by_failure(self, node_id: str) -> bool:
        return self.status(node_id) == NodeStatus.FAILED or node_id in self.skipped_by_failure

    @property
    def has_failures(self) -> bool:
        return any(s == NodeStatus.FAILED for s in self.node_states.values())

    def scope(self) -> Dict[str, Any]:
        """Template scope: run input plus every completed output"""
        scope = dict(self.outputs)
        scope["input"] = self.input
        return scope

    def elapsed(self) -> float:
        return time.monotonic() - self._started_monotonic

    def finalize(self) -> None:
        """Mark execution as complete"""
        self.completed_at = datetime.now(timezone.utc).isoformat()
