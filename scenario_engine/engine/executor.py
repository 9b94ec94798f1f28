# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Scenario Executor

Event-driven DAG execution. One coordinating task per run owns the
ExecutionContext; ready nodes run as concurrent tasks and report back to the
coordinator, which applies every state change.
"""

import asyncio
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from scenario_engine.core.config import Config, get_config
from .context import ExecutionContext
from .exceptions import (
    ExecutionCancelledByUserError,
    ExecutionTimeoutError,
    NodeExecutionException,
    NodeTimeoutException,
)
from .graph import ValidatedGraph
from .logging import ExecutionEventLogger, UpdateCallback
from .models import (
    Edge,
    ExecutionPhase,
    ExecutionRecord,
    ExecutionStatus,
    ExecutionStep,
    NodeExecutionError,
    NodeStatus,
    OrchestrationDefinition,
    TriggerType,
)
from .planner import ExecutionPlan, plan
from .registry import ExecutorRegistry, NodeInvocation
from .templates import render_template
from .validation import load


def new_execution_id() -> str:
    return f"exec_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


class ScenarioExecutor:
    """
    Runs validated scenario graphs.

    Concurrent executions of the same definition only share the read-only
    graph. Running executions are tracked by id so they can be cancelled.
    """

    def __init__(
        self,
        registry: ExecutorRegistry,
        config: Optional[Config] = None,
        record_sink=None,
        log_dir: Optional[Path] = None,
    ):
        self.registry = registry
        self.config = config or get_config()
        self.record_sink = record_sink
        self.log_dir = log_dir
        self._running: Dict[str, "_RunCoordinator"] = {}

    async def execute(
        self,
        definition: Union[OrchestrationDefinition, Mapping[str, Any], ValidatedGraph],
        definition_id: str,
        input: Optional[Dict[str, Any]] = None,
        version_id: Optional[str] = None,
        triggered_by: Optional[str] = None,
        trigger_type: TriggerType = TriggerType.MANUAL,
        test_run: bool = False,
        update_callback: Optional[UpdateCallback] = None,
    ) -> ExecutionRecord:
        """
        Execute a definition and return its execution record.

        Raises GraphValidationError before any node runs when the definition
        is not executable. Node failures and timeouts never raise; they are
        reported in the record. The record is handed to the record sink, if
        one is configured, and failures to save it propagate.
        """
        graph = definition if isinstance(definition, ValidatedGraph) else load(definition, self.registry)
        execution_plan = plan(graph)

        execution_id = new_execution_id()
        context = ExecutionContext(
            execution_id,
            definition_id,
            input=input,
            trigger_type=TriggerType(trigger_type),
            test_run=test_run,
        )

        log_file = None
        if self.log_dir is not None:
            log_file = Path(self.log_dir) / datetime.now(timezone.utc).strftime("%Y-%m-%d") / f"{execution_id}.log"
        events = ExecutionEventLogger(execution_id, definition_id, update_callback, log_file)

        coordinator = _RunCoordinator(graph, execution_plan, context, events, self.registry, self.config)
        self._running[execution_id] = coordinator
        try:
            error, error_context = await coordinator.run()
        finally:
            del self._running[execution_id]

        context.finalize()
        record = ExecutionRecord(
            execution_id=execution_id,
            definition_id=definition_id,
            version_id=version_id,
            status=ExecutionStatus.FAILED if context.phase == ExecutionPhase.FAILED else ExecutionStatus.SUCCEEDED,
            output=coordinator.final_output(),
            duration=context.elapsed(),
            error=error,
            error_context=error_context,
            triggered_by_id=triggered_by,
            trigger_type=context.trigger_type,
            node_states=dict(context.node_states),
            steps=tuple(coordinator.steps()),
            started_at=context.started_at,
            completed_at=context.completed_at,
        )

        await events.execution_completed(record.status.value, record.duration, record.error)

        if self.record_sink is not None:
            await self.record_sink.save(record)

        return record

    @property
    def running(self) -> List[str]:
        """Ids of executions in progress"""
        return list(self._running)

    def cancel(self, execution_id: str, reason: Optional[str] = None) -> bool:
        """
        Request cancellation of a running execution.

        The run stops scheduling nodes, signals in-flight executors and
        finalizes as failed with a cancellation error. Returns False when no
        execution with this id is running.
        """
        coordinator = self._running.get(execution_id)
        if coordinator is None:
            return False
        coordinator.request_cancel(reason)
        return True


class _RunCoordinator:
    """Drives one run: scheduling, state transitions, deadline"""

    def __init__(
        self,
        graph: ValidatedGraph,
        execution_plan: ExecutionPlan,
        context: ExecutionContext,
        events: ExecutionEventLogger,
        registry: ExecutorRegistry,
        config: Config,
    ):
        self.graph = graph
        self.plan = execution_plan
        self.context = context
        self.events = events
        self.registry = registry
        self.config = config
        self._started_at: Dict[str, float] = {}
        self._step_inputs: Dict[str, Any] = {}
        self._durations: Dict[str, float] = {}
        self._cancel_requested = asyncio.Event()
        self._cancel_reason: Optional[str] = None

    def request_cancel(self, reason: Optional[str] = None) -> None:
        if not self._cancel_requested.is_set():
            self._cancel_reason = reason
            self._cancel_requested.set()

    async def run(self):
        """Execute the plan. Returns (error, error_context)."""
        context = self.context

        for node_id in self.plan.unreachable:
            context.mark_skipped(node_id)
            await self.events.node_skipped(node_id, "not reachable from a trigger")
        for node_id in self.plan.order:
            context.mark_pending(node_id)

        context.phase = ExecutionPhase.RUNNING
        await self.events.execution_started(context.trigger_type.value, self.plan.order)
        await self._select_triggers()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.execution_timeout
        in_flight: Dict[asyncio.Task, str] = {}
        cancel_wait = asyncio.ensure_future(self._cancel_requested.wait())
        interrupted_by = None

        try:
            while True:
                if self._cancel_requested.is_set():
                    interrupted_by = ExecutionCancelledByUserError(self._cancel_reason)
                    break

                ready = await self._settle()
                for node_id in ready:
                    if len(in_flight) >= self.config.max_parallel_nodes:
                        break
                    in_flight[self._start(node_id)] = node_id

                if not in_flight:
                    break

                remaining = deadline - loop.time()
                done = set()
                if remaining > 0:
                    done, _ = await asyncio.wait(
                        {*in_flight, cancel_wait}, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                    )
                if not done:
                    interrupted_by = ExecutionTimeoutError(self.config.execution_timeout)
                    break

                finished = [task for task in done if task in in_flight]
                for task in sorted(finished, key=lambda t: self.plan.position(in_flight[t])):
                    await self._apply(in_flight.pop(task), task)
        finally:
            cancel_wait.cancel()
            if in_flight and interrupted_by is None:
                # Coordinator itself was cancelled
                for task in in_flight:
                    task.cancel()

        if interrupted_by is not None:
            return await self._interrupt(list(in_flight.items()), interrupted_by)

        # Anything still pending could never become ready
        for node_id in self.plan.order:
            if context.status(node_id) == NodeStatus.PENDING:
                context.mark_skipped(node_id)
                await self.events.node_skipped(node_id, "no live incoming edge")

        if context.has_failures:
            context.phase = ExecutionPhase.FAILED
            failed = [n for n in context.completion_order if context.status(n) == NodeStatus.FAILED]
            first = failed[0]
            return context.node_errors[first], self._error_context(first, context.node_errors[first])

        context.phase = ExecutionPhase.SUCCEEDED
        return None, None

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def _select_triggers(self) -> None:
        """
        Skip triggers configured for another trigger type.

        When no trigger matches, all of them are kept so their executors
        report the mismatch.
        """
        context = self.context
        live = []
        for trigger_id in self.graph.trigger_ids:
            configured = self.graph.node(trigger_id).config.get("triggerType")
            if context.test_run or not configured or configured == context.trigger_type.value:
                live.append(trigger_id)

        if not live:
            return

        for trigger_id in self.graph.trigger_ids:
            if trigger_id not in live:
                context.mark_skipped(trigger_id)
                await self.events.node_skipped(
                    trigger_id,
                    f"trigger type does not match '{context.trigger_type.value}'",
                )

    async def _settle(self) -> List[str]:
        """
        Resolve pending nodes in plan order.

        Nodes behind a failure, or whose incoming edges are all dead, are
        skipped; nodes whose incoming edges are decided with at least one live
        are returned as ready.
        """
        context = self.context
        ready = []

        for node_id in self.plan.order:
            if context.status(node_id) != NodeStatus.PENDING:
                continue

            incoming = self.graph.incoming[node_id]
            if not incoming:
                ready.append(node_id)
                continue

            if any(context.is_blocked_by_failure(edge.from_) for edge in incoming):
                context.mark_skipped(node_id, due_to_failure=True)
                await self.events.node_skipped(node_id, "upstream node failed")
                continue

            if not all(context.is_terminal(edge.from_) for edge in incoming):
                continue

            if any(self._is_live(edge) for edge in incoming):
                ready.append(node_id)
            else:
                context.mark_skipped(node_id)
                await self.events.node_skipped(node_id, "no live incoming edge")

        return ready

    def _is_live(self, edge: Edge) -> bool:
        return edge in self.context.live_edges.get(edge.from_, [])

    def _start(self, node_id: str) -> asyncio.Task:
        self.context.mark_running(node_id)
        self._started_at[node_id] = time.monotonic()
        invocation = self._invocation(node_id)
        self._step_inputs[node_id] = invocation.upstream
        return asyncio.create_task(self._run_node(invocation), name=f"node:{node_id}")

    def _invocation(self, node_id: str) -> NodeInvocation:
        context = self.context
        node = self.graph.node(node_id)
        scope = context.scope()

        inputs = {
            edge.from_: context.outputs[edge.from_]
            for edge in self.graph.incoming[node_id]
            if self._is_live(edge)
        }

        mapping = node.config.get("input_mapping")
        return NodeInvocation(
            node_id=node_id,
            node_type=node.type,
            label=node.label,
            inputs=inputs,
            scope=scope,
            run_input=context.input,
            mapped_input=render_template(mapping, scope) if isinstance(mapping, dict) else None,
            trigger_type=context.trigger_type,
            test_run=context.test_run,
            cancel_event=context.cancel_event,
        )

    async def _run_node(self, invocation: NodeInvocation) -> Any:
        await self.events.node_started(invocation.node_id, invocation.node_type)

        executor = self.registry.get(invocation.node_type, invocation.node_id)
        node = self.graph.node(invocation.node_id)
        timeout = float(node.config.get("timeout") or self.config.node_timeout)

        try:
            return await asyncio.wait_for(
                executor.execute(invocation, dict(node.config)),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise NodeTimeoutException(invocation.node_id, invocation.node_type, timeout)

    async def _apply(self, node_id: str, task: asyncio.Task) -> None:
        """Apply a finished node task to the context"""
        context = self.context
        node_type = self.graph.node_type(node_id)
        self._durations[node_id] = time.monotonic() - self._started_at[node_id]

        if task.cancelled():
            error = f"Node '{node_id}' ({node_type}) failed: cancelled"
        elif task.exception() is not None:
            error = self._describe(node_id, node_type, task.exception())
        else:
            output = task.result()
            context.mark_succeeded(node_id, output, self._live_outgoing(node_id, output))
            await self.events.node_succeeded(node_id, node_type, self._durations[node_id])
            return

        context.mark_failed(node_id, error)
        await self.events.node_failed(node_id, node_type, error)

    @staticmethod
    def _describe(node_id: str, node_type: str, exc: BaseException) -> str:
        if isinstance(exc, NodeExecutionException):
            return str(exc)
        return f"Node '{node_id}' ({node_type}) failed: {exc.__class__.__name__}: {exc}"

    def _live_outgoing(self, node_id: str, output: Any) -> List[Edge]:
        """
        Outgoing edges made live by a succeeded node.

        Condition nodes: edges labeled with the selected branch (label or
        index); when none match, edges labeled "default" or unlabeled.
        """
        outgoing = self.graph.outgoing[node_id]
        if not self.graph.is_condition(node_id):
            return list(outgoing)

        labels = _branch_labels(output)
        matched = [edge for edge in outgoing if edge.condition is not None and edge.condition in labels]
        if matched:
            return matched
        return [edge for edge in outgoing if edge.condition in (None, "default")]

    # ------------------------------------------------------------------
    # Deadline and cancellation
    # ------------------------------------------------------------------

    async def _interrupt(self, in_flight: List[tuple], cause: Exception):
        """
        Deadline passed or cancellation requested: signal cancellation, give
        in-flight nodes a grace period, then fail them and skip everything
        not yet started.
        """
        context = self.context
        context.cancel_event.set()

        tasks = [task for task, _ in in_flight]
        for task in tasks:
            task.cancel()
        if tasks:
            # Executors that ignore cancellation are left behind after the grace period
            await asyncio.wait(tasks, timeout=self.config.cancel_grace_period)

        in_flight_ids = sorted((node_id for _, node_id in in_flight), key=self.plan.position)
        if isinstance(cause, ExecutionTimeoutError):
            cause.in_flight = in_flight_ids
            skip_reason = "execution deadline passed"
        else:
            skip_reason = "execution cancelled"

        for node_id in in_flight_ids:
            node_type = self.graph.node_type(node_id)
            message = f"Node '{node_id}' ({node_type}) interrupted: {cause}"
            self._durations[node_id] = time.monotonic() - self._started_at[node_id]
            context.mark_failed(node_id, message)
            await self.events.node_failed(node_id, node_type, message)

        for node_id in self.plan.order:
            if context.status(node_id) == NodeStatus.PENDING:
                context.mark_skipped(node_id)
                await self.events.node_skipped(node_id, skip_reason)

        context.phase = ExecutionPhase.FAILED
        error_context = self._error_context(in_flight_ids[0], str(cause)) if in_flight_ids else None
        return str(cause), error_context

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def _error_context(self, node_id: str, message: str) -> NodeExecutionError:
        context = self.context
        return NodeExecutionError(
            node_id=node_id,
            node_type=self.graph.node_type(node_id),
            error_message=message,
            completed_nodes=[n for n in self.plan.order if context.status(n) == NodeStatus.SUCCEEDED],
            pending_nodes=[n for n in self.plan.order if context.status(n) == NodeStatus.SKIPPED],
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def steps(self) -> List[ExecutionStep]:
        """Nodes that ran, in completion order, with their input and outcome"""
        context = self.context
        return [
            ExecutionStep(
                step_index=index,
                node_id=node_id,
                node_type=self.graph.node_type(node_id),
                status=context.status(node_id),
                input=self._step_inputs.get(node_id),
                output=context.outputs.get(node_id),
                error=context.node_errors.get(node_id),
                duration=round(self._durations.get(node_id, 0.0), 4),
            )
            for index, node_id in enumerate(context.completion_order)
        ]

    def final_output(self) -> Any:
        """
        Output of the run.

        Succeeded: the last succeeded node in plan order that has no live
        outgoing edge. Failed: the last succeeded output in plan order.
        """
        context = self.context
        succeeded = [n for n in self.plan.order if context.status(n) == NodeStatus.SUCCEEDED]

        if context.phase == ExecutionPhase.SUCCEEDED:
            terminal = [n for n in succeeded if not context.live_edges.get(n)]
            if terminal:
                return context.outputs[terminal[-1]]

        if succeeded:
            return context.outputs[succeeded[-1]]
        return None


def _branch_labels(output: Any) -> set:
    """Edge labels selected by a condition node's output"""
    if isinstance(output, dict):
        values = [output.get("branch"), output.get("branch_index")]
    else:
        values = [output]

    labels = set()
    for value in values:
        if value is None:
            continue
        if isinstance(value, bool):
            labels.add("true" if value else "false")
        else:
            labels.add(str(value))
    return labels
