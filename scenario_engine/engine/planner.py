# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution Planner

Derives a deterministic execution plan from a validated graph. Which branch
of a condition node is live is only known at run time, so condition nodes are
recorded as branch points and resolved by the runtime.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Set

from .graph import ValidatedGraph
from .validation import topological_sort
from .exceptions import CycleError


@dataclass(frozen=True)
class ExecutionPlan:
    order: List[str]                    # reachable nodes, topological
    dependencies: Dict[str, Set[str]]   # node_id -> reachable parent node_ids
    branch_points: FrozenSet[str]       # condition nodes
    unreachable: List[str]              # skipped from the outset

    def position(self, node_id: str) -> int:
        return self.order.index(node_id)


def plan(graph: ValidatedGraph) -> ExecutionPlan:
    """
    Compute the execution plan for a graph.

    Nodes without a dependency relation keep their authoring order, so
    planning the same definition twice yields the same order.
    """
    reachable = [node_id for node_id in graph.nodes if node_id in graph.reachable]

    adjacency = {
        node_id: [to for to in graph.successors(node_id) if to in graph.reachable]
        for node_id in reachable
    }
    order, leftover = topological_sort(reachable, adjacency, graph.order_index)
    if leftover:
        # load() already rejects these; a hand-built graph might not have been loaded
        raise CycleError(leftover)

    dependencies = {
        node_id: {parent for parent in graph.predecessors(node_id) if parent in graph.reachable}
        for node_id in reachable
    }

    return ExecutionPlan(
        order=order,
        dependencies=dependencies,
        branch_points=frozenset(node_id for node_id in order if graph.is_condition(node_id)),
        unreachable=graph.unreachable,
    )
