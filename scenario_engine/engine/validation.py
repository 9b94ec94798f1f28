# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Definition Validation

Turns a persisted definition into a ValidatedGraph, or raises.
DAG check uses topological sort (Kahn's algorithm) over the nodes reachable
from a trigger.
"""

import heapq
from collections import deque
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

import pydantic

from scenario_engine.core.logging import get_engine_logger
from .graph import ValidatedGraph
from .models import Edge, NodeType, OrchestrationDefinition
from .exceptions import (
    CycleError,
    DanglingEdgeError,
    DefinitionValidationError,
    DuplicateNodeError,
    EmptyGraphError,
    GraphValidationError,
    UnknownNodeTypeError,
)

logger = get_engine_logger("validation")


def load(
    definition: Union[OrchestrationDefinition, Mapping[str, Any], None],
    registry=None,
) -> ValidatedGraph:
    """
    Validate a definition and derive its topology.

    Checks, collecting every problem found:
    - nodes present and at least one trigger node
    - unique node ids
    - edge endpoints exist
    - node types known to the registry
    - no cycles among nodes reachable from a trigger

    Raises the single GraphValidationError found, or
    DefinitionValidationError when there are several.
    """
    definition = parse_definition(definition)

    # 1. Empty definition - nothing else is worth checking
    if len(definition.nodes) == 0:
        raise EmptyGraphError("Definition must have at least one node")

    errors: List[GraphValidationError] = []

    # 2. Duplicate node IDs
    node_ids = [node.id for node in definition.nodes]
    if len(node_ids) != len(set(node_ids)):
        duplicates = sorted({nid for nid in node_ids if node_ids.count(nid) > 1})
        errors.append(DuplicateNodeError(duplicates))

    nodes = {}
    for node in definition.nodes:
        nodes.setdefault(node.id, node)
    order_index = {node_id: index for index, node_id in enumerate(nodes)}

    # 3. Invalid edge references
    valid_edges: List[Edge] = []
    for edge in definition.edges:
        if edge.from_ not in nodes:
            errors.append(DanglingEdgeError(edge.from_, edge.to, edge.from_))
        elif edge.to not in nodes:
            errors.append(DanglingEdgeError(edge.from_, edge.to, edge.to))
        else:
            valid_edges.append(edge)

    # 4. Node types
    known_types = _known_types(registry)
    for node in nodes.values():
        if node.type not in known_types:
            errors.append(UnknownNodeTypeError(node.id, node.type))

    # 5. Trigger nodes
    trigger_ids = [node.id for node in nodes.values() if node.type == NodeType.TRIGGER.value]
    if not trigger_ids:
        errors.append(EmptyGraphError("Definition has no trigger node"))

    outgoing: Dict[str, List[Edge]] = {node_id: [] for node_id in nodes}
    incoming: Dict[str, List[Edge]] = {node_id: [] for node_id in nodes}
    for edge in valid_edges:
        outgoing[edge.from_].append(edge)
        incoming[edge.to].append(edge)

    # 6. Reachability and cycles
    reachable = reachable_from(trigger_ids, outgoing)
    _, leftover = topological_sort(
        [node_id for node_id in nodes if node_id in reachable],
        {node_id: [e.to for e in outgoing[node_id] if e.to in reachable] for node_id in reachable},
        order_index,
    )
    if leftover:
        errors.append(CycleError(leftover))

    if errors:
        logger.warning(
            "Definition rejected",
            extra={"errors": [e.message for e in errors]}
        )
        if len(errors) == 1:
            raise errors[0]
        raise DefinitionValidationError(errors)

    return ValidatedGraph(
        definition=definition,
        nodes=nodes,
        order_index=order_index,
        outgoing=outgoing,
        incoming=incoming,
        trigger_ids=trigger_ids,
        reachable=frozenset(reachable),
    )


def parse_definition(definition: Union[OrchestrationDefinition, Mapping[str, Any], None]) -> OrchestrationDefinition:
    """Accept raw persisted JSON or an already parsed definition"""
    if isinstance(definition, OrchestrationDefinition):
        return definition
    if definition is None:
        raise EmptyGraphError("Definition is missing")
    try:
        return OrchestrationDefinition.model_validate(definition)
    except pydantic.ValidationError as e:
        raise GraphValidationError(f"Malformed definition document: {e.error_count()} errors: {e}")


def reachable_from(start_ids: Iterable[str], outgoing: Dict[str, List[Edge]]) -> Set[str]:
    """BFS over edges from the given start nodes"""
    visited: Set[str] = set()
    queue = deque(start_ids)

    while queue:
        node_id = queue.popleft()
        if node_id in visited:
            continue
        visited.add(node_id)
        queue.extend(edge.to for edge in outgoing[node_id])

    return visited


def topological_sort(
    node_ids: List[str],
    graph: Dict[str, List[str]],
    order_index: Dict[str, int],
) -> Tuple[List[str], List[str]]:
    """
    Kahn's algorithm with ties broken by authoring order.

    Returns (topological_order, leftover). Leftover nodes never reached
    in-degree zero, which means they sit on or behind a cycle.
    """
    in_degree: Dict[str, int] = {node_id: 0 for node_id in node_ids}
    for node_id in node_ids:
        for neighbor in graph.get(node_id, []):
            in_degree[neighbor] += 1

    heap = [(order_index[node_id], node_id) for node_id, degree in in_degree.items() if degree == 0]
    heapq.heapify(heap)

    topological_order = []
    while heap:
        _, node_id = heapq.heappop(heap)
        topological_order.append(node_id)

        # Reduce in-degree for neighbors
        for neighbor in graph.get(node_id, []):
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                heapq.heappush(heap, (order_index[neighbor], neighbor))

    processed = set(topological_order)
    leftover = [node_id for node_id in node_ids if node_id not in processed]
    return topological_order, leftover


def _known_types(registry: Optional[Any]) -> Set[str]:
    if registry is None:
        return {node_type.value for node_type in NodeType}
    return set(registry.node_types)
