# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Validated graph - read-only topology derived from a definition.

Built once by validation.load() and shared safely between concurrent runs of
the same version.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List

from .models import Edge, Node, NodeType, OrchestrationDefinition


@dataclass(frozen=True)
class ValidatedGraph:
    definition: OrchestrationDefinition
    nodes: Dict[str, Node]              # node_id -> node, authoring order
    order_index: Dict[str, int]         # node_id -> authoring position
    outgoing: Dict[str, List[Edge]]     # node_id -> edges leaving it
    incoming: Dict[str, List[Edge]]     # node_id -> edges entering it
    trigger_ids: List[str]
    reachable: FrozenSet[str]

    def node(self, node_id: str) -> Node:
        return self.nodes[node_id]

    def node_type(self, node_id: str) -> str:
        return self.nodes[node_id].type

    def is_condition(self, node_id: str) -> bool:
        return self.nodes[node_id].type == NodeType.CONDITION.value

    def predecessors(self, node_id: str) -> List[str]:
        return [edge.from_ for edge in self.incoming[node_id]]

    def successors(self, node_id: str) -> List[str]:
        return [edge.to for edge in self.outgoing[node_id]]

    @property
    def unreachable(self) -> List[str]:
        return [node_id for node_id in self.nodes if node_id not in self.reachable]
