# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the execution planner
"""

import pytest
from scenario_engine.engine.exceptions import CycleError
from scenario_engine.engine.graph import ValidatedGraph
from scenario_engine.engine.models import Edge, Node, OrchestrationDefinition
from scenario_engine.engine.planner import plan
from scenario_engine.engine.validation import load


def node(node_id, node_type="action", **config):
    return {"id": node_id, "type": node_type, "data": {"config": config}}


def edge(from_node, to_node, condition=None):
    return {"from": from_node, "to": to_node, "condition": condition}


def test_serial_plan():
    """trigger → A → B plans in dependency order"""
    graph = load({
        "nodes": [node("B"), node("A"), node("t", "trigger")],
        "edges": [edge("t", "A"), edge("A", "B")],
    })

    execution_plan = plan(graph)

    assert execution_plan.order == ["t", "A", "B"]
    assert execution_plan.dependencies == {"t": set(), "A": {"t"}, "B": {"A"}}


def test_independent_nodes_keep_authoring_order():
    """Siblings without a dependency are ordered as authored"""
    graph = load({
        "nodes": [node("t", "trigger"), node("second"), node("first")],
        "edges": [edge("t", "first"), edge("t", "second")],
    })

    assert plan(graph).order == ["t", "second", "first"]


def test_plan_is_deterministic():
    definition = {
        "nodes": [node("t", "trigger"), node("B"), node("C"), node("D")],
        "edges": [edge("t", "B"), edge("t", "C"), edge("B", "D"), edge("C", "D")],
    }

    orders = {tuple(plan(load(definition)).order) for _ in range(5)}

    assert orders == {("t", "B", "C", "D")}


def test_branch_points_and_unreachable():
    graph = load({
        "nodes": [
            node("t", "trigger"),
            node("check", "condition", expression="True"),
            node("yes"),
            node("no"),
            node("orphan"),
        ],
        "edges": [
            edge("t", "check"),
            edge("check", "yes", "true"),
            edge("check", "no", "false"),
        ],
    })

    execution_plan = plan(graph)

    assert execution_plan.branch_points == frozenset({"check"})
    assert execution_plan.unreachable == ["orphan"]
    assert "orphan" not in execution_plan.order
    assert execution_plan.position("yes") < execution_plan.position("no")


def test_multiple_triggers():
    graph = load({
        "nodes": [node("manual", "trigger"), node("hook", "trigger"), node("A")],
        "edges": [edge("manual", "A"), edge("hook", "A")],
    })

    execution_plan = plan(graph)

    assert execution_plan.order == ["manual", "hook", "A"]
    assert execution_plan.dependencies["A"] == {"manual", "hook"}


def test_plan_rejects_hand_built_cyclic_graph():
    """A graph that bypassed load() is still checked"""
    nodes = {
        "t": Node(id="t", type="trigger"),
        "A": Node(id="A", type="action"),
        "B": Node(id="B", type="action"),
    }
    edges = [Edge(**{"from": "t", "to": "A"}), Edge(**{"from": "A", "to": "B"}), Edge(**{"from": "B", "to": "A"})]
    graph = ValidatedGraph(
        definition=OrchestrationDefinition(nodes=list(nodes.values()), edges=edges),
        nodes=nodes,
        order_index={"t": 0, "A": 1, "B": 2},
        outgoing={"t": [edges[0]], "A": [edges[1]], "B": [edges[2]]},
        incoming={"t": [], "A": [edges[0], edges[2]], "B": [edges[1]]},
        trigger_ids=["t"],
        reachable=frozenset(nodes),
    )

    with pytest.raises(CycleError):
        plan(graph)
