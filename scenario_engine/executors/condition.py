# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Condition node - selects which outgoing edges are live.

Two forms:

    {"expression": "{{input.amount}} > 100"}
        -> branch "true" or "false"

    {"branches": [
        {"label": "high", "condition": "{{input.amount}} > 100"},
        {"label": "low", "condition": "default"}
    ]}
        -> first matching branch; "default" always matches

Output: {"branch": <label>, "branch_index": <int or None>, "matched": bool}.
Edges are selected by label or by index.
"""

from typing import Any, Dict

from scenario_engine.engine.conditions import evaluate_expression
from scenario_engine.engine.exceptions import NodeExecutionException
from scenario_engine.engine.models import NodeType
from scenario_engine.engine.registry import NodeExecutor, NodeInvocation


class ConditionExecutor(NodeExecutor):
    node_type = NodeType.CONDITION

    async def execute(self, invocation: NodeInvocation, config: Dict[str, Any]) -> Any:
        try:
            if config.get("branches"):
                return self._select_branch(config["branches"], invocation.scope)

            expression = config.get("expression", config.get("condition"))
            if expression is None:
                raise NodeExecutionException(
                    invocation.node_id,
                    invocation.node_type,
                    "condition node requires an expression or branches in config",
                )

            result = evaluate_expression(str(expression), invocation.scope)
        except (ValueError, SyntaxError) as e:
            raise NodeExecutionException(invocation.node_id, invocation.node_type, str(e))

        return {"branch": "true" if result else "false", "branch_index": None, "matched": result}

    @staticmethod
    def _select_branch(branches, scope: Dict[str, Any]) -> Dict[str, Any]:
        for index, branch in enumerate(branches):
            condition = str(branch.get("condition", "")).strip()
            label = branch.get("label") or str(index)

            if condition == "default":
                return {"branch": label, "branch_index": index, "matched": False}

            if condition and evaluate_expression(condition, scope):
                return {"branch": label, "branch_index": index, "matched": True}

        # Nothing matched and no default branch: default/unlabeled edges
        return {"branch": "default", "branch_index": None, "matched": False}
