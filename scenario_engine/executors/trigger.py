# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Trigger node - entry point of a scenario"""

from typing import Any, Dict

from scenario_engine.engine.exceptions import TriggerMismatchError
from scenario_engine.engine.models import NodeType
from scenario_engine.engine.registry import NodeExecutor, NodeInvocation


class TriggerExecutor(NodeExecutor):
    """
    Passes the run input through unchanged.

    A configured triggerType must match how the run was started; test runs
    may fire any trigger.
    """

    node_type = NodeType.TRIGGER

    async def execute(self, invocation: NodeInvocation, config: Dict[str, Any]) -> Any:
        expected = config.get("triggerType")
        actual = invocation.trigger_type.value

        if expected and expected != actual and not invocation.test_run:
            raise TriggerMismatchError(invocation.node_id, expected, actual)

        return dict(invocation.run_input)
