# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Delay node"""

import asyncio
from typing import Any, Dict

from scenario_engine.engine.exceptions import ExecutionCancelledError
from scenario_engine.engine.models import NodeType
from scenario_engine.engine.registry import NodeExecutor, NodeInvocation


class DelayExecutor(NodeExecutor):
    """
    Waits delayMs (default 1000) then passes the upstream output on.

    Wakes up early and raises when the run is cancelled.
    """

    node_type = NodeType.DELAY

    async def execute(self, invocation: NodeInvocation, config: Dict[str, Any]) -> Any:
        delay_ms = float(config.get("delayMs", config.get("duration", 1000)))

        try:
            await asyncio.wait_for(invocation.cancel_event.wait(), timeout=delay_ms / 1000)
        except asyncio.TimeoutError:
            return invocation.upstream

        raise ExecutionCancelledError(f"Delay node '{invocation.node_id}' cancelled")
