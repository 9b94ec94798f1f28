# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Action node - calls a tool by id"""

from typing import Any, Dict

from scenario_engine.engine.exceptions import NodeExecutionException
from scenario_engine.engine.models import NodeType
from scenario_engine.engine.registry import NodeExecutor, NodeInvocation
from scenario_engine.engine.templates import render_template


class ActionExecutor(NodeExecutor):
    """
    Runs a tool through the ToolService.

    Config:
        tool (or toolId): Tool id
        params (or input): Tool input, {{path}} templates resolved against
            the run scope. Without params the upstream output is the input.
    """

    node_type = NodeType.ACTION

    def __init__(self, tool_service):
        self.tool_service = tool_service

    async def execute(self, invocation: NodeInvocation, config: Dict[str, Any]) -> Any:
        tool_id = config.get("tool") or config.get("toolId")
        if not tool_id:
            raise NodeExecutionException(
                invocation.node_id, invocation.node_type, "action node requires a tool in config"
            )

        params = config.get("params", config.get("input"))
        if params is None:
            tool_input = invocation.upstream
        else:
            tool_input = render_template(params, invocation.scope)

        result = await self.tool_service.execute_tool(tool_id, tool_input)

        if not result.success:
            raise NodeExecutionException(
                invocation.node_id,
                invocation.node_type,
                result.error or f"Tool {tool_id} failed",
                context={"tool": tool_id},
            )

        return result.output
