# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""End node - shapes the final output"""

from typing import Any, Dict

from scenario_engine.engine.models import NodeType
from scenario_engine.engine.registry import NodeExecutor, NodeInvocation
from scenario_engine.engine.templates import render_template


class EndExecutor(NodeExecutor):
    node_type = NodeType.END

    async def execute(self, invocation: NodeInvocation, config: Dict[str, Any]) -> Any:
        if "output" not in config:
            return invocation.upstream
        return render_template(config["output"], invocation.scope)
