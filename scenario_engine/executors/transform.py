# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Transform node - select or remap values from the run scope"""

from typing import Any, Dict

from scenario_engine.engine.exceptions import NodeExecutionException
from scenario_engine.engine.models import NodeType
from scenario_engine.engine.registry import NodeExecutor, NodeInvocation
from scenario_engine.engine.templates import lookup


class TransformExecutor(NodeExecutor):
    """
    Config:
        transformType: "select" or "map"
        transformConfig.fields: paths to keep (select)
        transformConfig.mapping: {path: output_key} (map)

    Paths are resolved against the run scope, e.g. "input.user.name" or
    "fetch.data.items". Missing paths are left out. Without a
    transformType the upstream output passes through.
    """

    node_type = NodeType.TRANSFORM

    async def execute(self, invocation: NodeInvocation, config: Dict[str, Any]) -> Any:
        transform_type = config.get("transformType")
        transform_config = config.get("transformConfig") or {}
        scope = invocation.scope

        if transform_type is None:
            return invocation.upstream

        transformed: Dict[str, Any] = {}

        if transform_type == "select":
            for path in transform_config.get("fields") or []:
                value = lookup(scope, path, default=None)
                if value is not None:
                    transformed[path] = value

        elif transform_type == "map":
            for path, output_key in (transform_config.get("mapping") or {}).items():
                value = lookup(scope, path, default=None)
                if value is not None:
                    transformed[output_key] = value

        else:
            raise NodeExecutionException(
                invocation.node_id, invocation.node_type, f"Unknown transform type: {transform_type}"
            )

        return transformed
