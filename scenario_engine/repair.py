# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Definition repair

Stored versions with a missing or empty node list cannot be executed. They
are repaired by replacing the graph with a single trigger node carrying the
scenario's trigger type. DefinitionStore does this on every save; repair_store
fixes versions that were written before that guard existed.
"""

from typing import Any, Dict, List, Optional

from scenario_engine.core.logging import get_service_logger
from scenario_engine.engine.models import NodeType, TriggerType

logger = get_service_logger("repair")

TRIGGER_NODE_ID = "trigger-node"


def needs_repair(orchestration: Optional[Dict[str, Any]]) -> bool:
    """True when the definition has no nodes at all"""
    if not isinstance(orchestration, dict):
        return True
    nodes = orchestration.get("nodes")
    return not isinstance(nodes, list) or len(nodes) == 0


def trigger_only_definition(trigger_type: Any) -> Dict[str, Any]:
    """Minimal executable graph: one trigger node, no edges"""
    trigger_type = trigger_type.value if isinstance(trigger_type, TriggerType) else str(trigger_type)
    return {
        "nodes": [
            {
                "id": TRIGGER_NODE_ID,
                "type": NodeType.TRIGGER.value,
                "position": {"x": 250, "y": 100},
                "data": {
                    "label": "Trigger",
                    "config": {"triggerType": trigger_type},
                },
            }
        ],
        "edges": [],
    }


def repair_definition(orchestration: Optional[Dict[str, Any]], trigger_type: Any) -> Dict[str, Any]:
    """Return a repaired definition, or the given one when it has nodes"""
    if needs_repair(orchestration):
        return trigger_only_definition(trigger_type)
    return orchestration


async def repair_store(store, dry_run: bool = False) -> List[str]:
    """
    Repair every empty version in a DefinitionStore.

    Returns:
        "definition_id/version_id" of each repaired (or, on a dry run,
        repairable) version
    """
    repaired = []

    for definition_id in await store.list_definitions():
        for version in await store.list_versions(definition_id):
            if not needs_repair(version.orchestration_definition):
                continue

            ref = f"{definition_id}/{version.version_id}"
            if not dry_run:
                await store.update_orchestration(
                    definition_id,
                    version.version_id,
                    trigger_only_definition(version.trigger_type),
                )
                logger.info(f"Repaired empty definition {ref}", extra={"trigger_type": version.trigger_type.value})
            repaired.append(ref)

    return repaired
