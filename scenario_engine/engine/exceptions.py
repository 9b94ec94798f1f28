# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Scenario Engine Exceptions

Validation errors are raised before any node runs. Execution errors are
raised by executors and converted into node failures by the runtime.
"""

from typing import List, Optional


class ScenarioEngineException(Exception):
    """Base exception for the engine"""
    pass


# ============================================================================
# Validation
# ============================================================================

class GraphValidationError(ScenarioEngineException):
    """Definition cannot be executed"""
    def __init__(self, message: str, field: str = None, node_id: Optional[str] = None):
        self.message = message
        self.field = field
        self.node_id = node_id
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "field": self.field,
            "node_id": self.node_id,
        }


class EmptyGraphError(GraphValidationError):
    """No nodes, or no trigger node to start from"""
    def __init__(self, message: str = "Definition must have at least one trigger node"):
        super().__init__(message, field="nodes")


class DanglingEdgeError(GraphValidationError):
    """Edge endpoint does not reference a node of the definition"""
    def __init__(self, from_node: str, to_node: str, missing: str):
        self.from_node = from_node
        self.to_node = to_node
        self.missing = missing
        super().__init__(
            f"Edge {from_node} -> {to_node} references non-existent node: {missing}",
            field="edges",
        )


class CycleError(GraphValidationError):
    """Reachable part of the graph is not acyclic"""
    def __init__(self, node_ids: List[str]):
        self.node_ids = node_ids
        super().__init__(
            f"Cycle detected in graph involving nodes: {node_ids}",
            field="edges",
        )


class UnknownNodeTypeError(GraphValidationError):
    """Node type has no registered executor"""
    def __init__(self, node_id: str, node_type: str):
        self.node_type = node_type
        super().__init__(
            f"Unknown node type '{node_type}' for node '{node_id}'",
            field=f"nodes[{node_id}].type",
            node_id=node_id,
        )


class DuplicateNodeError(GraphValidationError):
    """Two nodes share an id"""
    def __init__(self, node_ids: List[str]):
        self.node_ids = node_ids
        super().__init__(f"Duplicate node IDs found: {node_ids}", field="nodes")


class DefinitionValidationError(GraphValidationError):
    """Several validation problems at once"""
    def __init__(self, errors: List[GraphValidationError]):
        self.errors = errors
        summary = "; ".join(e.message for e in errors)
        super().__init__(f"Definition has {len(errors)} validation errors: {summary}")

    def has(self, error_type: type) -> bool:
        return any(isinstance(e, error_type) for e in self.errors)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["errors"] = [e.to_dict() for e in self.errors]
        return data


# ============================================================================
# Execution
# ============================================================================

class ScenarioExecutionError(ScenarioEngineException):
    """Execution failed"""
    pass


class NodeExecutionException(ScenarioExecutionError):
    """Node execution failed"""
    def __init__(self, node_id: str, node_type: str, message: str, context: dict = None):
        self.node_id = node_id
        self.node_type = node_type
        self.reason = message
        self.context = context or {}
        super().__init__(f"Node '{node_id}' ({node_type}) failed: {message}")


class NodeTimeoutException(NodeExecutionException):
    """Node execution exceeded its timeout"""
    def __init__(self, node_id: str, node_type: str, timeout: float):
        super().__init__(
            node_id,
            node_type,
            f"Execution exceeded timeout ({timeout}s)"
        )
        self.timeout = timeout


class TriggerMismatchError(NodeExecutionException):
    """Trigger node configured for a different trigger type"""
    def __init__(self, node_id: str, expected: str, actual: str):
        super().__init__(
            node_id,
            "trigger",
            f"Trigger type is '{expected}', execution was started by '{actual}'"
        )
        self.expected = expected
        self.actual = actual


class ExecutionTimeoutError(ScenarioExecutionError):
    """Overall execution deadline passed"""
    def __init__(self, timeout: float, in_flight: List[str] = None):
        self.timeout = timeout
        self.in_flight = in_flight or []
        super().__init__(f"Execution exceeded deadline ({timeout}s)")


class ExecutionCancelledError(ScenarioExecutionError):
    """Executor observed the cancellation signal"""
    pass


class ExecutionCancelledByUserError(ExecutionCancelledError):
    """Cancellation was requested for a running execution"""
    def __init__(self, reason: Optional[str] = None):
        self.reason = reason
        message = "Execution cancelled by user"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
