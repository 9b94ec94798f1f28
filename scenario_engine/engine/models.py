# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Scenario Engine Models

Pydantic models for orchestration definitions, execution requests and
execution records.
"""

from enum import Enum
from typing import List, Dict, Any, Optional, Tuple
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class NodeType(str, Enum):
    """
    Node kinds understood by the engine.

    Core:
        TRIGGER - Entry point, passes the run input through
        ACTION - Call a tool by identifier
        LLM_CALL - Call a configured model provider
        CONDITION - Select which outgoing edges are live

    Utilities:
        TRANSFORM - Select/remap values from the run scope
        DELAY - Wait before continuing
        END - Build the final output from a template
    """
    TRIGGER = "trigger"
    ACTION = "action"
    LLM_CALL = "llm-call"
    CONDITION = "condition"
    TRANSFORM = "transform"
    DELAY = "delay"
    END = "end"


# Type names written by older editor versions
LEGACY_NODE_TYPES = {
    "scenario-trigger": NodeType.TRIGGER.value,
    "scenario-decision": NodeType.CONDITION.value,
    "scenario-transform": NodeType.TRANSFORM.value,
    "scenario-end": NodeType.END.value,
    "decision": NodeType.CONDITION.value,
    "tool": NodeType.ACTION.value,
    "agent": NodeType.LLM_CALL.value,
    "scenario-agent": NodeType.LLM_CALL.value,
}


class TriggerType(str, Enum):
    """How an execution was started"""
    MANUAL = "manual"
    API = "api"
    WEBHOOK = "webhook"
    SCHEDULE = "schedule"
    CHAT = "chat"


class NodeStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_NODE_STATES = {NodeStatus.SUCCEEDED, NodeStatus.FAILED, NodeStatus.SKIPPED}


class ExecutionPhase(str, Enum):
    """Per-execution state machine"""
    INITIALIZING = "initializing"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ExecutionStatus(str, Enum):
    """Status written to the execution record"""
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# ============================================================================
# Definition Models
# ============================================================================

class NodeData(BaseModel):
    """Editor payload of a node - only config matters for execution"""
    label: str = ""
    description: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)


class Node(BaseModel):
    """Single node in an orchestration definition"""
    id: str
    type: str
    position: Optional[Dict[str, float]] = None
    data: NodeData = Field(default_factory=NodeData)

    @model_validator(mode="before")
    @classmethod
    def lift_top_level_config(cls, values: Any) -> Any:
        # Hand-written definitions put config next to type
        if isinstance(values, dict) and "config" in values:
            values = dict(values)
            config = values.pop("config") or {}
            data = dict(values.get("data") or {})
            data.setdefault("config", config)
            values["data"] = data
        return values

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        if isinstance(v, Enum):
            v = v.value
        if isinstance(v, str):
            return LEGACY_NODE_TYPES.get(v, v)
        return v

    @property
    def config(self) -> Dict[str, Any]:
        return self.data.config

    @property
    def label(self) -> str:
        return self.data.label or self.id


class Edge(BaseModel):
    """Connection between two nodes, optionally labeled with a branch"""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    from_: str = Field(
        validation_alias=AliasChoices("from", "source", "from_"),
        serialization_alias="from",
    )
    to: str = Field(validation_alias=AliasChoices("to", "target"))
    condition: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("condition", "branch"),
    )
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("condition", mode="before")
    @classmethod
    def stringify_condition(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @model_validator(mode="after")
    def condition_from_data(self) -> "Edge":
        # Older editors stored the branch under data.condition / data.branchIndex
        if self.condition is None:
            legacy = self.data.get("condition", self.data.get("branchIndex"))
            if legacy is not None:
                self.condition = str(legacy)
        return self


class OrchestrationDefinition(BaseModel):
    """Graph of one scenario/workflow version"""
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def null_collections(cls, values: Any) -> Any:
        if isinstance(values, dict):
            values = dict(values)
            if values.get("nodes") is None:
                values["nodes"] = []
            if values.get("edges") is None:
                values["edges"] = []
        return values


class ScenarioVersion(BaseModel):
    """Persisted snapshot of a definition"""
    version_id: str
    definition_id: str
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = False
    created_at: str
    trigger_type: TriggerType = TriggerType.MANUAL
    orchestration_definition: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Execution Models
# ============================================================================

class NodeExecutionError(BaseModel):
    """Detailed error context when a node fails"""
    node_id: str
    node_type: str
    error_message: str
    completed_nodes: List[str] = Field(default_factory=list)
    pending_nodes: List[str] = Field(default_factory=list)
    timestamp: str


class ExecutionRequest(BaseModel):
    """Request to execute a definition"""
    definition_id: str
    input: Dict[str, Any] = Field(default_factory=dict)
    triggered_by: Optional[str] = None
    trigger_type: TriggerType = TriggerType.MANUAL
    version_id: Optional[str] = None  # Pin a draft version (test runs)
    test_run: bool = False


class ExecutionStep(BaseModel):
    """One node that ran, in the order it finished"""
    model_config = ConfigDict(frozen=True)

    step_index: int
    node_id: str
    node_type: str
    status: NodeStatus
    input: Optional[Any] = None
    output: Optional[Any] = None
    error: Optional[str] = None
    duration: float


class ExecutionRecord(BaseModel):
    """One immutable record per execution"""
    model_config = ConfigDict(frozen=True)

    execution_id: str
    definition_id: str
    version_id: Optional[str] = None
    status: ExecutionStatus
    output: Optional[Any] = None
    duration: float
    error: Optional[str] = None
    error_context: Optional[NodeExecutionError] = None
    triggered_by_id: Optional[str] = None
    trigger_type: TriggerType = TriggerType.MANUAL
    node_states: Dict[str, NodeStatus] = Field(default_factory=dict)
    steps: Tuple[ExecutionStep, ...] = ()
    started_at: str
    completed_at: str


class ExecutionResult(BaseModel):
    """Result handed back to the caller of the invocation contract"""
    execution_id: str
    status: ExecutionStatus
    output: Optional[Any] = None
    duration: float
    error: Optional[str] = None

    @classmethod
    def from_record(cls, record: ExecutionRecord) -> "ExecutionResult":
        return cls(
            execution_id=record.execution_id,
            status=record.status,
            output=record.output,
            duration=record.duration,
            error=record.error,
        )
