"""
Workflow Step Models
Tagged union of workflow steps (discriminated by ``type``) and the workflow definition
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Tuple, Type, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter

from flowcanvas.core.constants import StepType, assert_exhaustive


# ============================================================================
# SHARED PAYLOADS
# ============================================================================

class StepGuardrails(BaseModel):
    """Per-step execution limits"""
    request_limit: Optional[int] = Field(default=None, ge=1)
    total_tokens_limit: Optional[int] = Field(default=None, ge=1)
    timeout_seconds: Optional[int] = Field(default=None, ge=1)


class ConditionConfig(BaseModel):
    """Field comparison and the two branch targets of a condition step"""
    field: Optional[str] = None
    operator: Optional[str] = None
    value: Optional[Any] = None
    then_step: Optional[str] = None
    else_step: Optional[str] = None


class HumanOption(BaseModel):
    """Choice offered to the approver"""
    id: str
    label: str


class HumanConfig(BaseModel):
    """Human approval configuration"""
    notification: Optional[str] = None
    options: Optional[List[HumanOption]] = None


class LoopConfig(BaseModel):
    """Loop iteration configuration"""
    items_path: Optional[str] = None
    item_variable: Optional[str] = None


# ============================================================================
# STEP VARIANTS
# ============================================================================

class StepBase(BaseModel):
    """Fields common to every step kind"""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, description="Unique step ID within the workflow")
    name: Optional[str] = None
    next_step: Optional[str] = Field(default=None, description="Explicit successor step ID")
    guardrails: Optional[StepGuardrails] = None


class AgentStep(StepBase):
    type: Literal["agent"] = "agent"
    # ``agent_id`` is the legacy name of the reference
    agent: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("agent", "agent_id"),
        description="Opaque agent ID"
    )
    agent_prompt: Optional[str] = None


class ToolStep(StepBase):
    type: Literal["tool"] = "tool"
    tool: Optional[str] = Field(default=None, description="Opaque tool ID")
    tool_args: Optional[Any] = None


class ConditionStep(StepBase):
    type: Literal["condition"] = "condition"
    condition: Optional[ConditionConfig] = None


class HumanStep(StepBase):
    type: Literal["human"] = "human"
    human_config: Optional[HumanConfig] = None


class ParallelStep(StepBase):
    type: Literal["parallel"] = "parallel"
    parallel_steps: Optional[List["Step"]] = None


class LoopStep(StepBase):
    type: Literal["loop"] = "loop"
    loop_config: Optional[LoopConfig] = None


Step = Annotated[
    Union[AgentStep, ToolStep, ConditionStep, HumanStep, ParallelStep, LoopStep],
    Field(discriminator="type"),
]

ParallelStep.model_rebuild()


# ============================================================================
# DISPATCH TABLES
# ============================================================================

STEP_MODELS: Dict[StepType, Type[StepBase]] = {
    StepType.AGENT: AgentStep,
    StepType.TOOL: ToolStep,
    StepType.CONDITION: ConditionStep,
    StepType.HUMAN: HumanStep,
    StepType.PARALLEL: ParallelStep,
    StepType.LOOP: LoopStep,
}

# Type-specific fields copied between steps and node data
STEP_PAYLOAD_FIELDS: Dict[StepType, Tuple[str, ...]] = {
    StepType.AGENT: ("agent", "agent_prompt"),
    StepType.TOOL: ("tool", "tool_args"),
    StepType.CONDITION: ("condition",),
    StepType.HUMAN: ("human_config",),
    StepType.PARALLEL: ("parallel_steps",),
    StepType.LOOP: ("loop_config",),
}

assert_exhaustive(STEP_MODELS, StepType, "STEP_MODELS")
assert_exhaustive(STEP_PAYLOAD_FIELDS, StepType, "STEP_PAYLOAD_FIELDS")


_step_adapter: TypeAdapter = TypeAdapter(Step)
_step_list_adapter: TypeAdapter = TypeAdapter(List[Step])


def parse_step(data: Any) -> StepBase:
    """Validate a single step dict into its variant model"""
    if isinstance(data, StepBase):
        return data
    return _step_adapter.validate_python(data)


def parse_steps(data: Sequence[Any]) -> List[StepBase]:
    """Validate a list of step dicts"""
    return [parse_step(item) for item in data]


def step_to_dict(step: StepBase) -> Dict[str, Any]:
    """Sparse dict form of a step (absent optional fields are omitted)"""
    return step.model_dump(mode="json", exclude_none=True)


def step_type_of(step: StepBase) -> StepType:
    return StepType(step.type)


# ============================================================================
# WORKFLOW DEFINITION
# ============================================================================

class Position(BaseModel):
    """Canvas position (top-left corner of the node box)"""
    x: float
    y: float


class WorkflowDefinition(BaseModel):
    """
    Persisted workflow definition

    ``layout`` maps node IDs (including ``start``/``end``) to saved positions.
    A non-empty layout suppresses auto-layout on load.
    """
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    description: Optional[str] = None
    steps: List[Step] = Field(default_factory=list)
    trigger: Optional[Dict[str, Any]] = None
    guardrails: Optional[Dict[str, Any]] = None
    layout: Optional[Dict[str, Position]] = None

    @property
    def has_saved_layout(self) -> bool:
        return bool(self.layout)

    def layout_dict(self) -> Dict[str, Dict[str, float]]:
        """Saved layout as plain ``{node_id: {"x", "y"}}``"""
        if not self.layout:
            return {}
        return {node_id: {"x": pos.x, "y": pos.y} for node_id, pos in self.layout.items()}
