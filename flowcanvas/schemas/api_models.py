"""
API Request/Response Models for Workflow Canvas
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from flowcanvas.core.constants import LayoutDirection, LayoutStrategy
from flowcanvas.schemas.steps import Step, WorkflowDefinition


# ============================================================================
# GRAPH DTOs
# ============================================================================

class GraphNode(BaseModel):
    """Node in workflow graph"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: str
    label: str
    position: Dict[str, float]
    data: Dict[str, Any] = Field(default_factory=dict)
    source_position: Optional[str] = Field(default=None, alias="sourcePosition")
    target_position: Optional[str] = Field(default=None, alias="targetPosition")


class GraphEdge(BaseModel):
    """Edge in workflow graph"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    source: str
    target: str
    source_handle: Optional[Literal["then", "else"]] = Field(default=None, alias="sourceHandle")
    label: Optional[str] = None


class GraphPayload(BaseModel):
    """Complete graph as exchanged with the canvas"""
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)


# ============================================================================
# BUILD / LAYOUT
# ============================================================================

class BuildGraphRequest(BaseModel):
    """Request to open a workflow on the canvas"""
    workflow: WorkflowDefinition
    strategy: Optional[LayoutStrategy] = Field(default=None, description="Defaults to the configured strategy")
    direction: Optional[LayoutDirection] = None


class BuildGraphResponse(BaseModel):
    """Graph ready for display"""
    workflow_id: str
    graph: GraphPayload
    auto_layout_applied: bool = Field(..., description="False when the saved layout was used")


class LayoutRequest(BaseModel):
    """Request to re-run auto-layout on an edited graph"""
    graph: GraphPayload
    strategy: Optional[LayoutStrategy] = None
    direction: Optional[LayoutDirection] = None


class LayoutResponse(BaseModel):
    """Graph with new positions"""
    graph: GraphPayload
    strategy: LayoutStrategy


# ============================================================================
# SAVE
# ============================================================================

class SerializeGraphRequest(BaseModel):
    """Request to turn an edited graph back into a workflow definition"""
    workflow: WorkflowDefinition
    graph: GraphPayload


class SerializeGraphResponse(BaseModel):
    """Definition to persist (steps plus layout)"""
    workflow: WorkflowDefinition
    step_count: int


# ============================================================================
# VALIDATION
# ============================================================================

class ValidationIssue(BaseModel):
    """Single validation error or warning"""
    severity: str
    error_type: str
    location: str
    message: str
    code: str
    suggestion: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class ValidateGraphRequest(BaseModel):
    """Request to validate graph structure"""
    graph: GraphPayload


class ValidateGraphResponse(BaseModel):
    """Validation outcome"""
    valid: bool
    error_count: int
    warning_count: int
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)
    info: List[ValidationIssue] = Field(default_factory=list)


class StepCompletenessRequest(BaseModel):
    """Request to check which steps are fully configured"""
    steps: List[Step]


class StepCompletenessResponse(BaseModel):
    """Per-step completeness"""
    complete: Dict[str, bool]
    all_complete: bool


# ============================================================================
# EDITING
# ============================================================================

class GraphEditRequest(BaseModel):
    """
    Request to apply UI edits to a graph

    Each edit is a message such as
    ``{"type": "addEdge", "source": "a", "target": "b"}``.
    """
    graph: GraphPayload
    edits: List[Dict[str, Any]] = Field(..., min_length=1)


class GraphEditResponse(BaseModel):
    """Response after applying graph edits"""
    graph: GraphPayload
    changes_applied: List[Dict[str, Any]]
    validation_required: bool = True
