"""
Canvas API Routes
Workflow <-> graph conversion, layout, editing and validation endpoints

Domain errors (GraphModelException) are turned into 422 responses by the
application's exception handler.
"""
from fastapi import APIRouter

from flowcanvas.schemas.api_models import (
    BuildGraphRequest,
    BuildGraphResponse,
    GraphEditRequest,
    GraphEditResponse,
    GraphPayload,
    LayoutRequest,
    LayoutResponse,
    SerializeGraphRequest,
    SerializeGraphResponse,
    StepCompletenessRequest,
    StepCompletenessResponse,
    ValidateGraphRequest,
    ValidateGraphResponse,
)
from flowcanvas.services.graph_service import get_graph_service
from flowcanvas.workflow.graph import WorkflowGraph

router = APIRouter(tags=["Canvas"])

# Get service instance
graph_service = get_graph_service()


def _to_graph(payload: GraphPayload) -> WorkflowGraph:
    return WorkflowGraph.from_dict(payload.model_dump(by_alias=True, exclude_none=True))


def _to_payload(graph: WorkflowGraph) -> GraphPayload:
    return GraphPayload.model_validate(graph.to_dict())


@router.post("/graph/build", response_model=BuildGraphResponse, response_model_exclude_none=True)
async def build_graph(request: BuildGraphRequest) -> BuildGraphResponse:
    """
    Open a workflow on the canvas

    Uses the saved layout when the workflow has one, auto-layout otherwise
    """
    graph, auto_laid_out = graph_service.load(request.workflow, request.strategy, request.direction)
    return BuildGraphResponse(
        workflow_id=request.workflow.id,
        graph=_to_payload(graph),
        auto_layout_applied=auto_laid_out
    )


@router.post("/graph/layout", response_model=LayoutResponse, response_model_exclude_none=True)
async def layout_graph(request: LayoutRequest) -> LayoutResponse:
    """
    Re-run auto-layout on an edited graph
    """
    graph = graph_service.auto_layout(_to_graph(request.graph), request.strategy, request.direction)
    return LayoutResponse(
        graph=_to_payload(graph),
        strategy=graph_service.resolve_strategy(request.strategy)
    )


@router.post("/graph/serialize", response_model=SerializeGraphResponse, response_model_exclude_none=True)
async def serialize_graph(request: SerializeGraphRequest) -> SerializeGraphResponse:
    """
    Convert an edited graph back into the workflow definition to persist
    """
    saved = graph_service.save(request.workflow, _to_graph(request.graph))
    return SerializeGraphResponse(workflow=saved, step_count=len(saved.steps))


@router.post("/graph/validate", response_model=ValidateGraphResponse)
async def validate_graph(request: ValidateGraphRequest) -> ValidateGraphResponse:
    """
    Structural validation of a graph

    Checks:
    - One start and one end node
    - Outgoing edge shape per node type
    - Edges to unknown nodes
    - Reachability from start
    - Step configuration (warnings)
    """
    result = graph_service.validate(_to_graph(request.graph))
    return ValidateGraphResponse.model_validate(result.to_dict())


@router.post("/graph/edit", response_model=GraphEditResponse, response_model_exclude_none=True)
async def edit_graph(request: GraphEditRequest) -> GraphEditResponse:
    """
    Apply UI edits to a graph

    The batch is all-or-nothing: a rejected edit returns 422 and no graph
    """
    graph, changes = graph_service.edit(_to_graph(request.graph), request.edits)
    return GraphEditResponse(graph=_to_payload(graph), changes_applied=changes)


@router.post("/steps/completeness", response_model=StepCompletenessResponse)
async def step_completeness(request: StepCompletenessRequest) -> StepCompletenessResponse:
    """
    Report which steps are fully configured
    """
    complete = graph_service.step_completeness(request.steps)
    return StepCompletenessResponse(complete=complete, all_complete=all(complete.values()))
