"""
Graph Service
Service layer wrapper for canvas operations
Provides clean interface for the API layer
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from flowcanvas.core.config import Settings, get_settings
from flowcanvas.core.constants import LayoutDirection, LayoutStrategy
from flowcanvas.core.logging import get_logger
from flowcanvas.schemas.steps import StepBase, WorkflowDefinition, parse_steps
from flowcanvas.validator.completeness import is_step_complete
from flowcanvas.validator.errors import ValidationResult
from flowcanvas.validator.rules import validate_graph
from flowcanvas.visualization.graph_editor import GraphEditor, parse_ui_edit
from flowcanvas.visualization.layout import apply_layout
from flowcanvas.workflow.graph import WorkflowGraph
from flowcanvas.workflow.graph_builder import GraphBuilder
from flowcanvas.workflow.serializer import graph_to_definition

logger = get_logger(__name__)


class GraphService:
    """
    Service layer for canvas operations

    Responsibilities:
    - Workflow -> Graph conversion (with auto-layout when nothing is saved)
    - Graph editing
    - Graph -> Workflow conversion on save
    - Structural and completeness checks

    Holds no per-workflow state; every call works on the snapshot it is given.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize graph service"""
        self._settings = settings or get_settings()
        self._builder = GraphBuilder()
        self._editor = GraphEditor()
        logger.info("GraphService initialized")

    def resolve_strategy(self, strategy: Optional[LayoutStrategy]) -> LayoutStrategy:
        return LayoutStrategy(strategy or self._settings.DEFAULT_LAYOUT_STRATEGY)

    def resolve_direction(self, direction: Optional[LayoutDirection]) -> LayoutDirection:
        return LayoutDirection(direction or self._settings.DEFAULT_LAYOUT_DIRECTION)

    def load(
        self,
        definition: WorkflowDefinition,
        strategy: Optional[LayoutStrategy] = None,
        direction: Optional[LayoutDirection] = None
    ) -> Tuple[WorkflowGraph, bool]:
        """
        Build the canvas graph for a workflow

        A saved layout is used as-is; otherwise auto-layout runs.

        Args:
            definition: Workflow definition
            strategy: Layout strategy (defaults to settings)
            direction: Direction for the standard strategy

        Returns:
            (graph, auto_layout_applied)

        Raises:
            DuplicateStepId, ReservedStepId, DanglingStepReference
        """
        logger.info(f"Loading workflow '{definition.id}' ({len(definition.steps)} steps)")

        graph = self._builder.build_graph(definition.steps, definition.layout_dict())
        if definition.has_saved_layout:
            logger.debug(f"Using saved layout for '{definition.id}'")
            return graph, False

        return self.auto_layout(graph, strategy, direction), True

    def auto_layout(
        self,
        graph: WorkflowGraph,
        strategy: Optional[LayoutStrategy] = None,
        direction: Optional[LayoutDirection] = None
    ) -> WorkflowGraph:
        """Re-run auto-layout (discards manual positions)"""
        return apply_layout(
            graph,
            strategy=self.resolve_strategy(strategy),
            direction=self.resolve_direction(direction),
            branch_offset=self._settings.BRANCH_OFFSET
        )

    def edit(
        self,
        graph: WorkflowGraph,
        edits: List[Dict[str, Any]]
    ) -> Tuple[WorkflowGraph, List[Dict[str, Any]]]:
        """
        Apply UI edit messages

        Raises:
            GraphEditError: If an edit is malformed or rejected
        """
        operations = [parse_ui_edit(edit) for edit in edits]
        return self._editor.apply_edits(graph, operations)

    def save(self, definition: WorkflowDefinition, graph: WorkflowGraph) -> WorkflowDefinition:
        """
        Produce the definition to persist (steps plus every node position)

        Raises:
            GraphSerializationError: If a node cannot form a step
        """
        saved = graph_to_definition(definition, graph)
        logger.info(f"Saved workflow '{definition.id}': {len(saved.steps)} steps")
        return saved

    def validate(self, graph: WorkflowGraph) -> ValidationResult:
        """Structural validation of an edited graph"""
        return validate_graph(graph)

    def step_completeness(self, steps: Sequence[Any]) -> Dict[str, bool]:
        """Step ID -> fully configured"""
        parsed: List[StepBase] = parse_steps(steps)
        return {step.id: is_step_complete(step) for step in parsed}


# ============================================================================
# SINGLETON INSTANCE
# ============================================================================

_graph_service: Optional[GraphService] = None


def get_graph_service() -> GraphService:
    """
    Get singleton graph service instance

    Returns:
        GraphService instance
    """
    global _graph_service

    if _graph_service is None:
        _graph_service = GraphService()

    return _graph_service
