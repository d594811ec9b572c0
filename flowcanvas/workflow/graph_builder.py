"""
Graph Builder
Converts a workflow step list into the editor's node/edge graph
"""
from typing import Any, Dict, List, Optional, Sequence

from flowcanvas.core.constants import (
    BRANCH_LABELS,
    BranchHandle,
    END_NODE_ID,
    START_NODE_ID,
    StepType,
)
from flowcanvas.core.logging import get_logger
from flowcanvas.schemas.steps import StepBase, parse_steps, step_to_dict
from flowcanvas.validator.rules import ensure_valid_steps
from flowcanvas.workflow.graph import (
    GraphEdge,
    GraphNode,
    WorkflowGraph,
    edge_id,
    end_node,
    start_node,
)

logger = get_logger(__name__)


# ============================================================================
# DEFAULT POSITIONS
# ============================================================================

DEFAULT_X = 300.0
START_Y = 50.0
FIRST_STEP_Y = 150.0
STEP_SPACING = 150.0


def default_step_position(index: int) -> Dict[str, float]:
    """Vertical stack position of the index-th step"""
    return {"x": DEFAULT_X, "y": FIRST_STEP_Y + index * STEP_SPACING}


# ============================================================================
# GRAPH BUILDER
# ============================================================================

class GraphBuilder:
    """
    Converts a step list into a workflow graph

    Edges:
    - start -> first step
    - step -> next_step when set
    - otherwise step -> following step (conditions excepted)
    - condition -> then_step / else_step through the then/else handles,
      in addition to its next_step edge
    - last step -> end when it has no next_step and is not a condition

    Usage:
        builder = GraphBuilder()
        graph = builder.build_graph(steps, saved_layout)

        for edge in graph.edges:
            print(f"Edge: {edge.source} -> {edge.target}")
    """

    def build_graph(
        self,
        steps: Sequence[Any],
        saved_layout: Optional[Dict[str, Dict[str, float]]] = None
    ) -> WorkflowGraph:
        """
        Build graph from steps

        Args:
            steps: Step models or step dicts
            saved_layout: Optional node ID -> {x, y}; entries win over defaults

        Returns:
            WorkflowGraph with nodes and edges

        Raises:
            DanglingStepReference: If a flow field points to an unknown step
            DuplicateStepId: If two steps share an ID
            ReservedStepId: If a step is called start or end
        """
        steps = parse_steps(steps)
        ensure_valid_steps(steps)
        layout = saved_layout or {}

        start_position = layout.get(START_NODE_ID, {"x": DEFAULT_X, "y": START_Y})
        if not steps:
            logger.debug("Empty workflow: graph holds the start node only")
            return WorkflowGraph(nodes=[start_node(start_position)], edges=[])

        nodes = [start_node(start_position)]
        nodes.extend(self._create_step_nodes(steps, layout))

        end_position = layout.get(
            END_NODE_ID,
            {"x": DEFAULT_X, "y": len(steps) * STEP_SPACING + FIRST_STEP_Y}
        )
        nodes.append(end_node(end_position))

        edges = self._create_edges(steps)

        logger.info(f"Built graph: {len(nodes)} nodes, {len(edges)} edges")

        return WorkflowGraph(nodes=nodes, edges=edges)

    def _create_step_nodes(
        self,
        steps: List[StepBase],
        layout: Dict[str, Dict[str, float]]
    ) -> List[GraphNode]:
        nodes = []

        for index, step in enumerate(steps):
            position = layout.get(step.id) or default_step_position(index)
            # Flow lives on the edges; next_step is rebuilt on save
            data = step_to_dict(step)
            data.pop("next_step", None)
            node = GraphNode(
                id=step.id,
                type=step.type,
                label=step.name or step.id,
                position={"x": float(position["x"]), "y": float(position["y"])},
                data=data
            )
            nodes.append(node)

        return nodes

    def _create_edges(self, steps: List[StepBase]) -> List[GraphEdge]:
        edges = [GraphEdge(
            id=edge_id(START_NODE_ID, steps[0].id),
            source=START_NODE_ID,
            target=steps[0].id
        )]
        last_index = len(steps) - 1

        for index, step in enumerate(steps):
            if step.type == StepType.CONDITION.value:
                if step.next_step:
                    edges.append(GraphEdge(
                        id=edge_id(step.id, step.next_step),
                        source=step.id,
                        target=step.next_step
                    ))
                edges.extend(self._create_branch_edges(step))
                continue

            if step.next_step:
                target = step.next_step
            elif index < last_index:
                target = steps[index + 1].id
            else:
                target = END_NODE_ID

            edges.append(GraphEdge(id=edge_id(step.id, target), source=step.id, target=target))

        return edges

    def _create_branch_edges(self, step: StepBase) -> List[GraphEdge]:
        condition = step.condition
        if condition is None:
            return []

        edges = []
        for handle, target in (
            (BranchHandle.THEN, condition.then_step),
            (BranchHandle.ELSE, condition.else_step),
        ):
            if not target:
                continue
            edges.append(GraphEdge(
                id=edge_id(step.id, target, handle.value),
                source=step.id,
                target=target,
                source_handle=handle.value,
                label=BRANCH_LABELS[handle]
            ))
        return edges


def build_graph(
    steps: Sequence[Any],
    saved_layout: Optional[Dict[str, Dict[str, float]]] = None
) -> WorkflowGraph:
    """Convenience wrapper around GraphBuilder.build_graph"""
    return GraphBuilder().build_graph(steps, saved_layout)
