"""
Graph Serializer
Converts an edited node/edge graph back into the persisted step list
"""
from copy import deepcopy
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from flowcanvas.core.constants import BranchHandle, END_NODE_ID, ErrorCode, StepType
from flowcanvas.core.logging import get_logger
from flowcanvas.schemas.steps import (
    ConditionConfig,
    Position,
    STEP_MODELS,
    STEP_PAYLOAD_FIELDS,
    StepBase,
    WorkflowDefinition,
)
from flowcanvas.validator.errors import GraphSerializationError, schema_error
from flowcanvas.workflow.graph import GraphNode, WorkflowGraph

logger = get_logger(__name__)


# ============================================================================
# NODE -> STEP
# ============================================================================

def _payload_value(data: Dict[str, Any], field_name: str) -> Any:
    if field_name == "agent":
        # Older definitions stored the reference as agent_id
        return data.get("agent") or data.get("agent_id")
    return data.get(field_name)


def node_to_step(node: GraphNode) -> StepBase:
    """
    Rebuild a step from a node's data, copying only the fields of its type

    Flow fields (next_step, branch targets) are not derived here.

    Raises:
        GraphSerializationError: If the node type is unknown or the data is invalid
    """
    try:
        step_type = StepType(node.type)
    except ValueError:
        raise GraphSerializationError(schema_error(
            location=f"nodes.{node.id}",
            message=f"Node '{node.id}' has unknown step type '{node.type}'",
            code=ErrorCode.SERIALIZATION_ERROR
        ))

    data = node.data or {}
    payload: Dict[str, Any] = {"id": node.id, "type": step_type.value}

    if data.get("name") is not None:
        payload["name"] = data["name"]
    if data.get("guardrails") is not None:
        payload["guardrails"] = deepcopy(data["guardrails"])

    for field_name in STEP_PAYLOAD_FIELDS[step_type]:
        value = _payload_value(data, field_name)
        if value is not None:
            payload[field_name] = deepcopy(value)

    try:
        return STEP_MODELS[step_type].model_validate(payload)
    except PydanticValidationError as e:
        raise GraphSerializationError(schema_error(
            location=f"nodes.{node.id}",
            message=f"Node '{node.id}' does not form a valid {step_type.value} step",
            code=ErrorCode.SERIALIZATION_ERROR,
            details={"errors": e.errors(include_url=False)}
        ))


# ============================================================================
# FLOW FIELDS
# ============================================================================

def _main_flow_target(graph: WorkflowGraph, node_id: str) -> Optional[str]:
    for edge in graph.edges:
        if edge.source == node_id and not edge.source_handle:
            return edge.target
    return None


def _branch_target(graph: WorkflowGraph, node_id: str, handle: BranchHandle) -> Optional[str]:
    for edge in graph.edges:
        if edge.source == node_id and edge.source_handle == handle.value:
            return edge.target
    return None


def _canonical_next_step(target: Optional[str], following: Optional[str]) -> Optional[str]:
    """
    next_step value that reproduces the edge on rebuild

    The edge to the following step and the last step's edge to end are implied
    by the step order, so they are omitted.
    """
    if target is None:
        return None
    if target == END_NODE_ID:
        return None if following is None else END_NODE_ID
    if target == following:
        return None
    return target


def _with_branches(step: StepBase, graph: WorkflowGraph) -> StepBase:
    then_target = _branch_target(graph, step.id, BranchHandle.THEN)
    else_target = _branch_target(graph, step.id, BranchHandle.ELSE)

    condition = step.condition
    if condition is None:
        if then_target is None and else_target is None:
            return step.model_copy(update={"next_step": None})
        condition = ConditionConfig()

    condition = condition.model_copy(update={"then_step": then_target, "else_step": else_target})
    return step.model_copy(update={"condition": condition, "next_step": None})


# ============================================================================
# GRAPH -> STEPS
# ============================================================================

def serialize_graph(graph: WorkflowGraph) -> List[StepBase]:
    """
    Convert graph to step list

    Every non-sentinel node yields exactly one step, in node order.

    Args:
        graph: Edited workflow graph

    Returns:
        List of step models

    Raises:
        GraphSerializationError: If a node cannot form a step
    """
    step_nodes = list(graph.step_nodes())
    order = [node.id for node in step_nodes]
    steps: List[StepBase] = []

    for index, node in enumerate(step_nodes):
        step = node_to_step(node)

        if step.type == StepType.CONDITION.value:
            step = _with_branches(step, graph)
        else:
            following = order[index + 1] if index + 1 < len(order) else None
            next_step = _canonical_next_step(_main_flow_target(graph, node.id), following)
            step = step.model_copy(update={"next_step": next_step})

        steps.append(step)

    logger.debug(f"Serialized graph: {len(graph.nodes)} nodes -> {len(steps)} steps")

    return steps


def graph_to_definition(definition: WorkflowDefinition, graph: WorkflowGraph) -> WorkflowDefinition:
    """
    Produce the definition to persist: serialized steps plus every node position

    Args:
        definition: Definition the graph was loaded from
        graph: Edited graph

    Returns:
        New WorkflowDefinition (input untouched)
    """
    steps = serialize_graph(graph)
    layout = {
        node.id: Position(x=node.position["x"], y=node.position["y"])
        for node in graph.nodes
    }
    return definition.model_copy(update={"steps": steps, "layout": layout})
