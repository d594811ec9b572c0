"""
Validation Rules
Step list references and graph shape checks (no external calls)
"""
from collections import deque
from typing import Dict, List, Sequence, Set

from flowcanvas.core.constants import (
    BranchHandle,
    END_NODE_ID,
    ErrorCode,
    RESERVED_STEP_IDS,
    START_NODE_ID,
    StepType,
)
from flowcanvas.core.logging import get_logger
from flowcanvas.schemas.steps import StepBase
from flowcanvas.validator.completeness import is_step_complete
from flowcanvas.validator.errors import (
    GraphModelException,
    ValidationError,
    ValidationResult,
    completeness_warning,
    ignored_field_warning,
    raise_for_error,
    reference_error,
    schema_error,
    topology_error,
)
from flowcanvas.workflow.graph import WorkflowGraph
from flowcanvas.workflow.serializer import node_to_step

logger = get_logger(__name__)


# ============================================================================
# STEP LIST
# ============================================================================

def validate_step_ids(steps: Sequence[StepBase]) -> List[ValidationError]:
    """
    Ensure step IDs are unique and do not collide with sentinel IDs
    """
    errors = []
    seen: Set[str] = set()

    for index, step in enumerate(steps):
        if step.id in RESERVED_STEP_IDS:
            errors.append(schema_error(
                location=f"steps[{index}].id",
                message=f"Step ID '{step.id}' is reserved",
                code=ErrorCode.RESERVED_STEP_ID,
                suggestion="Rename the step; 'start' and 'end' are used by the editor"
            ))
        if step.id in seen:
            errors.append(schema_error(
                location=f"steps[{index}].id",
                message=f"Duplicate step ID: '{step.id}'",
                code=ErrorCode.DUPLICATE_STEP_ID,
                suggestion="Each step must have a unique ID"
            ))
        seen.add(step.id)

    return errors


def validate_step_references(steps: Sequence[StepBase]) -> List[ValidationError]:
    """
    Ensure next_step/then_step/else_step point to existing steps (or end)
    """
    errors = []
    valid_targets: Set[str] = {step.id for step in steps} | {END_NODE_ID}

    for index, step in enumerate(steps):
        references = {"next_step": step.next_step}
        if step.type == StepType.CONDITION.value and step.condition is not None:
            references["condition.then_step"] = step.condition.then_step
            references["condition.else_step"] = step.condition.else_step

        for field_path, target in references.items():
            if target is None or target in valid_targets:
                continue
            errors.append(reference_error(
                location=f"steps[{index}].{field_path}",
                message=f"Step '{step.id}' references unknown step '{target}' in {field_path}",
                missing_ref=target,
                suggestion=f"Add a step with ID '{target}' or clear {field_path}"
            ))

    return errors


def validate_ignored_fields(steps: Sequence[StepBase]) -> List[ValidationError]:
    """
    Warn about a next_step on a condition

    The edge is drawn on the canvas, but saving keeps only then/else on a condition.
    """
    return [
        ignored_field_warning(
            location=f"steps[{index}].next_step",
            message=f"Condition '{step.id}' has next_step '{step.next_step}', which is not kept on save",
            suggestion="Set condition.then_step or condition.else_step instead"
        )
        for index, step in enumerate(steps)
        if step.type == StepType.CONDITION.value and step.next_step
    ]


def validate_steps(steps: Sequence[StepBase]) -> ValidationResult:
    """Collect all step list errors and warnings"""
    errors = (
        validate_step_ids(steps)
        + validate_step_references(steps)
        + validate_ignored_fields(steps)
    )
    return ValidationResult.from_errors(errors)


def ensure_valid_steps(steps: Sequence[StepBase]) -> None:
    """
    Raise on the first blocking step list error

    Raises:
        DuplicateStepId, ReservedStepId, DanglingStepReference
    """
    result = validate_steps(steps)
    if result.has_errors:
        logger.warning(f"Step list rejected: {result.codes()}")
        raise_for_error(result.errors[0])


# ============================================================================
# GRAPH SHAPE
# ============================================================================

def _validate_sentinels(graph: WorkflowGraph) -> List[ValidationError]:
    errors = []
    starts = [n for n in graph.nodes if n.type == "start"]
    ends = [n for n in graph.nodes if n.type == "end"]
    has_steps = any(True for _ in graph.step_nodes())

    if len(starts) != 1:
        errors.append(topology_error(
            location="nodes",
            message=f"Graph must have exactly one start node, found {len(starts)}",
            code=ErrorCode.SENTINEL_ERROR
        ))
    # The empty workflow is a lone start node
    if has_steps and len(ends) != 1:
        errors.append(topology_error(
            location="nodes",
            message=f"Graph must have exactly one end node, found {len(ends)}",
            code=ErrorCode.SENTINEL_ERROR
        ))

    for node in starts:
        if graph.incoming(node.id):
            errors.append(topology_error(
                location=f"nodes.{node.id}",
                message="Start node must not have incoming edges",
                code=ErrorCode.SENTINEL_ERROR
            ))
    for node in ends:
        if graph.outgoing(node.id):
            errors.append(topology_error(
                location=f"nodes.{node.id}",
                message="End node must not have outgoing edges",
                code=ErrorCode.SENTINEL_ERROR
            ))

    return errors


def _validate_edges(graph: WorkflowGraph) -> List[ValidationError]:
    errors = []
    node_types: Dict[str, str] = {node.id: node.type for node in graph.nodes}
    handles = {h.value for h in BranchHandle}

    for edge in graph.edges:
        for endpoint in (edge.source, edge.target):
            if endpoint not in node_types:
                errors.append(topology_error(
                    location=f"edges.{edge.id}",
                    message=f"Edge '{edge.id}' references unknown node '{endpoint}'",
                    code=ErrorCode.UNKNOWN_NODE
                ))

    for node in graph.nodes:
        outgoing = graph.outgoing(node.id)
        main_flow = [e for e in outgoing if not e.source_handle]
        branches = [e for e in outgoing if e.source_handle]

        if node.type == StepType.CONDITION.value:
            if len(main_flow) > 1:
                errors.append(topology_error(
                    location=f"nodes.{node.id}",
                    message=f"Condition '{node.id}' has {len(main_flow)} unlabeled outgoing edges, at most one allowed",
                    code=ErrorCode.EDGE_SHAPE_ERROR,
                    suggestion="Connect condition nodes through their then/else handles"
                ))
            used = [e.source_handle for e in branches]
            if any(h not in handles for h in used) or len(used) != len(set(used)):
                errors.append(topology_error(
                    location=f"nodes.{node.id}",
                    message=f"Condition '{node.id}' must have at most one 'then' and one 'else' edge",
                    code=ErrorCode.EDGE_SHAPE_ERROR,
                    details={"handles": used}
                ))
        else:
            if branches:
                errors.append(topology_error(
                    location=f"nodes.{node.id}",
                    message=f"Only condition nodes may have then/else edges ('{node.id}' is {node.type})",
                    code=ErrorCode.EDGE_SHAPE_ERROR
                ))
            if len(main_flow) > 1:
                errors.append(topology_error(
                    location=f"nodes.{node.id}",
                    message=f"Node '{node.id}' has {len(main_flow)} outgoing edges, at most one allowed",
                    code=ErrorCode.EDGE_SHAPE_ERROR
                ))

    return errors


def find_unreachable(graph: WorkflowGraph) -> List[str]:
    """Node IDs (other than start) not reachable from start, in node order"""
    adjacency: Dict[str, List[str]] = {node.id: [] for node in graph.nodes}
    for edge in graph.edges:
        if edge.source in adjacency:
            adjacency[edge.source].append(edge.target)

    if START_NODE_ID not in adjacency:
        return [node_id for node_id in adjacency]

    visited = {START_NODE_ID}
    queue = deque([START_NODE_ID])
    while queue:
        current = queue.popleft()
        for neighbor in adjacency.get(current, []):
            if neighbor not in visited:
                visited.add(neighbor)
                queue.append(neighbor)

    return [node.id for node in graph.nodes if node.id not in visited]


def _validate_reachability(graph: WorkflowGraph) -> List[ValidationError]:
    if not any(True for _ in graph.step_nodes()):
        return []
    return [
        topology_error(
            location=f"nodes.{node_id}",
            message=f"Node '{node_id}' is not reachable from start",
            code=ErrorCode.UNREACHABLE_NODE,
            suggestion="Connect the node into the flow or delete it"
        )
        for node_id in find_unreachable(graph)
    ]


def _validate_step_payloads(graph: WorkflowGraph) -> List[ValidationError]:
    issues = []
    for node in graph.step_nodes():
        try:
            step = node_to_step(node)
        except GraphModelException as e:
            issues.append(e.error)
            continue
        if not is_step_complete(step):
            issues.append(completeness_warning(
                location=f"nodes.{node.id}",
                message=f"Step '{node.id}' ({node.type}) is not fully configured"
            ))
    return issues


def validate_graph(graph: WorkflowGraph) -> ValidationResult:
    """
    Validate a workflow graph

    Checks sentinels, outgoing edge shape, dangling edges, reachability
    from start, and reports incomplete steps as warnings.

    Args:
        graph: Workflow graph

    Returns:
        ValidationResult
    """
    errors = (
        _validate_sentinels(graph)
        + _validate_edges(graph)
        + _validate_reachability(graph)
        + _validate_step_payloads(graph)
    )
    result = ValidationResult.from_errors(errors)

    logger.info(
        f"Graph validation: {result.error_count} errors, {result.warning_count} warnings"
    )

    return result
