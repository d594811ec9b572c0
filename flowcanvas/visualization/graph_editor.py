"""
Graph Editor
Applies UI edits to a workflow graph

Every operation returns a new graph; the input graph is never mutated.
Edges are the source of truth for flow, so condition branch fields in node
data are kept in sync with the then/else edges as they change.
"""
from typing import Any, Dict, List, Optional, Tuple

from flowcanvas.core.constants import (
    BRANCH_LABELS,
    BranchHandle,
    ConditionOperator,
    END_NODE_ID,
    START_NODE_ID,
    StepType,
)
from flowcanvas.core.logging import get_logger
from flowcanvas.utils.ids import generate_step_id, is_valid_step_id
from flowcanvas.utils.json_utils import parse_json_field
from flowcanvas.validator.errors import GraphEditError, edit_error
from flowcanvas.workflow.graph import (
    GraphEdge,
    GraphNode,
    WorkflowGraph,
    edge_id,
    end_node,
)

logger = get_logger(__name__)

# Data fields holding free-form JSON that the UI edits as text
JSON_FIELDS = frozenset({"tool_args"})

# Fields that identify a node and cannot be changed by an update
IMMUTABLE_FIELDS = frozenset({"id", "type"})

_BRANCH_FIELDS = {
    BranchHandle.THEN: "then_step",
    BranchHandle.ELSE: "else_step",
}

_KNOWN_OPERATORS = frozenset(op.value for op in ConditionOperator)


def _reject(location: str, message: str, suggestion: Optional[str] = None):
    logger.warning(f"Edit rejected: {message}")
    raise GraphEditError(edit_error(location, message, suggestion))


def _require_node(graph: WorkflowGraph, node_id: str) -> GraphNode:
    node = graph.node(node_id)
    if node is None:
        _reject(f"nodes.{node_id}", f"Node '{node_id}' not found")
    return node


def _set_branch_field(node: GraphNode, handle: BranchHandle, target: Optional[str]) -> None:
    condition = dict(node.data.get("condition") or {})
    field_name = _BRANCH_FIELDS[handle]
    if target is None:
        condition.pop(field_name, None)
    else:
        condition[field_name] = target
    node.data["condition"] = condition


def _branch_edge(source: str, target: str, handle: BranchHandle) -> GraphEdge:
    return GraphEdge(
        id=edge_id(source, target, handle.value),
        source=source,
        target=target,
        source_handle=handle.value,
        label=BRANCH_LABELS[handle]
    )


# ============================================================================
# EDIT OPERATIONS
# ============================================================================

class EditOperation:
    """Base class for graph edits"""

    op: str = "edit"

    def apply(self, graph: WorkflowGraph) -> WorkflowGraph:
        """
        Apply edit

        Args:
            graph: Current graph (left untouched)

        Returns:
            Edited copy of the graph

        Raises:
            GraphEditError: If the edit would break the graph
        """
        raise NotImplementedError

    def describe(self) -> Dict[str, Any]:
        """Change record reported back to the UI"""
        return {"op": self.op}


class AddNodeEdit(EditOperation):
    """Drop a new, unconfigured step onto the canvas"""

    op = "add_node"

    def __init__(
        self,
        step_type: str,
        position: Dict[str, float],
        name: Optional[str] = None,
        node_id: Optional[str] = None
    ):
        self.step_type = step_type
        self.position = position
        self.name = name
        self.node_id = node_id
        self.created_id: Optional[str] = None

    def apply(self, graph: WorkflowGraph) -> WorkflowGraph:
        try:
            step_type = StepType(self.step_type)
        except ValueError:
            _reject(
                "step_type",
                f"Unknown step type '{self.step_type}'",
                suggestion=f"Use one of: {', '.join(t.value for t in StepType)}"
            )

        node_id = self.node_id or generate_step_id(step_type.value)
        if not is_valid_step_id(node_id):
            _reject(f"nodes.{node_id}", f"Step ID '{node_id}' is reserved or blank")
        if graph.node(node_id) is not None:
            _reject(f"nodes.{node_id}", f"Node '{node_id}' already exists")

        self.created_id = node_id
        name = self.name or f"New {step_type.value}"
        position = {"x": float(self.position["x"]), "y": float(self.position["y"])}

        result = graph.copy()
        node = GraphNode(
            id=node_id,
            type=step_type.value,
            label=name,
            position=position,
            data={"id": node_id, "type": step_type.value, "name": name}
        )

        # The empty workflow has no end node until its first step appears
        end = result.node(END_NODE_ID)
        if end is None:
            result.nodes.append(node)
            result.nodes.append(end_node({"x": position["x"], "y": position["y"] + 150.0}))
        else:
            result.nodes.insert(result.nodes.index(end), node)

        logger.info(f"Added node '{node_id}' ({step_type.value})")
        return result

    def describe(self) -> Dict[str, Any]:
        return {"op": self.op, "node_id": self.created_id, "step_type": self.step_type}


class RemoveNodeEdit(EditOperation):
    """Delete a step node and the edges touching it"""

    op = "remove_node"

    def __init__(self, node_id: str):
        self.node_id = node_id
        self.removed_edges: List[str] = []

    def apply(self, graph: WorkflowGraph) -> WorkflowGraph:
        node = _require_node(graph, self.node_id)
        if node.is_sentinel:
            _reject(f"nodes.{self.node_id}", f"The {node.type} node cannot be removed")

        result = graph.copy()
        result.nodes = [n for n in result.nodes if n.id != self.node_id]

        kept = []
        self.removed_edges = []
        for edge in result.edges:
            if edge.source == self.node_id or edge.target == self.node_id:
                self.removed_edges.append(edge.id)
                if edge.is_branch and edge.target == self.node_id:
                    source = result.node(edge.source)
                    if source is not None:
                        _set_branch_field(source, BranchHandle(edge.source_handle), None)
            else:
                kept.append(edge)
        result.edges = kept

        logger.info(f"Removed node '{self.node_id}' and {len(self.removed_edges)} edges")
        return result

    def describe(self) -> Dict[str, Any]:
        return {"op": self.op, "node_id": self.node_id, "removed_edges": list(self.removed_edges)}


class UpdateNodeEdit(EditOperation):
    """
    Merge field updates into a node's data

    JSON fields may arrive as text; text that does not parse is discarded and
    the previous value kept. Branch targets in a condition update re-link the
    then/else edges.
    """

    op = "update_node"

    def __init__(self, node_id: str, updates: Dict[str, Any]):
        self.node_id = node_id
        self.updates = updates
        self.rejected_fields: List[str] = []

    def apply(self, graph: WorkflowGraph) -> WorkflowGraph:
        node = _require_node(graph, self.node_id)
        if node.is_sentinel:
            _reject(f"nodes.{self.node_id}", f"The {node.type} node has no editable data")

        for field_name in IMMUTABLE_FIELDS & set(self.updates):
            if self.updates[field_name] != node.data.get(field_name, getattr(node, field_name)):
                _reject(
                    f"nodes.{self.node_id}.{field_name}",
                    f"Field '{field_name}' cannot be changed",
                    suggestion="Delete the node and add a new one instead"
                )

        result = graph.copy()
        target = result.node(self.node_id)
        self.rejected_fields = []

        for field_name, value in self.updates.items():
            if field_name in IMMUTABLE_FIELDS:
                continue
            if field_name in JSON_FIELDS:
                value, accepted = parse_json_field(value, target.data.get(field_name), field_name)
                if not accepted:
                    self.rejected_fields.append(field_name)
                    continue
            if field_name == "condition" and target.type == StepType.CONDITION.value:
                self._update_condition(result, target, value or {})
                continue
            if value is None:
                target.data.pop(field_name, None)
            else:
                target.data[field_name] = value

        if "name" in self.updates:
            target.label = self.updates["name"] or target.id

        logger.debug(f"Updated node '{self.node_id}': {sorted(self.updates)}")
        return result

    def _update_condition(self, graph: WorkflowGraph, node: GraphNode, updates: Dict[str, Any]) -> None:
        operator = updates.get("operator")
        if operator is not None and operator not in _KNOWN_OPERATORS:
            logger.warning(f"Condition '{node.id}' uses unknown operator '{operator}', kept as given")

        condition = dict(node.data.get("condition") or {})
        for key, value in updates.items():
            if key in _BRANCH_FIELDS.values():
                continue
            condition[key] = value
        node.data["condition"] = condition

        for handle, field_name in _BRANCH_FIELDS.items():
            if field_name not in updates:
                continue
            new_target = updates[field_name]
            if new_target:
                _link_branch(graph, node, handle, new_target)
            else:
                _unlink_branch(graph, node, handle)

    def describe(self) -> Dict[str, Any]:
        return {
            "op": self.op,
            "node_id": self.node_id,
            "fields": sorted(self.updates),
            "rejected_fields": list(self.rejected_fields)
        }


def _link_branch(graph: WorkflowGraph, node: GraphNode, handle: BranchHandle, target: str) -> None:
    if graph.node(target) is None:
        _reject(
            f"nodes.{node.id}.condition.{_BRANCH_FIELDS[handle]}",
            f"Branch target '{target}' not found"
        )
    if target == START_NODE_ID or target == node.id:
        _reject(
            f"nodes.{node.id}.condition.{_BRANCH_FIELDS[handle]}",
            f"Condition '{node.id}' cannot branch to '{target}'"
        )
    _unlink_branch(graph, node, handle)
    graph.edges.append(_branch_edge(node.id, target, handle))
    _set_branch_field(node, handle, target)


def _unlink_branch(graph: WorkflowGraph, node: GraphNode, handle: BranchHandle) -> None:
    graph.edges = [
        e for e in graph.edges
        if not (e.source == node.id and e.source_handle == handle.value)
    ]
    _set_branch_field(node, handle, None)


class ConnectEdit(EditOperation):
    """
    Draw an edge between two nodes

    Condition nodes connect through a then/else handle, every other node
    through its single unlabeled output. An existing edge on the same output
    is replaced.
    """

    op = "connect"

    def __init__(self, source: str, target: str, source_handle: Optional[str] = None):
        self.source = source
        self.target = target
        self.source_handle = source_handle or None
        self.edge_id: Optional[str] = None

    def apply(self, graph: WorkflowGraph) -> WorkflowGraph:
        location = f"edges.{self.source}->{self.target}"
        source = _require_node(graph, self.source)
        _require_node(graph, self.target)

        if self.source == self.target:
            _reject(location, "A node cannot connect to itself")
        if self.target == START_NODE_ID:
            _reject(location, "The start node cannot have incoming edges")
        if self.source == END_NODE_ID:
            _reject(location, "The end node cannot have outgoing edges")

        result = graph.copy()
        node = result.node(self.source)

        if source.type == StepType.CONDITION.value:
            try:
                handle = BranchHandle(self.source_handle)
            except ValueError:
                _reject(
                    location,
                    f"Condition '{self.source}' must connect through 'then' or 'else'",
                    suggestion="Drag from the Yes or No handle"
                )
            _link_branch(result, node, handle, self.target)
            self.edge_id = edge_id(self.source, self.target, handle.value)
        else:
            if self.source_handle:
                _reject(location, f"Only condition nodes have '{self.source_handle}' handles")
            result.edges = [
                e for e in result.edges
                if not (e.source == self.source and not e.source_handle)
            ]
            self.edge_id = edge_id(self.source, self.target)
            result.edges.append(GraphEdge(id=self.edge_id, source=self.source, target=self.target))

        logger.debug(f"Connected {self.edge_id}")
        return result

    def describe(self) -> Dict[str, Any]:
        return {"op": self.op, "edge_id": self.edge_id}


class DisconnectEdit(EditOperation):
    """Delete an edge"""

    op = "disconnect"

    def __init__(self, edge_id: str):
        self.edge_id = edge_id

    def apply(self, graph: WorkflowGraph) -> WorkflowGraph:
        edge = next((e for e in graph.edges if e.id == self.edge_id), None)
        if edge is None:
            _reject(f"edges.{self.edge_id}", f"Edge '{self.edge_id}' not found")

        result = graph.copy()
        result.edges = [e for e in result.edges if e.id != self.edge_id]

        if edge.is_branch:
            source = result.node(edge.source)
            if source is not None:
                _set_branch_field(source, BranchHandle(edge.source_handle), None)

        logger.debug(f"Disconnected {self.edge_id}")
        return result

    def describe(self) -> Dict[str, Any]:
        return {"op": self.op, "edge_id": self.edge_id}


class MoveNodeEdit(EditOperation):
    """Drag a node to a new position"""

    op = "move_node"

    def __init__(self, node_id: str, position: Dict[str, float]):
        self.node_id = node_id
        self.position = position

    def apply(self, graph: WorkflowGraph) -> WorkflowGraph:
        _require_node(graph, self.node_id)
        result = graph.copy()
        result.node(self.node_id).position = {
            "x": float(self.position["x"]),
            "y": float(self.position["y"])
        }
        return result

    def describe(self) -> Dict[str, Any]:
        return {"op": self.op, "node_id": self.node_id, "position": dict(self.position)}


# ============================================================================
# GRAPH EDITOR
# ============================================================================

class GraphEditor:
    """
    Applies edit batches to a workflow graph

    Usage:
        editor = GraphEditor()
        graph, changes = editor.apply_edits(graph, [
            AddNodeEdit("agent", {"x": 300, "y": 600}),
            ConnectEdit("step_2", "agent_1a2b3c4d5e6f"),
        ])
    """

    def apply_edit(self, graph: WorkflowGraph, edit: EditOperation) -> Tuple[WorkflowGraph, Dict[str, Any]]:
        """Apply a single edit"""
        result = edit.apply(graph)
        return result, edit.describe()

    def apply_edits(
        self,
        graph: WorkflowGraph,
        edits: List[EditOperation]
    ) -> Tuple[WorkflowGraph, List[Dict[str, Any]]]:
        """
        Apply edits in order

        A rejected edit aborts the batch; the caller's graph is unchanged.

        Args:
            graph: Current graph
            edits: Edit operations

        Returns:
            (edited graph, change records)

        Raises:
            GraphEditError: If any edit is rejected
        """
        changes = []
        for edit in edits:
            graph, change = self.apply_edit(graph, edit)
            changes.append(change)

        logger.info(f"Applied {len(changes)} edits")
        return graph, changes


def parse_ui_edit(payload: Dict[str, Any]) -> EditOperation:
    """
    Convert a UI edit message into an edit operation

    Supported types: addNode, removeNode, updateNode, addEdge, removeEdge,
    moveNode.

    Raises:
        GraphEditError: If the edit type is unknown or a field is missing
    """
    edit_type = payload.get("type")
    try:
        if edit_type == "addNode":
            return AddNodeEdit(
                step_type=payload["stepType"],
                position=payload["position"],
                name=payload.get("name"),
                node_id=payload.get("nodeId")
            )
        if edit_type == "removeNode":
            return RemoveNodeEdit(payload["nodeId"])
        if edit_type == "updateNode":
            return UpdateNodeEdit(payload["nodeId"], payload.get("updates") or {})
        if edit_type == "addEdge":
            return ConnectEdit(payload["source"], payload["target"], payload.get("sourceHandle"))
        if edit_type == "removeEdge":
            return DisconnectEdit(payload["edgeId"])
        if edit_type == "moveNode":
            return MoveNodeEdit(payload["nodeId"], payload["position"])
    except KeyError as e:
        _reject(f"edits.{edit_type}", f"Edit '{edit_type}' is missing field {e}")

    _reject("edits.type", f"Unknown edit type '{edit_type}'")
