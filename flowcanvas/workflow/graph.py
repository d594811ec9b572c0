"""
Graph Structures
Node/edge representation of a workflow used by the visual editor
"""
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from flowcanvas.core.constants import (
    BranchHandle,
    END_NODE_ID,
    SENTINEL_NODE_TYPES,
    START_NODE_ID,
)

_BRANCH_HANDLES = frozenset(handle.value for handle in BranchHandle)


# ============================================================================
# GRAPH STRUCTURES
# ============================================================================

@dataclass
class GraphNode:
    """
    Graph node representing a workflow step or a start/end sentinel

    Attributes:
        id: Unique node ID (equals the step ID)
        type: Step type, or "start"/"end"
        label: Display label
        position: Top-left corner {x, y}
        data: Sparse step payload (empty for sentinels)
        source_position: Side where outgoing edges attach (set by layout)
        target_position: Side where incoming edges attach (set by layout)
    """
    id: str
    type: str
    label: str
    position: Dict[str, float]
    data: Dict[str, Any] = field(default_factory=dict)
    source_position: Optional[str] = None
    target_position: Optional[str] = None

    @property
    def is_sentinel(self) -> bool:
        return self.type in SENTINEL_NODE_TYPES

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "position": dict(self.position),
            "data": deepcopy(self.data)
        }
        if self.source_position:
            result["sourcePosition"] = self.source_position
        if self.target_position:
            result["targetPosition"] = self.target_position
        return result

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "GraphNode":
        position = payload.get("position") or {"x": 0.0, "y": 0.0}
        return cls(
            id=payload["id"],
            type=(payload.get("data") or {}).get("type") or payload.get("type", ""),
            label=payload.get("label") or payload["id"],
            position={"x": float(position["x"]), "y": float(position["y"])},
            data=deepcopy(payload.get("data") or {}),
            source_position=payload.get("sourcePosition"),
            target_position=payload.get("targetPosition")
        )


@dataclass
class GraphEdge:
    """
    Graph edge representing workflow flow

    Attributes:
        id: Deterministic edge ID (see edge_id)
        source: Source node ID
        target: Target node ID
        source_handle: "then"/"else" for condition branches, None for main flow
        label: Optional edge label
    """
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    label: Optional[str] = None

    @property
    def is_branch(self) -> bool:
        """Condition branch edge (then/else handle)"""
        return self.source_handle in _BRANCH_HANDLES

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "id": self.id,
            "source": self.source,
            "target": self.target
        }
        if self.source_handle:
            result["sourceHandle"] = self.source_handle
        if self.label:
            result["label"] = self.label
        return result

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "GraphEdge":
        source_handle = payload.get("sourceHandle", payload.get("source_handle"))
        return cls(
            id=payload.get("id") or edge_id(payload["source"], payload["target"], source_handle),
            source=payload["source"],
            target=payload["target"],
            source_handle=source_handle or None,
            label=payload.get("label")
        )


@dataclass
class WorkflowGraph:
    """
    Complete workflow graph

    Attributes:
        nodes: Graph nodes in editor order
        edges: Graph edges
    """
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    def node(self, node_id: str) -> Optional[GraphNode]:
        """Get node by ID"""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def step_nodes(self) -> Iterator[GraphNode]:
        """Nodes that carry a step (sentinels skipped)"""
        return (node for node in self.nodes if not node.is_sentinel)

    def outgoing(self, node_id: str) -> List[GraphEdge]:
        return [edge for edge in self.edges if edge.source == node_id]

    def incoming(self, node_id: str) -> List[GraphEdge]:
        return [edge for edge in self.edges if edge.target == node_id]

    def positions(self) -> Dict[str, Dict[str, float]]:
        """Map of node ID to position"""
        return {node.id: dict(node.position) for node in self.nodes}

    def copy(self) -> "WorkflowGraph":
        return deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges]
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "WorkflowGraph":
        return cls(
            nodes=[GraphNode.from_dict(n) for n in payload.get("nodes", [])],
            edges=[GraphEdge.from_dict(e) for e in payload.get("edges", [])]
        )


# ============================================================================
# HELPERS
# ============================================================================

def edge_id(source: str, target: str, source_handle: Optional[str] = None) -> str:
    """
    Deterministic edge ID

    Examples:
        >>> edge_id("a", "b")
        'a-b'
        >>> edge_id("cond", "b", "then")
        'cond-then-b'
    """
    if source_handle:
        return f"{source}-{source_handle}-{target}"
    return f"{source}-{target}"


def start_node(position: Dict[str, float]) -> GraphNode:
    return GraphNode(id=START_NODE_ID, type="start", label="Start", position=dict(position))


def end_node(position: Dict[str, float]) -> GraphNode:
    return GraphNode(id=END_NODE_ID, type="end", label="End", position=dict(position))
