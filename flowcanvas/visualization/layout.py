"""
Layout Algorithms
Auto-layout for positioning workflow graph nodes

Two strategies:
- standard: layered (Sugiyama-style) layout over every edge, vertical or horizontal
- hybrid: vertical backbone laid out along main-flow edges, with forward
  condition branches shifted sideways (then -> right, else -> left)
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from flowcanvas.core.constants import (
    BranchHandle,
    LayoutDirection,
    LayoutStrategy,
    PortSide,
    START_NODE_ID,
    StepType,
)
from flowcanvas.core.logging import get_logger
from flowcanvas.workflow.graph import WorkflowGraph

logger = get_logger(__name__)


# ============================================================================
# LAYOUT CONSTANTS
# ============================================================================

# Node box dimensions
NODE_WIDTH = 250
NODE_HEIGHT = 100

# Horizontal shift applied to forward branch targets in hybrid layout
BRANCH_OFFSET = 300.0

# Barycenter sweeps (each sweep = one pass down + one pass up)
ORDERING_SWEEPS = 4


@dataclass(frozen=True)
class LayoutSpacing:
    """
    Separation constants

    Attributes:
        node_sep: Gap between neighbouring nodes of one rank
        rank_sep: Gap between consecutive ranks
        margin_x: Left margin
        margin_y: Top margin
    """
    node_sep: float
    rank_sep: float
    margin_x: float
    margin_y: float


VERTICAL_SPACING = LayoutSpacing(node_sep=100, rank_sep=75, margin_x=50, margin_y=50)
HORIZONTAL_SPACING = LayoutSpacing(node_sep=150, rank_sep=200, margin_x=50, margin_y=50)
# Wider node gap leaves room for the branch offsets
HYBRID_SPACING = LayoutSpacing(node_sep=150, rank_sep=75, margin_x=100, margin_y=50)


@dataclass
class NodePlacement:
    """
    Computed placement of one node

    Attributes:
        rank: Layer index (depth along the flow direction)
        order: Index within the layer
        x: Top-left x
        y: Top-left y
    """
    rank: int
    order: int
    x: float
    y: float


# (source, target, is_branch, is_else)
_Edge = Tuple[str, str, bool, bool]


def rank_spacing(direction: LayoutDirection = LayoutDirection.VERTICAL,
                 spacing: Optional[LayoutSpacing] = None) -> float:
    """Distance between the top-left corners of two consecutive ranks"""
    direction = LayoutDirection(direction)
    spacing = spacing or _default_spacing(direction)
    if direction == LayoutDirection.HORIZONTAL:
        return NODE_WIDTH + spacing.rank_sep
    return NODE_HEIGHT + spacing.rank_sep


def _default_spacing(direction: LayoutDirection) -> LayoutSpacing:
    if direction == LayoutDirection.HORIZONTAL:
        return HORIZONTAL_SPACING
    return VERTICAL_SPACING


# ============================================================================
# CYCLE BREAKING
# ============================================================================

def _collect_edges(graph: WorkflowGraph) -> List[_Edge]:
    """Edges between known nodes, self-loops dropped"""
    known = set(graph.node_ids())
    edges = []
    for edge in graph.edges:
        if edge.source not in known or edge.target not in known:
            logger.debug(f"Layout ignores edge to unknown node: {edge.id}")
            continue
        if edge.source == edge.target:
            continue
        edges.append((
            edge.source,
            edge.target,
            edge.is_branch,
            edge.source_handle == BranchHandle.ELSE.value
        ))
    return edges


def _orient_edges(node_ids: List[str], edges: List[_Edge]) -> List[_Edge]:
    """
    Make the edge set acyclic by reversing DFS back edges

    DFS starts from the start node so loop-back edges (retry branches)
    are the ones reversed.
    """
    adjacency: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}
    for source, target, _, _ in edges:
        adjacency[source].append(target)

    state: Dict[str, int] = {}
    back_edges: Set[Tuple[str, str]] = set()

    roots = ([START_NODE_ID] if START_NODE_ID in adjacency else []) + node_ids
    for root in roots:
        if root in state:
            continue
        state[root] = 1
        stack = [(root, iter(adjacency[root]))]
        while stack:
            node_id, neighbors = stack[-1]
            for neighbor in neighbors:
                if state.get(neighbor) == 1:
                    back_edges.add((node_id, neighbor))
                elif neighbor not in state:
                    state[neighbor] = 1
                    stack.append((neighbor, iter(adjacency[neighbor])))
                    break
            else:
                state[node_id] = 2
                stack.pop()

    oriented = []
    seen: Set[Tuple[str, str]] = set()
    for source, target, is_branch, is_else in edges:
        if (source, target) in back_edges:
            source, target = target, source
        if (source, target) in seen:
            continue
        seen.add((source, target))
        oriented.append((source, target, is_branch, is_else))
    return oriented


# ============================================================================
# RANK ASSIGNMENT
# ============================================================================

def _assign_ranks(node_ids: List[str], edges: List[_Edge]) -> Dict[str, int]:
    """
    Longest-path ranking, then sources pulled down next to their successors

    Args:
        node_ids: Nodes in graph order
        edges: Acyclic edges

    Returns:
        node_id -> rank (0 = top)
    """
    preds: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}
    succs: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}
    for source, target, _, _ in edges:
        preds[target].append(source)
        succs[source].append(target)

    in_degree = {node_id: len(preds[node_id]) for node_id in node_ids}
    ready = [node_id for node_id in node_ids if in_degree[node_id] == 0]
    topo_order = []
    while ready:
        current = ready.pop(0)
        topo_order.append(current)
        for neighbor in succs[current]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                ready.append(neighbor)

    ranks: Dict[str, int] = {}
    for node_id in topo_order:
        ranks[node_id] = max((ranks[p] + 1 for p in preds[node_id]), default=0)

    # Start stays on top
    for node_id in reversed(topo_order):
        if node_id != START_NODE_ID and not preds[node_id] and succs[node_id]:
            ranks[node_id] = min(ranks[s] for s in succs[node_id]) - 1

    if ranks:
        lowest = min(ranks.values())
        ranks = {node_id: rank - lowest for node_id, rank in ranks.items()}
    return ranks


# ============================================================================
# ORDERING WITHIN RANKS
# ============================================================================

def _initial_layers(
    node_ids: List[str],
    ranks: Dict[str, int],
    edges: List[_Edge]
) -> Dict[int, List[str]]:
    """
    DFS discovery order from start; else branches before main flow before then branches
    """
    adjacency: Dict[str, List[Tuple[int, str]]] = {node_id: [] for node_id in node_ids}
    for source, target, is_branch, is_else in edges:
        priority = 0 if is_else else (2 if is_branch else 1)
        adjacency[source].append((priority, target))
    for neighbors in adjacency.values():
        neighbors.sort(key=lambda item: item[0])

    layers: Dict[int, List[str]] = {}
    visited: Set[str] = set()

    roots = ([START_NODE_ID] if START_NODE_ID in adjacency else []) + node_ids
    for root in roots:
        if root in visited:
            continue
        # Reversed push keeps the same preorder as a recursive walk
        stack = [root]
        while stack:
            node_id = stack.pop()
            if node_id in visited:
                continue
            visited.add(node_id)
            layers.setdefault(ranks[node_id], []).append(node_id)
            for _, neighbor in reversed(adjacency[node_id]):
                if neighbor not in visited:
                    stack.append(neighbor)

    return layers


def _positions_in_layers(layers: Dict[int, List[str]]) -> Dict[str, int]:
    return {node_id: index for layer in layers.values() for index, node_id in enumerate(layer)}


def _count_crossings(
    layers: Dict[int, List[str]],
    ranks: Dict[str, int],
    edges: List[Tuple[str, str]]
) -> int:
    """Crossings between edges that span the same pair of ranks"""
    positions = _positions_in_layers(layers)
    spans: Dict[Tuple[int, int], List[Tuple[str, str]]] = {}
    for source, target in edges:
        spans.setdefault((ranks[source], ranks[target]), []).append((source, target))

    crossings = 0
    for group in spans.values():
        for i, (u1, v1) in enumerate(group):
            for u2, v2 in group[i + 1:]:
                if (positions[u1] - positions[u2]) * (positions[v1] - positions[v2]) < 0:
                    crossings += 1
    return crossings


def _sort_by_barycenter(layer: List[str], neighbors: Dict[str, List[str]], positions: Dict[str, int]):
    """Reorder a layer in place; nodes without neighbours keep their slot"""
    keyed = []
    for index, node_id in enumerate(layer):
        neighbor_positions = [positions[n] for n in neighbors.get(node_id, []) if n in positions]
        if neighbor_positions:
            barycenter = sum(neighbor_positions) / len(neighbor_positions)
        else:
            barycenter = float(index)
        keyed.append((barycenter, index, node_id))
    keyed.sort()
    layer[:] = [node_id for _, _, node_id in keyed]


def _reduce_crossings(
    layers: Dict[int, List[str]],
    ranks: Dict[str, int],
    edges: List[Tuple[str, str]],
    sweeps: int = ORDERING_SWEEPS
) -> Dict[int, List[str]]:
    """
    Barycenter heuristic, alternating downward and upward sweeps

    The ordering with the fewest crossings seen is kept.
    """
    upper: Dict[str, List[str]] = {}
    lower: Dict[str, List[str]] = {}
    for source, target in edges:
        upper.setdefault(target, []).append(source)
        lower.setdefault(source, []).append(target)

    rank_keys = sorted(layers)
    current = {rank: list(layer) for rank, layer in layers.items()}
    best = {rank: list(layer) for rank, layer in current.items()}
    best_crossings = _count_crossings(best, ranks, edges)

    positions = _positions_in_layers(current)

    def resort(rank: int, neighbors: Dict[str, List[str]]):
        _sort_by_barycenter(current[rank], neighbors, positions)
        for index, node_id in enumerate(current[rank]):
            positions[node_id] = index

    for _ in range(sweeps):
        for rank in rank_keys[1:]:
            resort(rank, upper)
        for rank in reversed(rank_keys[:-1]):
            resort(rank, lower)

        crossings = _count_crossings(current, ranks, edges)
        if crossings < best_crossings:
            best = {rank: list(layer) for rank, layer in current.items()}
            best_crossings = crossings

    return best


# ============================================================================
# COORDINATE ASSIGNMENT
# ============================================================================

def _assign_order_coordinates(
    layers: Dict[int, List[str]],
    edges: List[Tuple[str, str]],
    anchor_edges: List[Tuple[str, str]],
    step: float
) -> Dict[str, float]:
    """
    Center coordinate of each node along the in-rank axis

    Each node aims at the mean of its already placed upper neighbours
    (anchor edges are used only when it has none), then nodes are pushed
    apart to keep `step` between centers and the rank is shifted back
    toward its targets.
    """
    upper: Dict[str, List[str]] = {}
    anchors: Dict[str, List[str]] = {}
    for source, target in edges:
        upper.setdefault(target, []).append(source)
    for source, target in anchor_edges:
        anchors.setdefault(target, []).append(source)

    centers: Dict[str, float] = {}
    for rank in sorted(layers):
        layer = layers[rank]
        desired: List[Optional[float]] = []
        for node_id in layer:
            placed = [centers[n] for n in upper.get(node_id, []) if n in centers]
            if not placed:
                placed = [centers[n] for n in anchors.get(node_id, []) if n in centers]
            desired.append(sum(placed) / len(placed) if placed else None)

        coordinates: List[float] = []
        previous: Optional[float] = None
        for target in desired:
            if target is None:
                coordinate = previous + step if previous is not None else 0.0
            elif previous is None:
                coordinate = target
            else:
                coordinate = max(target, previous + step)
            coordinates.append(coordinate)
            previous = coordinate

        deltas = [t - c for t, c in zip(desired, coordinates) if t is not None]
        shift = sum(deltas) / len(deltas) if deltas else 0.0

        for node_id, coordinate in zip(layer, coordinates):
            centers[node_id] = coordinate + shift

    return centers


def _compute_placements(
    graph: WorkflowGraph,
    direction: LayoutDirection,
    spacing: LayoutSpacing,
    main_flow_only: bool = False
) -> Dict[str, NodePlacement]:
    """
    Layered layout core

    Args:
        graph: Workflow graph (not modified)
        direction: Rank direction
        spacing: Separation constants
        main_flow_only: Order and align along main-flow edges only; branch
            edges still constrain ranks and anchor nodes without a main-flow parent

    Returns:
        node_id -> NodePlacement
    """
    node_ids = graph.node_ids()
    if not node_ids:
        return {}

    oriented = _orient_edges(node_ids, _collect_edges(graph))
    ranks = _assign_ranks(node_ids, oriented)

    if main_flow_only:
        order_edges = [(s, t) for s, t, is_branch, _ in oriented if not is_branch]
        anchor_edges = [(s, t) for s, t, is_branch, _ in oriented if is_branch]
    else:
        order_edges = [(s, t) for s, t, _, _ in oriented]
        anchor_edges = []

    layers = _initial_layers(node_ids, ranks, oriented)
    layers = _reduce_crossings(layers, ranks, order_edges)

    horizontal = direction == LayoutDirection.HORIZONTAL
    breadth = NODE_HEIGHT if horizontal else NODE_WIDTH
    centers = _assign_order_coordinates(layers, order_edges, anchor_edges, breadth + spacing.node_sep)

    lowest = min(centers.values())
    step_between_ranks = rank_spacing(direction, spacing)
    placements: Dict[str, NodePlacement] = {}

    for rank, layer in layers.items():
        for order, node_id in enumerate(layer):
            across = centers[node_id] - lowest
            along = rank * step_between_ranks
            if horizontal:
                x, y = spacing.margin_x + along, spacing.margin_y + across
            else:
                x, y = spacing.margin_x + across, spacing.margin_y + along
            placements[node_id] = NodePlacement(rank=rank, order=order, x=x, y=y)

    return placements


def _with_positions(
    graph: WorkflowGraph,
    positions: Dict[str, Dict[str, float]],
    direction: LayoutDirection
) -> WorkflowGraph:
    """Copy of the graph with new positions and port sides"""
    laid_out = graph.copy()
    horizontal = direction == LayoutDirection.HORIZONTAL

    for node in laid_out.nodes:
        if node.id in positions:
            node.position = positions[node.id]
        node.target_position = (PortSide.LEFT if horizontal else PortSide.TOP).value
        node.source_position = (PortSide.RIGHT if horizontal else PortSide.BOTTOM).value

    return laid_out


# ============================================================================
# STANDARD LAYOUT
# ============================================================================

def layered_layout(
    graph: WorkflowGraph,
    direction: LayoutDirection = LayoutDirection.VERTICAL,
    spacing: Optional[LayoutSpacing] = None
) -> WorkflowGraph:
    """
    Apply layered layout over every edge

    Best for: Inspecting the full branch structure

    Args:
        graph: Workflow graph
        direction: vertical (ranks top to bottom) or horizontal (left to right)
        spacing: Separation constants (defaults depend on direction)

    Returns:
        New graph with positioned nodes
    """
    direction = LayoutDirection(direction)
    spacing = spacing or _default_spacing(direction)
    logger.debug(f"Applying layered layout ({direction.value})")

    placements = _compute_placements(graph, direction, spacing)
    positions = {node_id: {"x": p.x, "y": p.y} for node_id, p in placements.items()}

    return _with_positions(graph, positions, direction)


# ============================================================================
# HYBRID LAYOUT
# ============================================================================

def compute_backbone(
    graph: WorkflowGraph,
    spacing: LayoutSpacing = HYBRID_SPACING
) -> Dict[str, NodePlacement]:
    """
    Vertical backbone placements: nodes ordered and aligned along main-flow edges

    Args:
        graph: Workflow graph
        spacing: Separation constants

    Returns:
        node_id -> NodePlacement (rank is the node's depth)
    """
    return _compute_placements(graph, LayoutDirection.VERTICAL, spacing, main_flow_only=True)


def compute_branch_offsets(
    graph: WorkflowGraph,
    backbone: Dict[str, NodePlacement],
    branch_offset: float = BRANCH_OFFSET
) -> Dict[str, float]:
    """
    Horizontal offsets for forward branch targets

    A then-target moves right, an else-target moves left. A target at a
    smaller depth than its condition (loop-back) is not moved. Contributions
    in one direction are not summed: the largest right shift and the largest
    left shift are kept and then added, so a node that is both a then-target
    and an else-target stays on its backbone column.

    Args:
        graph: Workflow graph
        backbone: Backbone placements
        branch_offset: Magnitude of the shift

    Returns:
        node_id -> x offset (nodes without offset omitted)
    """
    right: Dict[str, float] = {}
    left: Dict[str, float] = {}

    for edge in graph.edges:
        if not edge.is_branch:
            continue
        source = graph.node(edge.source)
        if source is None or source.type != StepType.CONDITION.value:
            continue
        if edge.source not in backbone or edge.target not in backbone:
            continue
        if backbone[edge.target].rank < backbone[edge.source].rank:
            logger.debug(f"Loop-back branch {edge.id}: target keeps backbone position")
            continue

        if edge.source_handle == BranchHandle.THEN.value:
            right[edge.target] = max(right.get(edge.target, 0.0), branch_offset)
        else:
            left[edge.target] = min(left.get(edge.target, 0.0), -branch_offset)

    offsets: Dict[str, float] = {}
    for node_id in set(right) | set(left):
        offsets[node_id] = right.get(node_id, 0.0) + left.get(node_id, 0.0)
    return offsets


def hybrid_layout(
    graph: WorkflowGraph,
    branch_offset: float = BRANCH_OFFSET,
    spacing: LayoutSpacing = HYBRID_SPACING
) -> WorkflowGraph:
    """
    Apply hybrid layout

    Best for: Everyday editing; the main path stays one vertical column and
    then/else branches fan out right/left without sprawling at every depth

    Args:
        graph: Workflow graph
        branch_offset: Horizontal shift for forward branch targets
        spacing: Backbone separation constants

    Returns:
        New graph with positioned nodes
    """
    logger.debug("Applying hybrid layout")

    backbone = compute_backbone(graph, spacing)
    offsets = compute_branch_offsets(graph, backbone, branch_offset)

    positions = {
        node_id: {"x": placement.x + offsets.get(node_id, 0.0), "y": placement.y}
        for node_id, placement in backbone.items()
    }

    return _with_positions(graph, positions, LayoutDirection.VERTICAL)


# ============================================================================
# LAYOUT SELECTOR
# ============================================================================

def apply_layout(
    graph: WorkflowGraph,
    strategy: LayoutStrategy = LayoutStrategy.HYBRID,
    direction: LayoutDirection = LayoutDirection.VERTICAL,
    branch_offset: float = BRANCH_OFFSET
) -> WorkflowGraph:
    """
    Apply layout strategy to graph

    Args:
        graph: Workflow graph
        strategy: "hybrid" or "standard"
        direction: Rank direction for the standard strategy
        branch_offset: Branch shift for the hybrid strategy

    Returns:
        New graph with positioned nodes

    Raises:
        ValueError: If strategy or direction is unknown
    """
    strategy = LayoutStrategy(strategy)
    logger.info(f"Applying layout: {strategy.value} ({len(graph.nodes)} nodes)")

    if strategy == LayoutStrategy.HYBRID:
        return hybrid_layout(graph, branch_offset=branch_offset)
    return layered_layout(graph, direction=direction)


def calculate_layout(
    graph: WorkflowGraph,
    strategy: LayoutStrategy = LayoutStrategy.HYBRID,
    direction: LayoutDirection = LayoutDirection.VERTICAL
) -> Dict[str, Dict[str, float]]:
    """
    Calculate layout and return positions only

    Returns:
        Dictionary mapping node_id to position {x, y}
    """
    return apply_layout(graph, strategy, direction).positions()
