"""
Tests for auto-layout strategies
"""
import pytest

from flowcanvas.core.constants import LayoutDirection, LayoutStrategy
from flowcanvas.visualization.layout import (
    BRANCH_OFFSET,
    HYBRID_SPACING,
    NODE_HEIGHT,
    NODE_WIDTH,
    VERTICAL_SPACING,
    apply_layout,
    calculate_layout,
    compute_backbone,
    compute_branch_offsets,
    hybrid_layout,
    layered_layout,
    rank_spacing,
)
from flowcanvas.workflow.graph import GraphEdge, WorkflowGraph
from flowcanvas.workflow.graph_builder import build_graph


def assert_no_overlap(graph):
    nodes = list(graph.nodes)
    for i, a in enumerate(nodes):
        for b in nodes[i + 1:]:
            apart_x = abs(a.position["x"] - b.position["x"]) >= NODE_WIDTH
            apart_y = abs(a.position["y"] - b.position["y"]) >= NODE_HEIGHT
            assert apart_x or apart_y, f"{a.id} overlaps {b.id}"


class TestHybridBranchOffsets:
    """Forward branches fan out sideways from the backbone"""

    def test_then_right_else_left(self, branching_steps):
        graph = build_graph(branching_steps)
        backbone = compute_backbone(graph)

        laid_out = hybrid_layout(graph)

        c = laid_out.node("C").position
        d = laid_out.node("D").position
        assert c["x"] == backbone["C"].x + BRANCH_OFFSET
        assert d["x"] == backbone["D"].x - BRANCH_OFFSET
        assert c["y"] == backbone["C"].y
        assert d["y"] == backbone["D"].y

    def test_branch_targets_one_rank_below_condition(self, branching_steps):
        graph = build_graph(branching_steps)

        laid_out = hybrid_layout(graph)

        b_y = laid_out.node("B").position["y"]
        step = rank_spacing(LayoutDirection.VERTICAL, HYBRID_SPACING)
        assert laid_out.node("C").position["y"] == b_y + step
        assert laid_out.node("D").position["y"] == b_y + step

    def test_backbone_keeps_main_path_in_one_column(self, branching_steps):
        laid_out = hybrid_layout(build_graph(branching_steps))

        column = {laid_out.node(n).position["x"] for n in ("start", "A", "B", "E", "end")}
        assert len(column) == 1

    def test_y_never_changes(self, branching_steps):
        graph = build_graph(branching_steps)
        backbone = compute_backbone(graph)

        laid_out = hybrid_layout(graph)

        for node in laid_out.nodes:
            assert node.position["y"] == backbone[node.id].y

    def test_offsets_not_summed(self):
        graph = build_graph([
            {"id": "c1", "type": "condition", "condition": {"then_step": "c2", "else_step": "t"}},
            {"id": "c2", "type": "condition", "condition": {"then_step": "t", "else_step": "end"}},
            {"id": "t", "type": "agent", "agent": "x"},
        ])
        backbone = compute_backbone(graph)

        offsets = compute_branch_offsets(graph, backbone)

        # then from c2 (+300) and else from c1 (-300) combine to zero
        assert offsets["t"] == 0.0
        assert offsets["c2"] == BRANCH_OFFSET

    def test_custom_offset(self, branching_steps):
        graph = build_graph(branching_steps)
        backbone = compute_backbone(graph)

        laid_out = hybrid_layout(graph, branch_offset=120.0)

        assert laid_out.node("C").position["x"] == backbone["C"].x + 120.0


class TestHybridLoopBack:
    """Backward branches keep their backbone position"""

    def test_loop_back_target_not_offset(self, loop_steps):
        graph = build_graph(loop_steps)
        backbone = compute_backbone(graph)

        laid_out = hybrid_layout(graph)

        assert laid_out.node("E").position == {"x": backbone["E"].x, "y": backbone["E"].y}
        assert laid_out.node("F").position["x"] == backbone["F"].x + BRANCH_OFFSET

    def test_loop_back_target_ranked_above_condition(self, loop_steps):
        backbone = compute_backbone(build_graph(loop_steps))

        assert backbone["E"].rank < backbone["B"].rank < backbone["F"].rank

    def test_loop_offsets_exclude_target(self, loop_steps):
        graph = build_graph(loop_steps)

        offsets = compute_branch_offsets(graph, compute_backbone(graph))

        assert "E" not in offsets

    def test_target_of_several_loop_backs_not_offset(self):
        graph = build_graph([
            {"id": "A", "type": "agent", "agent": "agt_a"},
            {"id": "E", "type": "agent", "agent": "agt_retry"},
            {"id": "B1", "type": "condition", "condition": {"then_step": "B2", "else_step": "E"}},
            {"id": "B2", "type": "condition", "condition": {"then_step": "E", "else_step": "F"}},
            {"id": "F", "type": "agent", "agent": "agt_f"},
        ])
        backbone = compute_backbone(graph)

        offsets = compute_branch_offsets(graph, backbone)
        laid_out = hybrid_layout(graph)

        assert backbone["E"].rank < backbone["B1"].rank < backbone["B2"].rank
        assert "E" not in offsets
        assert laid_out.node("E").position == {"x": backbone["E"].x, "y": backbone["E"].y}
        assert offsets["B2"] == BRANCH_OFFSET
        assert offsets["F"] == -BRANCH_OFFSET


class TestStandardLayout:
    """Layered layout over every edge"""

    def test_vertical_chain_aligned(self, linear_steps):
        laid_out = layered_layout(build_graph(linear_steps), LayoutDirection.VERTICAL)
        step = NODE_HEIGHT + VERTICAL_SPACING.rank_sep

        xs = {n.position["x"] for n in laid_out.nodes}
        ys = [n.position["y"] for n in laid_out.nodes]
        assert xs == {VERTICAL_SPACING.margin_x}
        assert ys == [VERTICAL_SPACING.margin_y + i * step for i in range(5)]

    def test_vertical_port_sides(self, linear_steps):
        laid_out = layered_layout(build_graph(linear_steps), LayoutDirection.VERTICAL)

        assert {(n.target_position, n.source_position) for n in laid_out.nodes} == {("top", "bottom")}

    def test_horizontal_port_sides(self, linear_steps):
        laid_out = layered_layout(build_graph(linear_steps), LayoutDirection.HORIZONTAL)

        assert {(n.target_position, n.source_position) for n in laid_out.nodes} == {("left", "right")}

    def test_horizontal_ranks_advance_along_x(self, linear_steps):
        laid_out = layered_layout(build_graph(linear_steps), LayoutDirection.HORIZONTAL)

        xs = [n.position["x"] for n in laid_out.nodes]
        assert xs == sorted(xs)
        assert len({n.position["y"] for n in laid_out.nodes}) == 1

    def test_branches_side_by_side(self, branching_steps):
        laid_out = layered_layout(build_graph(branching_steps))

        assert laid_out.node("C").position["y"] == laid_out.node("D").position["y"]
        assert_no_overlap(laid_out)

    def test_loop_back_does_not_break_ranks(self, loop_steps):
        laid_out = layered_layout(build_graph(loop_steps))

        y = {n.id: n.position["y"] for n in laid_out.nodes}
        assert y["start"] < y["A"] < y["E"] < y["B"] < y["F"] < y["end"]


class TestDegenerateGraphs:
    """Layouts never fail on odd input"""

    @pytest.mark.parametrize("strategy", list(LayoutStrategy))
    def test_empty_workflow(self, strategy):
        laid_out = apply_layout(build_graph([]), strategy)

        assert laid_out.node_ids() == ["start"]

    def test_no_nodes(self):
        assert apply_layout(WorkflowGraph()).nodes == []

    @pytest.mark.parametrize("strategy", list(LayoutStrategy))
    def test_isolated_nodes_placed_apart(self, linear_steps, strategy):
        graph = build_graph(linear_steps)
        graph.edges = [e for e in graph.edges if "enrich" not in (e.source, e.target)]

        laid_out = apply_layout(graph, strategy)

        assert set(laid_out.node_ids()) == set(graph.node_ids())
        assert_no_overlap(laid_out)

    def test_edges_to_unknown_nodes_ignored(self, linear_steps):
        graph = build_graph(linear_steps)
        graph.edges.append(GraphEdge(id="fetch-ghost", source="fetch", target="ghost"))

        laid_out = apply_layout(graph)

        assert "ghost" not in laid_out.node_ids()

    def test_self_loop_ignored(self, linear_steps):
        graph = build_graph(linear_steps)
        graph.edges.append(GraphEdge(id="fetch-fetch", source="fetch", target="fetch"))

        assert layered_layout(graph).node("fetch") is not None

    @pytest.mark.parametrize("strategy", list(LayoutStrategy))
    def test_long_workflow(self, strategy):
        steps = [{"id": f"s{i}", "type": "agent", "agent": "agt"} for i in range(1200)]

        laid_out = apply_layout(build_graph(steps), strategy)

        ys = [n.position["y"] for n in laid_out.nodes]
        assert len(ys) == 1202
        assert ys == sorted(set(ys))
        assert len({n.position["x"] for n in laid_out.nodes}) == 1


class TestPurity:
    """Layout returns a new graph"""

    @pytest.mark.parametrize("strategy", list(LayoutStrategy))
    def test_input_not_mutated(self, branching_steps, strategy):
        graph = build_graph(branching_steps)
        before = graph.to_dict()

        apply_layout(graph, strategy)

        assert graph.to_dict() == before

    def test_deterministic(self, branching_steps):
        graph = build_graph(branching_steps)

        assert hybrid_layout(graph).to_dict() == hybrid_layout(graph).to_dict()

    def test_calculate_layout_returns_positions(self, linear_steps):
        positions = calculate_layout(build_graph(linear_steps), LayoutStrategy.STANDARD)

        assert set(positions) == {"start", "fetch", "enrich", "approve", "end"}
        assert all(set(p) == {"x", "y"} for p in positions.values())

    def test_unknown_strategy(self, linear_steps):
        with pytest.raises(ValueError):
            apply_layout(build_graph(linear_steps), "radial")
