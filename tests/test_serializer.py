"""
Tests for turning an edited graph back into a step list
"""
import pytest

from flowcanvas.schemas.steps import WorkflowDefinition, parse_steps, step_to_dict
from flowcanvas.validator.errors import GraphSerializationError
from flowcanvas.workflow.graph import GraphEdge, GraphNode
from flowcanvas.workflow.graph_builder import build_graph
from flowcanvas.workflow.serializer import graph_to_definition, node_to_step, serialize_graph


def as_dicts(steps):
    return [step_to_dict(step) for step in steps]


class TestRoundTrip:
    """build -> serialize reproduces canonical step lists"""

    def test_linear(self, linear_steps):
        steps = serialize_graph(build_graph(linear_steps))

        assert as_dicts(steps) == as_dicts(parse_steps(linear_steps))

    def test_branching(self, branching_steps):
        steps = serialize_graph(build_graph(branching_steps))

        assert as_dicts(steps) == as_dicts(parse_steps(branching_steps))

    def test_loop_back(self, loop_steps):
        steps = serialize_graph(build_graph(loop_steps))

        assert as_dicts(steps) == as_dicts(parse_steps(loop_steps))

    def test_empty_name_and_guardrails_kept(self):
        steps = [{"id": "a", "type": "agent", "agent": "x", "name": "", "guardrails": {}}]

        result = as_dicts(serialize_graph(build_graph(steps)))

        assert result == [{"id": "a", "type": "agent", "agent": "x", "name": "", "guardrails": {}}]

    def test_explicit_jump_and_early_end(self):
        original = [
            {"id": "a", "type": "agent", "agent": "x", "next_step": "c"},
            {"id": "b", "type": "agent", "agent": "y", "next_step": "end"},
            {"id": "c", "type": "agent", "agent": "z"},
        ]
        steps = serialize_graph(build_graph(original))

        assert as_dicts(steps) == as_dicts(parse_steps(original))

    def test_rebuild_is_idempotent(self, branching_steps):
        first = build_graph(branching_steps)
        second = build_graph(serialize_graph(first))

        assert second.to_dict() == first.to_dict()

    def test_empty(self):
        assert serialize_graph(build_graph([])) == []


class TestCanonicalNextStep:
    """next_step is only written where order does not imply it"""

    def test_redundant_next_step_dropped(self):
        steps = serialize_graph(build_graph([
            {"id": "a", "type": "agent", "agent": "x", "next_step": "b"},
            {"id": "b", "type": "agent", "agent": "y", "next_step": "end"},
        ]))

        assert [s.next_step for s in steps] == [None, None]

    def test_edge_edit_becomes_explicit(self, linear_steps):
        graph = build_graph(linear_steps)
        graph.edges = [e for e in graph.edges if e.source != "fetch"]
        graph.edges.append(GraphEdge(id="fetch-approve", source="fetch", target="approve"))

        steps = serialize_graph(graph)

        assert steps[0].next_step == "approve"

    def test_conditions_never_get_next_step(self, branching_steps):
        steps = serialize_graph(build_graph(branching_steps))

        assert steps[1].next_step is None

    def test_condition_main_flow_edge_not_saved(self, branching_steps):
        branching_steps[1]["next_step"] = "E"
        graph = build_graph(branching_steps)

        steps = serialize_graph(graph)

        assert [e.target for e in graph.outgoing("B") if not e.source_handle] == ["E"]
        assert steps[1].next_step is None
        assert (steps[1].condition.then_step, steps[1].condition.else_step) == ("C", "D")


class TestBranchesFromEdges:
    """Edges are the source of truth for then/else"""

    def test_rewired_branch(self, branching_steps):
        graph = build_graph(branching_steps)
        for edge in graph.edges:
            if edge.source == "B" and edge.source_handle == "then":
                edge.target = "E"

        condition = serialize_graph(graph)[1].condition

        assert condition.then_step == "E"
        assert condition.else_step == "D"
        assert condition.field == "score"

    def test_deleted_branch_clears_target(self, branching_steps):
        graph = build_graph(branching_steps)
        graph.edges = [e for e in graph.edges if e.source_handle != "else"]

        condition = serialize_graph(graph)[1].condition

        assert condition.else_step is None

    def test_unconfigured_condition_gains_branches(self):
        graph = build_graph([
            {"id": "cond", "type": "condition"},
            {"id": "x", "type": "agent", "agent": "a"},
        ])
        graph.edges.append(GraphEdge(id="cond-then-x", source="cond", target="x", source_handle="then"))

        condition = serialize_graph(graph)[0].condition

        assert condition.then_step == "x"


class TestNodeToStep:
    """Per-node conversion"""

    def test_sparse_copy_of_type_fields(self):
        node = GraphNode(
            id="t1",
            type="tool",
            label="T",
            position={"x": 0, "y": 0},
            data={"id": "t1", "type": "tool", "tool": "tl", "agent": "stray", "name": "T"}
        )

        step = node_to_step(node)

        assert step_to_dict(step) == {"id": "t1", "type": "tool", "tool": "tl", "name": "T"}

    def test_legacy_agent_id_in_node_data(self):
        node = GraphNode(id="a", type="agent", label="a", position={"x": 0, "y": 0},
                         data={"agent_id": "agt_old"})

        assert node_to_step(node).agent == "agt_old"

    def test_every_step_node_yields_a_step(self):
        graph = build_graph([
            {"id": "a", "type": "agent"},
            {"id": "b", "type": "loop"},
            {"id": "c", "type": "parallel"},
        ])

        assert [s.id for s in serialize_graph(graph)] == ["a", "b", "c"]

    def test_unknown_type_raises(self):
        node = GraphNode(id="x", type="webhook", label="x", position={"x": 0, "y": 0})

        with pytest.raises(GraphSerializationError):
            node_to_step(node)

    def test_invalid_payload_raises(self):
        node = GraphNode(id="h", type="human", label="h", position={"x": 0, "y": 0},
                         data={"human_config": {"options": "not-a-list"}})

        with pytest.raises(GraphSerializationError) as exc_info:
            node_to_step(node)

        assert exc_info.value.error.details["errors"]


class TestGraphToDefinition:
    """Definition produced on save"""

    def test_layout_includes_sentinels(self, linear_steps):
        definition = WorkflowDefinition(id="wf", name="Orders", steps=linear_steps)
        graph = build_graph(definition.steps)

        saved = graph_to_definition(definition, graph)

        assert set(saved.layout) == {"start", "fetch", "enrich", "approve", "end"}
        assert saved.layout["enrich"].y == 300.0
        assert saved.has_saved_layout

    def test_input_untouched_and_extras_kept(self, linear_steps):
        definition = WorkflowDefinition(id="wf", name="Orders", steps=linear_steps, owner="ops")
        graph = build_graph(definition.steps)

        saved = graph_to_definition(definition, graph)

        assert definition.layout is None
        assert saved.name == "Orders"
        assert saved.model_dump()["owner"] == "ops"
