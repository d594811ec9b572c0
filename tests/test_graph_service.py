"""
Tests for the canvas service layer
"""
import pytest

from flowcanvas.core.config import Settings
from flowcanvas.core.constants import LayoutDirection, LayoutStrategy
from flowcanvas.schemas.steps import WorkflowDefinition
from flowcanvas.services.graph_service import GraphService, get_graph_service
from flowcanvas.validator.errors import DanglingStepReference
from flowcanvas.visualization.layout import hybrid_layout, layered_layout
from flowcanvas.workflow.graph_builder import build_graph


@pytest.fixture
def service():
    return GraphService(Settings())


@pytest.fixture
def definition(branching_steps):
    return WorkflowDefinition(id="wf_branch", name="Branching", steps=branching_steps)


class TestLoad:
    """Opening a workflow"""

    def test_auto_layout_without_saved_layout(self, service, definition):
        graph, auto_laid_out = service.load(definition)

        assert auto_laid_out
        assert graph.to_dict() == hybrid_layout(build_graph(definition.steps)).to_dict()

    def test_saved_layout_suppresses_auto_layout(self, service, branching_steps):
        definition = WorkflowDefinition(
            id="wf", name="Saved", steps=branching_steps, layout={"A": {"x": 7, "y": 8}}
        )

        graph, auto_laid_out = service.load(definition)

        assert not auto_laid_out
        assert graph.node("A").position == {"x": 7.0, "y": 8.0}
        assert graph.node("B").position == {"x": 300.0, "y": 300.0}

    def test_empty_layout_treated_as_absent(self, service, branching_steps):
        definition = WorkflowDefinition(id="wf", name="Unsaved", steps=branching_steps, layout={})

        _, auto_laid_out = service.load(definition)

        assert auto_laid_out

    def test_standard_strategy_override(self, service, definition):
        graph, _ = service.load(definition, LayoutStrategy.STANDARD, LayoutDirection.HORIZONTAL)

        expected = layered_layout(build_graph(definition.steps), LayoutDirection.HORIZONTAL)
        assert graph.to_dict() == expected.to_dict()

    def test_configured_default_strategy(self, definition):
        service = GraphService(Settings(DEFAULT_LAYOUT_STRATEGY="standard"))

        graph, _ = service.load(definition)

        assert graph.to_dict() == layered_layout(build_graph(definition.steps)).to_dict()

    def test_dangling_reference_propagates(self, service):
        definition = WorkflowDefinition(
            id="wf", name="Broken", steps=[{"id": "a", "type": "agent", "next_step": "ghost"}]
        )

        with pytest.raises(DanglingStepReference):
            service.load(definition)


class TestEditAndSave:
    """Editing session"""

    def test_edit_then_save(self, service, definition):
        graph, _ = service.load(definition)

        graph, changes = service.edit(graph, [
            {"type": "removeNode", "nodeId": "D"},
            {"type": "addEdge", "source": "B", "target": "E", "sourceHandle": "else"},
        ])
        saved = service.save(definition, graph)

        assert len(changes) == 2
        assert [s.id for s in saved.steps] == ["A", "B", "C", "E"]
        assert saved.steps[1].condition.else_step == "E"
        assert set(saved.layout) == {"start", "A", "B", "C", "E", "end"}

    def test_saved_definition_reloads_in_place(self, service, definition):
        graph, _ = service.load(definition)
        saved = service.save(definition, graph)

        reloaded, auto_laid_out = service.load(saved)

        assert not auto_laid_out
        assert reloaded.positions() == graph.positions()


class TestChecks:
    """Validation helpers"""

    def test_validate(self, service, definition):
        graph, _ = service.load(definition)

        assert service.validate(graph).valid

    def test_step_completeness(self, service):
        result = service.step_completeness([
            {"id": "a", "type": "agent", "agent": "x"},
            {"id": "t", "type": "tool"},
        ])

        assert result == {"a": True, "t": False}

    def test_singleton(self):
        assert get_graph_service() is get_graph_service()
