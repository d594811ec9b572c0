"""
Tests for step completeness checks
"""
import pytest

from flowcanvas.schemas.steps import parse_step
from flowcanvas.validator.completeness import is_step_complete


def complete(step_dict):
    return is_step_complete(parse_step(step_dict))


class TestReferenceSteps:
    """agent/tool need their reference"""

    @pytest.mark.parametrize("step, expected", [
        ({"id": "a", "type": "agent", "agent": "agt_1"}, True),
        ({"id": "a", "type": "agent", "agent_id": "agt_1"}, True),
        ({"id": "a", "type": "agent"}, False),
        ({"id": "a", "type": "agent", "agent": "   "}, False),
        ({"id": "t", "type": "tool", "tool": "tl_1"}, True),
        ({"id": "t", "type": "tool", "tool": ""}, False),
        ({"id": "t", "type": "tool", "tool_args": {"q": 1}}, False),
    ])
    def test_reference_required(self, step, expected):
        assert complete(step) is expected


class TestConditionStep:
    """field, operator, value and then_step are required"""

    @pytest.fixture
    def condition(self):
        return {"field": "status", "operator": "eq", "value": "done", "then_step": "next"}

    def test_complete_without_else(self, condition):
        assert complete({"id": "c", "type": "condition", "condition": condition})

    def test_complete_with_else(self, condition):
        condition["else_step"] = "other"
        assert complete({"id": "c", "type": "condition", "condition": condition})

    @pytest.mark.parametrize("missing", ["field", "operator", "value", "then_step"])
    def test_missing_field(self, condition, missing):
        del condition[missing]
        assert not complete({"id": "c", "type": "condition", "condition": condition})

    def test_falsy_value_counts_as_set(self, condition):
        condition["value"] = 0
        assert complete({"id": "c", "type": "condition", "condition": condition})

    def test_no_condition_config(self):
        assert not complete({"id": "c", "type": "condition"})


class TestHumanAndLoop:
    """Notification and items path"""

    def test_human(self):
        assert complete({"id": "h", "type": "human", "human_config": {"notification": "Review"}})
        assert not complete({"id": "h", "type": "human", "human_config": {"notification": ""}})
        assert not complete({"id": "h", "type": "human"})

    def test_loop(self):
        assert complete({"id": "l", "type": "loop", "loop_config": {"items_path": "orders"}})
        assert not complete({"id": "l", "type": "loop", "loop_config": {"item_variable": "o"}})
        assert not complete({"id": "l", "type": "loop"})


class TestParallelStep:
    """Complete when every sub-step is"""

    def test_all_sub_steps_complete(self):
        step = {
            "id": "p",
            "type": "parallel",
            "parallel_steps": [
                {"id": "p1", "type": "agent", "agent": "x"},
                {"id": "p2", "type": "tool", "tool": "y"},
            ]
        }
        assert complete(step)

    def test_incomplete_sub_step(self):
        step = {
            "id": "p",
            "type": "parallel",
            "parallel_steps": [
                {"id": "p1", "type": "agent", "agent": "x"},
                {"id": "p2", "type": "tool"},
            ]
        }
        assert not complete(step)

    def test_empty(self):
        assert not complete({"id": "p", "type": "parallel", "parallel_steps": []})
        assert not complete({"id": "p", "type": "parallel"})
