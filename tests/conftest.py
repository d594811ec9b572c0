"""
Shared fixtures for workflow canvas tests
"""
import pytest


@pytest.fixture
def linear_steps():
    """Three steps chained by array order"""
    return [
        {"id": "fetch", "type": "agent", "name": "Fetch Orders", "agent": "agt_orders"},
        {"id": "enrich", "type": "tool", "name": "Enrich", "tool": "tool_enrich", "tool_args": {"mode": "full"}},
        {"id": "approve", "type": "human", "name": "Approve", "human_config": {"notification": "Please review"}},
    ]


@pytest.fixture
def branching_steps():
    """Condition whose branches rejoin on a common step"""
    return [
        {"id": "A", "type": "agent", "agent": "agt_a"},
        {
            "id": "B",
            "type": "condition",
            "condition": {
                "field": "score",
                "operator": "gt",
                "value": 10,
                "then_step": "C",
                "else_step": "D"
            }
        },
        {"id": "C", "type": "tool", "tool": "tool_c", "next_step": "E"},
        {"id": "D", "type": "tool", "tool": "tool_d"},
        {"id": "E", "type": "agent", "agent": "agt_e"},
    ]


@pytest.fixture
def loop_steps():
    """Condition whose else branch loops back to an earlier step"""
    return [
        {"id": "A", "type": "agent", "agent": "agt_a"},
        {"id": "E", "type": "agent", "agent": "agt_retry"},
        {
            "id": "B",
            "type": "condition",
            "condition": {
                "field": "ok",
                "operator": "eq",
                "value": True,
                "then_step": "F",
                "else_step": "E"
            }
        },
        {"id": "F", "type": "agent", "agent": "agt_f"},
    ]
