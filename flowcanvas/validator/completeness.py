"""
Step Completeness
Decides whether a step is configured enough to be saved or executed
"""
from typing import Any, Callable, Dict

from flowcanvas.core.constants import StepType, assert_exhaustive
from flowcanvas.schemas.steps import (
    AgentStep,
    ConditionStep,
    HumanStep,
    LoopStep,
    ParallelStep,
    StepBase,
    ToolStep,
    step_type_of,
)


def _is_set(value: Any) -> bool:
    """Non-empty after trimming strings; None is never set"""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def _agent_complete(step: AgentStep) -> bool:
    return _is_set(step.agent)


def _tool_complete(step: ToolStep) -> bool:
    return _is_set(step.tool)


def _condition_complete(step: ConditionStep) -> bool:
    # else_step is optional: a false condition without it ends the workflow
    condition = step.condition
    if condition is None:
        return False
    return all(
        _is_set(value)
        for value in (condition.field, condition.operator, condition.value, condition.then_step)
    )


def _human_complete(step: HumanStep) -> bool:
    return step.human_config is not None and _is_set(step.human_config.notification)


def _parallel_complete(step: ParallelStep) -> bool:
    if not step.parallel_steps:
        return False
    return all(is_step_complete(sub_step) for sub_step in step.parallel_steps)


def _loop_complete(step: LoopStep) -> bool:
    return step.loop_config is not None and _is_set(step.loop_config.items_path)


_COMPLETENESS_RULES: Dict[StepType, Callable[[Any], bool]] = {
    StepType.AGENT: _agent_complete,
    StepType.TOOL: _tool_complete,
    StepType.CONDITION: _condition_complete,
    StepType.HUMAN: _human_complete,
    StepType.PARALLEL: _parallel_complete,
    StepType.LOOP: _loop_complete,
}

assert_exhaustive(_COMPLETENESS_RULES, StepType, "_COMPLETENESS_RULES")


def is_step_complete(step: StepBase) -> bool:
    """
    Check whether a step has every field it needs

    Args:
        step: Parsed step model

    Returns:
        True when the step may be saved/executed
    """
    return _COMPLETENESS_RULES[step_type_of(step)](step)
