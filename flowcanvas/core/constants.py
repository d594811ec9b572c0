"""
Core Constants and Enums
Central source of truth for step kinds, graph node kinds, layout modes and error codes
"""
from enum import Enum
from typing import Iterable, Type


# ============================================================================
# STEP / NODE KINDS
# ============================================================================

class StepType(str, Enum):
    """
    Kinds of workflow steps (closed set)

    AGENT: Run an AI agent
    TOOL: Execute a tool
    CONDITION: Branch on a field comparison (then/else)
    HUMAN: Wait for human approval
    PARALLEL: Run a sub-list of steps in parallel
    LOOP: Iterate over items
    """
    AGENT = "agent"
    TOOL = "tool"
    CONDITION = "condition"
    HUMAN = "human"
    PARALLEL = "parallel"
    LOOP = "loop"


class NodeType(str, Enum):
    """Synthetic sentinel node kinds"""
    START = "start"
    END = "end"


START_NODE_ID = "start"
END_NODE_ID = "end"

# Step ids that would collide with the sentinel nodes
RESERVED_STEP_IDS = frozenset({START_NODE_ID, END_NODE_ID})

SENTINEL_NODE_TYPES = frozenset({NodeType.START.value, NodeType.END.value})


class BranchHandle(str, Enum):
    """Outgoing handles of a condition node"""
    THEN = "then"
    ELSE = "else"


BRANCH_LABELS = {
    BranchHandle.THEN: "Yes",
    BranchHandle.ELSE: "No",
}


class ConditionOperator(str, Enum):
    """Comparison operators offered by the condition editor"""
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    CONTAINS = "contains"
    EXISTS = "exists"


# ============================================================================
# LAYOUT MODES
# ============================================================================

class LayoutStrategy(str, Enum):
    """
    Auto-layout strategies

    STANDARD: Layered layout over every edge
    HYBRID: Vertical backbone over main-flow edges, condition branches offset sideways
    """
    STANDARD = "standard"
    HYBRID = "hybrid"


class LayoutDirection(str, Enum):
    """Rank direction for the standard strategy"""
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


class PortSide(str, Enum):
    """Side of a node where edges attach"""
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


# ============================================================================
# VALIDATION SEVERITY
# ============================================================================

class ValidationSeverity(str, Enum):
    """
    Validation error severity levels

    ERROR: Blocks save/execute
    WARNING: Advisory
    INFO: Informational
    """
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# ============================================================================
# ERROR CODES
# ============================================================================

class ErrorCode:
    """
    Error codes for debugging and API consumers
    """
    # Step list errors (1xxx)
    DUPLICATE_STEP_ID = "E1001"
    RESERVED_STEP_ID = "E1002"
    DANGLING_STEP_REFERENCE = "E1003"
    INVALID_STEP = "E1004"

    # Graph shape errors (2xxx)
    SENTINEL_ERROR = "E2001"
    EDGE_SHAPE_ERROR = "E2002"
    UNKNOWN_NODE = "E2003"
    UNREACHABLE_NODE = "E2004"

    # Editing errors (3xxx)
    INVALID_EDIT = "E3001"
    SERIALIZATION_ERROR = "E3002"

    # Warnings
    INCOMPLETE_STEP = "W1001"
    IGNORED_FIELD = "W1002"


# ============================================================================
# EXHAUSTIVENESS
# ============================================================================

def assert_exhaustive(keys: Iterable, enum_type: Type[Enum], table_name: str) -> None:
    """
    Fail at import time when a dispatch table does not cover every enum member

    Args:
        keys: Keys of the dispatch table
        enum_type: Enum the table dispatches on
        table_name: Name used in the error message

    Raises:
        RuntimeError: If members are missing or unknown keys are present
    """
    expected = set(enum_type)
    actual = set(keys)
    missing = expected - actual
    extra = actual - expected
    if missing or extra:
        raise RuntimeError(
            f"{table_name} is not exhaustive over {enum_type.__name__}: "
            f"missing={sorted(m.value for m in missing)} "
            f"unknown={sorted(str(e) for e in extra)}"
        )
