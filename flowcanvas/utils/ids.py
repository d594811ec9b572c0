"""
ID Generation Utilities
Generates unique IDs for steps created in the editor
"""
import uuid

from flowcanvas.core.constants import RESERVED_STEP_IDS


def generate_step_id(step_type: str) -> str:
    """
    Generate step ID

    Random suffix instead of a wall-clock timestamp, so nodes created in
    quick succession never collide.

    Args:
        step_type: Step type used as prefix

    Returns:
        Step ID (e.g., "agent_7f3b4c2a1d8e")
    """
    uuid_short = uuid.uuid4().hex[:12]
    return f"{step_type}_{uuid_short}"


def is_valid_step_id(step_id: str) -> bool:
    """
    Check step ID is usable (non-blank, not a sentinel ID)

    Any other string is accepted; the editor imposes no format.
    """
    return bool(step_id and step_id.strip()) and step_id not in RESERVED_STEP_IDS
