"""
Utilities Module
Shared utility functions for the application
"""
from flowcanvas.utils.ids import generate_step_id, is_valid_step_id
from flowcanvas.utils.json_utils import parse_json_field

__all__ = [
    "generate_step_id",
    "is_valid_step_id",
    "parse_json_field",
]
