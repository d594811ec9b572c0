"""
API Routes
Export all routers for main.py to include
"""
from flowcanvas.api.routes import (
    health,
    graph
)

__all__ = [
    "health",
    "graph"
]
