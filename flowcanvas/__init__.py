"""
flowcanvas
Workflow graph model for the agent console editor: step list <-> graph
conversion, auto-layout and step validation
"""

__version__ = "1.0.0"
