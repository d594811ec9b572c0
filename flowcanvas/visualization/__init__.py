"""
Visualization Module
Auto-layout and graph editing for the canvas
"""
