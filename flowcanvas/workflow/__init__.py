"""
Workflow Module
Graph structures and step list <-> graph conversion
"""
