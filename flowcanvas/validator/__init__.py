"""
Validator Module
Step list, graph shape and step completeness checks
"""
