"""
Schemas Module
Pydantic models for workflow steps and API payloads
"""
