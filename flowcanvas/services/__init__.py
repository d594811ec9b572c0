"""
Services Module
Service layer between the API routes and the canvas core
"""
