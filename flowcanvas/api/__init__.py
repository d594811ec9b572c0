"""
API Module
FastAPI routers for the canvas service
"""
