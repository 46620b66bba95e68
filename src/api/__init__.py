"""
FastAPI application for the LTI tool registry.
"""

from api.app import app, get_app

__all__ = ["app", "get_app"]
