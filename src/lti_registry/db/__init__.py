"""Database engine and session management."""

from .connection import close_engine, get_engine, get_session_factory, init_schema

__all__ = ["close_engine", "get_engine", "get_session_factory", "init_schema"]
