"""
Database package exports.
"""
from .models import Base, KeyValueSlot  # noqa: F401
from .session import get_engine, get_session  # noqa: F401

__all__ = ["Base", "KeyValueSlot", "get_engine", "get_session"]
