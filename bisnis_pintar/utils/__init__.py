"""
Shared helpers: configuration loading and money formatting.
"""
from .config import AppConfig, load_config  # noqa: F401
from .money import format_rupiah, to_decimal  # noqa: F401

__all__ = ["AppConfig", "load_config", "format_rupiah", "to_decimal"]
