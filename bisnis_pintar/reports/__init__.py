"""
CSV exports of the stored inventory.
"""
from .export_report import write_reports  # noqa: F401

__all__ = ["write_reports"]
