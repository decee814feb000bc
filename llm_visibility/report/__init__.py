"""
Report generation module for LLM Visibility Tracker.

This module provides the dashboard view models and the HTML report.
"""

from .generator import generate_report, write_report
from .views import (
    build_dashboard,
    build_detail_rows,
    build_monitoring_series,
    build_topic_cards,
)

__all__ = [
    "build_dashboard",
    "build_detail_rows",
    "build_monitoring_series",
    "build_topic_cards",
    "generate_report",
    "write_report",
]
