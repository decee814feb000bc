"""
Storage module: SQLite schema, record store, seeding and export.
"""

from llm_visibility.storage.store import (
    AnalysisRecord,
    Project,
    RecordStore,
    Topic,
    clean_brand_list,
    slugify,
)

__all__ = [
    "AnalysisRecord",
    "Project",
    "RecordStore",
    "Topic",
    "clean_brand_list",
    "slugify",
]
