"""
Extractor module for detecting and ranking brand mentions in LLM responses.

Public API:
    - BrandMention: Dataclass summarizing one brand's mentions in a response
    - extract_mentions: Offsets of whole-word, case-insensitive brand matches
    - detect_brand_mentions: Extract and rank every tracked brand at once
    - create_brand_pattern: Create regex pattern for brand matching
    - rank_brands: Rank brands by first appearance
"""

from llm_visibility.extractor.mention_detector import (
    BrandMention,
    create_brand_pattern,
    detect_brand_mentions,
    extract_mentions,
)
from llm_visibility.extractor.position_ranker import rank_brands

__all__ = [
    "BrandMention",
    "create_brand_pattern",
    "detect_brand_mentions",
    "extract_mentions",
    "rank_brands",
]
