"""
Brand mention detection for LLM Visibility Tracker.

This module implements whole-word regex matching to find every occurrence of
a brand name in an LLM response, avoiding false positives like "Nike" inside
"Nikeware".

Key features:
- Whole-word matching: a match must be preceded and followed by a non-word
  character or a string boundary
- Case-insensitive detection ("nike", "NIKE" and "NiKe" all match "Nike")
- Possessives and punctuation after the name still match ("Nike's", "Nike,")
- Brand names with regex metacharacters ("C++", "Warmly.io") are escaped

Offsets are Python string indices, i.e. Unicode code points from the start
of the response text.

Security:
- Always uses re.escape() to prevent regex injection
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from llm_visibility.extractor.position_ranker import rank_brands


@dataclass(frozen=True)
class BrandMention:
    """
    Mention summary for one brand in one LLM response.

    Attributes:
        name: Brand name as configured (original casing)
        mentioned: True if the brand occurs at least once
        count: Number of occurrences
        positions: Start offsets of every occurrence, ascending
        brand_position: 1-based rank by first appearance, None if not mentioned
    """

    name: str
    mentioned: bool
    count: int
    positions: tuple[int, ...] = field(default_factory=tuple)
    brand_position: int | None = None

    def __post_init__(self):
        """Keep mentioned/count/positions/brand_position consistent."""
        if self.count != len(self.positions):
            raise ValueError(
                f"count ({self.count}) must equal number of positions "
                f"({len(self.positions)}) for brand '{self.name}'"
            )
        if self.mentioned != (self.count > 0):
            raise ValueError(
                f"mentioned must be True exactly when count > 0 for brand '{self.name}'"
            )
        if self.brand_position is not None and not self.mentioned:
            raise ValueError(
                f"Unmentioned brand '{self.name}' cannot have a brand_position"
            )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the field names used in stored analysis results."""
        return {
            "name": self.name,
            "mentioned": self.mentioned,
            "count": self.count,
            "positions": list(self.positions),
            "brandPosition": self.brand_position,
        }


def create_brand_pattern(brand_name: str) -> re.Pattern:
    """
    Create a whole-word, case-insensitive regex pattern for a brand name.

    Lookarounds are used instead of \\b so that names starting or ending
    with punctuation still match on their own ("C++ is fast" matches "C++").

    Args:
        brand_name: Brand name to match (e.g., "Nike", "Warmly.io")

    Returns:
        Compiled regex pattern

    Raises:
        ValueError: If brand_name is empty or whitespace

    Example:
        >>> pattern = create_brand_pattern("Nike")
        >>> bool(pattern.search("Nike's new shoe"))
        True
        >>> bool(pattern.search("Nikeware"))
        False
    """
    if not brand_name or brand_name.isspace():
        raise ValueError("Brand name cannot be empty or whitespace")

    # SECURITY: Escape special regex characters before adding boundaries
    escaped = re.escape(brand_name.strip())

    return re.compile(r"(?<!\w)" + escaped + r"(?!\w)", re.IGNORECASE)


@lru_cache(maxsize=512)
def _cached_pattern(brand_name: str) -> re.Pattern:
    return create_brand_pattern(brand_name)


def extract_mentions(response_text: str, brand_name: str) -> list[int]:
    """
    Find every whole-word, case-insensitive occurrence of a brand.

    Never raises: an empty text or an empty/whitespace brand name simply
    yields no matches.

    Args:
        response_text: LLM response text to scan
        brand_name: Brand to look for

    Returns:
        Strictly increasing list of start offsets (may be empty)

    Example:
        >>> extract_mentions("Nike is great, nike is cheap.", "Nike")
        [0, 15]
        >>> extract_mentions("Nikeware", "Nike")
        []
    """
    if not response_text or not brand_name or brand_name.isspace():
        return []

    pattern = _cached_pattern(brand_name)
    return [match.start() for match in pattern.finditer(response_text)]


def detect_brand_mentions(
    response_text: str, brands: Sequence[str]
) -> list[BrandMention]:
    """
    Extract and rank mentions for every tracked brand in one response.

    Brands are returned in the order given, each with its offsets, count
    and rank by first appearance among the brands that were mentioned.

    Args:
        response_text: LLM response text
        brands: Tracked brand names, primary brand first

    Returns:
        One BrandMention per brand, in the order of ``brands``

    Example:
        >>> mentions = detect_brand_mentions(
        ...     "Nike is great but Adidas outlasts Salomon.",
        ...     ["Adidas", "Nike", "Salomon"],
        ... )
        >>> [(m.name, m.brand_position) for m in mentions]
        [('Adidas', 2), ('Nike', 1), ('Salomon', 3)]
    """
    offsets = {brand: extract_mentions(response_text, brand) for brand in brands}
    ranks = rank_brands(offsets)

    return [
        BrandMention(
            name=brand,
            mentioned=bool(offsets[brand]),
            count=len(offsets[brand]),
            positions=tuple(offsets[brand]),
            brand_position=ranks[brand],
        )
        for brand in brands
    ]
