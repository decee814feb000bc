"""
Relative position ranking of brands within one LLM response.

Brands are ranked by where they first appear: the brand mentioned earliest
gets rank 1, the next distinct brand rank 2, and so on. Brands that are not
mentioned get no rank.
"""

from collections.abc import Mapping, Sequence


def rank_brands(per_brand_offsets: Mapping[str, Sequence[int]]) -> dict[str, int | None]:
    """
    Rank brands by the offset of their first mention.

    Ties (two brands starting at the same offset) are broken by the mapping's
    iteration order, which callers set to the project's brand order.

    Args:
        per_brand_offsets: Brand name -> mention offsets (any order, may be empty)

    Returns:
        Brand name -> 1-based rank, or None for brands with no offsets.
        Keys are returned in the same order as the input.

    Example:
        >>> rank_brands({"Adidas": [18], "Nike": [0], "Puma": []})
        {'Adidas': 2, 'Nike': 1, 'Puma': None}
    """
    first_offsets = [
        (min(offsets), index, brand)
        for index, (brand, offsets) in enumerate(per_brand_offsets.items())
        if offsets
    ]
    first_offsets.sort()

    ranks: dict[str, int | None] = dict.fromkeys(per_brand_offsets)
    for rank, (_offset, _index, brand) in enumerate(first_offsets, start=1):
        ranks[brand] = rank

    return ranks
