"""
Position-to-score mapping.

Converts a brand's rank within one response into a bounded visibility
score. Earlier placement scores higher; any mention beats no mention.
"""

from decimal import ROUND_HALF_UP, Decimal

# Rank -> score for the top four places; any later rank gets the floor score.
RANK_SCORES: dict[int, float] = {1: 1.0, 2: 0.75, 3: 0.5, 4: 0.25}
MENTION_FLOOR_SCORE = 0.1
NOT_MENTIONED_SCORE = 0.0


def score_for_rank(rank: int | None) -> float:
    """
    Map a 1-based rank to a score in [0.0, 1.0].

    Args:
        rank: Rank by first appearance, or None if the brand was not mentioned

    Returns:
        1.0, 0.75, 0.5, 0.25 for ranks 1-4, 0.1 for rank 5 and beyond,
        0.0 for None

    Raises:
        ValueError: If rank is below 1

    Example:
        >>> score_for_rank(2)
        0.75
        >>> score_for_rank(None)
        0.0
    """
    if rank is None:
        return NOT_MENTIONED_SCORE

    if rank < 1:
        raise ValueError(f"Rank must be 1 or greater, got: {rank}")

    return RANK_SCORES.get(rank, MENTION_FLOOR_SCORE)


def round_half_up(value: float, digits: int = 1) -> float:
    """
    Round to a fixed number of decimals, with halves rounded away from zero.

    Python's round() uses banker's rounding on binary floats, which turns
    66.65 into 66.6; percentages are rounded half-up instead.

    Example:
        >>> round_half_up(66.65)
        66.7
        >>> round_half_up(-2.25)
        -2.3
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
