import math


def round_half_up(value: float) -> int:
    """Round .5 upward like the browser's Math.round (Python's round() is banker's)."""
    return math.floor(value + 0.5)


def percent(part: float, whole: float) -> int:
    """Whole-number percentage capped to 0..100; 0 when `whole` is not positive."""
    if whole <= 0:
        return 0
    return max(0, min(100, round_half_up(part / whole * 100)))
