"""
Score normalization

Judges report scores on their own scale. Threshold comparisons need a common
0-1 scale, so everything goes through to_normalized():

- bool:        True -> 1.0, False -> 0.0
- int / float: (score - min) / (max - min), clamped to [0, 1]; default range 0..1
- str:         categorical lookup in config["categories"]

Usage:
    to_normalized(4, {"min": 0, "max": 5})        # 0.8
    to_normalized("WARNING")                       # 0.6
    to_normalized(True)                            # 1.0
"""

from typing import Any, Mapping, Optional

from evaluation.models import RawScore

DEFAULT_MIN = 0.0
DEFAULT_MAX = 1.0

DEFAULT_CATEGORIES = {"PASS": 1.0, "WARNING": 0.6, "FAIL": 0.0}
UNKNOWN_CATEGORY_SCORE = 0.5


def to_normalized(score: RawScore, config: Optional[Mapping[str, Any]] = None) -> float:
    """
    Normalize a raw score to the 0-1 range.

    Args:
        score: raw score (bool, number or category name)
        config: optional "min" / "max" for numeric scores and "categories"
            for categorical ones

    Returns:
        Normalized score in [0, 1]

    Raises:
        TypeError: unsupported score type
        ValueError: numeric range with max <= min
    """
    config = config or {}

    # bool first: bool is a subclass of int
    if isinstance(score, bool):
        return 1.0 if score else 0.0

    if isinstance(score, (int, float)):
        low = float(config.get("min", DEFAULT_MIN))
        high = float(config.get("max", DEFAULT_MAX))
        if high <= low:
            raise ValueError(f"invalid score range: min={low}, max={high}")
        normalized = (float(score) - low) / (high - low)
        return min(1.0, max(0.0, normalized))

    if isinstance(score, str):
        categories = config.get("categories", DEFAULT_CATEGORIES)
        key = score.strip()
        if key in categories:
            return float(categories[key])
        return float(categories.get(key.upper(), UNKNOWN_CATEGORY_SCORE))

    raise TypeError(f"unsupported score type: {type(score).__name__}")
