"""
Reputation Scorer.

============================================================
RESPONSIBILITY
============================================================
Pure functions turning a developer's token counters into:
- migration success rate, integer percentage 0-100
- reputation score, integer 0-100

============================================================
SCORE COMPOSITION (max points)
============================================================
- Migration rate        40
- Launch volume         20  (saturates at 10 tokens)
- Bonded ratio          30
- Consistency           10  (1 - failure rate)

A developer with no tokens scores exactly 10: only the
consistency component contributes.

============================================================
ROUNDING
============================================================
Arithmetic is exact (fractions) and rounds half up, so
2/3 of 100 is 67 and 12.5 is 13.

============================================================
"""

import math
from fractions import Fraction
from typing import Union

MIGRATION_WEIGHT = 40
VOLUME_WEIGHT = 20
VOLUME_SATURATION = 10
SUCCESS_WEIGHT = 30
CONSISTENCY_WEIGHT = 10

MIN_SCORE = 0
MAX_SCORE = 100

Number = Union[int, Fraction]


def round_half_up(value: Number) -> int:
    """Round to the nearest integer, ties away from zero for non-negative values."""
    return math.floor(Fraction(value) + Fraction(1, 2))


def _ratio(part: int, total: int) -> Fraction:
    return Fraction(0) if total == 0 else Fraction(part, total)


def _check_counts(**counts: int) -> None:
    for name, value in counts.items():
        if value < 0:
            raise ValueError(f"{name} must be non-negative, got {value}")


def migration_success_rate(total_tokens: int, migrated_tokens: int) -> int:
    """
    Percentage of launched tokens that migrated.

    Returns 0 for a developer with no tokens.
    """
    _check_counts(total_tokens=total_tokens, migrated_tokens=migrated_tokens)
    rate = round_half_up(_ratio(migrated_tokens, total_tokens) * 100)
    return max(MIN_SCORE, min(MAX_SCORE, rate))


def score(
    total_tokens: int,
    migrated_tokens: int,
    bonded_tokens: int,
    failed_tokens: int,
) -> int:
    """
    Reputation score in [0, 100].

    Args:
        total_tokens: Tokens launched
        migrated_tokens: Tokens in migrated status
        bonded_tokens: Tokens in bonded status
        failed_tokens: Tokens in failed, rugged or abandoned status

    Raises:
        ValueError: any count is negative
    """
    _check_counts(
        total_tokens=total_tokens,
        migrated_tokens=migrated_tokens,
        bonded_tokens=bonded_tokens,
        failed_tokens=failed_tokens,
    )

    migration_comp = _ratio(migrated_tokens, total_tokens) * MIGRATION_WEIGHT
    volume_comp = min(Fraction(total_tokens, VOLUME_SATURATION), Fraction(1)) * VOLUME_WEIGHT
    success_comp = _ratio(bonded_tokens, total_tokens) * SUCCESS_WEIGHT
    consistency_comp = (1 - _ratio(failed_tokens, total_tokens)) * CONSISTENCY_WEIGHT

    raw = migration_comp + volume_comp + success_comp + consistency_comp
    clamped = max(Fraction(MIN_SCORE), min(Fraction(MAX_SCORE), raw))
    return round_half_up(clamped)
