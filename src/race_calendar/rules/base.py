"""Shared types for scoring rules.

A rule inspects one day and reports a single `RuleOutcome`: the breakdown
label, the signed score delta and any human-readable reasons. Rules never
touch the running score themselves; the assembler folds outcomes in the
order they are produced.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

HARD_FAIL = -100


@dataclass
class RuleOutcome:
    """Result of evaluating one rule category for one day."""

    label: str
    delta: int = 0
    reasons: list[str] = field(default_factory=list)

    @property
    def is_hard_fail(self) -> bool:
        """Whether this outcome alone forces the day to 0."""
        return self.delta <= HARD_FAIL

    @property
    def is_penalty(self) -> bool:
        return self.delta < 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards +infinity.

    Python's round() uses banker's rounding; scores need the same rounding
    on both sides of .5 regardless of parity.
    """
    return int(math.floor(value + 0.5))
