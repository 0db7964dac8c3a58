"""Day suitability scoring."""

from race_calendar.scoring.assembler import (
    DayScoreAssembler,
    classify_status,
    clamp_score,
    darkness_outcome,
    month_days,
    rank_days,
)

__all__ = [
    "DayScoreAssembler",
    "classify_status",
    "clamp_score",
    "darkness_outcome",
    "month_days",
    "rank_days",
]
