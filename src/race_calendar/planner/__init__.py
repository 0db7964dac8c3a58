"""Caller-side orchestration of retrieval and scoring."""

from race_calendar.planner.session import AnalysisResult, AnalysisSession

__all__ = ["AnalysisResult", "AnalysisSession"]
