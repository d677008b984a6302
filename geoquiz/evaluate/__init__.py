"""
Statistics for GeoQuiz sessions.

This module derives coverage statistics from the current quiz state.

Key Components:
- QuizStatisticsEngine: Coverage, bin tables, rankings and proportions
- filter_entities / ThresholdControls: Live numeric cutoffs
- format_statistics: Plain-text report rendering
"""

from .metrics import QuizStatisticsEngine, QuizStatistics, percentage
from .threshold_filter import FilterResult, ThresholdControls, filter_entities
from .report import format_statistics, statistics_to_dict

__all__ = [
    'QuizStatisticsEngine',
    'QuizStatistics',
    'percentage',
    'FilterResult',
    'ThresholdControls',
    'filter_entities',
    'format_statistics',
    'statistics_to_dict'
]
