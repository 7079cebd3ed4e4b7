"""
Scoring services.

This package contains the baseline store, the four metric scorers, the
autonomic balance synthesizer and the daily pipeline that ties them together.
"""

from .activity_scorer import ActivityScorer
from .autonomic_balance import AutonomicBalanceSynthesizer, balance_value
from .baseline_store import BaselineSnapshot, BaselineStore, RollingStatistics
from .classifiers import TrendClassifier, classify_status
from .daily_scoring import DailyInputs, DailyReport, DailyScoringService
from .fallback import FallbackResolver
from .hrv_scorer import HRVScorer
from .rhythm_scorer import RhythmScorer
from .sleep_scorer import SleepScorer

__all__ = [
    "ActivityScorer",
    "AutonomicBalanceSynthesizer",
    "balance_value",
    "BaselineSnapshot",
    "BaselineStore",
    "RollingStatistics",
    "TrendClassifier",
    "classify_status",
    "DailyInputs",
    "DailyReport",
    "DailyScoringService",
    "FallbackResolver",
    "HRVScorer",
    "RhythmScorer",
    "SleepScorer",
]
