"""
Status and trend classification shared by all four scorers.

Both are plain functions of numbers; mapping a status to a color or icon is a
presentation concern and is not done here.
"""

from collections.abc import Sequence
from statistics import fmean

from tempo_core.config import TrendConfig
from tempo_core.domain.models import ScoreStatus, Trend


def classify_status(score: float) -> ScoreStatus:
    """Map a 0-100 score onto its status band."""
    if score >= 80:
        return ScoreStatus.EXCELLENT
    if score >= 60:
        return ScoreStatus.GOOD
    if score >= 40:
        return ScoreStatus.FAIR
    if score >= 20:
        return ScoreStatus.LOW
    return ScoreStatus.POOR


class TrendClassifier:
    """
    Compare the mean of a recent window against the mean of the prior window.

    A relative change beyond the threshold (5% by default) counts as movement.
    ``higher_is_better=False`` flips the reading for metrics such as resting
    heart rate or bedtime irregularity, where a rise is a decline.
    """

    def __init__(self, config: TrendConfig | None = None) -> None:
        self.config = config or TrendConfig()

    def classify(
        self,
        recent: Sequence[float],
        prior: Sequence[float],
        higher_is_better: bool = True,
    ) -> Trend:
        if not recent or not prior:
            return Trend.UNKNOWN

        prior_mean = fmean(prior)
        recent_mean = fmean(recent)
        if prior_mean == 0:
            return Trend.STABLE if recent_mean == 0 else Trend.UNKNOWN

        change = (recent_mean - prior_mean) / abs(prior_mean)
        if not higher_is_better:
            change = -change

        if change > self.config.change_threshold:
            return Trend.IMPROVING
        if change < -self.config.change_threshold:
            return Trend.DECLINING
        return Trend.STABLE

    def classify_series(self, values: Sequence[float], higher_is_better: bool = True) -> Trend:
        """Classify a chronological series (oldest first).

        With at least two full windows the last window is compared with the one
        before it; shorter series are split into an older and a newer half.
        """
        window = self.config.window_days
        if len(values) >= 2 * window:
            recent = values[-window:]
            prior = values[-2 * window : -window]
        else:
            half = len(values) // 2
            prior, recent = values[:half], values[half:]
        return self.classify(recent, prior, higher_is_better=higher_is_better)
