"""
HRV score relative to the user's own baseline.

Components:
- baseline (50): deviation of today's HRV from the baseline mean. Inside the
  +/-20% band the component is full. Above it a bonus grows with the deviation;
  below it a penalty grows twice as fast, so low HRV costs more than high HRV earns.
- trend (25): improving 25, stable 20, declining 10.
- resting_hr (25): lower is better, scored against the resting-HR baseline.

Until the HRV baseline holds 14 days (resting HR: 7) the scorer runs in absolute
mode against population reference values and reports low confidence.
"""

from collections.abc import Sequence

import structlog

from tempo_core.config import HRVScoringConfig, TrendConfig
from tempo_core.domain.errors import NoDataError
from tempo_core.domain.models import (
    Confidence,
    DailyVitalsSample,
    MetricKind,
    MetricScore,
    Trend,
    lowest_confidence,
)
from tempo_core.domain.reference import reference_hrv, reference_resting_hr
from tempo_core.domain.result import Result
from tempo_core.services.classifiers import TrendClassifier
from tempo_core.services.fallback import FallbackResolver
from tempo_core.services.scoring import BaselineLookup, baseline_mean, build_score, clamp

logger = structlog.get_logger(__name__)

BASELINE_WEIGHT = 50.0
TREND_WEIGHT = 25.0
RESTING_HR_WEIGHT = 25.0

TREND_POINTS: dict[Trend, float] = {
    Trend.IMPROVING: 25.0,
    Trend.STABLE: 20.0,
    Trend.DECLINING: 10.0,
    Trend.UNKNOWN: 20.0,
}

MAX_HRV_MS = 500.0
RESTING_HR_BOUNDS = (20.0, 250.0)


class HRVScorer:
    """Scores today's HRV and resting heart rate against personal baselines."""

    def __init__(
        self,
        config: HRVScoringConfig | None = None,
        trend_config: TrendConfig | None = None,
    ) -> None:
        self.config = config or HRVScoringConfig()
        self.trend_classifier = TrendClassifier(trend_config)
        self.logger = logger.bind(component="hrv_scorer")

    def score(
        self,
        vitals: DailyVitalsSample,
        hrv_baseline: BaselineLookup,
        resting_hr_baseline: BaselineLookup,
        hrv_history: Sequence[float] = (),
    ) -> Result[MetricScore, NoDataError]:
        """
        Score ``vitals``.

        Args:
            vitals: today's vitals; ``hrv_ms`` is required
            hrv_baseline: result of ``BaselineStore.baseline(BaselineMetric.HRV)``
            resting_hr_baseline: result of ``BaselineStore.baseline(BaselineMetric.RESTING_HR)``
            hrv_history: daily HRV of the preceding days, oldest first

        Returns:
            Result with the MetricScore, or NoDataError when today's HRV is missing.
        """
        resolver = FallbackResolver(MetricKind.HRV)
        log = self.logger.bind(date=vitals.date.isoformat())
        try:
            today = resolver.require("hrv_ms", vitals.hrv_ms)
        except NoDataError as e:
            log.info("hrv_score_no_data", field=e.field)
            return Result.err(e)
        today = resolver.clamp("hrv_ms", today, 0.0, MAX_HRV_MS)

        hrv_mean, hrv_confidence = baseline_mean(
            hrv_baseline, reference_hrv(self.config.reference_age), log
        )
        deviation, adjustment, baseline_points = self.baseline_points(today, hrv_mean)

        trend = self.trend_classifier.classify_series([*hrv_history, today])
        trend_points = TREND_POINTS[trend]

        resting_points, resting_deviation, resting_confidence = self._resting_hr_points(
            vitals, resting_hr_baseline, resolver, log
        )

        components = {
            "baseline": baseline_points,
            "trend": trend_points,
            "resting_hr": resting_points,
            "deviation": deviation,
            "baseline_adjustment": adjustment,
            "resting_hr_deviation": resting_deviation,
        }
        result = build_score(
            MetricKind.HRV,
            vitals.date,
            baseline_points + trend_points + resting_points,
            components,
            trend,
            resolver,
            confidence=lowest_confidence(hrv_confidence, resting_confidence),
        )
        log.debug("hrv_scored", score=result.score, confidence=result.confidence.value)
        return Result.ok(result)

    def baseline_points(self, today: float, mean: float) -> tuple[float, float, float]:
        """Return (deviation, signed adjustment, component points) for today's HRV."""
        deviation = (today - mean) / mean
        band = self.config.deviation_band
        if deviation > band:
            adjustment = self.config.bonus_slope * (deviation - band)
        elif deviation < -band:
            adjustment = -self.config.penalty_multiplier * self.config.bonus_slope * (
                abs(deviation) - band
            )
        else:
            adjustment = 0.0
        points = clamp(BASELINE_WEIGHT + adjustment, 0.0, BASELINE_WEIGHT)
        return deviation, adjustment, points

    def _resting_hr_points(
        self,
        vitals: DailyVitalsSample,
        baseline: BaselineLookup,
        resolver: FallbackResolver,
        log: structlog.stdlib.BoundLogger,
    ) -> tuple[float, float, Confidence]:
        if vitals.resting_hr_bpm is None:
            return resolver.neutral("resting_hr_bpm", RESTING_HR_WEIGHT), 0.0, Confidence.HIGH

        resting = resolver.clamp("resting_hr_bpm", vitals.resting_hr_bpm, *RESTING_HR_BOUNDS)
        mean, confidence = baseline_mean(
            baseline,
            reference_resting_hr(self.config.reference_age, self.config.reference_sex),
            log,
        )
        rise = (resting - mean) / mean
        tolerance = self.config.resting_hr_tolerance
        ceiling = self.config.resting_hr_ceiling
        if rise <= tolerance:
            points = RESTING_HR_WEIGHT
        else:
            points = RESTING_HR_WEIGHT * clamp((ceiling - rise) / (ceiling - tolerance), 0.0, 1.0)
        return points, rise, confidence
