"""
Sleep score: five weighted piecewise-linear components.

| component  | weight | full band                  | decay                          |
|------------|--------|----------------------------|--------------------------------|
| duration   | 35     | 7-9 h                      | -7 pt/h below, -5 pt/h above   |
| deep_ratio | 25     | 15-20 % of total           | to 0 at 0 % and 40 %           |
| rem_ratio  | 15     | 20-25 % of total           | to 0 at 0 % and 50 %           |
| efficiency | 15     | >= 90 % of time in bed     | to 0 at 50 %                   |
| bedtime    | 10     | within 1 h of 23:00        | -3 pt per hour beyond that     |
"""

from collections.abc import Sequence

import structlog

from tempo_core.config import SleepScoringConfig, TrendConfig
from tempo_core.domain.errors import NoDataError
from tempo_core.domain.models import DailySleepSample, MetricKind, MetricScore
from tempo_core.domain.result import Result
from tempo_core.services.circadian import circular_distance
from tempo_core.services.classifiers import TrendClassifier
from tempo_core.services.fallback import FallbackResolver
from tempo_core.services.scoring import band_points, build_score, clamp

logger = structlog.get_logger(__name__)

DURATION_WEIGHT = 35.0
DEEP_WEIGHT = 25.0
REM_WEIGHT = 15.0
EFFICIENCY_WEIGHT = 15.0
BEDTIME_WEIGHT = 10.0

MINUTES_PER_DAY = 24 * 60


class SleepScorer:
    """Scores one night of sleep. Pure: no state is kept between calls."""

    def __init__(
        self,
        config: SleepScoringConfig | None = None,
        trend_config: TrendConfig | None = None,
    ) -> None:
        self.config = config or SleepScoringConfig()
        self.trend_classifier = TrendClassifier(trend_config)
        self.logger = logger.bind(component="sleep_scorer")

    def score(
        self, sample: DailySleepSample, history: Sequence[float] = ()
    ) -> Result[MetricScore, NoDataError]:
        """
        Score ``sample``.

        Args:
            sample: the night to score
            history: total sleep minutes of the preceding days, oldest first

        Returns:
            Result with the MetricScore, or NoDataError when total sleep is missing.
        """
        resolver = FallbackResolver(MetricKind.SLEEP)
        try:
            total = resolver.require("total_sleep_minutes", sample.total_sleep_minutes)
        except NoDataError as e:
            self.logger.info("sleep_score_no_data", date=sample.date.isoformat(), field=e.field)
            return Result.err(e)

        total = resolver.clamp("total_sleep_minutes", total, 0.0, MINUTES_PER_DAY)
        components = {
            "duration": self._duration_points(total / 60.0),
            "deep_ratio": self._deep_points(sample, total, resolver),
            "rem_ratio": self._rem_points(sample, total, resolver),
            "efficiency": self._efficiency_points(sample, total, resolver),
            "bedtime": self._bedtime_points(sample, resolver),
        }
        trend = self.trend_classifier.classify_series([*history, total])

        result = build_score(
            MetricKind.SLEEP,
            sample.date,
            sum(components.values()),
            components,
            trend,
            resolver,
        )
        self.logger.debug("sleep_scored", date=sample.date.isoformat(), score=result.score)
        return Result.ok(result)

    @staticmethod
    def _duration_points(hours: float) -> float:
        if hours < 7.0:
            return clamp(DURATION_WEIGHT - 7.0 * (7.0 - hours), 0.0, DURATION_WEIGHT)
        if hours > 9.0:
            return clamp(DURATION_WEIGHT - 5.0 * (hours - 9.0), 0.0, DURATION_WEIGHT)
        return DURATION_WEIGHT

    def _deep_points(
        self, sample: DailySleepSample, total: float, resolver: FallbackResolver
    ) -> float:
        deep = resolver.substitute(
            "deep_sleep_minutes", sample.deep_sleep_minutes, self.config.fallback_deep_ratio * total
        )
        deep = resolver.clamp("deep_sleep_minutes", deep, 0.0, total)
        ratio = deep / total if total > 0 else 0.0
        return band_points(ratio, DEEP_WEIGHT, 0.15, 0.20, zero_low=0.0, zero_high=0.40)

    def _rem_points(
        self, sample: DailySleepSample, total: float, resolver: FallbackResolver
    ) -> float:
        rem = resolver.substitute(
            "rem_sleep_minutes", sample.rem_sleep_minutes, self.config.fallback_rem_ratio * total
        )
        rem = resolver.clamp("rem_sleep_minutes", rem, 0.0, total)
        ratio = rem / total if total > 0 else 0.0
        return band_points(ratio, REM_WEIGHT, 0.20, 0.25, zero_low=0.0, zero_high=0.50)

    def _efficiency_points(
        self, sample: DailySleepSample, total: float, resolver: FallbackResolver
    ) -> float:
        if sample.time_in_bed_minutes is None:
            efficiency = resolver.substitute(
                "time_in_bed_minutes", None, self.config.fallback_efficiency
            )
        else:
            # Time in bed can never be shorter than the sleep it contains.
            in_bed = resolver.clamp(
                "time_in_bed_minutes", sample.time_in_bed_minutes, total, MINUTES_PER_DAY
            )
            efficiency = total / in_bed if in_bed > 0 else 0.0
        return band_points(efficiency, EFFICIENCY_WEIGHT, 0.90, 1.0, zero_low=0.50)

    def _bedtime_points(self, sample: DailySleepSample, resolver: FallbackResolver) -> float:
        if sample.bedtime_hour is None:
            return resolver.neutral("bedtime_hour", BEDTIME_WEIGHT)
        bedtime = resolver.clamp("bedtime_hour", sample.bedtime_hour, 0.0, 24.0)
        deviation = circular_distance(bedtime, self.config.ideal_bedtime_hour)
        excess = max(0.0, deviation - self.config.bedtime_tolerance_hours)
        return clamp(BEDTIME_WEIGHT - 3.0 * excess, 0.0, BEDTIME_WEIGHT)
