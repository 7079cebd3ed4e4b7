"""
Circadian rhythm score: how regular sleep and wake times are across a week.

| component          | weight | rule                                                     |
|--------------------|--------|----------------------------------------------------------|
| bedtime_stability  | 35     | full at sigma <= 30 min, 0 at the configured ceiling     |
| waketime_stability | 35     | same rule on wake times                                  |
| weekend_shift      | 20     | full if weekday/weekend mean bedtime differ <= 1 h       |
| ideal_window       | 10     | share of nights asleep and awake inside 22:00-06:00      |

All statistics use circular distance on the 24-hour clock.
"""

from collections.abc import Sequence
from datetime import date

import structlog

from tempo_core.config import RhythmScoringConfig, TrendConfig
from tempo_core.domain.errors import NoDataError
from tempo_core.domain.models import Confidence, DailySleepSample, MetricKind, MetricScore, Trend
from tempo_core.domain.result import Result
from tempo_core.services.circadian import (
    circular_distance,
    circular_mean,
    circular_std_minutes,
    in_clock_window,
    normalize_hour,
)
from tempo_core.services.classifiers import TrendClassifier
from tempo_core.services.fallback import FallbackResolver
from tempo_core.services.scoring import BaselineLookup, band_points, build_score

logger = structlog.get_logger(__name__)

BEDTIME_STABILITY_WEIGHT = 35.0
WAKETIME_STABILITY_WEIGHT = 35.0
WEEKEND_SHIFT_WEIGHT = 20.0
IDEAL_WINDOW_WEIGHT = 10.0

SATURDAY = 5


class _Night:
    __slots__ = ("day", "bedtime", "waketime")

    def __init__(self, day: date, bedtime: float, waketime: float | None) -> None:
        self.day = day
        self.bedtime = bedtime
        self.waketime = waketime

    @property
    def is_weekend(self) -> bool:
        # Keyed by wake-up date: Saturday and Sunday mornings follow the free nights.
        return self.day.weekday() >= SATURDAY


class RhythmScorer:
    """Scores sleep-timing regularity over the most recent nights."""

    def __init__(
        self,
        config: RhythmScoringConfig | None = None,
        trend_config: TrendConfig | None = None,
    ) -> None:
        self.config = config or RhythmScoringConfig()
        self.trend_classifier = TrendClassifier(trend_config)
        self.logger = logger.bind(component="rhythm_scorer")

    def score(
        self,
        day: date,
        nights: Sequence[DailySleepSample],
        bedtime_baseline: BaselineLookup | None = None,
        waketime_baseline: BaselineLookup | None = None,
    ) -> Result[MetricScore, NoDataError]:
        """
        Score the rhythm for ``day``.

        Args:
            day: the date being scored
            nights: recent sleep samples, oldest first. The last ``config.nights``
                nights are scored; the same number before them feed the trend.
            bedtime_baseline: rolling bedtime baseline; an insufficient one lowers confidence
            waketime_baseline: rolling waketime baseline, same rule

        Returns:
            Result with the MetricScore, or NoDataError with fewer than two bedtimes.
        """
        resolver = FallbackResolver(MetricKind.RHYTHM)
        usable = self._resolve_nights(nights, resolver)
        recent = usable[-self.config.nights :]
        prior = usable[-2 * self.config.nights : -self.config.nights]

        if len(recent) < 2:
            self.logger.info("rhythm_score_no_data", date=day.isoformat(), nights=len(recent))
            return Result.err(NoDataError(MetricKind.RHYTHM, "bedtime_hour"))

        bedtimes = [n.bedtime for n in recent]
        waketimes = [n.waketime for n in recent if n.waketime is not None]

        bedtime_std = circular_std_minutes(bedtimes)
        components = {
            "bedtime_stability": self._stability_points(bedtime_std, BEDTIME_STABILITY_WEIGHT),
        }
        if len(waketimes) >= 2:
            components["waketime_stability"] = self._stability_points(
                circular_std_minutes(waketimes), WAKETIME_STABILITY_WEIGHT
            )
        else:
            components["waketime_stability"] = resolver.neutral(
                "waketime_hour", WAKETIME_STABILITY_WEIGHT
            )
        components["weekend_shift"] = self._weekend_shift_points(recent, resolver)
        components["ideal_window"] = self._ideal_window_points(recent, resolver)

        trend = self._trend(recent, prior)
        confidence = Confidence.LOW if len(recent) < self.config.nights else Confidence.HIGH
        insufficient = [
            lookup.unwrap_err().metric.value
            for lookup in (bedtime_baseline, waketime_baseline)
            if lookup is not None and lookup.is_err()
        ]
        if insufficient:
            self.logger.debug(
                "rhythm_baseline_insufficient", date=day.isoformat(), metrics=insufficient
            )
            confidence = Confidence.LOW
        points = sum(components.values())
        components["bedtime_std_minutes"] = bedtime_std

        result = build_score(
            MetricKind.RHYTHM, day, points, components, trend, resolver, confidence=confidence
        )
        self.logger.debug(
            "rhythm_scored", date=day.isoformat(), score=result.score, nights=len(recent)
        )
        return Result.ok(result)

    def _resolve_nights(
        self, nights: Sequence[DailySleepSample], resolver: FallbackResolver
    ) -> list[_Night]:
        resolved: list[_Night] = []
        for sample in nights:
            if sample.bedtime_hour is None:
                continue
            bedtime = resolver.clamp("bedtime_hour", sample.bedtime_hour, 0.0, 24.0)
            waketime = sample.waketime_hour
            if waketime is None and sample.time_in_bed_minutes is not None:
                waketime = resolver.substitute(
                    "waketime_hour",
                    None,
                    normalize_hour(bedtime + sample.time_in_bed_minutes / 60.0),
                )
            elif waketime is not None:
                waketime = resolver.clamp("waketime_hour", waketime, 0.0, 24.0)
            resolved.append(_Night(sample.date, bedtime, waketime))
        return resolved

    def _stability_points(self, std_minutes: float, weight: float) -> float:
        return band_points(
            std_minutes,
            weight,
            0.0,
            self.config.stability_full_minutes,
            zero_high=self.config.stability_ceiling_minutes,
        )

    def _weekend_shift_points(self, nights: list[_Night], resolver: FallbackResolver) -> float:
        weekday = [n.bedtime for n in nights if not n.is_weekend]
        weekend = [n.bedtime for n in nights if n.is_weekend]
        if not weekday or not weekend:
            return resolver.neutral("weekend_shift", WEEKEND_SHIFT_WEIGHT)
        shift = circular_distance(circular_mean(weekday), circular_mean(weekend))
        return band_points(
            shift,
            WEEKEND_SHIFT_WEIGHT,
            0.0,
            self.config.weekend_shift_full_hours,
            zero_high=self.config.weekend_shift_ceiling_hours,
        )

    def _ideal_window_points(self, nights: list[_Night], resolver: FallbackResolver) -> float:
        complete = [n for n in nights if n.waketime is not None]
        if not complete:
            return resolver.neutral("ideal_window", IDEAL_WINDOW_WEIGHT)
        start = self.config.ideal_window_start_hour
        end = self.config.ideal_window_end_hour
        inside = sum(
            1
            for n in complete
            if in_clock_window(n.bedtime, start, end)
            and in_clock_window(n.waketime, start, end)  # type: ignore[arg-type]
        )
        return IDEAL_WINDOW_WEIGHT * inside / len(complete)

    def _trend(self, recent: list[_Night], prior: list[_Night]) -> Trend:
        """Bedtime spread of the recent nights against the nights before; smaller is better."""
        if len(prior) < 2:
            return Trend.UNKNOWN
        return self.trend_classifier.classify(
            [circular_std_minutes([n.bedtime for n in recent])],
            [circular_std_minutes([n.bedtime for n in prior])],
            higher_is_better=False,
        )
