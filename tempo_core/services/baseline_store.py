"""
Rolling personal baselines.

Key patterns:
- Welford's online algorithm with removal, so window eviction and same-day
  overwrites never require a pass over the full history
- Circular metrics (bedtime, waketime) are stored as signed offsets from an
  anchor hour, which keeps the linear statistics valid across midnight
- Readers get an immutable ``BaselineSnapshot``; the store itself has a single
  writer per user
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta
from types import MappingProxyType

import structlog

from tempo_core.config import BaselineConfig
from tempo_core.domain.errors import InsufficientBaselineError
from tempo_core.domain.models import BaselineMetric, BaselineObservation, BaselineStats
from tempo_core.domain.result import Result
from tempo_core.services.circadian import normalize_hour, wrap_hours

logger = structlog.get_logger(__name__)

# Anchor hours for circular metrics: typical values sit near the anchor, so the
# (-12h, +12h] wrap point falls around midday for bedtimes and the evening for waketimes.
CIRCULAR_ANCHORS: dict[BaselineMetric, float] = {
    BaselineMetric.BEDTIME: 23.0,
    BaselineMetric.WAKETIME: 7.0,
}


class RollingStatistics:
    """Mean and variance maintained incrementally (Welford), with removal."""

    def __init__(self) -> None:
        self.count = 0
        self.mean = 0.0
        self._m2 = 0.0

    def add(self, value: float) -> None:
        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        self._m2 += delta * (value - self.mean)

    def remove(self, value: float) -> None:
        if self.count <= 1:
            self.count = 0
            self.mean = 0.0
            self._m2 = 0.0
            return
        old_mean = self.mean
        self.count -= 1
        self.mean = old_mean - (value - old_mean) / self.count
        self._m2 -= (value - old_mean) * (value - self.mean)
        # Rounding can leave a tiny negative residue.
        self._m2 = max(self._m2, 0.0)

    @property
    def std_dev(self) -> float:
        if self.count < 2:
            return 0.0
        return math.sqrt(self._m2 / (self.count - 1))


@dataclass
class _MetricWindow:
    window_days: int
    min_samples: int
    values: dict[date, float] = field(default_factory=dict)
    stats: RollingStatistics = field(default_factory=RollingStatistics)

    def put(self, day: date, value: float | None) -> None:
        previous = self.values.pop(day, None)
        if previous is not None:
            self.stats.remove(previous)
        if value is not None:
            self.values[day] = value
            self.stats.add(value)

    def evict_through(self, cutoff: date) -> int:
        expired = [day for day in self.values if day <= cutoff]
        for day in expired:
            self.stats.remove(self.values.pop(day))
        return len(expired)


def _baseline_result(
    stats: BaselineStats, min_samples: int
) -> Result[BaselineStats, InsufficientBaselineError]:
    if stats.sample_count < min_samples:
        return Result.err(InsufficientBaselineError(stats.metric, stats.sample_count, min_samples))
    return Result.ok(stats)


@dataclass(frozen=True)
class BaselineSnapshot:
    """Immutable view of every baseline at one point in time."""

    stats: Mapping[BaselineMetric, BaselineStats]
    min_samples: Mapping[BaselineMetric, int]

    def baseline(self, metric: BaselineMetric) -> Result[BaselineStats, InsufficientBaselineError]:
        return _baseline_result(self.stats[metric], self.min_samples[metric])


class BaselineStore:
    """
    Per-user rolling baselines for HRV, resting heart rate, bedtime and waketime.

    ``update`` is idempotent per date: a second call for the same date replaces
    the first instead of counting twice.
    """

    def __init__(self, user_id: str, config: BaselineConfig | None = None) -> None:
        self.user_id = user_id
        self.config = config or BaselineConfig()
        self.logger = logger.bind(component="baseline_store", user_id=user_id)
        self._latest: date | None = None
        self._windows: dict[BaselineMetric, _MetricWindow] = {
            BaselineMetric.HRV: _MetricWindow(
                self.config.hrv_window_days, self.config.hrv_min_samples
            ),
            BaselineMetric.RESTING_HR: _MetricWindow(
                self.config.resting_hr_window_days, self.config.resting_hr_min_samples
            ),
            BaselineMetric.BEDTIME: _MetricWindow(
                self.config.rhythm_window_days, self.config.rhythm_min_samples
            ),
            BaselineMetric.WAKETIME: _MetricWindow(
                self.config.rhythm_window_days, self.config.rhythm_min_samples
            ),
        }

    @property
    def latest_date(self) -> date | None:
        return self._latest

    def update(self, day: date, observation: BaselineObservation) -> None:
        """Fold one day's observation into every metric window."""
        if self._latest is None or day > self._latest:
            self._latest = day

        for metric, window in self._windows.items():
            cutoff = self._latest - timedelta(days=window.window_days)
            if day <= cutoff:
                self.logger.warning(
                    "baseline_update_outside_window",
                    metric=metric.value,
                    day=day.isoformat(),
                    latest=self._latest.isoformat(),
                )
                continue
            window.put(day, self._linearize(metric, observation.value_for(metric)))
            window.evict_through(cutoff)

        self.logger.debug(
            "baseline_updated",
            day=day.isoformat(),
            counts={m.value: w.stats.count for m, w in self._windows.items()},
        )

    def baseline(self, metric: BaselineMetric) -> Result[BaselineStats, InsufficientBaselineError]:
        """Current statistics, or InsufficientBaselineError below the metric's minimum."""
        window = self._windows[metric]
        return _baseline_result(self._stats(metric), window.min_samples)

    def snapshot(self) -> BaselineSnapshot:
        return BaselineSnapshot(
            stats=MappingProxyType({metric: self._stats(metric) for metric in self._windows}),
            min_samples=MappingProxyType(
                {metric: window.min_samples for metric, window in self._windows.items()}
            ),
        )

    def _stats(self, metric: BaselineMetric) -> BaselineStats:
        window = self._windows[metric]
        mean = window.stats.mean
        std_dev = window.stats.std_dev
        if metric in CIRCULAR_ANCHORS and window.stats.count:
            mean = normalize_hour(CIRCULAR_ANCHORS[metric] + mean)
        return BaselineStats(
            metric=metric,
            mean=mean,
            std_dev=std_dev,
            sample_count=window.stats.count,
            window_days=window.window_days,
        )

    @staticmethod
    def _linearize(metric: BaselineMetric, value: float | None) -> float | None:
        if value is None or metric not in CIRCULAR_ANCHORS:
            return value
        return wrap_hours(value - CIRCULAR_ANCHORS[metric])
