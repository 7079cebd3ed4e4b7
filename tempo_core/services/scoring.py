"""Piecewise-linear point helpers and MetricScore assembly shared by the scorers."""

from datetime import date

import structlog

from tempo_core.domain.errors import InsufficientBaselineError
from tempo_core.domain.models import (
    BaselineStats,
    Confidence,
    MetricKind,
    MetricScore,
    Trend,
    lowest_confidence,
)
from tempo_core.domain.result import Result
from tempo_core.services.classifiers import classify_status
from tempo_core.services.fallback import FallbackResolver

BaselineLookup = Result[BaselineStats, InsufficientBaselineError]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def band_points(
    value: float,
    weight: float,
    full_low: float,
    full_high: float,
    zero_low: float | None = None,
    zero_high: float | None = None,
) -> float:
    """Full ``weight`` inside [full_low, full_high], falling linearly to 0 at the zero points.

    A missing zero point means no decay on that side.
    """
    if full_low <= value <= full_high:
        return weight
    if value < full_low:
        if zero_low is None:
            return weight
        fraction = (value - zero_low) / (full_low - zero_low)
    else:
        if zero_high is None:
            return weight
        fraction = (zero_high - value) / (zero_high - full_high)
    return weight * clamp(fraction, 0.0, 1.0)


def capped_ratio_points(value: float, target: float, weight: float) -> float:
    """Points proportional to ``value / target``, never above ``weight``."""
    return weight * clamp(value / target, 0.0, 1.0)


def build_score(
    metric: MetricKind,
    day: date,
    points: float,
    components: dict[str, float],
    trend: Trend,
    resolver: FallbackResolver,
    confidence: Confidence = Confidence.HIGH,
) -> MetricScore:
    """Round and clamp the point total and wrap everything in an immutable MetricScore."""
    score = int(clamp(round(points), 0, 100))
    return MetricScore(
        metric=metric,
        date=day,
        score=score,
        status=classify_status(score),
        components={name: round(value, 2) for name, value in components.items()},
        trend=trend,
        confidence=lowest_confidence(confidence, resolver.confidence),
        warnings=tuple(resolver.warnings),
        fallbacks=tuple(resolver.fallbacks),
    )


def baseline_mean(
    baseline: BaselineLookup,
    population_value: float,
    log: structlog.stdlib.BoundLogger,
) -> tuple[float, Confidence]:
    """Personal baseline mean when usable, otherwise the population reference at low confidence."""
    if baseline.is_ok() and baseline.unwrap().mean > 0:
        return baseline.unwrap().mean, Confidence.HIGH
    if baseline.is_err():
        error = baseline.unwrap_err()
        log.info(
            "absolute_mode",
            baseline=error.metric.value,
            sample_count=error.sample_count,
            required=error.required,
        )
    return population_value, Confidence.LOW
