"""
Missing-data and out-of-range policy shared by the scorers.

One resolver is created per score computation and records what it did:

- required field missing   -> raises NoDataError (the scorer turns it into Result.err)
- optional field missing   -> documented substitute, field listed in ``fallbacks``
- impossible value         -> clamped to the nearest bound, DataQualityWarning recorded
"""

import structlog

from tempo_core.domain.errors import NoDataError
from tempo_core.domain.models import Confidence, DataQualityWarning, MetricKind

logger = structlog.get_logger(__name__)

NEUTRAL_SHARE = 0.5


class FallbackResolver:
    """Applies the substitution policy for a single metric computation."""

    def __init__(self, metric: MetricKind | str) -> None:
        self.metric = metric
        self.warnings: list[DataQualityWarning] = []
        self.fallbacks: list[str] = []
        self.logger = logger.bind(metric=getattr(metric, "value", metric))

    def require(self, field: str, value: float | None) -> float:
        """Return ``value`` or raise NoDataError when it is absent."""
        if value is None:
            raise NoDataError(self.metric, field)
        return float(value)

    def clamp(
        self,
        field: str,
        value: float,
        low: float | None = None,
        high: float | None = None,
    ) -> float:
        """Clamp ``value`` into [low, high], recording a warning when it moves."""
        clamped = value
        if low is not None and clamped < low:
            clamped = low
        if high is not None and clamped > high:
            clamped = high
        if clamped != value:
            warning = DataQualityWarning(
                field=field,
                original_value=value,
                clamped_value=clamped,
                message=f"{field}={value} outside valid range, clamped to {clamped}",
            )
            self.warnings.append(warning)
            self.logger.warning("value_clamped", field=field, original=value, clamped=clamped)
        return clamped

    def substitute(self, field: str, value: float | None, fallback: float) -> float:
        """Return ``value``, or the documented ``fallback`` when it is absent."""
        if value is not None:
            return float(value)
        self.fallbacks.append(field)
        self.logger.debug("fallback_applied", field=field, fallback=fallback)
        return fallback

    def neutral(self, field: str, weight: float) -> float:
        """Points awarded to a component whose optional input is missing."""
        self.fallbacks.append(field)
        self.logger.debug("neutral_component", field=field, weight=weight)
        return weight * NEUTRAL_SHARE

    @property
    def confidence(self) -> Confidence:
        """Confidence implied by the substitutions made so far."""
        return Confidence.MEDIUM if self.fallbacks else Confidence.HIGH
