"""
Expected scoring outcomes expressed as exception types.

These are never raised across a component boundary: scorers wrap them in
``Result.err`` so callers handle "no data" and "baseline not ready" the same way
for every metric. Out-of-range inputs are not errors at all; they are clamped and
reported as ``DataQualityWarning`` on the result.
"""

from tempo_core.domain.models import BaselineMetric, MetricKind

BALANCE_SERIES = "autonomic_balance"


def _label(metric: MetricKind | BaselineMetric | str) -> str:
    return metric.value if isinstance(metric, (MetricKind, BaselineMetric)) else metric


class ScoringError(Exception):
    """Base class for expected scoring outcomes."""


class NoDataError(ScoringError):
    """A required input field is absent. The result is not computed."""

    def __init__(self, metric: MetricKind | str, field: str) -> None:
        self.metric = metric
        self.field = field
        super().__init__(f"{_label(metric)}: required field '{field}' is missing")


class InsufficientBaselineError(ScoringError):
    """A rolling baseline has fewer samples than its metric needs."""

    def __init__(self, metric: BaselineMetric, sample_count: int, required: int) -> None:
        self.metric = metric
        self.sample_count = sample_count
        self.required = required
        super().__init__(
            f"{_label(metric)} baseline has {sample_count} samples, needs {required}"
        )
