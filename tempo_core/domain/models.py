"""
Domain models for biometric scoring.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation but could be swapped to dataclasses if needed.

Sample fields are optional and deliberately unconstrained: impossible values are
clamped by the scorers and reported as data-quality warnings, not rejected here.
Output models carry hard bounds so an out-of-range score can never be built.
"""

from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

SLOTS_PER_DAY = 288  # 24h / 5min


class MetricKind(str, Enum):
    """The four composite scores produced per day."""

    SLEEP = "sleep"
    HRV = "hrv"
    RHYTHM = "rhythm"
    ACTIVITY = "activity"


class BaselineMetric(str, Enum):
    """Metrics tracked with a rolling personal baseline."""

    HRV = "hrv"
    RESTING_HR = "resting_hr"
    BEDTIME = "bedtime"
    WAKETIME = "waketime"


class ScoreStatus(str, Enum):
    """Status band of a 0-100 score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    LOW = "low"
    POOR = "poor"


class Trend(str, Enum):
    """Direction of a metric over the recent window compared with the prior one."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
    UNKNOWN = "unknown"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _instant(moment: datetime) -> datetime:
    return moment.astimezone(UTC) if moment.tzinfo is not None else moment


def lowest_confidence(*levels: Confidence) -> Confidence:
    """Return the weakest of the given confidence levels."""
    order = [Confidence.HIGH, Confidence.MEDIUM, Confidence.LOW]
    return max(levels, key=order.index, default=Confidence.HIGH)


# ---------------------------------------------------------------------------
# Inbound samples
# ---------------------------------------------------------------------------


class DailySleepSample(BaseModel):
    """One night of sleep, keyed by the calendar date the user woke up."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    date: date
    total_sleep_minutes: float | None = None
    deep_sleep_minutes: float | None = None
    rem_sleep_minutes: float | None = None
    time_in_bed_minutes: float | None = None
    bedtime_hour: float | None = Field(None, description="Local fractional hour, 0-24")
    waketime_hour: float | None = Field(None, description="Local fractional hour, 0-24")

    @property
    def effective_waketime_hour(self) -> float | None:
        """Reported waketime, or bedtime + time in bed wrapped onto the 24-hour clock."""
        if self.waketime_hour is not None:
            return self.waketime_hour
        if self.bedtime_hour is None or self.time_in_bed_minutes is None:
            return None
        return (self.bedtime_hour + self.time_in_bed_minutes / 60.0) % 24.0


class VitalsReading(BaseModel):
    """A single timestamped HRV / heart-rate reading."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    hrv_ms: float | None = None
    heart_rate_bpm: float | None = None


class DailyVitalsSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    date: date
    hrv_ms: float | None = None
    resting_hr_bpm: float | None = None
    readings: tuple[VitalsReading, ...] = ()


class DailyActivitySample(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    date: date
    steps: float | None = None
    active_minutes: float | None = None
    sedentary_breaks: float | None = None
    exercise_completed: bool | None = None


# ---------------------------------------------------------------------------
# Baselines
# ---------------------------------------------------------------------------


class BaselineStats(BaseModel):
    """Rolling mean / standard deviation of one metric.

    For bedtime and waketime ``mean`` is a clock hour (0-24) and ``std_dev`` is
    in hours, both computed on circular distances.
    """

    model_config = ConfigDict(frozen=True)

    metric: BaselineMetric
    mean: float
    std_dev: float = Field(ge=0.0)
    sample_count: int = Field(ge=0)
    window_days: int = Field(gt=0)


class BaselineObservation(BaseModel):
    """The values one day contributes to the rolling baselines."""

    model_config = ConfigDict(frozen=True)

    hrv_ms: float | None = None
    resting_hr_bpm: float | None = None
    bedtime_hour: float | None = None
    waketime_hour: float | None = None

    @classmethod
    def from_samples(
        cls,
        sleep: DailySleepSample | None = None,
        vitals: DailyVitalsSample | None = None,
    ) -> "BaselineObservation":
        return cls(
            hrv_ms=vitals.hrv_ms if vitals else None,
            resting_hr_bpm=vitals.resting_hr_bpm if vitals else None,
            bedtime_hour=sleep.bedtime_hour if sleep else None,
            waketime_hour=sleep.effective_waketime_hour if sleep else None,
        )

    def value_for(self, metric: BaselineMetric) -> float | None:
        return {
            BaselineMetric.HRV: self.hrv_ms,
            BaselineMetric.RESTING_HR: self.resting_hr_bpm,
            BaselineMetric.BEDTIME: self.bedtime_hour,
            BaselineMetric.WAKETIME: self.waketime_hour,
        }[metric]


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


class DataQualityWarning(BaseModel):
    """An impossible input value that was clamped to its nearest valid bound."""

    model_config = ConfigDict(frozen=True)

    field: str
    original_value: float
    clamped_value: float
    message: str


class MetricScore(BaseModel):
    """Composite score of one metric for one date. Superseded, never mutated."""

    model_config = ConfigDict(frozen=True)

    metric: MetricKind
    date: date
    score: int = Field(ge=0, le=100)
    status: ScoreStatus
    components: dict[str, float]
    trend: Trend
    confidence: Confidence
    warnings: tuple[DataQualityWarning, ...] = ()
    fallbacks: tuple[str, ...] = Field(
        default=(), description="Input fields substituted by the fallback policy"
    )


class AutonomicBalancePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    balance: float = Field(ge=-100.0, le=100.0)
    confidence: Confidence = Confidence.HIGH
    has_data: bool = True


class BalanceSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    avg: float = Field(ge=-100.0, le=100.0)
    min: float = Field(ge=-100.0, le=100.0)
    max: float = Field(ge=-100.0, le=100.0)
    peak_stress_time: datetime
    most_relaxed_time: datetime


class AutonomicBalanceSeries(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    points: tuple[AutonomicBalancePoint, ...]
    summary: BalanceSummary
    confidence: Confidence
    is_complete: bool = True
    warnings: tuple[DataQualityWarning, ...] = ()

    @model_validator(mode="after")
    def timestamps_strictly_increasing(self) -> "AutonomicBalanceSeries":
        """A series never holds duplicate or out-of-order slots.

        Aware timestamps are compared as UTC instants, so a repeated DST hour
        counts as later.
        """
        for previous, current in zip(self.points, self.points[1:]):
            if _instant(current.timestamp) <= _instant(previous.timestamp):
                raise ValueError(f"balance points out of order at {current.timestamp}")
        if self.is_complete and len(self.points) != SLOTS_PER_DAY:
            raise ValueError(
                f"a completed day needs {SLOTS_PER_DAY} points, got {len(self.points)}"
            )
        return self
