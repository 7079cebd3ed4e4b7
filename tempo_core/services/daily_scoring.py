"""
Daily scoring pipeline for one user.

Key patterns:
- Baseline backfill is a sequential fold: each day's baseline depends on every
  day before it, so days are applied strictly in date order
- Scoring fans out: once the snapshots exist, each day depends only on its own
  inputs and its frozen snapshot, so days run concurrently under a TaskGroup
- Expected outcomes (no data for a metric) are collected into the report, not raised
"""

import asyncio
import time
from collections.abc import Sequence
from datetime import UTC, date, timedelta, tzinfo

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from tempo_core.config import AppConfig
from tempo_core.domain.errors import NoDataError
from tempo_core.domain.models import (
    AutonomicBalanceSeries,
    BaselineMetric,
    BaselineObservation,
    DailyActivitySample,
    DailySleepSample,
    DailyVitalsSample,
    MetricKind,
    MetricScore,
    VitalsReading,
)
from tempo_core.domain.result import Result
from tempo_core.services.activity_scorer import ActivityScorer
from tempo_core.services.autonomic_balance import AutonomicBalanceSynthesizer
from tempo_core.services.baseline_store import BaselineSnapshot, BaselineStore
from tempo_core.services.hrv_scorer import HRVScorer
from tempo_core.services.rhythm_scorer import RhythmScorer
from tempo_core.services.sleep_scorer import SleepScorer

logger = structlog.get_logger(__name__)


class DailyInputs(BaseModel):
    """Everything the external collector delivered for one user and date."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    date: date
    sleep: DailySleepSample | None = None
    vitals: DailyVitalsSample | None = None
    activity: DailyActivitySample | None = None

    @model_validator(mode="after")
    def samples_match_key(self) -> "DailyInputs":
        for sample in (self.sleep, self.vitals, self.activity):
            if sample is None:
                continue
            if sample.user_id != self.user_id or sample.date != self.date:
                raise ValueError(
                    f"sample keyed ({sample.user_id}, {sample.date}) "
                    f"does not belong to ({self.user_id}, {self.date})"
                )
        return self


class DailyReport(BaseModel):
    """The four scores and the balance series for one day, plus what could not be computed."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    date: date
    scores: dict[MetricKind, MetricScore] = Field(default_factory=dict)
    missing: dict[MetricKind, str] = Field(
        default_factory=dict, description="Metric -> reason it has no score"
    )
    balance: AutonomicBalanceSeries | None = None
    balance_missing: str | None = None


class DailyScoringService:
    """
    Orchestrates baselines, scorers and the balance synthesizer for one user.

    Design principles:
    - Scorers are stateless and shared across concurrent days
    - The BaselineStore has a single writer: ``backfill_baselines``
    - Observable (structured logging for every day scored)
    """

    def __init__(self, config: AppConfig | None = None, tz: tzinfo = UTC) -> None:
        self.config = config or AppConfig()
        self.tz = tz
        self.logger = logger.bind(component="daily_scoring")

        self.sleep_scorer = SleepScorer(self.config.sleep, self.config.trend)
        self.hrv_scorer = HRVScorer(self.config.hrv, self.config.trend)
        self.rhythm_scorer = RhythmScorer(self.config.rhythm, self.config.trend)
        self.activity_scorer = ActivityScorer(self.config.activity, self.config.trend)
        self.synthesizer = AutonomicBalanceSynthesizer(self.config.balance, self.config.hrv)

    @property
    def history_days(self) -> int:
        """Preceding days needed by the trend and rhythm windows."""
        return 2 * max(self.config.trend.window_days, self.config.rhythm.nights)

    def new_store(self, user_id: str) -> BaselineStore:
        return BaselineStore(user_id, self.config.baselines)

    def backfill_baselines(
        self, store: BaselineStore, days: Sequence[DailyInputs]
    ) -> dict[date, BaselineSnapshot]:
        """
        Fold ``days`` into ``store`` in date order.

        Returns the snapshot each day should be scored against: the baseline as
        it stood before that day's own values were added.
        """
        snapshots: dict[date, BaselineSnapshot] = {}
        for day in _chronological(days):
            snapshots[day.date] = store.snapshot()
            store.update(day.date, BaselineObservation.from_samples(day.sleep, day.vitals))

        self.logger.info("baselines_backfilled", user_id=store.user_id, days=len(snapshots))
        return snapshots

    def score_day(
        self,
        day: DailyInputs,
        snapshot: BaselineSnapshot,
        history: Sequence[DailyInputs] = (),
    ) -> DailyReport:
        """Score one day against a frozen baseline snapshot.

        ``history`` holds the preceding days (any order); only those within
        ``history_days`` calendar days before ``day`` are used.
        """
        oldest = day.date - timedelta(days=self.history_days)
        earlier = [h for h in _chronological(history) if oldest <= h.date < day.date]
        scores: dict[MetricKind, MetricScore] = {}
        missing: dict[MetricKind, str] = {}

        hrv_baseline = snapshot.baseline(BaselineMetric.HRV)
        resting_hr_baseline = snapshot.baseline(BaselineMetric.RESTING_HR)

        if day.sleep is None:
            missing[MetricKind.SLEEP] = "no sleep sample"
            missing[MetricKind.RHYTHM] = "no sleep sample"
        else:
            sleep_history = [
                h.sleep.total_sleep_minutes
                for h in earlier
                if h.sleep and h.sleep.total_sleep_minutes is not None
            ]
            _collect(
                MetricKind.SLEEP, self.sleep_scorer.score(day.sleep, sleep_history), scores, missing
            )
            nights = [h.sleep for h in earlier if h.sleep] + [day.sleep]
            _collect(
                MetricKind.RHYTHM,
                self.rhythm_scorer.score(
                    day.date,
                    nights,
                    snapshot.baseline(BaselineMetric.BEDTIME),
                    snapshot.baseline(BaselineMetric.WAKETIME),
                ),
                scores,
                missing,
            )

        balance: AutonomicBalanceSeries | None = None
        balance_missing: str | None = None
        if day.vitals is None:
            missing[MetricKind.HRV] = "no vitals sample"
            balance_missing = "no vitals sample"
        else:
            hrv_history = [
                h.vitals.hrv_ms for h in earlier if h.vitals and h.vitals.hrv_ms is not None
            ]
            _collect(
                MetricKind.HRV,
                self.hrv_scorer.score(day.vitals, hrv_baseline, resting_hr_baseline, hrv_history),
                scores,
                missing,
            )
            series = self.synthesizer.synthesize(
                day.vitals,
                hrv_baseline,
                resting_hr_baseline,
                tz=self.tz,
                carry_in=_carry_in(day, earlier),
            )
            if series.is_ok():
                balance = series.unwrap()
            else:
                balance_missing = str(series.unwrap_err())

        if day.activity is None:
            missing[MetricKind.ACTIVITY] = "no activity sample"
        else:
            step_history = [
                h.activity.steps for h in earlier if h.activity and h.activity.steps is not None
            ]
            _collect(
                MetricKind.ACTIVITY,
                self.activity_scorer.score(day.activity, step_history),
                scores,
                missing,
            )

        self.logger.info(
            "day_scored",
            user_id=day.user_id,
            date=day.date.isoformat(),
            scores={kind.value: s.score for kind, s in scores.items()},
            missing=[kind.value for kind in missing],
        )
        return DailyReport(
            user_id=day.user_id,
            date=day.date,
            scores=scores,
            missing=missing,
            balance=balance,
            balance_missing=balance_missing,
        )

    async def score_range(
        self, store: BaselineStore, days: Sequence[DailyInputs]
    ) -> list[DailyReport]:
        """
        Backfill baselines for ``days`` then score every day concurrently.

        Key pattern: Use TaskGroup for structured concurrency (Python 3.11+).
        Why: Automatic cleanup, proper exception handling, no orphaned tasks.
        """
        start_time = time.perf_counter()
        ordered = _chronological(days)
        snapshots = self.backfill_baselines(store, ordered)
        semaphore = asyncio.Semaphore(self.config.service.max_concurrent_days)

        async def _score(index: int, day: DailyInputs) -> DailyReport:
            history = ordered[max(0, index - self.history_days) : index]
            async with semaphore:
                return await asyncio.to_thread(self.score_day, day, snapshots[day.date], history)

        async with asyncio.TaskGroup() as task_group:
            tasks = [
                task_group.create_task(_score(index, day)) for index, day in enumerate(ordered)
            ]

        reports = [task.result() for task in tasks]
        self.logger.info(
            "range_scored",
            user_id=store.user_id,
            days=len(reports),
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return reports


def _chronological(days: Sequence[DailyInputs]) -> list[DailyInputs]:
    """Sort by date; a replayed date keeps its last delivery."""
    by_date = {day.date: day for day in days}
    return [by_date[key] for key in sorted(by_date)]


def _collect(
    kind: MetricKind,
    result: Result[MetricScore, NoDataError],
    scores: dict[MetricKind, MetricScore],
    missing: dict[MetricKind, str],
) -> None:
    if result.is_ok():
        scores[kind] = result.unwrap()
    else:
        missing[kind] = str(result.unwrap_err())


def _carry_in(day: DailyInputs, earlier: Sequence[DailyInputs]) -> VitalsReading | None:
    """Last complete reading of the previous calendar day, if it was delivered."""
    if not earlier or earlier[-1].date != day.date - timedelta(days=1):
        return None
    previous = earlier[-1].vitals
    if previous is None:
        return None
    complete = [
        r for r in previous.readings if r.hrv_ms is not None and r.heart_rate_bpm is not None
    ]
    return max(complete, key=lambda r: r.timestamp, default=None)
