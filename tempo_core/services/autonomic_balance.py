"""
24-hour autonomic balance curve at 5-minute resolution.

For each slot:

    balance = clamp(-100, 100, (hrv / baseline_hrv - 1) * 100
                               + (baseline_resting_hr / hr - 1) * 50)

Readings inside a slot are averaged. HRV and heart rate are held forward
separately (no interpolation): a point is low confidence when either value it
uses is held across a gap longer than 30 minutes, for every slot of that gap.
Slots before the first known value carry no data and are left out of the summary.

Slots are 5 elapsed minutes each, counted in UTC from local midnight. A day is
always 288 slots, so on a 23-hour DST day the series runs one hour into the next
local date, and on a 25-hour day it stops an hour before the next local midnight.
"""

import bisect
from collections.abc import Sequence
from datetime import UTC, datetime, time, timedelta, tzinfo
from statistics import fmean

import structlog

from tempo_core.config import BalanceConfig, HRVScoringConfig
from tempo_core.domain.errors import BALANCE_SERIES, NoDataError
from tempo_core.domain.models import (
    SLOTS_PER_DAY,
    AutonomicBalancePoint,
    AutonomicBalanceSeries,
    BalanceSummary,
    Confidence,
    DailyVitalsSample,
    VitalsReading,
    lowest_confidence,
)
from tempo_core.domain.reference import reference_hrv, reference_resting_hr
from tempo_core.domain.result import Result
from tempo_core.services.fallback import FallbackResolver
from tempo_core.services.scoring import BaselineLookup, baseline_mean, clamp

logger = structlog.get_logger(__name__)

SLOT = timedelta(minutes=5)
HRV_WEIGHT = 100.0
HEART_RATE_WEIGHT = 50.0


def balance_value(hrv: float, heart_rate: float, baseline_hrv: float, baseline_hr: float) -> float:
    """Instantaneous balance, clamped to [-100, 100] and rounded to one decimal."""
    raw = (hrv / baseline_hrv - 1) * HRV_WEIGHT + (baseline_hr / heart_rate - 1) * HEART_RATE_WEIGHT
    return round(clamp(raw, -100.0, 100.0), 1)


class AutonomicBalanceSynthesizer:
    """Builds the daily balance series from timestamped HRV / heart-rate readings."""

    def __init__(
        self,
        config: BalanceConfig | None = None,
        hrv_config: HRVScoringConfig | None = None,
    ) -> None:
        self.config = config or BalanceConfig()
        self.hrv_config = hrv_config or HRVScoringConfig()
        self.logger = logger.bind(component="autonomic_balance")

    def synthesize(
        self,
        vitals: DailyVitalsSample,
        hrv_baseline: BaselineLookup,
        resting_hr_baseline: BaselineLookup,
        tz: tzinfo = UTC,
        carry_in: VitalsReading | None = None,
        until: datetime | None = None,
    ) -> Result[AutonomicBalanceSeries, NoDataError]:
        """
        Synthesize the balance series for ``vitals.date``.

        Args:
            vitals: the day's readings; naive timestamps are read in ``tz``
            hrv_baseline: HRV baseline lookup (population reference when insufficient)
            resting_hr_baseline: resting-HR baseline lookup
            tz: the user's local timezone, which defines midnight
            carry_in: last reading of the previous day, held into the first slots
            until: build a partial series up to this instant (day in progress)

        Returns:
            Result with the series, or NoDataError when no slot has a known value.
        """
        log = self.logger.bind(date=vitals.date.isoformat())
        resolver = FallbackResolver(BALANCE_SERIES)

        day_start = datetime.combine(vitals.date, time(), tzinfo=tz).astimezone(UTC)
        day_end = day_start + SLOT * SLOTS_PER_DAY
        series_end = day_end if until is None else min(day_end, self._instant(until, tz))
        slot_count = SLOTS_PER_DAY
        if series_end < day_end:
            slot_count = max(0, -(-(series_end - day_start) // SLOT))

        readings = self._readings_for_day(vitals.readings, day_start, series_end, tz)
        if carry_in is None:
            carry_in = self._last_before(vitals.readings, day_start, tz)

        hrv_mean, hrv_confidence = baseline_mean(
            hrv_baseline, reference_hrv(self.hrv_config.reference_age), log
        )
        hr_mean, hr_confidence = baseline_mean(
            resting_hr_baseline,
            reference_resting_hr(self.hrv_config.reference_age, self.hrv_config.reference_sex),
            log,
        )

        points = self._build_points(
            day_start, slot_count, series_end, readings, carry_in, tz, hrv_mean, hr_mean, resolver
        )
        known = [p for p in points if p.has_data]
        if not known:
            log.info("balance_no_data", readings=len(readings))
            return Result.err(NoDataError(BALANCE_SERIES, "readings"))

        low_points = sum(1 for p in known if p.confidence == Confidence.LOW)
        confidence = lowest_confidence(
            hrv_confidence,
            hr_confidence,
            Confidence.MEDIUM if low_points or len(known) < len(points) else Confidence.HIGH,
        )

        series = AutonomicBalanceSeries(
            date=vitals.date,
            points=tuple(points),
            summary=self._summarize(known),
            confidence=confidence,
            is_complete=len(points) == SLOTS_PER_DAY,
            warnings=tuple(resolver.warnings),
        )
        log.debug(
            "balance_synthesized",
            points=len(points),
            known_points=len(known),
            low_confidence_points=low_points,
            avg=series.summary.avg,
        )
        return Result.ok(series)

    def _build_points(
        self,
        day_start: datetime,
        slot_count: int,
        series_end: datetime,
        readings: list[VitalsReading],
        carry_in: VitalsReading | None,
        tz: tzinfo,
        hrv_mean: float,
        hr_mean: float,
        resolver: FallbackResolver,
    ) -> list[AutonomicBalancePoint]:
        gap_threshold = timedelta(minutes=self.config.gap_threshold_minutes)
        reading_times = [self._instant(r.timestamp, tz) for r in readings]
        hrv_times = [t for t, r in zip(reading_times, readings) if r.hrv_ms is not None]
        hr_times = [t for t, r in zip(reading_times, readings) if r.heart_rate_bpm is not None]

        last_hrv: float | None = None
        last_hr: float | None = None
        hrv_seen: datetime | None = None
        hr_seen: datetime | None = None
        if carry_in is not None:
            last_hrv, last_hr = self._clean(carry_in, resolver)
            hrv_seen = hr_seen = self._instant(carry_in.timestamp, tz)

        points: list[AutonomicBalancePoint] = []
        cursor = 0
        for index in range(slot_count):
            slot_start = day_start + SLOT * index
            slot_end = slot_start + SLOT
            timestamp = slot_start.astimezone(tz)

            hrv_values: list[float] = []
            hr_values: list[float] = []
            while cursor < len(readings) and reading_times[cursor] < slot_end:
                hrv, heart_rate = self._clean(readings[cursor], resolver)
                if hrv is not None:
                    hrv_values.append(hrv)
                    hrv_seen = reading_times[cursor]
                if heart_rate is not None:
                    hr_values.append(heart_rate)
                    hr_seen = reading_times[cursor]
                cursor += 1
            if hrv_values:
                last_hrv = fmean(hrv_values)
            if hr_values:
                last_hr = fmean(hr_values)

            if last_hrv is None or last_hr is None:
                points.append(
                    AutonomicBalancePoint(
                        timestamp=timestamp,
                        balance=0.0,
                        confidence=Confidence.LOW,
                        has_data=False,
                    )
                )
                continue

            stale = (
                not hrv_values
                and self._gap_exceeds(hrv_seen, hrv_times, slot_end, series_end, gap_threshold)
            ) or (
                not hr_values
                and self._gap_exceeds(hr_seen, hr_times, slot_end, series_end, gap_threshold)
            )
            points.append(
                AutonomicBalancePoint(
                    timestamp=timestamp,
                    balance=balance_value(last_hrv, last_hr, hrv_mean, hr_mean),
                    confidence=Confidence.LOW if stale else Confidence.HIGH,
                )
            )
        return points

    @staticmethod
    def _gap_exceeds(
        seen: datetime | None,
        times: list[datetime],
        slot_end: datetime,
        series_end: datetime,
        threshold: timedelta,
    ) -> bool:
        """Whether a value held since ``seen`` bridges a gap longer than ``threshold``."""
        if seen is None:
            return False
        following = bisect.bisect_left(times, slot_end)
        gap_end = times[following] if following < len(times) else series_end
        return gap_end - seen > threshold

    def _clean(
        self, reading: VitalsReading, resolver: FallbackResolver
    ) -> tuple[float | None, float | None]:
        hrv = reading.hrv_ms
        if hrv is not None:
            hrv = resolver.clamp("hrv_ms", hrv, low=0.0)
        heart_rate = reading.heart_rate_bpm
        if heart_rate is not None:
            heart_rate = resolver.clamp(
                "heart_rate_bpm", heart_rate, low=self.config.min_heart_rate_bpm
            )
        return hrv, heart_rate

    @staticmethod
    def _summarize(points: Sequence[AutonomicBalancePoint]) -> BalanceSummary:
        # min()/max() return the first extreme, which is the earliest timestamp.
        most_stressed = min(points, key=lambda p: p.balance)
        most_relaxed = max(points, key=lambda p: p.balance)
        return BalanceSummary(
            avg=round(fmean(p.balance for p in points), 1),
            min=most_stressed.balance,
            max=most_relaxed.balance,
            peak_stress_time=most_stressed.timestamp,
            most_relaxed_time=most_relaxed.timestamp,
        )

    @classmethod
    def _readings_for_day(
        cls,
        readings: Sequence[VitalsReading],
        day_start: datetime,
        series_end: datetime,
        tz: tzinfo,
    ) -> list[VitalsReading]:
        within = [
            r
            for r in readings
            if day_start <= cls._instant(r.timestamp, tz) < series_end
            and (r.hrv_ms is not None or r.heart_rate_bpm is not None)
        ]
        return sorted(within, key=lambda r: cls._instant(r.timestamp, tz))

    @classmethod
    def _last_before(
        cls, readings: Sequence[VitalsReading], day_start: datetime, tz: tzinfo
    ) -> VitalsReading | None:
        earlier = [
            r
            for r in readings
            if cls._instant(r.timestamp, tz) < day_start
            and r.hrv_ms is not None
            and r.heart_rate_bpm is not None
        ]
        return max(earlier, key=lambda r: cls._instant(r.timestamp, tz), default=None)

    @staticmethod
    def _instant(moment: datetime, tz: tzinfo) -> datetime:
        """The UTC instant of ``moment``; naive timestamps are wall time in ``tz``."""
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=tz)
        return moment.astimezone(UTC)
