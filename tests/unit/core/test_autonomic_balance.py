"""Tests for the 5-minute autonomic balance series."""

from datetime import UTC, date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tempo_core.domain.errors import InsufficientBaselineError, NoDataError
from tempo_core.domain.models import (
    BaselineMetric,
    BaselineStats,
    Confidence,
    DailyVitalsSample,
    VitalsReading,
)
from tempo_core.domain.result import Result
from tempo_core.services.autonomic_balance import AutonomicBalanceSynthesizer, balance_value
from tempo_core.services.scoring import BaselineLookup

DAY = date(2024, 3, 5)
MIDNIGHT = datetime(2024, 3, 5, tzinfo=UTC)
NEW_YORK = ZoneInfo("America/New_York")

HRV_50: BaselineLookup = Result.ok(
    BaselineStats(
        metric=BaselineMetric.HRV, mean=50.0, std_dev=5.0, sample_count=30, window_days=30
    )
)
RESTING_60: BaselineLookup = Result.ok(
    BaselineStats(
        metric=BaselineMetric.RESTING_HR, mean=60.0, std_dev=3.0, sample_count=30, window_days=30
    )
)


def _reading(minute: int, hrv: float | None = 50.0, hr: float | None = 60.0) -> VitalsReading:
    return VitalsReading(
        timestamp=MIDNIGHT + timedelta(minutes=minute), hrv_ms=hrv, heart_rate_bpm=hr
    )


def _every_five(start: int = 0, end: int = 24 * 60, **values: float) -> list[VitalsReading]:
    return [_reading(minute, **values) for minute in range(start, end, 5)]


def _vitals(readings: list[VitalsReading]) -> DailyVitalsSample:
    return DailyVitalsSample(
        user_id="user-1", date=DAY, hrv_ms=50.0, resting_hr_bpm=60.0, readings=tuple(readings)
    )


@pytest.fixture
def synthesizer() -> AutonomicBalanceSynthesizer:
    return AutonomicBalanceSynthesizer()


class TestBalanceValue:
    @pytest.mark.parametrize(
        "hrv,hr,expected",
        [
            (50.0, 60.0, 0.0),
            (60.0, 50.0, 30.0),
            (40.0, 60.0, -20.0),
            (150.0, 40.0, 100.0),
            (0.0, 250.0, -100.0),
        ],
    )
    def test_formula_and_clamp(self, hrv: float, hr: float, expected: float) -> None:
        assert balance_value(hrv, hr, 50.0, 60.0) == expected

    @given(
        hrv=st.floats(min_value=0.0, max_value=1e4, allow_nan=False),
        hr=st.floats(min_value=25.0, max_value=400.0, allow_nan=False),
    )
    def test_always_within_bounds(self, hrv: float, hr: float) -> None:
        assert -100.0 <= balance_value(hrv, hr, 50.0, 60.0) <= 100.0


class TestAutonomicBalanceSynthesizer:
    def test_complete_day_has_288_increasing_points(
        self, synthesizer: AutonomicBalanceSynthesizer
    ) -> None:
        series = synthesizer.synthesize(_vitals(_every_five()), HRV_50, RESTING_60).unwrap()

        assert len(series.points) == 288
        assert series.is_complete
        timestamps = [p.timestamp for p in series.points]
        assert timestamps == sorted(set(timestamps))
        assert timestamps[0] == MIDNIGHT
        assert timestamps[-1] == MIDNIGHT + timedelta(hours=23, minutes=55)
        assert series.confidence == Confidence.HIGH
        assert series.summary.avg == 0.0

    def test_short_gap_holds_last_value(self, synthesizer: AutonomicBalanceSynthesizer) -> None:
        readings = [_reading(0, hrv=60.0, hr=50.0)] + _every_five(start=20)
        series = synthesizer.synthesize(_vitals(readings), HRV_50, RESTING_60).unwrap()

        held = series.points[1:4]
        assert [p.balance for p in held] == [30.0, 30.0, 30.0]
        assert all(p.confidence == Confidence.HIGH for p in held)
        assert series.points[4].balance == 0.0
        assert series.confidence == Confidence.HIGH

    def test_long_gap_marks_held_points_low(self, synthesizer: AutonomicBalanceSynthesizer) -> None:
        readings = [_reading(0, hrv=60.0, hr=50.0)] + _every_five(start=60)
        series = synthesizer.synthesize(_vitals(readings), HRV_50, RESTING_60).unwrap()

        held = series.points[1:12]
        assert all(p.balance == 30.0 for p in held)
        assert all(p.confidence == Confidence.LOW for p in held)
        assert all(p.has_data for p in held)
        assert series.points[12].confidence == Confidence.HIGH
        assert series.confidence == Confidence.MEDIUM

    def test_trailing_gap_is_low_confidence(self, synthesizer: AutonomicBalanceSynthesizer) -> None:
        series = synthesizer.synthesize(
            _vitals(_every_five(end=12 * 60)), HRV_50, RESTING_60
        ).unwrap()

        assert series.points[143].confidence == Confidence.HIGH
        assert all(p.confidence == Confidence.LOW for p in series.points[144:])
        assert len(series.points) == 288

    def test_slots_before_first_reading_carry_no_data(
        self, synthesizer: AutonomicBalanceSynthesizer
    ) -> None:
        readings = _every_five(start=6 * 60, hrv=60.0, hr=50.0)
        series = synthesizer.synthesize(_vitals(readings), HRV_50, RESTING_60).unwrap()

        leading = series.points[:72]
        assert all(not p.has_data and p.balance == 0.0 for p in leading)
        assert all(p.confidence == Confidence.LOW for p in leading)
        # Summary only covers known points; ties resolve to the earliest slot
        assert series.summary.avg == 30.0
        assert series.summary.min == 30.0
        assert series.summary.peak_stress_time == MIDNIGHT + timedelta(hours=6)
        assert series.summary.most_relaxed_time == MIDNIGHT + timedelta(hours=6)
        assert series.confidence == Confidence.MEDIUM

    def test_summary_extremes(self, synthesizer: AutonomicBalanceSynthesizer) -> None:
        readings = _every_five()
        readings[10] = _reading(50, hrv=40.0, hr=60.0)
        readings[20] = _reading(100, hrv=60.0, hr=50.0)
        series = synthesizer.synthesize(_vitals(readings), HRV_50, RESTING_60).unwrap()

        assert series.summary.min == -20.0
        assert series.summary.max == 30.0
        assert series.summary.peak_stress_time == MIDNIGHT + timedelta(minutes=50)
        assert series.summary.most_relaxed_time == MIDNIGHT + timedelta(minutes=100)

    def test_readings_within_a_slot_are_averaged(
        self, synthesizer: AutonomicBalanceSynthesizer
    ) -> None:
        readings = [_reading(1, hrv=40.0), _reading(3, hrv=60.0)] + _every_five(start=5)
        series = synthesizer.synthesize(_vitals(readings), HRV_50, RESTING_60).unwrap()

        assert series.points[0].balance == 0.0
        assert series.points[0].confidence == Confidence.HIGH

    def test_impossible_readings_are_clamped_with_warning(
        self, synthesizer: AutonomicBalanceSynthesizer
    ) -> None:
        readings = _every_five()
        readings[0] = _reading(0, hrv=-5.0, hr=0.0)
        series = synthesizer.synthesize(_vitals(readings), HRV_50, RESTING_60).unwrap()

        fields = {w.field for w in series.warnings}
        assert fields == {"hrv_ms", "heart_rate_bpm"}
        assert -100.0 <= series.points[0].balance <= 100.0

    def test_no_readings_is_no_data(self, synthesizer: AutonomicBalanceSynthesizer) -> None:
        result = synthesizer.synthesize(_vitals([]), HRV_50, RESTING_60)

        assert result.is_err()
        assert isinstance(result.unwrap_err(), NoDataError)

    def test_partial_day_stops_at_until(self, synthesizer: AutonomicBalanceSynthesizer) -> None:
        series = synthesizer.synthesize(
            _vitals(_every_five()), HRV_50, RESTING_60, until=MIDNIGHT + timedelta(hours=6)
        ).unwrap()

        assert len(series.points) == 72
        assert not series.is_complete
        assert series.points[-1].timestamp == MIDNIGHT + timedelta(hours=5, minutes=55)

    def test_carry_in_fills_first_slots(self, synthesizer: AutonomicBalanceSynthesizer) -> None:
        carry_in = VitalsReading(
            timestamp=MIDNIGHT - timedelta(minutes=5), hrv_ms=60.0, heart_rate_bpm=50.0
        )
        readings = _every_five(start=20)
        series = synthesizer.synthesize(
            _vitals(readings), HRV_50, RESTING_60, carry_in=carry_in
        ).unwrap()

        first = series.points[:4]
        assert all(p.has_data and p.balance == 30.0 for p in first)
        assert all(p.confidence == Confidence.HIGH for p in first)

    def test_reading_before_midnight_is_used_as_carry_in(
        self, synthesizer: AutonomicBalanceSynthesizer
    ) -> None:
        readings = [_reading(-5, hrv=60.0, hr=50.0)] + _every_five(start=20)
        series = synthesizer.synthesize(_vitals(readings), HRV_50, RESTING_60).unwrap()

        assert series.points[0].has_data
        assert series.points[0].balance == 30.0

    def test_cold_start_uses_population_reference(
        self, synthesizer: AutonomicBalanceSynthesizer
    ) -> None:
        readings = _every_five(hrv=45.0, hr=62.0)
        series = synthesizer.synthesize(
            _vitals(readings),
            Result.err(InsufficientBaselineError(BaselineMetric.HRV, 3, 14)),
            Result.err(InsufficientBaselineError(BaselineMetric.RESTING_HR, 3, 7)),
        ).unwrap()

        assert series.confidence == Confidence.LOW
        assert series.summary.avg == 0.0

    def test_local_midnight_defines_the_day(self, synthesizer: AutonomicBalanceSynthesizer) -> None:
        eastern = timezone(timedelta(hours=-5))
        local_midnight = datetime(2024, 3, 5, tzinfo=eastern)
        readings = [
            VitalsReading(
                timestamp=local_midnight + timedelta(minutes=m), hrv_ms=50.0, heart_rate_bpm=60.0
            )
            for m in range(0, 24 * 60, 5)
        ]
        series = synthesizer.synthesize(_vitals(readings), HRV_50, RESTING_60, tz=eastern).unwrap()

        assert len(series.points) == 288
        assert series.points[0].timestamp == local_midnight
        assert series.confidence == Confidence.HIGH

    def test_heart_rate_alone_does_not_refresh_held_hrv(
        self, synthesizer: AutonomicBalanceSynthesizer
    ) -> None:
        readings = [_reading(0, hrv=60.0, hr=50.0)] + _every_five(start=5, hrv=None, hr=50.0)
        series = synthesizer.synthesize(_vitals(readings), HRV_50, RESTING_60).unwrap()

        assert series.points[0].confidence == Confidence.HIGH
        afternoon = series.points[200]
        assert afternoon.balance == 30.0
        assert afternoon.confidence == Confidence.LOW
        assert all(p.confidence == Confidence.LOW for p in series.points[1:])
        assert series.confidence == Confidence.MEDIUM

    def test_half_hourly_hrv_with_frequent_heart_rate_stays_high(
        self, synthesizer: AutonomicBalanceSynthesizer
    ) -> None:
        readings = [
            _reading(minute, hrv=50.0 if minute % 30 == 0 else None, hr=60.0)
            for minute in range(0, 24 * 60, 5)
        ]
        series = synthesizer.synthesize(_vitals(readings), HRV_50, RESTING_60).unwrap()

        assert all(p.confidence == Confidence.HIGH for p in series.points)
        assert series.confidence == Confidence.HIGH

    @settings(max_examples=50, deadline=None)
    @given(
        readings=st.lists(
            st.tuples(
                st.integers(min_value=-60, max_value=24 * 60 + 60),
                st.one_of(st.none(), st.floats(min_value=-50.0, max_value=500.0, allow_nan=False)),
                st.one_of(st.none(), st.floats(min_value=-10.0, max_value=300.0, allow_nan=False)),
            ),
            max_size=60,
        )
    )
    def test_series_invariants_hold_for_any_readings(
        self, readings: list[tuple[int, float | None, float | None]]
    ) -> None:
        """Property-based test: every successful series is complete and bounded."""
        vitals = _vitals([_reading(m, hrv=h, hr=r) for m, h, r in readings])
        result = AutonomicBalanceSynthesizer().synthesize(vitals, HRV_50, RESTING_60)
        if result.is_err():
            return

        series = result.unwrap()
        assert len(series.points) == 288
        timestamps = [p.timestamp for p in series.points]
        assert all(a < b for a, b in zip(timestamps, timestamps[1:]))
        assert all(-100.0 <= p.balance <= 100.0 for p in series.points)
        assert -100.0 <= series.summary.min <= series.summary.avg <= series.summary.max <= 100.0


class TestDaylightSavingDays:
    """Slots are 5 elapsed minutes from local midnight, 288 per day."""

    @staticmethod
    def _full_day(day: date) -> DailyVitalsSample:
        start = datetime(day.year, day.month, day.day, tzinfo=NEW_YORK).astimezone(UTC)
        readings = tuple(
            VitalsReading(timestamp=start + timedelta(minutes=m), hrv_ms=50.0, heart_rate_bpm=60.0)
            for m in range(0, 24 * 60, 5)
        )
        return DailyVitalsSample(user_id="user-1", date=day, readings=readings)

    def test_spring_forward_has_no_repeated_instants(
        self, synthesizer: AutonomicBalanceSynthesizer
    ) -> None:
        day = date(2024, 3, 10)
        series = synthesizer.synthesize(
            self._full_day(day), HRV_50, RESTING_60, tz=NEW_YORK
        ).unwrap()

        instants = [p.timestamp.astimezone(UTC) for p in series.points]
        assert len(series.points) == 288
        assert len(set(instants)) == 288
        assert all(b - a == timedelta(minutes=5) for a, b in zip(instants, instants[1:]))
        assert series.points[0].timestamp == datetime(2024, 3, 10, tzinfo=NEW_YORK)
        # The skipped 02:00 hour never appears on the local clock
        assert not any(p.timestamp.hour == 2 and p.timestamp.date() == day for p in series.points)
        # 23 local hours long: the last hour of slots lands on the next date
        assert series.points[-1].timestamp.replace(tzinfo=None) == datetime(2024, 3, 11, 0, 55)
        assert series.confidence == Confidence.HIGH

    def test_fall_back_keeps_both_one_oclock_hours(
        self, synthesizer: AutonomicBalanceSynthesizer
    ) -> None:
        day = date(2024, 11, 3)
        series = synthesizer.synthesize(
            self._full_day(day), HRV_50, RESTING_60, tz=NEW_YORK
        ).unwrap()

        instants = [p.timestamp.astimezone(UTC) for p in series.points]
        assert len(set(instants)) == 288
        assert sum(1 for p in series.points if p.timestamp.hour == 1) == 24
        # 25 local hours long: 24 elapsed hours stop before the final local hour
        assert series.points[-1].timestamp.replace(tzinfo=None) == datetime(2024, 11, 3, 22, 55)
        assert series.confidence == Confidence.HIGH
