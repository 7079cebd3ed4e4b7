"""Tests for the circadian rhythm score."""

import math
from datetime import date, timedelta

import pytest

from tempo_core.config import RhythmScoringConfig
from tempo_core.domain.errors import InsufficientBaselineError, NoDataError
from tempo_core.domain.models import (
    BaselineMetric,
    BaselineStats,
    Confidence,
    DailySleepSample,
    MetricKind,
    Trend,
)
from tempo_core.domain.result import Result
from tempo_core.services.rhythm_scorer import RhythmScorer

MONDAY = date(2024, 1, 1)


def _nights(
    bedtimes: list[float], waketime: float | None = 6.0, start: date = MONDAY
) -> list[DailySleepSample]:
    return [
        DailySleepSample(
            user_id="user-1",
            date=start + timedelta(days=offset),
            bedtime_hour=bedtime,
            waketime_hour=waketime,
            time_in_bed_minutes=480.0,
        )
        for offset, bedtime in enumerate(bedtimes)
    ]


def _last_day(nights: list[DailySleepSample]) -> date:
    return nights[-1].date


@pytest.fixture
def scorer() -> RhythmScorer:
    return RhythmScorer()


class TestRhythmScorer:
    def test_regular_week_inside_ideal_window_scores_100(self, scorer: RhythmScorer) -> None:
        nights = _nights([22.5] * 7)
        result = scorer.score(_last_day(nights), nights).unwrap()

        assert result.metric == MetricKind.RHYTHM
        assert result.score == 100
        assert result.confidence == Confidence.HIGH
        assert result.trend == Trend.UNKNOWN

    def test_bedtimes_across_midnight_are_45_minutes_apart(self, scorer: RhythmScorer) -> None:
        """23:30 and 00:15 are 45 minutes apart, not 23h45m."""
        nights = _nights([23.5, 0.25])
        result = scorer.score(_last_day(nights), nights).unwrap()

        assert result.components["bedtime_std_minutes"] == pytest.approx(
            45.0 / math.sqrt(2), abs=0.01
        )
        # Just past the 30 minute plateau, nowhere near the 120 minute ceiling
        assert result.components["bedtime_stability"] > 34.0

    def test_scattered_bedtimes_lose_stability(self, scorer: RhythmScorer) -> None:
        nights = _nights([20.0, 2.0, 20.0, 2.0, 20.0, 2.0, 20.0])
        result = scorer.score(_last_day(nights), nights).unwrap()

        assert result.components["bedtime_std_minutes"] > 120.0
        assert result.components["bedtime_stability"] == 0.0

    def test_stability_ceiling_is_configurable(self) -> None:
        lenient = RhythmScorer(RhythmScoringConfig(stability_ceiling_minutes=600.0))
        nights = _nights([20.0, 2.0, 20.0, 2.0, 20.0, 2.0, 20.0])
        result = lenient.score(_last_day(nights), nights).unwrap()

        assert result.components["bedtime_stability"] > 0.0

    def test_weekend_shift_uses_circular_means(self, scorer: RhythmScorer) -> None:
        # Monday-Friday at 23:00, Saturday and Sunday at 01:00: a 2h shift
        nights = _nights([23.0] * 5 + [1.0, 1.0])
        result = scorer.score(_last_day(nights), nights).unwrap()

        assert result.components["weekend_shift"] == pytest.approx(10.0)

    def test_weekend_shift_neutral_without_weekend_nights(self, scorer: RhythmScorer) -> None:
        nights = _nights([23.0] * 5)
        result = scorer.score(_last_day(nights), nights).unwrap()

        assert result.components["weekend_shift"] == 10.0
        assert "weekend_shift" in result.fallbacks

    def test_ideal_window_is_proportional(self, scorer: RhythmScorer) -> None:
        nights = _nights([22.5] * 7)
        late = [
            n.model_copy(update={"waketime_hour": 7.0}) if i < 2 else n
            for i, n in enumerate(nights)
        ]
        result = scorer.score(_last_day(late), late).unwrap()

        assert result.components["ideal_window"] == pytest.approx(10.0 * 5 / 7, abs=0.01)

    def test_fewer_than_two_nights_is_no_data(self, scorer: RhythmScorer) -> None:
        nights = _nights([23.0])
        result = scorer.score(_last_day(nights), nights)

        assert result.is_err()
        assert isinstance(result.unwrap_err(), NoDataError)

    def test_nights_without_bedtime_are_skipped(self, scorer: RhythmScorer) -> None:
        nights = _nights([23.0, 23.0]) + [
            DailySleepSample(user_id="user-1", date=MONDAY + timedelta(days=2))
        ]
        result = scorer.score(nights[-1].date, nights).unwrap()

        assert result.components["bedtime_std_minutes"] == pytest.approx(0.0, abs=1e-6)

    def test_short_week_is_low_confidence(self, scorer: RhythmScorer) -> None:
        nights = _nights([23.0, 23.0, 23.0])
        result = scorer.score(_last_day(nights), nights).unwrap()

        assert result.confidence == Confidence.LOW

    def test_insufficient_timing_baseline_is_low_confidence(self, scorer: RhythmScorer) -> None:
        nights = _nights([22.5] * 7)
        ready = Result.ok(
            BaselineStats(
                metric=BaselineMetric.BEDTIME, mean=22.5, std_dev=0.0, sample_count=7, window_days=7
            )
        )
        not_ready = Result.err(InsufficientBaselineError(BaselineMetric.WAKETIME, 3, 7))

        full = scorer.score(_last_day(nights), nights, ready, ready).unwrap()
        partial = scorer.score(_last_day(nights), nights, ready, not_ready).unwrap()

        assert full.confidence == Confidence.HIGH
        assert partial.confidence == Confidence.LOW
        assert partial.score == full.score == 100

    def test_waketime_derived_from_time_in_bed(self, scorer: RhythmScorer) -> None:
        nights = _nights([23.0] * 7, waketime=None)
        result = scorer.score(_last_day(nights), nights).unwrap()

        assert "waketime_hour" in result.fallbacks
        assert result.components["waketime_stability"] == 35.0
        assert result.confidence == Confidence.MEDIUM

    def test_missing_waketimes_award_half_weight(self, scorer: RhythmScorer) -> None:
        nights = [
            n.model_copy(update={"waketime_hour": None, "time_in_bed_minutes": None})
            for n in _nights([23.0] * 7)
        ]
        result = scorer.score(_last_day(nights), nights).unwrap()

        assert result.components["waketime_stability"] == 17.5
        assert result.components["ideal_window"] == 5.0

    def test_trend_improves_when_bedtimes_settle(self, scorer: RhythmScorer) -> None:
        scattered = [22.0, 23.5, 21.5, 0.5, 22.0, 1.0, 23.0]
        nights = _nights(scattered + [23.0] * 7)
        result = scorer.score(_last_day(nights), nights).unwrap()

        assert result.trend == Trend.IMPROVING
