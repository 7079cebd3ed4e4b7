"""
Activity score.

Each component is capped at its own weight before summation; a surplus in one
never makes up for a shortfall in another.
"""

from collections.abc import Sequence

import structlog

from tempo_core.config import ActivityScoringConfig, TrendConfig
from tempo_core.domain.errors import NoDataError
from tempo_core.domain.models import DailyActivitySample, MetricKind, MetricScore
from tempo_core.domain.result import Result
from tempo_core.services.classifiers import TrendClassifier
from tempo_core.services.fallback import FallbackResolver
from tempo_core.services.scoring import build_score, capped_ratio_points

logger = structlog.get_logger(__name__)

STEPS_WEIGHT = 40.0
ACTIVE_MINUTES_WEIGHT = 30.0
SEDENTARY_BREAKS_WEIGHT = 20.0
EXERCISE_WEIGHT = 10.0


class ActivityScorer:
    def __init__(
        self,
        config: ActivityScoringConfig | None = None,
        trend_config: TrendConfig | None = None,
    ) -> None:
        self.config = config or ActivityScoringConfig()
        self.trend_classifier = TrendClassifier(trend_config)
        self.logger = logger.bind(component="activity_scorer")

    def score(
        self, sample: DailyActivitySample, step_history: Sequence[float] = ()
    ) -> Result[MetricScore, NoDataError]:
        """Score one day of activity; ``step_history`` holds prior daily steps, oldest first."""
        resolver = FallbackResolver(MetricKind.ACTIVITY)
        try:
            steps = resolver.require("steps", sample.steps)
        except NoDataError as e:
            self.logger.info("activity_score_no_data", date=sample.date.isoformat(), field=e.field)
            return Result.err(e)
        steps = resolver.clamp("steps", steps, low=0.0)

        components = {
            "steps": capped_ratio_points(steps, self.config.step_target, STEPS_WEIGHT),
        }

        if sample.active_minutes is None:
            components["active_minutes"] = resolver.neutral("active_minutes", ACTIVE_MINUTES_WEIGHT)
        else:
            minutes = resolver.clamp("active_minutes", sample.active_minutes, 0.0, 24 * 60.0)
            components["active_minutes"] = capped_ratio_points(
                minutes, self.config.active_minutes_target, ACTIVE_MINUTES_WEIGHT
            )

        if sample.sedentary_breaks is None:
            components["sedentary_breaks"] = resolver.neutral(
                "sedentary_breaks", SEDENTARY_BREAKS_WEIGHT
            )
        else:
            breaks = resolver.clamp("sedentary_breaks", sample.sedentary_breaks, low=0.0)
            components["sedentary_breaks"] = capped_ratio_points(
                breaks, self.config.sedentary_break_target, SEDENTARY_BREAKS_WEIGHT
            )

        if sample.exercise_completed is None:
            components["exercise"] = resolver.neutral("exercise_completed", EXERCISE_WEIGHT)
        else:
            components["exercise"] = EXERCISE_WEIGHT if sample.exercise_completed else 0.0

        trend = self.trend_classifier.classify_series([*step_history, steps])
        result = build_score(
            MetricKind.ACTIVITY,
            sample.date,
            sum(components.values()),
            components,
            trend,
            resolver,
        )
        self.logger.debug("activity_scored", date=sample.date.isoformat(), score=result.score)
        return Result.ok(result)
