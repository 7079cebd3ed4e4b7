"""
Time-of-day statistics on a 24-hour circle.

Clock times cannot be averaged linearly: 23:30 and 00:15 are 45 minutes apart,
not 23h45m. Every difference here is wrapped into (-12h, +12h] first.
"""

import math
from collections.abc import Sequence

HOURS_PER_DAY = 24.0


def wrap_hours(delta: float) -> float:
    """Wrap a difference in hours into the half-open interval (-12, 12]."""
    wrapped = math.fmod(delta, HOURS_PER_DAY)
    if wrapped > 12.0:
        wrapped -= HOURS_PER_DAY
    elif wrapped <= -12.0:
        wrapped += HOURS_PER_DAY
    return wrapped


def normalize_hour(hour: float) -> float:
    """Map any hour value onto [0, 24)."""
    return hour % HOURS_PER_DAY


def circular_distance(a: float, b: float) -> float:
    """Absolute distance in hours between two clock times."""
    return abs(wrap_hours(a - b))


def circular_mean(hours: Sequence[float]) -> float:
    """Mean clock time, computed on the unit circle."""
    if not hours:
        raise ValueError("circular_mean() requires at least one value")
    omega = 2 * math.pi / HOURS_PER_DAY
    sin_sum = sum(math.sin(omega * h) for h in hours)
    cos_sum = sum(math.cos(omega * h) for h in hours)
    if math.isclose(sin_sum, 0.0, abs_tol=1e-12) and math.isclose(cos_sum, 0.0, abs_tol=1e-12):
        # Perfectly opposed times have no defined mean; fall back to the first value.
        return normalize_hour(hours[0])
    return normalize_hour(math.atan2(sin_sum, cos_sum) / omega)


def circular_std_minutes(hours: Sequence[float]) -> float:
    """Sample standard deviation of clock times, in minutes.

    Returns 0 for fewer than two values.
    """
    n = len(hours)
    if n < 2:
        return 0.0
    center = circular_mean(hours)
    deviations = [wrap_hours(h - center) for h in hours]
    variance = sum(d * d for d in deviations) / (n - 1)
    return math.sqrt(variance) * 60.0


def in_clock_window(hour: float, start: float, end: float) -> bool:
    """True if ``hour`` lies in the window from ``start`` to ``end`` (may cross midnight)."""
    span = normalize_hour(end - start)
    return normalize_hour(hour - start) <= span
