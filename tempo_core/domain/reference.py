"""
Population reference values used while a personal baseline is still cold.

HRV (RMSSD, ms) by age group and resting heart rate (bpm) by sex and age group,
taken from population averages for healthy adults. The closest tabulated age
group is used; ties resolve to the younger group.
"""

from typing import Literal

Sex = Literal["male", "female"]

HRV_REFERENCE_BY_AGE: dict[int, float] = {
    20: 55.0,
    25: 50.0,
    30: 45.0,
    35: 42.0,
    40: 38.0,
    45: 35.0,
    50: 32.0,
    55: 29.0,
    60: 26.0,
    65: 24.0,
}

RESTING_HR_REFERENCE: dict[Sex, dict[int, float]] = {
    "male": {20: 60.0, 30: 62.0, 40: 64.0, 50: 66.0, 60: 68.0},
    "female": {20: 65.0, 30: 67.0, 40: 69.0, 50: 71.0, 60: 73.0},
}


def _closest_age_group(table: dict[int, float], age: int) -> int:
    return min(sorted(table), key=lambda group: abs(group - age))


def reference_hrv(age: int) -> float:
    """Typical HRV for the given age."""
    return HRV_REFERENCE_BY_AGE[_closest_age_group(HRV_REFERENCE_BY_AGE, age)]


def reference_resting_hr(age: int, sex: Sex) -> float:
    """Typical resting heart rate for the given age and sex."""
    table = RESTING_HR_REFERENCE[sex]
    return table[_closest_age_group(table, age)]
