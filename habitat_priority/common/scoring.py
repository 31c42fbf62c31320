"""Scoring utilities shared by ingest and area synthesis."""

from __future__ import annotations

import math
from typing import Any

from habitat_priority.common.constants import QUALITY_LEVELS

UNCERTAINTY_POINTS = ((100, 25), (1000, 20), (5000, 15), (10000, 10))
AGE_POINTS = ((5, 20), (10, 15), (20, 10))
QUALITY_CUTOFFS = ((80, "excellent"), (65, "good"), (45, "fair"), (25, "poor"))
RECENCY_STEPS = ((2, 1.0), (5, 0.8), (10, 0.6), (20, 0.4))
PRECISION_STEPS = ((100, 1.0), (1000, 0.8), (5000, 0.6), (10000, 0.4), (25000, 0.2))


def clamp(value: float, *, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def assess_point_quality(record: dict[str, Any], *, reference_year: int) -> tuple[str, dict]:
    """Grade a single occurrence record from completeness, precision and age.

    Returns the quality label and an explanation of the points awarded.
    """
    applied: list[str] = []
    score = 0

    uncertainty = record.get("coordinate_uncertainty_m")
    if uncertainty:
        for limit, points in UNCERTAINTY_POINTS:
            if uncertainty < limit:
                score += points
                applied.append(f"uncertainty_lt_{limit}")
                break
    else:
        score += 10
        applied.append("uncertainty_unknown")

    for key, points in (
        ("locality", 15),
        ("event_date", 15),
        ("recorded_by", 10),
        ("institution_code", 10),
    ):
        if record.get(key):
            score += points
            applied.append(f"has_{key}")
    if record.get("basis_of_record") == "HUMAN_OBSERVATION":
        score += 15
        applied.append("human_observation")

    year = record.get("year")
    if year:
        age = reference_year - year
        for limit, points in AGE_POINTS:
            if age <= limit:
                score += points
                applied.append(f"age_le_{limit}")
                break
        else:
            score += 5
            applied.append("age_old")

    label = "very_poor"
    for cutoff, name in QUALITY_CUTOFFS:
        if score >= cutoff:
            label = name
            break
    return label, {"applied_rules": applied, "raw_score": score, "label": label}


def recency_score(year: int | None, *, reference_year: int) -> float:
    if not year:
        return 0.0
    age = reference_year - year
    for limit, score in RECENCY_STEPS:
        if age <= limit:
            return score
    return 0.2


def precision_score(uncertainty_m: float | None) -> float:
    if not uncertainty_m:
        return 0.5
    for limit, score in PRECISION_STEPS:
        if uncertainty_m <= limit:
            return score
    return 0.1


def aggregate_quality(labels: list[str]) -> str:
    """Mean ordinal quality of a group of points, mapped back to a label."""
    if not labels:
        return "no_data"
    mean = sum(QUALITY_LEVELS.index(label) for label in labels) / len(labels)
    if mean >= 3.5:
        return "excellent"
    if mean >= 2.5:
        return "good"
    if mean >= 1.5:
        return "fair"
    if mean >= 0.5:
        return "poor"
    return "very_poor"


def threat_level(extinction_risk: float) -> str:
    if extinction_risk > 0.7:
        return "critical"
    if extinction_risk > 0.5:
        return "high"
    if extinction_risk > 0.3:
        return "moderate"
    return "low"
