"""Dataset-level quality report over ingested points and ingest rejections."""

from __future__ import annotations

from typing import Sequence

from habitat_priority.common.constants import QUALITY_LEVELS
from habitat_priority.common.models import OccurrencePoint

HIGH_UNCERTAINTY_M = 10000
MIN_SAMPLE_SIZE = 5
RECENT_WINDOW_YEARS = 5
TEMPORAL_GAP_YEARS = 5
OLD_RECORD_YEAR = 1990
MISSING_COORDINATE_REASONS = ("missing_lat", "missing_lng", "coordinates_not_numeric")


def quality_distribution(points: Sequence[OccurrencePoint]) -> dict[str, int]:
    counts = {label: 0 for label in reversed(QUALITY_LEVELS)}
    for point in points:
        counts[point.data_quality] += 1
    return counts


def overall_quality(total_records: int, valid_records: int, distribution: dict[str, int]) -> str:
    if total_records == 0:
        return "no_data"
    valid_pct = valid_records / total_records * 100
    excellent_pct = distribution["excellent"] / total_records * 100
    good_pct = distribution["good"] / total_records * 100

    if valid_pct < 50:
        return "poor"
    if excellent_pct > 60:
        return "excellent"
    if excellent_pct + good_pct > 70:
        return "good"
    if valid_pct > 80:
        return "fair"
    return "poor"


def recommendations(
    total_records: int,
    points: Sequence[OccurrencePoint],
    rejected: dict[str, int],
    distribution: dict[str, int],
) -> list[dict[str, str]]:
    found: list[dict[str, str]] = []

    if any(rejected.get(reason, 0) > 0 for reason in MISSING_COORDINATE_REASONS):
        found.append(
            {
                "type": "error",
                "message": "Records are missing usable coordinates",
                "action": "Filter out records without coordinates or geocode them from locality text",
            }
        )

    # Records over the ingest cap were rejected, but still count as imprecise.
    imprecise = rejected.get("coordinate_uncertainty_too_high", 0) + sum(
        1
        for point in points
        if point.coordinate_uncertainty_m is not None and point.coordinate_uncertainty_m > HIGH_UNCERTAINTY_M
    )
    if imprecise > total_records * 0.3:
        found.append(
            {
                "type": "warning",
                "message": "High proportion of records have poor coordinate precision",
                "action": "Consider filtering records with uncertainty above 1 km for fine-scale analysis",
            }
        )

    if distribution["poor"] + distribution["very_poor"] > total_records * 0.4:
        found.append(
            {
                "type": "quality",
                "message": "Large proportion of low-quality records",
                "action": "Consider additional data cleaning or seeking higher quality datasets",
            }
        )

    if total_records < MIN_SAMPLE_SIZE:
        found.append(
            {
                "type": "sample_size",
                "message": "Insufficient data for reliable analysis",
                "action": "Expand search criteria or combine with other data sources",
            }
        )
    return found


def temporal_summary(points: Sequence[OccurrencePoint], *, reference_year: int) -> dict:
    years = sorted(point.year for point in points if point.year)
    if not years:
        return {"coverage": "none", "recommendations": ["No temporal data available"]}

    span = years[-1] - years[0]
    recent = sum(1 for year in years if year >= reference_year - RECENT_WINDOW_YEARS)
    old = sum(1 for year in years if year < OLD_RECORD_YEAR)

    notes: list[str] = []
    if recent < len(years) * 0.2:
        notes.append("Consider supplementing with more recent observations")
    if old > len(years) * 0.5:
        notes.append("Large proportion of old data - verify current relevance")

    if span > 20:
        coverage = "excellent"
    elif span > 10:
        coverage = "good"
    else:
        coverage = "limited"

    return {
        "min_year": years[0],
        "max_year": years[-1],
        "span": span,
        "records_with_year": len(years),
        "recent_records": recent,
        "coverage": coverage,
        "gaps": [
            {"start": previous, "end": current, "duration": current - previous}
            for previous, current in zip(years, years[1:])
            if current - previous > TEMPORAL_GAP_YEARS
        ],
        "recommendations": notes,
    }


def build_quality_report(
    points: Sequence[OccurrencePoint],
    *,
    total_records: int,
    rejected: dict[str, int],
    reference_year: int,
) -> dict:
    """Summarise record quality for a whole dataset.

    ``total_records`` counts every raw record, rejected ones included, so
    the percentages behind ``overall_quality`` are taken over the input
    rather than over the accepted points.
    """
    distribution = quality_distribution(points)
    return {
        "total_records": total_records,
        "valid_records": len(points),
        "invalid_records": total_records - len(points),
        "quality_distribution": distribution,
        "overall_quality": overall_quality(total_records, len(points), distribution),
        "recommendations": recommendations(total_records, points, rejected, distribution),
        "temporal_coverage": temporal_summary(points, reference_year=reference_year),
    }
