"""Per-point neighbour counting and density categorisation."""

from __future__ import annotations

from typing import Sequence

from habitat_priority.common.config_loader import AnalysisConfig, DensityThresholds
from habitat_priority.common.constants import DENSITY_CATEGORIES
from habitat_priority.common.geometry import haversine_km
from habitat_priority.common.models import DensityAnnotation, OccurrencePoint


def categorize_density(nearby_count: int, thresholds: DensityThresholds | None = None) -> str:
    return (thresholds or DensityThresholds()).categorize(nearby_count)


def count_neighbours(points: Sequence[OccurrencePoint], radius_km: float) -> list[int]:
    """Count, for every point, the other points within ``radius_km``.

    Points are compared by position, so coincident coordinates still count
    as neighbours while a point never counts itself.
    """
    counts = [0] * len(points)
    for i, origin in enumerate(points):
        for j in range(i + 1, len(points)):
            other = points[j]
            if haversine_km(origin.lat, origin.lng, other.lat, other.lng) <= radius_km:
                counts[i] += 1
                counts[j] += 1
    return counts


def analyse_density(points: Sequence[OccurrencePoint], config: AnalysisConfig) -> list[DensityAnnotation]:
    """Annotate every point with its neighbour count and density category.

    The returned list is aligned with ``points``.
    """
    counts = count_neighbours(points, config.analysis_radius_km)
    return [
        DensityAnnotation(nearby_count=count, density_category=config.thresholds.categorize(count))
        for count in counts
    ]


def category_distribution(annotations: Sequence[DensityAnnotation]) -> dict[str, int]:
    distribution = {category: 0 for category in reversed(DENSITY_CATEGORIES)}
    for annotation in annotations:
        distribution[annotation.density_category] += 1
    return distribution


def species_distribution(
    points: Sequence[OccurrencePoint],
    annotations: Sequence[DensityAnnotation],
) -> dict[str, dict]:
    out: dict[str, dict] = {}
    for point, annotation in zip(points, annotations):
        entry = out.setdefault(
            point.species,
            {
                "total_points": 0,
                "density_categories": {category: 0 for category in reversed(DENSITY_CATEGORIES)},
            },
        )
        entry["total_points"] += 1
        entry["density_categories"][annotation.density_category] += 1
    return dict(sorted(out.items()))
