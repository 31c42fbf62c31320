"""Conservation area synthesis from clusters and isolated points."""

from __future__ import annotations

from collections import Counter
from typing import Sequence

from habitat_priority.common.config_loader import AnalysisConfig
from habitat_priority.common.constants import AREA_TYPE_CLUSTER, AREA_TYPE_ISOLATED
from habitat_priority.common.geometry import (
    bounds_area_hectares,
    bounds_to_polygon_wkt,
    buffer_bounds,
    point_bounds,
    spatial_spread_km,
)
from habitat_priority.common.models import Cluster, ConservationArea, DensityAnnotation, OccurrencePoint
from habitat_priority.common.scoring import aggregate_quality, clamp, round_half_up, threat_level

MAX_LOCALITIES = 5
ISOLATED_GENETIC_DIVERSITY = 0.3
ISOLATED_EXTINCTION_RISK = 0.8
ISOLATED_PRIORITY = "medium"
ISOLATED_URGENCY = 0.6


def dominant_species(points: Sequence[OccurrencePoint]) -> str:
    counts = Counter(point.species for point in points)
    # Counter keeps first-encounter order, and max() returns the first maximum.
    return max(counts, key=lambda species: counts[species])


def species_epithet(species: str) -> str:
    parts = species.split()
    return parts[1] if len(parts) > 1 else species


def _unique(values) -> tuple[str, ...]:
    seen: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return tuple(seen)


def temporal_coverage(points: Sequence[OccurrencePoint]) -> dict:
    years = [point.year for point in points if point.year]
    if not years:
        return {"min_year": None, "max_year": None, "span": 0, "coverage": "none"}
    span = max(years) - min(years)
    if span > 15:
        coverage = "excellent"
    elif span > 8:
        coverage = "good"
    elif span > 3:
        coverage = "fair"
    else:
        coverage = "poor"
    return {"min_year": min(years), "max_year": max(years), "span": span, "coverage": coverage}


def estimate_cluster_population(cluster: Cluster, config: AnalysisConfig) -> int:
    multiplier = config.density_multipliers.get(cluster.density_level, 1.0)
    return round_half_up(len(cluster.members) * config.population_base_multiplier * multiplier)


def estimate_cluster_genetic_diversity(cluster: Cluster, config: AnalysisConfig) -> float:
    species_bonus = (len(cluster.species) - 1) * 0.1
    spread = spatial_spread_km([(point.lat, point.lng) for point in cluster.members]) / 50
    value = 0.5 + config.diversity_bonus[cluster.density_level] + species_bonus + spread
    return min(value, 0.9)


def estimate_cluster_extinction_risk(cluster: Cluster, population: int, config: AnalysisConfig) -> float:
    risk = config.density_risk[cluster.density_level]
    if population < 50:
        risk += 0.2
    elif population < 100:
        risk += 0.1
    if len(cluster.species) > 1:
        risk -= 0.1
    return clamp(risk, minimum=0.05, maximum=0.95)


def cluster_priority(extinction_risk: float, density_level: str, config: AnalysisConfig) -> str:
    score = extinction_risk * 0.6 + (1 - config.density_weights[density_level]) * 0.4
    if score > 0.7:
        return "critical"
    if score > 0.5:
        return "high"
    if score > 0.3:
        return "medium"
    return "low"


def cluster_urgency(extinction_risk: float, density_level: str, population: int, config: AnalysisConfig) -> float:
    urgency = extinction_risk * 0.5 + (1 - config.density_weights[density_level]) * 0.3
    if population < 100:
        urgency += 0.2
    elif population < 200:
        urgency += 0.1
    return clamp(urgency, minimum=0.1, maximum=1.0)


def cluster_area_name(cluster: Cluster, ordinal: int) -> str:
    epithet = species_epithet(dominant_species(cluster.members))
    localities = _unique(point.locality for point in cluster.members)
    multi = len(cluster.species) > 1

    if localities:
        place = localities[0].split(",")[0].strip()
        return f"{place} Multi-species Habitat" if multi else f"{place} {epithet} Habitat"

    level = cluster.density_level.replace("_", " ")
    if multi:
        return f"Multi-species {level} Density Area {ordinal}"
    return f"{epithet} {level} Density Area {ordinal}"


def _observation_density(total_points: int, area_hectares: int) -> float:
    # Observations per 1000 ha.
    if area_hectares <= 0:
        return 0.0
    return total_points / (area_hectares / 1000)


def area_from_cluster(cluster: Cluster, ordinal: int, config: AnalysisConfig) -> ConservationArea:
    bounds = buffer_bounds(cluster.bounds, config.area_buffer_km)
    hectares = bounds_area_hectares(bounds)
    population = estimate_cluster_population(cluster, config)
    risk = estimate_cluster_extinction_risk(cluster, population, config)

    return ConservationArea(
        id=f"density_area_{ordinal}",
        name=cluster_area_name(cluster, ordinal),
        type=AREA_TYPE_CLUSTER,
        center=cluster.center,
        bounds=bounds,
        geometry=bounds_to_polygon_wkt(bounds),
        area_hectares=hectares,
        species=cluster.species,
        population_size=population,
        genetic_diversity=estimate_cluster_genetic_diversity(cluster, config),
        extinction_risk=risk,
        priority=cluster_priority(risk, cluster.density_level, config),
        urgency=cluster_urgency(risk, cluster.density_level, population, config),
        threat_level=threat_level(risk),
        total_points=len(cluster.members),
        observation_density=_observation_density(len(cluster.members), hectares),
        details={
            "cluster_id": cluster.id,
            "seed_id": cluster.seed.id,
            "avg_density": cluster.avg_density,
            "density_level": cluster.density_level,
            "dominant_species": dominant_species(cluster.members),
        },
        countries=_unique(point.country for point in cluster.members),
        provinces=_unique(point.state_province for point in cluster.members),
        localities=_unique(point.locality for point in cluster.members)[:MAX_LOCALITIES],
        temporal_coverage=temporal_coverage(cluster.members),
        data_quality=aggregate_quality([point.data_quality for point in cluster.members]),
        protection_status="Unassessed",
    )


def qualifies_as_isolated_area(annotation: DensityAnnotation, point: OccurrencePoint) -> bool:
    return not (annotation.density_category == "very_low" and point.data_quality == "poor")


def area_from_isolated_point(
    point: OccurrencePoint,
    annotation: DensityAnnotation,
    ordinal: int,
    config: AnalysisConfig,
) -> ConservationArea:
    bounds = point_bounds(point.lat, point.lng, config.isolated_radius_km)
    hectares = bounds_area_hectares(bounds)
    multiplier = config.quality_multipliers.get(point.data_quality, 1.0)

    return ConservationArea(
        id=f"isolated_area_{ordinal}",
        name=f"{species_epithet(point.species)} Isolated Habitat {ordinal}",
        type=AREA_TYPE_ISOLATED,
        center=(point.lat, point.lng),
        bounds=bounds,
        geometry=bounds_to_polygon_wkt(bounds),
        area_hectares=hectares,
        species=(point.species,),
        population_size=round_half_up(config.isolated_population_base * multiplier),
        genetic_diversity=ISOLATED_GENETIC_DIVERSITY,
        extinction_risk=ISOLATED_EXTINCTION_RISK,
        priority=ISOLATED_PRIORITY,
        urgency=ISOLATED_URGENCY,
        threat_level=threat_level(ISOLATED_EXTINCTION_RISK),
        total_points=1,
        observation_density=_observation_density(1, hectares),
        details={
            "point_id": point.id,
            "nearby_count": annotation.nearby_count,
            "density_category": annotation.density_category,
            "data_quality": point.data_quality,
            "recency": point.recency,
            "precision": point.precision,
        },
        countries=_unique([point.country]),
        provinces=_unique([point.state_province]),
        localities=_unique([point.locality]),
        temporal_coverage=temporal_coverage([point]),
        data_quality=point.data_quality,
        protection_status="Unprotected",
    )


def synthesize_areas(
    points: Sequence[OccurrencePoint],
    annotations: Sequence[DensityAnnotation],
    clusters: Sequence[Cluster],
    unassigned: Sequence[int],
    config: AnalysisConfig,
) -> list[ConservationArea]:
    """Cluster areas first, in cluster order, then qualifying isolated points in ingest order."""
    areas = [area_from_cluster(cluster, ordinal, config) for ordinal, cluster in enumerate(clusters, start=1)]

    isolated_ordinal = 0
    for idx in unassigned:
        point, annotation = points[idx], annotations[idx]
        if not qualifies_as_isolated_area(annotation, point):
            continue
        isolated_ordinal += 1
        areas.append(area_from_isolated_point(point, annotation, isolated_ordinal, config))
    return areas
