"""Greedy seed-based clustering of density-annotated points."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence

from habitat_priority.common.config_loader import AnalysisConfig
from habitat_priority.common.deterministic import stable_sorted
from habitat_priority.common.geometry import centroid, haversine_km
from habitat_priority.common.models import Bounds, Cluster, DensityAnnotation, OccurrencePoint


@dataclass(frozen=True)
class ClusteringResult:
    clusters: tuple[Cluster, ...]
    annotations: tuple[DensityAnnotation, ...]
    unassigned: tuple[int, ...]


def seed_order(annotations: Sequence[DensityAnnotation]) -> list[int]:
    """Point positions by neighbour count descending, ingest order on ties."""
    return stable_sorted(range(len(annotations)), key=lambda idx: (-annotations[idx].nearby_count, idx))


def _build_cluster(
    cluster_id: str,
    member_indices: list[int],
    points: Sequence[OccurrencePoint],
    annotations: Sequence[DensityAnnotation],
) -> Cluster:
    members = tuple(points[idx] for idx in member_indices)
    seed = members[0]

    bounds = Bounds.around(seed.lat, seed.lng)
    species: list[str] = []
    for point in members:
        bounds = bounds.extend(point.lat, point.lng)
        if point.species not in species:
            species.append(point.species)

    total_density = sum(annotations[idx].nearby_count for idx in member_indices)
    return Cluster(
        id=cluster_id,
        member_indices=tuple(member_indices),
        members=members,
        species=tuple(species),
        bounds=bounds,
        center=centroid([(point.lat, point.lng) for point in members]),
        density_level=annotations[member_indices[0]].density_category,
        total_density=total_density,
        avg_density=total_density / len(members),
    )


def build_clusters(
    points: Sequence[OccurrencePoint],
    annotations: Sequence[DensityAnnotation],
    config: AnalysisConfig,
) -> ClusteringResult:
    """Group points around the densest unassigned seeds.

    A seed needs at least the low-density threshold of neighbours. Every
    unassigned point within ``cluster_radius_km`` of the seed itself is
    absorbed, whatever its own density; membership is never revisited.
    """
    if len(points) != len(annotations):
        raise ValueError("points and annotations must be aligned")

    assigned: list[str | None] = [None] * len(points)
    clusters: list[Cluster] = []
    min_seed_count = config.thresholds.low

    for seed_idx in seed_order(annotations):
        if assigned[seed_idx] is not None:
            continue
        if annotations[seed_idx].nearby_count < min_seed_count:
            continue

        cluster_id = f"density_cluster_{len(clusters) + 1}"
        seed = points[seed_idx]
        member_indices = [seed_idx]
        assigned[seed_idx] = cluster_id

        for other_idx, other in enumerate(points):
            if assigned[other_idx] is not None:
                continue
            if haversine_km(seed.lat, seed.lng, other.lat, other.lng) <= config.cluster_radius_km:
                member_indices.append(other_idx)
                assigned[other_idx] = cluster_id

        clusters.append(_build_cluster(cluster_id, member_indices, points, annotations))

    updated = tuple(
        replace(annotation, cluster_id=cluster_id) if cluster_id is not None else annotation
        for annotation, cluster_id in zip(annotations, assigned)
    )
    unassigned = tuple(idx for idx, cluster_id in enumerate(assigned) if cluster_id is None)
    return ClusteringResult(clusters=tuple(clusters), annotations=updated, unassigned=unassigned)
