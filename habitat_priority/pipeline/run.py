"""Sequential density → cluster → area → ranking analysis run."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Sequence

from habitat_priority.common.cache import TtlCache
from habitat_priority.common.config_loader import AnalysisConfig
from habitat_priority.common.constants import PRIORITY_LEVELS
from habitat_priority.common.deterministic import fingerprint
from habitat_priority.common.errors import ContractError
from habitat_priority.common.logging import log_event
from habitat_priority.common.models import (
    Cluster,
    ConservationAction,
    ConservationArea,
    DensityAnnotation,
    OccurrencePoint,
)
from habitat_priority.pipeline.areas import synthesize_areas
from habitat_priority.pipeline.clustering import build_clusters
from habitat_priority.pipeline.density import analyse_density, category_distribution, species_distribution
from habitat_priority.pipeline.ranking import generate_actions, rank_areas, species_viability


@dataclass(frozen=True)
class AnalysisResult:
    points: tuple[OccurrencePoint, ...]
    annotations: tuple[DensityAnnotation, ...]
    clusters: tuple[Cluster, ...]
    unassigned: tuple[int, ...]
    areas: tuple[ConservationArea, ...]
    ranking: tuple[ConservationArea, ...]
    actions: tuple[ConservationAction, ...]
    category_distribution: dict[str, int]
    species_distribution: dict[str, dict]
    species_viability: dict[str, dict]

    @property
    def metrics(self) -> dict[str, Any]:
        return {
            "points_processed": len(self.points),
            "clusters_generated": len(self.clusters),
            "unassigned_points": len(self.unassigned),
            "areas_generated": len(self.areas),
            "actions_generated": len(self.actions),
            "average_points_per_area": len(self.points) / len(self.areas) if self.areas else 0.0,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "points": [
                {**point.to_dict(), **annotation.to_dict()}
                for point, annotation in zip(self.points, self.annotations)
            ],
            "clusters": [cluster.to_dict() for cluster in self.clusters],
            "unassigned_ids": [self.points[idx].id for idx in self.unassigned],
            "areas": [area.to_dict() for area in self.areas],
            "ranking": [area.id for area in self.ranking],
            "actions": [action.to_dict() for action in self.actions],
            "category_distribution": self.category_distribution,
            "species_distribution": self.species_distribution,
            "species_viability": self.species_viability,
            "metrics": self.metrics,
        }


def empty_result() -> AnalysisResult:
    return AnalysisResult(
        points=(),
        annotations=(),
        clusters=(),
        unassigned=(),
        areas=(),
        ranking=(),
        actions=(),
        category_distribution=category_distribution(()),
        species_distribution={},
        species_viability={},
    )


def check_contracts(result: AnalysisResult) -> None:
    errors: list[str] = []

    seen: set[int] = set()
    for cluster in result.clusters:
        if not cluster.member_indices:
            errors.append(f"EMPTY_CLUSTER:{cluster.id}")
        for idx in cluster.member_indices:
            if idx in seen:
                errors.append(f"POINT_IN_MULTIPLE_CLUSTERS:{result.points[idx].id}")
            seen.add(idx)
        for point in cluster.members:
            if not cluster.bounds.contains(point.lat, point.lng):
                errors.append(f"MEMBER_OUTSIDE_BOUNDS:{cluster.id}:{point.id}")

    for area in result.areas:
        if not area.species:
            errors.append(f"AREA_WITHOUT_SPECIES:{area.id}")
        if area.area_hectares <= 0:
            errors.append(f"AREA_NOT_POSITIVE:{area.id}")
        if area.priority not in PRIORITY_LEVELS:
            errors.append(f"AREA_PRIORITY_INVALID:{area.id}")

    if errors:
        raise ContractError(";".join(errors))


def analysis_cache_key(points: Sequence[OccurrencePoint], config: AnalysisConfig) -> str:
    return fingerprint({"points": [point.to_dict() for point in points], "config": config.to_dict()})


def _timed(logger: logging.Logger | None, run_id: str | None, step: str, rows_in: int, started: float, rows_out: int) -> None:
    log_event(
        logger,
        f"{step} complete",
        run_id=run_id,
        stage="analyse",
        event=f"{step.upper()}_END",
        status="ok",
        rows_in=rows_in,
        rows_out=rows_out,
        duration_ms=round((time.perf_counter() - started) * 1000, 3),
    )


def run_analysis(
    points: Sequence[OccurrencePoint],
    config: AnalysisConfig | None = None,
    *,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
    cache: TtlCache | None = None,
) -> AnalysisResult:
    """Run density analysis, clustering, area synthesis and ranking in order.

    ``points`` must be the finalized validated input in ingest order. An empty
    input yields an empty result. When a cache is supplied the result is keyed
    by a fingerprint of the points and the configuration.
    """
    config = config or AnalysisConfig()
    frozen_points = tuple(points)

    if not frozen_points:
        log_event(logger, "no points to analyse", run_id=run_id, stage="analyse", event="EMPTY_INPUT", status="ok", rows_in=0, rows_out=0)
        return empty_result()

    cache_key = None
    if cache is not None:
        cache_key = analysis_cache_key(frozen_points, config)
        cached = cache.get(cache_key)
        if cached is not None:
            log_event(logger, "analysis cache hit", run_id=run_id, stage="analyse", event="CACHE_HIT", status="ok")
            return cached

    started = time.perf_counter()
    annotations = analyse_density(frozen_points, config)
    _timed(logger, run_id, "density", len(frozen_points), started, len(annotations))

    started = time.perf_counter()
    clustering = build_clusters(frozen_points, annotations, config)
    _timed(logger, run_id, "clustering", len(frozen_points), started, len(clustering.clusters))

    started = time.perf_counter()
    areas = synthesize_areas(
        frozen_points,
        clustering.annotations,
        clustering.clusters,
        clustering.unassigned,
        config,
    )
    _timed(logger, run_id, "areas", len(clustering.clusters) + len(clustering.unassigned), started, len(areas))

    started = time.perf_counter()
    ranking = rank_areas(areas)
    actions = generate_actions(areas)
    _timed(logger, run_id, "ranking", len(areas), started, len(actions))

    result = AnalysisResult(
        points=frozen_points,
        annotations=clustering.annotations,
        clusters=clustering.clusters,
        unassigned=clustering.unassigned,
        areas=tuple(areas),
        ranking=tuple(ranking),
        actions=tuple(actions),
        category_distribution=category_distribution(clustering.annotations),
        species_distribution=species_distribution(frozen_points, clustering.annotations),
        species_viability=species_viability(frozen_points, areas),
    )
    check_contracts(result)

    if cache is not None and cache_key is not None:
        cache.set(cache_key, result)
    return result
