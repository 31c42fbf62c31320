"""Urgency ranking, conservation actions and per-species viability."""

from __future__ import annotations

from typing import Sequence

from habitat_priority.common.constants import ACTION_PRIORITY_RANK
from habitat_priority.common.deterministic import stable_sorted
from habitat_priority.common.models import ConservationAction, ConservationArea, OccurrencePoint

ACTION_RISK_THRESHOLD = 0.7


def rank_areas(areas: Sequence[ConservationArea]) -> list[ConservationArea]:
    return stable_sorted(areas, key=lambda area: area.urgency, reverse=True)


def generate_actions(areas: Sequence[ConservationArea]) -> list[ConservationAction]:
    actions = [
        ConservationAction(
            priority="critical",
            action=f"Emergency intervention for {area.name}",
            rationale=f"High extinction risk: {area.extinction_risk * 100:.1f}%",
            species=", ".join(area.species),
            location=area.name,
            area_type=area.type,
        )
        for area in areas
        if area.extinction_risk > ACTION_RISK_THRESHOLD
    ]
    return stable_sorted(actions, key=lambda action: ACTION_PRIORITY_RANK.get(action.priority, 0), reverse=True)


def ranking_rows(ranked: Sequence[ConservationArea]) -> list[dict]:
    return [
        {
            "rank": position,
            "area_id": area.id,
            "location": area.name,
            "type": area.type,
            "species": ";".join(area.species),
            "priority": area.priority,
            "urgency": area.urgency,
            "extinction_risk": area.extinction_risk,
            "genetic_diversity": area.genetic_diversity,
            "population_size": area.population_size,
            "total_points": area.total_points,
            "observation_density": area.observation_density,
        }
        for position, area in enumerate(ranked, start=1)
    ]


def species_viability(points: Sequence[OccurrencePoint], areas: Sequence[ConservationArea]) -> dict[str, dict]:
    """Summarise each observed species over the areas that contain it.

    Species without any area are flagged ``insufficient_data`` with null metrics.
    """
    summary: dict[str, dict] = {}
    for species in sorted({point.species for point in points}):
        holding = [area for area in areas if species in area.species]
        if not holding:
            summary[species] = {
                "status": "insufficient_data",
                "location_count": 0,
                "total_population": None,
                "average_genetic_diversity": None,
                "extinction_probability": None,
                "recommended_actions": [],
            }
            continue

        summary[species] = {
            "status": "assessed",
            "location_count": len(holding),
            "total_population": sum(area.population_size for area in holding),
            "average_genetic_diversity": sum(area.genetic_diversity for area in holding) / len(holding),
            "extinction_probability": max(area.extinction_risk for area in holding),
            "recommended_actions": [
                {
                    "priority": "ongoing",
                    "action": f"Monitor {species} individual occurrence points",
                    "rationale": "Continuous assessment based on individual point analysis",
                }
            ],
        }
    return summary
