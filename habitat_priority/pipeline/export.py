"""Conservation area, ranking and action exports."""

from __future__ import annotations

from pathlib import Path

from habitat_priority.common.fs import write_csv, write_json
from habitat_priority.pipeline.ranking import ranking_rows
from habitat_priority.pipeline.run import AnalysisResult

AREA_HEADERS = [
    "id",
    "name",
    "type",
    "center_lat",
    "center_lng",
    "area_hectares",
    "species",
    "population_size",
    "genetic_diversity",
    "extinction_risk",
    "threat_level",
    "priority",
    "urgency",
    "total_points",
    "observation_density",
    "countries",
    "localities",
    "data_quality",
    "protection_status",
    "geometry",
]

RANKING_HEADERS = [
    "rank",
    "area_id",
    "location",
    "type",
    "species",
    "priority",
    "urgency",
    "extinction_risk",
    "genetic_diversity",
    "population_size",
    "total_points",
    "observation_density",
]

ACTION_HEADERS = ["priority", "action", "rationale", "species", "location", "area_type"]


def _serialize_value(value):
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:.6f}".rstrip("0").rstrip(".")
    if isinstance(value, (list, tuple)):
        return ";".join(str(item) for item in value)
    return value


def _area_row(area) -> dict:
    row = area.to_dict()
    row["center_lat"], row["center_lng"] = area.center
    return {key: _serialize_value(row.get(key)) for key in AREA_HEADERS}


def write_analysis_outputs(result: AnalysisResult, data_dir: Path, run_id: str) -> dict[str, Path]:
    out_dir = data_dir / "out"
    paths = {
        "analysis": data_dir / "intermediate" / "analysis.json",
        "areas_json": out_dir / "conservation_areas.json",
        "areas_csv": out_dir / "conservation_areas.csv",
        "ranking_csv": out_dir / "priority_ranking.csv",
        "actions_csv": out_dir / "conservation_actions.csv",
    }

    write_json(paths["analysis"], {"run_id": run_id, **result.to_dict()})
    write_json(
        paths["areas_json"],
        {
            "areas": [area.to_dict() for area in result.areas],
            "actions": [action.to_dict() for action in result.actions],
        },
    )
    write_csv(paths["areas_csv"], AREA_HEADERS, (_area_row(area) for area in result.areas))
    write_csv(
        paths["ranking_csv"],
        RANKING_HEADERS,
        ({key: _serialize_value(value) for key, value in row.items()} for row in ranking_rows(result.ranking)),
    )
    write_csv(
        paths["actions_csv"],
        ACTION_HEADERS,
        ({key: _serialize_value(value) for key, value in action.to_dict().items()} for action in result.actions),
    )
    return paths
