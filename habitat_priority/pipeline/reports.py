"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from habitat_priority.common.errors import StageError
from habitat_priority.common.fs import read_json, write_json
from habitat_priority.common.time_utils import run_year
from habitat_priority.pipeline.ingest import load_points
from habitat_priority.pipeline.quality import build_quality_report


def write_run_summary(data_dir: Path, run_id: str, run_date: str, analysis_radius_km: float) -> Path:
    analysis_path = data_dir / "intermediate" / "analysis.json"
    if not analysis_path.exists():
        raise StageError(f"Missing analysis output: {analysis_path}")
    analysis = read_json(analysis_path)

    rejections_path = data_dir / "intermediate" / "ingest_rejections.json"
    ingest = read_json(rejections_path) if rejections_path.exists() else {}
    points = load_points(data_dir) if (data_dir / "intermediate" / "points.json").exists() else []

    warnings: list[str] = []
    areas = analysis.get("areas", [])
    if not analysis.get("points"):
        warnings.append("NO_POINTS_ANALYSED")
    elif not areas:
        warnings.append("NO_AREAS_PRODUCED")
    insufficient = sorted(
        species
        for species, summary in analysis.get("species_viability", {}).items()
        if summary.get("status") == "insufficient_data"
    )
    if insufficient:
        warnings.append("SPECIES_WITH_INSUFFICIENT_DATA")

    priority_counts = {"critical": 0, "high": 0, "medium": 0, "low": 0}
    for area in areas:
        priority_counts[area["priority"]] = priority_counts.get(area["priority"], 0) + 1

    payload = {
        "run_id": run_id,
        "run_date": run_date,
        "status": "partial" if warnings else "success",
        "counts": {
            "raw_records": int(ingest.get("raw_record_count", len(analysis.get("points", [])))),
            "valid_records": int(ingest.get("valid_record_count", len(analysis.get("points", [])))),
            "rejected_records": sum(int(v) for v in ingest.get("rejected", {}).values()),
            "clusters": len(analysis.get("clusters", [])),
            "areas": len(areas),
            "actions": len(analysis.get("actions", [])),
        },
        "rejected_by_reason": ingest.get("rejected", {}),
        "density_categories": analysis.get("category_distribution", {}),
        "species_distribution": analysis.get("species_distribution", {}),
        "species_viability": analysis.get("species_viability", {}),
        "priority_counts": priority_counts,
        "processing_metrics": {
            **analysis.get("metrics", {}),
            "analysis_radius_km": analysis_radius_km,
        },
        "insufficient_data_species": insufficient,
        "quality_report": build_quality_report(
            points,
            total_records=int(ingest.get("raw_record_count", len(points))),
            rejected=ingest.get("rejected", {}),
            reference_year=run_year(run_date),
        ),
        "warnings": warnings,
    }

    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    write_json(summary_path, payload)
    return summary_path
