import json
from pathlib import Path

import pytest

from habitat_priority.cli import main, parse_args, run_command
from habitat_priority.common.fs import read_csv_rows, read_json

FIXTURE = Path("tests") / "fixtures" / "occurrences.json"


def _args(data_dir: Path, command: str = "all", *extra: str):
    return parse_args(
        [
            command,
            "--config-dir",
            "config",
            "--data-dir",
            str(data_dir),
            "--run-date",
            "2026-02-17",
            "--run-id",
            "run-test",
            *extra,
        ]
    )


@pytest.mark.integration
def test_cli_all_generates_expected_artifacts(tmp_path: Path):
    data_dir = tmp_path / "data"

    exit_code = run_command(_args(data_dir, "all", "--input", str(FIXTURE)))

    assert exit_code == 0
    for relative in (
        "intermediate/points.json",
        "intermediate/ingest_rejections.json",
        "intermediate/analysis.json",
        "out/conservation_areas.json",
        "out/conservation_areas.csv",
        "out/priority_ranking.csv",
        "out/conservation_actions.csv",
        "out/reports/run_summary.json",
        "run_meta/run-test.log.jsonl",
    ):
        assert (data_dir / relative).exists(), relative

    summary = read_json(data_dir / "out" / "reports" / "run_summary.json")
    assert summary["status"] == "success"
    assert summary["counts"]["raw_records"] == 16
    assert summary["counts"]["valid_records"] == 12
    assert summary["counts"]["clusters"] == 1
    assert summary["counts"]["areas"] == 5
    assert summary["rejected_by_reason"] == {
        "coordinate_uncertainty_too_high": 1,
        "coordinates_outside_bbox": 1,
        "duplicate_id": 1,
        "year_out_of_range": 1,
    }
    assert summary["species_distribution"] == {
        "Pongo abelii": 3,
        "Pongo pygmaeus": 8,
        "Pongo tapanuliensis": 1,
    }
    assert summary["insufficient_data_species"] == []

    quality = summary["quality_report"]
    assert quality["total_records"] == 16
    assert quality["valid_records"] == 12
    assert quality["quality_distribution"] == {"excellent": 6, "good": 2, "fair": 4, "poor": 0, "very_poor": 0}
    assert quality["overall_quality"] == "poor"
    assert quality["recommendations"] == []
    assert quality["temporal_coverage"]["span"] == 8
    assert quality["temporal_coverage"]["coverage"] == "limited"
    assert quality["temporal_coverage"]["recent_records"] == 6

    ranking = read_csv_rows(data_dir / "out" / "priority_ranking.csv")
    assert [row["rank"] for row in ranking] == ["1", "2", "3", "4", "5"]
    assert ranking[0]["area_id"] == "density_area_1"
    assert ranking[0]["location"] == "Sepilok Forest Reserve pygmaeus Habitat"
    assert [row["area_id"] for row in ranking[1:]] == [
        "isolated_area_1",
        "isolated_area_2",
        "isolated_area_3",
        "isolated_area_4",
    ]

    actions = read_csv_rows(data_dir / "out" / "conservation_actions.csv")
    assert len(actions) == 5
    assert actions[0]["rationale"] == "High extinction risk: 80.0%"

    events = [
        json.loads(line)["event"]
        for line in (data_dir / "run_meta" / "run-test.log.jsonl").read_text(encoding="utf-8").splitlines()
    ]
    assert events.count("STAGE_END") == 3
    assert "CLUSTERING_END" in events


@pytest.mark.integration
def test_cli_ingest_without_input_is_partial_failure(tmp_path: Path):
    assert run_command(_args(tmp_path / "data", "ingest")) == 10


@pytest.mark.integration
def test_cli_strict_mode_escalates_stage_failure(tmp_path: Path):
    assert run_command(_args(tmp_path / "data", "ingest", "--strict")) == 20


@pytest.mark.integration
def test_cli_analyse_before_ingest_is_partial_failure(tmp_path: Path):
    assert run_command(_args(tmp_path / "data", "analyse")) == 10


@pytest.mark.integration
def test_cli_main_reports_missing_config(tmp_path: Path, capsys):
    exit_code = main(
        [
            "report",
            "--config-dir",
            str(tmp_path / "no-config"),
            "--data-dir",
            str(tmp_path / "data"),
            "--run-id",
            "run-missing-config",
        ]
    )
    assert exit_code == 20
    assert "CONFIG_ERROR" in capsys.readouterr().err
