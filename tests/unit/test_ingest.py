from pathlib import Path

import pytest
from pyproj import Transformer

from habitat_priority.common.errors import InputError
from habitat_priority.common.fs import read_json, write_json
from habitat_priority.pipeline.ingest import (
    canonicalise_record,
    ingest_records,
    load_points,
    load_raw_records,
    resolve_epsg,
    run_ingest,
    validate_record,
)

VALIDATION = {
    "bbox_wgs84": {"min_lat": -15, "max_lat": 10, "min_lon": 90, "max_lon": 145},
    "min_year": 1980,
    "max_year_offset": 0,
    "max_coordinate_uncertainty_m": 50000,
    "required_fields": ["id", "species", "lat", "lng"],
    "default_epsg": 4326,
}


def _gbif(key, lat=1.5, lng=110.0, **extra):
    record = {
        "key": key,
        "species": "Pongo pygmaeus",
        "decimalLatitude": lat,
        "decimalLongitude": lng,
        "year": 2022,
    }
    record.update(extra)
    return record


def test_canonicalise_record_maps_gbif_names():
    record = canonicalise_record(_gbif(12, coordinateUncertaintyInMeters=30, basisOfRecord="HUMAN_OBSERVATION"))
    assert record["id"] == 12
    assert record["lat"] == 1.5
    assert record["lng"] == 110.0
    assert record["coordinate_uncertainty_m"] == 30
    assert record["basis_of_record"] == "HUMAN_OBSERVATION"


def test_ingest_records_rejects_by_reason_and_keeps_order():
    raw = [
        _gbif(1),
        _gbif(2, lat=40.0),
        _gbif(3, coordinateUncertaintyInMeters=90000),
        _gbif(4, year=1950),
        _gbif(1, lat=2.0),
        {"key": 5, "decimalLatitude": 1.0, "decimalLongitude": 110.0},
        _gbif(6, lat="not-a-number"),
        _gbif(7, lat=-3.2, lng=114.1),
    ]

    result = ingest_records(raw, VALIDATION, reference_year=2026)

    assert [point.id for point in result["points"]] == ["1", "7"]
    assert [point.ingest_index for point in result["points"]] == [0, 1]
    assert result["rejected"] == {
        "coordinate_uncertainty_too_high": 1,
        "coordinates_not_numeric": 1,
        "coordinates_outside_bbox": 1,
        "duplicate_id": 1,
        "missing_species": 1,
        "year_out_of_range": 1,
    }
    assert result["rejection_samples"][0] == {"position": 1, "reason": "coordinates_outside_bbox"}


def test_ingest_derives_quality_recency_and_precision():
    raw = [
        _gbif(
            1,
            year=2025,
            coordinateUncertaintyInMeters=50,
            locality="Tanjung Puting",
            eventDate="2025-06-01",
            recordedBy="Field team",
            institutionCode="OFI",
            basisOfRecord="HUMAN_OBSERVATION",
        ),
        {"key": 2, "species": "Pongo abelii", "decimalLatitude": 3.7, "decimalLongitude": 97.6},
    ]

    points = ingest_records(raw, VALIDATION, reference_year=2026)["points"]

    assert points[0].data_quality == "excellent"
    assert points[0].recency == 1.0
    assert points[0].precision == 1.0
    assert points[1].data_quality == "very_poor"
    assert points[1].recency == 0.0
    assert points[1].precision == 0.5


def test_validate_record_transforms_declared_datum():
    transformer = Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)
    x, y = transformer.transform(110.0, 1.5)
    record = canonicalise_record(_gbif(9, lat=y, lng=x, geodeticDatum="EPSG:3857"))

    cleaned, reason = validate_record(record, VALIDATION, reference_year=2026)

    assert reason is None
    assert cleaned["lat"] == pytest.approx(1.5, abs=1e-6)
    assert cleaned["lng"] == pytest.approx(110.0, abs=1e-6)


def test_validate_record_rejects_unknown_datum():
    record = canonicalise_record(_gbif(9, geodeticDatum="Local grid"))
    cleaned, reason = validate_record(record, VALIDATION, reference_year=2026)
    assert cleaned is None
    assert reason == "unknown_datum"


def test_resolve_epsg_variants():
    assert resolve_epsg(None, 4326) == 4326
    assert resolve_epsg("WGS84", 3857) == 4326
    assert resolve_epsg("epsg:23845", 4326) == 23845
    assert resolve_epsg("unknown", 4326) is None


def test_load_raw_records_accepts_gbif_response_and_csv(tmp_path: Path):
    json_path = tmp_path / "occurrences.json"
    write_json(json_path, {"offset": 0, "results": [_gbif(1)]})
    assert load_raw_records(json_path)[0]["key"] == 1

    csv_path = tmp_path / "occurrences.csv"
    csv_path.write_text(
        "id,species,lat,lng,year\nA1,Pongo abelii,3.7,97.6,2019\n",
        encoding="utf-8",
    )
    rows = load_raw_records(csv_path)
    result = ingest_records(rows, VALIDATION, reference_year=2026)
    assert result["points"][0].id == "A1"
    assert result["points"][0].year == 2019


def test_load_raw_records_rejects_bad_inputs(tmp_path: Path):
    with pytest.raises(InputError):
        load_raw_records(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(InputError):
        load_raw_records(broken)

    scalar = tmp_path / "scalar.json"
    scalar.write_text("42", encoding="utf-8")
    with pytest.raises(InputError):
        load_raw_records(scalar)


def test_run_ingest_writes_points_and_rejections(tmp_path: Path):
    input_path = tmp_path / "in.json"
    write_json(input_path, [_gbif(1), _gbif(2, lat=40.0)])
    data_dir = tmp_path / "data"

    run_ingest(input_path, VALIDATION, data_dir, run_id="run-1", run_date="2026-02-17")

    points = load_points(data_dir)
    assert [point.id for point in points] == ["1"]
    rejections = read_json(data_dir / "intermediate" / "ingest_rejections.json")
    assert rejections["rejected"] == {"coordinates_outside_bbox": 1}


def test_load_points_requires_ingest(tmp_path: Path):
    with pytest.raises(InputError):
        load_points(tmp_path)


def test_resolve_epsg_accepts_numeric_datums():
    assert resolve_epsg(4326.0, 3857) == 4326
    assert resolve_epsg(3857, 4326) == 3857
    assert resolve_epsg("EPSG:3857.0", 4326) == 3857
    assert resolve_epsg(4326.5, 4326) is None


def test_validate_record_accepts_float_datum_from_json():
    record = canonicalise_record(_gbif(10, geodeticDatum=4326.0))
    cleaned, reason = validate_record(record, VALIDATION, reference_year=2026)
    assert reason is None
    assert cleaned["lat"] == 1.5
