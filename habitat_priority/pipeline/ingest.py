"""Occurrence record validation and point construction."""

from __future__ import annotations

import math
from collections import defaultdict
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError

from habitat_priority.common.errors import InputError
from habitat_priority.common.fs import read_csv_rows, read_json, write_json
from habitat_priority.common.models import OccurrencePoint
from habitat_priority.common.scoring import assess_point_quality, precision_score, recency_score
from habitat_priority.common.time_utils import run_year

# Canonical field -> accepted source names, first present wins.
FIELD_ALIASES = {
    "id": ("id", "key", "gbifID", "occurrenceID"),
    "species": ("species", "scientificName"),
    "lat": ("lat", "decimalLatitude", "latitude"),
    "lng": ("lng", "decimalLongitude", "longitude", "lon"),
    "year": ("year",),
    "event_date": ("event_date", "eventDate"),
    "locality": ("locality",),
    "state_province": ("state_province", "stateProvince"),
    "country": ("country",),
    "coordinate_uncertainty_m": ("coordinate_uncertainty_m", "coordinateUncertaintyInMeters"),
    "basis_of_record": ("basis_of_record", "basisOfRecord"),
    "recorded_by": ("recorded_by", "recordedBy"),
    "institution_code": ("institution_code", "institutionCode"),
    "geodetic_datum": ("geodetic_datum", "geodeticDatum"),
}

DATUM_ALIASES = {"WGS84": 4326, "WGS 84": 4326, "WGS-84": 4326}
MAX_REJECTION_SAMPLES = 50


def _first_present(raw: dict, names: Iterable[str]) -> Any:
    for name in names:
        value = raw.get(name)
        if value not in (None, ""):
            return value
    return None


def _safe_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _safe_int(value: Any) -> int | None:
    parsed = _safe_float(value)
    if parsed is None or parsed != int(parsed):
        return None
    return int(parsed)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def canonicalise_record(raw: dict) -> dict[str, Any]:
    return {field: _first_present(raw, names) for field, names in FIELD_ALIASES.items()}


def resolve_epsg(datum: Any, default_epsg: int) -> int | None:
    if datum in (None, ""):
        return default_epsg
    if isinstance(datum, (int, float)) and not isinstance(datum, bool):
        return _safe_int(datum)
    text = str(datum).strip().upper()
    if text in DATUM_ALIASES:
        return DATUM_ALIASES[text]
    if text.startswith("EPSG:"):
        text = text[len("EPSG:") :]
    return _safe_int(text)


@lru_cache(maxsize=16)
def _transformer_to_wgs84(source_epsg: int) -> Transformer:
    return Transformer.from_crs(CRS.from_epsg(source_epsg), CRS.from_epsg(4326), always_xy=True)


def transform_to_wgs84(lat: float, lng: float, source_epsg: int) -> tuple[float, float] | None:
    if source_epsg == 4326:
        return lat, lng
    try:
        transformed_lng, transformed_lat = _transformer_to_wgs84(source_epsg).transform(lng, lat)
    except (CRSError, ProjError):
        return None
    if not (math.isfinite(transformed_lat) and math.isfinite(transformed_lng)):
        return None
    return transformed_lat, transformed_lng


def _within_bbox(lat: float, lng: float, bbox: dict | None) -> bool:
    if bbox is None:
        return True
    return bbox["min_lat"] <= lat <= bbox["max_lat"] and bbox["min_lon"] <= lng <= bbox["max_lon"]


def validate_record(record: dict[str, Any], validation: dict, *, reference_year: int) -> tuple[dict | None, str | None]:
    """Check one canonicalised record; returns (cleaned, None) or (None, reason)."""
    for field in validation["required_fields"]:
        if record.get(field) in (None, ""):
            return None, f"missing_{field}"

    lat = _safe_float(record.get("lat"))
    lng = _safe_float(record.get("lng"))
    if lat is None or lng is None:
        return None, "coordinates_not_numeric"

    epsg = resolve_epsg(record.get("geodetic_datum"), int(validation.get("default_epsg", 4326)))
    if epsg is None:
        return None, "unknown_datum"
    transformed = transform_to_wgs84(lat, lng, epsg)
    if transformed is None:
        return None, "unknown_datum"
    lat, lng = transformed

    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None, "coordinates_out_of_range"
    if not _within_bbox(lat, lng, validation.get("bbox_wgs84")):
        return None, "coordinates_outside_bbox"

    uncertainty = _safe_float(record.get("coordinate_uncertainty_m"))
    if uncertainty is not None and uncertainty > validation["max_coordinate_uncertainty_m"]:
        return None, "coordinate_uncertainty_too_high"

    year = _safe_int(record.get("year"))
    if record.get("year") not in (None, "") and year is None:
        return None, "year_not_numeric"
    max_year = reference_year + int(validation["max_year_offset"])
    if year is not None and not (validation["min_year"] <= year <= max_year):
        return None, "year_out_of_range"

    cleaned = {
        "id": _text(record.get("id")),
        "species": _text(record.get("species")),
        "lat": lat,
        "lng": lng,
        "year": year,
        "event_date": _text(record.get("event_date")),
        "locality": _text(record.get("locality")),
        "state_province": _text(record.get("state_province")),
        "country": _text(record.get("country")),
        "coordinate_uncertainty_m": uncertainty,
        "basis_of_record": _text(record.get("basis_of_record")),
        "recorded_by": _text(record.get("recorded_by")),
        "institution_code": _text(record.get("institution_code")),
    }
    if cleaned["id"] is None or cleaned["species"] is None:
        return None, "missing_identity"
    return cleaned, None


def build_point(cleaned: dict[str, Any], ingest_index: int, *, reference_year: int) -> OccurrencePoint:
    quality, _explanation = assess_point_quality(cleaned, reference_year=reference_year)
    return OccurrencePoint(
        ingest_index=ingest_index,
        data_quality=quality,
        recency=recency_score(cleaned["year"], reference_year=reference_year),
        precision=precision_score(cleaned["coordinate_uncertainty_m"]),
        **cleaned,
    )


def load_raw_records(path: Path) -> list[dict]:
    if not path.exists():
        raise InputError(f"Missing occurrence input: {path}")

    if path.suffix.lower() == ".csv":
        return read_csv_rows(path)

    try:
        payload = read_json(path)
    except ValueError as exc:
        raise InputError(f"Occurrence input is not valid JSON: {path}") from exc

    if isinstance(payload, dict):
        # GBIF search responses keep records under "results".
        for key in ("results", "records", "rows"):
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
    if not isinstance(payload, list) or not all(isinstance(row, dict) for row in payload):
        raise InputError(f"Occurrence input must be a list of records: {path}")
    return payload


def ingest_records(raw_records: list[dict], validation: dict, *, reference_year: int) -> dict:
    """Validate raw records and build points in input order.

    Rejected records are counted by reason; duplicate ids keep the first
    occurrence.
    """
    points: list[OccurrencePoint] = []
    rejected_by_reason: dict[str, int] = defaultdict(int)
    rejection_samples: list[dict] = []
    seen_ids: set[str] = set()

    for position, raw in enumerate(raw_records):
        cleaned, reason = validate_record(canonicalise_record(raw), validation, reference_year=reference_year)
        if cleaned is not None and cleaned["id"] in seen_ids:
            cleaned, reason = None, "duplicate_id"

        if cleaned is None:
            rejected_by_reason[reason] += 1
            if len(rejection_samples) < MAX_REJECTION_SAMPLES:
                rejection_samples.append({"position": position, "reason": reason})
            continue

        seen_ids.add(cleaned["id"])
        points.append(build_point(cleaned, len(points), reference_year=reference_year))

    return {
        "raw_record_count": len(raw_records),
        "valid_record_count": len(points),
        "rejected": dict(sorted(rejected_by_reason.items())),
        "rejection_samples": rejection_samples,
        "points": points,
    }


def run_ingest(input_path: Path, validation: dict, data_dir: Path, run_id: str, run_date: str) -> dict:
    reference_year = run_year(run_date)
    result = ingest_records(load_raw_records(input_path), validation, reference_year=reference_year)

    write_json(
        data_dir / "intermediate" / "points.json",
        {
            "run_id": run_id,
            "run_date": run_date,
            "source": str(input_path),
            "points": [point.to_dict() for point in result["points"]],
        },
    )
    write_json(
        data_dir / "intermediate" / "ingest_rejections.json",
        {
            "run_id": run_id,
            "raw_record_count": result["raw_record_count"],
            "valid_record_count": result["valid_record_count"],
            "rejected": result["rejected"],
            "rejection_samples": result["rejection_samples"],
        },
    )
    return result


def load_points(data_dir: Path) -> list[OccurrencePoint]:
    path = data_dir / "intermediate" / "points.json"
    if not path.exists():
        raise InputError(f"Missing ingested points: {path}")
    payload = read_json(path)
    return [OccurrencePoint.from_dict(row) for row in payload.get("points", [])]
