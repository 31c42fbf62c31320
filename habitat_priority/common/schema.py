"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from habitat_priority.common.constants import DENSITY_CATEGORIES, QUALITY_LEVELS
from habitat_priority.common.errors import ConfigError

ANALYSIS_TABLE_KEYS = {
    "density_multipliers": DENSITY_CATEGORIES,
    "diversity_bonus": DENSITY_CATEGORIES,
    "density_risk": DENSITY_CATEGORIES,
    "density_weights": DENSITY_CATEGORIES,
    "quality_multipliers": QUALITY_LEVELS,
}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_number(value, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number")


def validate_analysis_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top = {"radii_km", "density_thresholds", "population", "tables"}
    _assert_required_keys(cfg, top, "analysis config")
    _assert_no_unknown_keys(cfg, top, "analysis config", allow_unknown)

    radii = cfg["radii_km"]
    radius_keys = {"analysis", "cluster", "area_buffer", "isolated"}
    _assert_required_keys(radii, radius_keys, "radii_km")
    _assert_no_unknown_keys(radii, radius_keys, "radii_km", allow_unknown)
    for key in sorted(radius_keys):
        _assert_positive_number(radii[key], f"radii_km.{key}")

    thresholds = cfg["density_thresholds"]
    threshold_keys = {"very_high", "high", "medium", "low"}
    _assert_required_keys(thresholds, threshold_keys, "density_thresholds")
    _assert_no_unknown_keys(thresholds, threshold_keys, "density_thresholds", allow_unknown)
    ordered = [thresholds[key] for key in ("very_high", "high", "medium", "low")]
    if any(isinstance(value, bool) or not isinstance(value, int) or value < 1 for value in ordered):
        raise ConfigError("density_thresholds values must be positive integers")
    if ordered != sorted(set(ordered), reverse=True):
        raise ConfigError("density_thresholds must be strictly decreasing from very_high to low")

    population = cfg["population"]
    _assert_required_keys(population, {"base_multiplier", "isolated_base"}, "population")
    _assert_positive_number(population["base_multiplier"], "population.base_multiplier")
    _assert_positive_number(population["isolated_base"], "population.isolated_base")

    tables = cfg["tables"]
    _assert_required_keys(tables, set(ANALYSIS_TABLE_KEYS), "tables")
    _assert_no_unknown_keys(tables, set(ANALYSIS_TABLE_KEYS), "tables", allow_unknown)
    for name, levels in ANALYSIS_TABLE_KEYS.items():
        _assert_required_keys(tables[name], set(levels), f"tables.{name}")

    return cfg


def validate_validation_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    required = {"min_year", "max_year_offset", "max_coordinate_uncertainty_m", "required_fields"}
    known = required | {"bbox_wgs84", "default_epsg"}
    _assert_required_keys(cfg, required, "validation config")
    _assert_no_unknown_keys(cfg, known, "validation config", allow_unknown)

    bbox = cfg.get("bbox_wgs84")
    if bbox is not None:
        _assert_required_keys(bbox, {"min_lat", "max_lat", "min_lon", "max_lon"}, "bbox_wgs84")
        if bbox["min_lat"] > bbox["max_lat"] or bbox["min_lon"] > bbox["max_lon"]:
            raise ConfigError("bbox_wgs84 minimums must not exceed maximums")

    if not isinstance(cfg["required_fields"], list):
        raise ConfigError("required_fields must be a list")
    return cfg
