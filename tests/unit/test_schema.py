import copy

import pytest

from habitat_priority.common.config_loader import AnalysisConfig
from habitat_priority.common.errors import ConfigError
from habitat_priority.common.schema import validate_analysis_config, validate_validation_config

VALID_VALIDATION = {
    "bbox_wgs84": {"min_lat": -15, "max_lat": 10, "min_lon": 90, "max_lon": 145},
    "min_year": 1980,
    "max_year_offset": 0,
    "max_coordinate_uncertainty_m": 50000,
    "required_fields": ["id", "species", "lat", "lng"],
}


def _analysis():
    return copy.deepcopy(AnalysisConfig().to_dict())


def test_validate_analysis_config_accepts_defaults():
    cfg = _analysis()
    assert validate_analysis_config(cfg) is cfg


def test_validate_analysis_config_rejects_missing_top_level_key():
    cfg = _analysis()
    del cfg["tables"]
    with pytest.raises(ConfigError, match="tables"):
        validate_analysis_config(cfg)


@pytest.mark.parametrize("value", [0, -5, "25", True])
def test_validate_analysis_config_rejects_bad_radius(value):
    cfg = _analysis()
    cfg["radii_km"]["cluster"] = value
    with pytest.raises(ConfigError, match="radii_km.cluster"):
        validate_analysis_config(cfg)


def test_validate_analysis_config_rejects_fractional_threshold():
    cfg = _analysis()
    cfg["density_thresholds"]["low"] = 2.5
    with pytest.raises(ConfigError, match="positive integers"):
        validate_analysis_config(cfg)


def test_validate_analysis_config_rejects_equal_thresholds():
    cfg = _analysis()
    cfg["density_thresholds"]["high"] = 50
    with pytest.raises(ConfigError, match="strictly decreasing"):
        validate_analysis_config(cfg)


def test_validate_analysis_config_requires_every_level_in_tables():
    cfg = _analysis()
    del cfg["tables"]["quality_multipliers"]["very_poor"]
    with pytest.raises(ConfigError, match="tables.quality_multipliers"):
        validate_analysis_config(cfg)


def test_validate_validation_config_accepts_minimal_mapping():
    cfg = copy.deepcopy(VALID_VALIDATION)
    del cfg["bbox_wgs84"]
    assert validate_validation_config(cfg) == cfg


def test_validate_validation_config_rejects_inverted_bbox():
    cfg = copy.deepcopy(VALID_VALIDATION)
    cfg["bbox_wgs84"]["min_lat"] = 20
    with pytest.raises(ConfigError, match="bbox_wgs84"):
        validate_validation_config(cfg)


def test_validate_validation_config_rejects_unknown_key():
    cfg = {**copy.deepcopy(VALID_VALIDATION), "territory": "ID"}
    with pytest.raises(ConfigError, match="territory"):
        validate_validation_config(cfg)
    assert validate_validation_config(cfg, allow_unknown=True)["territory"] == "ID"


def test_validate_validation_config_requires_field_list():
    cfg = {**copy.deepcopy(VALID_VALIDATION), "required_fields": "id"}
    with pytest.raises(ConfigError, match="required_fields"):
        validate_validation_config(cfg)
