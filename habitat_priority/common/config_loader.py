"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from habitat_priority.common.errors import ConfigError
from habitat_priority.common.fs import read_yaml
from habitat_priority.common.schema import validate_analysis_config, validate_validation_config


@dataclass(frozen=True)
class DensityThresholds:
    very_high: int = 50
    high: int = 20
    medium: int = 10
    low: int = 3

    def categorize(self, nearby_count: int) -> str:
        if nearby_count >= self.very_high:
            return "very_high"
        if nearby_count >= self.high:
            return "high"
        if nearby_count >= self.medium:
            return "medium"
        if nearby_count >= self.low:
            return "low"
        return "very_low"


@dataclass(frozen=True)
class AnalysisConfig:
    """Tunables for the density → cluster → area pipeline.

    Defaults match ``config/analysis.yml`` so the core runs without files.
    """

    analysis_radius_km: float = 25.0
    cluster_radius_km: float = 15.0
    area_buffer_km: float = 5.0
    isolated_radius_km: float = 5.0
    thresholds: DensityThresholds = field(default_factory=DensityThresholds)
    population_base_multiplier: float = 8.0
    isolated_population_base: float = 15.0
    density_multipliers: dict[str, float] = field(
        default_factory=lambda: {"very_high": 1.2, "high": 1.0, "medium": 0.8, "low": 0.6, "very_low": 0.4}
    )
    diversity_bonus: dict[str, float] = field(
        default_factory=lambda: {"very_high": 0.3, "high": 0.2, "medium": 0.1, "low": 0.0, "very_low": -0.1}
    )
    density_risk: dict[str, float] = field(
        default_factory=lambda: {"very_high": 0.1, "high": 0.2, "medium": 0.4, "low": 0.6, "very_low": 0.8}
    )
    density_weights: dict[str, float] = field(
        default_factory=lambda: {"very_high": 1.0, "high": 0.8, "medium": 0.6, "low": 0.4, "very_low": 0.2}
    )
    quality_multipliers: dict[str, float] = field(
        default_factory=lambda: {"excellent": 1.5, "good": 1.2, "fair": 1.0, "poor": 0.8, "very_poor": 0.5}
    )

    @classmethod
    def from_dict(cls, cfg: dict) -> "AnalysisConfig":
        radii = cfg["radii_km"]
        population = cfg["population"]
        tables = cfg["tables"]
        return cls(
            analysis_radius_km=float(radii["analysis"]),
            cluster_radius_km=float(radii["cluster"]),
            area_buffer_km=float(radii["area_buffer"]),
            isolated_radius_km=float(radii["isolated"]),
            thresholds=DensityThresholds(**{k: int(v) for k, v in cfg["density_thresholds"].items()}),
            population_base_multiplier=float(population["base_multiplier"]),
            isolated_population_base=float(population["isolated_base"]),
            density_multipliers={k: float(v) for k, v in tables["density_multipliers"].items()},
            diversity_bonus={k: float(v) for k, v in tables["diversity_bonus"].items()},
            density_risk={k: float(v) for k, v in tables["density_risk"].items()},
            density_weights={k: float(v) for k, v in tables["density_weights"].items()},
            quality_multipliers={k: float(v) for k, v in tables["quality_multipliers"].items()},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "radii_km": {
                "analysis": self.analysis_radius_km,
                "cluster": self.cluster_radius_km,
                "area_buffer": self.area_buffer_km,
                "isolated": self.isolated_radius_km,
            },
            "density_thresholds": {
                "very_high": self.thresholds.very_high,
                "high": self.thresholds.high,
                "medium": self.thresholds.medium,
                "low": self.thresholds.low,
            },
            "population": {
                "base_multiplier": self.population_base_multiplier,
                "isolated_base": self.isolated_population_base,
            },
            "tables": {
                "density_multipliers": dict(self.density_multipliers),
                "diversity_bonus": dict(self.diversity_bonus),
                "density_risk": dict(self.density_risk),
                "density_weights": dict(self.density_weights),
                "quality_multipliers": dict(self.quality_multipliers),
            },
        }


@dataclass(frozen=True)
class ConfigBundle:
    analysis: AnalysisConfig
    validation: dict


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    return _deep_merge(base, overlay)


def load_all_configs(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> ConfigBundle:
    def _overlay(name: str) -> Path | None:
        return (overlay_config_dir / name) if overlay_config_dir is not None else None

    analysis_raw = validate_analysis_config(
        _load_yaml_with_overlay(config_dir / "analysis.yml", _overlay("analysis.yml")),
        allow_unknown=allow_unknown,
    )
    validation = validate_validation_config(
        _load_yaml_with_overlay(config_dir / "validation.yml", _overlay("validation.yml")),
        allow_unknown=allow_unknown,
    )
    return ConfigBundle(analysis=AnalysisConfig.from_dict(analysis_raw), validation=validation)
