"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class OccurrencePoint:
    id: str
    species: str
    lat: float
    lng: float
    ingest_index: int
    year: int | None = None
    event_date: str | None = None
    locality: str | None = None
    state_province: str | None = None
    country: str | None = None
    coordinate_uncertainty_m: float | None = None
    basis_of_record: str | None = None
    recorded_by: str | None = None
    institution_code: str | None = None
    data_quality: str = "fair"
    recency: float = 0.0
    precision: float = 0.5

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "OccurrencePoint":
        return cls(**payload)


@dataclass(frozen=True)
class DensityAnnotation:
    nearby_count: int
    density_category: str
    cluster_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Bounds:
    north: float
    south: float
    east: float
    west: float

    @classmethod
    def around(cls, lat: float, lng: float) -> "Bounds":
        return cls(north=lat, south=lat, east=lng, west=lng)

    def extend(self, lat: float, lng: float) -> "Bounds":
        return Bounds(
            north=max(self.north, lat),
            south=min(self.south, lat),
            east=max(self.east, lng),
            west=min(self.west, lng),
        )

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class Cluster:
    """A seed-anchored group of points; ``member_indices[0]`` is the seed."""

    id: str
    member_indices: tuple[int, ...]
    members: tuple[OccurrencePoint, ...]
    species: tuple[str, ...]
    bounds: Bounds
    center: tuple[float, float]
    density_level: str
    total_density: int
    avg_density: float

    @property
    def seed(self) -> OccurrencePoint:
        return self.members[0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "seed_id": self.seed.id,
            "member_ids": [point.id for point in self.members],
            "species": list(self.species),
            "bounds": self.bounds.to_dict(),
            "center": list(self.center),
            "density_level": self.density_level,
            "total_density": self.total_density,
            "avg_density": self.avg_density,
        }


@dataclass(frozen=True)
class ConservationArea:
    id: str
    name: str
    type: str
    center: tuple[float, float]
    bounds: Bounds
    geometry: str
    area_hectares: int
    species: tuple[str, ...]
    population_size: int
    genetic_diversity: float
    extinction_risk: float
    priority: str
    urgency: float
    threat_level: str
    total_points: int
    observation_density: float
    details: dict[str, Any] = field(default_factory=dict)
    countries: tuple[str, ...] = ()
    provinces: tuple[str, ...] = ()
    localities: tuple[str, ...] = ()
    temporal_coverage: dict[str, Any] = field(default_factory=dict)
    data_quality: str = "fair"
    protection_status: str = "Unassessed"

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["center"] = list(self.center)
        payload["species"] = list(self.species)
        payload["countries"] = list(self.countries)
        payload["provinces"] = list(self.provinces)
        payload["localities"] = list(self.localities)
        return payload


@dataclass(frozen=True)
class ConservationAction:
    priority: str
    action: str
    rationale: str
    species: str
    location: str
    area_type: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
