"""Application constants."""

STAGES = (
    "ingest",
    "analyse",
    "report",
)
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "event",
    "status",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0

# Ordered low to high; index is the ordinal rank.
DENSITY_CATEGORIES = ("very_low", "low", "medium", "high", "very_high")
QUALITY_LEVELS = ("very_poor", "poor", "fair", "good", "excellent")
PRIORITY_LEVELS = ("critical", "high", "medium", "low")
ACTION_PRIORITY_RANK = {"critical": 3, "high": 2, "medium": 1, "ongoing": 0}

AREA_TYPE_CLUSTER = "density_cluster"
AREA_TYPE_ISOLATED = "isolated_point"
