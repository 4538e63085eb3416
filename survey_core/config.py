from __future__ import annotations
import os, json, pathlib


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# sections
MINUTES_PER_QUESTION: float = 1.5
OPTIONAL_SECTION_MARKERS: tuple[str, ...] = ("optional", "reflection")
DEFAULT_SECTION: str = "general"

# navigation
SKIP_SUGGEST_MIN_REMAINING: int = 3

# response validation
CONFIDENCE_MIN: int = 1
CONFIDENCE_MAX: int = 5
SCALE_RANGE: tuple[int, int] = (1, 5)
SLIDER_RANGE: tuple[float, float] = (0.0, 100.0)
TEXT_MAX_LENGTH: int = 1000

# engagement / fatigue scoring
ENGAGEMENT_TIME_CAP_SEC: float = 600.0
ENGAGEMENT_TIME_CAP_POINTS: float = 40.0
ENGAGEMENT_TIME_DIVISOR: float = 15.0
ENGAGEMENT_PACE_THRESHOLD_SEC: float = 20.0
ENGAGEMENT_PACE_CAP_POINTS: float = 30.0
ENGAGEMENT_PACE_FACTOR: float = 1.5
ENGAGEMENT_PER_RESPONSE: float = 2.0
ENGAGEMENT_BANDS: tuple[float, float] = (50.0, 80.0)

FATIGUE_STYLE_MULTIPLIER: dict[str, float] = {"analytical": 1.2, "intuitive": 0.8}
FATIGUE_PER_RESPONSE: float = 0.5
FATIGUE_BANDS: tuple[float, float, float] = (8.0, 15.0, 25.0)

PHASE_BANDS: tuple[float, float, float] = (0.2, 0.7, 0.9)

ANALYTICAL_MIN_RT_SEC: float = 40.0
ANALYTICAL_MIN_CONFIDENCE: float = 3.5
INTUITIVE_MAX_RT_SEC: float = 25.0
INTUITIVE_MARKERS: tuple[str, ...] = ("feel",)

PACING_FAST_SEC: float = 15.0
PACING_THOUGHTFUL_SEC: float = 45.0

THOUGHTFULNESS_LENGTH_CAP: float = 50.0
THOUGHTFULNESS_TIME_CAP: float = 30.0
THOUGHTFULNESS_BASELINE: float = 20.0
THOUGHTFULNESS_NO_TEXT: int = 50

BOOSTER_EVERY: int = 5

# consistency / completion gate
LOW_CONFIDENCE_MAX: int = 2
LOW_CONFIDENCE_CLUSTER_MIN: int = 3
FINALIZE_MIN_COMPLETION: float = 70.0

# persistence
AUTOSAVE_ENABLED: bool = True
AUTOSAVE_INTERVAL_SEC: float = 30.0
ACTIVITY_EXPORT_ENABLED: bool = True

# // env overrides for staging/ops
AUTOSAVE_ENABLED = _env_bool("AUTOSAVE_ENABLED", AUTOSAVE_ENABLED)
AUTOSAVE_INTERVAL_SEC = _env_float("AUTOSAVE_INTERVAL_SEC", AUTOSAVE_INTERVAL_SEC)
ACTIVITY_EXPORT_ENABLED = _env_bool("ACTIVITY_EXPORT_ENABLED", ACTIVITY_EXPORT_ENABLED)
TEXT_MAX_LENGTH = _env_int("TEXT_MAX_LENGTH", TEXT_MAX_LENGTH)


def load_config() -> dict:
    cfg = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
    e = os.environ
    if e.get("OPTIONAL_SECTIONS"):
        cfg["optional_sections"] = [s.strip() for s in e["OPTIONAL_SECTIONS"].split(",") if s.strip()]
    if e.get("AUTOSAVE_INTERVAL_SEC"): cfg["autosave_interval_sec"] = _env_float("AUTOSAVE_INTERVAL_SEC", AUTOSAVE_INTERVAL_SEC)
    if e.get("AUTOSAVE_ENABLED"): cfg["autosave_enabled"] = _env_bool("AUTOSAVE_ENABLED", AUTOSAVE_ENABLED)
    if e.get("CATALOG_PATH"): cfg["catalog_path"] = e.get("CATALOG_PATH")
    return cfg


def optional_markers(cfg: dict) -> tuple[str, ...]:
    raw = cfg.get("optional_sections")
    if isinstance(raw, (list, tuple)) and raw:
        return tuple(str(x).lower() for x in raw)
    return OPTIONAL_SECTION_MARKERS


def autosave_interval(cfg: dict) -> float:
    try:
        val = float(cfg.get("autosave_interval_sec", AUTOSAVE_INTERVAL_SEC))
    except (TypeError, ValueError):
        return AUTOSAVE_INTERVAL_SEC
    return val if val > 0 else AUTOSAVE_INTERVAL_SEC
