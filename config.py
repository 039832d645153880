"""
config.py — Runtime settings for the SMS farm advisory service.

Settings is immutable and passed explicitly to the parser, the formatter
and the pipeline. load_settings() builds one from environment variables
(populated from a .env file by load_dotenv() in app.py / cli.py).

    SMS_MAX_LENGTH       reply length limit in characters (default 150)
    COORD_BOUNDS_POLICY  "global" or "regional" (default regional)
    REGION_BOUNDS        lat_min,lat_max,lng_min,lng_max (default Africa)
    DEFAULT_CROP         crop for QUOTE when none is named (default MAIZE)
    RAIN_THRESHOLD_MM    rain history significance threshold (default 1.0)
    FORECAST_DAYS        forecast entries rendered (default 4)
    ANCHOR_COMMANDS      "1" to require the command word first
    CURRENCY_SYMBOLS     extra CODE=SYMBOL pairs, e.g. "KES=KSh,NGN=N"
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from parser.models import CropType


class BoundsPolicy(str, Enum):
    GLOBAL = "global"
    REGIONAL = "regional"


@dataclass(frozen=True)
class RegionBounds:
    lat_min: float
    lat_max: float
    lng_min: float
    lng_max: float

    def contains(self, lat: float, lng: float) -> bool:
        return (self.lat_min <= lat <= self.lat_max
                and self.lng_min <= lng <= self.lng_max)


GLOBAL_BOUNDS = RegionBounds(-90.0, 90.0, -180.0, 180.0)

# Rough bounding box for Africa
AFRICA_BOUNDS = RegionBounds(-35.0, 37.0, -20.0, 55.0)

DEFAULT_CURRENCY_SYMBOLS = MappingProxyType({
    "USD": "$",
    "ZWL": "Z$",
    "BWP": "P",
    "ZMW": "K",
    "TZS": "TSh",
    "MWK": "MK",
})


@dataclass(frozen=True)
class Settings:
    max_reply_length: int = 150
    bounds_policy: BoundsPolicy = BoundsPolicy.REGIONAL
    region: RegionBounds = AFRICA_BOUNDS
    default_crop: CropType = CropType.MAIZE
    currency_symbols: Mapping[str, str] = field(
        default_factory=lambda: DEFAULT_CURRENCY_SYMBOLS
    )
    rain_threshold_mm: float = 1.0
    forecast_days: int = 4
    anchor_commands: bool = False


DEFAULT_SETTINGS = Settings()


# ---------------------------------------------------------------------------
# Environment parsing
# ---------------------------------------------------------------------------

def _env_int(env: Mapping[str, str], name: str, default: int, minimum: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")
    return value


def _parse_region(raw: str) -> RegionBounds:
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 4:
        raise ValueError(f"REGION_BOUNDS needs 4 comma-separated numbers, got {raw!r}")
    try:
        lat_min, lat_max, lng_min, lng_max = (float(p) for p in parts)
    except ValueError:
        raise ValueError(f"REGION_BOUNDS must be numeric, got {raw!r}") from None
    if lat_min >= lat_max or lng_min >= lng_max:
        raise ValueError(f"REGION_BOUNDS min values must be below max values: {raw!r}")
    if not (GLOBAL_BOUNDS.contains(lat_min, lng_min) and GLOBAL_BOUNDS.contains(lat_max, lng_max)):
        raise ValueError(f"REGION_BOUNDS must lie within global bounds: {raw!r}")
    return RegionBounds(lat_min, lat_max, lng_min, lng_max)


def _parse_currency_symbols(raw: str) -> Mapping[str, str]:
    table = dict(DEFAULT_CURRENCY_SYMBOLS)
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        code, sep, symbol = pair.partition("=")
        if not sep or not code.strip() or not symbol.strip():
            raise ValueError(f"CURRENCY_SYMBOLS entries must look like CODE=SYMBOL, got {pair!r}")
        table[code.strip().upper()] = symbol.strip()
    return MappingProxyType(table)


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from environment variables.

    Raises:
        ValueError: if any variable is set to an unusable value
    """
    env = os.environ if env is None else env

    policy_raw = env.get("COORD_BOUNDS_POLICY", "").strip().lower() or BoundsPolicy.REGIONAL.value
    try:
        policy = BoundsPolicy(policy_raw)
    except ValueError:
        raise ValueError(
            f"COORD_BOUNDS_POLICY must be 'global' or 'regional', got {policy_raw!r}"
        ) from None

    region_raw = env.get("REGION_BOUNDS", "").strip()
    region = _parse_region(region_raw) if region_raw else AFRICA_BOUNDS

    crop_raw = env.get("DEFAULT_CROP", "").strip().upper() or CropType.MAIZE.value
    try:
        crop = CropType(crop_raw)
    except ValueError:
        names = ", ".join(c.value for c in CropType)
        raise ValueError(f"DEFAULT_CROP must be one of {names}, got {crop_raw!r}") from None

    currency_raw = env.get("CURRENCY_SYMBOLS", "").strip()
    currency = _parse_currency_symbols(currency_raw) if currency_raw else DEFAULT_CURRENCY_SYMBOLS

    return Settings(
        max_reply_length=_env_int(env, "SMS_MAX_LENGTH", 150, minimum=20),
        bounds_policy=policy,
        region=region,
        default_crop=crop,
        currency_symbols=currency,
        rain_threshold_mm=_env_float(env, "RAIN_THRESHOLD_MM", 1.0),
        forecast_days=_env_int(env, "FORECAST_DAYS", 4, minimum=1),
        anchor_commands=env.get("ANCHOR_COMMANDS", "0").strip().lower() in ("1", "true", "yes"),
    )
