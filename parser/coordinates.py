"""
coordinates.py — Find and validate a "lat,lng" pair in SMS text.

Accepts "-17.83,31.05", "-17.83, 31.05", "(-17.83 , 31.05)", "+5,20".
The first well-formed pair in the text wins. A pair whose first number is a
money amount ($500, USD 500, 500USD) is skipped, so "QUOTE $500, -18.4,30.8"
finds -18.4,30.8. Values are range-checked, never clamped.
"""

import re
from dataclasses import dataclass

from config import GLOBAL_BOUNDS, BoundsPolicy, Settings
from parser.models import Coordinates, ParseErrorKind

COORD_PATTERN = re.compile(
    r"(?<![\d.])([+-]?\d+(?:\.\d+)?)\s*,\s*([+-]?\d+(?:\.\d+)?)(?!\d)"
)

MONEY_BEFORE = re.compile(r"(?:\$|\bUSD)\s*$", re.IGNORECASE)
MONEY_AFTER = re.compile(r"\s*USD\b", re.IGNORECASE)


@dataclass(frozen=True)
class CoordinateMatch:
    coordinates: Coordinates | None
    span: tuple[int, int] | None = None       # where the pair sits in the text
    error_kind: ParseErrorKind | None = None
    error: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.coordinates is not None


def check_bounds(lat: float, lng: float, settings: Settings) -> tuple[ParseErrorKind, str] | None:
    """Return (error_kind, message) if the pair falls outside the active bounds, else None."""
    if not GLOBAL_BOUNDS.contains(lat, lng):
        return (
            ParseErrorKind.OUT_OF_RANGE,
            "Coordinates out of range. Latitude must be -90 to 90, longitude -180 to 180.",
        )
    if settings.bounds_policy == BoundsPolicy.REGIONAL and not settings.region.contains(lat, lng):
        return (
            ParseErrorKind.OUT_OF_REGION,
            "Coordinates outside the service region.",
        )
    return None


def _is_money(text: str, match: re.Match) -> bool:
    return bool(
        MONEY_BEFORE.search(text, 0, match.start(1))
        or MONEY_AFTER.match(text, match.end(1))
    )


def _find_pair(text: str) -> re.Match | None:
    pos = 0
    while True:
        match = COORD_PATTERN.search(text, pos)
        if match is None or not _is_money(text, match):
            return match
        # Resume after the amount; its second number may start the real pair
        pos = match.end(1)


def extract_coordinates(text: str, settings: Settings) -> CoordinateMatch:
    match = _find_pair(text)
    if not match:
        return CoordinateMatch(
            coordinates=None,
            error_kind=ParseErrorKind.MISSING_COORDINATES,
            error="Invalid or missing coordinates. Format: COMMAND lat,lng (e.g. WEATHER -17.83,31.05)",
        )

    lat = float(match.group(1))
    lng = float(match.group(2))

    problem = check_bounds(lat, lng, settings)
    if problem:
        error_kind, error = problem
        return CoordinateMatch(coordinates=None, span=match.span(), error_kind=error_kind, error=error)

    return CoordinateMatch(coordinates=Coordinates(lat, lng), span=match.span())
