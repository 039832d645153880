"""
models.py — Types shared by the parser, the formatter and the pipeline.

A ParsedCommand is built once per inbound SMS and never mutated.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple


class CommandKind(str, Enum):
    WEATHER = "WEATHER"
    FORECAST = "FORECAST"
    RAINHISTORY = "RAINHISTORY"
    QUOTE = "QUOTE"
    PLANTING = "PLANTING"
    HELP = "HELP"
    INVALID = "INVALID"


class CropType(str, Enum):
    # Scan order when looking for a crop name in the message
    MAIZE = "MAIZE"
    TOBACCO = "TOBACCO"
    SOYA = "SOYA"
    COTTON = "COTTON"
    WHEAT = "WHEAT"
    BARLEY = "BARLEY"


class TimePeriod(str, Enum):
    CURRENT = "current"
    SEVEN_DAYS = "7days"
    FORECAST = "forecast"


class ParseErrorKind(str, Enum):
    EMPTY = "empty"
    UNKNOWN_COMMAND = "unknown_command"
    MISSING_COORDINATES = "missing_coordinates"
    OUT_OF_RANGE = "out_of_range"
    OUT_OF_REGION = "out_of_region"


# Errors where the user named a command but got the location wrong
COORDINATE_ERRORS = frozenset({
    ParseErrorKind.MISSING_COORDINATES,
    ParseErrorKind.OUT_OF_RANGE,
    ParseErrorKind.OUT_OF_REGION,
})


class Coordinates(NamedTuple):
    lat: float
    lng: float


@dataclass(frozen=True)
class ParsedCommand:
    kind: CommandKind
    raw_text: str
    normalized_text: str
    coordinates: Coordinates | None = None
    crop: CropType | None = None
    coverage_amount: int | None = None
    time_period: TimePeriod | None = None
    error: str | None = None
    error_kind: ParseErrorKind | None = None
    requested_kind: CommandKind | None = None   # keyword seen before a coordinate failure

    def __post_init__(self):
        if (self.kind == CommandKind.INVALID) != (self.error is not None):
            raise ValueError("error must be set if and only if kind is INVALID")
        if (self.error is None) != (self.error_kind is None):
            raise ValueError("error and error_kind must be set together")

    @property
    def is_valid(self) -> bool:
        return self.kind != CommandKind.INVALID

    @property
    def needs_coordinate_hint(self) -> bool:
        """True when the reply should correct the location, not list every command."""
        return self.error_kind in COORDINATE_ERRORS

    @classmethod
    def invalid(
        cls,
        raw_text: str,
        normalized_text: str,
        error_kind: ParseErrorKind,
        error: str,
        requested_kind: CommandKind | None = None,
    ) -> "ParsedCommand":
        return cls(
            kind=CommandKind.INVALID,
            raw_text=raw_text,
            normalized_text=normalized_text,
            error=error,
            error_kind=error_kind,
            requested_kind=requested_kind,
        )
