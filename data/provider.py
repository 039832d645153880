"""
provider.py — Route a parsed command to the right data source.

fetch_payload() is the single lookup the pipeline calls. It never raises:
a failed or unconfigured source gives None, which the formatter turns into
an "unavailable" reply.
"""

import logging

from data.agronomy import fetch_planting_window, fetch_quote
from data.weather import fetch_current_weather, fetch_forecast, fetch_rain_history
from parser.models import CommandKind, CropType, ParsedCommand, TimePeriod

logger = logging.getLogger(__name__)


def reply_kind(parsed: ParsedCommand) -> CommandKind:
    """
    The kind of reply to render.

    WEATHER 7DAYS / WEATHER FORECAST are answered with the daily forecast.
    """
    if parsed.kind == CommandKind.WEATHER and parsed.time_period in (
        TimePeriod.SEVEN_DAYS,
        TimePeriod.FORECAST,
    ):
        return CommandKind.FORECAST
    return parsed.kind


def fetch_payload(
    kind: CommandKind,
    lat: float,
    lng: float,
    crop: CropType | None = None,
    coverage: int | None = None,
) -> dict | None:
    try:
        if kind == CommandKind.WEATHER:
            return fetch_current_weather(lat, lng)
        if kind == CommandKind.FORECAST:
            return fetch_forecast(lat, lng)
        if kind == CommandKind.RAINHISTORY:
            return fetch_rain_history(lat, lng)
        if kind == CommandKind.QUOTE:
            if crop is None:
                logger.warning("Quote lookup without a crop")
                return None
            return fetch_quote(lat, lng, crop.value, coverage)
        if kind == CommandKind.PLANTING:
            return fetch_planting_window(lat, lng, crop.value if crop else None)
    except Exception:
        logger.exception(f"Lookup for {kind} at ({lat}, {lng}) failed")
        return None

    logger.warning(f"No data source for command kind {kind}")
    return None
