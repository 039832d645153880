"""
SMS reply formatter.

Turns a (command kind, provider payload) pair into a reply that fits the
SMS length limit (150 characters by default):
  - WEATHER      current conditions
  - FORECAST     up to 4 daily entries
  - RAINHISTORY  total over the lookback window + notable wet days
  - QUOTE        crop insurance premium / cover / risk / validity
  - PLANTING     optimal planting window + outlook
  - HELP         usage text
  - INVALID      correction hint or usage text

Replies are built field by field in priority order, primary metric first,
with secondary fields appended only while they fit. truncate_message() runs
last as a safety net.

None of the format_* functions raise: a missing or malformed payload turns
into the fixed "unavailable" reply for that kind.
"""

import functools
import logging
import math
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from config import DEFAULT_SETTINGS, Settings
from parser.models import CommandKind, ParsedCommand, ParseErrorKind
from reply.truncate import ELLIPSIS, truncate_message

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

UNAVAILABLE = {
    CommandKind.WEATHER: "Weather data unavailable. Try again later.",
    CommandKind.FORECAST: "Forecast unavailable. Try again later.",
    CommandKind.RAINHISTORY: "Rainfall history unavailable. Try again later.",
    CommandKind.QUOTE: "Insurance quote unavailable. Try again later.",
    CommandKind.PLANTING: "Planting window data unavailable. Try again later.",
}

ERROR_MESSAGE = "Service temporarily unavailable. Please try again in a few minutes."

HELP_MESSAGE = (
    "SMS commands:\n"
    "WEATHER -17.8,31.0\n"
    "FORECAST -17.8,31.0\n"
    "RAINHISTORY -17.8,31.0\n"
    "QUOTE MAIZE -17.8,31.0\n"
    "PLANTING -17.8,31.0\n"
    "Use your own lat,lng"
)

EXAMPLE_COORDS = "-17.83,31.05"
MOSTLY_DRY = " Mostly dry."
RECENT_WET_DAYS = 3
MAX_RECOMMENDATION_LENGTH = 50

QUOTE_RISK_TAGS = {
    "low": "Low Risk",
    "medium": "Med Risk",
    "med": "Med Risk",
    "moderate": "Med Risk",
    "high": "High Risk",
}

PLANTING_TAGS = {
    "optimal": "Optimal",
    "good": "Good",
    "fair": "Fair",
    "poor": "Poor",
}

# Checked in order: "below normal" must not read as "normal"
OUTLOOK_PHRASES = (
    ("above", "Good rains expected"),
    ("below", "Low rains expected"),
    ("normal", "Normal rains expected"),
)


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------

def unavailable_message(kind) -> str:
    if isinstance(kind, str):
        return UNAVAILABLE.get(kind, ERROR_MESSAGE)
    return ERROR_MESSAGE


def _contained(kind: CommandKind):
    """Catch any error in a renderer and fall back to the kind's unavailable reply."""
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(payload, settings: Settings = DEFAULT_SETTINGS, **context) -> str:
            try:
                message = fn(payload, settings, **context)
            except Exception:
                logger.exception(f"Could not format {kind.value} reply from payload {payload!r}")
                message = None
            if not message:
                message = unavailable_message(kind)
            return truncate_message(message, settings.max_reply_length)
        return wrapper
    return decorator


def _append_if_fits(message: str, part: str, limit: int) -> str:
    if len(message) + len(part) <= limit:
        return message + part
    return message


def _number(payload: Mapping, *keys, default=None):
    """First non-empty value among *keys*, as float."""
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return float(value)
    return default


def _whole(value: float) -> int:
    """Round half away from zero to a whole number."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _one_decimal(value: float) -> str:
    return str(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _is_dry(mm: float) -> bool:
    return Decimal(_one_decimal(mm)) <= 0


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def _parse_datetime(value) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _short_date(day: date) -> str:
    return f"{MONTH_NAMES[day.month - 1]} {day.day}"


def format_money(amount, currency: str, settings: Settings = DEFAULT_SETTINGS) -> str:
    """$500, Z$12.50, TSh3000, or KES40 when the code has no symbol."""
    value = float(amount)
    text = str(int(value)) if value.is_integer() else f"{value:.2f}"
    code = (currency or "USD").upper()
    symbol = settings.currency_symbols.get(code)
    return f"{symbol}{text}" if symbol else f"{code}{text}"


# ---------------------------------------------------------------------------
# 1) Weather — current conditions
# ---------------------------------------------------------------------------

@_contained(CommandKind.WEATHER)
def format_weather(payload: Mapping | None, settings: Settings = DEFAULT_SETTINGS) -> str | None:
    """Weather: 24°C, 2.5mm rain, 65% humidity, wind 12km/h"""
    if not payload:
        return None
    limit = settings.max_reply_length

    temp = _whole(_number(payload, "temperature", default=0.0))
    rain = _number(payload, "precipitation", "rainfall", default=0.0)
    rain_text = "dry" if _is_dry(rain) else f"{_one_decimal(rain)}mm rain"
    message = f"Weather: {temp}°C, {rain_text}"

    humidity = _number(payload, "humidity")
    if humidity is not None:
        message = _append_if_fits(message, f", {_whole(humidity)}% humidity", limit)

    wind = _number(payload, "wind_speed")
    if wind is not None:
        message = _append_if_fits(message, f", wind {_whole(wind)}km/h", limit)

    return message


# ---------------------------------------------------------------------------
# 2) Forecast — daily entries
# ---------------------------------------------------------------------------

def _day_label(index: int, dates, today: date) -> str:
    if index == 0:
        return "Today"
    if index == 1:
        return "Tomorrow"
    # Entries without a date are assumed consecutive from today
    if index < len(dates) and dates[index]:
        day = _parse_date(dates[index])
    else:
        day = today + timedelta(days=index)
    return DAY_NAMES[day.weekday()]


@_contained(CommandKind.FORECAST)
def format_forecast(
    payload: Mapping | None,
    settings: Settings = DEFAULT_SETTINGS,
    today: date | None = None,
) -> str | None:
    """Forecast: Today 2.5mm/28°C, Tomorrow dry/27°C, Wed 4.0mm/25°C, Thu dry/26°C..."""
    if not payload:
        return None
    limit = settings.max_reply_length

    dates = payload.get("dates") or []
    max_temps = payload.get("max_temps") or []
    rain = payload.get("precipitation") or []
    available = min(len(max_temps), len(rain))
    if available == 0:
        return None
    today = today or date.today()

    head = "Forecast: "
    entries = []
    for i in range(min(available, settings.forecast_days)):
        mm = float(rain[i] or 0)
        rain_text = "dry" if _is_dry(mm) else f"{_one_decimal(mm)}mm"
        entry = f"{_day_label(i, dates, today)} {rain_text}/{_whole(float(max_temps[i]))}°C"

        candidate = head + ", ".join(entries + [entry])
        reserve = len(ELLIPSIS) if i + 1 < available else 0
        if entries and len(candidate) + reserve > limit:
            break
        entries.append(entry)

    message = head + ", ".join(entries)
    if len(entries) < available:
        message += ELLIPSIS
    return message


# ---------------------------------------------------------------------------
# 3) Rain history — total + most recent wet days
# ---------------------------------------------------------------------------

@_contained(CommandKind.RAINHISTORY)
def format_rain_history(payload: Mapping | None, settings: Settings = DEFAULT_SETTINGS) -> str | None:
    """Rain past 7d: 12.5mm. Recent: Mar 5 5.2mm, Mar 3 3.1mm"""
    if not payload:
        return None
    limit = settings.max_reply_length

    daily = payload.get("precipitation")
    total = _number(payload, "total")
    if daily is None and total is None:
        return None

    values = [float(v or 0) for v in (daily or [])]
    if total is None:
        total = sum(values)
    days = int(payload.get("days") or len(values) or 7)

    message = f"Rain past {days}d: {_one_decimal(total)}mm."
    if not values:
        return message

    wet = [i for i, mm in enumerate(values) if mm > settings.rain_threshold_mm]
    if not wet:
        return message + MOSTLY_DRY

    dates = payload.get("dates") or []
    if len(dates) < len(values):
        logger.warning(f"Rain history has {len(dates)} dates for {len(values)} daily values; sending total only")
        return message

    recent = sorted(((_parse_date(dates[i]), values[i]) for i in wet), reverse=True)
    parts = []
    for day, mm in recent[:RECENT_WET_DAYS]:
        part = f"{_short_date(day)} {_one_decimal(mm)}mm"
        candidate = message + " Recent: " + ", ".join(parts + [part])
        if len(candidate) > limit:
            break
        parts.append(part)

    if parts:
        message += " Recent: " + ", ".join(parts)
    return message


# ---------------------------------------------------------------------------
# 4) Insurance quote
# ---------------------------------------------------------------------------

@_contained(CommandKind.QUOTE)
def format_quote(
    payload: Mapping | None,
    settings: Settings = DEFAULT_SETTINGS,
    crop=None,
    coverage: int | None = None,
    now: datetime | None = None,
) -> str | None:
    """MAIZE quote: $12 for $500 cover (Med Risk) Valid 5d"""
    if not payload or payload.get("premium") in (None, ""):
        return None
    limit = settings.max_reply_length

    crop_name = getattr(crop, "value", crop) or payload.get("crop_type") or payload.get("crop") or "Crop"
    currency = payload.get("currency") or "USD"

    message = f"{str(crop_name).upper()} quote: {format_money(payload['premium'], currency, settings)}"
    cover = payload.get("coverage") or payload.get("coverage_amount") or coverage
    if cover:
        message += f" for {format_money(cover, currency, settings)} cover"
    else:
        message += " premium"

    risk = QUOTE_RISK_TAGS.get(str(payload.get("risk_level") or "").strip().lower())
    if risk:
        message = _append_if_fits(message, f" ({risk})", limit)

    valid_until = payload.get("valid_until")
    if valid_until:
        expires = _parse_datetime(valid_until)
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        days = math.ceil((expires - now).total_seconds() / 86400)
        if days > 0:
            message = _append_if_fits(message, f" Valid {days}d", limit)

    return message


# ---------------------------------------------------------------------------
# 5) Planting window
# ---------------------------------------------------------------------------

def format_window(start: date, end: date) -> str:
    """Nov 15-30, or Nov 20-Dec 10 across months."""
    if (start.year, start.month) == (end.year, end.month):
        return f"{MONTH_NAMES[start.month - 1]} {start.day}-{end.day}"
    return f"{_short_date(start)}-{_short_date(end)}"


def outlook_phrase(rainfall_outlook: str | None) -> str | None:
    outlook = (rainfall_outlook or "").lower()
    for needle, phrase in OUTLOOK_PHRASES:
        if needle in outlook:
            return phrase
    return None


@_contained(CommandKind.PLANTING)
def format_planting(
    payload: Mapping | None,
    settings: Settings = DEFAULT_SETTINGS,
    crop=None,
) -> str | None:
    """Planting MAIZE: Nov 15-30 (Good). Good rains expected"""
    if not payload:
        return None
    limit = settings.max_reply_length

    start_raw = payload.get("optimal_start")
    end_raw = payload.get("optimal_end")
    if not start_raw or not end_raw:
        return None
    start, end = _parse_date(start_raw), _parse_date(end_raw)
    if end < start:
        raise ValueError(f"planting window ends before it starts: {start} > {end}")

    crop_name = getattr(crop, "value", crop) or payload.get("crop")
    head = f"Planting {str(crop_name).upper()}: " if crop_name else "Planting: "
    message = head + format_window(start, end)

    tag = PLANTING_TAGS.get(str(payload.get("risk_level") or "").strip().lower())
    if tag:
        message = _append_if_fits(message, f" ({tag})", limit)

    recommendation = (payload.get("recommendation") or "").strip()
    extended = message
    if recommendation and len(recommendation) < MAX_RECOMMENDATION_LENGTH:
        extended = _append_if_fits(message, f". {recommendation}", limit)
    if extended == message:
        phrase = outlook_phrase(payload.get("rainfall_outlook"))
        if phrase:
            extended = _append_if_fits(message, f". {phrase}", limit)
    return extended


# ---------------------------------------------------------------------------
# 6) Help / errors
# ---------------------------------------------------------------------------

def format_help(settings: Settings = DEFAULT_SETTINGS) -> str:
    return truncate_message(HELP_MESSAGE, settings.max_reply_length)


def format_error_message(settings: Settings = DEFAULT_SETTINGS) -> str:
    return truncate_message(ERROR_MESSAGE, settings.max_reply_length)


def format_parse_error(parsed: ParsedCommand, settings: Settings = DEFAULT_SETTINGS) -> str:
    """
    Reply to an INVALID message.

    A command with a bad or missing location gets a one-line correction
    hint for that command; anything else gets the full usage text.
    """
    if not parsed.needs_coordinate_hint:
        return format_help(settings)

    keyword = (parsed.requested_kind or CommandKind.WEATHER).value
    if parsed.requested_kind == CommandKind.QUOTE:
        keyword = f"QUOTE {settings.default_crop.value}"
    example = f"{keyword} {EXAMPLE_COORDS}"

    if parsed.error_kind == ParseErrorKind.OUT_OF_REGION:
        message = f"Location outside our service area. Send {keyword} lat,lng e.g. {example}"
    elif parsed.error_kind == ParseErrorKind.OUT_OF_RANGE:
        message = f"Coordinates out of range. Send {keyword} lat,lng e.g. {example}"
    else:
        message = f"Location missing. Send {keyword} lat,lng e.g. {example}"
    return truncate_message(message, settings.max_reply_length)


# ---------------------------------------------------------------------------
# Public API — format_reply()
# ---------------------------------------------------------------------------

def format_reply(
    kind,
    payload=None,
    settings: Settings = DEFAULT_SETTINGS,
    *,
    crop=None,
    coverage: int | None = None,
    now: datetime | None = None,
) -> str:
    """
    Render the reply for *kind*.

    For INVALID, *payload* is the ParsedCommand; for HELP it is ignored;
    otherwise it is the provider payload (a mapping, possibly partial or None).
    """
    try:
        kind = CommandKind(kind)
    except (ValueError, TypeError):
        logger.warning(f"No reply format for command kind {kind!r}")
        return format_error_message(settings)

    if kind == CommandKind.HELP:
        return format_help(settings)

    if kind == CommandKind.INVALID:
        if isinstance(payload, ParsedCommand):
            return format_parse_error(payload, settings)
        return format_help(settings)

    if kind == CommandKind.WEATHER:
        return format_weather(payload, settings)
    if kind == CommandKind.FORECAST:
        return format_forecast(payload, settings)
    if kind == CommandKind.RAINHISTORY:
        return format_rain_history(payload, settings)
    if kind == CommandKind.QUOTE:
        return format_quote(payload, settings, crop=crop, coverage=coverage, now=now)
    return format_planting(payload, settings, crop=crop)
