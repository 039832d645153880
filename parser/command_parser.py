"""
command_parser.py — Rule-based SMS command parser.

Flow:
  1. Normalize the text (trim, collapse whitespace, upper-case)
  2. HELP / INFO / COMMANDS / ? short-circuit to a help reply
  3. Match the command keyword table in order; first row wins
  4. Extract and range-check the "lat,lng" pair
  5. Pull command-specific parameters (crop, coverage amount, time period)

Every input yields exactly one ParsedCommand. Failures come back as
kind=INVALID with an error string and error_kind, never as exceptions.

Examples:
    WEATHER -17.83,31.05
    WEATHER 7DAYS -17.83,31.05
    FORECAST -17.83,31.05
    RAINHISTORY -17.83,31.05      (also RAIN HISTORY, HISTORY)
    QUOTE TOBACCO $500 -18.4,30.8
    PLANTING SOYA -18.4,30.8      (also PLANT)
    HELP
"""

import logging
import re

from config import DEFAULT_SETTINGS, Settings
from parser.coordinates import extract_coordinates
from parser.models import (
    CommandKind,
    CropType,
    ParsedCommand,
    ParseErrorKind,
    TimePeriod,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Lookup tables. Order matters: the first matching row wins.
# ---------------------------------------------------------------------------

HELP_TOKENS = (r"\bHELP\b", r"\bINFO\b", r"\bCOMMANDS\b", r"\?")

COMMAND_KEYWORDS = (
    (r"\bWEATHER\b", CommandKind.WEATHER),
    (r"\bFORECAST\b", CommandKind.FORECAST),
    (r"\bRAIN ?HISTORY\b", CommandKind.RAINHISTORY),
    (r"\bHISTORY\b", CommandKind.RAINHISTORY),
    (r"\bQUOTE\b", CommandKind.QUOTE),
    (r"\bPLANTING\b", CommandKind.PLANTING),
    (r"\bPLANT\b", CommandKind.PLANTING),
)

PERIOD_KEYWORDS = (
    (re.compile(r"\b(?:7 ?DAYS|WEEKLY|WEEK)\b"), TimePeriod.SEVEN_DAYS),
    (re.compile(r"\b(?:FORECAST|FUTURE)\b"), TimePeriod.FORECAST),
    (re.compile(r"\b(?:TODAY|NOW)\b"), TimePeriod.CURRENT),
)

CROP_PATTERNS = tuple(
    (re.compile(rf"\b{crop.value}\b"), crop) for crop in CropType
)

# $500, USD500, USD 500, 500USD, 500 USD, or a bare 500
AMOUNT_PATTERN = re.compile(r"(?:\$ ?|\bUSD ?)?(?<![\d.])(\d+)(?![\d.])")

UNKNOWN_COMMAND_ERROR = "Unknown command. Use: WEATHER, FORECAST, RAINHISTORY, QUOTE, PLANTING or HELP"
EMPTY_MESSAGE_ERROR = "Empty message. Send HELP for the list of commands."


def _compile(fragments, anchored: bool) -> re.Pattern:
    prefix = "^" if anchored else ""
    return re.compile(prefix + "(?:" + "|".join(fragments) + ")")


# Compiled once per anchoring policy
_HELP_RE = {anchored: _compile(HELP_TOKENS, anchored) for anchored in (False, True)}
_COMMAND_RE = {
    anchored: tuple((_compile([frag], anchored), kind) for frag, kind in COMMAND_KEYWORDS)
    for anchored in (False, True)
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def normalize_text(raw: str | None) -> str:
    """Trim, collapse runs of whitespace to one space, upper-case."""
    if not raw:
        return ""
    return " ".join(raw.split()).upper()


def is_help_request(text: str, anchored: bool = False) -> bool:
    return bool(_HELP_RE[anchored].search(text))


def match_command(text: str, anchored: bool = False) -> CommandKind | None:
    for pattern, kind in _COMMAND_RE[anchored]:
        if pattern.search(text):
            return kind
    return None


def extract_crop(text: str) -> CropType | None:
    for pattern, crop in CROP_PATTERNS:
        if pattern.search(text):
            return crop
    return None


def extract_coverage_amount(text: str) -> int | None:
    """First positive amount token, or None."""
    for match in AMOUNT_PATTERN.finditer(text):
        amount = int(match.group(1))
        if amount > 0:
            return amount
    return None


def extract_time_period(text: str) -> TimePeriod | None:
    for pattern, period in PERIOD_KEYWORDS:
        if pattern.search(text):
            return period
    return None


def _blank_span(text: str, span: tuple[int, int] | None) -> str:
    """Replace a span with spaces so its digits aren't read as an amount."""
    if span is None:
        return text
    start, end = span
    return text[:start] + " " * (end - start) + text[end:]


# ---------------------------------------------------------------------------
# Public API — parse_sms()
# ---------------------------------------------------------------------------

def parse_sms(raw_text: str | None, settings: Settings = DEFAULT_SETTINGS) -> ParsedCommand:
    """
    Parse one inbound SMS body into a ParsedCommand.

    Keyword policy: with settings.anchor_commands off (default) the command
    word may appear anywhere in the message; with it on, the message must
    begin with the help token or command word.
    """
    try:
        return _parse(raw_text or "", settings)
    except Exception:
        logger.exception(f"Unexpected error parsing SMS {raw_text!r}")
        raw = str(raw_text or "")
        return ParsedCommand.invalid(
            raw, raw.upper(), ParseErrorKind.UNKNOWN_COMMAND, "Unable to parse SMS command"
        )


def _parse(raw: str, settings: Settings) -> ParsedCommand:
    text = normalize_text(raw)
    logger.debug(f"Parsing SMS: {text!r}")

    if not text:
        return ParsedCommand.invalid(raw, text, ParseErrorKind.EMPTY, EMPTY_MESSAGE_ERROR)

    anchored = settings.anchor_commands

    if is_help_request(text, anchored):
        return ParsedCommand(kind=CommandKind.HELP, raw_text=raw, normalized_text=text)

    kind = match_command(text, anchored)
    if kind is None:
        return ParsedCommand.invalid(raw, text, ParseErrorKind.UNKNOWN_COMMAND, UNKNOWN_COMMAND_ERROR)

    coords = extract_coordinates(text, settings)
    if not coords.is_valid:
        return ParsedCommand.invalid(raw, text, coords.error_kind, coords.error, requested_kind=kind)

    crop = None
    coverage = None
    period = None

    if kind == CommandKind.QUOTE:
        crop = extract_crop(text) or settings.default_crop
        coverage = extract_coverage_amount(_blank_span(text, coords.span))
    elif kind == CommandKind.PLANTING:
        crop = extract_crop(text)
    elif kind == CommandKind.WEATHER:
        period = extract_time_period(text)

    return ParsedCommand(
        kind=kind,
        raw_text=raw,
        normalized_text=text,
        coordinates=coords.coordinates,
        crop=crop,
        coverage_amount=coverage,
        time_period=period,
    )
