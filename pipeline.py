"""
Core pipeline — one entry point for the web layer and the CLI:

  handle_sms(raw_text, settings, lookup)
     → Parse the message, fetch data for it, format the reply.
     → Returns (ParsedCommand, sms_text)

Each message is handled on its own; nothing is remembered between messages.

Data sources:
  - Open-Meteo (current, forecast, rain history)
  - Agronomy backend (insurance quotes, planting windows)
"""

import logging
from collections.abc import Callable

from config import DEFAULT_SETTINGS, Settings
from data.provider import fetch_payload, reply_kind
from parser.command_parser import parse_sms
from parser.models import CommandKind, ParsedCommand
from reply.formatter import format_reply

logger = logging.getLogger(__name__)

Lookup = Callable[..., dict | None]


def handle_sms(
    raw_text: str | None,
    settings: Settings = DEFAULT_SETTINGS,
    lookup: Lookup | None = None,
) -> tuple[ParsedCommand, str]:
    """
    Run one SMS through parser → lookup → formatter.

    *lookup* is called as lookup(kind, lat, lng, crop=..., coverage=...) and
    returns a payload dict or None. Defaults to data.provider.fetch_payload.
    """
    lookup = lookup or fetch_payload
    parsed = parse_sms(raw_text, settings)

    if not parsed.is_valid:
        logger.info(f"Invalid SMS {parsed.normalized_text!r}: {parsed.error}")
        return parsed, format_reply(CommandKind.INVALID, parsed, settings)

    if parsed.kind == CommandKind.HELP:
        return parsed, format_reply(CommandKind.HELP, None, settings)

    kind = reply_kind(parsed)
    lat, lng = parsed.coordinates
    logger.info(
        f"{parsed.kind.value} at ({lat}, {lng})"
        + (f" crop={parsed.crop.value}" if parsed.crop else "")
        + (f" coverage={parsed.coverage_amount}" if parsed.coverage_amount else "")
        + (f" period={parsed.time_period.value}" if parsed.time_period else "")
    )

    try:
        payload = lookup(kind, lat, lng, crop=parsed.crop, coverage=parsed.coverage_amount)
    except Exception:
        logger.exception(f"Lookup for {kind.value} failed")
        payload = None

    sms_text = format_reply(
        kind,
        payload,
        settings,
        crop=parsed.crop,
        coverage=parsed.coverage_amount,
    )
    logger.info(f"Reply ({len(sms_text)} chars): {sms_text!r}")
    return parsed, sms_text
