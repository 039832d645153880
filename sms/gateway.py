"""
gateway.py — Outbound SMS through Twilio.

Needs TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER.
"""

import logging
import os

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from reply.truncate import truncate_message

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 150


class SmsSendError(Exception):
    """Raised when a reply could not be handed to the SMS provider."""


def is_configured() -> bool:
    return all(os.getenv(name) for name in (
        "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_FROM_NUMBER",
    ))


def format_phone_number(number: str) -> str:
    number = "".join(number.split())
    return number if number.startswith("+") else f"+{number}"


def _client() -> Client:
    return Client(os.getenv("TWILIO_ACCOUNT_SID"), os.getenv("TWILIO_AUTH_TOKEN"))


def send_sms(phone_number: str, message: str, max_length: int = DEFAULT_MAX_LENGTH) -> dict:
    """
    Send *message* to *phone_number*.

    Returns {"success", "message_id", "status", "to"}.

    Raises:
        SmsSendError: missing input, missing configuration, or provider error
    """
    if not phone_number or not message:
        raise SmsSendError("Phone number and message are required")
    if not is_configured():
        raise SmsSendError("Twilio is not configured")

    if len(message) > max_length:
        logger.warning(f"Message truncated from {len(message)} to {max_length} chars")
        message = truncate_message(message, max_length)

    to = format_phone_number(phone_number)
    logger.info(f"Sending SMS to {to}: {message!r}")

    try:
        sent = _client().messages.create(
            to=to,
            from_=os.getenv("TWILIO_FROM_NUMBER"),
            body=message,
        )
    except TwilioRestException as e:
        logger.error(f"SMS to {to} failed: {e}")
        raise SmsSendError(f"Failed to send SMS: {e.msg}") from e

    logger.info(f"SMS sent to {to} (sid={sent.sid}, status={sent.status})")
    return {
        "success": True,
        "message_id": sent.sid,
        "status": sent.status,
        "to": to,
    }
