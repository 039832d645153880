"""
webhook.py — Normalize inbound SMS and delivery-report payloads.

Providers name the same fields differently:
    sender   from | phoneNumber | From
    text     text | Body
    to       to | shortCode | To
    id       id | messageId | MessageSid
The web layer calls normalize_inbound() before handing the text to the
parser, so nothing downstream cares which provider sent it.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone

from twilio.twiml.messaging_response import MessagingResponse

SENDER_FIELDS = ("from", "phoneNumber", "From")
TEXT_FIELDS = ("text", "Body")
TO_FIELDS = ("to", "shortCode", "To")
ID_FIELDS = ("id", "messageId", "MessageSid", "SmsSid")


@dataclass(frozen=True)
class InboundMessage:
    sender: str
    text: str
    to: str | None
    date: str
    message_id: str
    payload_format: str   # "production" (sender has +) | "sandbox"


@dataclass(frozen=True)
class DeliveryReport:
    message_id: str | None
    phone_number: str | None
    status: str | None
    network_code: str | None
    cost: str | None
    date: str


def _first(fields: Mapping, names) -> str | None:
    for name in names:
        value = fields.get(name)
        if value not in (None, ""):
            return str(value)
    return None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def clean_phone_number(number: str) -> str:
    """Strip spaces and the leading '+' (the gateway adds it back)."""
    return "".join(number.split()).replace("+", "")


def normalize_inbound(fields: Mapping) -> InboundMessage | None:
    """Return an InboundMessage, or None if sender or text is missing."""
    sender = _first(fields, SENDER_FIELDS)
    text = _first(fields, TEXT_FIELDS)
    if not sender or text is None:
        return None

    return InboundMessage(
        sender=clean_phone_number(sender),
        text=text,
        to=_first(fields, TO_FIELDS),
        date=_first(fields, ("date",)) or _now_iso(),
        message_id=_first(fields, ID_FIELDS) or "sandbox-msg",
        payload_format="production" if "+" in sender else "sandbox",
    )


def normalize_delivery_report(fields: Mapping) -> DeliveryReport:
    return DeliveryReport(
        message_id=_first(fields, ("id", "MessageSid", "SmsSid")),
        phone_number=_first(fields, ("phoneNumber", "To")),
        status=_first(fields, ("status", "MessageStatus", "SmsStatus")),
        network_code=_first(fields, ("networkCode",)),
        cost=_first(fields, ("cost", "Price")),
        date=_first(fields, ("date",)) or _now_iso(),
    )


def format_twiml(sms_text: str) -> str:
    """Wrap SMS text in TwiML for a Twilio webhook response."""
    resp = MessagingResponse()
    resp.message(sms_text)
    return str(resp)
