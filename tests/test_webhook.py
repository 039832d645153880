"""
Tests for inbound payload normalization and TwiML output.
"""

from sms.webhook import (
    clean_phone_number,
    format_twiml,
    normalize_delivery_report,
    normalize_inbound,
)


def test_production_payload():
    msg = normalize_inbound({
        "from": "+263 77 123 4567", "text": "WEATHER -17.83,31.05",
        "to": "12345", "id": "ATXid_1", "date": "2026-03-10 10:00:00",
    })
    assert msg.sender == "263771234567"
    assert msg.text == "WEATHER -17.83,31.05"
    assert msg.to == "12345"
    assert msg.message_id == "ATXid_1"
    assert msg.date == "2026-03-10 10:00:00"
    assert msg.payload_format == "production"


def test_sandbox_payload():
    msg = normalize_inbound({"phoneNumber": "263771234567", "text": "HELP", "shortCode": "999"})
    assert msg.sender == "263771234567"
    assert msg.to == "999"
    assert msg.message_id == "sandbox-msg"
    assert msg.payload_format == "sandbox"
    assert msg.date   # filled with the current time


def test_twilio_payload():
    msg = normalize_inbound({"From": "+15551234567", "Body": "forecast -1,36", "MessageSid": "SM9"})
    assert msg.sender == "15551234567"
    assert msg.text == "forecast -1,36"
    assert msg.message_id == "SM9"


def test_missing_fields():
    assert normalize_inbound({}) is None
    assert normalize_inbound({"from": "+263771234567"}) is None
    assert normalize_inbound({"text": "HELP"}) is None
    assert normalize_inbound({"from": "+263771234567", "text": ""}) is None


def test_clean_phone_number():
    assert clean_phone_number("+263 77 123 4567") == "263771234567"


def test_delivery_report():
    report = normalize_delivery_report({
        "id": "ATXid_1", "phoneNumber": "+263771234567", "status": "Success",
        "networkCode": "64804", "cost": "KES 0.80",
    })
    assert report.message_id == "ATXid_1"
    assert report.status == "Success"
    assert report.network_code == "64804"
    assert report.cost == "KES 0.80"


def test_twilio_delivery_report():
    report = normalize_delivery_report({"MessageSid": "SM1", "MessageStatus": "delivered", "To": "+1555"})
    assert report.message_id == "SM1"
    assert report.status == "delivered"
    assert report.phone_number == "+1555"


def test_format_twiml():
    xml = format_twiml("Weather: 24°C, dry")
    assert "<Response>" in xml
    assert "<Message>Weather: 24°C, dry</Message>" in xml
