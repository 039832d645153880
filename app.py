"""
app.py — Flask entry point for the SMS farm advisory service.

Exposes:
    POST /sms          — Twilio webhook (receives SMS, returns TwiML)
    POST /at/sms       — Africa's Talking-style webhook (reply sent via gateway)
    POST /at/dlr       — delivery reports (logged and acknowledged)
    GET  /at/dlr/stats — placeholder stats
    GET  /health       — simple health check
    GET  /             — service info

Bridges:
    sms/webhook → normalizes provider payloads
    pipeline    → parse, look up, format
    sms/gateway → sends replies for the /at routes
"""

import logging
import os
from datetime import datetime, timezone

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from config import load_settings
from pipeline import handle_sms
from parser.models import CommandKind
from reply.formatter import format_help
from sms.gateway import SmsSendError, send_sms
from sms.webhook import (
    format_twiml,
    normalize_delivery_report,
    normalize_inbound,
)

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="[%(name)s] %(levelname)s %(message)s",
)
logger = logging.getLogger("app")

SERVICE_NAME = "Farm SMS Advisory"
VERSION = "2.0.0"

settings = load_settings()

app = Flask(__name__)


def _request_fields() -> dict:
    """Form fields or JSON body, whichever the provider sent."""
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        return body
    return request.form.to_dict()


def _twiml_response(sms_text: str):
    return format_twiml(sms_text), 200, {"Content-Type": "text/xml"}


@app.route("/sms", methods=["POST"])
def sms_webhook():
    """
    Twilio webhook endpoint.

    Flow:
      1. Read Body + From from the Twilio POST
      2. Run the pipeline (parse → lookup → format)
      3. Return the reply as TwiML
    """
    inbound = normalize_inbound(request.form)

    # Empty message → help text
    if inbound is None or not inbound.text.strip():
        return _twiml_response(format_help(settings))

    parsed, sms_text = handle_sms(inbound.text, settings)
    logger.info(f"SMS from {inbound.sender}: {parsed.kind.value} -> {len(sms_text)} chars")
    return _twiml_response(sms_text)


@app.route("/at/sms", methods=["POST"])
def at_sms_webhook():
    """Africa's Talking-style webhook: reply is sent through the SMS gateway."""
    fields = _request_fields()
    inbound = normalize_inbound(fields)

    if inbound is None:
        logger.error(f"Missing required SMS fields (from/phoneNumber or text): {sorted(fields)}")
        return jsonify({"error": "Missing required fields"}), 400

    logger.info(f"SMS from {inbound.sender} to {inbound.to}: {inbound.text!r}")
    parsed, sms_text = handle_sms(inbound.text, settings)

    try:
        send_sms(inbound.sender, sms_text, settings.max_reply_length)
    except SmsSendError as e:
        logger.error(f"Reply to {inbound.sender} not sent: {e}")
        return jsonify({
            "status": "send_failed",
            "command": parsed.kind.value,
            "reply": sms_text,
        }), 502

    if not parsed.is_valid or parsed.kind == CommandKind.HELP:
        status = "help_sent"
    else:
        status = "success"

    return jsonify({
        "status": status,
        "command": parsed.kind.value,
        "response_length": len(sms_text),
        "payload_format": inbound.payload_format,
    })


@app.route("/at/dlr", methods=["POST"])
def delivery_report():
    report = normalize_delivery_report(_request_fields())
    logger.info(
        f"DLR: message={report.message_id} phone={report.phone_number} "
        f"status={report.status} network={report.network_code} cost={report.cost} "
        f"at={report.date}"
    )
    return jsonify({
        "status": "received",
        "messageId": report.message_id,
        "deliveryStatus": report.status,
    })


@app.route("/at/dlr/stats", methods=["GET"])
def delivery_stats():
    return jsonify({
        "message": f"{SERVICE_NAME} - Delivery Stats",
        "note": "Delivery reports are logged, not stored",
    })


@app.route("/health", methods=["GET"])
def health():
    """Simple health check."""
    return jsonify({
        "status": "ok",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), 200


@app.route("/", methods=["GET"])
def index():
    return jsonify({
        "message": SERVICE_NAME,
        "description": "Weather, insurance and planting advice for farmers by SMS",
        "version": VERSION,
        "endpoints": {
            "health": "/health",
            "twilio": "/sms",
            "sms": "/at/sms",
            "dlr": "/at/dlr",
        },
        "commands": [
            "WEATHER lat,lng",
            "FORECAST lat,lng",
            "RAINHISTORY lat,lng",
            "QUOTE MAIZE lat,lng",
            "PLANTING lat,lng",
            "HELP",
        ],
    })


@app.errorhandler(404)
def not_found(_error):
    return jsonify({
        "error": "Endpoint not found",
        "available": ["/health", "/sms", "/at/sms", "/at/dlr"],
    }), 404


@app.errorhandler(500)
def server_error(error):
    logger.error(f"Unhandled error: {error}")
    debug = os.getenv("FLASK_DEBUG", "0") == "1"
    return jsonify({
        "error": "Service error",
        "message": str(error) if debug else "Try again later",
    }), 500


if __name__ == "__main__":
    port = int(os.getenv("PORT", 5000))
    debug = os.getenv("FLASK_DEBUG", "0") == "1"
    app.run(host="0.0.0.0", port=port, debug=debug)
