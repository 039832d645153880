"""
Flask route tests. Data sources and the outbound gateway are stubbed.
"""

import pytest

import app as app_module
import pipeline
from sms.gateway import SmsSendError


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(
        pipeline, "fetch_payload",
        lambda kind, lat, lng, crop=None, coverage=None: {"temperature": 20, "precipitation": 0},
    )
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()


@pytest.fixture
def sent(monkeypatch):
    outbox = []

    def fake_send(phone_number, message, max_length=150):
        outbox.append((phone_number, message))
        return {"success": True, "message_id": "SM1", "status": "queued", "to": f"+{phone_number}"}

    monkeypatch.setattr(app_module, "send_sms", fake_send)
    return outbox


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_index_lists_commands(client):
    body = client.get("/").get_json()
    assert "HELP" in body["commands"]


def test_unknown_route_is_json_404(client):
    resp = client.get("/nope")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Endpoint not found"


def test_twilio_webhook_returns_twiml(client):
    resp = client.post("/sms", data={"From": "+263771234567", "Body": "WEATHER -17.83,31.05"})
    assert resp.status_code == 200
    assert resp.headers["Content-Type"].startswith("text/xml")
    assert "<Message>Weather: 20°C, dry</Message>" in resp.get_data(as_text=True)


def test_twilio_empty_body_gets_help(client):
    resp = client.post("/sms", data={"From": "+263771234567", "Body": "   "})
    assert "SMS commands:" in resp.get_data(as_text=True)


def test_at_webhook_sends_reply(client, sent):
    resp = client.post("/at/sms", data={"from": "+263771234567", "text": "weather -17.83,31.05"})
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["status"] == "success"
    assert body["command"] == "WEATHER"
    assert body["payload_format"] == "production"
    assert sent == [("263771234567", "Weather: 20°C, dry")]
    assert body["response_length"] == len("Weather: 20°C, dry")


def test_at_webhook_accepts_json(client, sent):
    resp = client.post("/at/sms", json={"phoneNumber": "263771234567", "text": "HELP"})
    body = resp.get_json()
    assert body["status"] == "help_sent"
    assert body["command"] == "HELP"
    assert body["payload_format"] == "sandbox"
    assert sent[0][1].startswith("SMS commands:")


def test_at_webhook_invalid_command_is_help_sent(client, sent):
    body = client.post("/at/sms", data={"from": "+263771234567", "text": "WEATHER"}).get_json()
    assert body["status"] == "help_sent"
    assert body["command"] == "INVALID"
    assert sent[0][1].startswith("Location missing.")


def test_at_webhook_missing_fields(client, sent):
    resp = client.post("/at/sms", data={"text": "HELP"})
    assert resp.status_code == 400
    assert sent == []


def test_at_webhook_send_failure(client, monkeypatch):
    def failing_send(phone_number, message, max_length=150):
        raise SmsSendError("Twilio is not configured")

    monkeypatch.setattr(app_module, "send_sms", failing_send)
    resp = client.post("/at/sms", data={"from": "+263771234567", "text": "HELP"})
    assert resp.status_code == 502
    assert resp.get_json()["status"] == "send_failed"


def test_delivery_report_ack(client):
    resp = client.post("/at/dlr", data={"id": "ATXid_1", "status": "Success"})
    assert resp.get_json() == {"status": "received", "messageId": "ATXid_1", "deliveryStatus": "Success"}
