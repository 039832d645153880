"""
Data-source and gateway tests with the network stubbed out.
"""

from datetime import date

import pytest
import requests

from data import agronomy, provider, weather
from parser.models import CommandKind, CropType
from sms import gateway


class FakeResponse:
    def __init__(self, body, status_code=200):
        self.body = body
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


def stub_get(monkeypatch, module, body, status_code=200, calls=None):
    def fake_get(url, params=None, headers=None, timeout=None):
        if calls is not None:
            calls.append((url, params))
        return FakeResponse(body, status_code)
    monkeypatch.setattr(module.requests, "get", fake_get)


# ---------------------------------------------------------------------------
# Open-Meteo
# ---------------------------------------------------------------------------

def test_current_weather(monkeypatch):
    calls = []
    stub_get(monkeypatch, weather, {"current": {
        "temperature_2m": 23.4, "precipitation": None, "wind_speed_10m": 8.1,
        "relative_humidity_2m": 55, "time": "2026-03-10T12:00",
    }}, calls=calls)

    data = weather.fetch_current_weather(-17.83, 31.05)
    assert data == {
        "temperature": 23.4, "precipitation": 0.0, "wind_speed": 8.1,
        "humidity": 55, "timestamp": "2026-03-10T12:00",
    }
    url, params = calls[0]
    assert url.endswith("/v1/forecast")
    assert params["latitude"] == -17.83
    assert params["longitude"] == 31.05


def test_forecast(monkeypatch):
    stub_get(monkeypatch, weather, {"daily": {
        "time": ["2026-03-10", "2026-03-11"],
        "temperature_2m_max": [28.0, 27.5],
        "temperature_2m_min": [15.0, 14.2],
        "precipitation_sum": [2.5, None],
    }})
    data = weather.fetch_forecast(-17.83, 31.05)
    assert data["dates"] == ["2026-03-10", "2026-03-11"]
    assert data["max_temps"] == [28.0, 27.5]
    assert data["precipitation"] == [2.5, 0.0]
    assert data["rain_probability"] == []


def test_rain_history_drops_today_and_later(monkeypatch):
    stub_get(monkeypatch, weather, {"daily": {
        "time": [f"2026-03-{d:02d}" for d in range(3, 12)],
        "precipitation_sum": [1.0, 0.0, 2.0, None, 0.0, 0.0, 3.0, 9.0, 9.0],
    }})
    data = weather.fetch_rain_history(-17.83, 31.05, today=date(2026, 3, 10))
    assert data["dates"] == [f"2026-03-{d:02d}" for d in range(3, 10)]
    assert data["precipitation"] == [1.0, 0.0, 2.0, 0.0, 0.0, 0.0, 3.0]
    assert data["total"] == 6.0
    assert data["days"] == 7


@pytest.mark.parametrize("fetch", [
    weather.fetch_current_weather, weather.fetch_forecast, weather.fetch_rain_history,
])
def test_weather_http_error_gives_none(monkeypatch, fetch):
    stub_get(monkeypatch, weather, {}, status_code=503)
    assert fetch(-17.83, 31.05) is None


def test_weather_unexpected_json_gives_none(monkeypatch):
    stub_get(monkeypatch, weather, {"something": "else"})
    assert weather.fetch_current_weather(-17.83, 31.05) is None
    assert weather.fetch_forecast(-17.83, 31.05) is None


def test_weather_timeout_gives_none(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.Timeout("slow")
    monkeypatch.setattr(weather.requests, "get", boom)
    assert weather.fetch_current_weather(-17.83, 31.05) is None


# ---------------------------------------------------------------------------
# Agronomy backend
# ---------------------------------------------------------------------------

def test_agronomy_unconfigured(monkeypatch):
    monkeypatch.delenv("AGRO_API_BASE_URL", raising=False)
    assert not agronomy.is_configured()
    assert agronomy.fetch_quote(-17.8, 31.0, "MAIZE") is None
    assert agronomy.fetch_planting_window(-17.8, 31.0) is None
    assert agronomy.health_check() is False


def test_quote_posts_request(monkeypatch):
    monkeypatch.setenv("AGRO_API_BASE_URL", "http://agro.test/")
    sent = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        sent["url"] = url
        sent["json"] = json
        return FakeResponse({"premium": 12, "risk_level": "medium"})

    monkeypatch.setattr(agronomy.requests, "post", fake_post)
    data = agronomy.fetch_quote(-17.8, 31.0, "maize", 500)

    assert data == {"premium": 12, "risk_level": "medium"}
    assert sent["url"] == "http://agro.test/insurance/quote"
    assert sent["json"] == {
        "latitude": -17.8, "longitude": 31.0, "crop_type": "MAIZE",
        "location_type": "coordinates", "coverage_amount": 500,
    }


def test_planting_window_request(monkeypatch):
    monkeypatch.setenv("AGRO_API_BASE_URL", "http://agro.test")
    calls = []
    stub_get(monkeypatch, agronomy, {"optimal_start": "2026-11-15"}, calls=calls)

    assert agronomy.fetch_planting_window(-17.8, 31.0, "soya") == {"optimal_start": "2026-11-15"}
    assert calls == [("http://agro.test/planting", {"lat": -17.8, "lng": 31.0, "crop": "SOYA"})]


def test_agronomy_bad_body_gives_none(monkeypatch):
    monkeypatch.setenv("AGRO_API_BASE_URL", "http://agro.test")
    stub_get(monkeypatch, agronomy, ["not", "a", "dict"])
    assert agronomy.fetch_planting_window(-17.8, 31.0) is None

    stub_get(monkeypatch, agronomy, ValueError("not json"))
    assert agronomy.fetch_planting_window(-17.8, 31.0) is None


# ---------------------------------------------------------------------------
# Provider routing
# ---------------------------------------------------------------------------

def test_provider_routes_quote_with_crop_and_coverage(monkeypatch):
    calls = []
    monkeypatch.setattr(provider, "fetch_quote",
                        lambda lat, lng, crop, coverage: calls.append((crop, coverage)) or {"premium": 1})
    result = provider.fetch_payload(CommandKind.QUOTE, -17.8, 31.0, crop=CropType.COTTON, coverage=300)
    assert result == {"premium": 1}
    assert calls == [("COTTON", 300)]


def test_provider_quote_without_crop_skips_backend(monkeypatch):
    calls = []
    monkeypatch.setattr(provider, "fetch_quote",
                        lambda lat, lng, crop, coverage: calls.append(crop) or {"premium": 1})
    assert provider.fetch_payload(CommandKind.QUOTE, -17.8, 31.0) is None
    assert calls == []


def test_provider_routes_planting(monkeypatch):
    calls = []
    monkeypatch.setattr(provider, "fetch_planting_window",
                        lambda lat, lng, crop: calls.append(crop) or {})
    provider.fetch_payload(CommandKind.PLANTING, -17.8, 31.0, crop=CropType.WHEAT)
    assert calls == ["WHEAT"]


def test_provider_swallows_source_errors(monkeypatch):
    def boom(lat, lng):
        raise RuntimeError("bug in client")
    monkeypatch.setattr(provider, "fetch_forecast", boom)
    assert provider.fetch_payload(CommandKind.FORECAST, -17.8, 31.0) is None


def test_provider_has_no_source_for_help():
    assert provider.fetch_payload(CommandKind.HELP, -17.8, 31.0) is None


# ---------------------------------------------------------------------------
# Twilio gateway
# ---------------------------------------------------------------------------

def test_format_phone_number():
    assert gateway.format_phone_number("263 77 123 4567") == "+263771234567"
    assert gateway.format_phone_number("+263771234567") == "+263771234567"


def test_send_sms_requires_configuration(monkeypatch):
    for name in ("TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_FROM_NUMBER"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(gateway.SmsSendError):
        gateway.send_sms("263771234567", "hello")


def test_send_sms_requires_message():
    with pytest.raises(gateway.SmsSendError):
        gateway.send_sms("263771234567", "")


def test_send_sms_truncates_and_sends(monkeypatch):
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC123")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "secret")
    monkeypatch.setenv("TWILIO_FROM_NUMBER", "+15550001111")
    created = {}

    class FakeMessages:
        def create(self, to, from_, body):
            created.update(to=to, from_=from_, body=body)
            return type("Sent", (), {"sid": "SM1", "status": "queued"})()

    class FakeClient:
        messages = FakeMessages()

    monkeypatch.setattr(gateway, "_client", lambda: FakeClient())
    result = gateway.send_sms("263771234567", "word " * 60)

    assert result == {"success": True, "message_id": "SM1", "status": "queued", "to": "+263771234567"}
    assert created["from_"] == "+15550001111"
    assert len(created["body"]) <= 150
    assert created["body"].endswith("...")
