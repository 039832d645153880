"""
Open-Meteo client.

Given (lat, lng), returns current conditions, a 7-day daily forecast, or
the past 7 days of rainfall as plain dict payloads for the reply formatter.
Free API, no key required.

On failure (timeout, bad status, unexpected JSON) each fetch logs the
problem and returns None so the caller can send an "unavailable" reply.
"""

import logging
import os
from datetime import date

import requests

logger = logging.getLogger(__name__)

WEATHER_BASE = os.getenv("WEATHER_BASE", "https://api.open-meteo.com")
TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT", "15"))
USER_AGENT = "farm-sms-advisory/1.0"

HISTORY_DAYS = 7
FORECAST_DAYS = 7


def _get_forecast(params: dict) -> dict:
    resp = requests.get(
        f"{WEATHER_BASE.rstrip('/')}/v1/forecast",
        params={"timezone": "auto", **params},
        headers={"User-Agent": USER_AGENT},
        timeout=TIMEOUT_SECONDS,
    )
    resp.raise_for_status()
    return resp.json()


def fetch_current_weather(lat: float, lng: float) -> dict | None:
    try:
        data = _get_forecast({
            "latitude": lat,
            "longitude": lng,
            "current": "temperature_2m,precipitation,wind_speed_10m,relative_humidity_2m",
        })
        current = data["current"]
        return {
            "temperature": current.get("temperature_2m"),
            "precipitation": current.get("precipitation") or 0.0,
            "wind_speed": current.get("wind_speed_10m"),
            "humidity": current.get("relative_humidity_2m"),
            "timestamp": current.get("time"),
        }
    except (requests.RequestException, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Open-Meteo current weather failed for ({lat}, {lng}): {e}")
        return None


def fetch_forecast(lat: float, lng: float) -> dict | None:
    try:
        data = _get_forecast({
            "latitude": lat,
            "longitude": lng,
            "daily": "temperature_2m_max,temperature_2m_min,precipitation_sum,"
                     "precipitation_probability_max",
            "forecast_days": FORECAST_DAYS,
        })
        daily = data["daily"]
        return {
            "dates": daily["time"],
            "max_temps": daily["temperature_2m_max"],
            "min_temps": daily.get("temperature_2m_min", []),
            "precipitation": [rain or 0.0 for rain in daily["precipitation_sum"]],
            "rain_probability": daily.get("precipitation_probability_max", []),
        }
    except (requests.RequestException, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Open-Meteo forecast failed for ({lat}, {lng}): {e}")
        return None


def fetch_rain_history(lat: float, lng: float, today: date | None = None) -> dict | None:
    """
    Daily rainfall for the last HISTORY_DAYS days.

    past_days also returns today's (partial) day and the forecast days after
    it, so only dates strictly before today are kept.
    """
    try:
        data = _get_forecast({
            "latitude": lat,
            "longitude": lng,
            "daily": "precipitation_sum",
            "past_days": HISTORY_DAYS,
            "forecast_days": 1,
        })
        daily = data["daily"]
        today = today or date.today()

        dates, rain = [], []
        for day, mm in zip(daily["time"], daily["precipitation_sum"]):
            if date.fromisoformat(day) < today:
                dates.append(day)
                rain.append(mm or 0.0)

        dates, rain = dates[-HISTORY_DAYS:], rain[-HISTORY_DAYS:]
        return {
            "dates": dates,
            "precipitation": rain,
            "total": sum(rain),
            "days": HISTORY_DAYS,
        }
    except (requests.RequestException, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Open-Meteo rain history failed for ({lat}, {lng}): {e}")
        return None


def health_check() -> bool:
    """True if Open-Meteo answers for a known point (Cape Town)."""
    return fetch_current_weather(-33.9, 18.4) is not None
