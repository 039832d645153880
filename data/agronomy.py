"""
Agronomy backend client — insurance quotes and planting windows.

The backend is an HTTP JSON API at AGRO_API_BASE_URL:
    GET  /planting?lat=..&lng=..[&crop=..]
    POST /insurance/quote  {latitude, longitude, crop_type, location_type[, coverage_amount]}
    GET  /health

Like the weather client, every fetch returns a dict payload or None.
"""

import logging
import os

import requests

logger = logging.getLogger(__name__)

TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT", "15"))
USER_AGENT = "farm-sms-advisory/1.0"


def _base_url() -> str | None:
    base = os.getenv("AGRO_API_BASE_URL", "").strip()
    return base.rstrip("/") or None


def is_configured() -> bool:
    return _base_url() is not None


def fetch_quote(lat: float, lng: float, crop: str, coverage: int | None = None) -> dict | None:
    base = _base_url()
    if not base:
        logger.warning("AGRO_API_BASE_URL not set; insurance quotes unavailable")
        return None

    payload = {
        "latitude": lat,
        "longitude": lng,
        "crop_type": crop.upper(),
        "location_type": "coordinates",
    }
    if coverage:
        payload["coverage_amount"] = coverage

    try:
        resp = requests.post(
            f"{base}/insurance/quote",
            json=payload,
            headers={"User-Agent": USER_AGENT},
            timeout=TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Insurance quote failed for {crop} at ({lat}, {lng}): {e}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"Insurance quote returned unexpected body: {data!r}")
        return None
    return data


def fetch_planting_window(lat: float, lng: float, crop: str | None = None) -> dict | None:
    base = _base_url()
    if not base:
        logger.warning("AGRO_API_BASE_URL not set; planting windows unavailable")
        return None

    params = {"lat": lat, "lng": lng}
    if crop:
        params["crop"] = crop.upper()

    try:
        resp = requests.get(
            f"{base}/planting",
            params=params,
            headers={"User-Agent": USER_AGENT},
            timeout=TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Planting window failed at ({lat}, {lng}): {e}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"Planting window returned unexpected body: {data!r}")
        return None
    return data


def health_check() -> bool:
    base = _base_url()
    if not base:
        return False
    try:
        resp = requests.get(f"{base}/health", timeout=5)
        return resp.status_code == 200
    except requests.RequestException as e:
        logger.warning(f"Agronomy backend health check failed: {e}")
        return False
