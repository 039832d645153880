"""
Tests for settings loading from environment variables.
"""

import pytest

from config import (
    AFRICA_BOUNDS,
    DEFAULT_CURRENCY_SYMBOLS,
    BoundsPolicy,
    RegionBounds,
    Settings,
    load_settings,
)
from parser.models import CropType


def test_defaults():
    settings = load_settings({})
    assert settings == Settings()
    assert settings.max_reply_length == 150
    assert settings.bounds_policy == BoundsPolicy.REGIONAL
    assert settings.region == AFRICA_BOUNDS
    assert settings.default_crop == CropType.MAIZE
    assert settings.rain_threshold_mm == 1.0
    assert settings.forecast_days == 4
    assert settings.anchor_commands is False
    assert settings.currency_symbols["USD"] == "$"


def test_full_environment():
    settings = load_settings({
        "SMS_MAX_LENGTH": "160",
        "COORD_BOUNDS_POLICY": "Global",
        "REGION_BOUNDS": "-5, 5, 33, 42",
        "DEFAULT_CROP": "soya",
        "RAIN_THRESHOLD_MM": "2.5",
        "FORECAST_DAYS": "3",
        "ANCHOR_COMMANDS": "true",
        "CURRENCY_SYMBOLS": "kes=KSh, NGN=N",
    })
    assert settings.max_reply_length == 160
    assert settings.bounds_policy == BoundsPolicy.GLOBAL
    assert settings.region == RegionBounds(-5.0, 5.0, 33.0, 42.0)
    assert settings.default_crop == CropType.SOYA
    assert settings.rain_threshold_mm == 2.5
    assert settings.forecast_days == 3
    assert settings.anchor_commands is True
    assert settings.currency_symbols["KES"] == "KSh"
    assert settings.currency_symbols["NGN"] == "N"
    assert settings.currency_symbols["ZWL"] == "Z$"   # built-ins kept


def test_currency_table_is_read_only():
    settings = load_settings({"CURRENCY_SYMBOLS": "KES=KSh"})
    with pytest.raises(TypeError):
        settings.currency_symbols["USD"] = "US$"
    with pytest.raises(TypeError):
        DEFAULT_CURRENCY_SYMBOLS["USD"] = "US$"


@pytest.mark.parametrize("env", [
    {"SMS_MAX_LENGTH": "abc"},
    {"SMS_MAX_LENGTH": "5"},
    {"COORD_BOUNDS_POLICY": "europe"},
    {"REGION_BOUNDS": "1,2,3"},
    {"REGION_BOUNDS": "10,5,0,1"},
    {"REGION_BOUNDS": "-95,0,0,10"},
    {"DEFAULT_CROP": "RICE"},
    {"RAIN_THRESHOLD_MM": "-1"},
    {"FORECAST_DAYS": "0"},
    {"CURRENCY_SYMBOLS": "KES"},
])
def test_invalid_values_raise(env):
    with pytest.raises(ValueError):
        load_settings(env)


def test_settings_are_frozen():
    with pytest.raises(AttributeError):
        Settings().max_reply_length = 10
