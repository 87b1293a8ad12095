import json
from pathlib import Path

import pytest

from orebot.config import default_settings, load_settings, save_settings, settings_from_dict
from orebot.config.settings import Settings, TimingConfig
from orebot.domain import ConfigError
from orebot.strategy import DYNAMIC_OPTIMIZED, DynamicOptimized, FixedThreshold, parse_strategy

_ENV = ("RPC_URL", "KEYPAIR_PATH", "LOG_LEVEL", "DATA_DIR", "DRY_RUN", "PRICE_MAX_RETRIES")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def _doc(**strategy):
    return {
        "common": {
            "rpc": "http://localhost:8899",
            "keypair": "/tmp/id.json",
            "timing": {"start_before_seconds": 30, "remaining_slots": 10},
        },
        "strategy": strategy or {"type": "fixed_threshold", "threshold_sol": 0.01},
        "advanced": {"jito_tip": 10000, "enable_jito": False},
    }


def test_settings_type() -> None:
    s = Settings(
        rpc="http://localhost:8899",
        keypair="/tmp/id.json",
        strategy=FixedThreshold(threshold_sol=0.01),
        timing=TimingConfig(start_before_seconds=40.0, remaining_slots=15),
        dry_run=True,
    )
    assert s.timing.start_before_seconds >= 0
    assert s.log_level == "INFO"


def test_settings_from_document() -> None:
    s = settings_from_dict(_doc())
    assert s.rpc == "http://localhost:8899"
    assert s.timing.start_before_seconds == 30
    assert s.timing.poll_interval == 0.5
    assert s.advanced.jito_tip == 10000
    assert s.advanced.enable_jito is False
    assert s.advanced.compute_unit_price == 20000
    assert s.advanced.max_retries == 4
    assert isinstance(s.strategy, FixedThreshold)
    assert s.dry_run is False


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("RPC_URL", "https://rpc.example")
    monkeypatch.setenv("DRY_RUN", "true")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("PRICE_MAX_RETRIES", "5")
    s = settings_from_dict(_doc())
    assert s.rpc == "https://rpc.example"
    assert s.dry_run is True
    assert s.log_level == "DEBUG"
    assert s.price_max_retries == 5


def test_dynamic_strategy_document() -> None:
    s = settings_from_dict(_doc(type="dynamic_optimized", amount_sol=0.005, min_squares=10, pick_squares=4))
    assert isinstance(s.strategy, DynamicOptimized)
    assert s.strategy.kind == DYNAMIC_OPTIMIZED
    assert s.strategy.dynamic_coefficient == 0.036


@pytest.mark.parametrize(
    "raw",
    [
        {"type": "fixed_threshold", "threshold_sol": 0},
        {"type": "fixed_threshold", "threshold_sol": 0.01, "amount_sol": 0},
        {"type": "fixed_threshold", "threshold_sol": 0.01, "min_squares": 26},
        {"type": "fixed_threshold", "threshold_sol": 0.01, "min_squares": 3, "pick_squares": 4},
        {"type": "dynamic_optimized", "dynamic_coefficient": 0},
        {"type": "dynamic_optimized", "bogus": 1},
        {"type": "fixed_threshold", "threshold_sol": 0.01, "pick_squares": 5.0},
        {"type": "fixed_threshold", "threshold_sol": 0.01, "min_squares": True},
        {"type": "fixed_threshold", "threshold_sol": "0.01"},
        {"type": "dynamic_optimized", "dynamic_offset": None},
        {"type": "martingale"},
    ],
)
def test_invalid_strategy_rejected(raw) -> None:
    with pytest.raises(ConfigError):
        parse_strategy(raw)


def test_missing_rpc_rejected() -> None:
    doc = _doc()
    doc["common"]["rpc"] = ""
    with pytest.raises(ConfigError):
        settings_from_dict(doc)


def test_negative_start_before_rejected() -> None:
    doc = _doc()
    doc["common"]["timing"]["start_before_seconds"] = -1
    with pytest.raises(ConfigError):
        settings_from_dict(doc)


def test_unknown_log_level_rejected() -> None:
    doc = _doc()
    doc["advanced"]["log_level"] = "chatty"
    with pytest.raises(ConfigError):
        settings_from_dict(doc)


def test_load_settings_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_settings(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(ConfigError):
        load_settings(bad)


def test_save_then_load(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    save_settings(default_settings(), path)
    raw = json.loads(path.read_text())
    assert raw["strategy"]["type"] == "fixed_threshold"
    assert raw["common"]["timing"]["start_before_seconds"] == 40.0
    loaded = load_settings(path)
    assert loaded.strategy == default_settings().strategy
    assert loaded.advanced == default_settings().advanced


@pytest.mark.parametrize(
    "section, key, value",
    [
        ("timing", "start_before_seconds", "40"),
        ("timing", "remaining_slots", 15.0),
        ("timing", "cooldown_seconds", None),
        ("advanced", "max_retries", 4.5),
        ("advanced", "compute_unit_limit", "400000"),
        ("advanced", "jito_tip", True),
        ("advanced", "enable_jito", "yes"),
        ("advanced", "log_level", 10),
    ],
)
def test_wrong_field_types_rejected(section, key, value) -> None:
    doc = _doc()
    target = doc["common"]["timing"] if section == "timing" else doc["advanced"]
    target[key] = value
    with pytest.raises(ConfigError, match=key):
        settings_from_dict(doc)


def test_integral_values_accepted_for_float_fields() -> None:
    doc = _doc()
    doc["common"]["timing"]["cooldown_seconds"] = 30
    assert settings_from_dict(doc).timing.cooldown_seconds == 30


def test_float_count_rejected_at_load() -> None:
    doc = _doc(type="fixed_threshold", threshold_sol=0.01, pick_squares=5.0)
    with pytest.raises(ConfigError, match="pick_squares"):
        settings_from_dict(doc)
