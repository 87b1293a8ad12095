from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from orebot.domain import ConfigError
from orebot.strategy import (
    FixedThreshold,
    StrategyConfig,
    parse_strategy,
    require_int,
    require_number,
    strategy_to_dict,
)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.environ.get(name)
    if raw is None:
        value = default
    else:
        try:
            value = int(raw)
        except ValueError as exc:
            raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if min_value is not None:
        value = max(min_value, value)
    return value


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


@dataclass(frozen=True)
class TimingConfig:
    start_before_seconds: float = 40.0
    remaining_slots: int = 15
    refresh_interval: float = 1.0
    poll_interval: float = 0.5
    cooldown_seconds: float = 60.0


@dataclass(frozen=True)
class AdvancedConfig:
    compute_unit_price: int = 20_000
    compute_unit_limit: int = 400_000
    jito_tip: int = 5_000
    enable_jito: bool = True
    max_retries: int = 4
    log_level: str = "info"


@dataclass(frozen=True)
class Settings:
    rpc: str
    keypair: str
    strategy: StrategyConfig
    timing: TimingConfig = field(default_factory=TimingConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)
    data_dir: str = "./data"
    dry_run: bool = False
    price_max_retries: int = 3

    @property
    def log_level(self) -> str:
        return self.advanced.log_level.strip().upper()


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be an object")
    return value


def _build(cls, raw: dict[str, Any], where: str):
    try:
        return cls(**raw)
    except TypeError as exc:
        raise ConfigError(f"invalid {where}: {exc}") from exc


def _check_types(s: Settings) -> None:
    for name in ("start_before_seconds", "refresh_interval", "poll_interval", "cooldown_seconds"):
        require_number(f"common.timing.{name}", getattr(s.timing, name))
    require_int("common.timing.remaining_slots", s.timing.remaining_slots)
    for name in ("compute_unit_price", "compute_unit_limit", "jito_tip", "max_retries"):
        require_int(f"advanced.{name}", getattr(s.advanced, name))
    if not isinstance(s.advanced.enable_jito, bool):
        raise ConfigError(f"advanced.enable_jito must be true or false, got {s.advanced.enable_jito!r}")
    if not isinstance(s.advanced.log_level, str):
        raise ConfigError(f"advanced.log_level must be a string, got {s.advanced.log_level!r}")


def validate_settings(s: Settings) -> Settings:
    _check_types(s)
    if not s.rpc:
        raise ConfigError("common.rpc must not be empty")
    if not s.keypair:
        raise ConfigError("common.keypair must not be empty")
    if s.timing.start_before_seconds < 0:
        raise ConfigError("common.timing.start_before_seconds must be >= 0")
    if s.timing.remaining_slots < 0:
        raise ConfigError("common.timing.remaining_slots must be >= 0")
    if s.timing.refresh_interval <= 0 or s.timing.poll_interval <= 0:
        raise ConfigError("refresh_interval and poll_interval must be > 0")
    if s.timing.cooldown_seconds < 0:
        raise ConfigError("common.timing.cooldown_seconds must be >= 0")
    if s.advanced.compute_unit_limit <= 0:
        raise ConfigError("advanced.compute_unit_limit must be > 0")
    if s.advanced.compute_unit_price < 0 or s.advanced.jito_tip < 0:
        raise ConfigError("advanced.compute_unit_price and advanced.jito_tip must be >= 0")
    if s.advanced.max_retries < 0:
        raise ConfigError("advanced.max_retries must be >= 0")
    if not isinstance(logging.getLevelName(s.log_level), int):
        raise ConfigError(f"unknown log level {s.advanced.log_level!r}")
    return s


def settings_from_dict(raw: dict[str, Any]) -> Settings:
    if not isinstance(raw, dict):
        raise ConfigError("config document must be an object")
    common = _section(raw, "common")
    timing_raw = common.get("timing") or {}
    if not isinstance(timing_raw, dict):
        raise ConfigError("common.timing must be an object")
    if "strategy" not in raw:
        raise ConfigError("strategy section is required")

    settings = Settings(
        rpc=_env_str("RPC_URL", str(common.get("rpc") or "")),
        keypair=_env_str("KEYPAIR_PATH", str(common.get("keypair") or "")),
        strategy=parse_strategy(raw["strategy"]),
        timing=_build(TimingConfig, timing_raw, "common.timing"),
        advanced=_build(AdvancedConfig, _section(raw, "advanced"), "advanced"),
        data_dir=_env_str("DATA_DIR", "./data"),
        dry_run=_env_bool("DRY_RUN", False),
        price_max_retries=_env_int("PRICE_MAX_RETRIES", 3, min_value=0),
    )
    level = os.environ.get("LOG_LEVEL")
    if level and level.strip():
        settings = replace(settings, advanced=replace(settings.advanced, log_level=level.strip()))
    return validate_settings(settings)


def load_settings(path: str | Path) -> Settings:
    load_dotenv()
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read config file {config_path}: {exc}") from exc
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid JSON in {config_path}: {exc}") from exc
    return settings_from_dict(raw)


def settings_to_dict(s: Settings) -> dict[str, Any]:
    return {
        "common": {"rpc": s.rpc, "keypair": s.keypair, "timing": asdict(s.timing)},
        "strategy": strategy_to_dict(s.strategy),
        "advanced": asdict(s.advanced),
    }


def save_settings(s: Settings, path: str | Path) -> None:
    Path(path).write_text(json.dumps(settings_to_dict(s), indent=2) + "\n", encoding="utf-8")


def default_settings() -> Settings:
    return Settings(
        rpc="https://api.mainnet-beta.solana.com",
        keypair="~/.config/solana/id.json",
        strategy=FixedThreshold(threshold_sol=0.01),
    )
