"""Configuration management for WebGuardian."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .constants import NOTIFICATION_THRESHOLDS, Category

logger = logging.getLogger(__name__)


# Score contributions and thresholds. These can be overridden via
# config/heuristics.yaml (`scoring:` mapping) without touching code.
DEFAULT_SCORING: dict[str, int] = {
    "malicious_domain": 80,
    "phishing": 70,
    "url_ip_literal": 40,
    "url_long": 20,
    "url_many_subdomains": 25,
    "url_suspicious_path": 30,
    "url_max_length": 100,
    "url_max_labels": 4,
    "content_low": 5,
    "content_medium": 15,
    "content_high": 30,
    "content_critical": 50,
    "hidden_input_max_length": 200,
    "hidden_element_min_px": 5,
    "dynamic_iframe_min_px": 10,
    "cpu_window_cap": 10,
    "cpu_min_iterations": 50,
}

NOTIFICATION_LEVELS = ("low", "medium", "high")
SCAN_FREQUENCIES = ("realtime", "periodic", "manual")

# Host settings arrive in camelCase.
_CAMEL_KEYS = {
    "realTimeProtection": "real_time_protection",
    "blockMaliciousSites": "block_malicious_sites",
    "blockPhishing": "block_phishing",
    "blockTrackers": "block_trackers",
    "blockCryptominers": "block_cryptominers",
    "showWarnings": "show_warnings",
    "autoScan": "auto_scan",
    "notificationLevel": "notification_level",
    "scanFrequency": "scan_frequency",
    "whitelistMode": "whitelist_mode",
}


@dataclass(frozen=True)
class Settings:
    """User-facing protection toggles, supplied by the host per call."""

    real_time_protection: bool = True
    block_malicious_sites: bool = True
    block_phishing: bool = True
    block_trackers: bool = True
    block_cryptominers: bool = True
    show_warnings: bool = True
    auto_scan: bool = True
    notification_level: str = "medium"
    scan_frequency: str = "realtime"
    whitelist_mode: bool = False

    def __post_init__(self):
        if self.notification_level not in NOTIFICATION_LEVELS:
            object.__setattr__(self, "notification_level", "medium")
        if self.scan_frequency not in SCAN_FREQUENCIES:
            object.__setattr__(self, "scan_frequency", "realtime")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Settings":
        """Build settings from a host payload (camelCase or snake_case keys)."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _CAMEL_KEYS.get(key, key)
            if name not in known:
                continue
            if name in ("notification_level", "scan_frequency"):
                kwargs[name] = str(value or "").strip().lower()
            else:
                kwargs[name] = _coerce_bool(value)
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        reverse = {v: k for k, v in _CAMEL_KEYS.items()}
        return {reverse[f.name]: getattr(self, f.name) for f in fields(self)}

    def merged(self, updates: Mapping[str, Any] | None) -> "Settings":
        """Return a copy with host updates applied (settings_updated message)."""
        if not updates:
            return self
        patch = Settings.from_dict(updates)
        changed = {
            _CAMEL_KEYS.get(key, key)
            for key in updates
            if _CAMEL_KEYS.get(key, key) in {f.name for f in fields(self)}
        }
        return replace(self, **{name: getattr(patch, name) for name in changed})

    def is_enabled(self, category: Category) -> bool:
        return bool(getattr(self, category.value))

    @property
    def warning_threshold(self) -> int:
        return NOTIFICATION_THRESHOLDS[self.notification_level]

    @property
    def evaluates_on_navigation(self) -> bool:
        return self.real_time_protection and self.scan_frequency == "realtime"


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


@dataclass
class AppConfig:
    """Process configuration loaded from environment."""

    config_dir: Path = field(default_factory=lambda: Path("./config"))

    bridge_host: str = "127.0.0.1"
    bridge_port: int = 8765

    health_host: str = "127.0.0.1"
    health_port: int = 8766
    health_enabled: bool = True

    log_level: str = "INFO"

    # 0 disables periodic pattern reloads.
    pattern_reload_seconds: int = 0

    scoring: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_SCORING))

    def __post_init__(self):
        self.config_dir = Path(self.config_dir)

    @property
    def patterns_file(self) -> Path:
        return self.config_dir / "patterns.yaml"


def load_scoring(config_dir: Path) -> dict[str, int]:
    """Load scoring overrides from config/heuristics.yaml (optional)."""
    scoring = dict(DEFAULT_SCORING)
    path = Path(config_dir or ".") / "heuristics.yaml"
    if not path.exists():
        return scoring

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except Exception as exc:
        logger.error("Failed to parse heuristics.yaml: %s", exc)
        return scoring

    raw = data.get("scoring", {}) if isinstance(data, dict) else {}
    for key, value in (raw or {}).items():
        if key not in DEFAULT_SCORING:
            logger.warning("Ignoring unknown scoring key: %s", key)
            continue
        try:
            scoring[key] = int(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-integer scoring value for %s: %r", key, value)
    return scoring


def load_config() -> AppConfig:
    """Load configuration from environment variables."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    return AppConfig(
        config_dir=config_dir,
        bridge_host=os.getenv("BRIDGE_HOST", "127.0.0.1"),
        bridge_port=int(os.getenv("BRIDGE_PORT", "8765")),
        health_host=os.getenv("HEALTH_HOST", "127.0.0.1"),
        health_port=int(os.getenv("HEALTH_PORT", "8766")),
        health_enabled=os.getenv("HEALTH_ENABLED", "true").lower() == "true",
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        pattern_reload_seconds=int(os.getenv("PATTERN_RELOAD_SECONDS", "0")),
        scoring=load_scoring(config_dir),
    )


def validate_config(config: AppConfig) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []
    if config.health_enabled and config.bridge_port == config.health_port:
        errors.append("BRIDGE_PORT and HEALTH_PORT must differ")
    if config.pattern_reload_seconds < 0:
        errors.append("PATTERN_RELOAD_SECONDS must be >= 0")
    if config.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        errors.append(f"Unknown LOG_LEVEL: {config.log_level}")
    if not config.patterns_file.exists():
        logger.info("No %s found; using built-in pattern lists", config.patterns_file)
    return errors
