"""Tests for settings and process configuration."""

from webguardian.config import (
    DEFAULT_SCORING,
    AppConfig,
    Settings,
    load_config,
    load_scoring,
    validate_config,
)
from webguardian.constants import Category


class TestSettings:
    """Host settings parsing."""

    def test_defaults(self):
        settings = Settings()
        assert settings.real_time_protection
        assert settings.notification_level == "medium"
        assert settings.warning_threshold == 60
        assert settings.evaluates_on_navigation

    def test_from_camel_case(self):
        settings = Settings.from_dict({
            "realTimeProtection": True,
            "blockTrackers": False,
            "notificationLevel": "HIGH",
            "whitelistMode": "true",
            "somethingElse": 1,
        })
        assert not settings.block_trackers
        assert settings.notification_level == "high"
        assert settings.warning_threshold == 80
        assert settings.whitelist_mode is True

    def test_invalid_enum_values_fall_back(self):
        settings = Settings.from_dict({"notificationLevel": "loud", "scanFrequency": "hourly"})
        assert settings.notification_level == "medium"
        assert settings.scan_frequency == "realtime"

    def test_round_trip(self):
        settings = Settings(block_phishing=False, scan_frequency="manual")
        assert Settings.from_dict(settings.to_dict()) == settings

    def test_merged_only_touches_given_keys(self):
        base = Settings(block_phishing=False)
        merged = base.merged({"showWarnings": False})
        assert merged.block_phishing is False
        assert merged.show_warnings is False
        assert base.show_warnings is True

    def test_navigation_evaluation_switches(self):
        assert not Settings(real_time_protection=False).evaluates_on_navigation
        assert not Settings(scan_frequency="manual").evaluates_on_navigation

    def test_is_enabled(self):
        settings = Settings(block_cryptominers=False)
        assert not settings.is_enabled(Category.CRYPTOMINING)
        assert settings.is_enabled(Category.PHISHING)


class TestAppConfig:
    """Environment and file configuration."""

    def test_load_scoring_defaults(self, tmp_path):
        assert load_scoring(tmp_path) == DEFAULT_SCORING

    def test_load_scoring_overrides(self, tmp_path):
        (tmp_path / "heuristics.yaml").write_text(
            "scoring:\n  phishing: 65\n  unknown_key: 3\n  url_long: nope\n"
        )
        scoring = load_scoring(tmp_path)
        assert scoring["phishing"] == 65
        assert scoring["url_long"] == DEFAULT_SCORING["url_long"]
        assert "unknown_key" not in scoring

    def test_load_scoring_broken_yaml(self, tmp_path):
        (tmp_path / "heuristics.yaml").write_text("scoring: [oops\n")
        assert load_scoring(tmp_path) == DEFAULT_SCORING

    def test_load_config_from_env(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
        monkeypatch.setenv("BRIDGE_PORT", "9100")
        monkeypatch.setenv("HEALTH_ENABLED", "false")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("PATTERN_RELOAD_SECONDS", "30")

        config = load_config()
        assert config.config_dir == tmp_path
        assert config.bridge_port == 9100
        assert config.health_enabled is False
        assert config.log_level == "DEBUG"
        assert config.pattern_reload_seconds == 30
        assert config.patterns_file == tmp_path / "patterns.yaml"

    def test_validate_config(self, tmp_path):
        assert validate_config(AppConfig(config_dir=tmp_path)) == []

        errors = validate_config(
            AppConfig(config_dir=tmp_path, bridge_port=9000, health_port=9000, log_level="LOUD")
        )
        assert len(errors) == 2

    def test_port_conflict_ignored_when_health_disabled(self, tmp_path):
        config = AppConfig(config_dir=tmp_path, bridge_port=9000, health_port=9000, health_enabled=False)
        assert validate_config(config) == []
