"""Unit tests for Configuration precedence and type handling."""

import os
import json
import pytest
from pathlib import Path
from tempfile import TemporaryDirectory
from devtools_sniffer.config import Configuration


class TestConfigurationPrecedence:
    """Test configuration precedence (CLI > env > file > defaults)."""

    def test_default_values(self):
        """Verify default configuration values are set correctly."""
        config = Configuration()

        assert config.chrome_port == 9222
        assert config.timeout == 30.0
        assert config.max_size == 67_108_864
        assert config.log_level == "INFO"
        assert config.log_format == "text"
        assert config.output_path == "latest-run/lhr.json"
        assert config.receiver_path == "UI.panels.lighthouse.__proto__"
        assert config.method_name == "_buildReportUI"
        assert config.capture_index == 0
        assert config.inspector_index == 1
        assert config.max_attempts is None
        assert config.trigger_deadline is None
        assert config.arm_first is False
        assert config.launch is True

    def test_load_from_file(self):
        """Verify configuration loads from a JSON file."""
        with TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / ".snifferrc"
            config_data = {
                "chrome_port": 9333,
                "method_name": "_renderReport",
                "max_attempts": 50,
            }
            config_file.write_text(json.dumps(config_data))

            config = Configuration()
            config.load_from_file(str(config_file))

            assert config.chrome_port == 9333
            assert config.method_name == "_renderReport"
            assert config.max_attempts == 50
            # Defaults still apply for unset values
            assert config.receiver_path == "UI.panels.lighthouse.__proto__"

    def test_unknown_file_keys_ignored(self):
        """Keys that are not configuration options are dropped."""
        with TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / ".snifferrc"
            config_file.write_text(json.dumps({"bogus": 1, "timeout": 5.0}))

            config = Configuration()
            config.load_from_file(str(config_file))

            assert config.timeout == 5.0
            assert not hasattr(config, "bogus")

    def test_load_from_env(self, monkeypatch):
        """Verify configuration loads from SNIFFER_* environment variables."""
        monkeypatch.setenv("SNIFFER_CHROME_PORT", "9444")
        monkeypatch.setenv("SNIFFER_TRIGGER_DEADLINE", "45.0")
        monkeypatch.setenv("SNIFFER_ARM_FIRST", "yes")
        monkeypatch.setenv("SNIFFER_LOG_LEVEL", "WARNING")

        config = Configuration()
        config.load_from_env()

        assert config.chrome_port == 9444
        assert config.trigger_deadline == 45.0
        assert config.arm_first is True
        assert config.log_level == "WARNING"

    def test_chrome_path_env(self, monkeypatch):
        """CHROME_PATH is honoured, SNIFFER_CHROME_PATH wins over it."""
        monkeypatch.setenv("CHROME_PATH", "/usr/bin/chromium")
        monkeypatch.delenv("SNIFFER_CHROME_PATH", raising=False)

        config = Configuration()
        config.load_from_env()
        assert config.chrome_path == "/usr/bin/chromium"

        monkeypatch.setenv("SNIFFER_CHROME_PATH", "/opt/chrome/chrome")
        config.load_from_env()
        assert config.chrome_path == "/opt/chrome/chrome"

    def test_precedence_chain_file_env_cli(self, monkeypatch):
        """Test complete precedence chain: defaults < file < env < CLI."""
        with TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / ".snifferrc"
            config_file.write_text(json.dumps({"chrome_port": 9333, "timeout": 60.0}))

            monkeypatch.setenv("SNIFFER_CHROME_PORT", "9444")
            monkeypatch.setenv("SNIFFER_LOG_LEVEL", "DEBUG")

            config = Configuration()
            config.load_from_file(str(config_file))
            config.load_from_env()
            config.merge(timeout=15.0, output_path=None)

            assert config.chrome_port == 9444  # Env wins over file
            assert config.timeout == 15.0  # CLI wins over file
            assert config.log_level == "DEBUG"  # Env wins (no CLI override)
            assert config.output_path == "latest-run/lhr.json"  # None never overrides

    def test_invalid_config_file_graceful_fallback(self):
        """Verify invalid config file doesn't crash, uses defaults."""
        with TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / ".snifferrc"
            config_file.write_text("INVALID JSON{{{")

            config = Configuration()
            config.load_from_file(str(config_file))

            assert config.chrome_port == 9222
            assert config.timeout == 30.0

    def test_nonexistent_config_file_ignored(self):
        config = Configuration()
        config.load_from_file("/nonexistent/path/.snifferrc")

        assert config.chrome_port == 9222


class TestConfigurationTypes:
    """Test type conversion and validation."""

    def test_invalid_env_var_ignored(self, monkeypatch):
        monkeypatch.setenv("SNIFFER_CHROME_PORT", "not_a_number")
        monkeypatch.setenv("SNIFFER_ARM_FIRST", "maybe")

        config = Configuration()
        config.load_from_env()

        assert config.chrome_port == 9222
        assert config.arm_first is False

    def test_to_dict_covers_all_defaults(self):
        config = Configuration()
        assert set(config.to_dict()) == set(Configuration.DEFAULTS)
        assert "Configuration(" in repr(config)
