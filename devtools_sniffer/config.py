"""Configuration management for devtools-sniffer.

Supports multiple configuration sources with precedence:
CLI flags > Environment variables > Config file > Defaults

Usage:
    >>> config = Configuration()
    >>> config.load_from_file("~/.snifferrc")
    >>> config.load_from_env()
    >>> config.merge(chrome_port=9333)  # CLI overrides
    >>> print(config.chrome_port)
    9333
"""

import os
import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def _to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value}")


class Configuration:
    """Configuration manager with layered precedence.

    Precedence order (highest to lowest):
    1. CLI arguments (via merge method)
    2. Environment variables (SNIFFER_* prefix, plus CHROME_PATH)
    3. Config file (~/.snifferrc JSON)
    4. Default values

    Browser:
        chrome_host, chrome_port, chrome_path, launch
    Transport:
        timeout, max_size
    Remote UI locators:
        view_id, panel_path, control_selector, inspector_marker,
        inspector_index, target_wait
    Interception:
        receiver_path, method_name, capture_index, arm_first
    Trigger bounds (None = retry forever):
        max_attempts, trigger_deadline
    Output and logging:
        output_path, log_level, log_format
    """

    DEFAULTS = {
        "chrome_host": "localhost",
        "chrome_port": 9222,
        "chrome_path": None,
        "launch": True,
        "timeout": 30.0,
        "max_size": 67_108_864,  # 64MB
        "view_id": "lighthouse",
        "panel_path": "UI.panels.lighthouse",
        "control_selector": "button",
        "inspector_marker": "devtools",
        "inspector_index": 1,
        "target_wait": 10.0,
        "receiver_path": "UI.panels.lighthouse.__proto__",
        "method_name": "_buildReportUI",
        "capture_index": 0,
        "arm_first": False,
        "max_attempts": None,
        "trigger_deadline": None,
        "output_path": "latest-run/lhr.json",
        "log_level": "INFO",
        "log_format": "text",
    }

    ENV_MAPPINGS = {
        "SNIFFER_CHROME_HOST": ("chrome_host", str),
        "SNIFFER_CHROME_PORT": ("chrome_port", int),
        "CHROME_PATH": ("chrome_path", str),
        "SNIFFER_CHROME_PATH": ("chrome_path", str),
        "SNIFFER_TIMEOUT": ("timeout", float),
        "SNIFFER_MAX_SIZE": ("max_size", int),
        "SNIFFER_RECEIVER_PATH": ("receiver_path", str),
        "SNIFFER_METHOD_NAME": ("method_name", str),
        "SNIFFER_INSPECTOR_INDEX": ("inspector_index", int),
        "SNIFFER_MAX_ATTEMPTS": ("max_attempts", int),
        "SNIFFER_TRIGGER_DEADLINE": ("trigger_deadline", float),
        "SNIFFER_ARM_FIRST": ("arm_first", _to_bool),
        "SNIFFER_OUTPUT_PATH": ("output_path", str),
        "SNIFFER_LOG_LEVEL": ("log_level", str),
        "SNIFFER_LOG_FORMAT": ("log_format", str),
    }

    def __init__(self):
        """Initialize configuration with default values."""
        self.chrome_host: str = self.DEFAULTS["chrome_host"]
        self.chrome_port: int = self.DEFAULTS["chrome_port"]
        self.chrome_path: Optional[str] = self.DEFAULTS["chrome_path"]
        self.launch: bool = self.DEFAULTS["launch"]
        self.timeout: float = self.DEFAULTS["timeout"]
        self.max_size: int = self.DEFAULTS["max_size"]
        self.view_id: str = self.DEFAULTS["view_id"]
        self.panel_path: str = self.DEFAULTS["panel_path"]
        self.control_selector: str = self.DEFAULTS["control_selector"]
        self.inspector_marker: str = self.DEFAULTS["inspector_marker"]
        self.inspector_index: int = self.DEFAULTS["inspector_index"]
        self.target_wait: float = self.DEFAULTS["target_wait"]
        self.receiver_path: str = self.DEFAULTS["receiver_path"]
        self.method_name: str = self.DEFAULTS["method_name"]
        self.capture_index: int = self.DEFAULTS["capture_index"]
        self.arm_first: bool = self.DEFAULTS["arm_first"]
        self.max_attempts: Optional[int] = self.DEFAULTS["max_attempts"]
        self.trigger_deadline: Optional[float] = self.DEFAULTS["trigger_deadline"]
        self.output_path: str = self.DEFAULTS["output_path"]
        self.log_level: str = self.DEFAULTS["log_level"]
        self.log_format: str = self.DEFAULTS["log_format"]

    def load_from_file(self, file_path: str) -> None:
        """Load configuration from JSON file.

        Args:
            file_path: Path to config file (typically ~/.snifferrc)

        Note:
            Invalid JSON or missing file is ignored with a log message.
            Partial configs are merged with existing values.
        """
        path = Path(file_path).expanduser()

        if not path.exists():
            logger.debug(f"Config file not found: {path}")
            return

        try:
            with open(path, "r") as f:
                data = json.load(f)

            self._merge_dict(data)
            logger.info(f"Loaded configuration from {path}")

        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in config file {path}: {e}")
        except OSError as e:
            logger.warning(f"Error loading config file {path}: {e}")

    def load_from_env(self) -> None:
        """Load configuration from environment variables.

        Invalid values are ignored with a warning log.
        """
        for env_var, (attr_name, type_converter) in self.ENV_MAPPINGS.items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    converted_value = type_converter(value)
                    setattr(self, attr_name, converted_value)
                    logger.debug(f"Loaded {attr_name}={converted_value} from {env_var}")
                except (ValueError, TypeError) as e:
                    logger.warning(f"Invalid value for {env_var}: {value} ({e})")

    def merge(self, **kwargs) -> None:
        """Merge CLI arguments into configuration (highest precedence).

        Example:
            >>> config.merge(chrome_port=9333, timeout=15.0)
        """
        self._merge_dict(kwargs)

    def _merge_dict(self, data: dict) -> None:
        for key, value in data.items():
            if key in self.DEFAULTS and value is not None:
                setattr(self, key, value)
                logger.debug(f"Set {key}={value}")

    def to_dict(self) -> dict:
        """Export configuration as dictionary."""
        return {key: getattr(self, key) for key in self.DEFAULTS}

    def __repr__(self) -> str:
        return f"Configuration({self.to_dict()})"
