"""Configuration management for the court availability crawler."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .models import Credentials

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class Config:
    """Configuration manager with environment variables and file fallback."""

    def __init__(self, config_path: str | None = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file (optional)
        """
        self.config_path = config_path or os.getenv(
            "COURT_CRAWLER_CONFIG_PATH", "config/config.json"
        )
        self._config_data: dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file if it exists."""
        config_file = Path(self.config_path)
        if config_file.exists():
            try:
                with open(config_file, encoding="utf-8") as f:
                    self._config_data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to load config file {self.config_path}: {e}")
                self._config_data = {}

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with priority: env vars > config file > default.

        Args:
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value
        """
        env_value = os.getenv(key.upper())
        if env_value is not None:
            return env_value

        if key in self._config_data:
            return self._config_data[key]

        return default

    @property
    def username(self) -> str:
        """Get portal login identifier."""
        username = self.get("COURT_CRAWLER_USERNAME")
        if not username:
            raise ValueError("COURT_CRAWLER_USERNAME is not configured.")
        return str(username)

    @property
    def password(self) -> str:
        """Get portal login secret."""
        password = self.get("COURT_CRAWLER_PASSWORD")
        if not password:
            raise ValueError("COURT_CRAWLER_PASSWORD is not configured.")
        return str(password)

    @property
    def credentials(self) -> Credentials:
        """Get the credential pair used for every portal."""
        return Credentials(identifier=self.username, secret=self.password)

    @property
    def has_credentials(self) -> bool:
        """Check if credentials are configured."""
        try:
            return bool(self.username and self.password)
        except ValueError:
            return False

    @property
    def nowon_base_url(self) -> str:
        return self.get("COURT_CRAWLER_NOWON_BASE_URL", "https://reservation.nowonsc.kr")

    @property
    def dobong_base_url(self) -> str:
        return self.get(
            "COURT_CRAWLER_DOBONG_BASE_URL", "https://yeyak.dobongsiseol.or.kr"
        )

    @property
    def dobong_login_url(self) -> str:
        return self.get(
            "COURT_CRAWLER_DOBONG_LOGIN_URL",
            "https://www.dobongsiseol.or.kr/contents/sso_login.php",
        )

    @property
    def request_timeout(self) -> float:
        """Get per-call HTTP timeout in seconds."""
        return float(self.get("COURT_CRAWLER_REQUEST_TIMEOUT", "15"))

    @property
    def request_delay(self) -> float:
        """Get delay between consecutive upstream calls in seconds."""
        return float(self.get("COURT_CRAWLER_REQUEST_DELAY", "0.5"))

    @property
    def failure_threshold(self) -> int:
        """Get consecutive failures needed to open the circuit."""
        return int(self.get("COURT_CRAWLER_FAILURE_THRESHOLD", "5"))

    @property
    def recovery_timeout(self) -> float:
        """Get seconds an open circuit waits before a trial call."""
        return float(self.get("COURT_CRAWLER_RECOVERY_TIMEOUT", "600"))

    @property
    def verify_ssl(self) -> bool:
        return str(self.get("COURT_CRAWLER_VERIFY_SSL", "true")).lower() == "true"

    @property
    def nowon_verify_ssl(self) -> bool:
        """Check TLS certificates on the Nowon portal; off unless enabled."""
        return str(self.get("COURT_CRAWLER_NOWON_VERIFY_SSL", "false")).lower() == "true"

    @property
    def output_dir(self) -> str:
        return str(self.get("COURT_CRAWLER_OUTPUT_DIR", "output"))

    @property
    def enable_debug_mode(self) -> bool:
        """Check if debug mode is enabled."""
        return str(self.get("COURT_CRAWLER_DEBUG", "false")).lower() == "true"

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "nowon_base_url": self.nowon_base_url,
            "dobong_base_url": self.dobong_base_url,
            "dobong_login_url": self.dobong_login_url,
            "request_timeout": self.request_timeout,
            "request_delay": self.request_delay,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
            "verify_ssl": self.verify_ssl,
            "nowon_verify_ssl": self.nowon_verify_ssl,
            "output_dir": self.output_dir,
            "enable_debug_mode": self.enable_debug_mode,
            "has_credentials": self.has_credentials,
        }


# Global configuration instance
config = Config()
